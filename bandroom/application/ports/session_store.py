from abc import ABC, abstractmethod
from typing import Any


class _DeleteField:
    def __repr__(self) -> str:
        return "DELETE_FIELD"


# Sentinel for merge(): removes the field from the stored document.
DELETE_FIELD: Any = _DeleteField()


class SessionStorePort(ABC):
    @abstractmethod
    def get(self, user_id: str) -> dict[str, Any] | None:
        raise NotImplementedError

    @abstractmethod
    def set(self, user_id: str, document: dict[str, Any]) -> None:
        """Replace the whole session document."""
        raise NotImplementedError

    @abstractmethod
    def merge(self, user_id: str, fields: dict[str, Any]) -> None:
        """
        Partially update the session document, creating it if missing.
        Fields whose value is DELETE_FIELD are removed.
        """
        raise NotImplementedError

    @abstractmethod
    def delete(self, user_id: str) -> None:
        raise NotImplementedError
