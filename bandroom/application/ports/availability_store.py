from __future__ import annotations

from abc import ABC, abstractmethod

from bandroom.domain.entities.availability import AvailabilityConfig


class AvailabilityStorePort(ABC):
    @abstractmethod
    def get_config(self) -> AvailabilityConfig | None:
        """Return the stored config record, or None if it was never written."""
        raise NotImplementedError

    @abstractmethod
    def set_config(self, config: AvailabilityConfig) -> None:
        raise NotImplementedError
