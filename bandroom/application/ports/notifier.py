from abc import ABC, abstractmethod


class NotifierPort(ABC):
    @abstractmethod
    def post(self, content: str) -> None:
        """Publish a notice to the group board. Raises NotificationError on failure."""
        raise NotImplementedError
