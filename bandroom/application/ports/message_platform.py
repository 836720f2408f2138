from abc import ABC, abstractmethod

from bandroom.domain.entities.reply import OutboundMessage


class MessagePlatformPort(ABC):
    @abstractmethod
    def reply(self, reply_token: str, messages: list[OutboundMessage]) -> None:
        raise NotImplementedError
