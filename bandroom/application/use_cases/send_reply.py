from __future__ import annotations

import logging

from bandroom.application.ports.message_platform import MessagePlatformPort
from bandroom.domain.entities.reply import OutboundMessage


class SendReplyUseCase:
    def __init__(self, platform: MessagePlatformPort, auto_reply_enabled: bool = True) -> None:
        self._platform = platform
        self._auto_reply_enabled = auto_reply_enabled
        self._logger = logging.getLogger(__name__)

    def execute(self, reply_token: str, messages: list[OutboundMessage]) -> bool:
        """Send a reply. Returns True if actually sent, False if skipped."""
        if not messages:
            return False
        if not self._auto_reply_enabled:
            self._logger.info("WOULD_SEND_REPLY", extra={"reply_token": reply_token, "count": len(messages)})
            self._logger.info("AUTO_REPLY_ENABLED=false -> skipping send")
            return False
        self._platform.reply(reply_token=reply_token, messages=messages)
        return True
