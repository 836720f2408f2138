from __future__ import annotations

import logging

from bandroom.application.ports.message_platform import MessagePlatformPort
from bandroom.domain.entities.reply import OutboundMessage
from bandroom.infrastructure.line.line_platform import render_message


class MockLinePlatform(MessagePlatformPort):
    def __init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def reply(self, reply_token: str, messages: list[OutboundMessage]) -> None:
        for message in messages:
            self._logger.info(
                "Mock reply to LINE",
                extra={"reply_token": reply_token, "payload": render_message(message)},
            )
