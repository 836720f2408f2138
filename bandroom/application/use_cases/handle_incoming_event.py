from __future__ import annotations

import logging

from bandroom.application.exceptions import PlatformSendError
from bandroom.application.use_cases.reply_composer import ReplyComposer
from bandroom.application.use_cases.send_reply import SendReplyUseCase
from bandroom.application.use_cases.wizard import WizardStateMachine
from bandroom.domain.entities.event import InboundEvent
from bandroom.domain.entities.reply import OutboundMessage


class HandleIncomingEventUseCase:
    """Runs one inbound event through the wizard and always answers with a reply."""

    def __init__(
        self,
        wizard: WizardStateMachine,
        send_reply: SendReplyUseCase,
        composer: ReplyComposer,
    ) -> None:
        self._wizard = wizard
        self._send_reply = send_reply
        self._composer = composer
        self._logger = logging.getLogger(__name__)

    def handle(self, event: InboundEvent) -> list[OutboundMessage]:
        try:
            messages = self._wizard.handle(event)
        except Exception as e:
            # Writes happen after validation, so a failure here leaves no partial transition.
            self._logger.exception(
                "Error handling event",
                extra={"user_id": event.user_id, "reason": f"{type(e).__name__}: {e}"},
            )
            messages = [self._composer.generic_error()]

        try:
            did_send = self._send_reply.execute(event.reply_token, messages)
            if did_send:
                self._logger.info("Reply sent", extra={"user_id": event.user_id, "count": len(messages)})
        except PlatformSendError as e:
            self._logger.error("Reply failed", extra={"user_id": event.user_id, "reason": str(e)})
        return messages
