from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from bandroom.domain.entities.event import ButtonEvent, InboundEvent, TextEvent


class LineWebhookDTO(BaseModel):
    destination: str | None = None
    events: list[dict[str, Any]] = Field(default_factory=list)

    def extract_events(self) -> list[InboundEvent]:
        """Text messages and postbacks from users; everything else is ignored."""
        extracted: list[InboundEvent] = []
        for event in self.events or []:
            source = event.get("source") or {}
            user_id = source.get("userId")
            reply_token = event.get("replyToken")
            if not (user_id and reply_token):
                continue

            event_type = event.get("type")
            if event_type == "message":
                message = event.get("message") or {}
                if message.get("type") != "text" or message.get("text") is None:
                    continue
                extracted.append(TextEvent(user_id=str(user_id), reply_token=str(reply_token), text=str(message["text"])))
            elif event_type == "postback":
                data = (event.get("postback") or {}).get("data")
                if data is None:
                    continue
                extracted.append(ButtonEvent(user_id=str(user_id), reply_token=str(reply_token), payload=str(data)))

        return extracted
