"""Renders outbound messages as LINE Messaging API message objects."""

from __future__ import annotations

from typing import Any

from bandroom.application.ports.message_platform import MessagePlatformPort
from bandroom.domain.entities.postback import Noop, encode_postback
from bandroom.domain.entities.reply import CarouselMessage, Choice, ChoiceMessage, OutboundMessage, TextMessage
from bandroom.infrastructure.line.line_client import LineClient

MAX_QUICK_REPLY_ITEMS = 13
MAX_CAROUSEL_COLUMNS = 10
MAX_CARD_ACTIONS = 3
MAX_ACTION_LABEL = 20
MAX_CARD_TITLE = 40
MAX_CARD_TEXT = 60
MAX_ALT_TEXT = 400
MAX_MESSAGES_PER_REPLY = 5


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 1] + "…"


def _postback_action(choice: Choice) -> dict[str, Any]:
    return {
        "type": "postback",
        "label": _truncate(choice.label, MAX_ACTION_LABEL),
        "data": choice.data,
        "displayText": choice.label,
    }


def _placeholder_action() -> dict[str, Any]:
    return {"type": "postback", "label": "-", "data": encode_postback(Noop())}


def render_message(message: OutboundMessage) -> dict[str, Any]:
    if isinstance(message, TextMessage):
        return {"type": "text", "text": message.text}

    if isinstance(message, ChoiceMessage):
        items = [
            {"type": "action", "action": _postback_action(choice)}
            for choice in message.choices[:MAX_QUICK_REPLY_ITEMS]
        ]
        rendered: dict[str, Any] = {"type": "text", "text": message.text}
        if items:
            rendered["quickReply"] = {"items": items}
        return rendered

    if isinstance(message, CarouselMessage):
        cards = message.cards[:MAX_CAROUSEL_COLUMNS]
        # Every column of a carousel must carry the same number of actions.
        width = max((min(len(card.actions), MAX_CARD_ACTIONS) for card in cards), default=0) or 1
        columns = []
        for card in cards:
            actions = [_postback_action(choice) for choice in card.actions[:MAX_CARD_ACTIONS]]
            actions.extend(_placeholder_action() for _ in range(width - len(actions)))
            columns.append(
                {
                    "title": _truncate(card.title, MAX_CARD_TITLE),
                    "text": _truncate(card.text or "-", MAX_CARD_TEXT),
                    "actions": actions,
                }
            )
        return {
            "type": "template",
            "altText": _truncate(message.alt_text, MAX_ALT_TEXT),
            "template": {"type": "carousel", "columns": columns},
        }

    raise TypeError(f"Unsupported message type: {type(message).__name__}")


class LinePlatform(MessagePlatformPort):
    def __init__(self, client: LineClient) -> None:
        self._client = client

    def reply(self, reply_token: str, messages: list[OutboundMessage]) -> None:
        rendered = [render_message(message) for message in messages[:MAX_MESSAGES_PER_REPLY]]
        self._client.reply(reply_token=reply_token, messages=rendered)
