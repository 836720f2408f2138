from dataclasses import dataclass


@dataclass(frozen=True)
class TextEvent:
    user_id: str
    reply_token: str
    text: str


@dataclass(frozen=True)
class ButtonEvent:
    user_id: str
    reply_token: str
    payload: str


InboundEvent = TextEvent | ButtonEvent
