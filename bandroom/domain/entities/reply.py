from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Choice:
    label: str
    data: str  # opaque postback payload, echoed back verbatim on press


@dataclass(frozen=True)
class TextMessage:
    text: str


@dataclass(frozen=True)
class ChoiceMessage:
    text: str
    choices: tuple[Choice, ...]


@dataclass(frozen=True)
class Card:
    title: str
    text: str
    actions: tuple[Choice, ...] = field(default_factory=tuple)  # at most 3


@dataclass(frozen=True)
class CarouselMessage:
    alt_text: str
    cards: tuple[Card, ...]


OutboundMessage = TextMessage | ChoiceMessage | CarouselMessage
