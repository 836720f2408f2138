#!/usr/bin/env python3
"""
Interactive local chat harness (no HTTP, no LINE).

Usage:
  python3 scripts/chat_local.py

What it does:
- Keeps a stable user_id for the session
- Sends typed text through the same WizardStateMachine the webhook uses
- Prints every reply; buttons are numbered and pressed with "#<n>"
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

load_dotenv()

from bandroom.domain.entities.event import ButtonEvent, TextEvent  # noqa: E402
from bandroom.domain.entities.reply import (  # noqa: E402
    CarouselMessage,
    Choice,
    ChoiceMessage,
    OutboundMessage,
    TextMessage,
)
from bandroom.wiring.dependencies import get_wizard  # noqa: E402


def _print_header(user_id: str) -> None:
    print("\nLocal Booking Chat")
    print("-" * 60)
    print(f"user_id: {user_id}")
    print('Type a message ("register", "view my bookings", "view all", "cancel").')
    print("Press a button with #<n>. Commands: /new, /quit")
    print("-" * 60)


def _print_replies(messages: list[OutboundMessage]) -> list[Choice]:
    buttons: list[Choice] = []

    def _number(choice: Choice) -> str:
        buttons.append(choice)
        return f"[#{len(buttons)} {choice.label}]"

    for message in messages:
        if isinstance(message, TextMessage):
            print(message.text)
        elif isinstance(message, ChoiceMessage):
            print(message.text)
            print("  " + " ".join(_number(choice) for choice in message.choices))
        elif isinstance(message, CarouselMessage):
            for card in message.cards:
                print(f"  * {card.title}: {card.text}")
                if card.actions:
                    print("    " + " ".join(_number(choice) for choice in card.actions))
    return buttons


def main() -> None:
    user_id = os.getenv("CHAT_USER_ID", "local_user_1")
    wizard = get_wizard()
    buttons: list[Choice] = []
    _print_header(user_id)

    while True:
        try:
            user_text = input("\n> ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nBye!")
            return

        if not user_text:
            continue
        if user_text.lower() in ("/quit", "/exit"):
            print("Bye!")
            return
        if user_text.lower() == "/new":
            user_id = f"{user_id}_"
            buttons = []
            print(f"New user_id: {user_id}")
            continue

        if user_text.startswith("#") and user_text[1:].isdigit():
            index = int(user_text[1:]) - 1
            if not 0 <= index < len(buttons):
                print("No such button.")
                continue
            event = ButtonEvent(user_id=user_id, reply_token="local", payload=buttons[index].data)
        else:
            event = TextEvent(user_id=user_id, reply_token="local", text=user_text)

        print("-" * 60)
        buttons = _print_replies(wizard.handle(event))


if __name__ == "__main__":
    main()
