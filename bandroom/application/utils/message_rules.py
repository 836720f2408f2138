from __future__ import annotations

import re
import unicodedata

from bandroom.domain.entities.postback import SelectTime, encode_postback

TRIGGER_REGISTER = "register"
TRIGGER_VIEW_MINE = "view my bookings"
TRIGGER_VIEW_ALL = "view all"
TRIGGER_CANCEL = "cancel"

TRIGGER_PHRASES = (TRIGGER_REGISTER, TRIGGER_VIEW_MINE, TRIGGER_VIEW_ALL, TRIGGER_CANCEL)

MAX_LABEL_LENGTH = 40

# LINE rejects a reply whose postback data exceeds this many characters.
MAX_POSTBACK_DATA_LENGTH = 300


def normalize_text(text: str) -> str:
    """NFKC-fold, lowercase and collapse whitespace so rich-menu text and typed text compare equal."""
    folded = unicodedata.normalize("NFKC", text or "").lower()
    return re.sub(r"\s+", " ", folded).strip()


def match_trigger(text: str) -> str | None:
    normalized = normalize_text(text)
    for phrase in TRIGGER_PHRASES:
        if normalized == phrase:
            return phrase
    return None


def is_reserved_label(text: str) -> bool:
    return match_trigger(text) is not None


def clean_label(text: str) -> str:
    return re.sub(r"\s+", " ", (text or "").strip())


def label_problem(text: str) -> str | None:
    """Return a reason code if text can't be used as a band name, else None."""
    label = clean_label(text)
    if not label:
        return "empty"
    if is_reserved_label(label):
        return "reserved"
    if len(label) > MAX_LABEL_LENGTH or registration_payload_length(label) > MAX_POSTBACK_DATA_LENGTH:
        return "too_long"
    return None


def registration_payload_length(label: str) -> int:
    """Length of the widest button payload the band name travels in (a time pick)."""
    widest = SelectTime(band=label, date="2000-01-01", time="00:00-00:00", start=9_999_999_999_999)
    return len(encode_postback(widest))
