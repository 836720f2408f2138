"""
Button payload wire format.

Every interactive control carries a query-string payload with an ``action``
discriminator. Each action maps to one frozen dataclass; ``parse_postback`` is
the only place raw payload strings are read.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import ClassVar
from urllib.parse import parse_qs, urlencode


class InvalidPostbackError(ValueError):
    """Raised when a button payload cannot be parsed into a known variant."""


@dataclass(frozen=True)
class SelectDate:
    band: str
    date: str
    start: int
    action: ClassVar[str] = "select_date"


@dataclass(frozen=True)
class SelectTime:
    band: str
    date: str
    time: str
    start: int
    action: ClassVar[str] = "select_time"


@dataclass(frozen=True)
class EditName:
    booking_id: str
    ts: int
    action: ClassVar[str] = "edit_name"


@dataclass(frozen=True)
class EditDatetime:
    booking_id: str
    ts: int
    action: ClassVar[str] = "edit_datetime"


@dataclass(frozen=True)
class EditDate:
    date: str
    ts: int
    action: ClassVar[str] = "edit_date"


@dataclass(frozen=True)
class EditTime:
    time: str
    ts: int
    start: int
    action: ClassVar[str] = "edit_time"


@dataclass(frozen=True)
class Delete:
    booking_id: str
    ts: int
    action: ClassVar[str] = "delete"


@dataclass(frozen=True)
class ConfirmDelete:
    ts: int
    action: ClassVar[str] = "confirm_delete"


@dataclass(frozen=True)
class CancelDelete:
    ts: int
    action: ClassVar[str] = "cancel_delete"


@dataclass(frozen=True)
class ShowMore:
    page: int
    generated_at: int
    action: ClassVar[str] = "show_more"


@dataclass(frozen=True)
class ViewAllDate:
    date: str
    ts: int
    action: ClassVar[str] = "view_all_date"


@dataclass(frozen=True)
class Noop:
    action: ClassVar[str] = "noop"


Postback = (
    SelectDate
    | SelectTime
    | EditName
    | EditDatetime
    | EditDate
    | EditTime
    | Delete
    | ConfirmDelete
    | CancelDelete
    | ShowMore
    | ViewAllDate
    | Noop
)

# wire key -> attribute name
_WIRE_KEYS = {
    "band": "band",
    "date": "date",
    "time": "time",
    "start": "start",
    "ts": "ts",
    "id": "booking_id",
    "page": "page",
    "gen": "generated_at",
}
_ATTR_KEYS = {attr: key for key, attr in _WIRE_KEYS.items()}
_INT_ATTRS = {"start", "ts", "page", "generated_at"}

_VARIANTS: dict[str, type] = {
    cls.action: cls
    for cls in (
        SelectDate,
        SelectTime,
        EditName,
        EditDatetime,
        EditDate,
        EditTime,
        Delete,
        ConfirmDelete,
        CancelDelete,
        ShowMore,
        ViewAllDate,
        Noop,
    )
}


def encode_postback(postback: Postback) -> str:
    pairs = [("action", postback.action)]
    for attr, value in vars(postback).items():
        pairs.append((_ATTR_KEYS[attr], str(value)))
    return urlencode(pairs)


def parse_postback(data: str) -> Postback:
    """Parse a raw payload string. Raises InvalidPostbackError on anything malformed."""
    raw = {key: values[0] for key, values in parse_qs(data or "", keep_blank_values=True).items()}
    action = raw.pop("action", None)
    cls = _VARIANTS.get(action or "")
    if cls is None:
        raise InvalidPostbackError(f"Unknown action: {action!r}")

    kwargs: dict[str, object] = {}
    for f in fields(cls):
        name = f.name
        wire_key = _ATTR_KEYS[name]
        if wire_key not in raw:
            raise InvalidPostbackError(f"Missing field {wire_key!r} for action {action!r}")
        value = raw[wire_key]
        if name in _INT_ATTRS:
            try:
                kwargs[name] = int(value)
            except ValueError as e:
                raise InvalidPostbackError(f"Field {wire_key!r} is not an integer: {value!r}") from e
        else:
            kwargs[name] = value
    return cls(**kwargs)
