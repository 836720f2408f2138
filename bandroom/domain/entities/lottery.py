from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class LotteryResult:
    target_date: str  # YYYY-MM-DD
    results: dict[str, list[str]] = field(default_factory=dict)  # time range -> band labels in rank order
    updated_at: datetime | None = None
