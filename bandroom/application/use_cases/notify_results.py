from __future__ import annotations

import logging
from dataclasses import dataclass

from bandroom.application.ports.lottery_store import LotteryResultStorePort
from bandroom.application.ports.notifier import NotifierPort
from bandroom.application.utils.date_helpers import format_date_key_label
from bandroom.domain.entities.lottery import LotteryResult


@dataclass(frozen=True)
class NotifyResult:
    status: str  # "success" | "skipped"
    message: str
    content: str | None = None


def build_result_notice(result: LotteryResult) -> str | None:
    """Per-slot ranked list for the group board, or None when no slot has entries."""
    lines = [f"[Room lottery results] {format_date_key_label(result.target_date)}", ""]
    has_content = False
    for time_range in sorted(result.results):
        bands = result.results[time_range]
        if not bands:
            continue
        has_content = True
        lines.append(f"[{time_range}]")
        lines.extend(f"{index}. {band}" for index, band in enumerate(bands, start=1))
        lines.append("")
    if not has_content:
        return None
    lines.append("------------------")
    lines.append('Details: send "view all" to the booking bot.')
    return "\n".join(lines)


class NotifyResultsUseCase:
    def __init__(self, results: LotteryResultStorePort, notifier: NotifierPort) -> None:
        self._results = results
        self._notifier = notifier
        self._logger = logging.getLogger(__name__)

    def execute(self, target_date: str) -> NotifyResult:
        result = self._results.get_result(target_date)
        if result is None:
            return NotifyResult(status="skipped", message=f"No lottery results found for {target_date}.")

        content = build_result_notice(result)
        if content is None:
            return NotifyResult(status="skipped", message="No bands to notify.")

        self._notifier.post(content)
        self._logger.info("Lottery results posted", extra={"target_date": target_date})
        return NotifyResult(status="success", message="Posted lottery results.", content=content)
