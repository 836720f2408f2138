from __future__ import annotations

import hmac
import logging
from datetime import datetime
from typing import Callable

from fastapi import APIRouter, Depends, HTTPException, Query

from bandroom.api.v1.schemas import (
    ClearLotteryResponseSchema,
    LotteryRunResponseSchema,
    NotifyResponseSchema,
    ReconcileResponseSchema,
)
from bandroom.application.exceptions import NotificationError, StoreError
from bandroom.application.use_cases.lottery import (
    ClearLotteryUseCase,
    ReconcileLotteryUseCase,
    RunLotteryUseCase,
)
from bandroom.application.use_cases.notify_results import NotifyResultsUseCase
from bandroom.application.utils.date_helpers import parse_date_key, tomorrow_key
from bandroom.core.config import settings
from bandroom.wiring.dependencies import (
    get_business_timezone,
    get_clear_lottery_use_case,
    get_clock,
    get_notify_results_use_case,
    get_reconcile_lottery_use_case,
    get_run_lottery_use_case,
)

router = APIRouter()
logger = logging.getLogger(__name__)


def require_cron_key(key: str | None = Query(None)) -> None:
    if not settings.CRON_SECRET or not key or not hmac.compare_digest(key, settings.CRON_SECRET):
        raise HTTPException(status_code=401, detail="Unauthorized")


def _resolve_date(value: str | None, clock: Callable[[], datetime]) -> str:
    if value is None:
        return tomorrow_key(clock(), get_business_timezone())
    if parse_date_key(value) is None:
        raise HTTPException(status_code=400, detail="date must be YYYY-MM-DD")
    return value


@router.post("/lottery", response_model=LotteryRunResponseSchema, dependencies=[Depends(require_cron_key)])
def run_lottery(
    date: str | None = Query(None),
    uc: RunLotteryUseCase = Depends(get_run_lottery_use_case),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    target_date = _resolve_date(date, clock)
    try:
        result = uc.execute(target_date, now=clock())
    except StoreError as e:
        logger.exception("Lottery failed", extra={"target_date": target_date})
        raise HTTPException(status_code=500, detail=str(e))
    return LotteryRunResponseSchema(target_date=result.target_date, processed=result.processed, slots=result.slots)


@router.post(
    "/lottery/reconcile",
    response_model=ReconcileResponseSchema,
    dependencies=[Depends(require_cron_key)],
)
def reconcile_lottery(
    date: str | None = Query(None),
    uc: ReconcileLotteryUseCase = Depends(get_reconcile_lottery_use_case),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    target_date = _resolve_date(date, clock)
    try:
        updated = uc.execute(target_date)
    except StoreError as e:
        logger.exception("Reconcile failed", extra={"target_date": target_date})
        raise HTTPException(status_code=500, detail=str(e))
    return ReconcileResponseSchema(target_date=target_date, updated=updated)


@router.post("/notify", response_model=NotifyResponseSchema, dependencies=[Depends(require_cron_key)])
def notify_results(
    date: str | None = Query(None),
    uc: NotifyResultsUseCase = Depends(get_notify_results_use_case),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    target_date = _resolve_date(date, clock)
    try:
        result = uc.execute(target_date)
    except NotificationError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return NotifyResponseSchema(
        target_date=target_date,
        status=result.status,
        message=result.message,
        content=result.content,
    )


@router.post(
    "/lottery/clear",
    response_model=ClearLotteryResponseSchema,
    dependencies=[Depends(require_cron_key)],
)
def clear_lottery(
    date: str = Query(...),
    uc: ClearLotteryUseCase = Depends(get_clear_lottery_use_case),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    target_date = _resolve_date(date, clock)
    result = uc.execute(target_date)
    return ClearLotteryResponseSchema(
        target_date=result.target_date,
        bookings_cleared=result.bookings_cleared,
        result_deleted=result.result_deleted,
    )
