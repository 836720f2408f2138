from functools import lru_cache
import logging
from datetime import datetime
from typing import Callable
from zoneinfo import ZoneInfo

from bandroom.core.config import settings
from bandroom.application.ports.availability_store import AvailabilityStorePort
from bandroom.application.ports.booking_store import BookingStorePort
from bandroom.application.ports.lottery_store import LotteryResultStorePort
from bandroom.application.ports.message_platform import MessagePlatformPort
from bandroom.application.ports.notifier import NotifierPort
from bandroom.application.ports.session_store import SessionStorePort
from bandroom.application.use_cases.availability import AvailabilityConfigCache, AvailabilityPolicy
from bandroom.application.use_cases.freshness_guard import FreshnessGuard
from bandroom.application.use_cases.handle_incoming_event import HandleIncomingEventUseCase
from bandroom.application.use_cases.lottery import ClearLotteryUseCase, ReconcileLotteryUseCase, RunLotteryUseCase
from bandroom.application.use_cases.notify_results import NotifyResultsUseCase
from bandroom.application.use_cases.pagination import BookingPaginator
from bandroom.application.use_cases.reply_composer import ReplyComposer
from bandroom.application.use_cases.send_reply import SendReplyUseCase
from bandroom.application.use_cases.wizard import WizardStateMachine
from bandroom.infrastructure.band.band_client import BandNotifier
from bandroom.infrastructure.band.mock_notifier import MockNotifier
from bandroom.infrastructure.line.line_client import LineClient
from bandroom.infrastructure.line.line_platform import LinePlatform
from bandroom.infrastructure.line.mock_platform import MockLinePlatform
from bandroom.infrastructure.store.json_store import (
    JsonAvailabilityStore,
    JsonBookingStore,
    JsonLotteryResultStore,
    JsonSessionStore,
)
from bandroom.infrastructure.store.memory_store import (
    MemoryAvailabilityStore,
    MemoryBookingStore,
    MemoryLotteryResultStore,
    MemorySessionStore,
)


_session_store: SessionStorePort | None = None
_booking_store: BookingStorePort | None = None
_availability_store: AvailabilityStorePort | None = None
_lottery_store: LotteryResultStorePort | None = None
_config_cache: AvailabilityConfigCache | None = None


def _use_json_stores() -> bool:
    return settings.ENV.lower() in {"dev", "local"}


def get_session_store() -> SessionStorePort:
    global _session_store
    if _session_store is None:
        _session_store = JsonSessionStore(settings.DATA_DIR) if _use_json_stores() else MemorySessionStore()
    return _session_store


def get_booking_store() -> BookingStorePort:
    global _booking_store
    if _booking_store is None:
        _booking_store = JsonBookingStore(settings.DATA_DIR) if _use_json_stores() else MemoryBookingStore()
    return _booking_store


def get_availability_store() -> AvailabilityStorePort:
    global _availability_store
    if _availability_store is None:
        _availability_store = (
            JsonAvailabilityStore(settings.DATA_DIR) if _use_json_stores() else MemoryAvailabilityStore()
        )
    return _availability_store


def get_lottery_store() -> LotteryResultStorePort:
    global _lottery_store
    if _lottery_store is None:
        _lottery_store = (
            JsonLotteryResultStore(settings.DATA_DIR) if _use_json_stores() else MemoryLotteryResultStore()
        )
    return _lottery_store


@lru_cache
def get_business_timezone() -> ZoneInfo:
    return ZoneInfo(settings.BUSINESS_TIMEZONE)


def get_clock() -> Callable[[], datetime]:
    tz = get_business_timezone()
    return lambda: datetime.now(tz)


def get_config_cache() -> AvailabilityConfigCache:
    global _config_cache
    if _config_cache is None:
        _config_cache = AvailabilityConfigCache(
            store=get_availability_store(),
            ttl_seconds=settings.CONFIG_CACHE_TTL_SECONDS,
        )
    return _config_cache


def get_availability_policy() -> AvailabilityPolicy:
    return AvailabilityPolicy(
        cache=get_config_cache(),
        timezone=get_business_timezone(),
        cutoff_hour=settings.DATE_CUTOFF_HOUR,
        blackout_start_hour=settings.BLACKOUT_START_HOUR,
        blackout_end_hour=settings.BLACKOUT_END_HOUR,
        lookahead_days=settings.LOOKAHEAD_DAYS,
    )


@lru_cache
def get_line_platform() -> MessagePlatformPort:
    logger = logging.getLogger(__name__)
    logger.info(
        "LINE_CHANNEL_ACCESS_TOKEN present=%s len=%s",
        bool(settings.LINE_CHANNEL_ACCESS_TOKEN),
        len(settings.LINE_CHANNEL_ACCESS_TOKEN or ""),
    )

    if not settings.LINE_CHANNEL_ACCESS_TOKEN:
        if _use_json_stores():
            logger.info("Using MockLinePlatform (token missing, ENV=dev/local)")
            return MockLinePlatform()
        raise ValueError("LINE_CHANNEL_ACCESS_TOKEN is required to send LINE replies.")

    logger.info("Using real LinePlatform")
    client = LineClient(
        access_token=settings.LINE_CHANNEL_ACCESS_TOKEN,
        reply_endpoint=settings.LINE_REPLY_ENDPOINT,
    )
    return LinePlatform(client=client)


@lru_cache
def get_notifier() -> NotifierPort:
    if not (settings.BAND_ACCESS_TOKEN and settings.BAND_KEY):
        if _use_json_stores():
            logging.getLogger(__name__).info("Using MockNotifier (BAND credentials missing, ENV=dev/local)")
            return MockNotifier()
        raise ValueError("BAND_ACCESS_TOKEN and BAND_KEY are required to post notices.")
    return BandNotifier(
        access_token=settings.BAND_ACCESS_TOKEN,
        band_key=settings.BAND_KEY,
        post_endpoint=settings.BAND_POST_ENDPOINT,
    )


def get_wizard(composer: ReplyComposer | None = None) -> WizardStateMachine:
    composer = composer or ReplyComposer()
    sessions = get_session_store()
    bookings = get_booking_store()
    return WizardStateMachine(
        sessions=sessions,
        bookings=bookings,
        policy=get_availability_policy(),
        guard=FreshnessGuard(sessions=sessions, composer=composer, ttl_ms=settings.BUTTON_TTL_SECONDS * 1000),
        paginator=BookingPaginator(bookings=bookings, page_size=settings.LISTING_PAGE_SIZE),
        composer=composer,
        clock=get_clock(),
        session_timeout_ms=settings.SESSION_TIMEOUT_SECONDS * 1000,
    )


def get_handle_incoming_event_use_case() -> HandleIncomingEventUseCase:
    composer = ReplyComposer()
    return HandleIncomingEventUseCase(
        wizard=get_wizard(composer),
        send_reply=SendReplyUseCase(
            platform=get_line_platform(),
            auto_reply_enabled=settings.AUTO_REPLY_ENABLED,
        ),
        composer=composer,
    )


def get_run_lottery_use_case() -> RunLotteryUseCase:
    return RunLotteryUseCase(bookings=get_booking_store(), results=get_lottery_store())


def get_reconcile_lottery_use_case() -> ReconcileLotteryUseCase:
    return ReconcileLotteryUseCase(bookings=get_booking_store(), results=get_lottery_store())


def get_clear_lottery_use_case() -> ClearLotteryUseCase:
    return ClearLotteryUseCase(bookings=get_booking_store(), results=get_lottery_store())


def get_notify_results_use_case() -> NotifyResultsUseCase:
    return NotifyResultsUseCase(results=get_lottery_store(), notifier=get_notifier())
