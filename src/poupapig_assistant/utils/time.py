import logging
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

PERIOD_CURRENT_MONTH = "current_month"
PERIOD_LAST_MONTH = "last_month"
PERIOD_WEEK = "week"
PERIOD_YEAR = "year"
PERIODS = (PERIOD_CURRENT_MONTH, PERIOD_LAST_MONTH, PERIOD_WEEK, PERIOD_YEAR)

MONTH_NAMES_PT = (
    "janeiro",
    "fevereiro",
    "março",
    "abril",
    "maio",
    "junho",
    "julho",
    "agosto",
    "setembro",
    "outubro",
    "novembro",
    "dezembro",
)


def safe_zoneinfo(tz_name: str) -> ZoneInfo:
    try:
        return ZoneInfo(tz_name)
    except Exception:
        logger.warning("Invalid timezone '%s'; defaulting to UTC.", tz_name)
        return ZoneInfo("UTC")


def to_local_time(tz_name: str, now_utc: datetime) -> datetime:
    return now_utc.astimezone(safe_zoneinfo(tz_name))


def local_now(tz_name: str) -> datetime:
    return to_local_time(tz_name, datetime.now(timezone.utc))


def start_of_month(moment: datetime) -> datetime:
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def resolve_period(period: str | None, now: datetime) -> tuple[datetime, datetime]:
    """Return the inclusive (start, end) range for a period tag.

    Unknown or missing tags resolve to the current month.
    """
    month_start = start_of_month(now)
    if period == PERIOD_LAST_MONTH:
        end = month_start - timedelta(microseconds=1)
        return start_of_month(end), end
    if period == PERIOD_WEEK:
        return now - timedelta(days=7), now
    if period == PERIOD_YEAR:
        return month_start.replace(month=1), now
    return month_start, now


def month_label(moment: datetime) -> str:
    return f"{MONTH_NAMES_PT[moment.month - 1]} de {moment.year}"
