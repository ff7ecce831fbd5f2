from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.emergencies.errors import ValidationError
from app.core.emergencies.models import Emergency, IncidentStatus, Priority
from app.core.emergencies.routing import IncidentType
from app.core.emergencies.schemas import PriorityBuckets, StatsRead, StatusBuckets
from app.db.base import utcnow
from app.settings import get_settings

logger = structlog.get_logger(__name__)

PERIODS = ("today", "week", "month")

STATUS_FIELDS = {
    IncidentStatus.REPORTED.value: "reported",
    IncidentStatus.ACKNOWLEDGED.value: "acknowledged",
    IncidentStatus.ASSIGNED.value: "assigned",
    IncidentStatus.IN_PROGRESS.value: "in_progress",
    IncidentStatus.RESOLVED.value: "resolved",
    IncidentStatus.CLOSED.value: "closed",
}
PRIORITY_FIELDS = {p.value: p.name.lower() for p in Priority}


def window_start(period: str, now: datetime, tz: ZoneInfo) -> datetime:
    """Start of the reporting window, in UTC.

    ``today`` starts at local midnight; ``week`` and ``month`` are rolling
    7 and 30 day windows.
    """
    if period == "today":
        local = now.astimezone(tz)
        midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
        return midnight.astimezone(timezone.utc)
    if period == "week":
        return (now - timedelta(days=7)).astimezone(timezone.utc)
    if period == "month":
        return (now - timedelta(days=30)).astimezone(timezone.utc)
    raise ValidationError(errors={"period": f"Period must be one of: {', '.join(PERIODS)}"})


async def _grouped(db: AsyncSession, column, filters) -> dict[str, int]:
    result = await db.execute(select(column, func.count(Emergency.id)).where(*filters).group_by(column))
    return {key: count for key, count in result.all()}


async def compute_stats(db: AsyncSession, period: str = "today", now: datetime | None = None) -> StatsRead:
    now = now or utcnow()
    since = window_start(period, now, ZoneInfo(get_settings().PARK_TIMEZONE))
    filters = [Emergency.is_deleted == False, Emergency.created_at >= since]

    by_status = await _grouped(db, Emergency.status, filters)
    by_priority = await _grouped(db, Emergency.priority, filters)
    by_type = await _grouped(db, Emergency.type, filters)

    durations = await db.execute(
        select(Emergency.response_started_at, Emergency.response_completed_at).where(
            *filters,
            Emergency.response_started_at.is_not(None),
            Emergency.response_completed_at.is_not(None),
        )
    )
    minutes = [(done - started).total_seconds() / 60 for started, done in durations.all()]

    stats = StatsRead(
        period=period,
        since=since,
        total=sum(by_status.values()),
        by_status=StatusBuckets(**{STATUS_FIELDS[k]: v for k, v in by_status.items() if k in STATUS_FIELDS}),
        by_priority=PriorityBuckets(**{PRIORITY_FIELDS[k]: v for k, v in by_priority.items() if k in PRIORITY_FIELDS}),
        by_type={t.value: by_type.get(t.value, 0) for t in IncidentType},
        average_response_minutes=round(sum(minutes) / len(minutes), 1) if minutes else None,
    )
    logger.debug("emergency_stats_computed", period=period, since=since.isoformat(), total=stats.total)
    return stats
