import math
import uuid
from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo

import structlog
from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.audit.service import audit
from app.core.emergencies import assignment, store
from app.core.emergencies.errors import (
    Forbidden, IncidentNotFound, ResponderNotEligible, ResponderNotFound, ValidationError,
)
from app.core.emergencies.models import Emergency, EmergencyNote, IncidentStatus, Priority, ReportMethod
from app.core.emergencies.routing import (
    USER_MODEL_ROLES, IncidentType, ResponderRole, is_eligible, parse_incident_type,
    responder_role_for_account, route,
)
from app.core.emergencies.schemas import Actor, CallOperatorReportCreate, GuestReportCreate
from app.core.emergencies.state_machine import can_update_status, parse_priority, parse_status, transition
from app.core.users.service import get_user
from app.db.base import utcnow
from app.settings import get_settings

logger = structlog.get_logger(__name__)

TITLE_LENGTH = 50

SORT_COLUMNS = {
    "createdAt": Emergency.created_at,
    "updatedAt": Emergency.updated_at,
    "timeReported": Emergency.time_reported,
    "timeOfIncident": Emergency.time_of_incident,
    "status": case({s.value: i for i, s in enumerate(IncidentStatus)}, value=Emergency.status),
    "priority": case({p.value: i for i, p in enumerate(Priority)}, value=Emergency.priority),
    "type": Emergency.type,
}


# ── Intake helpers ────────────────────────────────────────────────────────────

def make_title(description: str) -> str:
    if len(description) > TITLE_LENGTH:
        return description[:TITLE_LENGTH] + "..."
    return description


def _require(**fields) -> None:
    errors = {
        name: f"{name[0].upper()}{name[1:]} is required"
        for name, value in fields.items()
        if value is None or (isinstance(value, str) and not value.strip())
    }
    if errors:
        raise ValidationError("Please provide all required fields", errors=errors)


def _parse_clock(value: str) -> time:
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(value.strip(), fmt).time()
        except ValueError:
            continue
    raise ValidationError(errors={"time": "Time must be HH:MM"})


def combine_local(day: date, clock: str, tz: ZoneInfo) -> datetime:
    """Form date + wall-clock time in the park timezone, as UTC."""
    return datetime.combine(day, _parse_clock(clock), tzinfo=tz).astimezone(timezone.utc)


def _parse_forwarded_to(value: str, incident_type: IncidentType) -> ResponderRole:
    role = USER_MODEL_ROLES.get(value)
    if role is None:
        try:
            role = ResponderRole(value)
        except ValueError:
            raise ValidationError(errors={"forwardedTo": f"Unknown responder role '{value}'"})
    if not is_eligible(incident_type, role):
        raise ResponderNotEligible(f"{incident_type.value} emergencies cannot be forwarded to a {role.value}")
    return role


# ── Report intake ─────────────────────────────────────────────────────────────

async def report_incident(
    db: AsyncSession,
    data: GuestReportCreate | CallOperatorReportCreate,
    reporter: Actor | None = None,
    ip_address: str | None = None,
) -> Emergency:
    """Create an emergency in ``Reported``.

    ``reporter=None`` is the public form: every field including date and time
    is mandatory and the reporter stays anonymous. A call operator (or admin)
    reporter is stored as an account reference; the date/time default to now
    and an ``assignedOfficer`` is bound in the same transaction.
    """
    tz = ZoneInfo(get_settings().PARK_TIMEZONE)
    from_operator = reporter is not None and isinstance(data, CallOperatorReportCreate)

    if from_operator:
        _require(type=data.type, description=data.description, location=data.location)
    else:
        _require(
            type=data.type, description=data.description, location=data.location,
            date=data.incident_date, time=data.incident_time,
        )

    incident_type = parse_incident_type(data.type)
    category = route(incident_type).category
    now = utcnow()
    if data.incident_date and data.incident_time:
        time_of_incident = combine_local(data.incident_date, data.incident_time, tz)
    else:
        time_of_incident = now

    emergency = Emergency(
        type=incident_type.value,
        category=category,
        priority=Priority.MEDIUM.value,
        status=IncidentStatus.REPORTED.value,
        title=make_title(data.description.strip()),
        description=data.description.strip(),
        location=data.location.strip(),
        time_of_incident=time_of_incident,
        time_reported=now,
        report_method=ReportMethod.APP_FORM.value,
    )

    forwarded_role = None
    if from_operator:
        forwarded_role = _parse_forwarded_to(data.forwarded_to, incident_type) if data.forwarded_to else None
        emergency.priority = parse_priority(data.priority).value
        emergency.reporter_user_id = reporter.user_id
        emergency.call_operator_id = reporter.user_id
        emergency.guest_name = data.reporter_name
        emergency.guest_phone = data.reporter_phone
        emergency.guest_role = data.reporter_role or "Call Operator"
        emergency.is_direct_call = data.is_direct_call
        emergency.report_method = (ReportMethod.PHONE_CALL if data.is_direct_call else ReportMethod.APP_FORM).value
        emergency.forwarded_to = forwarded_role.value if forwarded_role else None

    db.add(emergency)
    await db.flush()

    if from_operator and data.assigned_officer:
        role = forwarded_role
        if role is None:
            officer = await get_user(db, data.assigned_officer)
            role = responder_role_for_account(officer.role) if officer else None
            if role is None:
                raise ResponderNotFound()
        await assignment.bind_responder(db, emergency, data.assigned_officer, role, reporter.user_id, now=now)

    await audit(
        db,
        user_id=reporter.user_id if reporter else None,
        action="emergency.report",
        resource_type="emergency",
        resource_id=str(emergency.id),
        detail={"type": incident_type.value, "category": category, "reportMethod": emergency.report_method},
        ip_address=ip_address or (reporter.ip_address if reporter else None),
    )
    logger.info(
        "emergency_reported",
        emergency_id=str(emergency.id),
        type=incident_type.value,
        category=category,
        reporter_id=str(reporter.user_id) if reporter else None,
    )
    return await store.reload(db, emergency.id)


# ── Reads ─────────────────────────────────────────────────────────────────────

async def get_incident(db: AsyncSession, emergency_id: uuid.UUID) -> Emergency:
    emergency = await store.get_emergency(db, emergency_id)
    if not emergency:
        raise IncidentNotFound()
    return emergency


async def list_incidents(
    db: AsyncSession,
    status: str | None = None,
    incident_type: str | None = None,
    priority: str | None = None,
    page: int = 1,
    limit: int = 10,
    sort_by: str = "createdAt",
    sort_order: str = "desc",
) -> tuple[list[Emergency], int]:
    filters = [Emergency.is_deleted == False]
    if status:
        filters.append(Emergency.status == parse_status(status).value)
    if incident_type:
        filters.append(Emergency.type == parse_incident_type(incident_type).value)
    if priority:
        filters.append(Emergency.priority == parse_priority(priority).value)

    column = SORT_COLUMNS.get(sort_by)
    if column is None:
        raise ValidationError(errors={"sortBy": f"Sort by one of: {', '.join(SORT_COLUMNS)}"})
    if sort_order not in ("asc", "desc"):
        raise ValidationError(errors={"sortOrder": "Sort order must be 'asc' or 'desc'"})
    ordering = column.desc() if sort_order == "desc" else column.asc()

    total = (await db.execute(select(func.count(Emergency.id)).where(*filters))).scalar_one()
    result = await db.execute(
        select(Emergency)
        .where(*filters)
        .order_by(ordering, Emergency.id)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


async def list_assigned(
    db: AsyncSession,
    responder_id: uuid.UUID,
    status: str | None = None,
    priority: str | None = None,
) -> list[Emergency]:
    q = select(Emergency).where(Emergency.assigned_to == responder_id, Emergency.is_deleted == False)
    if status:
        q = q.where(Emergency.status == parse_status(status).value)
    if priority:
        q = q.where(Emergency.priority == parse_priority(priority).value)
    result = await db.execute(q.order_by(Emergency.assigned_at.desc()))
    return list(result.scalars().all())


# ── Mutations ─────────────────────────────────────────────────────────────────

async def _append_note(db: AsyncSession, emergency: Emergency, note: str, actor: Actor) -> None:
    db.add(EmergencyNote(emergency_id=emergency.id, note=note, added_by=actor.user_id, added_at=utcnow()))


async def update_status(
    db: AsyncSession,
    emergency_id: uuid.UUID,
    actor: Actor,
    status: str | None = None,
    notes: str | None = None,
    assigned_to: uuid.UUID | None = None,
    priority: str | None = None,
) -> Emergency:
    """Full update used by dispatchers and officers.

    Reassignment runs first so a single call can bind a responder and move
    the emergency on. All enum values are validated before anything changes.
    """
    target = parse_status(status) if status else None
    new_priority = parse_priority(priority) if priority else None

    emergency = await get_incident(db, emergency_id)
    if not can_update_status(emergency, actor):
        raise Forbidden("Only the assigned responder, the creating call operator or an admin can update this emergency")

    before = emergency.status
    if assigned_to is not None:
        if not (actor.is_admin or actor.is_call_operator):
            raise Forbidden("Only dispatchers can reassign an emergency")
        responder = await get_user(db, assigned_to)
        role = responder_role_for_account(responder.role) if responder else None
        if role is None:
            raise ResponderNotFound()
        await assignment.bind_responder(db, emergency, assigned_to, role, actor.user_id)

    if new_priority is not None:
        emergency.priority = new_priority.value
    if target is not None:
        transition(emergency, target, actor)
    if notes and notes.strip():
        await _append_note(db, emergency, notes.strip(), actor)

    await store.save(db, emergency)
    await audit(
        db,
        user_id=actor.user_id,
        action="emergency.status",
        resource_type="emergency",
        resource_id=str(emergency.id),
        detail={"from": before, "to": emergency.status, "priority": emergency.priority, "path": "full"},
        ip_address=actor.ip_address,
    )
    logger.info(
        "emergency_status_updated",
        emergency_id=str(emergency.id),
        actor_id=str(actor.user_id),
        actor_role=actor.role.value,
        from_status=before,
        to_status=emergency.status,
    )
    return await store.reload(db, emergency.id)


async def update_status_simple(
    db: AsyncSession,
    emergency_id: uuid.UUID,
    status: str | None,
    actor: Actor,
) -> Emergency:
    """Officer path. Emergencies not assigned to the caller are invisible."""
    _require(status=status)
    target = parse_status(status)

    emergency = await store.get_emergency(db, emergency_id)
    if not emergency or not (actor.is_admin or emergency.assigned_to == actor.user_id):
        raise IncidentNotFound("Emergency not found or not assigned to you")

    before = emergency.status
    transition(emergency, target, actor)
    await store.save(db, emergency)
    await audit(
        db,
        user_id=actor.user_id,
        action="emergency.status",
        resource_type="emergency",
        resource_id=str(emergency.id),
        detail={"from": before, "to": emergency.status, "path": "simple"},
        ip_address=actor.ip_address,
    )
    logger.info(
        "emergency_status_updated",
        emergency_id=str(emergency.id),
        actor_id=str(actor.user_id),
        actor_role=actor.role.value,
        from_status=before,
        to_status=emergency.status,
    )
    return await store.reload(db, emergency.id)


async def assign(
    db: AsyncSession,
    emergency_id: uuid.UUID,
    user_id: uuid.UUID | None,
    user_model: str | None,
    actor: Actor,
) -> Emergency:
    if not user_id or not user_model:
        raise ValidationError("userId and userModel are required", errors={
            k: f"{k} is required" for k, v in (("userId", user_id), ("userModel", user_model)) if not v
        })
    role = USER_MODEL_ROLES.get(user_model)
    if role is None:
        raise ValidationError(f"Invalid userModel. Allowed: {', '.join(USER_MODEL_ROLES)}")

    emergency = await assignment.assign(db, emergency_id, user_id, role, actor.user_id)
    await audit(
        db,
        user_id=actor.user_id,
        action="emergency.assign",
        resource_type="emergency",
        resource_id=str(emergency.id),
        detail={"assignedTo": str(user_id), "assignedRole": role.value},
        ip_address=actor.ip_address,
    )
    return await store.reload(db, emergency.id)


def can_delete(emergency: Emergency, actor: Actor) -> bool:
    if actor.is_admin:
        return True
    if not actor.is_call_operator:
        return False
    owners = {emergency.reporter_user_id, emergency.call_operator_id} - {None}
    return actor.user_id in owners


async def delete_incident(db: AsyncSession, emergency_id: uuid.UUID, actor: Actor) -> None:
    emergency = await get_incident(db, emergency_id)
    if not can_delete(emergency, actor):
        raise Forbidden("You can only delete emergencies you created")
    emergency.is_deleted = True
    await store.save(db, emergency)
    await audit(
        db,
        user_id=actor.user_id,
        action="emergency.delete",
        resource_type="emergency",
        resource_id=str(emergency.id),
        detail={"status": emergency.status},
        ip_address=actor.ip_address,
    )
    logger.info("emergency_deleted", emergency_id=str(emergency.id), actor_id=str(actor.user_id))
