from datetime import datetime

from app.core.emergencies.errors import Forbidden, IllegalTransition, InvalidPriority, InvalidStatus
from app.core.emergencies.models import Emergency, IncidentStatus, Priority
from app.core.emergencies.schemas import Actor
from app.db.base import utcnow

S = IncidentStatus

STATUS_ORDER: list[IncidentStatus] = list(IncidentStatus)

# Reported/Acknowledged -> In Progress is the officer shortcut that skips an
# explicit Acknowledged; it is still gated on having an assignee.
VALID_TRANSITIONS: dict[IncidentStatus, set[IncidentStatus]] = {
    S.REPORTED: {S.ACKNOWLEDGED, S.ASSIGNED, S.IN_PROGRESS},
    S.ACKNOWLEDGED: {S.ASSIGNED, S.IN_PROGRESS},
    S.ASSIGNED: {S.IN_PROGRESS},
    S.IN_PROGRESS: {S.RESOLVED},
    S.RESOLVED: {S.CLOSED},
    S.CLOSED: set(),
}

REQUIRES_ASSIGNEE = {S.ASSIGNED, S.IN_PROGRESS, S.RESOLVED, S.CLOSED}
ASSIGNABLE_STATUSES = {S.REPORTED, S.ACKNOWLEDGED, S.ASSIGNED, S.IN_PROGRESS}


def parse_status(value: str) -> IncidentStatus:
    try:
        return IncidentStatus(value)
    except ValueError:
        raise InvalidStatus(errors={"validStatuses": [s.value for s in IncidentStatus]})


def parse_priority(value: str) -> Priority:
    try:
        return Priority(value)
    except ValueError:
        raise InvalidPriority(errors={"validPriorities": [p.value for p in Priority]})


def status_index(status: IncidentStatus) -> int:
    return STATUS_ORDER.index(status)


def check_transition(current: IncidentStatus, target: IncidentStatus, has_assignee: bool) -> bool:
    """Validate ``current -> target``. Returns False for a same-status no-op."""
    if target == current:
        return False
    if target not in VALID_TRANSITIONS[current]:
        if current == S.CLOSED:
            raise IllegalTransition("Emergency is closed; no further transitions are allowed")
        if status_index(target) < status_index(current):
            raise IllegalTransition(f"Cannot move status back from '{current.value}' to '{target.value}'")
        raise IllegalTransition(f"Cannot transition from '{current.value}' to '{target.value}'")
    if target in REQUIRES_ASSIGNEE and not has_assignee:
        raise IllegalTransition(f"Cannot move to '{target.value}' before a responder is assigned")
    return True


def can_update_status(incident: Emergency, actor: Actor) -> bool:
    return (
        actor.is_admin
        or (incident.assigned_to is not None and incident.assigned_to == actor.user_id)
        or (incident.call_operator_id is not None and incident.call_operator_id == actor.user_id)
    )


def stamp(incident: Emergency, target: IncidentStatus, now: datetime) -> None:
    if target == S.ACKNOWLEDGED and incident.acknowledged_at is None:
        incident.acknowledged_at = now
    elif target == S.IN_PROGRESS:
        if incident.acknowledged_at is None:
            incident.acknowledged_at = now
        if incident.response_started_at is None:
            incident.response_started_at = now
    elif target in (S.RESOLVED, S.CLOSED):
        incident.response_completed_at = now


def transition(incident: Emergency, target: IncidentStatus, actor: Actor, now: datetime | None = None) -> bool:
    """Move ``incident`` to ``target`` in memory. The caller persists it.

    Returns False when the incident is already at ``target``.
    """
    if not can_update_status(incident, actor):
        raise Forbidden("Only the assigned responder, the creating call operator or an admin can update this emergency")
    changed = check_transition(IncidentStatus(incident.status), target, incident.assigned_to is not None)
    if changed:
        incident.status = target.value
        stamp(incident, target, now or utcnow())
    return changed
