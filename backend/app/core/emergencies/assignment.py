import uuid
from datetime import datetime

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.emergencies import store
from app.core.emergencies.errors import IllegalTransition, IncidentNotFound, ResponderNotEligible, ResponderNotFound
from app.core.emergencies.models import Emergency, EmergencyAssignment, IncidentStatus
from app.core.emergencies.routing import RESPONDER_ACCOUNT_ROLES, IncidentType, ResponderRole, is_eligible, route
from app.core.emergencies.state_machine import ASSIGNABLE_STATUSES
from app.core.users.service import get_assignable_user
from app.db.base import utcnow

logger = structlog.get_logger(__name__)


async def bind_responder(
    db: AsyncSession,
    emergency: Emergency,
    responder_id: uuid.UUID,
    responder_role: ResponderRole,
    dispatcher_id: uuid.UUID | None,
    now: datetime | None = None,
) -> Emergency:
    incident_type = IncidentType(emergency.type)
    if not is_eligible(incident_type, responder_role):
        raise ResponderNotEligible(
            f"A {responder_role.value} cannot be assigned to a {incident_type.value} emergency",
            errors={"eligibleRoles": [r.value for r in route(incident_type).eligible_roles]},
        )

    status = IncidentStatus(emergency.status)
    if status not in ASSIGNABLE_STATUSES:
        raise IllegalTransition(f"Cannot assign a responder to an emergency that is '{status.value}'")

    responder = await get_assignable_user(db, responder_id, RESPONDER_ACCOUNT_ROLES[responder_role])
    if not responder:
        raise ResponderNotFound()

    now = now or utcnow()
    previous = emergency.assigned_to
    rebinding = previous != responder.id or emergency.assigned_role != responder_role.value

    emergency.assigned_at = now
    emergency.assigned_by = dispatcher_id
    if rebinding:
        emergency.assigned_to = responder.id
        emergency.assigned_role = responder_role.value
        db.add(EmergencyAssignment(
            emergency_id=emergency.id,
            assigned_to=responder.id,
            assigned_role=responder_role.value,
            assigned_by=dispatcher_id,
            assigned_at=now,
            replaced_user_id=previous,
        ))
    if status in (IncidentStatus.REPORTED, IncidentStatus.ACKNOWLEDGED):
        emergency.status = IncidentStatus.ASSIGNED.value

    await store.save(db, emergency)
    logger.info(
        "emergency_assigned",
        emergency_id=str(emergency.id),
        responder_id=str(responder.id),
        responder_role=responder_role.value,
        replaced=str(previous) if rebinding and previous else None,
        dispatcher_id=str(dispatcher_id) if dispatcher_id else None,
    )
    return emergency


async def assign(
    db: AsyncSession,
    emergency_id: uuid.UUID,
    responder_id: uuid.UUID,
    responder_role: ResponderRole,
    dispatcher_id: uuid.UUID | None,
) -> Emergency:
    emergency = await store.get_emergency(db, emergency_id)
    if not emergency:
        raise IncidentNotFound()
    return await bind_responder(db, emergency, responder_id, responder_role, dispatcher_id)


async def list_history(db: AsyncSession, emergency_id: uuid.UUID) -> list[EmergencyAssignment]:
    result = await db.execute(
        select(EmergencyAssignment)
        .where(EmergencyAssignment.emergency_id == emergency_id)
        .order_by(EmergencyAssignment.assigned_at.asc())
    )
    return list(result.scalars().all())
