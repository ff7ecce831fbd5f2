import uuid
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError
from app.core.emergencies.errors import ConcurrentModification
from app.core.emergencies.models import Emergency


async def get_emergency(db: AsyncSession, emergency_id: uuid.UUID) -> Emergency | None:
    result = await db.execute(
        select(Emergency).where(Emergency.id == emergency_id, Emergency.is_deleted == False)
    )
    return result.scalar_one_or_none()


async def reload(db: AsyncSession, emergency_id: uuid.UUID) -> Emergency:
    """Re-read after a write so notes and store-managed columns are current."""
    result = await db.execute(
        select(Emergency)
        .where(Emergency.id == emergency_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def save(db: AsyncSession, emergency: Emergency) -> None:
    """Flush pending changes. The UPDATE matches only the version we loaded."""
    emergency_id, version = emergency.id, emergency.version
    try:
        await db.flush()
    except StaleDataError:
        raise ConcurrentModification(errors={"id": str(emergency_id), "expectedVersion": version})
