import uuid
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.users.models import AccountRole, AccountStatus, User

# Off-duty staff can still be dispatched; suspended accounts cannot.
ASSIGNABLE_STATUSES = (AccountStatus.ACTIVE.value, AccountStatus.INACTIVE.value)


async def create_user(
    db: AsyncSession,
    email: str,
    role: AccountRole,
    full_name: str | None = None,
    phone: str | None = None,
    status: AccountStatus = AccountStatus.ACTIVE,
) -> User:
    user = User(email=email.lower(), role=role.value, full_name=full_name, phone=phone, status=status.value)
    db.add(user)
    await db.flush()
    await db.refresh(user)
    return user


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id, User.is_deleted == False))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email.lower(), User.is_deleted == False))
    return result.scalar_one_or_none()


async def get_assignable_user(db: AsyncSession, user_id: uuid.UUID, role: AccountRole) -> User | None:
    result = await db.execute(
        select(User).where(
            User.id == user_id,
            User.role == role.value,
            User.status.in_(ASSIGNABLE_STATUSES),
            User.is_deleted == False,
        )
    )
    return result.scalar_one_or_none()
