import uuid
from types import SimpleNamespace

import pytest
import pytest_asyncio
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool

from app.core.audit.models import AuditLog  # noqa
from app.core.emergencies.models import Emergency, EmergencyAssignment, EmergencyNote  # noqa
from app.core.emergencies.schemas import Actor
from app.core.users.models import AccountRole, AccountStatus, User
from app.db.base import Base

STAFF = {
    "admin": (AccountRole.ADMIN, AccountStatus.ACTIVE),
    "operator": (AccountRole.CALL_OPERATOR, AccountStatus.ACTIVE),
    "other_operator": (AccountRole.CALL_OPERATOR, AccountStatus.ACTIVE),
    "officer": (AccountRole.EMERGENCY_OFFICER, AccountStatus.ACTIVE),
    "other_officer": (AccountRole.EMERGENCY_OFFICER, AccountStatus.ACTIVE),
    "off_duty_officer": (AccountRole.EMERGENCY_OFFICER, AccountStatus.INACTIVE),
    "suspended_officer": (AccountRole.EMERGENCY_OFFICER, AccountStatus.SUSPENDED),
    "vet": (AccountRole.VET, AccountStatus.ACTIVE),
    "ranger": (AccountRole.WILDLIFE_OFFICER, AccountStatus.ACTIVE),
    "guide": (AccountRole.TOUR_GUIDE, AccountStatus.ACTIVE),
}


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "dispatch.db"
    engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(engine)
    engine.dispose()
    return path


@pytest.fixture
def staff(db_path) -> SimpleNamespace:
    """One committed account per name in STAFF, exposed as ``staff.<name>`` ids."""
    engine = create_engine(f"sqlite:///{db_path}")
    ids = {}
    with Session(engine) as session:
        for name, (role, status) in STAFF.items():
            user = User(
                id=uuid.uuid4(),
                email=f"{name}@wildpark.test",
                full_name=name.replace("_", " ").title(),
                role=role.value,
                status=status.value,
            )
            session.add(user)
            ids[name] = user.id
        session.commit()
    engine.dispose()
    return SimpleNamespace(**ids)


@pytest.fixture
def actors(staff) -> SimpleNamespace:
    return SimpleNamespace(**{
        name: Actor(user_id=getattr(staff, name), role=STAFF[name][0])
        for name in STAFF
    })


@pytest_asyncio.fixture
async def session_factory(db_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    yield async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory, staff):
    async with session_factory() as session:
        yield session
