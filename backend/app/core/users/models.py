import enum
import uuid

from sqlalchemy import String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, TimestampMixin, SoftDeleteMixin


class AccountRole(str, enum.Enum):
    ADMIN = "admin"
    CALL_OPERATOR = "callOperator"
    VET = "vet"
    EMERGENCY_OFFICER = "emergencyOfficer"
    WILDLIFE_OFFICER = "wildlifeOfficer"
    TOUR_GUIDE = "tourGuide"
    SAFARI_DRIVER = "safariDriver"


class AccountStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class User(Base, TimestampMixin, SoftDeleteMixin):
    """Park staff account. Guests never get a row here."""
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    role: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default=AccountStatus.ACTIVE.value)
