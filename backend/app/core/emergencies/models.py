import enum
import uuid
from datetime import datetime
from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.base import Base, TimestampMixin, SoftDeleteMixin, utcnow


class IncidentStatus(str, enum.Enum):
    REPORTED = "Reported"
    ACKNOWLEDGED = "Acknowledged"
    ASSIGNED = "Assigned"
    IN_PROGRESS = "In Progress"
    RESOLVED = "Resolved"
    CLOSED = "Closed"


class Priority(str, enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class ReportMethod(str, enum.Enum):
    APP_FORM = "App Form"
    PHONE_CALL = "Phone Call"


class Emergency(Base, TimestampMixin, SoftDeleteMixin):
    """
    A field-reported incident.
    status flow: Reported -> Acknowledged -> Assigned -> In Progress -> Resolved -> Closed

    Reporter model:
      reporter_user_id: call-operator account that logged it, NULL for the public form
      guest_*: free-text details of whoever raised the alarm

    Every UPDATE is conditional on ``version`` (mapper version_id_col).
    """
    __tablename__ = "emergencies"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default=Priority.MEDIUM.value)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default=IncidentStatus.REPORTED.value, index=True)
    title: Mapped[str] = mapped_column(String(60), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    time_of_incident: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    time_reported: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    # Reporter
    reporter_user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    guest_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    guest_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    guest_role: Mapped[str | None] = mapped_column(String(100), nullable=True)
    report_method: Mapped[str] = mapped_column(String(20), nullable=False, default=ReportMethod.APP_FORM.value)
    is_direct_call: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    forwarded_to: Mapped[str | None] = mapped_column(String(50), nullable=True)
    # Current assignment
    assigned_to: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    assigned_role: Mapped[str | None] = mapped_column(String(50), nullable=True)
    assigned_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    assigned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    call_operator_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    # Response timeline
    acknowledged_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    response_started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    response_completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    notes: Mapped[list["EmergencyNote"]] = relationship(
        back_populates="emergency", lazy="selectin", order_by="EmergencyNote.added_at",
    )

    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (
        Index("ix_emergencies_assigned_to_assigned_at", "assigned_to", "assigned_at"),
        Index("ix_emergencies_created_at", "created_at"),
    )


class EmergencyNote(Base):
    """Admin note. Rows are only ever inserted."""
    __tablename__ = "emergency_notes"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    emergency_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("emergencies.id", ondelete="CASCADE"), nullable=False, index=True)
    note: Mapped[str] = mapped_column(Text, nullable=False)
    is_private: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    added_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    added_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    emergency: Mapped["Emergency"] = relationship(back_populates="notes")


class EmergencyAssignment(Base):
    """One row per responder binding, oldest first. Never updated."""
    __tablename__ = "emergency_assignments"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    emergency_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("emergencies.id", ondelete="CASCADE"), nullable=False, index=True)
    assigned_to: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    assigned_role: Mapped[str] = mapped_column(String(50), nullable=False)
    assigned_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    assigned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    replaced_user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
