import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.core.users.models import AccountRole

if TYPE_CHECKING:
    from app.core.emergencies.models import Emergency

T = TypeVar("T")


@dataclass(frozen=True)
class Actor:
    """Who is calling the dispatch service. Built from the verified token."""
    user_id: uuid.UUID
    role: AccountRole
    ip_address: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == AccountRole.ADMIN

    @property
    def is_call_operator(self) -> bool:
        return self.role == AccountRole.CALL_OPERATOR


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ── Requests ──────────────────────────────────────────────────────────────────

class GuestReportCreate(CamelModel):
    # Required-ness is checked by the service so every missing field is reported at once
    type: str | None = None
    description: str | None = None
    location: str | None = None
    incident_date: date | None = Field(default=None, alias="date")
    incident_time: str | None = Field(default=None, alias="time")


class CallOperatorReportCreate(CamelModel):
    type: str | None = None
    description: str | None = None
    location: str | None = None
    priority: str = "Medium"
    reporter_name: str | None = None
    reporter_phone: str | None = None
    reporter_role: str | None = None
    assigned_officer: uuid.UUID | None = None
    forwarded_to: str | None = None
    is_direct_call: bool = False
    incident_date: date | None = Field(default=None, alias="date")
    incident_time: str | None = Field(default=None, alias="time")


class StatusUpdate(CamelModel):
    status: str | None = None
    notes: str | None = None
    assigned_to: uuid.UUID | None = None
    priority: str | None = None


class SimpleStatusUpdate(CamelModel):
    status: str | None = None


class AssignRequest(CamelModel):
    user_id: uuid.UUID | None = None
    user_model: str | None = None


# ── Responses ─────────────────────────────────────────────────────────────────

class ReporterRead(CamelModel):
    user_id: uuid.UUID | None
    guest_name: str | None
    guest_phone: str | None
    guest_role: str | None
    report_method: str
    is_direct_call: bool


class AssignmentRead(CamelModel):
    assigned_to: uuid.UUID | None
    assigned_role: str | None
    assigned_by: uuid.UUID | None
    assigned_at: datetime | None
    call_operator: uuid.UUID | None


class ResponseTimeline(CamelModel):
    acknowledged_at: datetime | None
    response_started_at: datetime | None
    response_completed_at: datetime | None
    elapsed_minutes: float | None


class NoteRead(CamelModel):
    note: str
    added_at: datetime
    is_private: bool
    added_by: uuid.UUID | None


class AssignmentHistoryRead(CamelModel):
    assigned_to: uuid.UUID | None
    assigned_role: str
    assigned_by: uuid.UUID | None
    assigned_at: datetime
    replaced_user_id: uuid.UUID | None


class EmergencyRead(CamelModel):
    id: uuid.UUID
    type: str
    category: str
    priority: str
    status: str
    title: str
    description: str
    location: str
    time_of_incident: datetime
    time_reported: datetime
    forwarded_to: str | None
    reporter: ReporterRead
    assignment: AssignmentRead
    response: ResponseTimeline
    admin_notes: list[NoteRead]
    version: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, e: "Emergency") -> "EmergencyRead":
        elapsed = None
        if e.response_started_at and e.response_completed_at:
            elapsed = round((e.response_completed_at - e.response_started_at).total_seconds() / 60, 1)
        return cls(
            id=e.id,
            type=e.type,
            category=e.category,
            priority=e.priority,
            status=e.status,
            title=e.title,
            description=e.description,
            location=e.location,
            time_of_incident=e.time_of_incident,
            time_reported=e.time_reported,
            forwarded_to=e.forwarded_to,
            reporter=ReporterRead(
                user_id=e.reporter_user_id,
                guest_name=e.guest_name,
                guest_phone=e.guest_phone,
                guest_role=e.guest_role,
                report_method=e.report_method,
                is_direct_call=e.is_direct_call,
            ),
            assignment=AssignmentRead(
                assigned_to=e.assigned_to,
                assigned_role=e.assigned_role,
                assigned_by=e.assigned_by,
                assigned_at=e.assigned_at,
                call_operator=e.call_operator_id,
            ),
            response=ResponseTimeline(
                acknowledged_at=e.acknowledged_at,
                response_started_at=e.response_started_at,
                response_completed_at=e.response_completed_at,
                elapsed_minutes=elapsed,
            ),
            admin_notes=[NoteRead.model_validate(n) for n in e.notes],
            version=e.version,
            created_at=e.created_at,
            updated_at=e.updated_at,
        )


class StatusBuckets(CamelModel):
    reported: int = 0
    acknowledged: int = 0
    assigned: int = 0
    in_progress: int = 0
    resolved: int = 0
    closed: int = 0


class PriorityBuckets(CamelModel):
    low: int = 0
    medium: int = 0
    high: int = 0
    critical: int = 0


class StatsRead(CamelModel):
    period: str
    since: datetime
    total: int = 0
    by_status: StatusBuckets = Field(default_factory=StatusBuckets)
    by_priority: PriorityBuckets = Field(default_factory=PriorityBuckets)
    by_type: dict[str, int] = Field(default_factory=dict)
    average_response_minutes: float | None = None


class Pagination(BaseModel):
    current: int
    pages: int
    total: int


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    message: str | None = None
    data: T | None = None


class ApiListResponse(BaseModel, Generic[T]):
    success: bool = True
    message: str | None = None
    data: list[T]
    pagination: Pagination | None = None
