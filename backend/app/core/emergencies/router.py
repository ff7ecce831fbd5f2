import uuid
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.audit.service import client_ip
from app.core.emergencies import assignment, service, stats
from app.core.emergencies.schemas import (
    Actor, ApiListResponse, ApiResponse, AssignmentHistoryRead, AssignRequest,
    CallOperatorReportCreate, EmergencyRead, GuestReportCreate, Pagination,
    SimpleStatusUpdate, StatsRead, StatusUpdate,
)
from app.core.users.models import AccountRole as R
from app.dependencies import get_db, require_roles
from app.settings import get_settings

settings = get_settings()

router = APIRouter(prefix="/emergencies", tags=["emergencies"])

dispatchers = require_roles(R.CALL_OPERATOR, R.ADMIN)
desk = require_roles(R.CALL_OPERATOR, R.ADMIN, R.EMERGENCY_OFFICER)
responders = require_roles(R.EMERGENCY_OFFICER, R.VET, R.WILDLIFE_OFFICER, R.ADMIN)


@router.post("/report", response_model=ApiResponse[EmergencyRead], status_code=201)
async def report_emergency(
    data: GuestReportCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    emergency = await service.report_incident(db, data, ip_address=client_ip(request))
    return ApiResponse(message="Emergency reported successfully", data=EmergencyRead.from_model(emergency))


@router.post("/call-operator", response_model=ApiResponse[EmergencyRead], status_code=201)
async def log_emergency(
    data: CallOperatorReportCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(dispatchers),
):
    emergency = await service.report_incident(db, data, reporter=actor)
    return ApiResponse(message="Emergency logged successfully", data=EmergencyRead.from_model(emergency))


@router.get("/stats", response_model=ApiResponse[StatsRead])
async def emergency_stats(
    period: str = "today",
    db: AsyncSession = Depends(get_db),
    _: Actor = Depends(desk),
):
    return ApiResponse(data=await stats.compute_stats(db, period))


@router.get("/assigned", response_model=ApiListResponse[EmergencyRead])
async def assigned_emergencies(
    status: str | None = None,
    priority: str | None = None,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(responders),
):
    items = await service.list_assigned(db, actor.user_id, status=status, priority=priority)
    return ApiListResponse(
        message="Assigned emergencies retrieved successfully",
        data=[EmergencyRead.from_model(e) for e in items],
    )


@router.get("", response_model=ApiListResponse[EmergencyRead])
async def list_emergencies(
    status: str | None = None,
    type: str | None = None,
    priority: str | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    db: AsyncSession = Depends(get_db),
    _: Actor = Depends(desk),
):
    items, total = await service.list_incidents(
        db, status=status, incident_type=type, priority=priority,
        page=page, limit=limit, sort_by=sort_by, sort_order=sort_order,
    )
    return ApiListResponse(
        data=[EmergencyRead.from_model(e) for e in items],
        pagination=Pagination(current=page, pages=service.page_count(total, limit), total=total),
    )


@router.get("/{emergency_id}", response_model=ApiResponse[EmergencyRead])
async def get_emergency(
    emergency_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _: Actor = Depends(desk),
):
    return ApiResponse(data=EmergencyRead.from_model(await service.get_incident(db, emergency_id)))


@router.get("/{emergency_id}/assignments", response_model=ApiListResponse[AssignmentHistoryRead])
async def assignment_history(
    emergency_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _: Actor = Depends(desk),
):
    await service.get_incident(db, emergency_id)
    rows = await assignment.list_history(db, emergency_id)
    return ApiListResponse(data=[AssignmentHistoryRead.model_validate(r) for r in rows])


@router.put("/{emergency_id}/status", response_model=ApiResponse[EmergencyRead])
async def update_status(
    emergency_id: uuid.UUID,
    data: StatusUpdate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(desk),
):
    emergency = await service.update_status(
        db, emergency_id, actor,
        status=data.status, notes=data.notes, assigned_to=data.assigned_to, priority=data.priority,
    )
    return ApiResponse(message="Emergency updated successfully", data=EmergencyRead.from_model(emergency))


@router.put("/{emergency_id}/status-simple", response_model=ApiResponse[EmergencyRead])
async def update_status_simple(
    emergency_id: uuid.UUID,
    data: SimpleStatusUpdate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(responders),
):
    emergency = await service.update_status_simple(db, emergency_id, data.status, actor)
    return ApiResponse(message="Emergency status updated successfully", data=EmergencyRead.from_model(emergency))


@router.put("/{emergency_id}/assign", response_model=ApiResponse[EmergencyRead])
async def assign_emergency(
    emergency_id: uuid.UUID,
    data: AssignRequest,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(dispatchers),
):
    emergency = await service.assign(db, emergency_id, data.user_id, data.user_model, actor)
    return ApiResponse(message="Emergency assigned successfully", data=EmergencyRead.from_model(emergency))


@router.delete("/{emergency_id}", response_model=ApiResponse[None])
async def delete_emergency(
    emergency_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(dispatchers),
):
    await service.delete_incident(db, emergency_id, actor)
    return ApiResponse(message="Emergency deleted successfully")
