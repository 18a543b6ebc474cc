import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_session, get_valid_hours
from app.api.schemas.appointment import NotFoundResponse, ValidationErrorResponse
from app.models.appointment import (
    Appointment,
    AppointmentInput,
    AppointmentPublic,
    AppointmentRead,
)
from app.services.appointment_service import (
    available_hours,
    create_appointment,
    delete_appointment,
    get_appointment,
    list_appointments,
    update_appointment,
)
from app.services.errors import AppointmentValidationError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/appointments", tags=["appointments"])

_NOT_FOUND = {status.HTTP_404_NOT_FOUND: {"model": NotFoundResponse}}
_INVALID = {status.HTTP_422_UNPROCESSABLE_ENTITY: {"model": ValidationErrorResponse}}


def _to_public(a: Appointment) -> AppointmentPublic:
    return AppointmentPublic(id=a.id, name=a.name, email=a.email, start=a.start)


def _to_read(a: Appointment) -> AppointmentRead:
    return AppointmentRead(
        id=a.id,
        name=a.name,
        email=a.email,
        start=a.start,
        created_at=a.created_at,
        updated_at=a.updated_at,
    )


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")


def _invalid(e: AppointmentValidationError) -> HTTPException:
    logger.info("Rejected appointment payload: %s", e.errors)
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={"message": str(e), "errors": e.errors},
    )


@router.get("", response_model=list[AppointmentPublic])
async def list_all_appointments(
    date_param: date | None = Query(None, alias="date"),
    session: AsyncSession = Depends(get_session),
) -> list[AppointmentPublic]:
    """List appointments, optionally only those starting on `date` (YYYY-MM-DD)."""
    appointments = await list_appointments(session, on_date=date_param)
    return [_to_public(a) for a in appointments]


@router.post(
    "",
    response_model=AppointmentRead,
    status_code=status.HTTP_201_CREATED,
    responses=_INVALID,
)
async def store_appointment(
    body: AppointmentInput,
    session: AsyncSession = Depends(get_session),
    valid_hours: tuple[str, ...] = Depends(get_valid_hours),
) -> AppointmentRead:
    try:
        appointment = await create_appointment(session, body, valid_hours)
    except AppointmentValidationError as e:
        raise _invalid(e) from e
    return _to_read(appointment)


@router.get("/{date_param}/hours", response_model=list[str])
async def list_available_hours(
    date_param: date,
    session: AsyncSession = Depends(get_session),
    valid_hours: tuple[str, ...] = Depends(get_valid_hours),
) -> list[str]:
    """Return the valid hours still bookable on the given date."""
    return await available_hours(session, date_param, valid_hours)


@router.get("/{appointment_id}", response_model=AppointmentPublic, responses=_NOT_FOUND)
async def show_appointment(
    appointment_id: int,
    session: AsyncSession = Depends(get_session),
) -> AppointmentPublic:
    appointment = await get_appointment(session, appointment_id)
    if not appointment:
        raise _not_found()
    return _to_public(appointment)


@router.api_route(
    "/{appointment_id}",
    methods=["PUT", "PATCH"],
    response_model=AppointmentRead,
    status_code=status.HTTP_202_ACCEPTED,
    responses={**_NOT_FOUND, **_INVALID},
)
async def modify_appointment(
    appointment_id: int,
    body: AppointmentInput,
    session: AsyncSession = Depends(get_session),
    valid_hours: tuple[str, ...] = Depends(get_valid_hours),
) -> AppointmentRead:
    try:
        appointment = await update_appointment(session, appointment_id, body, valid_hours)
    except AppointmentValidationError as e:
        raise _invalid(e) from e
    if not appointment:
        raise _not_found()
    return _to_read(appointment)


@router.delete(
    "/{appointment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=_NOT_FOUND,
)
async def destroy_appointment(
    appointment_id: int,
    session: AsyncSession = Depends(get_session),
) -> None:
    if not await delete_appointment(session, appointment_id):
        raise _not_found()
