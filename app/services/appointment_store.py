from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.appointment import Appointment, local_naive_now
from app.services.errors import AppointmentValidationError

SLOT_TAKEN_MESSAGE = "The selected start has already been taken."


async def find_by_id(session: AsyncSession, appointment_id: int) -> Appointment | None:
    return await session.get(Appointment, appointment_id)


async def find_by_start(
    session: AsyncSession, start: datetime, exclude_id: int | None = None
) -> Appointment | None:
    q = select(Appointment).where(Appointment.start == start)
    if exclude_id is not None:
        q = q.where(Appointment.id != exclude_id)
    result = await session.execute(q)
    return result.scalars().first()


async def list_all(session: AsyncSession) -> list[Appointment]:
    result = await session.execute(select(Appointment).order_by(Appointment.id))
    return list(result.scalars().all())


async def list_in_range(
    session: AsyncSession, start_inclusive: datetime, end_inclusive: datetime
) -> list[Appointment]:
    result = await session.execute(
        select(Appointment)
        .where(
            Appointment.start >= start_inclusive,
            Appointment.start <= end_inclusive,
        )
        .order_by(Appointment.start)
    )
    return list(result.scalars().all())


async def _flush_or_slot_taken(session: AsyncSession) -> None:
    # The unique index on start is the last word on double bookings
    try:
        await session.flush()
    except IntegrityError as e:
        await session.rollback()
        raise AppointmentValidationError({"start": [SLOT_TAKEN_MESSAGE]}) from e


async def create(session: AsyncSession, fields: dict[str, Any]) -> Appointment:
    appointment = Appointment(**fields)
    session.add(appointment)
    await _flush_or_slot_taken(session)
    await session.refresh(appointment)
    return appointment


async def update(
    session: AsyncSession, appointment_id: int, fields: dict[str, Any]
) -> Appointment | None:
    appointment = await find_by_id(session, appointment_id)
    if not appointment:
        return None
    for key, value in fields.items():
        setattr(appointment, key, value)
    appointment.updated_at = local_naive_now()
    session.add(appointment)
    await _flush_or_slot_taken(session)
    await session.refresh(appointment)
    return appointment


async def delete(session: AsyncSession, appointment_id: int) -> bool:
    appointment = await find_by_id(session, appointment_id)
    if not appointment:
        return False
    await session.delete(appointment)
    await session.flush()
    return True
