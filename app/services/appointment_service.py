import logging
from collections.abc import Sequence
from datetime import date, datetime, time
from typing import Any

from pydantic import BaseModel, EmailStr, TypeAdapter, ValidationError, ValidationInfo, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import HOUR_FORMAT
from app.models.appointment import Appointment, AppointmentInput
from app.services import appointment_store
from app.services.appointment_store import SLOT_TAKEN_MESSAGE
from app.services.errors import AppointmentValidationError

logger = logging.getLogger(__name__)

# Appointments "in a date" start between these times (inclusive). The last
# configured valid hour must not be later than DAY_RANGE_END.
DAY_RANGE_START = time(0, 0, 0)
DAY_RANGE_END = time(23, 0, 0)

_start_adapter = TypeAdapter(datetime)


class ContactRules(BaseModel):
    name: str
    email: EmailStr

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("The name field is required.")
        return value


class AppointmentRules(ContactRules):
    """Contact rules plus a start that falls on a configured valid hour.

    The valid hours come in through the validation context.
    """

    start: datetime

    @field_validator("start")
    @classmethod
    def start_on_valid_hour(cls, value: datetime, info: ValidationInfo) -> datetime:
        value = _to_local_naive(value)
        valid_hours = (info.context or {}).get("valid_hours", ())
        # Slots are whole seconds; a fractional start would dodge the unique index
        if value.microsecond or value.strftime(HOUR_FORMAT) not in valid_hours:
            raise ValueError("The selected start is not a bookable hour.")
        return value


def _to_local_naive(value: datetime) -> datetime:
    """Starts are stored as naive local time."""
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def _validate(
    rules: type[ContactRules], fields: dict[str, Any], valid_hours: Sequence[str]
) -> dict[str, Any]:
    """Run `rules` over `fields`; report every failing field at once."""
    try:
        validated = rules.model_validate(fields, context={"valid_hours": valid_hours})
    except ValidationError as e:
        errors: dict[str, list[str]] = {}
        for err in e.errors():
            field = ".".join(str(part) for part in err["loc"]) or "__root__"
            errors.setdefault(field, []).append(err["msg"])
        raise AppointmentValidationError(errors) from e
    return validated.model_dump()


def _parse_start(value: Any) -> datetime | None:
    if value is None:
        return None
    try:
        return _to_local_naive(_start_adapter.validate_python(value))
    except ValidationError:
        return None


async def _ensure_slot_free(
    session: AsyncSession, start: datetime, exclude_id: int | None = None
) -> None:
    if await appointment_store.find_by_start(session, start, exclude_id=exclude_id):
        raise AppointmentValidationError({"start": [SLOT_TAKEN_MESSAGE]})


def hours_after_range_end(valid_hours: Sequence[str]) -> list[str]:
    """Configured hours that the per-date query would never see."""
    end = DAY_RANGE_END.strftime(HOUR_FORMAT)
    return [h for h in valid_hours if h > end]


async def list_appointments_in_date(session: AsyncSession, d: date) -> list[Appointment]:
    return await appointment_store.list_in_range(
        session,
        datetime.combine(d, DAY_RANGE_START),
        datetime.combine(d, DAY_RANGE_END),
    )


async def list_appointments(
    session: AsyncSession, on_date: date | None = None
) -> list[Appointment]:
    if on_date:
        return await list_appointments_in_date(session, on_date)
    return await appointment_store.list_all(session)


async def get_appointment(session: AsyncSession, appointment_id: int) -> Appointment | None:
    return await appointment_store.find_by_id(session, appointment_id)


async def create_appointment(
    session: AsyncSession, data: AppointmentInput, valid_hours: Sequence[str]
) -> Appointment:
    fields = _validate(AppointmentRules, data.model_dump(exclude_none=True), valid_hours)
    await _ensure_slot_free(session, fields["start"])
    appointment = await appointment_store.create(session, fields)
    logger.info("Appointment %s booked for %s", appointment.id, appointment.start)
    return appointment


async def update_appointment(
    session: AsyncSession,
    appointment_id: int,
    data: AppointmentInput,
    valid_hours: Sequence[str],
) -> Appointment | None:
    """Merge `data` over the stored appointment and persist it.

    When the resulting start equals the stored one the start rule is skipped,
    so other fields can be edited on a slot that is no longer configured.
    """
    appointment = await appointment_store.find_by_id(session, appointment_id)
    if not appointment:
        return None

    merged = {
        "name": appointment.name,
        "email": appointment.email,
        "start": appointment.start,
        **data.model_dump(exclude_unset=True),
    }
    merged = {k: v for k, v in merged.items() if v is not None}

    if _parse_start(merged.get("start")) == appointment.start:
        fields = _validate(ContactRules, merged, valid_hours)
    else:
        fields = _validate(AppointmentRules, merged, valid_hours)
        await _ensure_slot_free(session, fields["start"], exclude_id=appointment.id)

    updated = await appointment_store.update(session, appointment_id, fields)
    logger.info("Appointment %s updated", appointment_id)
    return updated


async def delete_appointment(session: AsyncSession, appointment_id: int) -> bool:
    deleted = await appointment_store.delete(session, appointment_id)
    if deleted:
        logger.info("Appointment %s deleted", appointment_id)
    return deleted


async def available_hours(
    session: AsyncSession,
    d: date,
    valid_hours: Sequence[str],
    now: datetime | None = None,
) -> list[str]:
    """Valid hours on `d` that are not booked and, if `d` is today, still ahead of `now`.

    Past dates are not rejected: they only lose their booked hours.
    """
    appointments = await list_appointments_in_date(session, d)
    hours = list(valid_hours)

    # Remove booked hours; bookings outside the configured hours are ignored
    for appointment in appointments:
        booked = appointment.start.strftime(HOUR_FORMAT)
        if booked in hours:
            hours.remove(booked)

    now = now or datetime.now()
    if d == now.date():
        current = now.strftime(HOUR_FORMAT)
        hours = [h for h in hours if h > current]

    logger.debug("Available hours on %s: %s", d.isoformat(), hours)
    return hours
