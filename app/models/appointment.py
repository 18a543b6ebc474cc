from datetime import datetime

from sqlmodel import Field, SQLModel


def local_naive_now() -> datetime:
    """Naive local time, matching how appointment starts are stored."""
    return datetime.now().replace(microsecond=0)


class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    id: int | None = Field(default=None, primary_key=True)
    name: str
    email: str
    start: datetime = Field(unique=True, index=True)  # one booking per slot
    created_at: datetime = Field(default_factory=local_naive_now)
    updated_at: datetime = Field(default_factory=local_naive_now)


class AppointmentInput(SQLModel):
    """Raw create/update payload. Checked by the service rules, not here,
    so every failing field can be reported together."""

    name: str | None = None
    email: str | None = None
    start: str | datetime | None = None


class AppointmentPublic(SQLModel):
    id: int
    name: str
    email: str
    start: datetime


class AppointmentRead(AppointmentPublic):
    created_at: datetime
    updated_at: datetime
