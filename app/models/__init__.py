from app.models.appointment import Appointment, AppointmentInput, AppointmentPublic, AppointmentRead

__all__ = [
    "Appointment",
    "AppointmentInput",
    "AppointmentPublic",
    "AppointmentRead",
]
