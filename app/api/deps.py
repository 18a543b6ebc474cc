from app.core.config import settings
from app.core.db import get_session

__all__ = ["get_session", "get_valid_hours"]


def get_valid_hours() -> tuple[str, ...]:
    """Bookable hours loaded at startup; overridable for tests."""
    return tuple(settings.valid_hours)
