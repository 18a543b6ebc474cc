import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import appointments
from app.core.config import Settings, settings, _ENV_FILE
from app.core.db import init_db
from app.services.appointment_service import DAY_RANGE_END, hours_after_range_end

JSON_LOG_FORMAT = '{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s"}'


def logging_options(s: Settings) -> dict[str, Any]:
    """basicConfig kwargs: JSON lines at INFO in production, DEBUG otherwise."""
    if s.is_production:
        return {"level": logging.INFO, "format": JSON_LOG_FORMAT}
    return {"level": logging.DEBUG}


logging.basicConfig(**logging_options(settings))
logger = logging.getLogger(__name__)


def _log_startup() -> None:
    logger.info("Loading .env from: %s (exists: %s)", _ENV_FILE, _ENV_FILE.exists())
    logger.info("Valid hours: %s", ", ".join(settings.valid_hours))
    late_hours = hours_after_range_end(settings.valid_hours)
    if late_hours:
        logger.warning(
            "Valid hours %s are after %s and will never show up in per-date listings or as booked",
            ", ".join(late_hours),
            DAY_RANGE_END.isoformat(),
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    _log_startup()
    if settings.auto_create_tables:
        await init_db()
    yield


app = FastAPI(
    title="Appointments API",
    description="Book appointments on a fixed daily schedule of valid hours",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

app.include_router(appointments.router, prefix="/api/v1")


def _cors_headers(origin: str | None) -> dict[str, str]:
    """Add CORS headers to error responses so the browser doesn't block them."""
    headers = {
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": "GET, POST, PUT, PATCH, DELETE, OPTIONS",
        "Access-Control-Allow-Headers": "Authorization, Content-Type",
    }
    if origin and origin in settings.cors_origins_list:
        headers["Access-Control-Allow-Origin"] = origin
    elif settings.cors_origins_list:
        headers["Access-Control-Allow-Origin"] = settings.cors_origins_list[0]
    return headers


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the failure and return an opaque 500; include CORS so the browser does not block it."""
    origin = request.headers.get("origin")
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error"},
        headers=_cors_headers(origin),
    )


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}
