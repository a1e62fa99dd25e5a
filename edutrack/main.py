"""FastAPI entry point: app factory, error rendering and startup schema setup."""

import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from edutrack.api.v1 import router as api_router
from edutrack.config import get_settings
from edutrack.db import Base, engine
from edutrack.errors import AppError, Internal, ValidationError
from edutrack.migrations import run_migrations
from edutrack.services.identity import SignedTokenVerifier
from edutrack.services.notifications import build_notifier
from edutrack.services.onboarding import RolePolicy

from edutrack.models import AttendanceRecord, Classroom, User, UserRequest  # noqa: F401

logger = logging.getLogger(__name__)


def _ensure_sqlite_dir(url: str) -> None:
    if not url.startswith("sqlite"):
        return
    database = engine.url.database
    if database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)


def _field_errors(exc: RequestValidationError) -> dict:
    fields = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        fields[".".join(loc) or "request"] = error.get("msg", "Invalid value")
    return fields


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        error = ValidationError.for_fields(_field_errors(exc))
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(Exception)
    def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        error = Internal()
        return JSONResponse(status_code=error.status_code, content=error.to_dict())


def create_app() -> FastAPI:
    """Application factory; tests build their own instance through it."""

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="EduTrack API", version="0.1.0")
    app.state.identity_verifier = SignedTokenVerifier(
        settings.identity_secret, settings.identity_token_ttl_hours
    )
    app.state.notifier = build_notifier(settings)
    app.state.role_policy = RolePolicy(settings.admin_emails, settings.admin_domains)

    register_error_handlers(app)
    app.include_router(api_router)

    @app.on_event("startup")
    def init_models() -> None:
        """Create tables, then apply SQL migrations for older databases."""

        _ensure_sqlite_dir(settings.database_url)
        Base.metadata.create_all(bind=engine)
        run_migrations(engine)
        logger.info("Database ready")

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
