import asyncio
import logging
from typing import Optional

from fastapi import Depends, FastAPI
from contextlib import asynccontextmanager
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from movieseat.core.config import Settings, get_settings
from movieseat.db.init_db import create_database, create_tables, ensure_initial_admin
from movieseat.db.session import build_engine, build_session_factory, get_db
from movieseat.api.exception_handlers import register_exception_handlers
from movieseat.api.v1.router import api_router
from movieseat.schemas.common import HealthResponse
from movieseat.services.coordinator import ReservationCoordinator

logger = logging.getLogger(__name__)


def run_consistency_audit(session_factory) -> int:
    """Audit every showtime once; returns how many showtimes had findings."""
    db = session_factory()
    try:
        findings = ReservationCoordinator(db).audit_all()
    finally:
        db.close()
    for showtime_id, result in findings.items():
        logger.warning(
            "Function %s out of step with its reservations: orphaned=%s unheld=%s",
            showtime_id, result["orphaned"], result["unheld"],
        )
    return len(findings)


async def _consistency_audit_loop(session_factory, interval: int) -> None:
    """Background task: compare seat maps with the ledger every `interval` seconds."""
    while True:
        try:
            await asyncio.to_thread(run_consistency_audit, session_factory)
        except Exception:
            logger.exception("Error during consistency audit.")
        await asyncio.sleep(interval)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings

    # Startup: Ensure DB exists, create tables and the bootstrap admin
    create_database(settings)
    create_tables(app.state.engine)
    db = app.state.session_factory()
    try:
        ensure_initial_admin(db, settings)
    finally:
        db.close()

    audit_task = None
    if settings.CONSISTENCY_AUDIT_INTERVAL_SECONDS > 0:
        audit_task = asyncio.create_task(
            _consistency_audit_loop(app.state.session_factory, settings.CONSISTENCY_AUDIT_INTERVAL_SECONDS)
        )
    yield

    # Shutdown: cancel background task
    if audit_task is not None:
        audit_task.cancel()
        try:
            await audit_task
        except asyncio.CancelledError:
            pass
    app.state.engine.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = build_engine(settings.assemble_db_url(), timeout_ms=settings.RESERVATION_TIMEOUT_MS)
    app.state.session_factory = build_session_factory(app.state.engine)

    # Set all CORS enabled origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(api_router, prefix=settings.API_V1_STR)

    @app.get("/")
    def read_root():
        return {"Hello": settings.PROJECT_NAME}

    @app.get("/health", response_model=HealthResponse)
    def health(db: Session = Depends(get_db)):
        try:
            db.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            logger.error("Health check failed: %s", exc)
            return HealthResponse(status="degraded", database="unreachable", error=str(exc))
        return HealthResponse(status="ok", database="reachable")

    return app


app = create_app()
