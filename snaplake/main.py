from contextlib import asynccontextmanager
from pathlib import Path

from alembic import command
from alembic.config import Config
from fastapi import FastAPI

from snaplake.api.routes import health_router, query_router, snapshots_router, tables_router
from snaplake.core.config import settings
from snaplake.core.logging import get_logger
from snaplake.services.chunk_sessions import chunk_sessions

log = get_logger("snaplake")


def run_migrations() -> None:
    """Execute Alembic migrations programmatically on startup."""
    project_root = Path(__file__).resolve().parent.parent
    alembic_cfg = Config(str(project_root / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(project_root / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", settings.DATABASE_URL)
    log.info("Running Alembic migrations to head")
    command.upgrade(alembic_cfg, "head")
    log.info("Alembic migrations applied")


@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info(f"Starting application in {settings.ENV.upper()} mode")
    if settings.is_production:
        log.info("Production mode: Debug disabled, docs disabled, stricter logging")
    else:
        log.info("Development mode: Debug enabled, docs available")

    if settings.RUN_MIGRATIONS:
        try:
            run_migrations()
        except Exception:
            log.exception("Failed to apply migrations on startup")
            raise
    else:
        log.info("Skipping migrations (RUN_MIGRATIONS=false)")

    log.info(f"Object storage: {settings.S3_ENDPOINT} bucket={settings.S3_BUCKET}")

    yield

    # Open chunk sessions cannot survive a restart; their snapshots stay pending
    abandoned = chunk_sessions.open_ids()
    if abandoned:
        log.warning(f"Shutting down with {len(abandoned)} open chunked snapshots left pending: {abandoned}")
    log.info("Application shutdown complete")


app = FastAPI(
    title="Snaplake",
    description="Parquet snapshots of registered tables in object storage, queryable with DuckDB SQL",
    version="0.1.0",
    lifespan=lifespan,
    # Disable docs in production for security
    docs_url="/docs" if settings.docs_enabled else None,
    redoc_url="/redoc" if settings.docs_enabled else None,
    openapi_url="/openapi.json" if settings.docs_enabled else None,
    debug=settings.debug_enabled,
)


app.include_router(tables_router)
app.include_router(snapshots_router)
app.include_router(query_router)
app.include_router(health_router)
