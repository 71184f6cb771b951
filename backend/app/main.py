"""sbsh FastAPI application entry point."""

from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI

from app.api.routes import health, mcp
from app.core.config import KNOWN_FEATURES, Settings, settings
from app.core.errors import DataAccessError
from app.core.logging_config import configure_logging, redact_dsn
from app.core.metrics import app_info
from app.core.middleware import ObservabilityMiddleware
from app.core.postgres import get_postgres_client

configure_logging()

logger = structlog.stdlib.get_logger("sbsh.main")


def create_app(app_settings: Settings = settings) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup/shutdown lifecycle events."""
        app_info.info({"version": "0.1.0", "env": app_settings.app_env})
        logger.info(
            "sbsh_starting",
            port=app_settings.port,
            features=sorted(app_settings.features),
            read_only=app_settings.read_only,
            pg_dsn=redact_dsn(app_settings.pg_dsn),
            postgrest_url=app_settings.postgrest_url,
        )
        unknown = app_settings.features - KNOWN_FEATURES
        if unknown:
            logger.warning("unknown_features_ignored", features=sorted(unknown))

        postgres = get_postgres_client(app_settings)
        try:
            await postgres.create_pool()
        except DataAccessError as exc:
            # Pool is created on first use instead
            logger.warning("postgres_pool_deferred", reason=exc.message)
        app.state.postgres = postgres

        yield

        await postgres.close_pool()

    app = FastAPI(
        title="sbsh",
        description="Self-hosted Postgres tool server — schema digest, guarded SQL, RLS passthrough",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = app_settings

    app.add_middleware(ObservabilityMiddleware)

    app.include_router(health.router, tags=["health"])
    app.include_router(mcp.router, tags=["mcp"])
    return app


app = create_app()


def run() -> None:
    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
