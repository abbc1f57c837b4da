from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from errorkit.codes import COMMON_ERRORS
from errorkit.config import settings
from errorkit.integration import install
from errorkit.logging import get_logger
from errorkit.registry import ErrorCodes, build_catalog

logger = get_logger(__name__)

HEALTH_PATH = "/health"


def create_app(*registries: ErrorCodes) -> FastAPI:
    """Build a service app whose errors come from COMMON_ERRORS plus ``registries``.

    Building the catalog here is the single startup check that no two
    domains define the same code; a ConfigurationError aborts startup.
    """
    catalog = build_catalog(COMMON_ERRORS, *registries)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Startup: log the environment and the number of registered error codes."""
        logger.info(
            "service_started",
            environment=settings.environment,
            error_codes=len(catalog),
        )
        yield

    app = FastAPI(title=settings.service_name, lifespan=lifespan)
    app.state.error_catalog = catalog
    install(app, access_log_exclude=[HEALTH_PATH])

    @app.get(HEALTH_PATH)
    async def health() -> dict[str, str]:
        """Health check endpoint, used by load balancers and orchestrators."""
        return {"status": "ok"}

    return app


app = create_app()
