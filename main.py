from contextlib import asynccontextmanager

from dishka import AsyncContainer
from dishka.integrations.fastapi import setup_dishka
from fastapi import FastAPI

from activity.alias_cache import AliasCache
from activity.repositories import RedisWalletRepository
from activity.router import router as activity_router
from core.exception_handler import register_exception_handlers

SERVICE_NAME = "Account Activity Sync"
SERVICE_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Warm up stateful services on startup and release them on shutdown.

    Resolving the alias cache seeds it from Redis and arms its sweep;
    closing the container stops the sweep and the Redis client.
    """
    container = app.state.dishka_container
    await container.get(RedisWalletRepository, component="activity")
    await container.get(AliasCache, component="activity")
    yield
    await container.close()


def create_app(container: AsyncContainer) -> FastAPI:
    """
    Build the HTTP application around a container.

    Parameters
    ----------
    container : AsyncContainer
        Container from ``core.container.build_container``

    Returns
    -------
    FastAPI
        Configured application
    """
    app = FastAPI(
        title=SERVICE_NAME,
        version=SERVICE_VERSION,
        description="Wallet account activity synchronization",
        lifespan=lifespan,
    )

    setup_dishka(container, app)
    register_exception_handlers(app)
    app.include_router(activity_router)

    @app.get("/")
    async def root():
        """
        Root endpoint.

        Returns
        -------
        dict
            Application information
        """
        return {
            "name": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "endpoints": {
                "sync": "/api/activity/sync",
                "alias": "/api/activity/alias/{address}",
                "notifications": "/api/activity/notifications",
                "docs": "/docs"
            }
        }

    @app.get("/health")
    async def health():
        """
        Health check endpoint.

        Returns
        -------
        dict
            Health status
        """
        return {"status": "healthy", "version": SERVICE_VERSION}

    return app
