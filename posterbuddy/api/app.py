"""FastAPI app, CORS, and route registration."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Configure logging in the worker process (visible with uvicorn --reload)
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s: %(name)s: %(message)s",
)

from posterbuddy.api.routes import posters, rotation, settings
from posterbuddy.api.state import AppState
from posterbuddy.config import AppConfig, load_config
from posterbuddy.core.rotation import TimerFactory
from posterbuddy.core.store import PosterStore

__all__ = ["app", "create_app"]


def create_app(
    config: Optional[AppConfig] = None,
    *,
    store: Optional[PosterStore] = None,
    timer_factory: Optional[TimerFactory] = None,
) -> FastAPI:
    """Build the app. State (store, adapter, rotation) lives from startup to shutdown."""
    config = config or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        state = AppState(config, store=store, timer_factory=timer_factory)
        app.state.posterbuddy = state
        state.start()

        yield

        state.stop()

    app = FastAPI(
        title="Poster Buddy API",
        description="Poster kiosk rotation and poster management",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(posters.router, prefix="/api/posters", tags=["posters"])
    app.include_router(settings.router, prefix="/api/settings", tags=["settings"])
    app.include_router(rotation.router, prefix="/api/rotation", tags=["rotation"])
    return app


app = create_app()
