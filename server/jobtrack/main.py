from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .db import dispose_engine
from .errors import register_exception_handlers
from .log_config import RequestIdMiddleware, setup_logging
from .routers import auth, calendar, inventory, positions, project_detail, projects, users


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting %s (env=%s)", settings.app_name, settings.environment)
    yield
    dispose_engine()
    logger.info("Database pool closed")


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(positions.router)
    app.include_router(projects.router)
    app.include_router(project_detail.router)
    app.include_router(inventory.router)
    app.include_router(calendar.router)
    app.include_router(users.router)

    @app.get("/api/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
