import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .config import Settings, get_settings
from .db import Database
from .errors import register_exception_handlers
from .routers import recipes, users
from .storage import LocalImageStore

logger = logging.getLogger("foodblog")


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.db.create_all()
    app.state.images.ensure_directory()
    logger.info("Database ready at %s", app.state.db.engine.url.render_as_string(hide_password=True))
    yield
    app.state.db.dispose()
    logger.info("Database connections closed")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(title="Food Blog API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = Database(settings.database_url)
    app.state.images = LocalImageStore(settings.upload_dir)

    # Allow CORS for the frontend (restrict origins via FOODBLOG_CORS_ORIGINS)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(users.router)
    app.include_router(recipes.router)

    # Uploaded images are served under a stable public path
    app.mount(
        settings.images_path,
        StaticFiles(directory=settings.upload_dir, check_dir=False),
        name="images",
    )

    @app.get("/health")
    def health_check():
        return {"status": "ok"}

    return app
