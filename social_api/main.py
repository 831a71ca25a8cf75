import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from supabase import AsyncClient

from .auth import routers as auth_router
from .users import routers as user_router
from .posts import routers as post_router
from .follows import routers as follow_router
from .messages import routers as message_router

from .core.config import Settings
from .core.errors import register_exception_handlers
from .core.middleware import logging_middleware
from .core.supabase_client import create_supabase_client
from .utils.logging_config import setup_logging


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if app.state.supabase is None:
        app.state.supabase = await create_supabase_client(app.state.settings)
        logger.info("supabase_client_ready")
    yield


def create_app(
    settings: Optional[Settings] = None, supabase: Optional[AsyncClient] = None
) -> FastAPI:
    """
    Build the API.

    ``settings`` defaults to the environment; ``supabase`` defaults to a
    client created on startup. Tests pass both in.
    """
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level, settings.log_json)

    app = FastAPI(title="Social API", lifespan=lifespan)
    app.state.settings = settings
    app.state.supabase = supabase

    prefix = settings.api_prefix
    app.include_router(auth_router.router, prefix=f"{prefix}/auth", tags=["Authentication"])
    app.include_router(user_router.router, prefix=f"{prefix}/users", tags=["Users"])
    app.include_router(post_router.router, prefix=f"{prefix}/posts", tags=["Posts"])
    app.include_router(post_router.liked_router, prefix=f"{prefix}/liked-posts", tags=["Posts"])
    app.include_router(follow_router.router, prefix=f"{prefix}/follows", tags=["Follows"])
    app.include_router(message_router.router, prefix=f"{prefix}/messages", tags=["Messages"])

    register_exception_handlers(app)
    app.middleware("http")(logging_middleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    return app


def run():
    uvicorn.run("social_api.main:create_app", factory=True, host="0.0.0.0", port=5000)
