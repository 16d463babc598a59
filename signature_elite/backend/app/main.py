# backend/app/main.py
from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .db import init_db
from .logging_config import configure_logging

from .middleware.request_context import RequestContextMiddleware

from .routers.health import router as health_router
from .routers.properties import router as properties_router
from .routers.offers import router as offers_router
from .routers.users import router as users_router
from .routers.wishlist import router as wishlist_router
from .routers.reviews import router as reviews_router
from .routers.admin import router as admin_router

API_PREFIX = "/api"


def _cors_origins() -> list[str]:
    val = getattr(settings, "cors_allow_origins", ["*"])
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(val, list) and val:
        return val
    return ["*"]


@asynccontextmanager
async def lifespan(_app: FastAPI):
    init_db()
    yield


def create_app(*, configure_log: bool = True) -> FastAPI:
    if configure_log:
        configure_logging()

    app = FastAPI(
        title="Signature Elite Marketplace",
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.add_middleware(RequestContextMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router, prefix=API_PREFIX)

    # trust + transaction workflow
    app.include_router(users_router, prefix=API_PREFIX)
    app.include_router(properties_router, prefix=API_PREFIX)
    app.include_router(offers_router, prefix=API_PREFIX)

    # buyer interest
    app.include_router(wishlist_router, prefix=API_PREFIX)
    app.include_router(reviews_router, prefix=API_PREFIX)

    app.include_router(admin_router, prefix=API_PREFIX)
    return app


app = create_app()
