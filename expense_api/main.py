import logging
import time
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from .config import DEV_JWT_SECRET, Settings, settings as default_settings
from .core.errors import register_exception_handlers
from .core.rate_limit import FixedWindowRateLimiter, rate_limit_middleware
from .database import init_db
from .routers import auth as auth_router
from .routers import categories as categories_router
from .routers import expenses as expenses_router

logger = logging.getLogger("expense_api")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Expense Tracker API",
        version="1.0.0",
        docs_url="/api/docs",
        redoc_url=None,
    )
    started = time.monotonic()

    if settings.rate_limit_enabled:
        limiter = FixedWindowRateLimiter(
            max_requests=settings.rate_limit_max_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
        app.middleware("http")(rate_limit_middleware(limiter))

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        begin = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - begin) * 1000
        logger.info("%s %s -> %s (%.1f ms)", request.method, request.url.path, response.status_code, elapsed_ms)
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    @app.on_event("startup")
    def on_startup():
        if settings.jwt_secret == DEV_JWT_SECRET:
            logger.warning("JWT_SECRET is not set; using the development signing key")
        init_db()

    @app.get("/health")
    def health():
        return {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": round(time.monotonic() - started, 3),
        }

    app.include_router(auth_router.router)
    app.include_router(categories_router.router)
    app.include_router(expenses_router.router)

    return app


app = create_app()
