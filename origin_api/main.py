"""
Application entry point.

Run locally:
    uvicorn origin_api.main:app --reload --port 8000

In Docker:
    CMD ["uvicorn", "origin_api.main:app", "--host", "0.0.0.0", "--port", "8000"]

API docs available at:
    http://localhost:8000/docs   (Swagger UI)
    http://localhost:8000/redoc  (ReDoc)

NOTE on scaling: logout revocations live in the database (revoked_tokens),
so running several uvicorn workers or nodes is safe; they all share them.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from origin_api.config import settings
from origin_api.core.rate_limiter import limiter
from origin_api.database import SessionLocal
from origin_api.routers import auth, shop
from origin_api.services import auth_service

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    if settings.initial_admin_email and settings.initial_admin_password:
        db = SessionLocal()
        try:
            auth_service.ensure_initial_admin(db, settings.initial_admin_email, settings.initial_admin_password)
        finally:
            db.close()
    logger.info(f"{settings.app_name} started")
    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        description=(
            "Backend for the Origin Technologies business portal. "
            "Covers account registration with email OTP, token sessions with logout, "
            "password reset, role-gated user creation, and the shop's stock and sales ledger."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # ── Rate Limiter ──────────────────────────────────────────────────────────
    # Attach limiter to app state (required by slowapi)
    # Register the 429 handler so exceeded limits return proper JSON
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # ── CORS ──────────────────────────────────────────────────────────────────
    # In production, CORS_ORIGINS in .env should only list the frontend domain
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Routers ───────────────────────────────────────────────────────────────
    # Auth (public except /logout, /me and the admin-gated /create-user)
    app.include_router(auth.router, prefix="/auth", tags=["Auth"])

    # Shop (admin + controller only, gated inside the router)
    app.include_router(shop.router, prefix="/shop", tags=["Shop"])

    # ── Health Check ──────────────────────────────────────────────────────────
    @app.get("/health", tags=["Health"])
    def health_check():
        """
        Simple health check endpoint for load balancers and Docker health checks.
        Returns 200 if the application is running.
        """
        return {"status": "ok", "version": "1.0.0"}

    return app


app = create_app()
