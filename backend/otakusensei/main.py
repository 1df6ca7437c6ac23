"""FastAPI application entry point."""

import logging
import threading
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from otakusensei.config import settings
from otakusensei.database import init_db
from otakusensei.errors import register_exception_handlers
from otakusensei.api import admin, chapters, comics, health, payments, reviews, users
from otakusensei.services.google_oauth import GoogleOAuthClient
from otakusensei.services.mailer import Mailer
from otakusensei.services.payments import StripeGateway

# Configure structured logging
logging.basicConfig(format="%(message)s", level=settings.log_level.upper())
structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.add_log_level,
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = structlog.get_logger()

_scheduler_thread: threading.Thread | None = None


def _run_scheduler():
    """Thread target for the subscription sweep and credential purge loop."""
    try:
        from otakusensei.tasks.scheduler import start_scheduler
        logger.info("Starting subscription scheduler thread")
        start_scheduler()
    except Exception as e:
        logger.error("Subscription scheduler thread crashed", error=str(e), exc_info=e)


def attach_collaborators(app: FastAPI) -> None:
    """Build the mail, payment and Google clients once and park them on app.state."""
    app.state.mailer = Mailer.from_settings()
    app.state.payment_gateway = StripeGateway.from_settings()
    app.state.google_oauth = GoogleOAuthClient.from_settings()
    if not app.state.mailer.enabled:
        logger.warning("SMTP host not configured, emails will only be logged")
    if not settings.stripe_secret_key:
        logger.warning("Stripe key not configured, payments will fail")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    global _scheduler_thread

    logger.info("Starting OtakuSensei API", environment=settings.environment)
    await init_db()
    attach_collaborators(app)

    # In-process scheduler only in production
    if settings.is_production:
        _scheduler_thread = threading.Thread(target=_run_scheduler, daemon=True, name="subscription-scheduler")
        _scheduler_thread.start()

    yield

    logger.info("Shutting down OtakuSensei API")


app = FastAPI(
    title="OtakuSensei API",
    description="Comic and manga reading platform with premium subscriptions",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)

register_exception_handlers(app)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Health probes stay at the root; everything else is versioned
app.include_router(health.router)
app.include_router(users.router, prefix=settings.api_v1_prefix)
app.include_router(admin.router, prefix=settings.api_v1_prefix)
app.include_router(comics.router, prefix=settings.api_v1_prefix)
app.include_router(chapters.router, prefix=settings.api_v1_prefix)
app.include_router(reviews.router, prefix=settings.api_v1_prefix)
app.include_router(payments.router, prefix=settings.api_v1_prefix)


@app.get("/")
async def root() -> dict:
    return {
        "name": "OtakuSensei API",
        "version": app.version,
        "api": settings.api_v1_prefix,
        "docs": None if settings.is_production else "/docs",
    }
