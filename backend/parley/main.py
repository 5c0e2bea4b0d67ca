"""Parley API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map ParleyError → {"message", "code"} JSON responses
    - Collaborators and services are built once in the lifespan and stored on app.state
    - The EventHub lives for the process lifetime; fan-out is single-process only
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from parley.api.error_handlers import register_error_handlers
from parley.api.routes import events, health, messages, users
from parley.config import Settings, get_settings
from parley.infrastructure.database import DatabaseSessionManager
from parley.infrastructure.email_dispatch import (
    LoggingEmailDispatcher, WebhookEmailDispatcher,
)
from parley.infrastructure.observability import setup_logging
from parley.infrastructure.otp_cache import InMemoryOtpCache, RedisOtpCache
from parley.infrastructure.sql_record_store import SqlRecordStore
from parley.services.event_hub import EventHub
from parley.services.message_router import MessageRouter
from parley.services.token_authority import TokenAuthority

logger = logging.getLogger(__name__)


def _build_otp_cache(settings: Settings):
    if settings.redis_url:
        return RedisOtpCache.from_url(settings.redis_url)
    logger.warning("REDIS_URL not set, OTPs kept in process memory")
    return InMemoryOtpCache()


def _build_email_dispatcher(settings: Settings):
    if settings.email_webhook_url:
        return WebhookEmailDispatcher(
            settings.email_webhook_url,
            sender=settings.email_sender,
            timeout_seconds=settings.email_timeout_seconds,
            otp_ttl_seconds=settings.otp_ttl_seconds,
        )
    logger.warning("EMAIL_WEBHOOK_URL not set, OTP codes are only logged")
    return LoggingEmailDispatcher()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    db = DatabaseSessionManager.from_url(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    store = SqlRecordStore(db)
    otp_cache = _build_otp_cache(settings)
    email_dispatcher = _build_email_dispatcher(settings)
    event_hub = EventHub(queue_size=settings.listener_queue_size)

    app.state.db = db
    app.state.event_hub = event_hub
    app.state.token_authority = TokenAuthority(
        store,
        otp_cache,
        email_dispatcher,
        jwt_secret=settings.jwt_secret,
        jwt_algorithm=settings.jwt_algorithm,
        token_ttl_seconds=settings.token_ttl_seconds,
        otp_ttl_seconds=settings.otp_ttl_seconds,
    )
    app.state.message_router = MessageRouter(store, event_hub)
    logger.info("Parley API started")
    yield
    logger.info("Parley API shutting down")
    for resource in (otp_cache, email_dispatcher):
        close = getattr(resource, "close", None)
        if close is not None:
            await close()
    await db.dispose()


app = FastAPI(title="Parley API", version="0.1.0", lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(users.router)
app.include_router(messages.router)
app.include_router(events.router)

register_error_handlers(app)
