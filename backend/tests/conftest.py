"""Root conftest — shared test configuration and service fixtures."""

import os

# Ensure tests never reach real infrastructure
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("EMAIL_WEBHOOK_URL", "")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest  # noqa: E402

from parley.infrastructure.otp_cache import InMemoryOtpCache  # noqa: E402
from parley.services.event_hub import EventHub  # noqa: E402
from parley.services.message_router import MessageRouter  # noqa: E402
from parley.services.token_authority import TokenAuthority  # noqa: E402
from tests.fakes import (  # noqa: E402
    JWT_SECRET, FakeClock, InMemoryRecordStore, RecordingEmailDispatcher,
)


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def otp_cache(clock):
    return InMemoryOtpCache(clock=clock)


@pytest.fixture
def mailer():
    return RecordingEmailDispatcher()


@pytest.fixture
def authority(store, otp_cache, mailer):
    return TokenAuthority(store, otp_cache, mailer, jwt_secret=JWT_SECRET)


@pytest.fixture
def hub():
    return EventHub(queue_size=8)


@pytest.fixture
def router(store, hub):
    return MessageRouter(store, hub)


@pytest.fixture
def login(authority, mailer):
    """Run the OTP flow for an email and return the bearer token."""
    async def _login(email: str) -> str:
        await authority.issue_otp(email)
        return await authority.verify_otp(email, mailer.last_code(email))
    return _login
