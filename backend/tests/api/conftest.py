"""API fixtures — ASGI client over the app with in-memory collaborators.

Design Decisions:
    - ASGITransport does not run the lifespan, so services are placed on
      app.state directly and removed afterwards
"""

import httpx
import pytest

from parley.core.domain_types import PatchField
from parley.main import app


@pytest.fixture
async def client(authority, router, hub):
    app.state.token_authority = authority
    app.state.message_router = router
    app.state.event_hub = hub
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    for name in ("token_authority", "message_router", "event_hub"):
        delattr(app.state, name)


@pytest.fixture
def bearer(authority, login):
    """Log in, create a profile, return the Authorization header."""
    async def _bearer(email: str, first_name: str, username: str | None = None) -> dict:
        token = await login(email)
        await authority.create_profile(token, first_name)
        if username:
            await authority.patch_profile(token, [PatchField("username", username)])
        return {"Authorization": f"Bearer {token}"}
    return _bearer
