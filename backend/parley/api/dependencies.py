"""API Dependencies — service lookup and bearer-token resolution for routes.

Invariants:
    - Services are built once in the lifespan and read from app.state
    - Missing/invalid bearer credentials raise UnauthenticatedError (401)
"""

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from parley.core.domain_types import Identity
from parley.core.errors import UnauthenticatedError
from parley.infrastructure.database import DatabaseSessionManager
from parley.services.event_hub import EventHub
from parley.services.message_router import MessageRouter
from parley.services.token_authority import TokenAuthority

_bearer = HTTPBearer(auto_error=False)


def get_token_authority(request: Request) -> TokenAuthority:
    return request.app.state.token_authority


def get_message_router(request: Request) -> MessageRouter:
    return request.app.state.message_router


def get_event_hub(request: Request) -> EventHub:
    return request.app.state.event_hub


def get_database(request: Request) -> DatabaseSessionManager | None:
    """None until the lifespan has opened the database."""
    return getattr(request.app.state, "db", None)


def get_bearer_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> str:
    if credentials is None or not credentials.credentials:
        raise UnauthenticatedError()
    return credentials.credentials


async def get_current_identity(
    token: str = Depends(get_bearer_token),
    authority: TokenAuthority = Depends(get_token_authority),
) -> Identity:
    return await authority.require_identity(token)
