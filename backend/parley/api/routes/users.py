"""User Routes — OTP login, token exchange and profile management.

Invariants:
    - /authenticate and /token are public; profile routes require a bearer token
    - POST /profile accepts a token whose subject has no profile yet
"""

import logging

from fastapi import APIRouter, Depends, status

from parley.api.dependencies import (
    get_bearer_token, get_current_identity, get_token_authority,
)
from parley.core.domain_types import Identity
from parley.schemas.auth import (
    AuthenticateRequest, AuthenticateResponse, TokenRequest, TokenResponse,
)
from parley.schemas.profile import (
    IdentityResponse, PatchProfileRequest, ProfileCreate,
)
from parley.services.token_authority import TokenAuthority

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.post("/authenticate", response_model=AuthenticateResponse)
async def request_otp(
    body: AuthenticateRequest,
    authority: TokenAuthority = Depends(get_token_authority),
):
    """Email a one-time passcode to body.email."""
    confirmation = await authority.issue_otp(body.email)
    return AuthenticateResponse(confirmation=confirmation)


@router.post("/token", response_model=TokenResponse)
async def exchange_otp(
    body: TokenRequest,
    authority: TokenAuthority = Depends(get_token_authority),
):
    """Trade a valid OTP for a bearer token."""
    token = await authority.verify_otp(body.email, body.code)
    return TokenResponse(
        bearer_token=token, has_profile=await authority.has_profile(token),
    )


@router.post(
    "/profile", response_model=IdentityResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_profile(
    body: ProfileCreate,
    token: str = Depends(get_bearer_token),
    authority: TokenAuthority = Depends(get_token_authority),
):
    identity = await authority.create_profile(token, body.first_name, body.last_name)
    return IdentityResponse.from_identity(identity)


@router.get("/profile/me", response_model=IdentityResponse)
async def read_profile(identity: Identity = Depends(get_current_identity)):
    return IdentityResponse.from_identity(identity)


@router.patch("/profile/me", response_model=IdentityResponse)
async def patch_profile(
    body: PatchProfileRequest,
    token: str = Depends(get_bearer_token),
    authority: TokenAuthority = Depends(get_token_authority),
):
    identity = await authority.patch_profile(token, body.to_patch_fields())
    return IdentityResponse.from_identity(identity)
