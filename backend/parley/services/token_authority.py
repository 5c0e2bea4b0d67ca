"""Token Authority — OTP issuance/verification, bearer tokens and profile operations.

Invariants:
    - At most one outstanding OTP per email (set-if-absent in the OTP cache)
    - A verified OTP is deleted before the token is minted (single use)
    - Token validity depends only on signature, format and expiry (no server state)
    - authenticate() returns None (not an error) for a valid token without a profile
    - Storage/email failures propagate as CollaboratorUnavailableError subclasses

Design Decisions:
    - HS256 JWT via PyJWT with claims {sub, exp, iat}
    - The confirmation returned by issue_otp is sha256(salt + code) with a discarded
      salt; it cannot be used to recover or check the code
    - A failed email dispatch releases the stored OTP so the user can retry at once
"""

import hashlib
import hmac
import logging
import secrets
import string
from datetime import datetime, timedelta, timezone

import jwt

from parley.core.domain_types import Identity, PatchField, PatchableField
from parley.core.errors import (
    EmailDispatchError,
    InvalidTokenError,
    NoOtpPendingError,
    OtpAlreadyPendingError,
    OtpMismatchError,
    ProfileAlreadyExistsError,
    UnauthenticatedError,
    UsernameTakenError,
)
from parley.core.repository_protocols import EmailDispatcher, OtpCache, RecordStore
from parley.core.validate_identity import check_email, check_username

logger = logging.getLogger(__name__)

OTP_LENGTH = 6
DEFAULT_OTP_TTL_SECONDS = 300
DEFAULT_TOKEN_TTL_SECONDS = 3600


def generate_otp(length: int = OTP_LENGTH) -> str:
    """Numeric code, each digit uniform in 0-9 (leading zeros allowed)."""
    return "".join(secrets.choice(string.digits) for _ in range(length))


def confirmation_for(code: str) -> str:
    salt = secrets.token_hex(16)
    return hashlib.sha256(f"{salt}{code}".encode("utf-8")).hexdigest()


class TokenAuthority:
    """Passwordless authentication and profile management."""

    def __init__(
        self,
        store: RecordStore,
        otp_cache: OtpCache,
        email_dispatcher: EmailDispatcher,
        jwt_secret: str,
        jwt_algorithm: str = "HS256",
        token_ttl_seconds: int = DEFAULT_TOKEN_TTL_SECONDS,
        otp_ttl_seconds: int = DEFAULT_OTP_TTL_SECONDS,
    ):
        self.store = store
        self.otp_cache = otp_cache
        self.email_dispatcher = email_dispatcher
        self.jwt_secret = jwt_secret
        self.jwt_algorithm = jwt_algorithm
        self.token_ttl_seconds = token_ttl_seconds
        self.otp_ttl_seconds = otp_ttl_seconds

    # ─── OTP flow ─────────────────────────────────────────────────

    async def issue_otp(self, email: str) -> str:
        """Send a fresh OTP to email and return an informational confirmation."""
        check_email(email)
        if await self.otp_cache.get(email) is not None:
            raise OtpAlreadyPendingError()

        code = generate_otp()
        if not await self.otp_cache.set(email, code, self.otp_ttl_seconds):
            # lost a race with a concurrent request for the same email
            raise OtpAlreadyPendingError()

        try:
            await self.email_dispatcher.send_otp(email, code)
        except EmailDispatchError:
            await self.otp_cache.delete(email)
            raise
        logger.info("OTP issued")
        return confirmation_for(code)

    async def verify_otp(self, email: str, code: str) -> str:
        """Consume the pending OTP for email and mint a bearer token."""
        check_email(email)
        pending = await self.otp_cache.get(email)
        if pending is None:
            raise NoOtpPendingError()
        stored_code, _ = pending
        if not hmac.compare_digest(stored_code.encode(), (code or "").encode()):
            raise OtpMismatchError()
        await self.otp_cache.delete(email)
        return self.mint_token(email)

    # ─── Tokens ───────────────────────────────────────────────────

    def mint_token(self, email: str) -> str:
        now = datetime.now(timezone.utc)
        claims = {
            "sub": email,
            "iat": now,
            "exp": now + timedelta(seconds=self.token_ttl_seconds),
        }
        return jwt.encode(claims, self.jwt_secret, algorithm=self.jwt_algorithm)

    def token_subject(self, token: str | None) -> str:
        """Return the email a token was minted for, or raise InvalidTokenError."""
        if not token:
            raise InvalidTokenError()
        try:
            claims = jwt.decode(
                token,
                self.jwt_secret,
                algorithms=[self.jwt_algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.PyJWTError:
            raise InvalidTokenError()
        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject:
            raise InvalidTokenError()
        return subject

    async def authenticate(self, token: str | None) -> Identity | None:
        """Resolve a token to its identity; None when no profile exists yet."""
        email = self.token_subject(token)
        return await self.store.get_identity_by_email(email)

    async def require_identity(self, token: str | None) -> Identity:
        try:
            identity = await self.authenticate(token)
        except InvalidTokenError:
            raise UnauthenticatedError()
        if identity is None:
            raise UnauthenticatedError()
        return identity

    async def has_profile(self, token: str) -> bool:
        return await self.authenticate(token) is not None

    # ─── Profiles ─────────────────────────────────────────────────

    async def create_profile(
        self, token: str | None, first_name: str, last_name: str | None = None,
    ) -> Identity:
        try:
            email = self.token_subject(token)
        except InvalidTokenError:
            raise UnauthenticatedError()
        if await self.store.get_identity_by_email(email) is not None:
            raise ProfileAlreadyExistsError()
        identity = await self.store.create_identity(email, None, first_name, last_name)
        logger.info("Profile created", extra={"identity_id": identity.id})
        return identity

    async def patch_profile(
        self, token: str | None, fields: list[PatchField],
    ) -> Identity:
        """Apply recognised fields in order, then validate and persist."""
        identity = await self.require_identity(token)
        patched = identity.copy()
        for field in fields:
            match field.name:
                case PatchableField.FIRST_NAME.value:
                    patched.first_name = field.value or ""
                case PatchableField.LAST_NAME.value:
                    patched.last_name = field.value
                case PatchableField.USERNAME.value:
                    patched.username = field.value
                case _:
                    logger.debug("Ignoring unknown profile field %r", field.name)

        if patched.username is not None:
            check_username(patched.username)
            holder = await self.store.get_identity_by_username(patched.username)
            if holder is not None and holder.id != patched.id:
                raise UsernameTakenError()

        return await self.store.update_identity(patched)
