"""Boundary Protocols — contracts between the services and their collaborators.

Invariants:
    - Services NEVER import a concrete adapter — only these Protocol types
    - All IO operations accessed through Protocol types
    - Implementations provided by the app lifespan (production) or tests (fakes)
    - Adapters raise StorageUnavailableError / EmailDispatchError, never driver exceptions

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
"""

from datetime import datetime
from typing import Protocol

from parley.core.domain_types import Identity, IdentityId, Message, MessageId


class RecordStore(Protocol):
    """Contract for identity/message/known-relation persistence.

    create_identity raises ProfileAlreadyExistsError for a taken email;
    create_identity and update_identity raise UsernameTakenError for a taken
    username. set_known must tolerate concurrent calls for the same pair.
    """

    async def create_identity(
        self,
        email: str,
        username: str | None,
        first_name: str,
        last_name: str | None,
    ) -> Identity: ...
    async def get_identity_by_id(self, identity_id: IdentityId) -> Identity | None: ...
    async def get_identity_by_email(self, email: str) -> Identity | None: ...
    async def get_identity_by_username(self, username: str) -> Identity | None: ...
    async def update_identity(self, identity: Identity) -> Identity: ...
    async def create_message(
        self, from_id: IdentityId, chat_id: IdentityId, text: str | None,
    ) -> Message: ...
    async def get_message(self, message_id: MessageId) -> Message | None: ...
    async def is_known(self, user_id: IdentityId, peer_id: IdentityId) -> bool: ...
    async def set_known(self, user_id: IdentityId, peer_id: IdentityId) -> None: ...


class OtpCache(Protocol):
    """Contract for the ephemeral OTP store — TTL enforced by the implementation."""
    async def set(self, email: str, code: str, ttl_seconds: int) -> bool:
        """Store only if no code is pending for email. Returns False otherwise."""
        ...
    async def get(self, email: str) -> tuple[str, datetime] | None: ...
    async def delete(self, email: str) -> None: ...


class EmailDispatcher(Protocol):
    """Contract for outbound OTP email delivery."""
    async def send_otp(self, email: str, code: str) -> None: ...
