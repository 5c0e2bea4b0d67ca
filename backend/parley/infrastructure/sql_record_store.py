"""SQL Record Store — RecordStore implementation over SQLAlchemy async sessions.

Invariants:
    - Every method runs in its own session and commits before returning
    - Returned objects are core domain types, never ORM instances
    - Username lookups compare lower(username) (case-insensitive uniqueness)
    - set_known is idempotent: a single INSERT .. ON CONFLICT DO NOTHING, so
      concurrent first contacts of the same pair both succeed
    - A duplicate email on create raises ProfileAlreadyExistsError; a duplicate
      username (ignoring case) raises UsernameTakenError
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite

from parley.core.domain_types import Identity, IdentityId, Message, MessageId
from parley.core.errors import (
    ProfileAlreadyExistsError, StorageUnavailableError, UsernameTakenError,
)
from parley.infrastructure.database import ConstraintViolation, DatabaseSessionManager
from parley.models.identity import Identity as IdentityRow
from parley.models.known_relation import KnownRelation as KnownRelationRow
from parley.models.message import Message as MessageRow

logger = logging.getLogger(__name__)

# INSERT constructs that support on_conflict_do_nothing
_INSERT_BY_DIALECT = {"postgresql": postgresql.insert, "sqlite": sqlite.insert}


def _to_identity(row: IdentityRow) -> Identity:
    return Identity(
        id=IdentityId(row.id),
        email=row.email,
        username=row.username,
        first_name=row.first_name,
        last_name=row.last_name,
        created_at=row.created_at,
    )


def _to_message(row: MessageRow) -> Message:
    return Message(
        id=MessageId(row.id),
        from_id=IdentityId(row.from_id),
        chat_id=IdentityId(row.chat_id),
        text=row.text,
        created_at=row.created_at,
    )


class SqlRecordStore:
    """Persists identities, messages and known relations."""

    def __init__(self, db: DatabaseSessionManager):
        self.db = db

    async def create_identity(
        self,
        email: str,
        username: str | None,
        first_name: str,
        last_name: str | None,
    ) -> Identity:
        try:
            async with self.db.session() as session:
                row = IdentityRow(
                    email=email,
                    username=username,
                    first_name=first_name,
                    last_name=last_name,
                )
                session.add(row)
                await session.commit()
                await session.refresh(row)
                return _to_identity(row)
        except ConstraintViolation:
            if username is not None and await self.get_identity_by_email(email) is None:
                raise UsernameTakenError()
            raise ProfileAlreadyExistsError()

    async def get_identity_by_id(self, identity_id: IdentityId) -> Identity | None:
        async with self.db.session() as session:
            row = await session.get(IdentityRow, identity_id)
            return _to_identity(row) if row else None

    async def get_identity_by_email(self, email: str) -> Identity | None:
        return await self._find_identity(IdentityRow.email == email)

    async def get_identity_by_username(self, username: str) -> Identity | None:
        return await self._find_identity(
            func.lower(IdentityRow.username) == username.lower(),
        )

    async def update_identity(self, identity: Identity) -> Identity:
        try:
            async with self.db.session() as session:
                row = await session.get(IdentityRow, identity.id)
                if row is None:
                    raise StorageUnavailableError(
                        f"identity {identity.id} vanished", "update",
                    )
                row.username = identity.username
                row.first_name = identity.first_name
                row.last_name = identity.last_name
                await session.commit()
                await session.refresh(row)
                return _to_identity(row)
        except ConstraintViolation:
            # email is immutable here, so the only unique column touched is username
            raise UsernameTakenError()

    async def create_message(
        self, from_id: IdentityId, chat_id: IdentityId, text: str | None,
    ) -> Message:
        async with self.db.session() as session:
            row = MessageRow(from_id=from_id, chat_id=chat_id, text=text)
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return _to_message(row)

    async def get_message(self, message_id: MessageId) -> Message | None:
        async with self.db.session() as session:
            row = await session.get(MessageRow, message_id)
            return _to_message(row) if row else None

    async def is_known(self, user_id: IdentityId, peer_id: IdentityId) -> bool:
        async with self.db.session() as session:
            result = await session.execute(
                select(KnownRelationRow.id).where(
                    KnownRelationRow.user_id == user_id,
                    KnownRelationRow.peer_id == peer_id,
                ).limit(1),
            )
            return result.scalar_one_or_none() is not None

    async def set_known(self, user_id: IdentityId, peer_id: IdentityId) -> None:
        insert = _INSERT_BY_DIALECT[self.db.dialect]
        statement = insert(KnownRelationRow).values(
            user_id=user_id, peer_id=peer_id,
        ).on_conflict_do_nothing(index_elements=["user_id", "peer_id"])
        async with self.db.session() as session:
            await session.execute(statement)
            await session.commit()

    async def _find_identity(self, condition) -> Identity | None:
        async with self.db.session() as session:
            result = await session.execute(select(IdentityRow).where(condition))
            row = result.scalar_one_or_none()
            return _to_identity(row) if row else None
