"""KnownRelation ORM — directed "user_id has exchanged a message with peer_id" fact.

Invariants:
    - (user_id, peer_id) is unique: re-creating a relation is a no-op
    - The symmetric pair is written by the message router, one row per direction
"""

from datetime import datetime, timezone

from sqlalchemy import Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from parley.db.base import Base


class KnownRelation(Base):
    __tablename__ = "known_relations"
    __table_args__ = (
        UniqueConstraint("user_id", "peer_id", name="uq_known_relations_pair"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("identities.id", ondelete="CASCADE"), nullable=False,
    )
    peer_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("identities.id", ondelete="CASCADE"), nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
