"""Identity ORM — a registered user profile.

Invariants:
    - email is unique and non-nullable
    - username is optional; uniqueness is case-insensitive (index on lower(username))
"""

from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, Index, func
from sqlalchemy.orm import Mapped, mapped_column

from parley.db.base import Base


class Identity(Base):
    """A registered user, created after the first successful OTP login."""
    __tablename__ = "identities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    username: Mapped[str | None] = mapped_column(String(20), nullable=True)
    first_name: Mapped[str] = mapped_column(String(200), nullable=False)
    last_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )


Index(
    "ix_identities_username_lower", func.lower(Identity.username), unique=True,
)
