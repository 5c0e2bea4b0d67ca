"""ORM Models — SQLAlchemy declarative models for persisted entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Listeners and OTPs are never persisted here

Design Decisions:
    - One file per entity for locality
    - All models imported here so Base.metadata is complete before create_all/alembic
"""

from parley.models.identity import Identity  # noqa: F401
from parley.models.message import Message  # noqa: F401
from parley.models.known_relation import KnownRelation  # noqa: F401
