"""
BookSwap Backend — ORM Models
==============================

Importing this package registers every table with `Base.metadata`, which is
what Alembic autogenerate and the test suite's `create_all` read.
"""

from bookswap.models.user import User
from bookswap.models.publication import BookState, Publication, PublicationType
from bookswap.models.interaction import (
    InteractionStatus,
    InteractionType,
    PublicationInteraction,
)
from bookswap.models.review import Review

__all__ = [
    "User",
    "Publication",
    "BookState",
    "PublicationType",
    "PublicationInteraction",
    "InteractionType",
    "InteractionStatus",
    "Review",
]
