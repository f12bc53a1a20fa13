"""ORM Models — SQLAlchemy declarative models for users and their addresses.

Invariants:
    - All models inherit from Base (db/base.py)
    - User is the aggregate root; an Address exists only through its User

Design Decisions:
    - One file per entity for locality (ADR: ExMA max 3-4 files to understand a feature)
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs (ADR: standard SQLAlchemy pattern)
"""

from user_directory.models.user import User  # noqa: F401
from user_directory.models.address import Address  # noqa: F401
