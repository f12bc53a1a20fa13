"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - UserId wraps the store-assigned integer — never use bare int in domain logic
    - PostalCode is always 8 digits once normalized; Cpf is always 11 digits
    - All valid states encoded as Enums — no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

UserId = NewType("UserId", int)


# ─── Value Types ─────────────────────────────────────────────────

PostalCode = NewType("PostalCode", str)   # 8 digits, no separator
Cpf = NewType("Cpf", str)                 # 11 digits

POSTAL_CODE_LENGTH = 8
CPF_LENGTH = 11
NAME_MAX_LENGTH = 100
EMAIL_MAX_LENGTH = 100
STATE_CODE_LENGTH = 2


# ─── Enums ───────────────────────────────────────────────────────

class SortDirection(str, Enum):
    """Sort direction accepted in `sort=field,dir` query parameters."""
    ASC = "asc"
    DESC = "desc"


class SortField(str, Enum):
    """User attributes a page may be ordered by."""
    ID = "id"
    NAME = "name"
    EMAIL = "email"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"


class AddressCheck(str, Enum):
    """Outcome token for one postal code in a batch validation."""
    VALID = "Valid"
    INVALID = "Invalid"
