"""User Records — immutable commands and snapshots that cross the service boundary.

Invariants:
    - Snapshots are frozen: never mutated after construction
    - None means "absent"; blank strings are treated as absent by update semantics
    - An address is complete only when postal code, city and state are all non-blank

Design Decisions:
    - Frozen dataclasses over ORM objects at the service boundary: callers never see
      session-bound entities (ADR: no lazy-load surprises outside a unit of work)
    - Commands carry raw user input; validation of shape happens at the HTTP boundary
"""

from dataclasses import dataclass
from datetime import datetime

from user_directory.core.domain_types import Cpf, UserId


def is_blank(value: str | None) -> bool:
    """True for None, empty, or whitespace-only strings."""
    return value is None or not value.strip()


@dataclass(frozen=True)
class AddressData:
    """Normalized address returned by the postal-code lookup."""
    postal_code: str
    street: str | None = None
    neighborhood: str | None = None
    city: str | None = None
    state: str | None = None
    complement: str | None = None


@dataclass(frozen=True)
class AddressSnapshot:
    postal_code: str
    street: str | None
    neighborhood: str | None
    city: str | None
    state: str | None
    complement: str | None

    @property
    def is_complete(self) -> bool:
        return is_complete_address(self.postal_code, self.city, self.state)


@dataclass(frozen=True)
class UserSnapshot:
    id: UserId
    name: str
    email: str
    cpf: Cpf
    address: AddressSnapshot | None
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class CreateUserCommand:
    name: str
    email: str
    cpf: str
    postal_code: str | None = None


@dataclass(frozen=True)
class UpdateUserCommand:
    """Partial update. Absent or blank fields leave the stored value untouched."""
    name: str | None = None
    email: str | None = None
    postal_code: str | None = None


def is_complete_address(
    postal_code: str | None, city: str | None, state: str | None,
) -> bool:
    """Complete = postal code, city and state all non-blank."""
    return not (is_blank(postal_code) or is_blank(city) or is_blank(state))
