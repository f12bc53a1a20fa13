"""Boundary Protocols — contracts between the directory workflow and its collaborators.

Invariants:
    - The service only talks to storage and the postal-code directory through these types
    - Implementations provided by the shell via dependency injection
    - One RepositoryScope call = one unit of work = one DB session

Design Decisions:
    - Protocol over ABC: structural subtyping, fakes in tests need no inheritance
    - Async in Protocol: boundary methods are async because implementations do IO
    - Repository works on ORM User rows; snapshots are built by the service
"""

from contextlib import AbstractAsyncContextManager
from typing import Protocol, TYPE_CHECKING

from user_directory.core.domain_types import UserId
from user_directory.core.pagination import Page, PageRequest
from user_directory.core.user_records import AddressData

if TYPE_CHECKING:
    from user_directory.models.user import User


class AddressLookup(Protocol):
    """Contract for the postal-code directory — never raises for lookup failures."""
    async def lookup(self, raw_postal_code: str) -> AddressData | None: ...


class UserRepository(Protocol):
    """Contract for user persistence — implemented by shell."""
    async def add(self, user: "User") -> "User": ...
    async def save(self, user: "User") -> "User": ...
    async def find_by_id(self, user_id: UserId) -> "User | None": ...
    async def find_by_email(self, email: str) -> "User | None": ...
    async def exists_by_id(self, user_id: UserId) -> bool: ...
    async def exists_by_email(self, email: str) -> bool: ...
    async def exists_by_cpf(self, cpf: str) -> bool: ...
    async def delete_by_id(self, user_id: UserId) -> bool: ...
    async def count(self) -> int: ...
    async def count_with_complete_address(self) -> int: ...
    async def find_page(self, request: PageRequest) -> "Page[User]": ...
    async def find_by_name_contains(
        self, fragment: str, request: PageRequest,
    ) -> "Page[User]": ...


class RepositoryScope(Protocol):
    """Opens a unit of work yielding a UserRepository bound to a fresh session."""
    def __call__(self) -> AbstractAsyncContextManager[UserRepository]: ...
