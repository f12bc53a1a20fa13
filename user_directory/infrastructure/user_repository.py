"""SQL User Repository — SQLAlchemy implementation of the UserRepository protocol.

Invariants:
    - Every write commits exactly once (one atomic persist per workflow step)
    - Unique-constraint violations on commit are rolled back and raised as UserConflictError
    - Sort columns come from a fixed SortField mapping, never from raw client input
    - Name search is case-insensitive and treats % and _ literally

Design Decisions:
    - One repository per AsyncSession, handed out by user_repository_scope
      (ADR: concurrent batch tasks each need their own session)
    - Pages always fall back to id ordering as a tie-breaker: stable pagination
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import Select, and_, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from user_directory.core.domain_types import SortDirection, SortField, UserId
from user_directory.core.errors import ErrorContext, UserConflictError
from user_directory.core.pagination import Page, PageRequest, SortOrder
from user_directory.core.repository_protocols import RepositoryScope
from user_directory.infrastructure.database import DatabaseSessionManager
from user_directory.models.address import Address
from user_directory.models.user import User

logger = logging.getLogger(__name__)

_SORT_COLUMNS = {
    SortField.ID: User.id,
    SortField.NAME: User.name,
    SortField.EMAIL: User.email,
    SortField.CREATED_AT: User.created_at,
    SortField.UPDATED_AT: User.updated_at,
}


def _non_blank(column):
    return and_(column.is_not(None), func.trim(column) != "")


def _order_by(sort: tuple[SortOrder, ...]) -> list:
    clauses = []
    for order in sort:
        column = _SORT_COLUMNS[order.field]
        clauses.append(
            column.desc() if order.direction == SortDirection.DESC else column.asc(),
        )
    if not any(order.field == SortField.ID for order in sort):
        clauses.append(User.id.asc())
    return clauses


class SqlUserRepository:
    """User persistence over a single AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(self, user: User) -> User:
        self.db.add(user)
        return await self._commit(user)

    async def save(self, user: User) -> User:
        return await self.add(user)

    async def _commit(self, user: User) -> User:
        # Captured up front: a rollback expires attributes and async sessions cannot reload them
        context = ErrorContext(user_id=user.id, email=user.email)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(
                f"Unique constraint rejected write for {context.email}: {e.orig}",
                extra={"user_id": context.user_id, "error_code": "USER_CONFLICT"},
            )
            raise UserConflictError(context=context) from e
        return user

    async def find_by_id(self, user_id: UserId) -> User | None:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def find_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def exists_by_id(self, user_id: UserId) -> bool:
        return await self._exists(select(User.id).where(User.id == user_id))

    async def exists_by_email(self, email: str) -> bool:
        return await self._exists(select(User.id).where(User.email == email))

    async def exists_by_cpf(self, cpf: str) -> bool:
        return await self._exists(select(User.id).where(User.cpf == cpf))

    async def _exists(self, query: Select) -> bool:
        return await self.db.scalar(query.limit(1)) is not None

    async def delete_by_id(self, user_id: UserId) -> bool:
        """Delete user and its address. False when no row existed."""
        user = await self.find_by_id(user_id)
        if user is None:
            return False
        await self.db.delete(user)
        await self.db.commit()
        return True

    async def count(self) -> int:
        return await self.db.scalar(select(func.count()).select_from(User)) or 0

    async def count_with_complete_address(self) -> int:
        query = (
            select(func.count())
            .select_from(User)
            .join(User.address)
            .where(
                _non_blank(Address.postal_code),
                _non_blank(Address.city),
                _non_blank(Address.state),
            )
        )
        return await self.db.scalar(query) or 0

    async def find_page(self, request: PageRequest) -> Page[User]:
        return await self._paginate(select(User), request)

    async def find_by_name_contains(
        self, fragment: str, request: PageRequest,
    ) -> Page[User]:
        query = select(User).where(
            func.lower(User.name).contains(fragment.lower(), autoescape=True),
        )
        return await self._paginate(query, request)

    async def _paginate(self, query: Select, request: PageRequest) -> Page[User]:
        total = await self.db.scalar(
            select(func.count()).select_from(query.subquery()),
        )
        rows = await self.db.execute(
            query.order_by(*_order_by(request.sort))
            .offset(request.offset)
            .limit(request.size),
        )
        return Page(
            items=list(rows.scalars().all()),
            page=request.page,
            size=request.size,
            total_elements=total or 0,
        )


def user_repository_scope(manager: DatabaseSessionManager) -> RepositoryScope:
    """Bind a RepositoryScope to the session manager: one session per unit of work."""

    @asynccontextmanager
    async def scope() -> AsyncGenerator[SqlUserRepository, None]:
        async with manager.session() as db:
            yield SqlUserRepository(db)

    return scope
