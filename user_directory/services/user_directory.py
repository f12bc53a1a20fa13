"""User Directory Service — create/update/delete/lookup workflow with address enrichment.

Invariants:
    - Expected outcomes are values: conflict/unknown id -> None, missing row on delete -> False
    - Email and cpf uniqueness checked before any side effect; the unique indexes remain
      the final arbiter (UserConflictError from the store becomes None on create)
    - Enrichment runs BEFORE the write scope opens: no transaction is held across the
      network call, and each mutation is a single commit
    - A failed lookup never blocks a write — the user is saved without a (new) address
    - Update applies only non-blank fields; an email owned by another user is ignored
    - Batch summaries list one token per input, in input order

Design Decisions:
    - Repository per unit of work (RepositoryScope): batch items run concurrently on
      separate sessions (ADR: AsyncSession is not safe for concurrent use)
    - Batch creation reuses create_user per item, uniqueness included; conflicts become
      "Failed" tokens instead of aborting the batch
    - None arguments raise TypeError: contract violations must not look like "not found"
"""

import logging
from datetime import datetime, timezone

from user_directory.core.batch_summary import (
    CONFLICT_REASON,
    address_check_token,
    created_token,
    failed_token,
    format_creation_summary,
    format_validation_summary,
)
from user_directory.core.domain_types import Cpf, UserId
from user_directory.core.errors import UserConflictError
from user_directory.core.pagination import Page, PageRequest
from user_directory.core.repository_protocols import (
    AddressLookup, RepositoryScope, UserRepository,
)
from user_directory.core.user_records import (
    AddressData,
    AddressSnapshot,
    CreateUserCommand,
    UpdateUserCommand,
    UserSnapshot,
    is_blank,
)
from user_directory.core.user_stats import UserStatistics, compute_user_stats
from user_directory.infrastructure.task_pool import IOTaskPool
from user_directory.models.user import User

logger = logging.getLogger(__name__)


def _require(value, name: str) -> None:
    if value is None:
        raise TypeError(f"{name} must not be None")


def _as_utc(value: datetime) -> datetime:
    """SQLite drops tzinfo on the way back; stored values are always UTC."""
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def to_snapshot(user: User) -> UserSnapshot:
    """Project an ORM row onto an immutable snapshot."""
    address = None
    if user.address is not None:
        address = AddressSnapshot(
            postal_code=user.address.postal_code,
            street=user.address.street,
            neighborhood=user.address.neighborhood,
            city=user.address.city,
            state=user.address.state,
            complement=user.address.complement,
        )
    return UserSnapshot(
        id=UserId(user.id),
        name=user.name,
        email=user.email,
        cpf=Cpf(user.cpf),
        address=address,
        created_at=_as_utc(user.created_at),
        updated_at=_as_utc(user.updated_at),
    )


class UserDirectoryService:
    """Owns every business rule of the user directory."""

    def __init__(
        self,
        repository_scope: RepositoryScope,
        address_lookup: AddressLookup,
        task_pool: IOTaskPool,
    ):
        self._scope = repository_scope
        self._lookup = address_lookup
        self._pool = task_pool

    # ─── Create / update ────────────────────────────────────────

    async def create_user(self, command: CreateUserCommand) -> UserSnapshot | None:
        """Create a user, enriching the address when a postal code is given."""
        _require(command, "command")
        async with self._scope() as repo:
            if await repo.exists_by_email(command.email):
                logger.info(f"Create rejected: email {command.email} already in use")
                return None
            if await repo.exists_by_cpf(command.cpf):
                logger.info(f"Create rejected: cpf already in use ({command.email})")
                return None

        address = await self._enrich(command.postal_code)
        user = User.register(command.name, command.email, command.cpf, address)

        async with self._scope() as repo:
            try:
                saved = await repo.add(user)
            except UserConflictError:
                return None
            logger.info(
                f"Created user {saved.id}", extra={"user_id": saved.id},
            )
            return to_snapshot(saved)

    async def update_user(
        self, user_id: UserId, command: UpdateUserCommand,
    ) -> UserSnapshot | None:
        """Apply the non-blank fields of command. None when the id is unknown."""
        _require(user_id, "user_id")
        _require(command, "command")
        async with self._scope() as repo:
            if not await repo.exists_by_id(user_id):
                return None

        address = await self._enrich(command.postal_code)

        async with self._scope() as repo:
            user = await repo.find_by_id(user_id)
            if user is None:
                return None
            changed = await self._apply_basic_fields(repo, user, command)
            if address is not None:
                user.replace_address(address)
            elif changed:
                user.touch()
            return to_snapshot(await repo.save(user))

    async def _apply_basic_fields(
        self, repo: UserRepository, user: User, command: UpdateUserCommand,
    ) -> bool:
        changed = False
        if not is_blank(command.name) and command.name != user.name:
            user.name = command.name
            changed = True
        if not is_blank(command.email) and command.email != user.email:
            if await repo.exists_by_email(command.email):
                logger.info(
                    f"Ignoring email change for user {user.id}: address already taken",
                    extra={"user_id": user.id},
                )
            else:
                user.email = command.email
                changed = True
        return changed

    async def validate_and_enrich_address(
        self, user_id: UserId, postal_code: str,
    ) -> UserSnapshot | None:
        """Re-run enrichment for a user. The address changes only when one is found."""
        _require(user_id, "user_id")
        _require(postal_code, "postal_code")
        async with self._scope() as repo:
            if not await repo.exists_by_id(user_id):
                return None

        address = await self._lookup.lookup(postal_code)

        async with self._scope() as repo:
            user = await repo.find_by_id(user_id)
            if user is None:
                return None
            if address is not None:
                user.replace_address(address)
            return to_snapshot(await repo.save(user))

    async def _enrich(self, postal_code: str | None) -> AddressData | None:
        if is_blank(postal_code):
            return None
        address = await self._lookup.lookup(postal_code)
        if address is None:
            logger.info(
                "Postal code could not be resolved; address omitted",
                extra={"postal_code": postal_code},
            )
        return address

    # ─── Queries ────────────────────────────────────────────────

    async def find_by_id(self, user_id: UserId) -> UserSnapshot | None:
        _require(user_id, "user_id")
        async with self._scope() as repo:
            user = await repo.find_by_id(user_id)
            return to_snapshot(user) if user else None

    async def find_by_email(self, email: str) -> UserSnapshot | None:
        _require(email, "email")
        async with self._scope() as repo:
            user = await repo.find_by_email(email)
            return to_snapshot(user) if user else None

    async def find_all(self, page_request: PageRequest) -> Page[UserSnapshot]:
        _require(page_request, "page_request")
        async with self._scope() as repo:
            page = await repo.find_page(page_request)
            return page.map(to_snapshot)

    async def search_by_name(
        self, fragment: str, page_request: PageRequest,
    ) -> Page[UserSnapshot]:
        _require(fragment, "fragment")
        _require(page_request, "page_request")
        async with self._scope() as repo:
            page = await repo.find_by_name_contains(fragment, page_request)
            return page.map(to_snapshot)

    async def get_statistics(self) -> UserStatistics:
        async with self._scope() as repo:
            total = await repo.count()
            with_address = await repo.count_with_complete_address()
        return compute_user_stats(total, with_address)

    # ─── Delete ─────────────────────────────────────────────────

    async def delete_user(self, user_id: UserId) -> bool:
        """True when a row existed and was removed; False on every later call."""
        _require(user_id, "user_id")
        async with self._scope() as repo:
            deleted = await repo.delete_by_id(user_id)
        if deleted:
            logger.info(f"Deleted user {user_id}", extra={"user_id": user_id})
        return deleted

    # ─── Batch ──────────────────────────────────────────────────

    async def create_users_batch(self, commands: list[CreateUserCommand]) -> str:
        """Create every user independently; summary tokens follow input order."""
        _require(commands, "commands")
        logger.info(
            f"Processing batch of {len(commands)} users",
            extra={"batch_size": len(commands)},
        )
        outcomes = await self._pool.map_ordered(self.create_user, commands)
        tokens = []
        for command, outcome in zip(commands, outcomes):
            if not outcome.ok:
                tokens.append(failed_token(
                    command.email, f"error: {type(outcome.error).__name__}",
                ))
            elif outcome.value is None:
                tokens.append(failed_token(command.email, CONFLICT_REASON))
            else:
                tokens.append(created_token(outcome.value.name))
        return format_creation_summary(tokens)

    async def validate_addresses_batch(self, postal_codes: list[str]) -> str:
        """Look every code up concurrently; one Valid/Invalid token per input."""
        _require(postal_codes, "postal_codes")
        outcomes = await self._pool.map_ordered(self._lookup.lookup, postal_codes)
        tokens = [
            address_check_token(code, outcome.ok and outcome.value is not None)
            for code, outcome in zip(postal_codes, outcomes)
        ]
        return format_validation_summary(tokens)
