"""User Directory Service — create/update/delete workflow against a real SQLite store.

Invariants:
    - Conflicts and unknown ids come back as None/False, never as exceptions
    - Lookup failures never block a write
    - Update ignores blank fields and emails owned by another user
    - Batch summaries keep input order

Design Decisions:
    - Real ORM + repository on in-memory SQLite; only the postal-code lookup is faked
"""

import asyncio

import pytest

from user_directory.core.domain_types import SortDirection, SortField, UserId
from user_directory.core.pagination import PageRequest, SortOrder
from user_directory.core.user_records import CreateUserCommand, UpdateUserCommand
from user_directory.infrastructure.database import DatabaseSessionManager
from user_directory.infrastructure.task_pool import IOTaskPool
from user_directory.infrastructure.user_repository import (
    SqlUserRepository, user_repository_scope,
)
from user_directory.services.user_directory import UserDirectoryService


def _command(n: int, postal_code: str | None = None, **overrides) -> CreateUserCommand:
    fields = {
        "name": f"User {n}",
        "email": f"user{n}@example.com",
        "cpf": f"{n:011d}",
        "postal_code": postal_code,
    }
    fields.update(overrides)
    return CreateUserCommand(**fields)


# -- create_user ---------------------------------------------------------------


async def test_create_returns_snapshot_with_assigned_id(service):
    snapshot = await service.create_user(_command(1))
    assert snapshot is not None
    assert snapshot.id > 0
    assert snapshot.name == "User 1"
    assert snapshot.address is None
    assert snapshot.created_at == snapshot.updated_at


async def test_create_with_same_email_is_rejected(service):
    first = await service.create_user(_command(1))
    second = await service.create_user(_command(2, email="user1@example.com"))
    assert first is not None
    assert second is None


async def test_create_with_same_cpf_is_rejected(service):
    await service.create_user(_command(1))
    assert await service.create_user(_command(2, cpf="00000000001")) is None


async def test_rejected_create_leaves_store_untouched(service):
    await service.create_user(_command(1))
    await service.create_user(_command(2, email="user1@example.com"))
    stats = await service.get_statistics()
    assert stats.total_users == 1


async def test_conflict_is_checked_before_lookup(service, address_lookup):
    await service.create_user(_command(1))
    await service.create_user(
        _command(2, email="user1@example.com", postal_code="01310100"),
    )
    assert address_lookup.calls == []


async def test_create_attaches_enriched_address(service, address_lookup):
    snapshot = await service.create_user(_command(1, postal_code="01310-100"))
    assert address_lookup.calls == ["01310100"]
    assert snapshot.address is not None
    assert snapshot.address.city == "São Paulo"
    assert snapshot.address.state == "SP"
    assert snapshot.address.postal_code == "01310100"


async def test_create_succeeds_without_address_when_lookup_misses(service, address_lookup):
    snapshot = await service.create_user(_command(1, postal_code="11111111"))
    assert address_lookup.calls == ["11111111"]
    assert snapshot is not None
    assert snapshot.address is None


async def test_blank_postal_code_skips_lookup(service, address_lookup):
    snapshot = await service.create_user(_command(1, postal_code="   "))
    assert snapshot is not None
    assert address_lookup.calls == []


async def test_create_then_find_by_id_round_trips(service):
    created = await service.create_user(_command(1, postal_code="01310100"))
    found = await service.find_by_id(created.id)
    assert found == created


async def test_store_constraint_rejects_losing_writer(service, monkeypatch):
    """A writer that slips past the pre-check is still rejected by the unique index."""
    await service.create_user(_command(1))

    async def _never_exists(self, value):
        return False

    monkeypatch.setattr(SqlUserRepository, "exists_by_email", _never_exists)
    assert await service.create_user(_command(2, email="user1@example.com")) is None
    assert (await service.get_statistics()).total_users == 1


async def test_create_with_none_command_fails_fast(service):
    with pytest.raises(TypeError):
        await service.create_user(None)


# -- update_user ---------------------------------------------------------------


async def test_update_unknown_id_returns_none(service):
    assert await service.update_user(UserId(999), UpdateUserCommand(name="X")) is None


async def test_update_unknown_id_does_not_call_lookup(service, address_lookup):
    await service.update_user(UserId(999), UpdateUserCommand(postal_code="01310100"))
    assert address_lookup.calls == []


async def test_update_applies_name_and_bumps_updated_at(service):
    created = await service.create_user(_command(1))
    updated = await service.update_user(created.id, UpdateUserCommand(name="Renamed"))
    assert updated.name == "Renamed"
    assert updated.updated_at > created.updated_at
    assert updated.created_at == created.created_at


async def test_update_blank_fields_are_noops(service):
    created = await service.create_user(_command(1))
    updated = await service.update_user(
        created.id, UpdateUserCommand(name="  ", email="", postal_code=" "),
    )
    assert updated.name == created.name
    assert updated.email == created.email
    assert updated.updated_at == created.updated_at


async def test_update_email_collision_is_silently_ignored(service):
    await service.create_user(_command(1, email="a@x.com"))
    y = await service.create_user(_command(2, email="b@x.com"))
    updated = await service.update_user(y.id, UpdateUserCommand(email="a@x.com"))
    assert updated is not None
    assert updated.email == "b@x.com"


async def test_update_email_to_free_address(service):
    created = await service.create_user(_command(1))
    updated = await service.update_user(created.id, UpdateUserCommand(email="new@x.com"))
    assert updated.email == "new@x.com"
    assert (await service.find_by_email("new@x.com")).id == created.id


async def test_update_postal_code_replaces_address_wholesale(service):
    created = await service.create_user(_command(1, postal_code="01310100"))
    updated = await service.update_user(created.id, UpdateUserCommand(postal_code="20040002"))
    assert updated.address.postal_code == "20040002"
    assert updated.address.city == "Rio de Janeiro"
    # SAO_PAULO had a complement, RIO has none: no field survives the replacement
    assert updated.address.complement is None


async def test_update_keeps_address_when_lookup_misses(service):
    created = await service.create_user(_command(1, postal_code="01310100"))
    updated = await service.update_user(created.id, UpdateUserCommand(postal_code="11111111"))
    assert updated.address == created.address


async def test_update_cpf_is_not_part_of_command(service):
    created = await service.create_user(_command(1))
    updated = await service.update_user(created.id, UpdateUserCommand(name="Other"))
    assert updated.cpf == created.cpf


# -- validate_and_enrich_address ----------------------------------------------


async def test_validate_and_enrich_sets_address(service):
    created = await service.create_user(_command(1))
    enriched = await service.validate_and_enrich_address(created.id, "20040-002")
    assert enriched.address.city == "Rio de Janeiro"


async def test_validate_and_enrich_unknown_user(service):
    assert await service.validate_and_enrich_address(UserId(42), "20040002") is None


async def test_validate_and_enrich_always_calls_lookup(service, address_lookup):
    created = await service.create_user(_command(1))
    await service.validate_and_enrich_address(created.id, "01310100")
    await service.validate_and_enrich_address(created.id, "01310100")
    assert address_lookup.calls == ["01310100", "01310100"]


# -- lookups and pages ---------------------------------------------------------


async def test_find_by_email_missing_returns_none(service):
    assert await service.find_by_email("nobody@example.com") is None


async def test_find_all_pages_in_insertion_order(service):
    for n in range(1, 6):
        await service.create_user(_command(n))
    page = await service.find_all(PageRequest(page=1, size=2))
    assert [s.name for s in page.items] == ["User 3", "User 4"]
    assert page.total_elements == 5
    assert page.total_pages == 3


async def test_find_all_honours_sort(service):
    await service.create_user(_command(1, name="bravo"))
    await service.create_user(_command(2, name="alpha"))
    await service.create_user(_command(3, name="charlie"))
    page = await service.find_all(
        PageRequest(sort=(SortOrder(SortField.NAME, SortDirection.DESC),)),
    )
    assert [s.name for s in page.items] == ["charlie", "bravo", "alpha"]


async def test_search_by_name_is_case_insensitive_substring(service):
    await service.create_user(_command(1, name="Maria Silva"))
    await service.create_user(_command(2, name="João SILVEIRA"))
    await service.create_user(_command(3, name="Pedro Souza"))
    page = await service.search_by_name("silv", PageRequest())
    assert [s.name for s in page.items] == ["Maria Silva", "João SILVEIRA"]


async def test_search_by_name_treats_wildcards_literally(service):
    await service.create_user(_command(1, name="Ana"))
    page = await service.search_by_name("%", PageRequest())
    assert page.items == []


# -- delete_user ---------------------------------------------------------------


async def test_delete_returns_true_exactly_once(service):
    created = await service.create_user(_command(1, postal_code="01310100"))
    assert await service.delete_user(created.id) is True
    assert await service.delete_user(created.id) is False
    assert await service.delete_user(created.id) is False
    assert await service.find_by_id(created.id) is None


async def test_delete_removes_owned_address(service, test_db):
    from sqlalchemy import func, select
    from user_directory.models.address import Address

    created = await service.create_user(_command(1, postal_code="01310100"))
    await service.delete_user(created.id)
    remaining = await test_db.scalar(select(func.count()).select_from(Address))
    assert remaining == 0


async def test_deleted_email_can_be_reused(service):
    created = await service.create_user(_command(1))
    await service.delete_user(created.id)
    assert await service.create_user(_command(1)) is not None


# -- statistics ----------------------------------------------------------------


async def test_statistics_on_empty_store(service):
    stats = await service.get_statistics()
    assert stats.total_users == 0
    assert stats.address_completion_rate == 0.0


async def test_statistics_count_only_complete_addresses(service):
    await service.create_user(_command(1, postal_code="01310100"))
    await service.create_user(_command(2, postal_code="20040002"))
    await service.create_user(_command(3, postal_code="70000000"))  # no city
    stats = await service.get_statistics()
    assert stats.total_users == 3
    assert stats.users_with_address == 2
    assert stats.users_without_address == 1
    assert stats.address_completion_rate == pytest.approx(66.666, rel=1e-3)


# -- batch operations ----------------------------------------------------------


async def test_batch_creation_lists_outcomes_in_input_order(service):
    summary = await service.create_users_batch([
        _command(1), _command(2), _command(3),
    ])
    assert summary == (
        "Processed 3 users: Created: User 1, Created: User 2, Created: User 3"
    )


async def test_batch_creation_records_conflicts_without_aborting(service):
    await service.create_user(_command(1))
    summary = await service.create_users_batch([
        _command(1, name="Dup"), _command(2), _command(3, email="user2@example.com"),
    ])
    assert summary == (
        "Processed 3 users: "
        "Failed: user1@example.com (email or cpf already in use), "
        "Created: User 2, "
        "Failed: user2@example.com (email or cpf already in use)"
    )
    assert (await service.get_statistics()).total_users == 2


async def test_batch_creation_of_empty_list(service):
    assert await service.create_users_batch([]) == "Processed 0 users: "


async def test_address_batch_preserves_input_order(test_db_manager, make_lookup):
    # First code resolves slowest, so completion order differs from input order
    lookup = make_lookup(
        delays={"01310100": 0.05, "20040002": 0.0},
    )
    svc = UserDirectoryService(
        user_repository_scope(test_db_manager), lookup, IOTaskPool(16),
    )
    summary = await svc.validate_addresses_batch(["01310100", "bad", "20040002"])
    assert summary == (
        "Address validation completed: "
        "Valid: 01310100, Invalid: bad, Valid: 20040002"
    )
    assert sorted(lookup.calls) == ["01310100", "20040002"]


async def test_address_batch_runs_items_concurrently(test_db_manager, make_lookup):
    codes = [f"{n:08d}" for n in range(10)]
    lookup = make_lookup(delays={c: 0.05 for c in codes})
    svc = UserDirectoryService(
        user_repository_scope(test_db_manager), lookup, IOTaskPool(16),
    )
    loop = asyncio.get_running_loop()
    started = loop.time()
    summary = await svc.validate_addresses_batch(codes)
    assert loop.time() - started < 0.4
    assert summary.count("Invalid: ") == 10


async def test_batch_creation_reports_unexpected_errors_and_continues(service, monkeypatch):
    original = SqlUserRepository.exists_by_email

    async def _flaky(self, email):
        if email == "boom@example.com":
            raise RuntimeError("connection dropped")
        return await original(self, email)

    monkeypatch.setattr(SqlUserRepository, "exists_by_email", _flaky)
    summary = await service.create_users_batch([
        _command(1), _command(2, email="boom@example.com"), _command(3),
    ])
    assert summary == (
        "Processed 3 users: Created: User 1, "
        "Failed: boom@example.com (error: RuntimeError), "
        "Created: User 3"
    )
    assert (await service.get_statistics()).total_users == 2


async def test_concurrent_batch_duplicates_create_exactly_one_user(tmp_path, address_lookup):
    # File-backed database: each batch item gets its own connection and they really overlap
    manager = DatabaseSessionManager(f"sqlite+aiosqlite:///{tmp_path / 'race.db'}")
    await manager.create_schema()
    svc = UserDirectoryService(
        user_repository_scope(manager), address_lookup, IOTaskPool(16),
    )
    try:
        summary = await svc.create_users_batch([
            _command(n, email="same@example.com") for n in range(1, 6)
        ])
        stats = await svc.get_statistics()
    finally:
        await manager.dispose()

    tokens = summary.removeprefix("Processed 5 users: ").split(", ")
    assert len(tokens) == 5
    assert sum(t.startswith("Created: ") for t in tokens) == 1
    assert sum(t.startswith("Failed: same@example.com (") for t in tokens) == 4
    assert stats.total_users == 1
