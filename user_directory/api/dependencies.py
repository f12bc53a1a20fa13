"""API Dependencies — FastAPI providers for the user directory service.

Invariants:
    - Shared collaborators (lookup client, task pool) live on app.state, created in lifespan
    - A service instance is cheap: built per request around the shared collaborators

Design Decisions:
    - Single dependency to override in tests (ADR: same pattern as get_db overrides)
"""

from fastapi import Request

from user_directory.infrastructure.database import get_db_manager
from user_directory.infrastructure.user_repository import user_repository_scope
from user_directory.services.user_directory import UserDirectoryService


def get_user_service(request: Request) -> UserDirectoryService:
    """FastAPI dependency for the directory workflow."""
    return UserDirectoryService(
        repository_scope=user_repository_scope(get_db_manager()),
        address_lookup=request.app.state.address_lookup,
        task_pool=request.app.state.task_pool,
    )
