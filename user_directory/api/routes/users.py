"""User Routes — REST surface of the user directory.

Invariants:
    - Input shape is validated by Pydantic before reaching the route handler
    - Workflow None/False results are translated here: not found -> 404, conflict -> 409
    - Static paths (/search, /by-email, /stats, batch endpoints) are declared before
      /{user_id} so they are never captured by the id route

Design Decisions:
    - Routes raise domain errors; the global handlers render the envelope
      (ADR: one error shape for every endpoint)
    - Batch endpoints return {"summary": ...} JSON rather than bare text
"""

from fastapi import APIRouter, Depends, Query, Response, status

from user_directory.api.dependencies import get_user_service
from user_directory.core.domain_types import UserId
from user_directory.core.errors import (
    ErrorContext,
    FieldValidationError,
    ResourceNotFoundError,
    UserConflictError,
)
from user_directory.core.pagination import (
    DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, PageRequest, parse_sort,
)
from user_directory.schemas.user import (
    BatchSummaryResponse,
    UserCreate,
    UserPage,
    UserResponse,
    UserStatsResponse,
    UserUpdate,
    POSTAL_CODE_PATTERN,
)
from user_directory.services.user_directory import UserDirectoryService

router = APIRouter(prefix="/api/v1/users", tags=["users"])


def page_request(
    page: int = Query(0, ge=0),
    size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    sort: list[str] = Query(default=[]),
) -> PageRequest:
    """Build a PageRequest from `page`, `size` and repeatable `sort=field,dir`."""
    try:
        orders = tuple(parse_sort(s) for s in sort)
    except ValueError as e:
        raise FieldValidationError(str(e), "sort")
    return PageRequest(page=page, size=size, sort=orders)


def _not_found(user_id: int) -> ResourceNotFoundError:
    return ResourceNotFoundError(
        "User", str(user_id), ErrorContext(user_id=user_id),
    )


@router.post(
    "", response_model=UserResponse, status_code=status.HTTP_201_CREATED,
)
async def create_user(
    body: UserCreate,
    service: UserDirectoryService = Depends(get_user_service),
):
    """Create a user; enrich the address when a postal code is given."""
    snapshot = await service.create_user(body.to_command())
    if snapshot is None:
        raise UserConflictError(context=ErrorContext(email=body.email))
    return UserResponse.from_snapshot(snapshot)


@router.get("", response_model=UserPage)
async def list_users(
    pagination: PageRequest = Depends(page_request),
    service: UserDirectoryService = Depends(get_user_service),
):
    """List users page by page."""
    return UserPage.from_page(await service.find_all(pagination))


@router.get("/search", response_model=UserPage)
async def search_users(
    name: str = Query("", max_length=100),
    pagination: PageRequest = Depends(page_request),
    service: UserDirectoryService = Depends(get_user_service),
):
    """Case-insensitive name search."""
    return UserPage.from_page(await service.search_by_name(name, pagination))


@router.get("/by-email", response_model=UserResponse)
async def get_user_by_email(
    email: str = Query(..., min_length=1),
    service: UserDirectoryService = Depends(get_user_service),
):
    snapshot = await service.find_by_email(email)
    if snapshot is None:
        raise ResourceNotFoundError("User", email, ErrorContext(email=email))
    return UserResponse.from_snapshot(snapshot)


@router.get("/stats", response_model=UserStatsResponse)
async def get_user_stats(
    service: UserDirectoryService = Depends(get_user_service),
):
    """Totals and address completion rate, computed on every call."""
    return UserStatsResponse.from_stats(await service.get_statistics())


@router.post("/batch-process", response_model=BatchSummaryResponse)
async def process_batch_users(
    body: list[UserCreate],
    service: UserDirectoryService = Depends(get_user_service),
):
    """Create many users concurrently; per-item failures are reported, not raised."""
    summary = await service.create_users_batch([b.to_command() for b in body])
    return BatchSummaryResponse(summary=summary)


@router.post("/validate-addresses", response_model=BatchSummaryResponse)
async def validate_addresses(
    body: list[str],
    service: UserDirectoryService = Depends(get_user_service),
):
    summary = await service.validate_addresses_batch(body)
    return BatchSummaryResponse(summary=summary)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int, service: UserDirectoryService = Depends(get_user_service),
):
    snapshot = await service.find_by_id(UserId(user_id))
    if snapshot is None:
        raise _not_found(user_id)
    return UserResponse.from_snapshot(snapshot)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    body: UserUpdate,
    service: UserDirectoryService = Depends(get_user_service),
):
    """Partial update; an email already owned by someone else is ignored."""
    snapshot = await service.update_user(UserId(user_id), body.to_command())
    if snapshot is None:
        raise _not_found(user_id)
    return UserResponse.from_snapshot(snapshot)


@router.post("/{user_id}/validate-address", response_model=UserResponse)
async def validate_user_address(
    user_id: int,
    postal_code: str = Query(..., pattern=POSTAL_CODE_PATTERN),
    service: UserDirectoryService = Depends(get_user_service),
):
    """Re-resolve the user's address from a postal code."""
    snapshot = await service.validate_and_enrich_address(
        UserId(user_id), postal_code,
    )
    if snapshot is None:
        raise _not_found(user_id)
    return UserResponse.from_snapshot(snapshot)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int, service: UserDirectoryService = Depends(get_user_service),
):
    if not await service.delete_user(UserId(user_id)):
        raise _not_found(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
