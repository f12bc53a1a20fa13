"""Pagination — page requests, sort parsing, and page results.

Invariants:
    - Page index is zero-based; size is 1..MAX_PAGE_SIZE
    - Sort orders only reference SortField members (no arbitrary column names reach SQL)
    - Page.total_pages is derived, never stored

Design Decisions:
    - `field,dir` sort syntax, repeatable: familiar to clients of Spring-style APIs
    - Generic Page[T] with map(): repository pages of ORM rows become snapshot pages
      without re-counting
"""

from dataclasses import dataclass, field
from typing import Callable, Generic, TypeVar

from user_directory.core.domain_types import SortDirection, SortField

T = TypeVar("T")
U = TypeVar("U")

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class SortOrder:
    field: SortField
    direction: SortDirection = SortDirection.ASC


@dataclass(frozen=True)
class PageRequest:
    page: int = 0
    size: int = DEFAULT_PAGE_SIZE
    sort: tuple[SortOrder, ...] = ()

    def __post_init__(self):
        if self.page < 0:
            raise ValueError("page must be >= 0")
        if not 1 <= self.size <= MAX_PAGE_SIZE:
            raise ValueError(f"size must be between 1 and {MAX_PAGE_SIZE}")

    @property
    def offset(self) -> int:
        return self.page * self.size


@dataclass(frozen=True)
class Page(Generic[T]):
    items: list[T] = field(default_factory=list)
    page: int = 0
    size: int = DEFAULT_PAGE_SIZE
    total_elements: int = 0

    @property
    def total_pages(self) -> int:
        return -(-self.total_elements // self.size) if self.size else 0

    def map(self, fn: Callable[[T], U]) -> "Page[U]":
        return Page(
            items=[fn(item) for item in self.items],
            page=self.page,
            size=self.size,
            total_elements=self.total_elements,
        )


def parse_sort(raw: str) -> SortOrder:
    """Parse "name,desc" / "email" into a SortOrder. Raises ValueError."""
    parts = [p.strip().lower() for p in raw.split(",")]
    if not parts[0] or len(parts) > 2:
        raise ValueError(f"invalid sort expression '{raw}'")
    try:
        sort_field = SortField(parts[0])
        direction = SortDirection(parts[1]) if len(parts) == 2 else SortDirection.ASC
    except ValueError:
        raise ValueError(f"invalid sort expression '{raw}'") from None
    return SortOrder(sort_field, direction)
