"""Offset/limit paging helpers shared by list queries.

A PageRequest carries a zero-based page number, a page size, and an optional
sort. Each query declares which attribute names it allows sorting on; an
unknown sort field is a validation failure rather than a silent fallback.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, func
from sqlalchemy.ext.asyncio import AsyncSession

from projecttracker.errors import ValidationFailedError

T = TypeVar("T")

MAX_PAGE_SIZE = 100


class SortDirection(str, enum.Enum):
    """Sort order for list queries."""

    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class PageRequest:
    """Paging and sorting parameters.

    Attributes:
        page: Zero-based page index.
        size: Number of items per page (1-100).
        sort_field: Attribute to sort by, or None for the query default.
        direction: Sort direction, or None for the query default.
    """

    page: int = 0
    size: int = 20
    sort_field: str | None = None
    direction: SortDirection | None = None

    def __post_init__(self) -> None:
        errors = {}
        if self.page < 0:
            errors["page"] = "must be greater than or equal to 0"
        if not 1 <= self.size <= MAX_PAGE_SIZE:
            errors["size"] = f"must be between 1 and {MAX_PAGE_SIZE}"
        if errors:
            raise ValidationFailedError("Invalid paging parameters", errors)

    @property
    def offset(self) -> int:
        return self.page * self.size

    @classmethod
    def parse(cls, page: int = 0, size: int = 20, sort: str | None = None) -> PageRequest:
        """Build a PageRequest from query parameters.

        Args:
            page: Zero-based page index.
            size: Page size.
            sort: "field" or "field,asc" / "field,desc".
        """
        sort_field = None
        direction = None
        if sort:
            parts = [part.strip() for part in sort.split(",")]
            sort_field = parts[0] or None
            if len(parts) > 1 and parts[1]:
                try:
                    direction = SortDirection(parts[1].lower())
                except ValueError:
                    raise ValidationFailedError(
                        "Invalid sort direction",
                        {"sort": f"direction must be one of {[d.value for d in SortDirection]}"},
                    ) from None
        return cls(page=page, size=size, sort_field=sort_field, direction=direction)


@dataclass
class Page(Generic[T]):
    """One page of results.

    Attributes:
        items: Items on this page.
        page: Zero-based page index.
        size: Requested page size.
        total: Total number of matching items across all pages.
    """

    items: list[T] = field(default_factory=list)
    page: int = 0
    size: int = 20
    total: int = 0

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.size) if self.size else 0

    def map(self, fn: Any) -> Page[Any]:
        """Return a new page with fn applied to every item."""
        return Page(items=[fn(item) for item in self.items], page=self.page, size=self.size, total=self.total)


async def fetch_page(
    session: AsyncSession,
    stmt: Select[Any],
    page_request: PageRequest,
    sortable: dict[str, Any],
    default_sort: tuple[str, SortDirection],
) -> Page[Any]:
    """Execute a select statement one page at a time.

    Args:
        session: Active async database session.
        stmt: Filtered select of ORM entities, without ordering or limits.
        page_request: Paging and sorting parameters.
        sortable: Mapping of allowed sort field names to columns; must
            include "id".
        default_sort: Sort field and direction when the request has none.

    Returns:
        Page of ORM entities.

    Raises:
        ValidationFailedError: If the requested sort field is not allowed.
    """
    sort_field = page_request.sort_field or default_sort[0]
    if sort_field not in sortable:
        raise ValidationFailedError(
            "Invalid sort field",
            {"sort": f"must be one of {sorted(sortable)}"},
        )
    direction = page_request.direction or default_sort[1]
    column = sortable[sort_field]
    order = column.desc() if direction == SortDirection.DESC else column.asc()

    id_column = sortable["id"]
    count_stmt = stmt.with_only_columns(func.count(id_column)).order_by(None)
    total = (await session.execute(count_stmt)).scalar_one()

    # Secondary ordering on the id keeps paging stable across ties
    ordering = [order] if id_column is column else [order, id_column.asc()]
    page_stmt = stmt.order_by(*ordering).offset(page_request.offset).limit(page_request.size)
    result = await session.execute(page_stmt)

    return Page(
        items=list(result.unique().scalars().all()),
        page=page_request.page,
        size=page_request.size,
        total=total,
    )
