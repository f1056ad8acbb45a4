"""Pydantic base classes shared by request and view schemas.

JSON bodies use camelCase field names while Python code uses snake_case;
both spellings are accepted on input.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Generic, TypeVar

from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from projecttracker.database.models.base import as_utc
from projecttracker.database.queries.paging import Page

T = TypeVar("T")

# Stores without timezone support hand back naive UTC values
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class CamelModel(BaseModel):
    """Base for request bodies."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


class ViewModel(BaseModel):
    """Base for immutable read projections.

    Views are frozen so a cached instance can be handed to many readers.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        frozen=True,
    )


class PageView(ViewModel, Generic[T]):
    """One page of results as returned by the HTTP API."""

    items: list[T]
    page: int
    size: int
    total_items: int
    total_pages: int

    @classmethod
    def from_page(cls, page: Page[T]) -> PageView[T]:
        return cls(
            items=page.items,
            page=page.page,
            size=page.size,
            total_items=page.total,
            total_pages=page.total_pages,
        )
