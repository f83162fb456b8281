"""
Offset-based pagination over an already filtered, already sorted list.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

from core.models.errors import FilterError
from core.models.image import PaginationInfo
from core.utils.constants import DEFAULT_LIMIT, DEFAULT_OFFSET, MAX_LIMIT, MIN_LIMIT

T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    items: list[T]
    total_count: int
    info: PaginationInfo


class OffsetPagination:
    """
    Offset/limit slicing with validation.

    Typical usage:
    1. Validate offset and limit parameters
    2. Slice the full result list
    3. Return the page together with ``PaginationInfo`` for the response
    """

    @staticmethod
    def validate(limit: int, offset: int) -> None:
        """
        Reject page sizes outside [MIN_LIMIT, MAX_LIMIT] and negative offsets.

        Raises:
            FilterError: If either parameter is out of range
        """
        if not MIN_LIMIT <= limit <= MAX_LIMIT:
            raise FilterError(
                message=f"Limit must be between {MIN_LIMIT} and {MAX_LIMIT}",
                details={"limit": limit},
            )

        if offset < 0:
            raise FilterError(
                message="Offset must be zero or a positive integer",
                details={"offset": offset},
            )

    @classmethod
    def paginate(
        cls,
        items: list[T],
        offset: int = DEFAULT_OFFSET,
        limit: int = DEFAULT_LIMIT,
    ) -> Page[T]:
        """
        Slice ``items`` and describe the slice.

        Example:
            paginate([1, 2, 3, 4, 5], offset=0, limit=2)
            -> Page([1, 2], 5, PaginationInfo(limit=2, offset=0, has_more=True, next_offset=2))
        """
        cls.validate(limit, offset)

        total_count = len(items)
        page_items = items[offset : offset + limit]
        has_more = offset + limit < total_count

        return Page(
            items=page_items,
            total_count=total_count,
            info=PaginationInfo(
                limit=limit,
                offset=offset,
                has_more=has_more,
                next_offset=offset + limit if has_more else None,
            ),
        )
