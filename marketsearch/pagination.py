"""Page slicing with bounds validation."""
from __future__ import annotations

from typing import List, Sequence, TypeVar

from .errors import ValidationError

T = TypeVar("T")


def get_page(items: Sequence[T], page: int, page_size: int) -> List[T]:
    """Return the ``page``-th slice of ``items`` (zero based).

    A page that starts exactly at ``len(items)`` is valid and empty; only a
    start beyond the end is rejected.
    """

    if page < 0:
        raise ValidationError(f"Page cannot be lower than 0. Provided {page}")
    if page_size < 1:
        raise ValidationError(f"Page size cannot be lower than 1. Provided {page_size}")
    start = page * page_size
    if start > len(items):
        raise ValidationError(
            f"Page {page} does not exist. It starts with element {start} when only {len(items)} exist"
        )
    return list(items[start : min(start + page_size, len(items))])
