"""
Pagination helpers shared by every list endpoint.
"""
from typing import Any, Callable, List, Optional
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

MAX_PAGE_SIZE = 100


async def paginate(
    db: AsyncSession,
    query: Select,
    page: int = 1,
    page_size: int = 10,
    transform: Optional[Callable[[Any], Any]] = None,
) -> dict:
    """
    Apply offset pagination to a SELECT.

    Args:
        db: Database session
        query: Base query, already filtered and ordered
        page: Page number (1-indexed)
        page_size: Items per page, capped at MAX_PAGE_SIZE
        transform: Optional callable applied to every row (e.g. a response builder)

    Returns:
        Dictionary with items, total, page, page_size, total_pages, has_next, has_previous
    """
    page = max(1, page)
    page_size = max(1, min(MAX_PAGE_SIZE, page_size))

    count_stmt = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await db.execute(count_stmt)).scalar() or 0

    result = await db.execute(query.offset((page - 1) * page_size).limit(page_size))
    # Single-entity queries yield the entity, joined ones yield a tuple
    items = [row[0] if len(row) == 1 else tuple(row) for row in result.all()]
    if transform is not None:
        items = [transform(item) for item in items]

    return create_paginated_response(items, total, page, page_size)


def create_paginated_response(items: List[Any], total: int, page: int, page_size: int) -> dict:
    total_pages = (total + page_size - 1) // page_size if total > 0 else 1

    return {
        "items": items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_previous": page > 1
    }
