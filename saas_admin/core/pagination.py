"""
Shared pagination, search and sorting for the /admin collection endpoints.

Every list endpoint returns the same envelope:

    {"success": true, "data": {"items": [...], "current_page": 1,
                               "last_page": 3, "total": 42, "per_page": 15}}
"""
import math
from typing import Any, Generic, TypeVar
from fastapi import HTTPException, status
from pydantic import BaseModel
from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from saas_admin.core import config


T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    items: list[T]
    current_page: int
    last_page: int
    total: int
    per_page: int


class PageEnvelope(BaseModel, Generic[T]):
    success: bool = True
    data: Page[T]


class DataEnvelope(BaseModel, Generic[T]):
    success: bool = True
    message: str | None = None
    data: T


def apply_search(query: Select, search: str | None, *columns) -> Select:
    """Case-insensitive substring match over any of `columns`."""
    if not search or not search.strip():
        return query
    pattern = f"%{search.strip()}%"
    return query.where(or_(*(column.ilike(pattern) for column in columns)))


def apply_sorting(query: Select, model, sort_by: str, sort_order: str, allowed: tuple[str, ...]) -> Select:
    """Order by an allowed column; rejects anything else with 400."""
    if sort_by not in allowed:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot sort by '{sort_by}'. Allowed: {', '.join(allowed)}"
        )
    column = getattr(model, sort_by)
    ordered = column.desc() if sort_order == "desc" else column.asc()
    # id breaks ties so pages do not overlap
    return query.order_by(ordered, model.id.asc())


async def paginate(session: AsyncSession, query: Select, page: int = 1, per_page: int = config.DEFAULT_PER_PAGE) -> dict[str, Any]:
    """
    Run `query` for one page.

    Returns:
        dict with items (ORM rows), current_page, last_page, total, per_page.
        last_page is at least 1 even for an empty result.
    """
    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = await session.scalar(count_query) or 0

    offset = (page - 1) * per_page
    result = await session.execute(query.limit(per_page).offset(offset))
    items = result.scalars().unique().all()

    return {
        "items": list(items),
        "current_page": page,
        "last_page": max(1, math.ceil(total / per_page)),
        "total": total,
        "per_page": per_page,
    }


async def count_by(session: AsyncSession, column) -> dict[str, int]:
    """Row counts grouped by `column`, NULL keys skipped."""
    result = await session.execute(
        select(column, func.count()).where(column.is_not(None)).group_by(column)
    )
    return {str(key): count for key, count in result.all()}
