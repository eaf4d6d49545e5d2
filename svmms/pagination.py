"""
Page/limit pagination backed by a COUNT(*) companion query, and the
helper that turns joined rows into response models.
"""
import math

from fastapi import Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from svmms.config import get_settings
from svmms.schemas.common import Pagination

settings = get_settings()


class PageParams:
    """Dependency that reads ``page`` and ``limit`` from the query string."""

    def __init__(
        self,
        page: int = Query(1, ge=1),
        limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    ):
        self.page = page
        self.limit = limit

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


async def paginate(db: AsyncSession, stmt: Select, params: PageParams):
    """
    Run ``stmt`` for one page and count the full result set.

    Returns the page's rows and the pagination metadata.
    """
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = (await db.execute(count_stmt)).scalar_one()
    result = await db.execute(stmt.offset(params.offset).limit(params.limit))
    pagination = Pagination(
        currentPage=params.page,
        totalPages=math.ceil(total / params.limit) if total else 0,
        totalItems=total,
        itemsPerPage=params.limit,
    )
    return result.all(), pagination


def flatten_row(row, schema_cls):
    """
    Build ``schema_cls`` from a row holding an ORM entity followed by
    labelled display columns (``customer_name``, ``vin`` ...).
    """
    entity = row[0]
    extra = {key: value for key, value in row._mapping.items() if key != type(entity).__name__}
    return schema_cls.model_validate(entity).model_copy(update=extra)
