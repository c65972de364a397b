from typing import Generic, TypeVar, Any
from pydantic import BaseModel, computed_field
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession


T = TypeVar("T")

MAX_PAGE_SIZE = 200


class PageDTO(BaseModel, Generic[T]):
    items: list[T]
    total: int
    page: int
    page_size: int

    @computed_field
    @property
    def pages(self) -> int:
        if self.page_size <= 0:
            return 1
        return max(1, (self.total + self.page_size - 1) // self.page_size)

    @computed_field
    @property
    def has_next(self) -> bool:
        return self.page < self.pages


async def paginate(
        db: AsyncSession,
        base_stmt,
        *,
        page: int = 1,
        page_size: int = 20,
        where: list[Any] | None = None,
        order_by: list[Any] | None = None,
        scalars: bool = True
):
    page = max(1, int(page))
    page_size = max(1, min(MAX_PAGE_SIZE, int(page_size)))

    stmt = base_stmt
    if where:
        stmt = stmt.where(*where)
    if order_by:
        stmt = stmt.order_by(*order_by)

    total_subquery = stmt.order_by(None).limit(None).offset(None)
    total = await db.scalar(select(func.count()).select_from(total_subquery.subquery()))

    stmt = stmt.limit(page_size).offset((page - 1) * page_size)

    if scalars:
        result = await db.scalars(stmt)
    else:
        result = await db.execute(stmt)

    items = result.all()
    return items, int(total or 0)
