import pytest
from app.core.pagination import PageDTO


@pytest.mark.parametrize(
    "total, page_size, expected_pages",
    [
        (0, 10, 1),
        (10, 10, 1),
        (1, 10, 1),
        (0, 0, 1),
        (11, 10, 2),
        (20, 10, 2),
        (5, 2, 3),
        (100, -5, 1)
    ]
)
def test_pages_calculation(total, page_size, expected_pages):
    dto = PageDTO(items=[], total=total, page=1, page_size=page_size)
    assert dto.pages == expected_pages


@pytest.mark.parametrize(
    "total, page_size, page, expected_has_next",
    [
        (0, 10, 1, False),
        (10, 10, 1, False),
        (11, 10, 1, True),
        (11, 10, 2, False),
        (21, 10, 1, True),
        (21, 10, 3, False),
        (21, 0, 1, False),
        (21, 10, 5, False),
    ]
)
def test_has_next(total, page_size, page, expected_has_next):
    dto = PageDTO(items=[], total=total, page=page, page_size=page_size)
    assert dto.has_next == expected_has_next


@pytest.mark.asyncio
async def test_paginate_clamps_page_size_and_applies_offset(mocker):
    from sqlalchemy import select
    from app.core.pagination import paginate, MAX_PAGE_SIZE
    from app.domain.transactions.models import Transaction

    db = mocker.Mock()
    db.scalar = mocker.AsyncMock(return_value=450)
    db.scalars = mocker.AsyncMock(return_value=mocker.Mock(all=mocker.Mock(return_value=["a", "b"])))

    items, total = await paginate(db, select(Transaction), page=2, page_size=1000, order_by=[Transaction.id])

    assert items == ["a", "b"]
    assert total == 450
    stmt = db.scalars.await_args.args[0]
    assert stmt._limit == MAX_PAGE_SIZE
    assert stmt._offset == MAX_PAGE_SIZE


@pytest.mark.asyncio
async def test_paginate_rows_mode_uses_execute(mocker):
    from sqlalchemy import select
    from app.core.pagination import paginate
    from app.domain.transactions.models import Transaction

    db = mocker.Mock()
    db.scalar = mocker.AsyncMock(return_value=None)
    db.execute = mocker.AsyncMock(return_value=mocker.Mock(all=mocker.Mock(return_value=[])))

    items, total = await paginate(db, select(Transaction), page=0, page_size=0, scalars=False)

    assert items == []
    assert total == 0
    db.execute.assert_awaited_once()
