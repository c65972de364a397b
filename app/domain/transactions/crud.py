from datetime import datetime
from typing import Iterable
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from app.domain.transactions.models import Transaction
from app.domain.inventory.models import Ticket


async def get_transaction_by_id(
        db: AsyncSession,
        transaction_id: int,
        *,
        for_update: bool = False
) -> Transaction | None:
    stmt = select(Transaction).where(Transaction.id == transaction_id, Transaction.live())
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalars().first()


async def create_transaction(db: AsyncSession, data: dict) -> Transaction:
    transaction = Transaction(**data)
    db.add(transaction)
    return transaction


def tickets_count_subquery():
    return (
        select(func.count(Ticket.id))
        .where(Ticket.transaction_id == Transaction.id)
        .correlate(Transaction)
        .scalar_subquery()
    )


def transactions_filter(
        *,
        user_id: int | None = None,
        statuses: Iterable | None = None,
        payment_method=None,
        created_from: datetime | None = None,
        created_to: datetime | None = None
) -> list:
    where = [Transaction.live()]
    if user_id is not None:
        where.append(Transaction.user_id == user_id)
    if statuses is not None:
        where.append(Transaction.status.in_(list(statuses)))
    if payment_method is not None:
        where.append(Transaction.payment_method == payment_method)
    if created_from is not None:
        where.append(Transaction.created_at >= created_from)
    if created_to is not None:
        where.append(Transaction.created_at <= created_to)
    return where
