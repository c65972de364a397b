from datetime import datetime
from typing import Iterable
from sqlalchemy import select, func, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession
from app.domain.inventory.models import TicketCategory, TicketType, Ticket


def _available():
    return Ticket.transaction_id.is_(None), Ticket.live()


async def get_category(db: AsyncSession, category_id: int) -> TicketCategory | None:
    return await db.get(TicketCategory, category_id)


async def get_ticket_type(db: AsyncSession, ticket_type_id: int, *, for_update: bool = False) -> TicketType | None:
    stmt = select(TicketType).where(TicketType.id == ticket_type_id, TicketType.live())
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalars().first()


async def list_ticket_types_by_period(db: AsyncSession, period_id: int) -> list[TicketType]:
    stmt = (
        select(TicketType)
        .where(TicketType.period_id == period_id, TicketType.live())
        .order_by(TicketType.id)
    )
    result = await db.execute(stmt)
    return result.scalars().all()


async def list_ticket_type_ids_by_periods(db: AsyncSession, period_ids: Iterable[int]) -> list[int]:
    period_ids = list(period_ids)
    if not period_ids:
        return []
    result = await db.scalars(
        select(TicketType.id)
        .where(TicketType.period_id.in_(period_ids), TicketType.live())
        .with_for_update()
    )
    return list(result.all())


async def create_ticket_type(db: AsyncSession, data: dict) -> TicketType:
    ticket_type = TicketType(**data)
    db.add(ticket_type)
    return ticket_type


async def update_ticket_type(ticket_type: TicketType, data: dict) -> TicketType:
    for key, value in data.items():
        setattr(ticket_type, key, value)
    return ticket_type


async def count_available_tickets(db: AsyncSession, ticket_type_id: int) -> int:
    count = await db.scalar(
        select(func.count(Ticket.id))
        .where(Ticket.ticket_type_id == ticket_type_id, *_available())
    )
    return int(count or 0)


async def insert_tickets(db: AsyncSession, ticket_type_id: int, codes: list[str]) -> list[int]:
    """
    Inserts one unsold ticket per code. Codes that already exist are skipped, never overwritten;
    only ids of the rows actually inserted are returned.
    """
    if not codes:
        return []
    result = await db.execute(
        insert(Ticket)
        .values([{"ticket_type_id": ticket_type_id, "ticket_code": code} for code in codes])
        .on_conflict_do_nothing(index_elements=[Ticket.ticket_code])
        .returning(Ticket.id)
    )
    return list(result.scalars().all())


async def lock_oldest_available_ticket_ids(
        db: AsyncSession,
        ticket_type_id: int,
        limit: int,
        *,
        exclude_ids: Iterable[int] = ()
) -> list[int]:
    stmt = (
        select(Ticket.id)
        .where(Ticket.ticket_type_id == ticket_type_id, *_available())
        .order_by(Ticket.created_at, Ticket.id)
        .limit(limit)
        .with_for_update()
    )
    exclude_ids = list(exclude_ids)
    if exclude_ids:
        stmt = stmt.where(Ticket.id.notin_(exclude_ids))
    result = await db.scalars(stmt)
    return list(result.all())


async def soft_delete_available_tickets(db: AsyncSession, ticket_ids: Iterable[int], deleted_at: datetime) -> int:
    ticket_ids = list(ticket_ids)
    if not ticket_ids:
        return 0
    result = await db.execute(
        update(Ticket)
        .where(Ticket.id.in_(ticket_ids), *_available())
        .values(deleted_at=deleted_at)
    )
    return int(result.rowcount or 0)


async def soft_delete_tickets_by_types(db: AsyncSession, ticket_type_ids: Iterable[int], deleted_at: datetime) -> int:
    ticket_type_ids = list(ticket_type_ids)
    if not ticket_type_ids:
        return 0
    result = await db.execute(
        update(Ticket)
        .where(Ticket.ticket_type_id.in_(ticket_type_ids), Ticket.live())
        .values(deleted_at=deleted_at)
    )
    return int(result.rowcount or 0)


async def soft_delete_ticket_types(db: AsyncSession, ticket_type_ids: Iterable[int], deleted_at: datetime) -> int:
    ticket_type_ids = list(ticket_type_ids)
    if not ticket_type_ids:
        return 0
    result = await db.execute(
        update(TicketType)
        .where(TicketType.id.in_(ticket_type_ids), TicketType.live())
        .values(deleted_at=deleted_at)
    )
    return int(result.rowcount or 0)


async def lock_available_tickets(db: AsyncSession, ticket_ids: Iterable[int]) -> list[Ticket]:
    """Row-locks the requested tickets that are still live and unsold under a live ticket type."""
    result = await db.scalars(
        select(Ticket)
        .join(TicketType, TicketType.id == Ticket.ticket_type_id)
        .where(Ticket.id.in_(list(ticket_ids)), TicketType.live(), *_available())
        .order_by(Ticket.id)
        .with_for_update(of=Ticket)
    )
    return list(result.all())


async def bind_tickets(db: AsyncSession, ticket_ids: Iterable[int], transaction_id: int, buyer_id: int) -> int:
    result = await db.execute(
        update(Ticket)
        .where(Ticket.id.in_(list(ticket_ids)), *_available())
        .values(transaction_id=transaction_id, buyer_id=buyer_id)
    )
    return int(result.rowcount or 0)


async def release_tickets(db: AsyncSession, transaction_id: int) -> list[tuple[int, int]]:
    """Unbinds every ticket of the transaction; returns (ticket_id, ticket_type_id) pairs."""
    result = await db.execute(
        update(Ticket)
        .where(Ticket.transaction_id == transaction_id)
        .values(transaction_id=None, buyer_id=None)
        .returning(Ticket.id, Ticket.ticket_type_id)
    )
    return [(ticket_id, ticket_type_id) for ticket_id, ticket_type_id in result.all()]


def tickets_by_type_stmt(ticket_type_id: int, *, available_only: bool):
    stmt = select(Ticket).where(Ticket.ticket_type_id == ticket_type_id, Ticket.live())
    if available_only:
        stmt = stmt.where(Ticket.transaction_id.is_(None))
    return stmt
