from datetime import datetime
from typing import Iterable
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from .models import Event, EventPeriod


async def get_event_by_id(db: AsyncSession, event_id: int, *, for_update: bool = False) -> Event | None:
    stmt = select(Event).where(Event.id == event_id, Event.live())
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalars().first()


async def get_period_by_id(
        db: AsyncSession,
        period_id: int,
        *,
        for_update: bool = False,
        refresh: bool = False
) -> EventPeriod | None:
    stmt = (
        select(EventPeriod)
        .join(Event, Event.id == EventPeriod.event_id)
        .where(EventPeriod.id == period_id, EventPeriod.live(), Event.live())
    )
    if for_update:
        stmt = stmt.with_for_update(of=EventPeriod)
    if refresh:
        stmt = stmt.execution_options(populate_existing=True)
    result = await db.execute(stmt)
    return result.scalars().first()


async def list_periods_by_event(db: AsyncSession, event_id: int) -> list[EventPeriod]:
    stmt = (
        select(EventPeriod)
        .where(EventPeriod.event_id == event_id, EventPeriod.live())
        .order_by(EventPeriod.start_at, EventPeriod.id)
    )
    result = await db.execute(stmt)
    return result.scalars().all()


async def list_period_ids_by_event(db: AsyncSession, event_id: int) -> list[int]:
    result = await db.scalars(
        select(EventPeriod.id)
        .where(EventPeriod.event_id == event_id, EventPeriod.live())
        .with_for_update()
    )
    return list(result.all())


async def create_period(db: AsyncSession, data: dict) -> EventPeriod:
    period = EventPeriod(**data)
    db.add(period)
    return period


async def soft_delete_periods(db: AsyncSession, period_ids: Iterable[int], deleted_at: datetime) -> int:
    period_ids = list(period_ids)
    if not period_ids:
        return 0
    result = await db.execute(
        update(EventPeriod)
        .where(EventPeriod.id.in_(period_ids), EventPeriod.live())
        .values(deleted_at=deleted_at)
    )
    return int(result.rowcount or 0)
