import logging
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from app.domain.auth.schemas import Actor
from app.domain.events import crud
from app.domain.events.models import Event, EventPeriod
from app.domain.events.schemas import EventPeriodCreateDTO, EventReadDTO, EventPeriodReadDTO, CascadeSummaryDTO, \
    EventDeletedDTO, EventPeriodDeletedDTO
from app.domain.inventory import crud as inventory_crud
from app.core.auditing import AuditSpan
from app.core.db_utils import flush_or_409, retryable_conflicts
from app.core.permissions import ensure_event_owner
from app.core.soft_delete import utcnow
from app.domain.exceptions import NotFound

logger = logging.getLogger("app.events")


async def get_event(db: AsyncSession, event_id: int, *, for_update: bool = False) -> Event:
    event = await crud.get_event_by_id(db, event_id, for_update=for_update)
    if not event:
        raise NotFound("Event not found", ctx={"event_id": event_id})
    return event


async def get_event_period(db: AsyncSession, period_id: int, *, for_update: bool = False) -> EventPeriod:
    period = await crud.get_period_by_id(db, period_id, for_update=for_update)
    if not period:
        raise NotFound("Event period not found", ctx={"period_id": period_id})
    return period


async def list_event_periods(db: AsyncSession, event_id: int) -> list[EventPeriod]:
    await get_event(db, event_id)
    return await crud.list_periods_by_event(db, event_id)


async def create_event_period(
        db: AsyncSession,
        event_id: int,
        schema: EventPeriodCreateDTO,
        actor: Actor
) -> EventPeriod:
    async with AuditSpan(
        scope="EVENT_PERIODS",
        action="CREATE",
        object_type="event_period",
        event_id=event_id,
        meta={"name": schema.name}
    ) as span:
        event = await get_event(db, event_id, for_update=True)
        ensure_event_owner(event, actor)

        data = schema.model_dump()
        data["event_id"] = event_id
        period = await crud.create_period(db, data)
        await flush_or_409(db, "Event period conflicts with existing data", ctx={"event_id": event_id})

        span.object_id = period.id
        span.period_id = period.id
        await db.refresh(period)
        return period


async def _cascade_periods(db: AsyncSession, period_ids: list[int], deleted_at: datetime) -> CascadeSummaryDTO:
    """
    Hides the given periods together with their ticket types and every live ticket under them,
    sold or not. Rows are locked top-down: periods, then ticket types, then tickets.
    """
    ticket_type_ids = await inventory_crud.list_ticket_type_ids_by_periods(db, period_ids)
    tickets = await inventory_crud.soft_delete_tickets_by_types(db, ticket_type_ids, deleted_at)
    ticket_types = await inventory_crud.soft_delete_ticket_types(db, ticket_type_ids, deleted_at)
    periods = await crud.soft_delete_periods(db, period_ids, deleted_at)
    return CascadeSummaryDTO(periods=periods, ticket_types=ticket_types, tickets=tickets)


async def delete_event(db: AsyncSession, event_id: int, actor: Actor) -> EventDeletedDTO:
    async with AuditSpan(
        scope="EVENTS",
        action="DELETE",
        object_type="event",
        object_id=event_id,
        event_id=event_id
    ) as span:
        async with retryable_conflicts({"event_id": event_id}):
            event = await get_event(db, event_id, for_update=True)
            ensure_event_owner(event, actor)

            deleted_at = utcnow()
            period_ids = await crud.list_period_ids_by_event(db, event_id)
            summary = await _cascade_periods(db, period_ids, deleted_at)
            event.mark_deleted(deleted_at)
            await db.flush()

        await db.refresh(event)
        span.meta.update(summary.model_dump())
        logger.info(
            "Deleted event=%s periods=%s ticket_types=%s tickets=%s",
            event_id, summary.periods, summary.ticket_types, summary.tickets
        )
        return EventDeletedDTO(event=EventReadDTO.model_validate(event), cascade=summary)


async def delete_event_period(db: AsyncSession, period_id: int, actor: Actor) -> EventPeriodDeletedDTO:
    async with AuditSpan(
        scope="EVENT_PERIODS",
        action="DELETE",
        object_type="event_period",
        object_id=period_id,
        period_id=period_id
    ) as span:
        async with retryable_conflicts({"period_id": period_id}):
            period = await get_event_period(db, period_id, for_update=True)
            span.event_id = period.event_id
            ensure_event_owner(period.event, actor)

            summary = await _cascade_periods(db, [period.id], utcnow())

        await db.refresh(period)
        span.meta.update(summary.model_dump())
        logger.info(
            "Deleted period=%s ticket_types=%s tickets=%s",
            period_id, summary.ticket_types, summary.tickets
        )
        return EventPeriodDeletedDTO(period=EventPeriodReadDTO.model_validate(period), cascade=summary)
