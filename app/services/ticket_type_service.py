from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession
from app.domain.auth.schemas import Actor
from app.domain.events import crud as events_crud
from app.domain.events.models import EventPeriod
from app.domain.inventory import crud
from app.domain.inventory.models import TicketType, Ticket
from app.domain.inventory.schemas import TicketTypeCreateDTO, TicketTypeUpdateDTO, TicketReadDTO, TicketsQueryDTO
from app.core.auditing import AuditSpan
from app.core.db_utils import flush_or_409, retryable_conflicts
from app.core.pagination import PageDTO, paginate
from app.core.permissions import ensure_event_owner
from app.core.soft_delete import utcnow
from app.services.inventory_service import reconcile_ticket_inventory
from app.domain.exceptions import NotFound, InvalidInput


async def _get_live_period(db: AsyncSession, period_id: int, *, for_update: bool = False) -> EventPeriod:
    period = await events_crud.get_period_by_id(db, period_id, for_update=for_update)
    if not period:
        raise NotFound("Event period not found", ctx={"period_id": period_id})
    return period


async def _ensure_category(db: AsyncSession, category_id: int) -> None:
    if not await crud.get_category(db, category_id):
        raise NotFound("Ticket category not found", ctx={"category_id": category_id})


def _validate_discount(data: dict, ticket_type: TicketType) -> None:
    price = data.get("price", ticket_type.price)
    discount = data.get("discount", ticket_type.discount)
    if discount is not None and Decimal(discount) > Decimal(price):
        raise InvalidInput(
            "discount cannot exceed price",
            ctx={"price": price, "discount": discount}
        )


async def get_ticket_type(db: AsyncSession, ticket_type_id: int, *, for_update: bool = False) -> TicketType:
    ticket_type = await crud.get_ticket_type(db, ticket_type_id, for_update=for_update)
    if not ticket_type:
        raise NotFound("Ticket type not found", ctx={"ticket_type_id": ticket_type_id})
    return ticket_type


async def list_period_ticket_types(db: AsyncSession, period_id: int) -> list[TicketType]:
    await _get_live_period(db, period_id)
    return await crud.list_ticket_types_by_period(db, period_id)


async def list_tickets(db: AsyncSession, ticket_type_id: int, query: TicketsQueryDTO) -> PageDTO[TicketReadDTO]:
    await get_ticket_type(db, ticket_type_id)
    stmt = crud.tickets_by_type_stmt(ticket_type_id, available_only=query.available_only)
    tickets, total = await paginate(
        db,
        stmt,
        page=query.page,
        page_size=query.page_size,
        order_by=[Ticket.created_at, Ticket.id]
    )
    return PageDTO(
        items=[TicketReadDTO.model_validate(ticket) for ticket in tickets],
        total=total,
        page=query.page,
        page_size=query.page_size
    )


async def create_ticket_type(
        db: AsyncSession,
        period_id: int,
        schema: TicketTypeCreateDTO,
        actor: Actor
) -> TicketType:
    async with AuditSpan(
        scope="TICKET_TYPES",
        action="CREATE",
        object_type="ticket_type",
        period_id=period_id,
        meta={"category_id": schema.category_id, "quota": schema.quota}
    ) as span:
        period = await _get_live_period(db, period_id, for_update=True)
        span.event_id = period.event_id
        ensure_event_owner(period.event, actor)
        await _ensure_category(db, schema.category_id)

        data = schema.model_dump()
        data["period_id"] = period_id
        ticket_type = await crud.create_ticket_type(db, data)
        await flush_or_409(
            db,
            "Ticket type conflicts with existing data",
            ctx={"period_id": period_id, "category_id": schema.category_id}
        )
        span.object_id = ticket_type.id
        span.ticket_type_id = ticket_type.id

        async with retryable_conflicts({"ticket_type_id": ticket_type.id}):
            result = await reconcile_ticket_inventory(db, ticket_type.id)
        span.meta["created"] = result.created

        await db.refresh(ticket_type)
        return ticket_type


async def update_ticket_type(
        db: AsyncSession,
        ticket_type_id: int,
        schema: TicketTypeUpdateDTO,
        actor: Actor
) -> TicketType:
    data = schema.model_dump(exclude_unset=True)
    async with AuditSpan(
        scope="TICKET_TYPES",
        action="UPDATE",
        object_type="ticket_type",
        object_id=ticket_type_id,
        ticket_type_id=ticket_type_id,
        meta={"fields": sorted(data)}
    ) as span:
        if not data:
            raise InvalidInput("No fields to update", ctx={"ticket_type_id": ticket_type_id})

        async with retryable_conflicts({"ticket_type_id": ticket_type_id}):
            ticket_type = await get_ticket_type(db, ticket_type_id, for_update=True)
            period = await _get_live_period(db, ticket_type.period_id)
            span.period_id = period.id
            span.event_id = period.event_id
            ensure_event_owner(period.event, actor)

            if "category_id" in data:
                await _ensure_category(db, data["category_id"])
            _validate_discount(data, ticket_type)

            previous_quota = ticket_type.quota
            await crud.update_ticket_type(ticket_type, data)
            await flush_or_409(db, "Ticket type update conflicts", ctx={"ticket_type_id": ticket_type_id})

            if "quota" in data:
                result = await reconcile_ticket_inventory(db, ticket_type_id)
                span.meta.update(
                    previous_quota=previous_quota,
                    created=result.created,
                    removed=result.removed
                )

        await db.refresh(ticket_type)
        return ticket_type


async def delete_ticket_type(db: AsyncSession, ticket_type_id: int, actor: Actor) -> int:
    """Soft-deletes the ticket type and all of its live tickets; returns the number of tickets hidden."""
    async with AuditSpan(
        scope="TICKET_TYPES",
        action="DELETE",
        object_type="ticket_type",
        object_id=ticket_type_id,
        ticket_type_id=ticket_type_id
    ) as span:
        async with retryable_conflicts({"ticket_type_id": ticket_type_id}):
            ticket_type = await get_ticket_type(db, ticket_type_id, for_update=True)
            period = await _get_live_period(db, ticket_type.period_id)
            span.period_id = period.id
            span.event_id = period.event_id
            ensure_event_owner(period.event, actor)

            deleted_at = utcnow()
            tickets = await crud.soft_delete_tickets_by_types(db, [ticket_type_id], deleted_at)
            await crud.soft_delete_ticket_types(db, [ticket_type_id], deleted_at)

        span.meta["tickets"] = tickets
        return tickets
