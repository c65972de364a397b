from typing import Annotated
from fastapi import APIRouter, Depends, status, Response
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.database import get_db
from app.core.dependencies.auth import ANY_ACTOR, ADMIN_OR_ORGANIZER
from app.core.pagination import PageDTO
from app.domain.auth.schemas import Actor
from app.domain.inventory.schemas import TicketTypeReadDTO, TicketTypeCreateDTO, TicketTypeUpdateDTO, \
    TicketReadDTO, TicketsQueryDTO
from app.services import ticket_type_service


router = APIRouter(tags=["ticket-types"])
db_dependency = Annotated[AsyncSession, Depends(get_db)]


@router.get(
    "/periods/{period_id}/ticket-types",
    status_code=status.HTTP_200_OK,
    response_model=list[TicketTypeReadDTO],
    dependencies=[Depends(ANY_ACTOR)]
)
async def list_period_ticket_types(period_id: int, db: db_dependency):
    return await ticket_type_service.list_period_ticket_types(db, period_id)


@router.post(
    "/periods/{period_id}/ticket-types",
    status_code=status.HTTP_201_CREATED,
    response_model=TicketTypeReadDTO
)
async def create_ticket_type(
        period_id: int,
        schema: TicketTypeCreateDTO,
        db: db_dependency,
        actor: Annotated[Actor, Depends(ADMIN_OR_ORGANIZER)],
        response: Response
):
    ticket_type = await ticket_type_service.create_ticket_type(db, period_id, schema, actor)
    response.headers["Location"] = f"/ticket-types/{ticket_type.id}"
    return ticket_type


@router.get(
    "/ticket-types/{ticket_type_id}",
    status_code=status.HTTP_200_OK,
    response_model=TicketTypeReadDTO,
    dependencies=[Depends(ANY_ACTOR)]
)
async def get_ticket_type(ticket_type_id: int, db: db_dependency):
    return await ticket_type_service.get_ticket_type(db, ticket_type_id)


@router.patch(
    "/ticket-types/{ticket_type_id}",
    status_code=status.HTTP_200_OK,
    response_model=TicketTypeReadDTO
)
async def update_ticket_type(
        ticket_type_id: int,
        schema: TicketTypeUpdateDTO,
        db: db_dependency,
        actor: Annotated[Actor, Depends(ADMIN_OR_ORGANIZER)]
):
    return await ticket_type_service.update_ticket_type(db, ticket_type_id, schema, actor)


@router.delete(
    "/ticket-types/{ticket_type_id}",
    status_code=status.HTTP_204_NO_CONTENT
)
async def delete_ticket_type(
        ticket_type_id: int,
        db: db_dependency,
        actor: Annotated[Actor, Depends(ADMIN_OR_ORGANIZER)]
):
    await ticket_type_service.delete_ticket_type(db, ticket_type_id, actor)


@router.get(
    "/ticket-types/{ticket_type_id}/tickets",
    status_code=status.HTTP_200_OK,
    response_model=PageDTO[TicketReadDTO],
    response_model_exclude_none=True,
    dependencies=[Depends(ANY_ACTOR)]
)
async def list_tickets(ticket_type_id: int, db: db_dependency, query: Annotated[TicketsQueryDTO, Depends()]):
    return await ticket_type_service.list_tickets(db, ticket_type_id, query)
