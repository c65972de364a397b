from typing import Annotated
from fastapi import APIRouter, Depends, status, Response
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.database import get_db
from app.core.dependencies.auth import ANY_ACTOR, ADMIN_OR_ORGANIZER
from app.domain.auth.schemas import Actor
from app.domain.events.schemas import EventReadDTO, EventPeriodReadDTO, EventPeriodCreateDTO, EventDeletedDTO, \
    EventPeriodDeletedDTO
from app.services import event_service

router = APIRouter(tags=["events"])
db_dependency = Annotated[AsyncSession, Depends(get_db)]


@router.get(
    "/events/{event_id}",
    response_model=EventReadDTO,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(ANY_ACTOR)]
)
async def get_event(event_id: int, db: db_dependency):
    return await event_service.get_event(db, event_id)


@router.delete(
    "/events/{event_id}",
    response_model=EventDeletedDTO,
    status_code=status.HTTP_200_OK
)
async def delete_event(event_id: int, db: db_dependency, actor: Annotated[Actor, Depends(ADMIN_OR_ORGANIZER)]):
    return await event_service.delete_event(db, event_id, actor)


@router.get(
    "/events/{event_id}/periods",
    response_model=list[EventPeriodReadDTO],
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(ANY_ACTOR)]
)
async def list_event_periods(event_id: int, db: db_dependency):
    return await event_service.list_event_periods(db, event_id)


@router.post(
    "/events/{event_id}/periods",
    response_model=EventPeriodReadDTO,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED
)
async def create_event_period(
        event_id: int,
        schema: EventPeriodCreateDTO,
        db: db_dependency,
        actor: Annotated[Actor, Depends(ADMIN_OR_ORGANIZER)],
        response: Response
):
    period = await event_service.create_event_period(db, event_id, schema, actor)
    response.headers["Location"] = f"/periods/{period.id}"
    return period


@router.delete(
    "/periods/{period_id}",
    response_model=EventPeriodDeletedDTO,
    status_code=status.HTTP_200_OK
)
async def delete_event_period(period_id: int, db: db_dependency, actor: Annotated[Actor, Depends(ADMIN_OR_ORGANIZER)]):
    return await event_service.delete_event_period(db, period_id, actor)
