from typing import Annotated
from fastapi import APIRouter, Depends, status, Response
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.database import get_db
from app.core.dependencies.auth import ANY_ACTOR, ADMIN_ONLY
from app.core.pagination import PageDTO
from app.domain.auth.schemas import Actor
from app.domain.transactions.schemas import TransactionCreateDTO, TransactionStatusDTO, TransactionDetailsDTO, \
    TransactionListItemDTO, UserTransactionsQueryDTO, AdminTransactionsQueryDTO
from app.services import transaction_service

router = APIRouter(tags=["transactions"])
db_dependency = Annotated[AsyncSession, Depends(get_db)]
actor_dependency = Annotated[Actor, Depends(ANY_ACTOR)]


@router.post(
    "/transactions",
    response_model=TransactionDetailsDTO,
    status_code=status.HTTP_201_CREATED
)
async def create_transaction(
        schema: TransactionCreateDTO,
        db: db_dependency,
        actor: actor_dependency,
        response: Response
):
    transaction = await transaction_service.create_transaction(db, actor, schema)
    response.headers["Location"] = f"/transactions/{transaction.id}"
    return transaction


@router.get(
    "/transactions/{transaction_id}",
    response_model=TransactionDetailsDTO,
    status_code=status.HTTP_200_OK
)
async def get_transaction(transaction_id: int, db: db_dependency, actor: actor_dependency):
    return await transaction_service.get_transaction(db, transaction_id, actor)


@router.patch(
    "/transactions/{transaction_id}/status",
    response_model=TransactionDetailsDTO,
    status_code=status.HTTP_200_OK
)
async def update_transaction_status(
        transaction_id: int,
        schema: TransactionStatusDTO,
        db: db_dependency,
        actor: actor_dependency
):
    return await transaction_service.update_transaction_status(db, transaction_id, schema.status, actor)


@router.delete(
    "/transactions/{transaction_id}",
    response_model=TransactionDetailsDTO,
    status_code=status.HTTP_200_OK
)
async def delete_transaction(transaction_id: int, db: db_dependency, actor: actor_dependency):
    return await transaction_service.delete_transaction(db, transaction_id, actor)


@router.get(
    "/users/me/transactions",
    response_model=PageDTO[TransactionListItemDTO],
    status_code=status.HTTP_200_OK
)
async def list_my_transactions(
        db: db_dependency,
        actor: actor_dependency,
        query: Annotated[UserTransactionsQueryDTO, Depends()]
):
    return await transaction_service.list_my_transactions(db, actor, query)


@router.get(
    "/users/{user_id}/transactions",
    response_model=PageDTO[TransactionListItemDTO],
    status_code=status.HTTP_200_OK
)
async def list_user_transactions(
        user_id: int,
        db: db_dependency,
        actor: actor_dependency,
        query: Annotated[UserTransactionsQueryDTO, Depends()]
):
    return await transaction_service.list_user_transactions(db, user_id, actor, query)


@router.get(
    "/admin/transactions",
    response_model=PageDTO[TransactionListItemDTO],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(ADMIN_ONLY)]
)
async def search_transactions(db: db_dependency, query: Annotated[AdminTransactionsQueryDTO, Depends()]):
    return await transaction_service.search_transactions(db, query)
