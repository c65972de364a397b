import logging
from decimal import Decimal, ROUND_HALF_UP
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from app.domain.auth.schemas import Actor
from app.domain.inventory import crud as inventory_crud
from app.domain.transactions import crud
from app.domain.transactions.models import Transaction, TransactionStatus
from app.domain.transactions.schemas import TransactionCreateDTO, TransactionSummaryDTO, TransactionListItemDTO, \
    UserTransactionsQueryDTO, AdminTransactionsQueryDTO
from app.core.auditing import AuditSpan
from app.core.db_utils import retryable_conflicts
from app.core.pagination import PageDTO, paginate
from app.core.permissions import ensure_active, ensure_owner_or_admin
from app.core.soft_delete import utcnow
from app.services.inventory_service import reconcile_released_types
from app.domain.exceptions import NotFound, InvalidInput, Conflict

logger = logging.getLogger("app.transactions")

CENT = Decimal("0.01")

ALLOWED_TRANSITIONS = {
    TransactionStatus.PENDING: {TransactionStatus.SUCCESS, TransactionStatus.FAILED, TransactionStatus.CANCELLED}
}


def _validate_ticket_ids(ticket_ids: list[int]) -> list[int]:
    if not ticket_ids:
        raise InvalidInput("No tickets requested")
    if len(set(ticket_ids)) != len(ticket_ids):
        duplicates = sorted({t for t in ticket_ids if ticket_ids.count(t) > 1})
        raise InvalidInput("Duplicate ticket ids", ctx={"duplicate_ticket_ids": duplicates})
    return sorted(ticket_ids)


def _unavailable(requested: list[int], found: set[int]) -> InvalidInput:
    return InvalidInput(
        "Ticket(s) unavailable",
        ctx={"unavailable_ticket_ids": [t for t in requested if t not in found]}
    )


def _validate_transition(transaction: Transaction, new_status: TransactionStatus) -> None:
    current = transaction.status
    if new_status == current:
        raise InvalidInput(
            "Transaction already has this status",
            ctx={"transaction_id": transaction.id, "status": current.value}
        )
    if new_status not in ALLOWED_TRANSITIONS.get(current, set()):
        raise Conflict(
            "Status transition not allowed",
            ctx={"transaction_id": transaction.id, "from": current.value, "to": new_status.value}
        )


async def _get_owned_transaction(
        db: AsyncSession,
        transaction_id: int,
        actor: Actor,
        *,
        for_update: bool = False
) -> Transaction:
    transaction = await crud.get_transaction_by_id(db, transaction_id, for_update=for_update)
    if not transaction:
        raise NotFound("Transaction not found", ctx={"transaction_id": transaction_id})
    ensure_owner_or_admin(transaction.user_id, actor)
    return transaction


async def _release_tickets(db: AsyncSession, transaction: Transaction) -> int:
    released = await inventory_crud.release_tickets(db, transaction.id)
    await reconcile_released_types(db, released)
    return len(released)


async def get_transaction(db: AsyncSession, transaction_id: int, actor: Actor) -> Transaction:
    return await _get_owned_transaction(db, transaction_id, actor)


async def _list_transactions(db: AsyncSession, where: list, page: int, page_size: int) -> PageDTO[TransactionListItemDTO]:
    stmt = select(Transaction, crud.tickets_count_subquery().label("tickets_count"))
    rows, total = await paginate(
        db,
        stmt,
        page=page,
        page_size=page_size,
        where=where,
        order_by=[Transaction.created_at.desc(), Transaction.id.desc()],
        scalars=False
    )
    items = [
        TransactionListItemDTO(
            **TransactionSummaryDTO.model_validate(transaction).model_dump(),
            tickets_count=int(count or 0)
        )
        for transaction, count in rows
    ]
    return PageDTO(items=items, total=total, page=page, page_size=page_size)


async def list_my_transactions(
        db: AsyncSession,
        actor: Actor,
        query: UserTransactionsQueryDTO
) -> PageDTO[TransactionListItemDTO]:
    return await list_user_transactions(db, actor.user_id, actor, query)


async def list_user_transactions(
        db: AsyncSession,
        user_id: int,
        actor: Actor,
        query: UserTransactionsQueryDTO
) -> PageDTO[TransactionListItemDTO]:
    ensure_owner_or_admin(user_id, actor)
    statuses = [query.status] if query.status is not None else None
    where = crud.transactions_filter(user_id=user_id, statuses=statuses)
    return await _list_transactions(db, where, query.page, query.page_size)


async def search_transactions(db: AsyncSession, query: AdminTransactionsQueryDTO) -> PageDTO[TransactionListItemDTO]:
    where = crud.transactions_filter(
        user_id=query.user_id,
        statuses=[query.status] if query.status is not None else None,
        payment_method=query.payment_method,
        created_from=query.created_from,
        created_to=query.created_to
    )
    return await _list_transactions(db, where, query.page, query.page_size)


async def create_transaction(db: AsyncSession, actor: Actor, schema: TransactionCreateDTO) -> Transaction:
    """
    Reserves the requested tickets for the actor in a new PENDING transaction.

    Either every requested ticket is bound to the transaction or none is: the tickets are
    row-locked first, and the bind is conditional on each ticket still being unsold and live.
    """
    async with AuditSpan(
        scope="TRANSACTIONS",
        action="CREATE",
        object_type="transaction",
        meta={"ticket_ids": list(schema.ticket_ids), "payment_method": schema.payment_method.value}
    ) as span:
        ensure_active(actor)
        requested = _validate_ticket_ids(list(schema.ticket_ids))

        async with retryable_conflicts({"ticket_ids": requested}):
            tickets = await inventory_crud.lock_available_tickets(db, requested)
            if len(tickets) != len(requested):
                raise _unavailable(requested, {t.id for t in tickets})

            total = sum((t.ticket_type.effective_price for t in tickets), Decimal("0"))
            transaction = await crud.create_transaction(db, {
                "user_id": actor.user_id,
                "total_price": total.quantize(CENT, rounding=ROUND_HALF_UP),
                "status": TransactionStatus.PENDING,
                "payment_method": schema.payment_method
            })
            await db.flush()
            span.object_id = transaction.id
            span.transaction_id = transaction.id

            bound = await inventory_crud.bind_tickets(db, requested, transaction.id, actor.user_id)
            if bound != len(requested):
                raise InvalidInput(
                    "Ticket(s) unavailable",
                    ctx={"requested": len(requested), "reserved": bound}
                )

        await db.refresh(transaction)
        span.meta["total_price"] = str(transaction.total_price)
        return transaction


async def update_transaction_status(
        db: AsyncSession,
        transaction_id: int,
        new_status: TransactionStatus,
        actor: Actor
) -> Transaction:
    async with AuditSpan(
        scope="TRANSACTIONS",
        action="UPDATE_STATUS",
        object_type="transaction",
        object_id=transaction_id,
        transaction_id=transaction_id,
        meta={"status": new_status.value}
    ) as span:
        ensure_active(actor)
        async with retryable_conflicts({"transaction_id": transaction_id}):
            transaction = await _get_owned_transaction(db, transaction_id, actor, for_update=True)
            _validate_transition(transaction, new_status)

            span.meta["previous_status"] = transaction.status.value
            transaction.status = new_status
            await db.flush()

            if new_status == TransactionStatus.CANCELLED:
                span.meta["released"] = await _release_tickets(db, transaction)

        await db.refresh(transaction)
        return transaction


async def delete_transaction(db: AsyncSession, transaction_id: int, actor: Actor) -> Transaction:
    async with AuditSpan(
        scope="TRANSACTIONS",
        action="DELETE",
        object_type="transaction",
        object_id=transaction_id,
        transaction_id=transaction_id
    ) as span:
        ensure_active(actor)
        async with retryable_conflicts({"transaction_id": transaction_id}):
            transaction = await _get_owned_transaction(db, transaction_id, actor, for_update=True)

            released = await _release_tickets(db, transaction)
            transaction.mark_deleted(utcnow())
            await db.flush()

        span.meta["released"] = released
        logger.info("Deleted transaction=%s released=%s", transaction_id, released)
        await db.refresh(transaction)
        return transaction
