import logging
from collections import defaultdict
from typing import Iterable
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.config import TICKET_CODE_MAX_ATTEMPTS
from app.core.soft_delete import utcnow
from app.core.ticket_codes import generate_ticket_codes
from app.domain.events import crud as events_crud
from app.domain.inventory import crud
from app.domain.inventory.models import TicketType
from app.domain.inventory.schemas import ReconcileResultDTO
from app.domain.exceptions import NotFound, Conflict

logger = logging.getLogger("app.inventory")


async def _lock_live_ticket_type(db: AsyncSession, ticket_type_id: int) -> TicketType:
    ticket_type = await crud.get_ticket_type(db, ticket_type_id, for_update=True)
    if not ticket_type:
        raise NotFound("Ticket type not found", ctx={"ticket_type_id": ticket_type_id})
    # the period held in the session may be stale
    if await events_crud.get_period_by_id(db, ticket_type.period_id, refresh=True) is None:
        raise NotFound("Event period not found", ctx={"period_id": ticket_type.period_id})
    return ticket_type


async def _create_tickets(db: AsyncSession, ticket_type_id: int, missing: int) -> int:
    created = 0
    for attempt in range(1, TICKET_CODE_MAX_ATTEMPTS + 1):
        inserted = await crud.insert_tickets(db, ticket_type_id, generate_ticket_codes(missing - created))
        created += len(inserted)
        if created == missing:
            return created
        logger.warning(
            "Ticket code collision for ticket_type=%s attempt=%s missing=%s",
            ticket_type_id, attempt, missing - created
        )

    raise Conflict(
        "Could not generate unique ticket codes",
        ctx={"ticket_type_id": ticket_type_id, "missing": missing - created, "retryable": True}
    )


async def _remove_oldest_unsold(
        db: AsyncSession,
        ticket_type_id: int,
        excess: int,
        keep_ids: Iterable[int]
) -> int:
    ticket_ids = await crud.lock_oldest_available_ticket_ids(db, ticket_type_id, excess, exclude_ids=keep_ids)
    return await crud.soft_delete_available_tickets(db, ticket_ids, utcnow())


async def reconcile_ticket_inventory(
        db: AsyncSession,
        ticket_type_id: int,
        *,
        keep_ids: Iterable[int] = ()
) -> ReconcileResultDTO:
    """
    Converges the number of live unsold tickets of a ticket type to its quota.

    The ticket type row is locked first, so concurrent reconciliations of the same type
    run one after another. Missing tickets get fresh codes; surplus tickets are removed
    oldest first, skipping `keep_ids`. Sold tickets are never touched. Running it twice
    changes nothing.
    """
    ticket_type = await _lock_live_ticket_type(db, ticket_type_id)
    quota = ticket_type.quota

    existing = await crud.count_available_tickets(db, ticket_type.id)
    created = removed = 0

    if existing < quota:
        created = await _create_tickets(db, ticket_type.id, quota - existing)
    elif existing > quota:
        removed = await _remove_oldest_unsold(db, ticket_type.id, existing - quota, keep_ids)

    live_unsold = existing + created - removed
    if created or removed:
        logger.info(
            "Reconciled ticket_type=%s quota=%s created=%s removed=%s live_unsold=%s",
            ticket_type.id, quota, created, removed, live_unsold
        )

    return ReconcileResultDTO(
        ticket_type_id=ticket_type.id,
        quota=quota,
        created=created,
        removed=removed,
        live_unsold=live_unsold
    )


async def reconcile_released_types(
        db: AsyncSession,
        released: Iterable[tuple[int, int]]
) -> list[ReconcileResultDTO]:
    """
    Re-applies quota to ticket types that just got tickets back from a transaction.

    `released` holds (ticket_id, ticket_type_id) pairs. The released tickets themselves are
    kept; any surplus is taken from the other unsold tickets. Deleted types are skipped.
    """
    by_type: dict[int, list[int]] = defaultdict(list)
    for ticket_id, ticket_type_id in released:
        by_type[ticket_type_id].append(ticket_id)

    results = []
    for ticket_type_id in sorted(by_type):
        if await crud.get_ticket_type(db, ticket_type_id) is None:
            continue
        results.append(await reconcile_ticket_inventory(db, ticket_type_id, keep_ids=by_type[ticket_type_id]))
    return results
