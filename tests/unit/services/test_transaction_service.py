import pytest
from datetime import datetime, timezone
from decimal import Decimal
from app.services import transaction_service
from app.domain.auth.schemas import UserStatus
from app.domain.transactions.models import TransactionStatus, PaymentMethod
from app.domain.transactions.schemas import TransactionCreateDTO, UserTransactionsQueryDTO, AdminTransactionsQueryDTO
from app.domain.exceptions import InvalidInput, Conflict, Forbidden, NotFound
from tests.helper import db_session, create_actor, create_admin

SERVICE = "app.services.transaction_service"


def _ticket(mocker, ticket_id, price, discount=None):
    net = Decimal(price) - Decimal(discount or "0")
    return mocker.Mock(id=ticket_id, ticket_type=mocker.Mock(effective_price=max(net, Decimal("0"))))


def _transaction(mocker, status=TransactionStatus.PENDING, user_id=7):
    return mocker.Mock(id=11, user_id=user_id, status=status)


def _patch_reservation(mocker, tickets, bound=None):
    lock = mocker.patch(f"{SERVICE}.inventory_crud.lock_available_tickets", new=mocker.AsyncMock(return_value=tickets))
    created = {}

    async def create_transaction(db, data):
        created.update(data)
        return mocker.Mock(id=11, **data)

    create = mocker.patch(f"{SERVICE}.crud.create_transaction", new=mocker.AsyncMock(side_effect=create_transaction))
    bind = mocker.patch(
        f"{SERVICE}.inventory_crud.bind_tickets",
        new=mocker.AsyncMock(return_value=len(tickets) if bound is None else bound)
    )
    return lock, create, bind, created


@pytest.mark.asyncio
async def test_create_transaction_reserves_all_tickets(mocker, auditspan_stub):
    tickets = [_ticket(mocker, 1, "100.00", "20.00"), _ticket(mocker, 2, "100.00", "20.00")]
    lock, create, bind, created = _patch_reservation(mocker, tickets)
    db = db_session(mocker)
    schema = TransactionCreateDTO(payment_method=PaymentMethod.E_WALLET, ticket_ids=[2, 1])

    transaction = await transaction_service.create_transaction(db, create_actor(user_id=7), schema)

    lock.assert_awaited_once_with(db, [1, 2])
    assert created["total_price"] == Decimal("160.00")
    assert created["status"] == TransactionStatus.PENDING
    assert created["user_id"] == 7
    bind.assert_awaited_once_with(db, [1, 2], 11, 7)
    db.refresh.assert_awaited_once_with(transaction)
    assert auditspan_stub[0].transaction_id == 11


@pytest.mark.asyncio
async def test_create_transaction_with_sold_ticket_reserves_nothing(mocker):
    lock, create, bind, _ = _patch_reservation(mocker, [_ticket(mocker, 1, "50.00")])
    schema = TransactionCreateDTO(payment_method=PaymentMethod.CREDIT_CARD, ticket_ids=[1, 2])

    with pytest.raises(InvalidInput) as e:
        await transaction_service.create_transaction(db_session(mocker), create_actor(), schema)

    assert str(e.value) == "Ticket(s) unavailable"
    assert e.value.ctx == {"unavailable_ticket_ids": [2]}
    create.assert_not_awaited()
    bind.assert_not_awaited()


@pytest.mark.asyncio
async def test_create_transaction_lost_bind_race_raises(mocker):
    tickets = [_ticket(mocker, 1, "50.00"), _ticket(mocker, 2, "50.00")]
    _patch_reservation(mocker, tickets, bound=1)
    schema = TransactionCreateDTO(payment_method=PaymentMethod.CREDIT_CARD, ticket_ids=[1, 2])

    with pytest.raises(InvalidInput) as e:
        await transaction_service.create_transaction(db_session(mocker), create_actor(), schema)

    assert str(e.value) == "Ticket(s) unavailable"
    assert e.value.ctx == {"requested": 2, "reserved": 1}


@pytest.mark.asyncio
async def test_create_transaction_inactive_user_raises_403(mocker):
    lock, *_ = _patch_reservation(mocker, [])
    schema = TransactionCreateDTO(payment_method=PaymentMethod.CREDIT_CARD, ticket_ids=[1])

    with pytest.raises(Forbidden):
        await transaction_service.create_transaction(
            db_session(mocker), create_actor(status=UserStatus.SUSPENDED), schema
        )

    lock.assert_not_awaited()


def test_validate_ticket_ids_rejects_empty_and_duplicates():
    with pytest.raises(InvalidInput) as e:
        transaction_service._validate_ticket_ids([])
    assert str(e.value) == "No tickets requested"

    with pytest.raises(InvalidInput) as e:
        transaction_service._validate_ticket_ids([3, 1, 3])
    assert e.value.ctx == {"duplicate_ticket_ids": [3]}


@pytest.mark.asyncio
@pytest.mark.parametrize("new_status", [TransactionStatus.SUCCESS, TransactionStatus.FAILED])
async def test_update_status_without_release(mocker, new_status):
    transaction = _transaction(mocker)
    mocker.patch(f"{SERVICE}.crud.get_transaction_by_id", new=mocker.AsyncMock(return_value=transaction))
    release = mocker.patch(f"{SERVICE}.inventory_crud.release_tickets", new=mocker.AsyncMock())

    result = await transaction_service.update_transaction_status(db_session(mocker), 11, new_status, create_actor())

    assert result.status == new_status
    release.assert_not_awaited()


@pytest.mark.asyncio
async def test_update_status_cancelled_releases_and_reconciles(mocker, auditspan_stub):
    transaction = _transaction(mocker)
    mocker.patch(f"{SERVICE}.crud.get_transaction_by_id", new=mocker.AsyncMock(return_value=transaction))
    release = mocker.patch(
        f"{SERVICE}.inventory_crud.release_tickets",
        new=mocker.AsyncMock(return_value=[(1, 5), (2, 5), (3, 6)])
    )
    reconcile = mocker.patch(f"{SERVICE}.reconcile_released_types", new=mocker.AsyncMock())
    db = db_session(mocker)

    await transaction_service.update_transaction_status(db, 11, TransactionStatus.CANCELLED, create_actor())

    assert transaction.status == TransactionStatus.CANCELLED
    release.assert_awaited_once_with(db, 11)
    reconcile.assert_awaited_once_with(db, [(1, 5), (2, 5), (3, 6)])
    assert auditspan_stub[0].meta["released"] == 3
    assert auditspan_stub[0].meta["previous_status"] == "PENDING"


@pytest.mark.asyncio
@pytest.mark.parametrize("current", [TransactionStatus.SUCCESS, TransactionStatus.FAILED, TransactionStatus.CANCELLED])
async def test_update_status_from_terminal_raises_409(mocker, current):
    mocker.patch(f"{SERVICE}.crud.get_transaction_by_id", new=mocker.AsyncMock(return_value=_transaction(mocker, current)))
    target = TransactionStatus.PENDING

    with pytest.raises(Conflict) as e:
        await transaction_service.update_transaction_status(db_session(mocker), 11, target, create_actor())

    assert e.value.ctx["from"] == current.value


@pytest.mark.asyncio
async def test_update_status_same_status_raises_400(mocker):
    mocker.patch(f"{SERVICE}.crud.get_transaction_by_id", new=mocker.AsyncMock(return_value=_transaction(mocker)))

    with pytest.raises(InvalidInput):
        await transaction_service.update_transaction_status(
            db_session(mocker), 11, TransactionStatus.PENDING, create_actor()
        )


@pytest.mark.asyncio
async def test_update_status_by_other_user_raises_403(mocker):
    mocker.patch(
        f"{SERVICE}.crud.get_transaction_by_id",
        new=mocker.AsyncMock(return_value=_transaction(mocker, user_id=99))
    )

    with pytest.raises(Forbidden):
        await transaction_service.update_transaction_status(
            db_session(mocker), 11, TransactionStatus.SUCCESS, create_actor(user_id=7)
        )


@pytest.mark.asyncio
async def test_update_status_admin_may_update_foreign_transaction(mocker):
    transaction = _transaction(mocker, user_id=99)
    mocker.patch(f"{SERVICE}.crud.get_transaction_by_id", new=mocker.AsyncMock(return_value=transaction))

    await transaction_service.update_transaction_status(
        db_session(mocker), 11, TransactionStatus.SUCCESS, create_admin()
    )

    assert transaction.status == TransactionStatus.SUCCESS


@pytest.mark.asyncio
async def test_delete_transaction_releases_then_soft_deletes(mocker):
    transaction = _transaction(mocker, TransactionStatus.SUCCESS)
    calls = []
    transaction.mark_deleted.side_effect = lambda at: calls.append("mark_deleted")

    async def release(db, transaction_id):
        calls.append("release")
        return [(1, 5)]

    mocker.patch(f"{SERVICE}.crud.get_transaction_by_id", new=mocker.AsyncMock(return_value=transaction))
    mocker.patch(f"{SERVICE}.inventory_crud.release_tickets", new=mocker.AsyncMock(side_effect=release))
    mocker.patch(f"{SERVICE}.reconcile_released_types", new=mocker.AsyncMock())
    db = db_session(mocker)

    result = await transaction_service.delete_transaction(db, 11, create_actor())

    assert result is transaction
    assert calls == ["release", "mark_deleted"]
    db.flush.assert_awaited_once()


class _TicketStore:
    """Tickets of ticket type 1 kept in memory; ids follow creation order."""

    def __init__(self):
        self.tickets = {}

    def add(self, ticket_ids, *, transaction_id=None, deleted=False):
        for ticket_id in ticket_ids:
            self.tickets[ticket_id] = {"transaction_id": transaction_id, "deleted": deleted}

    def available(self):
        return [i for i, t in sorted(self.tickets.items()) if t["transaction_id"] is None and not t["deleted"]]

    async def release_tickets(self, db, transaction_id):
        released = []
        for ticket_id, ticket in sorted(self.tickets.items()):
            if ticket["transaction_id"] == transaction_id:
                ticket["transaction_id"] = None
                released.append((ticket_id, 1))
        return released

    async def count_available_tickets(self, db, ticket_type_id):
        return len(self.available())

    async def lock_oldest_available_ticket_ids(self, db, ticket_type_id, limit, *, exclude_ids=()):
        exclude_ids = set(exclude_ids)
        return [i for i in self.available() if i not in exclude_ids][:limit]

    async def soft_delete_available_tickets(self, db, ticket_ids, deleted_at):
        hidden = [i for i in ticket_ids if i in self.available()]
        for ticket_id in hidden:
            self.tickets[ticket_id]["deleted"] = True
        return len(hidden)


@pytest.mark.asyncio
async def test_delete_transaction_keeps_released_tickets_live_and_unsold(mocker):
    store = _TicketStore()
    store.add(range(1, 11), transaction_id=11)
    store.add(range(11, 41), deleted=True)
    store.add(range(41, 101))
    for name in ("release_tickets", "count_available_tickets", "lock_oldest_available_ticket_ids",
                 "soft_delete_available_tickets"):
        mocker.patch(f"{SERVICE}.inventory_crud.{name}", new=getattr(store, name))
    mocker.patch(
        f"{SERVICE}.inventory_crud.get_ticket_type",
        new=mocker.AsyncMock(return_value=mocker.Mock(id=1, quota=60, period_id=3))
    )
    insert = mocker.patch(f"{SERVICE}.inventory_crud.insert_tickets", new=mocker.AsyncMock())
    mocker.patch(
        "app.services.inventory_service.events_crud.get_period_by_id",
        new=mocker.AsyncMock(return_value=mocker.Mock(id=3))
    )
    mocker.patch(
        f"{SERVICE}.crud.get_transaction_by_id",
        new=mocker.AsyncMock(return_value=_transaction(mocker, TransactionStatus.SUCCESS))
    )

    await transaction_service.delete_transaction(db_session(mocker), 11, create_actor())

    for ticket_id in range(1, 11):
        assert store.tickets[ticket_id] == {"transaction_id": None, "deleted": False}
    assert len(store.available()) == 60
    assert all(store.tickets[i]["deleted"] for i in range(41, 51))
    insert.assert_not_awaited()


@pytest.mark.asyncio
async def test_delete_transaction_missing_raises_404(mocker):
    mocker.patch(f"{SERVICE}.crud.get_transaction_by_id", new=mocker.AsyncMock(return_value=None))

    with pytest.raises(NotFound) as e:
        await transaction_service.delete_transaction(db_session(mocker), 11, create_actor())

    assert e.value.ctx == {"transaction_id": 11}


@pytest.mark.asyncio
async def test_get_transaction_by_other_user_raises_403(mocker):
    mocker.patch(
        f"{SERVICE}.crud.get_transaction_by_id",
        new=mocker.AsyncMock(return_value=_transaction(mocker, user_id=3))
    )

    with pytest.raises(Forbidden):
        await transaction_service.get_transaction(db_session(mocker), 11, create_actor(user_id=7))


@pytest.mark.asyncio
async def test_list_user_transactions_for_other_user_raises_403(mocker):
    paginate = mocker.patch(f"{SERVICE}.paginate", new=mocker.AsyncMock())

    with pytest.raises(Forbidden):
        await transaction_service.list_user_transactions(
            db_session(mocker), 3, create_actor(user_id=7), UserTransactionsQueryDTO()
        )

    paginate.assert_not_awaited()


@pytest.mark.asyncio
async def test_list_my_transactions_builds_page_with_ticket_counts(mocker):
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)
    row = mocker.Mock(
        id=11, user_id=7, total_price=Decimal("10.00"), status=TransactionStatus.PENDING,
        payment_method=PaymentMethod.E_WALLET, created_at=now, updated_at=now
    )
    paginate = mocker.patch(f"{SERVICE}.paginate", new=mocker.AsyncMock(return_value=([(row, 2)], 1)))

    page = await transaction_service.list_my_transactions(
        db_session(mocker), create_actor(user_id=7), UserTransactionsQueryDTO(status=TransactionStatus.PENDING)
    )

    assert page.total == 1
    assert page.items[0].tickets_count == 2
    assert paginate.await_args.kwargs["scalars"] is False


@pytest.mark.asyncio
async def test_search_transactions_passes_filters(mocker):
    paginate = mocker.patch(f"{SERVICE}.paginate", new=mocker.AsyncMock(return_value=([], 0)))
    spy = mocker.spy(transaction_service.crud, "transactions_filter")

    page = await transaction_service.search_transactions(
        db_session(mocker), AdminTransactionsQueryDTO(user_id=4, payment_method=PaymentMethod.BANK_TRANSFER)
    )

    assert page.total == 0
    assert spy.call_args.kwargs["user_id"] == 4
    assert spy.call_args.kwargs["payment_method"] == PaymentMethod.BANK_TRANSFER
    paginate.assert_awaited_once()
