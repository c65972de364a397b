from .events.models import Event, EventPeriod
from .inventory.models import TicketCategory, TicketType, Ticket
from .transactions.models import Transaction

__all__ = (
    "Event", "EventPeriod", "TicketCategory", "TicketType", "Ticket", "Transaction"
)
