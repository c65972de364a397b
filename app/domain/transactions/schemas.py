from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from app.domain.transactions.models import TransactionStatus, PaymentMethod
from app.domain.inventory.schemas import TicketReadDTO


class TransactionCreateDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    payment_method: PaymentMethod
    ticket_ids: list[int] = Field(min_length=1, max_length=100)

    @field_validator("ticket_ids")
    @classmethod
    def _check_ticket_ids(cls, value: list[int]) -> list[int]:
        if any(ticket_id <= 0 for ticket_id in value):
            raise ValueError("ticket ids must be positive")
        if len(set(value)) != len(value):
            raise ValueError("ticket ids must be unique")
        return value


class TransactionStatusDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    status: TransactionStatus


class TransactionSummaryDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra='forbid')

    id: int
    user_id: int
    total_price: Decimal
    status: TransactionStatus
    payment_method: PaymentMethod
    created_at: datetime
    updated_at: datetime


class TransactionListItemDTO(TransactionSummaryDTO):
    tickets_count: int | None = None


class TransactionDetailsDTO(TransactionSummaryDTO):
    tickets: list[TicketReadDTO] = Field(default_factory=list)


class UserTransactionsQueryDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    status: TransactionStatus | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=200)


class AdminTransactionsQueryDTO(UserTransactionsQueryDTO):
    user_id: int | None = None
    payment_method: PaymentMethod | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None

    @model_validator(mode="after")
    def _check_range(self):
        if self.created_from and self.created_to and self.created_to < self.created_from:
            raise ValueError("created_to must not be before created_from")
        return self
