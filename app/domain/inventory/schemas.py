from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field, model_validator, AliasPath
from app.domain.inventory.models import TicketTypeStatus


class TicketTypeCreateDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    category_id: int = Field(gt=0)
    price: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    discount: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    quota: int = Field(ge=0)
    status: TicketTypeStatus = TicketTypeStatus.AVAILABLE

    @model_validator(mode="after")
    def _check_discount(self):
        if self.discount is not None and self.discount > self.price:
            raise ValueError("discount cannot exceed price")
        return self


class TicketTypeUpdateDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    category_id: int | None = Field(default=None, gt=0)
    price: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    discount: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    quota: int | None = Field(default=None, ge=0)
    status: TicketTypeStatus | None = None

    @model_validator(mode="after")
    def _check_nulls(self):
        # only discount may be reset to null
        for name in ("category_id", "price", "quota", "status"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    @model_validator(mode="after")
    def _check_discount(self):
        # the combination with stored values is checked by the service
        if self.discount is not None and self.price is not None and self.discount > self.price:
            raise ValueError("discount cannot exceed price")
        return self


class TicketCategoryReadDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra='forbid')

    id: int
    name: str


class TicketTypeReadDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra='forbid')

    id: int
    period_id: int
    category: TicketCategoryReadDTO
    price: Decimal
    discount: Decimal | None
    effective_price: Decimal
    quota: int
    status: TicketTypeStatus
    created_at: datetime
    updated_at: datetime


class TicketReadDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra='forbid', populate_by_name=True)

    id: int
    ticket_type_id: int
    ticket_code: str
    transaction_id: int | None
    buyer_id: int | None
    price: Decimal = Field(validation_alias=AliasPath('ticket_type', 'effective_price'))
    created_at: datetime
    deleted_at: datetime | None = None


class TicketsQueryDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    available_only: bool = True
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=50, ge=1, le=200)


class ReconcileResultDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    ticket_type_id: int
    quota: int
    created: int = 0
    removed: int = 0
    live_unsold: int
