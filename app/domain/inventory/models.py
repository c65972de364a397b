from app.core.database import Base
from app.core.soft_delete import SoftDeleteMixin
from enum import Enum
from decimal import Decimal
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Identity, Text, ForeignKey, Numeric, Integer, TIMESTAMP, func, Enum as SQLEnum, \
    CheckConstraint, Index, text


class TicketTypeStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    SOLD_OUT = "SOLD_OUT"
    CLOSED = "CLOSED"


class TicketCategory(Base):
    __tablename__ = "ticket_categories"

    id: Mapped[int] = mapped_column(Identity(always=True), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)


class TicketType(SoftDeleteMixin, Base):
    __tablename__ = "ticket_types"

    id: Mapped[int] = mapped_column(Identity(always=True), primary_key=True)
    period_id: Mapped[int] = mapped_column(ForeignKey("event_periods.id", ondelete="RESTRICT"), nullable=False,
                                           index=True)
    category_id: Mapped[int] = mapped_column(ForeignKey("ticket_categories.id", ondelete="RESTRICT"), nullable=False,
                                             index=True)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    discount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    quota: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[TicketTypeStatus] = mapped_column(SQLEnum(TicketTypeStatus, name="ticket_type_status"),
                                                     nullable=False, server_default=TicketTypeStatus.AVAILABLE.value)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    period: Mapped["EventPeriod"] = relationship(lazy="selectin")
    category: Mapped["TicketCategory"] = relationship(lazy="selectin")

    __table_args__ = (
        CheckConstraint("price >= 0", name="chk_ticket_type_price_nonneg"),
        CheckConstraint("discount IS NULL OR (discount >= 0 AND discount <= price)", name="chk_ticket_type_discount"),
        CheckConstraint("quota >= 0", name="chk_ticket_type_quota_nonneg"),
    )

    @property
    def effective_price(self) -> Decimal:
        net = self.price - (self.discount or Decimal("0"))
        return net if net > 0 else Decimal("0")


class Ticket(SoftDeleteMixin, Base):
    __tablename__ = "tickets"

    id: Mapped[int] = mapped_column(Identity(always=True), primary_key=True)
    ticket_type_id: Mapped[int] = mapped_column(ForeignKey("ticket_types.id", ondelete="RESTRICT"), nullable=False,
                                                index=True)
    ticket_code: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    transaction_id: Mapped[int | None] = mapped_column(ForeignKey("transactions.id", ondelete="RESTRICT"),
                                                       nullable=True, index=True)
    buyer_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)

    ticket_type: Mapped["TicketType"] = relationship(lazy="selectin")
    transaction: Mapped["Transaction"] = relationship(back_populates="tickets", lazy="noload")

    __table_args__ = (
        Index(
            "ix_tickets_type_available",
            "ticket_type_id",
            "created_at",
            postgresql_where=text("transaction_id IS NULL AND deleted_at IS NULL")
        ),
    )
