from app.core.database import Base
from app.core.soft_delete import SoftDeleteMixin
from enum import Enum
from decimal import Decimal
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Identity, Integer, Numeric, TIMESTAMP, func, Enum as SQLEnum, CheckConstraint


class TransactionStatus(str, Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, Enum):
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    BANK_TRANSFER = "BANK_TRANSFER"
    E_WALLET = "E_WALLET"


class Transaction(SoftDeleteMixin, Base):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Identity(always=True), primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, server_default="0")
    status: Mapped[TransactionStatus] = mapped_column(SQLEnum(TransactionStatus, name="transaction_status"),
                                                      nullable=False, server_default=TransactionStatus.PENDING.value)
    payment_method: Mapped[PaymentMethod] = mapped_column(SQLEnum(PaymentMethod, name="payment_method"),
                                                          nullable=False)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    tickets: Mapped[list["Ticket"]] = relationship(back_populates="transaction", lazy="selectin")

    __table_args__ = (
        CheckConstraint("total_price >= 0", name="chk_transaction_total_nonneg"),
    )
