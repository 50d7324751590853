import enum

from sqlalchemy import (
    Column,
    BigInteger,
    Boolean,
    Enum,
    ForeignKey,
    Index,
    Numeric,
    String,
    TIMESTAMP,
    func,
)

from kindplate.db.base import Base, BigIntPK


class PaymentMethod(str, enum.Enum):
    YOOKASSA = "yookassa"
    SBP = "sbp"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


ACTIVE_PAYMENT_STATUSES = (PaymentStatus.PENDING, PaymentStatus.PROCESSING)


class Payment(Base):
    __tablename__ = "payments"

    id = Column(
        BigIntPK,
        primary_key=True,
        autoincrement=True,
    )

    order_id = Column(
        BigInteger,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    user_id = Column(BigInteger, nullable=False, index=True)

    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False)

    payment_method = Column(
        Enum(
            PaymentMethod,
            name="payment_method_type",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )

    status = Column(
        Enum(
            PaymentStatus,
            name="payment_status_type",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=PaymentStatus.PENDING,
    )

    payment_url = Column(String(1024), nullable=True)
    return_url = Column(String(1024), nullable=True)

    # money captured for an order that was already cancelled
    refund_required = Column(Boolean, nullable=False, default=False)

    created_at = Column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at = Column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


Index(
    "idx_payments_order_status",
    Payment.order_id,
    Payment.status,
)
