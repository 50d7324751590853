import enum

from sqlalchemy import (
    Column,
    BigInteger,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    TIMESTAMP,
    func,
)
from sqlalchemy.orm import relationship

from kindplate.db.base import Base, BigIntPK


class OrderStatus(str, enum.Enum):
    NEW = "new"
    CONFIRMED = "confirmed"
    READY_FOR_PICKUP = "ready_for_pickup"
    PICKED_UP = "picked_up"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


# pickup code and QR work only after the business marked the paid order ready
REDEEMABLE_STATUSES = (OrderStatus.READY_FOR_PICKUP,)


class Order(Base):
    __tablename__ = "orders"

    id = Column(
        BigIntPK,
        primary_key=True,
        autoincrement=True,
    )

    user_id = Column(
        BigInteger,
        nullable=False,
        index=True,
        comment="Customer",
    )

    business_id = Column(
        BigInteger,
        ForeignKey("businesses.id"),
        nullable=False,
        index=True,
    )

    business_name = Column(String(255), nullable=False)
    business_address = Column(String(512), nullable=False)

    pickup_time_start = Column(String(5), nullable=False)
    pickup_time_end = Column(String(5), nullable=False)

    subtotal = Column(Numeric(10, 2), nullable=False)
    service_fee = Column(Numeric(10, 2), nullable=False)
    promocode_discount = Column(Numeric(10, 2), nullable=False, server_default="0")
    total = Column(Numeric(10, 2), nullable=False)

    status = Column(
        Enum(
            OrderStatus,
            name="order_status_type",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=OrderStatus.NEW,
        comment="Order lifecycle status",
    )

    notes = Column(Text, nullable=True)

    pickup_code = Column(
        String(16),
        nullable=False,
        unique=True,
        comment="Short code shown to the business at pickup",
    )

    pickup_verified_at = Column(TIMESTAMP(timezone=True), nullable=True)
    confirmed_at = Column(TIMESTAMP(timezone=True), nullable=True)
    paid_at = Column(TIMESTAMP(timezone=True), nullable=True)
    cancelled_at = Column(TIMESTAMP(timezone=True), nullable=True)

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

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )


class OrderItem(Base):
    __tablename__ = "order_items"

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

    offer_id = Column(BigInteger, nullable=False)
    quantity = Column(Integer, nullable=False)

    price = Column(
        Numeric(10, 2),
        nullable=False,
        comment="Discounted unit price at draft time",
    )

    title = Column(String(255), nullable=False)
    pickup_time_start = Column(String(5), nullable=False)
    pickup_time_end = Column(String(5), nullable=False)

    order = relationship("Order", back_populates="items")


Index(
    "idx_orders_business_status",
    Order.business_id,
    Order.status,
)
