from sqlalchemy import (
    Column,
    BigInteger,
    Boolean,
    CheckConstraint,
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


class Offer(Base):
    __tablename__ = "offers"

    id = Column(
        BigIntPK,
        primary_key=True,
        autoincrement=True,
    )

    business_id = Column(
        BigInteger,
        ForeignKey("businesses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Owning business",
    )

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    image_url = Column(String(1024), nullable=True)

    original_price = Column(
        Numeric(10, 2),
        nullable=False,
        comment="Price before discount",
    )

    discounted_price = Column(
        Numeric(10, 2),
        nullable=False,
        comment="Price the customer pays",
    )

    quantity_available = Column(
        Integer,
        nullable=False,
        server_default="0",
        comment="Units left for sale",
    )

    # "HH:MM"
    pickup_time_start = Column(String(5), nullable=False)
    pickup_time_end = Column(String(5), nullable=False)

    is_active = Column(
        Boolean,
        nullable=False,
        server_default="1",
    )

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

    business = relationship("Business", back_populates="offers")

    __table_args__ = (
        CheckConstraint(
            "quantity_available >= 0",
            name="ck_offer_quantity_non_negative",
        ),
    )


Index(
    "idx_offers_business_active",
    Offer.business_id,
    Offer.is_active,
)
