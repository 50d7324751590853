from sqlalchemy import (
    Column,
    BigInteger,
    Integer,
    TIMESTAMP,
    UniqueConstraint,
    func,
)

from kindplate.db.base import Base, BigIntPK, JSONType


class CartEntry(Base):
    """One line of a persisted cart (used by the database cart backend)"""

    __tablename__ = "cart_items"

    id = Column(
        BigIntPK,
        primary_key=True,
        autoincrement=True,
    )

    user_id = Column(
        BigInteger,
        nullable=False,
        index=True,
        comment="Cart owner",
    )

    offer_id = Column(BigInteger, nullable=False)
    business_id = Column(BigInteger, nullable=False)

    quantity = Column(
        Integer,
        nullable=False,
        comment="Units selected, 1..CART_MAX_QUANTITY",
    )

    # Snapshot of the offer at add time
    offer_snapshot = Column(JSONType, nullable=False)

    # Insertion order of the lines
    position = Column(Integer, nullable=False, server_default="0")

    created_at = Column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "offer_id",
            name="uq_cart_user_offer",
        ),
    )
