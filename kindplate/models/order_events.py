import enum

from sqlalchemy import (
    Column,
    BigInteger,
    Enum,
    String,
    TIMESTAMP,
    func,
)

from kindplate.db.base import Base, BigIntPK, JSONType


class ActorType(str, enum.Enum):
    USER = "user"
    BUSINESS = "business"
    SYSTEM = "system"


class OrderEvent(Base):
    """Audit trail of order transitions"""

    __tablename__ = "order_events"

    id = Column(
        BigIntPK,
        primary_key=True,
        autoincrement=True,
    )

    order_id = Column(
        BigInteger,
        nullable=False,
        index=True,
    )

    event_type = Column(
        String(64),
        nullable=False,
        comment="created / confirmed / paid / ready / picked_up / cancelled ...",
    )

    actor_id = Column(BigInteger, nullable=True)

    actor_type = Column(
        Enum(
            ActorType,
            name="order_actor_type",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )

    # "metadata" is reserved on declarative classes
    event_metadata = Column("metadata", JSONType, nullable=True)

    created_at = Column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
