from sqlalchemy import (
    Column,
    String,
    TIMESTAMP,
    func,
)
from sqlalchemy.orm import relationship

from kindplate.db.base import Base, BigIntPK


class Business(Base):
    __tablename__ = "businesses"

    id = Column(
        BigIntPK,
        primary_key=True,
        autoincrement=True,
    )

    name = Column(
        String(255),
        nullable=False,
        comment="Display name shown to customers",
    )

    address = Column(
        String(512),
        nullable=False,
        server_default="",
        comment="Pickup address",
    )

    created_at = Column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    offers = relationship("Offer", back_populates="business", cascade="all, delete-orphan")
