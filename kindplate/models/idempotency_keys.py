import enum

from sqlalchemy import (
    Column,
    BigInteger,
    String,
    TIMESTAMP,
    Enum,
    Index,
    func,
)

from kindplate.db.base import Base, JSONType


class IdempotencyStatus(str, enum.Enum):
    PROCESSING = "PROCESSING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class IdempotencyKey(Base):
    """Replay table for client-supplied Idempotency-Key headers"""

    __tablename__ = "idempotency_keys"

    # "<scope>:<user_id>:<client key>"
    key = Column(
        String(200),
        primary_key=True,
    )

    scope = Column(
        String(64),
        nullable=False,
        comment="Operation the key guards, e.g. payment:create",
    )

    user_id = Column(BigInteger, nullable=False)

    status = Column(
        Enum(
            IdempotencyStatus,
            name="idempotency_status_type",
        ),
        nullable=False,
        default=IdempotencyStatus.PROCESSING,
    )

    # Response returned for the first successful call
    response_snapshot = Column(JSONType, nullable=True)

    created_at = Column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    expires_at = Column(
        TIMESTAMP(timezone=True),
        nullable=True,
        comment="Row can be purged after this moment",
    )


Index(
    "idx_idempotency_keys_expires_at",
    IdempotencyKey.expires_at,
)
