"""Pickup codes and signed QR payloads.

A QR payload is ``KP1.<jwt>``: an HS256 token carrying the order id, the
pickup code and an ``exp`` claim.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from kindplate.core.exceptions import QrExpiredError, QrInvalidError

QR_PREFIX = "KP1"
QR_ALGORITHM = "HS256"
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 6


@dataclass(frozen=True)
class QrClaim:
    order_id: int
    pickup_code: str
    expires_at: datetime


def generate_pickup_code(length: int = CODE_LENGTH) -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def normalize_code(code: str) -> str:
    return code.strip().upper()


def is_qr_payload(code: str) -> bool:
    return code.strip().startswith(f"{QR_PREFIX}.")


def sign_qr_payload(order_id: int, pickup_code: str, expires_at: datetime, secret: str) -> str:
    token = jwt.encode(
        {"oid": order_id, "code": pickup_code, "exp": expires_at},
        secret,
        algorithm=QR_ALGORITHM,
    )
    return f"{QR_PREFIX}.{token}"


def issue_qr_payload(order_id: int, pickup_code: str, ttl_seconds: int, secret: str,
                     now: Optional[datetime] = None) -> QrClaim:
    now = now or datetime.now(timezone.utc)
    # exp is stored in whole seconds
    expires_at = (now + timedelta(seconds=ttl_seconds)).replace(microsecond=0)
    return QrClaim(order_id=order_id, pickup_code=pickup_code, expires_at=expires_at)


def parse_qr_payload(payload: str, secret: str) -> QrClaim:
    """Verify signature and expiry of a scanned payload"""
    payload = payload.strip()
    if not is_qr_payload(payload):
        raise QrInvalidError("Unrecognized QR code")

    try:
        claims = jwt.decode(
            payload[len(QR_PREFIX) + 1:],
            secret,
            algorithms=[QR_ALGORITHM],
            options={"require": ["exp", "oid", "code"]},
        )
    except jwt.ExpiredSignatureError:
        raise QrExpiredError()
    except jwt.InvalidTokenError:
        raise QrInvalidError()

    try:
        return QrClaim(
            order_id=int(claims["oid"]),
            pickup_code=str(claims["code"]),
            expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
        )
    except (TypeError, ValueError):
        raise QrInvalidError("Malformed QR code")
