"""Shared response envelope and field types"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Annotated, Optional

from pydantic import BaseModel, Field, PlainSerializer

# Money travels as Decimal internally and as a JSON number on the wire
Money = Annotated[
    Decimal,
    PlainSerializer(lambda v: float(v), return_type=float, when_used="json"),
]

# "HH:MM", 24h clock
TIME_OF_DAY_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


def to_money(value) -> Decimal:
    """Round to kopecks"""
    return Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class BaseResponse(BaseModel):
    """Base response envelope"""
    success: bool = Field(
        ...,
        description="Whether the request succeeded"
    )
    message: Optional[str] = Field(
        None,
        description="Human readable message"
    )


class ErrorResponse(BaseResponse):
    """Error envelope produced by the global exception handlers"""
    success: bool = False
    error: str = Field(
        ...,
        description="Machine-readable error code",
        examples=["VENDOR_CONFLICT"]
    )
