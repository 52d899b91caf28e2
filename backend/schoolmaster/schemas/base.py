"""
Base schemas with standardized field types for consistent API responses.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Optional

from pydantic import AfterValidator, PlainSerializer

from ..core.timezone_utils import ensure_utc


def _to_money(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float, str)):
        return Decimal(str(value))
    raise ValueError(f"Cannot convert {type(value)} to Money")


# Money travels as a JSON number with two decimal places
Money = Annotated[
    Decimal,
    AfterValidator(_to_money),
    PlainSerializer(lambda v: float(v), return_type=float, when_used="json"),
]

# SQLite hands back naive datetimes; everything stored is UTC
UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


def optional_utc(value: Optional[datetime]) -> Optional[datetime]:
    return ensure_utc(value) if value is not None else None
