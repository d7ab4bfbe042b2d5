"""
Platform commission arithmetic.

``calculate_commission`` is pure: the platform cut is the gross amount times
the rate rounded half-up to the cent, and the creator keeps the remainder, so
``platform_commission + creator_earnings == gross`` always holds exactly.
"""
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union

from marketplace.core.config import settings
from marketplace.core.errors import InvalidArgument

CENT = Decimal("0.01")

Number = Union[Decimal, int, float, str]

@dataclass(frozen=True)
class CommissionSplit:
    gross: Decimal
    rate: Decimal
    platform_commission: Decimal
    creator_earnings: Decimal

def to_decimal(value: Number, field: str = "value") -> Decimal:
    if isinstance(value, bool):
        raise InvalidArgument(f"{field} must be numeric")
    try:
        # str() keeps floats like 0.15 from turning into 0.1499999...
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidArgument(f"{field} must be numeric")
    if not result.is_finite():
        raise InvalidArgument(f"{field} must be finite")
    return result

def round_money(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)

def calculate_commission(gross: Number, rate: Number) -> CommissionSplit:
    gross = to_decimal(gross, "amount")
    rate = to_decimal(rate, "commission rate")

    if gross < 0:
        raise InvalidArgument("amount must not be negative")
    if rate < 0 or rate > 1:
        raise InvalidArgument("commission rate must be between 0 and 1")

    commission = round_money(gross * rate)
    return CommissionSplit(
        gross=gross,
        rate=rate,
        platform_commission=commission,
        creator_earnings=gross - commission,
    )

def resolve_commission_rate(override: Optional[Number] = None) -> Decimal:
    """Creator-specific override, else the platform default."""
    if override is None:
        return to_decimal(settings.PLATFORM_COMMISSION_RATE, "commission rate")
    return to_decimal(override, "commission rate")
