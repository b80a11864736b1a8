"""Unit conversion helpers shared across the pipeline.


- supply_to_base_units converts a human supply ("1,000.5") into integer base units.
- to_balance coerces a bank balance into a 2-decimal Decimal.
"""

from decimal import Decimal, InvalidOperation, ROUND_DOWN, localcontext

from django.conf import settings
from django.core.exceptions import ValidationError

# SPL mint amounts are u64
MAX_BASE_UNITS = 2 ** 64 - 1
CENTS = Decimal("0.01")


def parse_supply(supply: str | Decimal | int | float) -> Decimal:
    """
    Parse a supply value as entered in the form; thousands separators are allowed
    """
    try:
        value = Decimal(str(supply).replace(",", "").strip())
    except InvalidOperation:
        raise ValidationError("Supply must be a valid number")
    if not value.is_finite():
        raise ValidationError("Supply must be a valid number")
    return value


def supply_to_base_units(supply: str | Decimal, decimals: int) -> int:
    """
    Scale a human supply by 10**decimals using decimal math, truncating the remainder
    """
    if decimals < 0 or decimals > settings.MAX_TOKEN_DECIMALS:
        raise ValidationError(f"Decimals must be between 0 and {settings.MAX_TOKEN_DECIMALS}")
    amount = parse_supply(supply)
    # scaling never shrinks the amount, so anything this large cannot fit
    if amount > MAX_BASE_UNITS:
        raise ValidationError("Supply is too high for the chosen decimals")
    with localcontext() as ctx:
        ctx.prec = len(str(MAX_BASE_UNITS)) + settings.MAX_TOKEN_DECIMALS + 10
        ctx.rounding = ROUND_DOWN
        units = int((amount * (Decimal(10) ** decimals)).to_integral_value(rounding=ROUND_DOWN))
    if units <= 0:
        raise ValidationError("Supply must be greater than 0")
    if units > MAX_BASE_UNITS:
        raise ValidationError("Supply is too high for the chosen decimals")
    return units


def to_balance(value) -> Decimal | None:
    """
    Coerce an upstream balance (float, str, None) into a finite 2-decimal Decimal, or None
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return amount.quantize(CENTS, rounding=ROUND_DOWN)
