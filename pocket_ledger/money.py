"""
Money Handling Module

Monetary amounts are always Decimal, quantized to two places. Float input is
accepted only at the edges and converted through its string form so binary
rounding never leaks into a balance.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union
import re


AMOUNT_PRECISION = Decimal('0.01')
ZERO = Decimal('0.00')

AmountLike = Union[Decimal, int, float, str]

# Optional sign, optional currency marker, plain decimal number
AMOUNT_PATTERN = re.compile(
    r'^(?P<sign>[+-]?)(?:₹|Rs\.?|INR|\$)?(?P<number>\d+(?:\.\d+)?)$',
    re.IGNORECASE
)
THOUSANDS_SEPARATOR = re.compile(r'(?<=\d),(?=\d)')


def to_decimal(value: AmountLike) -> Decimal:
    """
    Convert a value to a finite Decimal without rounding it
    
    Raises:
        ValueError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise ValueError("Amount must be a number")
    
    if isinstance(value, str):
        return _parse_decimal(value)
    
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"Cannot convert {value!r} to an amount")
    
    if not amount.is_finite():
        raise ValueError(f"Amount must be finite, got {value!r}")
    
    return amount


def to_amount(value: AmountLike) -> Decimal:
    """
    Convert a value to a quantized Decimal amount
    
    Raises:
        ValueError: If the value is not a finite number or is too large to
            be held to the cent
    """
    amount = to_decimal(value)
    try:
        return amount.quantize(AMOUNT_PRECISION, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"Amount {value!r} is too large")


def parse_amount(value: str) -> Decimal:
    """
    Parse a user-supplied amount string such as "2,500", "₹ 100.50" or "12.5"
    
    Only a sign, a currency marker, whitespace and thousands separators are
    tolerated around the number; exponents and stray characters are not.
    
    Raises:
        ValueError: If the string does not hold a plain decimal number
    """
    return to_amount(_parse_decimal(value))


def _parse_decimal(value: str) -> Decimal:
    if not value or not value.strip():
        raise ValueError("Amount must be a non-empty string")
    
    compact = THOUSANDS_SEPARATOR.sub('', re.sub(r'\s+', '', value))
    match = AMOUNT_PATTERN.match(compact)
    if not match:
        raise ValueError(f"Cannot convert '{value}' to an amount")
    
    return Decimal(match.group('sign') + match.group('number'))


def has_sub_cent_digits(amount: Decimal) -> bool:
    """True if the amount carries non-zero digits beyond the second decimal place"""
    sign, digits, exponent = amount.as_tuple()
    extra = -exponent - 2
    if extra <= 0:
        return False
    tail = digits[-extra:] if extra <= len(digits) else digits
    return any(tail)


def is_positive(amount: Decimal) -> bool:
    return amount > ZERO


def format_amount(amount: Decimal, symbol: str = "₹") -> str:
    """Format for display, e.g. ``₹2,500`` or ``₹12.50``"""
    if amount == amount.to_integral_value():
        return f"{symbol}{amount:,.0f}"
    return f"{symbol}{amount:,.2f}"
