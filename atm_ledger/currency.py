"""
Money Module

Fixed-point monetary values for account balances and transaction amounts.
Amounts are Decimal quantized to the currency's minor unit. NEVER uses
float for stored monetary values.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, getcontext
from dataclasses import dataclass
from enum import Enum
from typing import Union
import re

# Set global decimal context for financial precision
getcontext().prec = 28


class Currency(Enum):
    """ISO 4217 Currency Codes with precision info"""
    USD = ("USD", 2)
    EUR = ("EUR", 2)
    GBP = ("GBP", 2)
    INR = ("INR", 2)
    JPY = ("JPY", 0)

    def __init__(self, code: str, precision: int):
        self.code = code
        self.precision = precision

    @classmethod
    def from_code(cls, code: str) -> 'Currency':
        """Look up a currency by its ISO code"""
        try:
            return cls[code.upper()]
        except KeyError:
            raise ValueError(f"Unsupported currency code: {code}")


AmountLike = Union['Money', Decimal, int, float, str]


@dataclass(frozen=True)
class Money:
    """
    Immutable money representation with currency and proper precision.
    All balances and transaction amounts MUST use this class.
    """
    amount: Decimal
    currency: Currency = Currency.USD

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', to_decimal(self.amount))

        if not self.amount.is_finite():
            raise ValueError(f"Money amount must be finite, got {self.amount}")

        # Round to currency precision; too many digits for the context is an error
        try:
            rounded = self.amount.quantize(
                Decimal('0.1') ** self.currency.precision,
                rounding=ROUND_HALF_UP
            )
        except InvalidOperation:
            raise ValueError(f"Money amount out of range: {self.amount}")
        object.__setattr__(self, 'amount', rounded)

    @classmethod
    def zero(cls, currency: Currency = Currency.USD) -> 'Money':
        return cls(Decimal('0'), currency)

    def _check_currency(self, other: 'Money', verb: str) -> None:
        if not isinstance(other, Money):
            raise TypeError(f"Cannot {verb} Money and {type(other).__name__}")
        if self.currency != other.currency:
            raise ValueError(f"Cannot {verb} {self.currency.code} and {other.currency.code}")

    def __add__(self, other: 'Money') -> 'Money':
        self._check_currency(other, "add")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        self._check_currency(other, "subtract")
        return Money(self.amount - other.amount, self.currency)

    def __neg__(self) -> 'Money':
        return Money(-self.amount, self.currency)

    def __abs__(self) -> 'Money':
        return Money(abs(self.amount), self.currency)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Money):
            return False
        return self.amount == other.amount and self.currency == other.currency

    def __hash__(self) -> int:
        return hash((self.amount, self.currency))

    def __lt__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount < other.amount

    def __le__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount <= other.amount

    def __gt__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount > other.amount

    def __ge__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount >= other.amount

    def is_zero(self) -> bool:
        """Check if amount is exactly zero"""
        return self.amount == Decimal('0')

    def is_positive(self) -> bool:
        """Check if amount is positive"""
        return self.amount > Decimal('0')

    def is_negative(self) -> bool:
        """Check if amount is negative"""
        return self.amount < Decimal('0')

    def to_string(self) -> str:
        """Format for display"""
        if self.currency.precision == 0:
            return f"{self.currency.code} {self.amount:,.0f}"
        return f"{self.currency.code} {self.amount:,.{self.currency.precision}f}"

    def __str__(self) -> str:
        return f"{self.amount:.{self.currency.precision}f}"


def to_decimal(value: Union[Decimal, int, float, str]) -> Decimal:
    """
    Convert a numeric value to Decimal without binary float artifacts.

    Floats go through their shortest repr, so 0.1 becomes Decimal('0.1').

    Raises:
        ValueError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise ValueError("Boolean is not a monetary amount")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        result = decimal_from_string(value)
    else:
        raise ValueError(f"Cannot convert {type(value).__name__} to Decimal")

    if not result.is_finite():
        raise ValueError(f"Amount must be finite, got {value!r}")
    return result


# Currency symbols and whitespace that may surround or split user input
_IGNORED_CHARS = re.compile(r'[\s$€£₹¥]')
# Optional sign, digits with optional thousands commas, optional fraction
_AMOUNT_PATTERN = re.compile(r'[+-]?(\d[\d,]*)?(\.\d*)?')


def decimal_from_string(value: str) -> Decimal:
    """
    Safely convert string to Decimal, handling common formats

    Currency symbols, whitespace and thousands separators are ignored; any
    other character makes the input malformed, so "12abc" or "1e3" are
    rejected rather than read as a different number.

    Args:
        value: String representation of number

    Returns:
        Decimal value

    Raises:
        ValueError: If string cannot be converted to valid Decimal
    """
    if not value or not isinstance(value, str):
        raise ValueError("Value must be a non-empty string")

    clean_value = _IGNORED_CHARS.sub('', value)

    if not re.search(r'\d', clean_value) or not _AMOUNT_PATTERN.fullmatch(clean_value):
        raise ValueError(f"Cannot convert '{value}' to Decimal")

    if ',' in clean_value and '.' in clean_value:
        # Both comma and dot - comma is the thousands separator
        clean_value = clean_value.replace(',', '')
    elif ',' in clean_value and clean_value.count(',') == 1:
        parts = clean_value.split(',')
        if len(parts[1]) <= 2:
            clean_value = clean_value.replace(',', '.')
        else:
            clean_value = clean_value.replace(',', '')
    else:
        clean_value = clean_value.replace(',', '')

    try:
        return Decimal(clean_value)
    except InvalidOperation:
        raise ValueError(f"Cannot convert '{value}' to Decimal")


def to_money(value: AmountLike, currency: Currency = Currency.USD) -> Money:
    """
    Coerce user or caller input into Money of the given currency.

    Raises:
        ValueError: If the value is malformed or in another currency
    """
    if isinstance(value, Money):
        if value.currency != currency:
            raise ValueError(
                f"Amount currency {value.currency.code} does not match {currency.code}"
            )
        return value
    return Money(to_decimal(value), currency)
