"""
Transaction Record Module

Immutable audit records for every balance-affecting or administrative
event on an account. Direction is carried by the kind; amounts are always
magnitudes.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from .currency import Money, Currency


class TransactionKind(Enum):
    """Kinds of account history entries"""
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    ADMINISTRATIVE = "administrative"  # Non-monetary, e.g. PIN change

    @property
    def label(self) -> str:
        """Upper-case label used on statements"""
        return self.name


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Transaction:
    """
    Single entry in an account's history
    """
    kind: TransactionKind
    amount: Money
    note: Optional[str] = None
    timestamp: datetime = field(default_factory=_utc_now)

    def __post_init__(self):
        if not isinstance(self.amount, Money):
            raise ValueError("Transaction amount must be Money")

        if self.amount.is_negative():
            raise ValueError("Transaction amount must not be negative")

        if self.kind is TransactionKind.ADMINISTRATIVE and not self.amount.is_zero():
            raise ValueError("Administrative transactions carry a zero amount")

    @classmethod
    def administrative(cls, note: str, currency: Currency = Currency.USD) -> 'Transaction':
        return cls(TransactionKind.ADMINISTRATIVE, Money.zero(currency), note)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for the snapshot"""
        return {
            'kind': self.kind.value,
            'amount': str(self.amount.amount),
            'currency': self.amount.currency.code,
            'note': self.note,
            'timestamp': self.timestamp.isoformat()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Transaction':
        """Rebuild a transaction from its snapshot dictionary"""
        currency = Currency.from_code(data.get('currency', Currency.USD.code))
        return cls(
            kind=TransactionKind(data['kind']),
            amount=Money(Decimal(data['amount']), currency),
            note=data.get('note'),
            timestamp=datetime.fromisoformat(data['timestamp'])
        )
