"""
Account Module

A single account: balance, PIN credential and append-only transaction
history. Every read or write of mutable state happens under the account's
own re-entrant lock, so the withdraw check-then-act is race free and
callers never observe a half-applied update.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional
import threading

from .currency import Money, Currency
from .credentials import PinCredential
from .transactions import Transaction, TransactionKind

INITIAL_DEPOSIT_NOTE = "Initial deposit"
PIN_CHANGED_NOTE = "PIN changed"


@dataclass(eq=False)
class Account:
    """
    Bank account held in the ledger directory
    """
    account_id: str
    holder_name: str
    credential: PinCredential
    balance: Money
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    transactions: List[Transaction] = field(default_factory=list)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)

    def __post_init__(self):
        if self.balance.is_negative():
            raise ValueError("Account balance cannot be negative")

    @classmethod
    def open(
        cls,
        account_id: str,
        holder_name: str,
        plain_pin: str,
        initial_deposit: Optional[Money] = None,
        currency: Currency = Currency.USD,
        salt_bytes: int = 16
    ) -> 'Account':
        """
        Open a new account.

        A positive opening deposit is reflected in the opening balance and
        recorded once as a DEPOSIT noted "Initial deposit".

        Raises:
            ValueError: On an empty PIN, a negative deposit or a currency mismatch
        """
        opening = initial_deposit if initial_deposit is not None else Money.zero(currency)
        if opening.currency != currency:
            raise ValueError("Initial deposit currency must match account currency")
        if opening.is_negative():
            raise ValueError("Initial deposit cannot be negative")

        account = cls(
            account_id=account_id,
            holder_name=holder_name,
            credential=PinCredential.create(plain_pin, salt_bytes=salt_bytes),
            balance=opening
        )
        if opening.is_positive():
            account.transactions.append(
                Transaction(TransactionKind.DEPOSIT, opening, INITIAL_DEPOSIT_NOTE)
            )
        return account

    @property
    def lock(self) -> threading.RLock:
        """Per-account exclusion primitive, also taken by ledger transfers"""
        return self._lock

    @property
    def currency(self) -> Currency:
        return self.balance.currency

    def get_balance(self) -> Money:
        with self._lock:
            return self.balance

    def _accepts(self, amount: Money) -> bool:
        return (
            isinstance(amount, Money)
            and amount.currency == self.currency
            and amount.is_positive()
        )

    def can_deposit(self, amount: Money) -> bool:
        """True when `deposit(amount)` would be applied"""
        if not self._accepts(amount):
            return False
        with self._lock:
            try:
                self.balance + amount
            except ValueError:
                return False
        return True

    def deposit(self, amount: Money, note: Optional[str] = None) -> bool:
        """
        Credit the account.

        A non-positive or foreign-currency amount, or one that would push the
        balance out of range, is a no-op that returns False.
        """
        if not self._accepts(amount):
            return False

        with self._lock:
            try:
                self.balance = self.balance + amount
            except ValueError:
                return False
            self.transactions.append(Transaction(TransactionKind.DEPOSIT, amount, note))
            return True

    def withdraw(self, amount: Money, note: Optional[str] = None) -> bool:
        """
        Debit the account if funds allow.

        Returns False, leaving state untouched, for invalid amounts and for
        amounts above the current balance.
        """
        if not self._accepts(amount):
            return False

        with self._lock:
            if amount > self.balance:
                return False
            self.balance = self.balance - amount
            self.transactions.append(Transaction(TransactionKind.WITHDRAW, amount, note))
            return True

    def record_transfer(self, kind: TransactionKind, amount: Money, counterparty_id: str) -> Transaction:
        """Append a transfer annotation; the balance moved via withdraw/deposit"""
        if kind is TransactionKind.TRANSFER_OUT:
            note = f"To {counterparty_id}"
        elif kind is TransactionKind.TRANSFER_IN:
            note = f"From {counterparty_id}"
        else:
            raise ValueError(f"Not a transfer kind: {kind.value}")

        transaction = Transaction(kind, amount, note)
        with self._lock:
            self.transactions.append(transaction)
        return transaction

    def change_pin(self, new_pin: str) -> None:
        """
        Replace the credential with one for ``new_pin``.

        The old PIN stops verifying immediately. An ADMINISTRATIVE entry with
        a zero amount records the change.

        Raises:
            ValueError: If the new PIN is empty
        """
        with self._lock:
            self.credential = self.credential.rotate(new_pin)
            self.transactions.append(
                Transaction.administrative(PIN_CHANGED_NOTE, self.currency)
            )

    def authenticate(self, plain_pin: str) -> bool:
        with self._lock:
            credential = self.credential
        return credential.verify(plain_pin)

    def history(self, limit: int) -> List[Transaction]:
        """Last ``limit`` entries, oldest first, as a fresh list"""
        if limit <= 0:
            return []
        with self._lock:
            return list(self.transactions[-limit:])

    def replayed_balance(self) -> Money:
        """Balance implied by the DEPOSIT and WITHDRAW entries of the history"""
        total = Decimal('0')
        with self._lock:
            for transaction in self.transactions:
                if transaction.kind is TransactionKind.DEPOSIT:
                    total += transaction.amount.amount
                elif transaction.kind is TransactionKind.WITHDRAW:
                    total -= transaction.amount.amount
        return Money(total, self.currency)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for the snapshot"""
        with self._lock:
            return {
                'account_id': self.account_id,
                'holder_name': self.holder_name,
                'balance': str(self.balance.amount),
                'currency': self.currency.code,
                'created_at': self.created_at.isoformat(),
                'credential': self.credential.to_dict(),
                'transactions': [t.to_dict() for t in self.transactions]
            }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Account':
        """Rebuild an account from its snapshot dictionary"""
        currency = Currency.from_code(data['currency'])
        transactions = [Transaction.from_dict(item) for item in data['transactions']]
        return cls(
            account_id=str(data['account_id']),
            holder_name=str(data['holder_name']),
            credential=PinCredential.from_dict(data['credential']),
            balance=Money(Decimal(data['balance']), currency),
            created_at=datetime.fromisoformat(data['created_at']),
            transactions=transactions
        )
