"""
Error Taxonomy Module

Business-rule failures are returned to callers as explicit OperationResult
values. Exceptions are reserved for the storage layer, where they are
converted into warnings before they reach the shell.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Tuple

from .currency import Money

if TYPE_CHECKING:
    from .accounts import Account
    from .transactions import Transaction


class LedgerErrorCode(Enum):
    """Failure codes surfaced by ledger operations"""
    ACCOUNT_NOT_FOUND = "account_not_found"
    INVALID_PIN = "invalid_pin"
    INVALID_AMOUNT = "invalid_amount"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    SAME_ACCOUNT = "same_account"
    PERSISTENCE_READ_FAILURE = "persistence_read_failure"
    PERSISTENCE_WRITE_FAILURE = "persistence_write_failure"


class LedgerError(Exception):
    """Base class for exceptions raised inside the ledger package"""
    error_code: Optional[LedgerErrorCode] = None


class PersistenceError(LedgerError):
    """Snapshot could not be read or written"""


class PersistenceReadError(PersistenceError):
    error_code = LedgerErrorCode.PERSISTENCE_READ_FAILURE


class PersistenceWriteError(PersistenceError):
    error_code = LedgerErrorCode.PERSISTENCE_WRITE_FAILURE


class AccountIdExhaustedError(LedgerError, RuntimeError):
    """
    No free account identifier was found within the retry budget.

    Only reachable when the identifier space is close to full.
    """


@dataclass(frozen=True)
class OperationResult:
    """
    Outcome of a ledger operation.

    Truthiness follows ``success`` so callers can write ``if result:``.
    Warnings carry recoverable problems (e.g. a failed snapshot write)
    that did not undo the in-memory operation.
    """
    success: bool
    error: Optional[LedgerErrorCode] = None
    message: str = ""
    account: Optional['Account'] = None
    transactions: Tuple['Transaction', ...] = ()
    balance: Optional[Money] = None
    warnings: Tuple[LedgerErrorCode, ...] = field(default_factory=tuple)

    def __bool__(self) -> bool:
        return self.success

    @property
    def persisted(self) -> bool:
        """False when the snapshot write after this operation failed"""
        return LedgerErrorCode.PERSISTENCE_WRITE_FAILURE not in self.warnings

    @classmethod
    def ok(
        cls,
        message: str = "",
        account: Optional['Account'] = None,
        transactions: Optional[List['Transaction']] = None,
        balance: Optional[Money] = None,
        warnings: Optional[List[LedgerErrorCode]] = None
    ) -> 'OperationResult':
        return cls(
            success=True,
            message=message,
            account=account,
            transactions=tuple(transactions or ()),
            balance=balance,
            warnings=tuple(warnings or ())
        )

    @classmethod
    def fail(cls, error: LedgerErrorCode, message: str) -> 'OperationResult':
        return cls(success=False, error=error, message=message)
