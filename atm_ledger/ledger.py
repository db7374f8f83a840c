"""
Ledger Module

The account directory and every operation the presentation shell calls.
Single-account mutations are delegated to Account; transfers lock both
accounts in ascending id order so opposite-direction transfers cannot
deadlock. After each mutating call the whole ledger is handed to the
snapshot store. Business-rule failures come back as OperationResult
values, never as exceptions.
"""

from contextlib import ExitStack
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional
import secrets
import threading

from .accounts import Account
from .currency import AmountLike, Currency, Money, to_money
from .errors import (
    AccountIdExhaustedError, LedgerErrorCode, OperationResult, PersistenceWriteError
)
from .logging_config import get_logger, log_action
from .transactions import TransactionKind

if TYPE_CHECKING:
    from .config import AtmLedgerConfig
    from .storage import SnapshotStore

SNAPSHOT_FORMAT_VERSION = 1
DEFAULT_HISTORY_LIMIT = 10


@dataclass(frozen=True)
class AccountSummary:
    """Row of the administrative account listing"""
    account_id: str
    holder_name: str
    balance: Money


def numeric_id_generator(length: int = 10) -> Callable[[], str]:
    """Random zero-padded numeric identifiers of a fixed length"""
    upper = 10 ** length

    def generate() -> str:
        return f"{secrets.randbelow(upper):0{length}d}"

    return generate


class Ledger:
    """
    Directory of accounts plus the cross-account operations
    """

    def __init__(
        self,
        accounts: Optional[Dict[str, Account]] = None,
        store: Optional['SnapshotStore'] = None,
        currency: Currency = Currency.USD,
        account_number_length: int = 10,
        max_id_attempts: int = 100,
        salt_bytes: int = 16,
        id_generator: Optional[Callable[[], str]] = None
    ):
        self._accounts: Dict[str, Account] = dict(accounts or {})
        self.store = store
        self.currency = currency
        self.max_id_attempts = max_id_attempts
        self.salt_bytes = salt_bytes
        self._id_generator = id_generator or numeric_id_generator(account_number_length)
        self._directory_lock = threading.RLock()
        self.logger = get_logger("atm_ledger.ledger")

    @staticmethod
    def options_from_config(config: 'AtmLedgerConfig') -> Dict[str, Any]:
        """Constructor keyword arguments taken from configuration"""
        return {
            'currency': Currency.from_code(config.currency),
            'account_number_length': config.account_number_length,
            'max_id_attempts': config.max_id_attempts,
            'salt_bytes': config.salt_bytes
        }

    @classmethod
    def from_config(
        cls,
        config: 'AtmLedgerConfig',
        store: Optional['SnapshotStore'] = None,
        accounts: Optional[Dict[str, Account]] = None
    ) -> 'Ledger':
        return cls(accounts=accounts, store=store, **cls.options_from_config(config))

    def __len__(self) -> int:
        with self._directory_lock:
            return len(self._accounts)

    def __contains__(self, account_id: str) -> bool:
        with self._directory_lock:
            return account_id in self._accounts

    def get_account(self, account_id: str) -> Optional[Account]:
        with self._directory_lock:
            return self._accounts.get(account_id)

    # Helpers

    def parse_amount(self, amount: AmountLike) -> Optional[Money]:
        """Money for valid input, None for malformed or foreign-currency input"""
        try:
            return to_money(amount, self.currency)
        except (ValueError, TypeError):
            return None

    def _positive_amount(self, amount: AmountLike) -> Optional[Money]:
        money = self.parse_amount(amount)
        if money is None or not money.is_positive():
            return None
        return money

    def _not_found(self, account_id: str) -> OperationResult:
        return OperationResult.fail(
            LedgerErrorCode.ACCOUNT_NOT_FOUND, f"Account {account_id} not found"
        )

    def _invalid_amount(self, amount: Any) -> OperationResult:
        return OperationResult.fail(
            LedgerErrorCode.INVALID_AMOUNT, f"Invalid amount: {amount!r}"
        )

    def _generate_account_id(self) -> str:
        """
        Draw identifiers until one is free.

        Caller must hold the directory lock.

        Raises:
            AccountIdExhaustedError: If every attempt collided
        """
        for _ in range(self.max_id_attempts):
            candidate = self._id_generator()
            if candidate not in self._accounts:
                return candidate
        raise AccountIdExhaustedError(
            f"No free account id after {self.max_id_attempts} attempts"
        )

    def _persist(self) -> List[LedgerErrorCode]:
        """Save the snapshot; a failed write becomes a warning, never a rollback"""
        if self.store is None:
            return []
        try:
            self.store.save(self)
        except PersistenceWriteError as e:
            log_action(
                self.logger, "warning", f"Snapshot write failed: {e}",
                action="persist", extra={"error": str(e)}
            )
            return [LedgerErrorCode.PERSISTENCE_WRITE_FAILURE]
        return []

    # Operations

    def create_account(
        self,
        holder_name: str,
        initial_deposit: AmountLike,
        plain_pin: str
    ) -> OperationResult:
        """
        Open a new account under a freshly generated id

        Args:
            holder_name: Display name of the holder
            initial_deposit: Opening balance, zero or more
            plain_pin: PIN to hash into the account credential

        Returns:
            OperationResult carrying the new account
        """
        opening = self.parse_amount(initial_deposit)
        if opening is None or opening.is_negative():
            return self._invalid_amount(initial_deposit)

        if not isinstance(plain_pin, str) or not plain_pin:
            return OperationResult.fail(LedgerErrorCode.INVALID_PIN, "PIN must not be empty")

        with self._directory_lock:
            account_id = self._generate_account_id()
            account = Account.open(
                account_id=account_id,
                holder_name=holder_name.strip(),
                plain_pin=plain_pin,
                initial_deposit=opening,
                currency=self.currency,
                salt_bytes=self.salt_bytes
            )
            self._accounts[account_id] = account

        log_action(
            self.logger, "info", "Account created",
            account_id=account_id, action="create_account",
            extra={"initial_deposit": str(opening)}
        )

        warnings = self._persist()
        return OperationResult.ok(
            message=f"Account created: {account_id}",
            account=account,
            balance=account.get_balance(),
            warnings=warnings
        )

    def authenticate(self, account_id: str, plain_pin: str) -> OperationResult:
        """Resolve an account for a login; the PIN itself is never logged"""
        account = self.get_account(account_id)
        if account is None:
            log_action(
                self.logger, "warning", "Login failed",
                account_id=account_id, action="authenticate",
                extra={"reason": LedgerErrorCode.ACCOUNT_NOT_FOUND.value}
            )
            return self._not_found(account_id)

        if not account.authenticate(plain_pin):
            log_action(
                self.logger, "warning", "Login failed",
                account_id=account_id, action="authenticate",
                extra={"reason": LedgerErrorCode.INVALID_PIN.value}
            )
            return OperationResult.fail(LedgerErrorCode.INVALID_PIN, "Incorrect PIN")

        log_action(
            self.logger, "info", "Login succeeded",
            account_id=account_id, action="authenticate"
        )
        return OperationResult.ok(account=account)

    def deposit(
        self,
        account_id: str,
        amount: AmountLike,
        note: str = "Cash deposit"
    ) -> OperationResult:
        account = self.get_account(account_id)
        if account is None:
            return self._not_found(account_id)

        money = self._positive_amount(amount)
        if money is None:
            return self._invalid_amount(amount)

        with account.lock:
            if not account.deposit(money, note):
                return self._invalid_amount(amount)
            balance = account.balance

        log_action(
            self.logger, "info", "Deposit applied",
            account_id=account_id, action="deposit",
            extra={"amount": str(money), "balance": str(balance)}
        )

        warnings = self._persist()
        return OperationResult.ok(
            message=f"Deposited {money}",
            account=account,
            balance=balance,
            warnings=warnings
        )

    def withdraw(
        self,
        account_id: str,
        amount: AmountLike,
        note: str = "Cash withdrawal"
    ) -> OperationResult:
        account = self.get_account(account_id)
        if account is None:
            return self._not_found(account_id)

        money = self._positive_amount(amount)
        if money is None or money.currency != account.currency:
            return self._invalid_amount(amount)

        with account.lock:
            if not account.withdraw(money, note):
                log_action(
                    self.logger, "info", "Withdrawal declined",
                    account_id=account_id, action="withdraw",
                    extra={"amount": str(money), "reason": LedgerErrorCode.INSUFFICIENT_FUNDS.value}
                )
                return OperationResult.fail(
                    LedgerErrorCode.INSUFFICIENT_FUNDS, "Insufficient balance"
                )
            balance = account.balance

        log_action(
            self.logger, "info", "Withdrawal applied",
            account_id=account_id, action="withdraw",
            extra={"amount": str(money), "balance": str(balance)}
        )

        warnings = self._persist()
        return OperationResult.ok(
            message=f"Withdrawn {money}",
            account=account,
            balance=balance,
            warnings=warnings
        )

    def transfer(self, from_id: str, to_id: str, amount: AmountLike) -> OperationResult:
        """
        Move funds between two accounts of this ledger

        The source is debited and the destination credited while both account
        locks are held, then each side gets its transfer annotation. The caller
        is expected to have authenticated as ``from_id``.

        Args:
            from_id: Source account id
            to_id: Destination account id
            amount: Positive amount to move

        Returns:
            OperationResult carrying the source account and its TRANSFER_OUT entry
        """
        if from_id == to_id:
            return OperationResult.fail(
                LedgerErrorCode.SAME_ACCOUNT, "Cannot transfer to same account"
            )

        source = self.get_account(from_id)
        if source is None:
            return self._not_found(from_id)

        target = self.get_account(to_id)
        if target is None:
            return self._not_found(to_id)

        money = self._positive_amount(amount)
        if money is None:
            return self._invalid_amount(amount)

        first, second = sorted((source, target), key=lambda a: a.account_id)
        with first.lock, second.lock:
            # Both sides must accept the amount before anything moves
            if money.currency != source.currency or not target.can_deposit(money):
                return self._invalid_amount(amount)
            if not source.withdraw(money, f"Transfer to {to_id}"):
                log_action(
                    self.logger, "info", "Transfer declined",
                    account_id=from_id, action="transfer",
                    extra={"to": to_id, "amount": str(money),
                           "reason": LedgerErrorCode.INSUFFICIENT_FUNDS.value}
                )
                return OperationResult.fail(
                    LedgerErrorCode.INSUFFICIENT_FUNDS, "Insufficient balance"
                )
            target.deposit(money, f"Transfer from {from_id}")
            transfer_out = source.record_transfer(TransactionKind.TRANSFER_OUT, money, to_id)
            target.record_transfer(TransactionKind.TRANSFER_IN, money, from_id)
            balance = source.balance

        log_action(
            self.logger, "info", "Transfer applied",
            account_id=from_id, action="transfer",
            extra={"to": to_id, "amount": str(money), "balance": str(balance)}
        )

        warnings = self._persist()
        return OperationResult.ok(
            message=f"Transferred {money} to {to_id}",
            account=source,
            transactions=[transfer_out],
            balance=balance,
            warnings=warnings
        )

    def change_pin(
        self,
        account_id: str,
        new_pin: str,
        current_pin: Optional[str] = None
    ) -> OperationResult:
        """
        Rotate an account's PIN

        When ``current_pin`` is given it must verify first; the shell always
        passes it, administrative callers may not.
        """
        account = self.get_account(account_id)
        if account is None:
            return self._not_found(account_id)

        if current_pin is not None and not account.authenticate(current_pin):
            log_action(
                self.logger, "warning", "PIN change refused",
                account_id=account_id, action="change_pin",
                extra={"reason": LedgerErrorCode.INVALID_PIN.value}
            )
            return OperationResult.fail(LedgerErrorCode.INVALID_PIN, "Incorrect current PIN")

        if not isinstance(new_pin, str) or not new_pin:
            return OperationResult.fail(LedgerErrorCode.INVALID_PIN, "PIN must not be empty")

        account.change_pin(new_pin)
        log_action(
            self.logger, "info", "PIN changed",
            account_id=account_id, action="change_pin"
        )

        warnings = self._persist()
        return OperationResult.ok(message="PIN changed", account=account, warnings=warnings)

    def history(self, account_id: str, limit: int = DEFAULT_HISTORY_LIMIT) -> OperationResult:
        account = self.get_account(account_id)
        if account is None:
            return self._not_found(account_id)
        return OperationResult.ok(account=account, transactions=account.history(limit))

    def balance(self, account_id: str) -> OperationResult:
        account = self.get_account(account_id)
        if account is None:
            return self._not_found(account_id)
        return OperationResult.ok(account=account, balance=account.get_balance())

    def list_accounts(self) -> List[AccountSummary]:
        """All accounts, ordered by id, for administrative display"""
        with self._directory_lock:
            accounts = sorted(self._accounts.values(), key=lambda a: a.account_id)
        return [
            AccountSummary(a.account_id, a.holder_name, a.get_balance())
            for a in accounts
        ]

    def total_balance(self) -> Money:
        total = Money.zero(self.currency)
        for summary in self.list_accounts():
            total = total + summary.balance
        return total

    def verify_integrity(self) -> Dict[str, Any]:
        """
        Replay every account's history against its balance

        Returns:
            Dictionary with integrity check results
        """
        result = {
            'valid': True,
            'total_accounts': 0,
            'mismatches': [],
            'negative_balances': [],
            'total_balance': str(self.total_balance())
        }

        with self._directory_lock:
            accounts = sorted(self._accounts.values(), key=lambda a: a.account_id)
        result['total_accounts'] = len(accounts)

        for account in accounts:
            with account.lock:
                balance = account.balance
                replayed = account.replayed_balance()
            if balance != replayed:
                result['valid'] = False
                result['mismatches'].append({
                    'account_id': account.account_id,
                    'balance': str(balance),
                    'replayed_balance': str(replayed)
                })
            if balance.is_negative():
                result['valid'] = False
                result['negative_balances'].append(account.account_id)

        return result

    # Snapshot

    def snapshot(self) -> Dict[str, Any]:
        """
        Serialize the whole ledger.

        Every account lock is held, in ascending id order, while the
        dictionaries are built, so a snapshot never shows half a transfer.
        """
        with self._directory_lock:
            accounts = sorted(self._accounts.values(), key=lambda a: a.account_id)

        with ExitStack() as stack:
            for account in accounts:
                stack.enter_context(account.lock)
            return {
                'format_version': SNAPSHOT_FORMAT_VERSION,
                'saved_at': datetime.now(timezone.utc).isoformat(),
                'currency': self.currency.code,
                'accounts': {a.account_id: a.to_dict() for a in accounts}
            }

    @classmethod
    def from_snapshot(
        cls,
        data: Dict[str, Any],
        store: Optional['SnapshotStore'] = None,
        **kwargs
    ) -> 'Ledger':
        """
        Rebuild a ledger from ``snapshot()`` output

        Raises:
            ValueError: If the data does not have the snapshot shape
        """
        if not isinstance(data, dict) or not isinstance(data.get('accounts'), dict):
            raise ValueError("Snapshot must be an object with an 'accounts' mapping")

        version = data.get('format_version')
        if version != SNAPSHOT_FORMAT_VERSION:
            raise ValueError(f"Unsupported snapshot format version: {version!r}")

        accounts: Dict[str, Account] = {}
        for key, account_data in data['accounts'].items():
            account = Account.from_dict(account_data)
            if account.account_id != key:
                raise ValueError(f"Snapshot key {key} does not match account {account.account_id}")
            accounts[key] = account

        if 'currency' in data and 'currency' not in kwargs:
            kwargs['currency'] = Currency.from_code(data['currency'])

        currency = kwargs.get('currency', Currency.USD)
        for account in accounts.values():
            if account.currency != currency:
                raise ValueError(
                    f"Account {account.account_id} is held in {account.currency.code}, "
                    f"ledger currency is {currency.code}"
                )

        return cls(accounts=accounts, store=store, **kwargs)
