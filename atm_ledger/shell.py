"""
Console Shell

Menu-driven front end over the Ledger. Holds no business rules: it reads
input, calls ledger operations and prints their results. Input, output and
PIN entry functions are injectable so the menus can be driven in tests.
"""

from getpass import getpass
from typing import Callable, Optional
import sys

from .config import AtmLedgerConfig
from .currency import Money
from .errors import LedgerErrorCode, OperationResult
from .ledger import Ledger

STATEMENT_TIME_FORMAT = "%Y-%m-%d %H:%M"

ERROR_MESSAGES = {
    LedgerErrorCode.ACCOUNT_NOT_FOUND: "Account not found.",
    LedgerErrorCode.INVALID_PIN: "Incorrect PIN.",
    LedgerErrorCode.INVALID_AMOUNT: "Amount must be a positive number.",
    LedgerErrorCode.INSUFFICIENT_FUNDS: "Insufficient balance.",
    LedgerErrorCode.SAME_ACCOUNT: "Cannot transfer to same account.",
}


def _default_pin_reader(prompt: str) -> str:
    if sys.stdin.isatty():
        return getpass(prompt)
    return input(prompt).strip()


class AtmShell:
    """
    Interactive ATM menus
    """

    def __init__(
        self,
        ledger: Ledger,
        config: AtmLedgerConfig,
        input_func: Callable[[str], str] = input,
        output_func: Callable[[str], None] = print,
        pin_reader: Optional[Callable[[str], str]] = None
    ):
        self.ledger = ledger
        self.config = config
        self._input = input_func
        self._output = output_func
        self._read_pin = pin_reader or _default_pin_reader

    def say(self, message: str = "") -> None:
        self._output(message)

    def ask(self, prompt: str) -> str:
        return self._input(prompt).strip()

    def report(self, result: OperationResult) -> None:
        """Print the failure or persistence warning carried by a result"""
        if not result:
            self.say(ERROR_MESSAGES.get(result.error, result.message))
        if not result.persisted:
            self.say("Warning: changes could not be saved to disk.")

    def fmt(self, money: Money) -> str:
        return f"{money.amount:.{money.currency.precision}f}"

    # Main menu

    def run(self) -> None:
        self.say("=== Welcome to the ATM ===")
        try:
            self._main_loop()
        except (EOFError, KeyboardInterrupt):
            self.say()
        self.say("Goodbye!")

    def _main_loop(self) -> None:
        while True:
            self.say()
            self.say("Main Menu:")
            self.say("1. Create new account")
            self.say("2. Login to account")
            self.say("3. List accounts (admin)")
            self.say("4. Exit")
            choice = self.ask("Choose (1-4): ")
            if choice == "1":
                self.create_account_flow()
            elif choice == "2":
                self.login_flow()
            elif choice == "3":
                self.list_accounts()
            elif choice == "4":
                return
            else:
                self.say("Invalid choice, try again.")

    def create_account_flow(self) -> None:
        self.say()
        self.say("--- Create Account ---")
        name = self.ask("Full name: ")
        while True:
            initial = self.ask("Initial deposit (>=0): ")
            probe = self.ledger.parse_amount(initial)
            if probe is not None and not probe.is_negative():
                break
            self.say("Enter valid non-negative number.")
        pin = self.read_new_pin()
        result = self.ledger.create_account(name, initial, pin)
        if result:
            self.say(f"Account created! Account Number: {result.account.account_id}")
        self.report(result)

    def login_flow(self) -> None:
        self.say()
        self.say("--- Login ---")
        account_id = self.ask("Account Number: ")
        if account_id not in self.ledger:
            self.say(ERROR_MESSAGES[LedgerErrorCode.ACCOUNT_NOT_FOUND])
            return
        pin = self._read_pin("Enter PIN: ")
        result = self.ledger.authenticate(account_id, pin)
        if not result:
            self.report(result)
            return
        self.say(f"Welcome, {result.account.holder_name}!")
        self.account_menu(account_id)

    def list_accounts(self) -> None:
        self.say()
        self.say("--- Accounts in system ---")
        summaries = self.ledger.list_accounts()
        if not summaries:
            self.say("No accounts.")
            return
        for summary in summaries:
            self.say(
                f"Account: {summary.account_id} | Name: {summary.holder_name} "
                f"| Balance: {self.fmt(summary.balance)}"
            )

    # Account menu

    def account_menu(self, account_id: str) -> None:
        while True:
            self.say()
            self.say("Account Menu:")
            self.say("1. Show balance")
            self.say("2. Deposit")
            self.say("3. Withdraw")
            self.say("4. Transfer")
            self.say(f"5. Mini-statement (last {self.config.mini_statement_size})")
            self.say("6. Change PIN")
            self.say("7. Logout")
            choice = self.ask("Choose (1-7): ")
            if choice == "1":
                self.show_balance(account_id)
            elif choice == "2":
                self.deposit_flow(account_id)
            elif choice == "3":
                self.withdraw_flow(account_id)
            elif choice == "4":
                self.transfer_flow(account_id)
            elif choice == "5":
                self.mini_statement(account_id, self.config.mini_statement_size)
            elif choice == "6":
                self.change_pin_flow(account_id)
            elif choice == "7":
                self.say("Logged out.")
                return
            else:
                self.say("Invalid choice.")

    def show_balance(self, account_id: str) -> None:
        result = self.ledger.balance(account_id)
        if result:
            self.say(f"Balance: {self.fmt(result.balance)}")
        else:
            self.report(result)

    def deposit_flow(self, account_id: str) -> None:
        amount = self.ask("Amount to deposit: ")
        result = self.ledger.deposit(account_id, amount)
        if result:
            self.say(f"{result.message}. New balance: {self.fmt(result.balance)}")
        self.report(result)

    def withdraw_flow(self, account_id: str) -> None:
        amount = self.ask("Amount to withdraw: ")
        result = self.ledger.withdraw(account_id, amount)
        if result:
            self.say(f"{result.message}. New balance: {self.fmt(result.balance)}")
        self.report(result)

    def transfer_flow(self, account_id: str) -> None:
        target = self.ask("Target Account Number: ")
        if target == account_id:
            self.say(ERROR_MESSAGES[LedgerErrorCode.SAME_ACCOUNT])
            return
        if target not in self.ledger:
            self.say("Target account not found.")
            return
        amount = self.ask("Amount to transfer: ")
        result = self.ledger.transfer(account_id, target, amount)
        if result:
            self.say(
                f"{result.message}. "
                f"Your new balance: {self.fmt(result.balance)}"
            )
        self.report(result)

    def mini_statement(self, account_id: str, count: int) -> None:
        self.say()
        self.say("--- Mini Statement ---")
        result = self.ledger.history(account_id, count)
        if not result:
            self.report(result)
            return
        if not result.transactions:
            self.say("No transactions yet.")
            return
        for t in result.transactions:
            self.say(
                f"{t.timestamp.astimezone().strftime(STATEMENT_TIME_FORMAT)} | "
                f"{t.kind.label:<14} | {self.fmt(t.amount):>10} | {t.note or ''}"
            )

    def change_pin_flow(self, account_id: str) -> None:
        self.say("Change PIN:")
        current = self._read_pin("Enter current PIN: ")
        if not self.ledger.authenticate(account_id, current):
            self.say("Incorrect current PIN.")
            return
        new_pin = self.read_new_pin()
        result = self.ledger.change_pin(account_id, new_pin, current_pin=current)
        if result:
            self.say("PIN changed successfully.")
        self.report(result)

    # PIN entry

    def read_new_pin(self) -> str:
        """Ask for a PIN twice until both entries match and meet the length policy"""
        while True:
            first = self._read_pin("Set PIN (4-8 digits recommended): ")
            second = self._read_pin("Confirm PIN: ")
            if first != second:
                self.say("PINs do not match. Try again.")
                continue
            if len(first) < self.config.min_pin_length:
                self.say("PIN too short.")
                continue
            return first
