"""
Demo account seeding for a fresh ledger.

Run with: python -m atm_ledger.seed
"""

from typing import Optional

from .accounts import Account
from .config import AtmLedgerConfig, get_config
from .ledger import Ledger
from .logging_config import get_logger, log_action, setup_logging
from .storage import create_store

logger = get_logger("atm_ledger.seed")


def seed_demo_account(ledger: Ledger, config: AtmLedgerConfig) -> Optional[Account]:
    """
    Create the demo account when the ledger has no accounts yet.

    Returns the new account, or None when seeding is disabled, the ledger
    already holds accounts, its snapshot failed to load, or creation was
    rejected.
    """
    if not config.seed_demo_account or len(ledger) > 0:
        return None

    # A ledger that is empty because its snapshot was unreadable stays empty
    if ledger.store is not None and ledger.store.load_error is not None:
        return None

    result = ledger.create_account(
        config.demo_holder_name, config.demo_initial_deposit, config.demo_pin
    )
    if not result:
        log_action(
            logger, "warning", f"Demo account not created: {result.message}",
            action="seed", extra={"error_code": result.error.value}
        )
        return None

    log_action(
        logger, "info", "Demo account created",
        account_id=result.account.account_id, action="seed"
    )
    return result.account


def main() -> None:
    config = get_config()
    setup_logging(config.log_level, log_format=config.log_format)
    store = create_store(config.data_file, **Ledger.options_from_config(config))
    ledger = store.load()
    account = seed_demo_account(ledger, config)
    if account is None:
        print("Ledger already has accounts; nothing seeded.")
    else:
        print(f"Demo account created. Account Number: {account.account_id} PIN: {config.demo_pin}")


if __name__ == "__main__":
    main()
