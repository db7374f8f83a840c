"""
ATM Ledger Entry Point

Loads the snapshot, seeds the demo account on a fresh ledger and runs the
console shell. Run with: python -m atm_ledger
"""

import sys

from .config import get_config
from .ledger import Ledger
from .logging_config import setup_logging
from .seed import seed_demo_account
from .shell import AtmShell
from .storage import create_store


def main() -> int:
    config = get_config()
    setup_logging(config.log_level, log_format=config.log_format)

    store = create_store(config.data_file, **Ledger.options_from_config(config))
    ledger = store.load()
    if store.load_error is not None:
        print(f"Could not read data file: {store.load_error}. Starting fresh.")

    demo = seed_demo_account(ledger, config)
    if demo is not None:
        print(f"Demo account created. Account Number: {demo.account_id} PIN: {config.demo_pin}")

    AtmShell(ledger, config).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
