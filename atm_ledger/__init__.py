"""
ATM Ledger

Account ledger engine with salted PIN authentication, fixed-point Decimal
balances, per-account locking and whole-ledger JSON snapshots.
"""

__version__ = "1.0.0"
