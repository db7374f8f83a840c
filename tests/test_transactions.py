"""
Test suite for transaction records

Tests immutability, validation and serialization of history entries.
"""

import pytest
import dataclasses
from decimal import Decimal
from datetime import datetime, timezone

from atm_ledger.currency import Money, Currency
from atm_ledger.transactions import Transaction, TransactionKind


class TestTransaction:
    """Test Transaction record"""

    def test_valid_transaction(self):
        """Test creating a deposit record"""
        before = datetime.now(timezone.utc)
        txn = Transaction(TransactionKind.DEPOSIT, Money(Decimal('250')), "Cash deposit")
        after = datetime.now(timezone.utc)

        assert txn.kind == TransactionKind.DEPOSIT
        assert txn.amount == Money(Decimal('250.00'))
        assert txn.note == "Cash deposit"
        assert before <= txn.timestamp <= after
        assert txn.timestamp.tzinfo is not None

    def test_immutable(self):
        """Test that records cannot be edited"""
        txn = Transaction(TransactionKind.WITHDRAW, Money(Decimal('10')))

        with pytest.raises(dataclasses.FrozenInstanceError):
            txn.amount = Money(Decimal('20'))

    def test_negative_amount_rejected(self):
        """Test that amounts are magnitudes only"""
        with pytest.raises(ValueError, match="must not be negative"):
            Transaction(TransactionKind.DEPOSIT, Money(Decimal('-1')))

    def test_amount_must_be_money(self):
        """Test that raw numbers are not accepted as amounts"""
        with pytest.raises(ValueError, match="must be Money"):
            Transaction(TransactionKind.DEPOSIT, Decimal('1'))

    def test_administrative_has_zero_amount(self):
        """Test administrative events carry no money"""
        txn = Transaction.administrative("PIN changed")

        assert txn.kind == TransactionKind.ADMINISTRATIVE
        assert txn.amount.is_zero()

        with pytest.raises(ValueError, match="zero amount"):
            Transaction(TransactionKind.ADMINISTRATIVE, Money(Decimal('1')))

    def test_labels(self):
        """Test statement labels"""
        assert TransactionKind.TRANSFER_OUT.label == "TRANSFER_OUT"
        assert TransactionKind.DEPOSIT.label == "DEPOSIT"

    def test_serialization_round_trip(self):
        """Test to_dict/from_dict preserve every field"""
        txn = Transaction(
            TransactionKind.TRANSFER_IN, Money(Decimal('1000'), Currency.EUR), "From 0000000001"
        )
        data = txn.to_dict()

        assert data['kind'] == "transfer_in"
        assert data['amount'] == "1000.00"
        assert data['currency'] == "EUR"

        assert Transaction.from_dict(data) == txn

    def test_from_dict_rejects_unknown_kind(self):
        """Test that an unknown kind is refused"""
        data = Transaction(TransactionKind.DEPOSIT, Money(Decimal('1'))).to_dict()
        data['kind'] = "refund"

        with pytest.raises(ValueError):
            Transaction.from_dict(data)
