"""
Test suite for currency module

Tests Money class and proper Decimal handling.
Balances must never carry binary floating point error.
"""

import pytest
from decimal import Decimal

from atm_ledger.currency import (
    Money, Currency, decimal_from_string, to_decimal, to_money
)


class TestMoney:
    """Test Money class operations"""

    def test_money_creation(self):
        """Test Money object creation and rounding to currency precision"""
        money = Money(Decimal('100.50'), Currency.USD)
        assert money.amount == Decimal('100.50')
        assert money.currency == Currency.USD

        money_rounded = Money(Decimal('100.555'), Currency.USD)
        assert money_rounded.amount == Decimal('100.56')

        money_jpy = Money(Decimal('100.7'), Currency.JPY)
        assert money_jpy.amount == Decimal('101')

    def test_default_currency_is_usd(self):
        """Test that Money defaults to USD"""
        assert Money(Decimal('1')).currency == Currency.USD

    def test_float_input_has_no_binary_artifacts(self):
        """Test that floats are converted through their decimal repr"""
        total = Money.zero()
        for _ in range(10):
            total = total + Money(0.1)
        assert total == Money(Decimal('1.00'))

    def test_money_arithmetic(self):
        """Test Money addition and subtraction"""
        money1 = Money(Decimal('100.50'))
        money2 = Money(Decimal('50.25'))

        assert (money1 + money2).amount == Decimal('150.75')
        assert (money1 - money2).amount == Decimal('50.25')
        assert (-money1).amount == Decimal('-100.50')
        assert abs(Money(Decimal('-3'))).amount == Decimal('3.00')

    def test_currency_mismatch(self):
        """Test that mixing currencies is rejected"""
        usd = Money(Decimal('10'), Currency.USD)
        eur = Money(Decimal('10'), Currency.EUR)

        with pytest.raises(ValueError, match="Cannot add"):
            usd + eur
        with pytest.raises(ValueError, match="Cannot compare"):
            usd < eur
        assert usd != eur

    def test_comparisons(self):
        """Test ordering and predicates"""
        small = Money(Decimal('1.00'))
        large = Money(Decimal('2.00'))

        assert small < large
        assert small <= Money(Decimal('1'))
        assert large > small
        assert large >= small
        assert Money.zero().is_zero()
        assert large.is_positive()
        assert (-large).is_negative()

    def test_non_finite_rejected(self):
        """Test that NaN and infinity are not money"""
        with pytest.raises(ValueError):
            Money(Decimal('NaN'))
        with pytest.raises(ValueError):
            Money(Decimal('Infinity'))

    def test_formatting(self):
        """Test display formatting"""
        assert Money(Decimal('1234.5')).to_string() == "USD 1,234.50"
        assert str(Money(Decimal('3000'))) == "3000.00"
        assert Money(Decimal('1500'), Currency.JPY).to_string() == "JPY 1,500"

    def test_hashable(self):
        """Test that equal Money values hash equally"""
        assert len({Money(Decimal('5')), Money(Decimal('5.00'))}) == 1


class TestConversions:
    """Test input conversion helpers"""

    def test_decimal_from_string(self):
        """Test parsing of common user input formats"""
        assert decimal_from_string("100.50") == Decimal('100.50')
        assert decimal_from_string("$1,234.56") == Decimal('1234.56')
        assert decimal_from_string("  42 ") == Decimal('42')
        assert decimal_from_string("10,5") == Decimal('10.5')
        assert decimal_from_string("-7") == Decimal('-7')

    def test_decimal_from_string_invalid(self):
        """Test that garbage input raises ValueError"""
        for value in ["", "abc", "1.2.3", "12abc", "1e3", "5O0", "two 5", "NaN", "."]:
            with pytest.raises(ValueError):
                decimal_from_string(value)

    def test_to_decimal(self):
        """Test conversion of supported numeric types"""
        assert to_decimal(5) == Decimal('5')
        assert to_decimal(0.1) == Decimal('0.1')
        assert to_decimal(Decimal('2.5')) == Decimal('2.5')
        assert to_decimal("3.25") == Decimal('3.25')

        with pytest.raises(ValueError):
            to_decimal(True)
        with pytest.raises(ValueError):
            to_decimal(float('nan'))
        with pytest.raises(ValueError):
            to_decimal([1])

    def test_to_money(self):
        """Test coercion into Money of a given currency"""
        assert to_money("12.345") == Money(Decimal('12.35'))
        assert to_money(Money(Decimal('1'))) == Money(Decimal('1'))

        with pytest.raises(ValueError, match="does not match"):
            to_money(Money(Decimal('1'), Currency.EUR), Currency.USD)

    def test_currency_from_code(self):
        """Test currency lookup by ISO code"""
        assert Currency.from_code("usd") == Currency.USD
        assert Currency.from_code("JPY").precision == 0

        with pytest.raises(ValueError, match="Unsupported currency"):
            Currency.from_code("XXX")

    def test_out_of_range_amount(self):
        """Test that amounts beyond the decimal context are ValueError"""
        with pytest.raises(ValueError, match="out of range"):
            Money(Decimal("1" * 30))
        with pytest.raises(ValueError):
            to_money(10 ** 30)
        with pytest.raises(ValueError):
            Money(Decimal("9" * 26)) + Money(Decimal("9" * 26))

        assert Money(Decimal("9" * 26)).amount == Decimal("9" * 26)
