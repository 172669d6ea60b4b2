"""
Test suite for money module

Tests amount parsing, quantization and display formatting.
"""

import pytest
from decimal import Decimal

from pocket_ledger.money import to_amount, to_decimal, parse_amount, format_amount, is_positive, has_sub_cent_digits


class TestToAmount:
    """Test amount conversion"""
    
    def test_decimal_is_quantized(self):
        """Test that Decimals are rounded to two places"""
        assert to_amount(Decimal('10.005')) == Decimal('10.01')
        assert to_amount(Decimal('7')) == Decimal('7.00')
    
    def test_float_goes_through_string_form(self):
        """Test that float input does not carry binary rounding"""
        assert to_amount(0.1) + to_amount(0.2) == Decimal('0.30')
    
    def test_int_and_string_input(self):
        """Test integer and string input"""
        assert to_amount(2500) == Decimal('2500.00')
        assert to_amount("2500") == Decimal('2500.00')
    
    def test_rejects_non_numbers(self):
        """Test that garbage and non-finite values raise"""
        with pytest.raises(ValueError):
            to_amount("abc")
        with pytest.raises(ValueError):
            to_amount(float('inf'))
        with pytest.raises(ValueError):
            to_amount(Decimal('NaN'))
        with pytest.raises(ValueError):
            to_amount(True)
        with pytest.raises(ValueError):
            to_amount(None)
    
    def test_oversized_amount_raises_value_error(self):
        """Test that amounts too large to hold to the cent raise ValueError"""
        with pytest.raises(ValueError, match="too large"):
            to_amount("1" + "0" * 30)
        with pytest.raises(ValueError, match="too large"):
            to_amount(Decimal("1E+40"))
    
    def test_to_decimal_keeps_precision(self):
        """Test that to_decimal does not round"""
        assert to_decimal("0.005") == Decimal('0.005')
        assert to_decimal(Decimal("1E+40")) == Decimal("1E+40")


class TestParseAmount:
    """Test parsing of user-entered amount strings"""
    
    def test_strips_symbol_and_separators(self):
        """Test currency symbols and thousands separators"""
        assert parse_amount("₹ 2,500") == Decimal('2500.00')
        assert parse_amount(" 12.5 ") == Decimal('12.50')
    
    def test_negative_is_parsed(self):
        """Test that sign survives parsing; validation happens elsewhere"""
        assert parse_amount("-50") == Decimal('-50.00')
        assert not is_positive(parse_amount("-50"))
    
    def test_empty_string(self):
        """Test empty input"""
        with pytest.raises(ValueError, match="non-empty"):
            parse_amount("   ")
    
    def test_indian_grouping(self):
        """Test lakh-style thousands separators"""
        assert parse_amount("₹25,00,000") == Decimal('2500000.00')
        assert parse_amount("Rs. 1,500.75") == Decimal('1500.75')
    
    @pytest.mark.parametrize("value", ["1e5", "12abc34", "1.2.3", "12,", "₹", "--5", "5-", ".5."])
    def test_rejects_anything_but_a_plain_number(self, value):
        """Test that stray characters are an error, never silently dropped"""
        with pytest.raises(ValueError):
            parse_amount(value)


class TestSubCentDigits:
    """Test detection of precision finer than one cent"""
    
    def test_whole_cents(self):
        assert not has_sub_cent_digits(Decimal('10'))
        assert not has_sub_cent_digits(Decimal('10.5'))
        assert not has_sub_cent_digits(Decimal('10.500'))
        assert not has_sub_cent_digits(Decimal('1E+3'))
    
    def test_sub_cent(self):
        assert has_sub_cent_digits(Decimal('0.005'))
        assert has_sub_cent_digits(Decimal('0.0005'))
        assert has_sub_cent_digits(Decimal('10.1230'))


class TestFormatAmount:
    """Test display formatting"""
    
    def test_whole_amounts_have_no_decimals(self):
        assert format_amount(Decimal('2500.00')) == "₹2,500"
    
    def test_fractional_amounts_show_two_places(self):
        assert format_amount(Decimal('1234.5')) == "₹1,234.50"
    
    def test_custom_symbol(self):
        assert format_amount(Decimal('10'), "$") == "$10"
