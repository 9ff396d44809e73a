"""Tests for lenient amount parsing."""

from decimal import Decimal

import pytest

from reconcile.utils.numbers import parse_amount, try_parse_amount


class TestParseAmount:
    """Test lenient amount parsing."""

    def test_currency_and_commas(self):
        """Dollar signs and thousands separators are stripped."""
        assert parse_amount("$1,234.50") == Decimal("1234.50")

    def test_not_a_number_is_zero(self):
        """Text that is not a number counts as zero."""
        assert parse_amount("N/A") == 0

    def test_empty_is_zero(self):
        """Blank and missing values are zero."""
        assert parse_amount("") == 0
        assert parse_amount("   ") == 0
        assert parse_amount(None) == 0

    def test_whitespace_inside(self):
        """Spaces used as digit grouping are stripped."""
        assert parse_amount(" 1 000 ") == Decimal("1000")

    def test_negative_credit(self):
        """Negative amounts keep their sign."""
        assert parse_amount("-$250.00") == Decimal("-250.00")

    def test_numbers_pass_through(self):
        """Numeric types convert without loss."""
        assert parse_amount(42) == Decimal("42")
        assert parse_amount(12.5) == Decimal("12.5")
        assert parse_amount(Decimal("3.25")) == Decimal("3.25")

    @pytest.mark.parametrize("value", ["NaN", "Infinity", "-inf"])
    def test_non_finite_is_zero(self, value):
        """NaN and infinities are not amounts."""
        assert parse_amount(value) == 0

    def test_float_nan_is_zero(self):
        """A float NaN is zero as well."""
        assert parse_amount(float("nan")) == 0


class TestTryParseAmount:
    """The ok flag separates malformed values from blanks."""

    def test_blank_is_ok(self):
        """Blank values are not flagged."""
        assert try_parse_amount("") == (Decimal("0"), True)
        assert try_parse_amount(None) == (Decimal("0"), True)

    def test_garbage_is_flagged(self):
        """Unparseable text is zero and flagged."""
        amount, ok = try_parse_amount("TBD")
        assert amount == 0
        assert ok is False

    def test_bool_is_not_an_amount(self):
        """Booleans are flagged rather than read as 1 or 0."""
        assert try_parse_amount(True) == (Decimal("0"), False)

    @pytest.mark.parametrize("value", ["1e999999999", "-1E+400", Decimal("1e20"), 10 ** 20, 1e300])
    def test_huge_magnitude_is_flagged(self, value):
        """Magnitudes too large to be real amounts are zero and flagged."""
        assert try_parse_amount(value) == (Decimal("0"), False)

    def test_largest_accepted_magnitude(self):
        """Values just below 10**16 still parse."""
        assert try_parse_amount("9999999999999999.99") == (Decimal("9999999999999999.99"), True)

    def test_zero_with_large_exponent_is_zero(self):
        """A zero written with an exponent is a plain zero."""
        amount, ok = try_parse_amount("0e999999999")
        assert amount == 0
        assert ok is True
