"""Unit tests for the currency plausibility check."""

import pytest

from supplier_pricing.services.currency_validator import validate_currency


class TestValidateCurrency:
    """Tests for validate_currency function."""

    @pytest.mark.parametrize("price", [100, 250.0, "$250,50", "$ 499"])
    def test_typical_battery_band(self, price) -> None:
        """Short amounts between 100 and 500 are the most plausible."""
        check = validate_currency(price)
        assert check.plausible
        assert check.confidence == 0.98

    @pytest.mark.parametrize("price", [50, 800, "999.90"])
    def test_generic_band(self, price) -> None:
        """Short amounts between 50 and 1000 are plausible."""
        check = validate_currency(price)
        assert check.plausible
        assert check.confidence == 0.95

    @pytest.mark.parametrize("price", [1000.5, 152300.0, 999_999])
    def test_large_amounts(self, price) -> None:
        """Amounts strictly between 1,000 and 1,000,000 are plausible."""
        check = validate_currency(price)
        assert check.plausible
        assert check.confidence == 0.85

    @pytest.mark.parametrize("price", [0, 10, 1000, 1_000_000, 2_500_000, None, "consultar"])
    def test_implausible(self, price) -> None:
        """Everything else is flagged as implausible."""
        check = validate_currency(price)
        assert not check.plausible
        assert check.confidence == 0.80
        assert check.reason
