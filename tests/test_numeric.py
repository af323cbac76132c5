"""Tests for numeric coercion, historical averaging and growth clipping."""

import math
from decimal import Decimal

import numpy as np
import pytest

from valuerank.analysis.numeric import (
    calculate_graham_fair_value,
    calculate_upside,
    clip_growth,
    historical_average,
    to_number,
    validate_annual_growth,
    validate_cagr_5y,
)


class _Wrapped:
    def __init__(self, value):
        self.value = value

    def to_number(self):
        return self.value


class TestToNumber:
    """Test coercion of heterogeneous numeric inputs."""

    def test_native_and_numpy_numbers(self):
        """Test ints, floats and numpy scalars become floats."""
        assert to_number(3) == 3.0
        assert to_number(2.5) == 2.5
        assert to_number(np.float64(1.25)) == 1.25
        assert to_number(np.int32(7)) == 7.0

    def test_strings_and_decimals(self):
        """Test numeric strings and Decimal values are parsed."""
        assert to_number(" 12.5 ") == 12.5
        assert to_number(Decimal("0.15")) == pytest.approx(0.15)

    def test_wrapper_objects(self):
        """Test objects exposing to_number() are unwrapped."""
        assert to_number(_Wrapped("4.2")) == pytest.approx(4.2)

    def test_unparseable_values_become_none(self):
        """Test None, booleans, garbage, NaN and infinities yield None."""
        assert to_number(None) is None
        assert to_number(True) is None
        assert to_number("abc") is None
        assert to_number("") is None
        assert to_number(float("nan")) is None
        assert to_number(math.inf) is None
        assert to_number(object()) is None


class TestHistoricalAverage:
    """Test averaging of the current value with prior years."""

    def test_no_current_value(self):
        """Test that a missing current value yields None."""
        assert historical_average(None, [1.0, 2.0]) is None

    def test_no_usable_history(self):
        """Test that the current value is returned without history."""
        assert historical_average(5.0, []) == 5.0
        assert historical_average(5.0, [None, "n/a"]) == 5.0

    def test_mean_skips_missing_history(self):
        """Test the mean of current and valid prior values."""
        assert historical_average(10.0, [20.0, None, 30.0]) == pytest.approx(20.0)

    def test_at_most_seven_values(self):
        """Test that only the current value and six prior years are averaged."""
        history = [1.0] * 6 + [1000.0]
        assert historical_average(1.0, history) == pytest.approx(1.0)


class TestGrowthClipping:
    """Test soft and hard bounds of growth figures."""

    def test_annual_growth(self):
        """Test the 100% soft and 200% hard bounds."""
        assert validate_annual_growth(0.3) == pytest.approx(0.3)
        assert validate_annual_growth(1.5) == 1.0
        assert validate_annual_growth(-1.5) == -1.0
        assert validate_annual_growth(2.5) is None

    def test_annual_growth_near_soft_bound(self):
        """Test values inside the soft bound pass and values above it are clamped."""
        assert validate_annual_growth(0.9) == pytest.approx(0.9)
        assert validate_annual_growth(1.2) == 1.0
        assert validate_annual_growth(-1.2) == -1.0

    def test_five_year_cagr(self):
        """Test the 50% soft and 100% hard bounds."""
        assert validate_cagr_5y(0.7) == 0.5
        assert validate_cagr_5y(-0.7) == -0.5
        assert validate_cagr_5y(1.2) is None

    def test_missing_value(self):
        """Test that a missing growth stays missing."""
        assert clip_growth(None, 1.0, 2.0) is None


class TestValuationHelpers:
    """Test upside and Graham number helpers."""

    def test_calculate_upside(self):
        """Test percentage upside and invalid prices."""
        assert calculate_upside(110.0, 100.0) == pytest.approx(10.0)
        assert calculate_upside(90.0, 100.0) == pytest.approx(-10.0)
        assert calculate_upside(None, 100.0) is None
        assert calculate_upside(110.0, 0.0) is None

    def test_graham_fair_value(self):
        """Test the Graham number and its positivity requirement."""
        assert calculate_graham_fair_value(5.0, 40.0) == pytest.approx(math.sqrt(4500))
        assert calculate_graham_fair_value(-1.0, 40.0) is None
        assert calculate_graham_fair_value(5.0, None) is None
