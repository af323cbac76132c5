"""Tests for dividend history providers."""

from datetime import date
from unittest.mock import Mock

import pandas as pd
import pytest

from valuerank.data.dividend_providers import (
    DividendHistoryProvider,
    DividendPayment,
    InMemoryDividendProvider,
    UnifiedDividendProvider,
)


@pytest.fixture
def df_dividends():
    """Payments of two tickers in arbitrary order."""
    return pd.DataFrame(
        {
            "ticker": ["taee11", "TAEE11", "BBAS3", "TAEE11"],
            "ex_date": ["2023-08-10", "2024-11-20", "2024-03-01", "2024-05-15"],
            "amount": [2.0, 1.2, 0.9, "0.8"],
        }
    )


class TestInMemoryDividendProvider:
    """Test the DataFrame-backed provider."""

    def test_missing_column(self):
        """Test a frame without the amount column is rejected."""
        with pytest.raises(ValueError, match="missing columns"):
            InMemoryDividendProvider(pd.DataFrame({"ticker": ["TAEE11"], "ex_date": ["2024-01-01"]}))

    def test_most_recent_first(self, df_dividends):
        """Test payments are returned newest first with case-insensitive tickers."""
        provider = InMemoryDividendProvider(df_dividends)
        payments = provider.get_dividend_history("taee11")

        assert [p.ex_date for p in payments] == [date(2024, 11, 20), date(2024, 5, 15), date(2023, 8, 10)]
        assert [p.amount for p in payments] == pytest.approx([1.2, 0.8, 2.0])

    def test_unknown_ticker(self, df_dividends):
        """Test an unknown ticker has no payments."""
        assert InMemoryDividendProvider(df_dividends).get_dividend_history("XPTO3") == []
        assert InMemoryDividendProvider().get_dividend_history("TAEE11") == []

    def test_from_payments(self, dividend_payments):
        """Test building from payments grouped by ticker."""
        provider = InMemoryDividendProvider.from_payments({"TAEE11": dividend_payments})
        assert len(provider.get_dividend_history("TAEE11")) == 3


class TestUnifiedDividendProvider:
    """Test ordered fallback between providers."""

    def test_requires_providers(self):
        """Test an empty provider list is rejected."""
        with pytest.raises(ValueError, match="At least one"):
            UnifiedDividendProvider([])

    def test_fallback_on_exception(self, dividend_payments):
        """Test a failing provider is skipped."""
        failing = Mock(spec=DividendHistoryProvider)
        failing.get_dividend_history.side_effect = ConnectionError("offline")
        backup = Mock(spec=DividendHistoryProvider)
        backup.get_dividend_history.return_value = dividend_payments

        payments = UnifiedDividendProvider([failing, backup]).get_dividend_history("TAEE11")

        assert payments == dividend_payments
        failing.get_dividend_history.assert_called_once_with("TAEE11")

    def test_fallback_on_empty_answer(self, dividend_payments):
        """Test an empty answer falls through to the next provider."""
        empty = Mock(spec=DividendHistoryProvider)
        empty.get_dividend_history.return_value = []
        backup = Mock(spec=DividendHistoryProvider)
        backup.get_dividend_history.return_value = dividend_payments

        assert UnifiedDividendProvider([empty, backup]).get_dividend_history("TAEE11") == dividend_payments

    def test_no_provider_has_data(self):
        """Test an empty list when every provider is empty."""
        empty = Mock(spec=DividendHistoryProvider)
        empty.get_dividend_history.return_value = []
        assert UnifiedDividendProvider([empty]).get_dividend_history("TAEE11") == []

    def test_caching(self):
        """Test cached answers are served without asking the provider again."""
        provider = Mock(spec=DividendHistoryProvider)
        provider.get_dividend_history.return_value = [DividendPayment(ex_date=date(2024, 1, 1), amount=1.0)]
        unified = UnifiedDividendProvider([provider], enable_caching=True)

        unified.get_dividend_history("TAEE11")
        unified.get_dividend_history("TAEE11")

        provider.get_dividend_history.assert_called_once_with("TAEE11")
