"""Tests for the income-ceiling (Barsi) strategy."""

import asyncio
from datetime import date
from unittest.mock import Mock

import pytest

from valuerank.config.strategy_params import BarsiParams
from valuerank.data.dividend_providers import DividendHistoryProvider, DividendPayment, InMemoryDividendProvider
from valuerank.strategy.barsi_strategy import (
    BarsiStrategy,
    calculate_average_dividend,
    calculate_barsi_score,
    calculate_ceiling_price,
    has_consistent_dividends,
    is_perennial_sector,
)


@pytest.fixture
def dividend_provider(dividend_payments):
    """Mock provider returning two yearly totals of 2.00."""
    provider = Mock(spec=DividendHistoryProvider)
    provider.get_dividend_history.return_value = dividend_payments
    return provider


@pytest.fixture
def barsi_params(no_quality_filter):
    """Barsi parameters with a fixed dividend window ending in 2025."""
    return BarsiParams(reference_year=2025, quality_filter=no_quality_filter)


class TestBarsiHelpers:
    """Test sector matching, dividend averaging and the ceiling price."""

    def test_perennial_sectors(self):
        """Test case-insensitive substring matching in both directions."""
        assert is_perennial_sector("Bancos")
        assert is_perennial_sector("energia elétrica")
        assert is_perennial_sector("Energia")
        assert not is_perennial_sector("Tecnologia")
        assert not is_perennial_sector(None)

    def test_average_dividend(self, dividend_payments):
        """Test the mean of yearly totals within the window."""
        assert calculate_average_dividend(dividend_payments, reference_year=2025) == pytest.approx(2.0)

    def test_average_requires_two_years(self):
        """Test a single paying year is not enough."""
        payments = [DividendPayment(ex_date=date(2024, 3, 1), amount=1.0)]
        assert calculate_average_dividend(payments, reference_year=2025) is None
        assert calculate_average_dividend([], reference_year=2025) is None

    def test_average_ignores_payments_outside_window(self, dividend_payments):
        """Test payments older than six years before the reference are ignored."""
        old = DividendPayment(ex_date=date(2015, 6, 1), amount=50.0)
        assert calculate_average_dividend([*dividend_payments, old], reference_year=2025) == pytest.approx(2.0)

    def test_ceiling_price(self):
        """Test ceiling = average / target yield x multiplier."""
        assert calculate_ceiling_price(2.0, 0.06) == pytest.approx(33.333, rel=1e-4)
        assert calculate_ceiling_price(2.0, 0.06, 1.2) == pytest.approx(40.0)

    def test_consistent_dividends(self, make_company):
        """Test the yield fallback and the 80% rule over the history."""
        assert has_consistent_dividends(make_company(dividend_yield=0.05))
        assert not has_consistent_dividends(make_company(dividend_yield=0.02))

        four_of_five = [{"year": 2024 - i, "dividend_yield": dy} for i, dy in enumerate([0.05, 0.04, 0.0, 0.03, 0.06])]
        three_of_five = [{"year": 2024 - i, "dividend_yield": dy} for i, dy in enumerate([0.05, 0.0, 0.0, 0.03, 0.06])]
        assert has_consistent_dividends(make_company(history=four_of_five), min_years=5)
        assert not has_consistent_dividends(make_company(history=three_of_five), min_years=5)

    def test_barsi_score(self):
        """Test the 40/35/25 composition."""
        score = calculate_barsi_score(10.0, 0.07, True, 0.15, None, 0.30)
        assert score == pytest.approx(40 / 3 + 29 + 6 + 0.15 * 33)
        # Each component saturates; net margin is capped at 15% (4.95 points)
        assert calculate_barsi_score(60.0, 0.5, True, 0.5, 5.0, 0.5) == pytest.approx(40 + 35 + 24.95)


class TestBarsiStrategy:
    """Test Barsi analysis and ranking."""

    def test_ceiling_from_history(self, utility_company, dividend_provider, barsi_params):
        """Test the ceiling of 33.33 and a 10% discount at a price of 30."""
        analysis = BarsiStrategy(dividend_provider).analyze(utility_company, barsi_params)

        assert analysis.fair_value == pytest.approx(33.333, rel=1e-4)
        assert analysis.upside == pytest.approx(10.0)
        assert analysis.is_eligible
        assert analysis.key_metrics["average_dividend"] == pytest.approx(2.0)
        dividend_provider.get_dividend_history.assert_called_once_with("TAEE11")

    def test_provider_failure_falls_back_to_last_dividend(self, utility_company, barsi_params, caplog):
        """Test a failing lookup uses the last dividend and logs a warning."""
        provider = Mock(spec=DividendHistoryProvider)
        provider.get_dividend_history.side_effect = RuntimeError("timeout")

        analysis = BarsiStrategy(provider).analyze(utility_company, barsi_params)

        assert analysis.key_metrics["average_dividend"] == pytest.approx(1.5)
        assert analysis.fair_value == pytest.approx(25.0)
        assert not analysis.is_eligible
        assert "RuntimeError" in caplog.text

    def test_without_provider(self, utility_company, barsi_params):
        """Test the last dividend is used when no provider is configured."""
        analysis = BarsiStrategy().analyze(utility_company, barsi_params)
        assert analysis.fair_value == pytest.approx(25.0)

    def test_validate(self, utility_company, make_company):
        """Test a positive yield, last dividend and price are required."""
        strategy = BarsiStrategy()
        assert strategy.validate(utility_company)
        assert not strategy.validate(make_company(dividend_yield=0.05))

    def test_rank(self, utility_company, dividend_provider, barsi_params):
        """Test ranking derives the margin of safety from the ceiling price."""
        results = BarsiStrategy(dividend_provider).rank([utility_company], barsi_params)

        assert len(results) == 1
        result = results[0]
        assert result.fair_value == pytest.approx(33.333, rel=1e-4)
        assert result.upside == pytest.approx(10.0)
        assert result.margin_of_safety == pytest.approx((100 / 3 - 30) / 30 * 100)

    def test_rank_requires_perennial_sector(self, utility_company, dividend_provider, barsi_params):
        """Test non-perennial sectors are skipped when focusing on the best."""
        tech = utility_company.model_copy(update={"ticker": "TOTS3", "sector": "Tecnologia"})

        results = BarsiStrategy(dividend_provider).rank([tech], barsi_params)

        assert results == []
        dividend_provider.get_dividend_history.assert_not_called()

    def test_concurrent_lookups(self, make_company, dividend_payments):
        """Test bounded concurrent lookups resolve one average per ticker."""
        provider = InMemoryDividendProvider.from_payments({"TAEE11": dividend_payments})
        companies = [make_company(ticker="TAEE11"), make_company(ticker="SAPR4")]
        params = BarsiParams(reference_year=2025, max_concurrent_lookups=2)

        averages = asyncio.run(BarsiStrategy(provider).lookup_average_dividends(companies, params))

        assert averages["TAEE11"] == pytest.approx(2.0)
        assert averages["SAPR4"] is None

    def test_loss_maker_excluded_before_lookup(self, make_company, dividend_provider):
        """Test the quality gate drops a loss-maker without querying dividends."""
        loss_maker = make_company(
            ticker="LOSS3", sector="Bancos", dividend_yield=0.07, last_dividend=1.5, net_income=-5.0
        )

        results = BarsiStrategy(dividend_provider).rank([loss_maker], BarsiParams(reference_year=2025))

        assert results == []
        dividend_provider.get_dividend_history.assert_not_called()

    def test_rank_inside_running_loop(self, utility_company, dividend_provider, barsi_params):
        """Test synchronous ranking works when an event loop is already running."""

        async def rank_from_coroutine():
            return BarsiStrategy(dividend_provider).rank([utility_company], barsi_params)

        results = asyncio.run(rank_from_coroutine())

        assert [r.ticker for r in results] == ["TAEE11"]
        assert results[0].fair_value == pytest.approx(33.333, rel=1e-4)
