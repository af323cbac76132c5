"""Tests for the profit-consistency and overall-score exclusion filter."""

from unittest.mock import patch

from valuerank.analysis.exclusion_filter import (
    filter_companies_by_overall_score,
    has_consistent_profits,
    should_exclude_company,
)
from valuerank.config.strategy_params import GrahamParams, QualityFilterConfig
from valuerank.data.company_data import CompanyData
from valuerank.strategy.ranking_pipeline import passes_quality_gate, prepare_universe


def _history(profits):
    return [{"year": 2024 - i, "net_income": p} for i, p in enumerate(profits)]


class TestConsistentProfits:
    """Test the multi-year profitability rule."""

    def test_without_history_uses_current_profit(self, make_company):
        """Test a company without history needs a positive current profit."""
        assert has_consistent_profits(make_company(net_income=100.0))
        assert not has_consistent_profits(make_company(net_income=-5.0))
        assert not has_consistent_profits(make_company())

    def test_short_history_requires_every_year_profitable(self, make_company):
        """Test fewer than three figures tolerate no loss."""
        assert not has_consistent_profits(make_company(net_income=100.0, history=_history([-1.0])))
        assert has_consistent_profits(make_company(net_income=100.0, history=_history([50.0])))

    def test_loss_years_allowed_by_depth(self, make_company):
        """Test the loss allowance grows with the history depth."""
        four_figures = make_company(net_income=10.0, history=_history([10.0, -1.0, 10.0]))
        assert not has_consistent_profits(four_figures)

        six_figures = make_company(net_income=10.0, history=_history([10.0, -1.0, 10.0, 10.0, 10.0]))
        assert has_consistent_profits(six_figures)

        two_losses = make_company(net_income=10.0, history=_history([10.0, -1.0, -2.0, 10.0, 10.0]))
        assert not has_consistent_profits(two_losses)

        eight_figures = make_company(net_income=10.0, history=_history([10.0, -1.0, -2.0, 10.0, 10.0, 10.0, 10.0]))
        assert has_consistent_profits(eight_figures)

        three_losses = make_company(net_income=10.0, history=_history([10.0, -1.0, -2.0, -3.0, 10.0, 10.0, 10.0]))
        assert not has_consistent_profits(three_losses)


class TestOverallScoreGate:
    """Test the persisted and computed overall score gates."""

    def test_persisted_score_must_exceed_minimum(self):
        """Test scores at the minimum are removed and missing scores pass."""
        companies = [
            CompanyData(ticker="LOW3", current_price=1.0, overall_score=50),
            CompanyData(ticker="HIGH3", current_price=1.0, overall_score=51),
            CompanyData(ticker="NONE3", current_price=1.0),
        ]
        kept = filter_companies_by_overall_score(companies, 50)
        assert [c.ticker for c in kept] == ["HIGH3", "NONE3"]

    def test_exclude_low_computed_score(self, make_company):
        """Test a profitable company with a low computed score is excluded."""
        company = make_company(net_income=100.0)
        with patch("valuerank.analysis.exclusion_filter.compute_overall_score", return_value=40.0):
            assert should_exclude_company(company, QualityFilterConfig())
        with patch("valuerank.analysis.exclusion_filter.compute_overall_score", return_value=60.0):
            assert not should_exclude_company(company, QualityFilterConfig())

    def test_inconsistent_profits_skip_scoring(self, make_company):
        """Test a loss-making company is excluded without computing its score."""
        company = make_company(net_income=-100.0)
        with patch("valuerank.analysis.exclusion_filter.compute_overall_score") as mock_score:
            assert should_exclude_company(company, QualityFilterConfig())
            mock_score.assert_not_called()


class TestRankingQualityGate:
    """Test how rankings apply the exclusion filter."""

    def test_disabled_gate_keeps_everyone(self, make_company):
        """Test a disabled gate keeps loss-makers and low persisted scores."""
        params = GrahamParams(quality_filter=QualityFilterConfig(enabled=False))
        loss_maker = make_company(ticker="LOSS3", net_income=-1.0)
        low_score = CompanyData(ticker="LOW3", current_price=1.0, overall_score=10)

        assert passes_quality_gate(loss_maker, params)
        assert [c.ticker for c in prepare_universe([loss_maker, low_score], params)] == ["LOSS3", "LOW3"]

    def test_enabled_gate(self, make_company):
        """Test the persisted score prunes the universe and the exclusion rules gate each company."""
        params = GrahamParams(quality_filter=QualityFilterConfig(min_overall_score=60))
        companies = [
            make_company(ticker="GOOD3", net_income=10.0),
            make_company(ticker="LOSS3", net_income=-10.0),
            CompanyData(ticker="LOW3", current_price=1.0, overall_score=60),
            make_company(ticker="BEST3", net_income=20.0),
        ]

        universe = prepare_universe(companies, params)
        with patch("valuerank.analysis.exclusion_filter.compute_overall_score", return_value=70.0):
            kept = [c.ticker for c in universe if passes_quality_gate(c, params)]

        assert [c.ticker for c in universe] == ["GOOD3", "LOSS3", "BEST3"]
        assert kept == ["GOOD3", "BEST3"]
