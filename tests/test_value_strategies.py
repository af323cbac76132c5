"""Tests for the low P/E, dividend yield and magic formula strategies."""

import pytest

from valuerank.config.strategy_params import (
    AssetTypeFilter,
    DividendYieldParams,
    LowPEParams,
    MagicFormulaParams,
)
from valuerank.strategy.dividend_yield_strategy import (
    DividendYieldStrategy,
    calculate_sustainability_score,
    passes_strict_requirements,
)
from valuerank.strategy.low_pe_strategy import LowPEStrategy, calculate_value_score, thresholds_for
from valuerank.strategy.magic_formula_strategy import MagicFormulaStrategy, calculate_magic_score
from valuerank.strategy.magic_formula_strategy import thresholds_for as magic_thresholds_for


class TestLowPEStrategy:
    """Test the low P/E strategy."""

    def test_validate_pe_range(self, make_company):
        """Test 3 < P/E <= max P/E."""
        strategy = LowPEStrategy()
        params = LowPEParams(max_pe=15)
        assert not strategy.validate(make_company(pe_ratio=3.0), params)
        assert strategy.validate(make_company(pe_ratio=10.0), params)
        assert strategy.validate(make_company(pe_ratio=15.0), params)
        assert not strategy.validate(make_company(pe_ratio=20.0), params)
        assert not strategy.validate(make_company(), params)

    def test_bdr_thresholds(self):
        """Test depositary receipts get relaxed thresholds."""
        params = LowPEParams(max_pe=15, min_roe=0.10)
        local = thresholds_for("WEGE3", params)
        bdr = thresholds_for("AAPL34", params)

        assert local.max_pe == 15
        assert bdr.max_pe == 25
        assert bdr.min_roe == pytest.approx(0.12)
        assert bdr.pe_weight == 1.5

    def test_value_score(self):
        """Test the blend of a low multiple and quality indicators."""
        assert calculate_value_score(10.0, 0.2, 0.1, 0.15, 0.05, 0.2) == pytest.approx(74.5)
        assert calculate_value_score(4.0, 0.5, 0.5, 0.5, 1.0, 0.5) == 100.0

    def test_analysis(self, value_company):
        """Test a cheap quality company is approved."""
        analysis = LowPEStrategy().analyze(value_company, LowPEParams())

        assert analysis.is_eligible
        assert analysis.key_metrics["value_score"] == pytest.approx(74.5)

    def test_rank_drops_secondary_classes(self, value_company, no_quality_filter):
        """Test secondary share classes are removed before ranking."""
        secondary = value_company.model_copy(update={"ticker": "EFGH5"})
        params = LowPEParams(quality_filter=no_quality_filter)

        results = LowPEStrategy().rank([secondary, value_company], params)

        assert [r.ticker for r in results] == ["ABCD3"]

    def test_rank_asset_type(self, value_company, no_quality_filter):
        """Test the BDR-only universe excludes local shares."""
        params = LowPEParams(asset_type_filter=AssetTypeFilter.BDR, quality_filter=no_quality_filter)
        assert LowPEStrategy().rank([value_company], params) == []


class TestDividendYieldStrategy:
    """Test the anti dividend trap strategy."""

    def test_sustainability_score(self):
        """Test the sustainability score composition."""
        score = calculate_sustainability_score(0.08, 0.2, 2.0, 0.5, 0.15, 0.15)
        assert score == pytest.approx(5 + 30 + 25 + 11.25 + 3 + 4)

    def test_analysis(self, value_company):
        """Test a sustainable payer above the minimum yield is eligible."""
        analysis = DividendYieldStrategy().analyze(value_company, DividendYieldParams())
        assert analysis.is_eligible
        assert len(analysis.criteria) == 7

    def test_minimum_yield(self, value_company):
        """Test the yield must reach the configured minimum."""
        strategy = DividendYieldStrategy()
        params = DividendYieldParams(min_yield=0.10)

        assert not strategy.validate(value_company, params)
        assert not strategy.analyze(value_company, params).is_eligible

    def test_ranking_requires_reported_data(self, value_company, no_quality_filter):
        """Test missing data passes the analysis but fails the ranking requirements."""
        partial = value_company.model_copy(
            update={
                "ticker": "PART3",
                "financials": value_company.financials.model_copy(update={"current_ratio": None}),
            }
        )
        params = DividendYieldParams(quality_filter=no_quality_filter)

        assert DividendYieldStrategy().analyze(partial, params).is_eligible
        assert not passes_strict_requirements(partial, params.min_yield)
        assert [r.ticker for r in DividendYieldStrategy().rank([partial, value_company], params)] == ["ABCD3"]


class TestMagicFormulaStrategy:
    """Test the magic formula strategy."""

    def test_magic_score(self):
        """Test ROIC, earnings yield and quality bonuses."""
        assert calculate_magic_score(0.3, 0.12, 0.2, 0.15, 0.05) == pytest.approx(79.5)
        assert calculate_magic_score(0.6, 0.3, 0.3, 0.3, 0.5) == 100.0

    def test_validate(self, value_company, make_company):
        """Test ROIC and earnings yield must be present, non-zero and above the minimums."""
        strategy = MagicFormulaStrategy()
        assert strategy.validate(value_company)
        assert not strategy.validate(make_company(roic=0.0, earnings_yield=0.1))
        assert not strategy.validate(value_company, MagicFormulaParams(min_roic=0.25))

    def test_analysis_thresholds(self):
        """Test analysis floors on ROIC and earnings yield and their BDR relaxation."""
        params = MagicFormulaParams()
        assert magic_thresholds_for("WEGE3", params).min_roic == pytest.approx(0.15)
        assert magic_thresholds_for("AAPL34", params).min_earnings_yield == pytest.approx(0.05)

    def test_rank_by_magic_score(self, value_company, no_quality_filter):
        """Test higher return on capital ranks first."""
        better = value_company.model_copy(
            update={
                "ticker": "BEST3",
                "financials": value_company.financials.model_copy(update={"roic": 0.35}),
            }
        )
        params = MagicFormulaParams(quality_filter=no_quality_filter)

        results = MagicFormulaStrategy().rank([value_company, better], params)

        assert [r.ticker for r in results] == ["BEST3", "ABCD3"]
        assert results[0].key_metrics["magic_score"] > results[1].key_metrics["magic_score"]
