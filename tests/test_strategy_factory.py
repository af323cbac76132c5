"""Tests for the strategy registry and factory functions."""

import asyncio
from unittest.mock import Mock, patch

import pytest

from valuerank.config.strategy_params import DCFParams, GrahamParams
from valuerank.data.dividend_providers import DividendHistoryProvider
from valuerank.strategy.barsi_strategy import BarsiStrategy
from valuerank.strategy.graham_strategy import GrahamStrategy
from valuerank.strategy.strategy_factory import (
    StrategyType,
    create_strategy,
    explain_methodology,
    get_available_strategy_params,
    get_registered_strategy_names,
    run_analysis,
    run_ranking,
    run_ranking_async,
)


class TestCreateStrategy:
    """Test strategy lookup by name."""

    def test_all_names_registered(self):
        """Test every strategy type is registered."""
        assert get_registered_strategy_names() == [member.value for member in StrategyType]

    def test_create_by_name_and_type(self):
        """Test names and enum members resolve to the same class."""
        assert isinstance(create_strategy("graham"), GrahamStrategy)
        assert isinstance(create_strategy(StrategyType.GRAHAM), GrahamStrategy)

    def test_unknown_name(self):
        """Test an unknown name lists the available strategies."""
        with pytest.raises(ValueError, match="Unknown strategy 'buffett'"):
            create_strategy("buffett")

    def test_dividend_provider_passed_to_barsi(self):
        """Test strategies that accept a provider receive it."""
        provider = Mock(spec=DividendHistoryProvider)
        strategy = create_strategy("barsi", dividend_provider=provider)

        assert isinstance(strategy, BarsiStrategy)
        assert strategy.dividend_provider is provider

    def test_provider_ignored_by_other_strategies(self):
        """Test strategies without a provider parameter are still created."""
        strategy = create_strategy("dcf", dividend_provider=Mock(spec=DividendHistoryProvider))
        assert strategy.name == "dcf"

    def test_display_name(self):
        """Test a custom display name."""
        assert create_strategy("graham", display_name="My Graham").display_name == "My Graham"
        assert create_strategy("graham").display_name == "Graham"


class TestRunFunctions:
    """Test the convenience wrappers."""

    def test_run_analysis_with_dict_params(self, graham_company):
        """Test dict parameters are validated into the params model."""
        analysis = run_analysis("graham", graham_company, {"limit": 10})
        assert analysis.is_eligible

    def test_run_analysis_invalid_params(self, graham_company):
        """Test invalid parameters propagate as ValueError."""
        with pytest.raises(ValueError):
            run_analysis("graham", graham_company, {"unknown_field": 1})

    def test_run_analysis_failure_is_ineligible(self, graham_company):
        """Test an error inside the analysis yields an ineligible result."""
        with patch.object(GrahamStrategy, "analyze", side_effect=ZeroDivisionError("boom")):
            analysis = run_analysis("graham", graham_company)

        assert not analysis.is_eligible
        assert analysis.score == 0.0
        assert analysis.reasoning == "Analysis failed: ZeroDivisionError"

    def test_run_ranking(self, graham_company, no_quality_filter):
        """Test ranking through the factory."""
        results = run_ranking("graham", [graham_company], {"quality_filter": no_quality_filter})
        assert [r.ticker for r in results] == ["WEGE3"]

    def test_run_ranking_async_barsi(self, utility_company, dividend_payments, no_quality_filter):
        """Test the async factory awaits dividend lookups on the caller's loop."""
        provider = Mock(spec=DividendHistoryProvider)
        provider.get_dividend_history.return_value = dividend_payments
        params = {"reference_year": 2025, "quality_filter": no_quality_filter}

        results = asyncio.run(run_ranking_async("barsi", [utility_company], params, dividend_provider=provider))

        assert [r.ticker for r in results] == ["TAEE11"]
        provider.get_dividend_history.assert_called_once_with("TAEE11")

    def test_run_ranking_barsi_inside_running_loop(self, utility_company, dividend_payments, no_quality_filter):
        """Test the synchronous factory can rank Barsi from within a coroutine."""
        provider = Mock(spec=DividendHistoryProvider)
        provider.get_dividend_history.return_value = dividend_payments
        params = {"reference_year": 2025, "quality_filter": no_quality_filter}

        async def rank_from_coroutine():
            return run_ranking("barsi", [utility_company], params, dividend_provider=provider)

        results = asyncio.run(rank_from_coroutine())

        assert [r.ticker for r in results] == ["TAEE11"]

    def test_run_ranking_async_sync_strategy(self, graham_company, no_quality_filter):
        """Test strategies without async lookups rank through the async factory."""
        results = asyncio.run(run_ranking_async("graham", [graham_company], {"quality_filter": no_quality_filter}))
        assert [r.ticker for r in results] == ["WEGE3"]

    def test_explain_methodology(self):
        """Test the methodology reflects the strategy."""
        text = explain_methodology("dcf", DCFParams(discount_rate=0.12))
        assert "DISCOUNTED CASH FLOW" in text

    def test_wrong_params_type(self, graham_company):
        """Test parameters of another strategy are rejected."""
        with pytest.raises(ValueError, match="expects GrahamParams"):
            create_strategy("graham").coerce_params(DCFParams())
        with pytest.raises(ValueError, match="expects DCFParams"):
            run_analysis("dcf", graham_company, GrahamParams())


class TestAvailableParams:
    """Test the parameter schema listing."""

    def test_schema_per_strategy(self):
        """Test every strategy exposes its params model and properties."""
        available = get_available_strategy_params()

        assert len(available) == 9
        assert available["graham"]["params_class"] == "GrahamParams"
        assert "limit" in available["screening"]["properties"]
        assert "discount_rate" in available["dcf"]["properties"]
