"""Strategy registry and factory functions.

Provides lookup of strategies by registry name and convenience wrappers to
analyze, rank and describe with a freshly created strategy.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from valuerank.config.overall_score_config import OverallScoreConfig
from valuerank.config.strategy_params import StrategyParams
from valuerank.data.analysis_results import RankBuilderResult, StrategyAnalysis
from valuerank.data.company_data import CompanyData
from valuerank.data.dividend_providers import DividendHistoryProvider
from valuerank.strategy.barsi_strategy import BarsiStrategy
from valuerank.strategy.base_strategy import BaseStrategy
from valuerank.strategy.dcf_strategy import DCFStrategy
from valuerank.strategy.dividend_yield_strategy import DividendYieldStrategy
from valuerank.strategy.fundamentalist_strategy import FundamentalistStrategy
from valuerank.strategy.gordon_strategy import GordonStrategy
from valuerank.strategy.graham_strategy import GrahamStrategy
from valuerank.strategy.low_pe_strategy import LowPEStrategy
from valuerank.strategy.magic_formula_strategy import MagicFormulaStrategy
from valuerank.strategy.screening_strategy import ScreeningStrategy

logger = logging.getLogger(__name__)

ParamsInput = Union[StrategyParams, Dict[str, Any], None]


class StrategyType(str, Enum):
    """Registry names of the available strategies."""

    GRAHAM = "graham"
    """Graham fair value with fundamental quality checks."""

    DCF = "dcf"
    """Discounted cash flow valuation."""

    GORDON = "gordon"
    """Dividend discount model with sector-adjusted rates."""

    BARSI = "barsi"
    """Ceiling price from historical dividends in perennial sectors."""

    LOW_PE = "low_pe"
    """Low earnings multiple with value-trap filters."""

    DIVIDEND_YIELD = "dividend_yield"
    """High yield with dividend-trap filters."""

    MAGIC_FORMULA = "magic_formula"
    """High return on capital at a high earnings yield."""

    FUNDAMENTALIST = "fundamentalist"
    """Quality, price and leverage pillars plus a dividend bonus."""

    SCREENING = "screening"
    """User-configured range filters."""


NAME_TO_STRATEGY_CLASS: Dict[str, type] = {
    StrategyType.GRAHAM.value: GrahamStrategy,
    StrategyType.DCF.value: DCFStrategy,
    StrategyType.GORDON.value: GordonStrategy,
    StrategyType.BARSI.value: BarsiStrategy,
    StrategyType.LOW_PE.value: LowPEStrategy,
    StrategyType.DIVIDEND_YIELD.value: DividendYieldStrategy,
    StrategyType.MAGIC_FORMULA.value: MagicFormulaStrategy,
    StrategyType.FUNDAMENTALIST.value: FundamentalistStrategy,
    StrategyType.SCREENING.value: ScreeningStrategy,
}


def get_registered_strategy_names() -> List[str]:
    """Registry names of all strategies, in registration order."""
    return list(NAME_TO_STRATEGY_CLASS.keys())


def _accepts_dividend_provider(strategy_class) -> bool:
    """Check if a strategy class accepts a dividend_provider parameter."""
    import inspect

    sig = inspect.signature(strategy_class.__init__)
    return "dividend_provider" in sig.parameters


def create_strategy(
    name: Union[str, StrategyType],
    dividend_provider: Optional[DividendHistoryProvider] = None,
    overall_score_config: Optional[OverallScoreConfig] = None,
    display_name: Optional[str] = None,
) -> BaseStrategy:
    """Create a strategy by registry name.

    Args:
        name: Registry name or StrategyType member
        dividend_provider: Dividend history source, passed to strategies that accept one
        overall_score_config: Aggregator configuration used by the quality gate
        display_name: Optional display name of the instance

    Returns:
        Configured strategy instance

    Raises:
        ValueError: If the name is not registered
    """
    key = name.value if isinstance(name, StrategyType) else name
    strategy_class = NAME_TO_STRATEGY_CLASS.get(key)
    if strategy_class is None:
        available = get_registered_strategy_names()
        raise ValueError(f"Unknown strategy '{key}'. Available strategies: {available}")

    if dividend_provider is not None and _accepts_dividend_provider(strategy_class):
        strategy = strategy_class(
            dividend_provider=dividend_provider,
            display_name=display_name,
            overall_score_config=overall_score_config,
        )
    else:
        strategy = strategy_class(display_name=display_name, overall_score_config=overall_score_config)
    logger.debug(f"Created {key} as '{strategy.display_name}'")
    return strategy


def run_analysis(
    name: Union[str, StrategyType],
    company: CompanyData,
    params: ParamsInput = None,
    dividend_provider: Optional[DividendHistoryProvider] = None,
    overall_score_config: Optional[OverallScoreConfig] = None,
) -> StrategyAnalysis:
    """Analyze one company with a named strategy.

    Parameter validation errors propagate; failures inside the analysis turn
    into an ineligible result.
    """
    strategy = create_strategy(name, dividend_provider, overall_score_config)
    return strategy.analyze_safe(company, strategy.coerce_params(params))


def run_ranking(
    name: Union[str, StrategyType],
    companies: List[CompanyData],
    params: ParamsInput = None,
    dividend_provider: Optional[DividendHistoryProvider] = None,
    overall_score_config: Optional[OverallScoreConfig] = None,
) -> List[RankBuilderResult]:
    """Rank a universe with a named strategy."""
    strategy = create_strategy(name, dividend_provider, overall_score_config)
    params = strategy.coerce_params(params)
    results = strategy.rank(companies, params)
    logger.info(f"{strategy.display_name} ranked {len(results)} of {len(companies)} companies")
    return results


async def run_ranking_async(
    name: Union[str, StrategyType],
    companies: List[CompanyData],
    params: ParamsInput = None,
    dividend_provider: Optional[DividendHistoryProvider] = None,
    overall_score_config: Optional[OverallScoreConfig] = None,
) -> List[RankBuilderResult]:
    """Rank a universe from async code.

    Strategies with asynchronous lookups are awaited on the caller's loop;
    the others rank synchronously.
    """
    strategy = create_strategy(name, dividend_provider, overall_score_config)
    params = strategy.coerce_params(params)
    if isinstance(strategy, BarsiStrategy):
        results = await strategy.rank_async(companies, params)
    else:
        results = strategy.rank(companies, params)
    logger.info(f"{strategy.display_name} ranked {len(results)} of {len(companies)} companies")
    return results


def explain_methodology(name: Union[str, StrategyType], params: ParamsInput = None) -> str:
    strategy = create_strategy(name)
    return strategy.explain_methodology(strategy.coerce_params(params))


def get_available_strategy_params() -> Dict[str, Dict[str, Any]]:
    """Get the parameter schema of every registered strategy.

    Returns:
        Dictionary mapping strategy names to their params model and JSON schema
    """
    result = {}
    for name, strategy_class in NAME_TO_STRATEGY_CLASS.items():
        params_class = strategy_class.params_class
        schema = params_class.model_json_schema()
        result[name] = {
            "params_class": params_class.__name__,
            "schema": schema,
            "properties": schema.get("properties", {}),
        }
    return result
