"""Base strategy implementation with common functionality.

The hierarchy is:
- AbstractStrategy (pure interface)
- BaseStrategy (display name, parameter coercion, safe analysis)
- ConcreteStrategy (specific valuation methodology)
"""

import logging
from typing import Any, Dict, Optional, Union

from valuerank.config.overall_score_config import OverallScoreConfig
from valuerank.config.strategy_params import StrategyParams
from valuerank.data.analysis_results import Criterion, StrategyAnalysis
from valuerank.data.company_data import CompanyData
from valuerank.strategy.strategy_interface import AbstractStrategy

logger = logging.getLogger(__name__)


class BaseStrategy(AbstractStrategy):
    """Base implementation for valuation strategies.

    This class provides common functionality that all strategies share:
    - Display name management
    - The aggregator configuration used by the exclusion filter in ``rank``
    - Coercion of None or dict parameters into the strategy's params model
    - Graceful failure handling with an ineligible fallback analysis

    All concrete strategies should inherit from this class rather than
    AbstractStrategy directly.
    """

    def __init__(
        self,
        display_name: Optional[str] = None,
        overall_score_config: Optional[OverallScoreConfig] = None,
    ):
        """Initialize the strategy.

        Args:
            display_name: Optional display name for this strategy instance.
                If None, defaults to the strategy's name property.
            overall_score_config: Aggregator configuration used when ranking
                applies the exclusion filter.
        """
        self._display_name = display_name
        self.overall_score_config = overall_score_config or OverallScoreConfig()

    @property
    def display_name(self) -> str:
        """Get the display name for this strategy instance."""
        return self._display_name if self._display_name is not None else self.name

    def coerce_params(self, params: Union[StrategyParams, Dict[str, Any], None]) -> StrategyParams:
        """Return ``params`` as an instance of this strategy's params model.

        Raises:
            ValueError: If a dict does not validate against the params model
        """
        if params is None:
            return self.params_class()
        if isinstance(params, dict):
            return self.params_class(**params)
        if not isinstance(params, self.params_class):
            raise ValueError(
                f"{self.display_name} expects {self.params_class.__name__}, got {type(params).__name__}"
            )
        return params

    def analyze_safe(self, company: CompanyData, params: Optional[StrategyParams] = None) -> StrategyAnalysis:
        """Analyze a company, returning an ineligible analysis if analysis raises.

        Args:
            company: Company snapshot
            params: Strategy parameters

        Returns:
            The analysis, or a zero-score ineligible analysis on failure
        """
        try:
            return self.analyze(company, params)
        except Exception as e:
            logger.warning(
                f"{self.display_name} failed for {company.ticker} with {type(e).__name__}: {e}. "
                "Falling back to an ineligible analysis."
            )
            return StrategyAnalysis(
                is_eligible=False,
                score=0.0,
                reasoning=f"Analysis failed: {type(e).__name__}",
                criteria=[Criterion(label="Analysis completed", value=False, description=str(e))],
            )
