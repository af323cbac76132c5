"""Valuation strategy interface.

This module defines the contract every valuation strategy implements. A
strategy evaluates one company (``analyze``), ranks a universe (``rank``),
states whether a company carries enough data to be evaluated (``validate``)
and describes its own methodology (``explain_methodology``).

Strategies are independent modules; shared behavior such as numeric
normalization, size filtering, deduplication and technical re-prioritization
lives in free functions they call, not in a class hierarchy.

The interface supports:
- Deterministic, side-effect-free single-company analysis
- Batch ranking with a uniform quality floor
- Immutable per-call parameters
"""

from abc import ABC, abstractmethod
from typing import List

from valuerank.config.strategy_params import StrategyParams
from valuerank.data.analysis_results import RankBuilderResult, StrategyAnalysis
from valuerank.data.company_data import CompanyData


class AbstractStrategy(ABC):
    """Abstract interface for all valuation strategies.

    This is a pure interface with no implementation details.

    Subclassing Guide:
        1. Inherit from BaseStrategy (not AbstractStrategy directly)
        2. Implement validate(), analyze(), rank() and explain_methodology()
        3. Implement the name property
        4. Add a parameter model derived from StrategyParams
        5. Register the class in the strategy factory

    Examples:
        >>> from valuerank.strategy.graham_strategy import GrahamStrategy
        >>> strategy = GrahamStrategy()
        >>> analysis = strategy.analyze(company, GrahamParams())
        >>> analysis.fair_value
        67.08

    See Also:
        - :class:`BaseStrategy`: Base implementation with common functionality
        - :mod:`valuerank.strategy.strategy_factory`: Strategy creation utilities
    """

    params_class: type = StrategyParams

    @abstractmethod
    def validate(self, company: CompanyData, params: StrategyParams) -> bool:
        """Check whether a company carries the data this strategy needs.

        Companies failing validation are skipped by ``rank``.

        Args:
            company: Company snapshot
            params: Strategy parameters

        Returns:
            True when the company can be evaluated
        """
        pass

    @abstractmethod
    def analyze(self, company: CompanyData, params: StrategyParams) -> StrategyAnalysis:
        """Evaluate a single company.

        Args:
            company: Company snapshot
            params: Strategy parameters

        Returns:
            StrategyAnalysis with eligibility, score, fair value and criteria
        """
        pass

    @abstractmethod
    def rank(self, companies: List[CompanyData], params: StrategyParams) -> List[RankBuilderResult]:
        """Rank a company universe.

        Args:
            companies: Universe to rank
            params: Strategy parameters

        Returns:
            Ordered, deduplicated results capped at ``params.limit``
        """
        pass

    @abstractmethod
    def explain_methodology(self, params: StrategyParams) -> str:
        """Describe the strategy logic and its current parameterization."""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry name of the strategy."""
        pass

    @property
    def display_name(self) -> str:
        """Human-readable name, defaults to ``name``."""
        return self.name
