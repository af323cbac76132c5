"""Result models produced by the strategies.

``StrategyAnalysis`` is the per-company outcome of one strategy run;
``RankBuilderResult`` is one entry of a ranking. Both are freshly built for
every company and never share mutable state.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from valuerank.config.default_pydantic_config import DEFAULT_PYDANTIC_CONFIG
from valuerank.data.company_data import CompanyData


class Criterion(BaseModel):
    """One pass/fail check of a strategy."""

    model_config = DEFAULT_PYDANTIC_CONFIG

    label: str
    value: bool
    description: str = ""


class StrategyAnalysis(BaseModel):
    """Outcome of analyzing one company with one strategy."""

    model_config = DEFAULT_PYDANTIC_CONFIG

    is_eligible: bool
    score: float = Field(ge=0.0, le=100.0)
    fair_value: Optional[float] = None
    upside: Optional[float] = None
    reasoning: str = ""
    criteria: List[Criterion] = Field(default_factory=list)
    key_metrics: Dict[str, Optional[float]] = Field(default_factory=dict)


class RankBuilderResult(BaseModel):
    """One entry of a strategy ranking."""

    model_config = DEFAULT_PYDANTIC_CONFIG

    ticker: str
    name: str
    sector: Optional[str] = None
    current_price: float
    logo_url: Optional[str] = None
    fair_value: Optional[float] = None
    upside: Optional[float] = None
    margin_of_safety: Optional[float] = None
    rational: str = ""
    key_metrics: Dict[str, Optional[float]] = Field(default_factory=dict)


def build_ranking_result(
    company: CompanyData,
    rational: str,
    fair_value: Optional[float] = None,
    upside: Optional[float] = None,
    key_metrics: Optional[Dict[str, Optional[float]]] = None,
) -> RankBuilderResult:
    """Create a ranking entry for a company.

    The margin of safety is always derived from the fair value and the
    current price, so it is consistent for every strategy.

    Args:
        company: Ranked company
        rational: Human-readable explanation of the ranking
        fair_value: Strategy fair value, if any
        upside: Strategy upside in percent, if any
        key_metrics: Named metrics shown next to the entry

    Returns:
        A new ranking entry
    """
    margin_of_safety = None
    if fair_value is not None and company.current_price > 0:
        margin_of_safety = (fair_value - company.current_price) / company.current_price * 100

    return RankBuilderResult(
        ticker=company.ticker,
        name=company.name,
        sector=company.sector,
        current_price=company.current_price,
        logo_url=company.logo_url,
        fair_value=fair_value,
        upside=upside,
        margin_of_safety=margin_of_safety,
        rational=rational,
        key_metrics=dict(key_metrics or {}),
    )
