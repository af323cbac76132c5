"""Profit-consistency and overall-score exclusion filter.

Every ranking passes its universe through this filter before applying
strategy-specific eligibility, which gives all strategies the same quality
floor.
"""

import logging
from typing import List, Optional

from valuerank.analysis.numeric import MAX_HISTORY_YEARS
from valuerank.analysis.overall_score import compute_overall_score
from valuerank.config.overall_score_config import OverallScoreConfig
from valuerank.config.strategy_params import QualityFilterConfig
from valuerank.data.company_data import CompanyData

logger = logging.getLogger(__name__)

STRICT_HISTORY_YEARS = 3


def _max_loss_years(total_years: int) -> int:
    if total_years >= 8:
        return 2
    if total_years >= 5:
        return 1
    return 0


def has_consistent_profits(company: CompanyData) -> bool:
    """Check multi-year profitability.

    Up to eight figures are considered: the current net income plus seven
    prior years. With fewer than three figures every year must be
    profitable; otherwise the allowed number of loss years grows with the
    history depth (0 below five years, 1 for five to seven, 2 from eight).

    Args:
        company: Company snapshot

    Returns:
        True when the profit history is consistent
    """
    current = company.financials.net_income

    if not company.historical_financials:
        return current is not None and current > 0

    recent = sorted(company.historical_financials, key=lambda h: h.year, reverse=True)[:MAX_HISTORY_YEARS]
    profits = [current] if current is not None else []
    profits.extend(h.net_income for h in recent if h.net_income is not None)

    if len(profits) < STRICT_HISTORY_YEARS:
        return all(p > 0 for p in profits)

    loss_years = sum(1 for p in profits if p <= 0)
    return loss_years <= _max_loss_years(len(profits))


def should_exclude_company(
    company: CompanyData,
    quality_filter: QualityFilterConfig,
    overall_score_config: Optional[OverallScoreConfig] = None,
) -> bool:
    """Whether a company is excluded from rankings.

    Args:
        company: Company snapshot
        quality_filter: Minimum overall score
        overall_score_config: Aggregator configuration

    Returns:
        True for inconsistent profits or an overall score below the minimum
    """
    if not has_consistent_profits(company):
        logger.debug(f"{company.ticker} excluded: inconsistent profits")
        return True

    score = compute_overall_score(company, overall_score_config)
    if score < quality_filter.min_overall_score:
        logger.debug(f"{company.ticker} excluded: overall score {score} < {quality_filter.min_overall_score}")
        return True

    return False


def filter_companies_by_overall_score(companies: List[CompanyData], min_score: float = 50.0) -> List[CompanyData]:
    """Drop companies whose persisted overall score is not above ``min_score``.

    Companies without a persisted score pass.
    """
    kept = [c for c in companies if c.overall_score is None or c.overall_score > min_score]
    removed = len(companies) - len(kept)
    if removed:
        logger.info(f"Quality filter: {removed} companies removed with overall score <= {min_score}")
    return kept
