"""Shared ranking pipeline.

Every strategy ranks the same way:

1. Restrict the universe (size bucket, asset type, persisted overall score)
2. Per company: validate, apply the exclusion filter, analyze, gate
3. Sort by the strategy's ranking key (stable, so ties keep input order)
4. Deduplicate share classes
5. Truncate to the limit
6. Optionally re-prioritize within quality bands by technical timing
"""

import logging
from typing import Callable, List, Optional, Tuple

from valuerank.analysis.deduplication import remove_duplicate_companies
from valuerank.analysis.exclusion_filter import filter_companies_by_overall_score, should_exclude_company
from valuerank.analysis.normalization import (
    filter_by_asset_type,
    filter_companies_by_size,
    filter_ticker_ending_digits,
)
from valuerank.analysis.technical import apply_technical_prioritization
from valuerank.config.overall_score_config import OverallScoreConfig
from valuerank.config.strategy_params import AssetTypeFilter, StrategyParams
from valuerank.data.analysis_results import RankBuilderResult
from valuerank.data.company_data import CompanyData

logger = logging.getLogger(__name__)

# (ranking key, result); higher keys rank first
ScoredResult = Tuple[float, RankBuilderResult]


def prepare_universe(
    companies: List[CompanyData],
    params: StrategyParams,
    asset_type: Optional[AssetTypeFilter] = None,
    drop_secondary_classes: bool = False,
) -> List[CompanyData]:
    """Restrict a universe before per-company evaluation.

    Args:
        companies: Input universe
        params: Strategy parameters (size bucket, quality filter)
        asset_type: Optional asset-type restriction
        drop_secondary_classes: Drop local tickers of secondary share classes

    Returns:
        Remaining companies in their original order
    """
    universe = list(companies)
    if params.quality_filter.enabled:
        universe = filter_companies_by_overall_score(universe, params.quality_filter.min_overall_score)
    if drop_secondary_classes:
        universe = filter_ticker_ending_digits(universe)
    if asset_type is not None:
        universe = filter_by_asset_type(universe, asset_type)
    return filter_companies_by_size(universe, params.company_size)


def passes_quality_gate(
    company: CompanyData,
    params: StrategyParams,
    overall_score_config: Optional[OverallScoreConfig] = None,
) -> bool:
    """Whether a company passes the exclusion filter configured in ``params``."""
    if not params.quality_filter.enabled:
        return True
    return not should_exclude_company(company, params.quality_filter, overall_score_config)


def evaluate_universe(
    universe: List[CompanyData],
    params: StrategyParams,
    validate: Callable[[CompanyData], bool],
    score: Callable[[CompanyData], Optional[ScoredResult]],
    overall_score_config: Optional[OverallScoreConfig] = None,
) -> List[ScoredResult]:
    """Validate, gate and score every company of a universe.

    Args:
        universe: Prepared universe
        params: Strategy parameters
        validate: Data-sufficiency check
        score: Returns (ranking key, result) or None when the company is not ranked
        overall_score_config: Aggregator configuration for the exclusion filter

    Returns:
        Scored results in universe order
    """
    scored = []
    for company in universe:
        if not validate(company):
            continue
        if not passes_quality_gate(company, params, overall_score_config):
            continue
        item = score(company)
        if item is not None:
            scored.append(item)
    return scored


def finalize_ranking(
    scored: List[ScoredResult],
    companies: List[CompanyData],
    params: StrategyParams,
) -> List[RankBuilderResult]:
    """Sort, deduplicate, truncate and optionally re-prioritize.

    Args:
        scored: (ranking key, result) pairs
        companies: Universe used for technical data lookup
        params: Strategy parameters (limit, technical toggle)

    Returns:
        Final ranking
    """
    ordered = [result for _, result in sorted(scored, key=lambda item: -item[0])]
    unique = remove_duplicate_companies(ordered)
    limited = unique[: params.limit]
    logger.debug(f"Ranking: {len(scored)} scored, {len(unique)} unique, {len(limited)} returned")
    return apply_technical_prioritization(limited, companies, params.use_technical_analysis)
