"""Company-level normalization helpers shared by every strategy.

Strategies call these free functions rather than inheriting them. They read
a ``CompanyData`` snapshot and never modify it.
"""

import logging
import re
from typing import Iterable, List, Optional

from valuerank.analysis.numeric import MAX_HISTORY_YEARS, historical_average
from valuerank.config.strategy_params import AssetTypeFilter, CompanySize
from valuerank.data.company_data import CompanyData, HistoricalFinancials, Indicator

logger = logging.getLogger(__name__)

SMALL_CAP_LIMIT = 2_000_000_000
BLUE_CHIP_LIMIT = 10_000_000_000

_BDR_PATTERN = re.compile(r"3[45](\.SA)?$")
_SECONDARY_CLASS_PATTERN = re.compile(r"[5-9](\.SA)?$")


def extract_historical_values(
    history: Iterable[HistoricalFinancials], indicator: Indicator
) -> List[float]:
    """Values of one indicator over the most recent years.

    Args:
        history: Prior-year snapshots in any order
        indicator: Indicator to extract

    Returns:
        Up to seven values, most recent year first, missing values dropped
    """
    recent = sorted(history, key=lambda h: h.year, reverse=True)[:MAX_HISTORY_YEARS]
    values = [getattr(h, indicator.value) for h in recent]
    return [v for v in values if v is not None]


def get_indicator_value(company: CompanyData, indicator: Indicator, use_averages: bool = False) -> Optional[float]:
    """Latest value of an indicator, or its historical average when enabled.

    Args:
        company: Company snapshot
        indicator: Indicator to read
        use_averages: Average the latest value with up to six prior years

    Returns:
        Indicator value or None
    """
    current = getattr(company.financials, indicator.value)
    if not use_averages:
        return current
    return historical_average(current, extract_historical_values(company.historical_financials, indicator))


def filter_companies_by_size(companies: List[CompanyData], company_size: CompanySize) -> List[CompanyData]:
    """Keep the companies within a market-cap bucket.

    Companies without a positive market cap only pass the ``all`` bucket.
    """
    if company_size == CompanySize.ALL:
        return list(companies)

    def in_bucket(company: CompanyData) -> bool:
        market_cap = company.financials.market_cap
        if not market_cap or market_cap <= 0:
            return False
        if company_size == CompanySize.SMALL_CAPS:
            return market_cap < SMALL_CAP_LIMIT
        if company_size == CompanySize.MID_CAPS:
            return SMALL_CAP_LIMIT <= market_cap < BLUE_CHIP_LIMIT
        return market_cap >= BLUE_CHIP_LIMIT

    return [c for c in companies if in_bucket(c)]


def is_bdr_ticker(ticker: str) -> bool:
    """Whether a ticker is a depositary receipt (class 34 or 35)."""
    return bool(_BDR_PATTERN.search(ticker.strip().upper()))


def filter_by_asset_type(companies: List[CompanyData], asset_type: AssetTypeFilter) -> List[CompanyData]:
    """Keep local shares, depositary receipts or both."""
    if asset_type == AssetTypeFilter.BDR:
        return [c for c in companies if is_bdr_ticker(c.ticker)]
    if asset_type == AssetTypeFilter.B3:
        return [c for c in companies if not is_bdr_ticker(c.ticker)]
    return list(companies)


def filter_ticker_ending_digits(companies: List[CompanyData]) -> List[CompanyData]:
    """Drop local tickers whose last digit is 5 to 9.

    Those classes are secondary preferred shares and subscription rights.
    Depositary receipts keep their 34/35 suffix.
    """
    kept = [c for c in companies if is_bdr_ticker(c.ticker) or not _SECONDARY_CLASS_PATTERN.search(c.ticker)]
    removed = len(companies) - len(kept)
    if removed:
        logger.debug(f"Removed {removed} tickers with secondary share classes")
    return kept
