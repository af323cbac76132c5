"""Income-ceiling (Barsi) strategy.

Buy-and-hold dividend method: in perennial sectors, buy only below the
ceiling price at which the average annual dividend yields the target yield.

    ceiling = average annual dividend / target yield * multiplier

The average annual dividend comes from the dividend history of the last six
years, loaded through a ``DividendHistoryProvider``. Ranking issues these
lookups concurrently with a bounded number in flight.
"""

import asyncio
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Dict, Iterable, List, Optional

import pandas as pd

from valuerank.analysis.normalization import get_indicator_value
from valuerank.config.overall_score_config import OverallScoreConfig
from valuerank.config.strategy_params import BarsiParams
from valuerank.data.analysis_results import Criterion, RankBuilderResult, StrategyAnalysis, build_ranking_result
from valuerank.data.company_data import CompanyData, Indicator
from valuerank.data.dividend_providers import DividendHistoryProvider, DividendPayment
from valuerank.strategy.base_strategy import BaseStrategy
from valuerank.strategy.ranking_pipeline import finalize_ranking, passes_quality_gate, prepare_universe
from valuerank.strategy.strategy_utils import capped, format_currency, format_percent, format_ratio

logger = logging.getLogger(__name__)

PERENNIAL_SECTORS = [
    "Bancos",
    "Energia Elétrica",
    "Saneamento",
    "Seguros",
    "Telecomunicações",
    "Gás",
    "Água e Saneamento",
    "Energia",
    "Serviços Financeiros",
    "Utilities",
    "Utilidade Pública",
]

DIVIDEND_LOOKBACK_YEARS = 6
MIN_DIVIDEND_YEARS = 2

CONSISTENCY_SHARE = 0.8
MIN_PAYING_YIELD = 0.01
FALLBACK_PAYING_YIELD = 0.03

MIN_PAYOUT = 0.20
MAX_PAYOUT = 0.95
MIN_MARKET_CAP = 1_000_000_000
MIN_CRITERIA = 6


def is_perennial_sector(sector: Optional[str]) -> bool:
    """Whether a sector matches a perennial sector, by substring in either direction."""
    if not sector:
        return False
    lowered = sector.lower()
    return any(p.lower() in lowered or lowered in p.lower() for p in PERENNIAL_SECTORS)


def calculate_average_dividend(
    payments: Iterable[DividendPayment],
    reference_year: Optional[int] = None,
    lookback_years: int = DIVIDEND_LOOKBACK_YEARS,
) -> Optional[float]:
    """Mean of the yearly dividend totals over the lookback window.

    Args:
        payments: Dividend payments in any order
        reference_year: Last year of the window, defaults to the current year
        lookback_years: Years before ``reference_year`` included in the window

    Returns:
        Average yearly total, or None with fewer than two distinct years
    """
    if reference_year is None:
        reference_year = date.today().year

    df = pd.DataFrame([{"year": p.ex_date.year, "amount": p.amount} for p in payments], columns=["year", "amount"])
    if df.empty:
        return None

    window = df[(df["year"] >= reference_year - lookback_years) & (df["year"] <= reference_year)]
    yearly_totals = window.groupby("year")["amount"].sum()
    if len(yearly_totals) < MIN_DIVIDEND_YEARS:
        return None
    return float(yearly_totals.mean())


def calculate_ceiling_price(average_dividend: float, target_yield: float, multiplier: float = 1.0) -> float:
    """Highest price at which ``average_dividend`` still yields ``target_yield``."""
    return average_dividend / target_yield * multiplier


def has_consistent_dividends(company: CompanyData, min_years: int = 5) -> bool:
    """Whether the company paid dividends in most of the last ``min_years`` years.

    With fewer history rows than ``min_years`` a current yield above 3% is
    enough. Otherwise at least 80% of the first ``min_years`` rows must show
    a yield above 1%.
    """
    history = company.historical_financials
    if len(history) < min_years:
        current_yield = company.financials.dividend_yield
        return current_yield is not None and current_yield > FALLBACK_PAYING_YIELD

    recent = sorted(history, key=lambda h: h.year, reverse=True)[:min_years]
    paying_years = sum(1 for h in recent if h.dividend_yield is not None and h.dividend_yield > MIN_PAYING_YIELD)
    return paying_years >= math.floor(min_years * CONSISTENCY_SHARE)


def calculate_barsi_score(
    discount: Optional[float],
    dividend_yield: Optional[float],
    consistent: bool,
    roe: Optional[float],
    current_ratio: Optional[float],
    net_margin: Optional[float],
) -> float:
    """Barsi quality score: 40 discount, 35 dividend quality, 25 financial health."""
    score = 0.0
    if discount is not None and discount > 0:
        score += min(discount / 30 * 40, 40)
    score += min((dividend_yield or 0.0) * 200 + (15 if consistent else 0), 35)
    score += min(capped(roe, 0.25) * 40 + capped(current_ratio, 2.5) * 4 + capped(net_margin, 0.15) * 33, 25)
    return min(score, 100.0)


class BarsiStrategy(BaseStrategy):
    """Dividend buy-and-hold below a ceiling price."""

    params_class = BarsiParams

    def __init__(
        self,
        dividend_provider: Optional[DividendHistoryProvider] = None,
        display_name: Optional[str] = None,
        overall_score_config: Optional[OverallScoreConfig] = None,
    ):
        """Initialize the strategy.

        Args:
            dividend_provider: Source of dividend histories. Without one the
                last dividend is used as the average.
            display_name: Optional display name
            overall_score_config: Aggregator configuration for the exclusion filter
        """
        super().__init__(display_name=display_name, overall_score_config=overall_score_config)
        self.dividend_provider = dividend_provider

    @property
    def name(self) -> str:
        return "barsi"

    @property
    def display_name(self) -> str:
        return self._display_name or "Barsi Method"

    def validate(self, company: CompanyData, params: Optional[BarsiParams] = None) -> bool:
        financials = company.financials
        return (
            financials.dividend_yield is not None
            and financials.dividend_yield > 0
            and financials.last_dividend is not None
            and financials.last_dividend > 0
            and company.current_price > 0
        )

    def lookup_average_dividend(self, ticker: str, params: BarsiParams) -> Optional[float]:
        """Average yearly dividend from the provider; None when unavailable.

        A provider failure is logged and treated as missing history.
        """
        if self.dividend_provider is None:
            return None
        try:
            payments = self.dividend_provider.get_dividend_history(ticker)
        except Exception as e:
            logger.warning(
                f"Dividend lookup for {ticker} failed with {type(e).__name__}: {e}. "
                "Falling back to the last dividend."
            )
            return None
        return calculate_average_dividend(payments, params.reference_year)

    async def lookup_average_dividends(
        self, companies: List[CompanyData], params: BarsiParams
    ) -> Dict[str, Optional[float]]:
        """Look up the average dividends of many companies concurrently.

        At most ``params.max_concurrent_lookups`` lookups run at the same time.

        Returns:
            Average dividend (or None) keyed by ticker
        """
        if self.dividend_provider is None or not companies:
            return {c.ticker: None for c in companies}

        loop = asyncio.get_running_loop()
        semaphore = asyncio.Semaphore(params.max_concurrent_lookups)

        with ThreadPoolExecutor(max_workers=params.max_concurrent_lookups) as executor:

            async def lookup(ticker: str) -> Optional[float]:
                async with semaphore:
                    return await loop.run_in_executor(executor, self.lookup_average_dividend, ticker, params)

            tickers = [c.ticker for c in companies]
            averages = await asyncio.gather(*(lookup(t) for t in tickers))

        logger.debug(f"Resolved dividend history for {sum(a is not None for a in averages)}/{len(tickers)} tickers")
        return dict(zip(tickers, averages))

    def analyze(self, company: CompanyData, params: Optional[BarsiParams] = None) -> StrategyAnalysis:
        params = self.coerce_params(params)
        return self.analyze_with_average(company, params, self.lookup_average_dividend(company.ticker, params))

    def analyze_with_average(
        self,
        company: CompanyData,
        params: BarsiParams,
        historical_average_dividend: Optional[float],
    ) -> StrategyAnalysis:
        """Analyze a company given the average dividend resolved from its history.

        Args:
            company: Company snapshot
            params: Strategy parameters
            historical_average_dividend: Average yearly dividend, None to fall
                back to the last dividend

        Returns:
            The analysis; fair value is the ceiling price and upside the
            discount from the ceiling
        """
        use_avg = params.use_7_year_averages
        financials = company.financials
        price = company.current_price

        average_dividend = historical_average_dividend
        if average_dividend is None or average_dividend <= 0:
            average_dividend = financials.last_dividend

        dividend_yield = get_indicator_value(company, Indicator.DIVIDEND_YIELD, use_avg)
        roe = get_indicator_value(company, Indicator.ROE, use_avg)
        net_debt_to_equity = get_indicator_value(company, Indicator.NET_DEBT_TO_EQUITY, use_avg)
        current_ratio = get_indicator_value(company, Indicator.CURRENT_RATIO, use_avg)
        net_margin = get_indicator_value(company, Indicator.NET_MARGIN, use_avg)
        payout = financials.payout
        market_cap = financials.market_cap

        ceiling_price = None
        discount = None
        if average_dividend is not None and average_dividend > 0:
            ceiling_price = calculate_ceiling_price(
                average_dividend, params.target_dividend_yield, params.max_price_to_pay_multiplier
            )
            discount = (ceiling_price - price) / ceiling_price * 100

        perennial = is_perennial_sector(company.sector)
        under_ceiling = ceiling_price is not None and price <= ceiling_price
        consistent = has_consistent_dividends(company, params.min_consecutive_dividends)
        profitable = roe is not None and roe >= params.min_roe
        low_debt = net_debt_to_equity is None or net_debt_to_equity <= params.max_debt_to_equity
        positive_margin = net_margin is None or net_margin > 0
        reasonable_payout = payout is None or MIN_PAYOUT < payout < MAX_PAYOUT
        minimum_size = market_cap is None or market_cap >= MIN_MARKET_CAP

        target_text = f"{params.target_dividend_yield * 100:.1f}%"
        criteria = [
            Criterion(
                label="Perennial sector" if params.focus_on_best else "Perennial sector (optional)",
                value=not params.focus_on_best or perennial,
                description=f"Sector: {company.sector or 'N/A'} ({'perennial' if perennial else 'not perennial'})",
            ),
            Criterion(
                label=f"Price <= ceiling (DY {target_text})",
                value=under_ceiling,
                description=(
                    f"Price: {price:.2f} | Ceiling: {format_ratio(ceiling_price)}"
                    + (f" ({discount:.1f}% discount)" if discount is not None else "")
                ),
            ),
            Criterion(
                label=f"Consistent dividends ({params.min_consecutive_dividends}y)",
                value=consistent,
                description=f"History: {'consistent' if consistent else 'inconsistent'} | DY: {format_percent(dividend_yield)}",
            ),
            Criterion(
                label=f"ROE >= {params.min_roe * 100:.0f}%",
                value=profitable,
                description=f"ROE: {format_percent(roe)}",
            ),
            Criterion(
                label=f"Net debt / equity <= {params.max_debt_to_equity * 100:.0f}%",
                value=low_debt,
                description=f"Net debt / equity: {format_percent(net_debt_to_equity)}",
            ),
            Criterion(label="Positive net margin", value=positive_margin, description=f"Net margin: {format_percent(net_margin)}"),
            Criterion(
                label="Sustainable payout (20-95%)",
                value=reasonable_payout,
                description=f"Payout: {format_percent(payout)}",
            ),
            Criterion(
                label="Market cap >= 1B",
                value=minimum_size,
                description=f"Market cap: {format_currency(market_cap)}",
            ),
        ]

        passed = sum(1 for c in criteria if c.value)
        essentials = [under_ceiling, consistent, profitable, low_debt]
        is_eligible = all(essentials) and passed >= MIN_CRITERIA
        score = passed / len(criteria) * 100

        barsi_score = calculate_barsi_score(discount, dividend_yield, consistent, roe, current_ratio, net_margin)

        if is_eligible:
            reasoning = (
                f"Approved by the Barsi method. Price {price:.2f} is {discount:.1f}% below the ceiling "
                f"{ceiling_price:.2f} for a {target_text} yield. Barsi score: {barsi_score:.1f}/100."
            )
        else:
            failed = []
            if not under_ceiling:
                failed.append("price above ceiling" if ceiling_price is not None else "no dividend to price")
            if not consistent:
                failed.append("inconsistent dividends")
            if not profitable:
                failed.append("insufficient ROE")
            if not low_debt:
                failed.append("high leverage")
            detail = f": {', '.join(failed)}" if failed else ""
            reasoning = f"Does not meet the Barsi method{detail}. Criteria: {passed}/{len(criteria)}."

        return StrategyAnalysis(
            is_eligible=is_eligible,
            score=score,
            fair_value=ceiling_price,
            upside=discount,
            reasoning=reasoning,
            criteria=criteria,
            key_metrics={
                "ceiling_price": ceiling_price,
                "discount_from_ceiling": discount,
                "barsi_score": round(barsi_score, 1),
                "dividend_yield": dividend_yield,
                "average_dividend": average_dividend,
                "roe": roe,
                "payout": payout,
                "net_debt_to_equity": net_debt_to_equity,
                "current_ratio": current_ratio,
                "net_margin": net_margin,
            },
        )

    async def rank_async(
        self, companies: List[CompanyData], params: Optional[BarsiParams] = None
    ) -> List[RankBuilderResult]:
        """Rank companies, looking up dividend histories concurrently."""
        params = self.coerce_params(params)
        universe = prepare_universe(companies, params)
        # Exclusion filter runs before any dividend lookup
        candidates = [
            c
            for c in universe
            if self.validate(c, params)
            and (not params.focus_on_best or is_perennial_sector(c.sector))
            and passes_quality_gate(c, params, self.overall_score_config)
        ]
        averages = await self.lookup_average_dividends(candidates, params)

        def score(company: CompanyData):
            analysis = self.analyze_with_average(company, params, averages.get(company.ticker))
            if not analysis.is_eligible:
                return None
            metrics = analysis.key_metrics
            rational = (
                f"Approved by the Barsi method. Perennial sector {company.sector}. Price {company.current_price:.2f} "
                f"is {analysis.upside:.1f}% below the ceiling {analysis.fair_value:.2f} "
                f"(target DY {params.target_dividend_yield * 100:.1f}%). "
                f"Average dividend: {metrics['average_dividend']:.2f}. ROE {format_percent(metrics['roe'])}. "
                f"Barsi score: {metrics['barsi_score']:.1f}/100."
            )
            return metrics["barsi_score"], build_ranking_result(
                company, rational, analysis.fair_value, analysis.upside, metrics
            )

        scored = [item for item in map(score, candidates) if item is not None]
        return finalize_ranking(scored, companies, params)

    def rank(self, companies: List[CompanyData], params: Optional[BarsiParams] = None) -> List[RankBuilderResult]:
        """Synchronous entry point.

        Inside a running event loop the async ranking runs on its own loop in
        a worker thread; async callers should await ``rank_async`` instead.
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(self.rank_async(companies, params))

        logger.debug("Event loop already running, ranking on a worker thread")
        with ThreadPoolExecutor(max_workers=1) as executor:
            return executor.submit(asyncio.run, self.rank_async(companies, params)).result()

    def explain_methodology(self, params: Optional[BarsiParams] = None) -> str:
        params = self.coerce_params(params)
        technical = " plus technical timing" if params.use_technical_analysis else ""
        return f"""# BARSI METHOD (Dividend Buy and Hold)

**Philosophy**: Build wealth from dividends paid by companies in perennial sectors.

## Perennial sectors ({"required" if params.focus_on_best else "optional"})

Banks, electric energy, sanitation, insurance, telecommunications, gas and utilities.

## Company quality

- ROE >= {params.min_roe * 100:.0f}%
- Net debt / equity <= {params.max_debt_to_equity * 100:.0f}%
- Positive net margin
- Dividends paid in at least 80% of the last {params.min_consecutive_dividends} years

## Ceiling price

Ceiling = average annual dividend (last {DIVIDEND_LOOKBACK_YEARS} years) / {params.target_dividend_yield * 100:.1f}% x {params.max_price_to_pay_multiplier}

Buy only when the current price is at or below the ceiling.

## Barsi score

- 40% discount from the ceiling (full at 30%)
- 35% dividend quality (yield and consistency)
- 25% financial health (ROE, liquidity, margin)

**Results**: up to {params.limit} companies ordered by Barsi score{technical}.
"""
