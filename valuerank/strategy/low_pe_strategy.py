"""Low price/earnings (value investing) strategy.

Looks for cheap companies that are also good businesses, filtering out value
traps with profitability, growth, liquidity and leverage checks. Depositary
receipts are held to relaxed multiples since foreign markets price earnings
higher.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from valuerank.analysis.normalization import get_indicator_value, is_bdr_ticker
from valuerank.config.strategy_params import LowPEParams
from valuerank.data.analysis_results import Criterion, RankBuilderResult, StrategyAnalysis, build_ranking_result
from valuerank.data.company_data import CompanyData, Indicator
from valuerank.strategy.base_strategy import BaseStrategy
from valuerank.strategy.ranking_pipeline import evaluate_universe, finalize_ranking, prepare_universe
from valuerank.strategy.strategy_utils import capped, format_currency, format_percent, format_ratio

logger = logging.getLogger(__name__)

MIN_PE = 3.0
MIN_CRITERIA = 6


@dataclass(frozen=True)
class LowPEThresholds:
    """Thresholds of the value-trap checks for one listing type."""

    max_pe: float
    min_roe: float
    min_net_margin: float
    max_net_debt_to_equity: float
    min_market_cap: float
    pe_weight: float


def thresholds_for(ticker: str, params: LowPEParams) -> LowPEThresholds:
    """Thresholds for a ticker; depositary receipts get the relaxed set."""
    if is_bdr_ticker(ticker):
        return LowPEThresholds(
            max_pe=max(params.max_pe, 25.0),
            min_roe=max(params.min_roe, 0.12),
            min_net_margin=0.05,
            max_net_debt_to_equity=2.5,
            min_market_cap=2_000_000_000,
            pe_weight=1.5,
        )
    return LowPEThresholds(
        max_pe=params.max_pe,
        min_roe=params.min_roe,
        min_net_margin=0.03,
        max_net_debt_to_equity=2.0,
        min_market_cap=500_000_000,
        pe_weight=2.0,
    )


def calculate_value_score(
    pe: Optional[float],
    roe: Optional[float],
    roa: Optional[float],
    net_margin: Optional[float],
    revenue_growth: Optional[float],
    roic: Optional[float],
    pe_weight: float = 2.0,
) -> float:
    """Blend a low multiple with quality indicators, capped at 100."""
    score = (
        max(0.0, 50 - (pe or 0.0) * pe_weight)
        + capped(roe, 0.30) * 50
        + capped(roa, 0.20) * 100
        + capped(net_margin, 0.20) * 80
        + max(0.0, (revenue_growth or 0.0) + 0.10) * 30
        + capped(roic, 0.25) * 40
    )
    return min(score, 100.0)


class LowPEStrategy(BaseStrategy):
    """Cheap earnings multiple with anti value-trap filters."""

    params_class = LowPEParams

    @property
    def name(self) -> str:
        return "low_pe"

    @property
    def display_name(self) -> str:
        return self._display_name or "Low P/E"

    def validate(self, company: CompanyData, params: Optional[LowPEParams] = None) -> bool:
        params = self.coerce_params(params)
        pe = company.financials.pe_ratio
        return pe is not None and MIN_PE < pe <= params.max_pe

    def analyze(self, company: CompanyData, params: Optional[LowPEParams] = None) -> StrategyAnalysis:
        params = self.coerce_params(params)
        use_avg = params.use_7_year_averages
        financials = company.financials
        limits = thresholds_for(company.ticker, params)
        bdr_tag = " (BDR)" if is_bdr_ticker(company.ticker) else ""

        pe = financials.pe_ratio
        roe = get_indicator_value(company, Indicator.ROE, use_avg)
        revenue_growth = financials.revenue_growth
        net_margin = get_indicator_value(company, Indicator.NET_MARGIN, use_avg)
        current_ratio = get_indicator_value(company, Indicator.CURRENT_RATIO, use_avg)
        roa = financials.roa
        net_debt_to_equity = get_indicator_value(company, Indicator.NET_DEBT_TO_EQUITY, use_avg)
        market_cap = financials.market_cap
        roic = get_indicator_value(company, Indicator.ROIC, use_avg)

        pe_in_range = pe is not None and MIN_PE < pe <= limits.max_pe

        criteria = [
            Criterion(
                label=f"P/E between 3 and {limits.max_pe:g}{bdr_tag}",
                value=pe_in_range,
                description=f"P/E: {format_ratio(pe, 1)}",
            ),
            Criterion(
                label=f"ROE >= {limits.min_roe * 100:.0f}%{bdr_tag}",
                value=roe is None or roe >= limits.min_roe,
                description=f"ROE: {format_percent(roe)}",
            ),
            Criterion(
                label="Revenue growth >= -10%",
                value=revenue_growth is None or revenue_growth >= -0.10,
                description=f"Revenue growth: {format_percent(revenue_growth)}",
            ),
            Criterion(
                label=f"Net margin >= {limits.min_net_margin * 100:.0f}%{bdr_tag}",
                value=net_margin is None or net_margin >= limits.min_net_margin,
                description=f"Net margin: {format_percent(net_margin)}",
            ),
            Criterion(
                label="Current ratio >= 1.0",
                value=current_ratio is None or current_ratio >= 1.0,
                description=f"Current ratio: {format_ratio(current_ratio)}",
            ),
            Criterion(label="ROA >= 5%", value=roa is None or roa >= 0.05, description=f"ROA: {format_percent(roa)}"),
            Criterion(
                label=f"Net debt / equity <= {limits.max_net_debt_to_equity * 100:.0f}%{bdr_tag}",
                value=net_debt_to_equity is None or net_debt_to_equity <= limits.max_net_debt_to_equity,
                description=f"Net debt / equity: {format_percent(net_debt_to_equity)}",
            ),
            Criterion(
                label=f"Market cap >= {format_currency(limits.min_market_cap)}{bdr_tag}",
                value=market_cap is None or market_cap >= limits.min_market_cap,
                description=f"Market cap: {format_currency(market_cap)}",
            ),
        ]

        passed = sum(1 for c in criteria if c.value)
        is_eligible = passed >= MIN_CRITERIA and pe_in_range
        score = passed / len(criteria) * 100

        value_score = calculate_value_score(pe, roe, roa, net_margin, revenue_growth, roic, limits.pe_weight)

        if is_eligible:
            reasoning = f"Approved as a value investment with P/E {pe:.1f}. Value score: {value_score:.1f}/100."
        else:
            reasoning = f"Possible value trap ({passed}/{len(criteria)} criteria passed)."

        return StrategyAnalysis(
            is_eligible=is_eligible,
            score=score,
            reasoning=reasoning,
            criteria=criteria,
            key_metrics={
                "pe_ratio": pe,
                "value_score": round(value_score, 1),
                "roe": roe,
                "roa": roa,
                "roic": roic,
                "dividend_yield": financials.dividend_yield,
                "current_ratio": current_ratio,
                "net_margin": net_margin,
                "revenue_growth": revenue_growth,
            },
        )

    def rank(self, companies: List[CompanyData], params: Optional[LowPEParams] = None) -> List[RankBuilderResult]:
        params = self.coerce_params(params)
        universe = prepare_universe(companies, params, params.asset_type_filter, drop_secondary_classes=True)

        def score(company: CompanyData):
            analysis = self.analyze(company, params)
            if not analysis.is_eligible:
                return None
            metrics = analysis.key_metrics
            roe = metrics["roe"]
            if roe is None or roe < thresholds_for(company.ticker, params).min_roe:
                return None
            rational = (
                f"Approved by the value investing model with P/E {metrics['pe_ratio']:.1f}. "
                f"Quality: ROE {format_percent(roe, 2)}, ROA {format_percent(metrics['roa'])}, "
                f"net margin {format_percent(metrics['net_margin'], 2)}. "
                f"Revenue growth: {format_percent(metrics['revenue_growth'], 2)}. "
                f"Value score: {metrics['value_score']:.1f}/100."
            )
            return metrics["value_score"], build_ranking_result(company, rational, key_metrics=metrics)

        scored = evaluate_universe(
            universe, params, lambda c: self.validate(c, params), score, self.overall_score_config
        )
        return finalize_ranking(scored, companies, params)

    def explain_methodology(self, params: Optional[LowPEParams] = None) -> str:
        params = self.coerce_params(params)
        technical = " plus technical timing (oversold first)" if params.use_technical_analysis else ""
        return f"""# VALUE INVESTING MODEL

**Philosophy**: Classic value investing, cheap earnings (low P/E) but proven quality.

**Strategy**: P/E <= {params.max_pe:g} and ROE >= {params.min_roe * 100:.0f}% with strict quality filters.

## Anti value-trap filters (6 of 8 required)

- P/E > 3 (avoids suspiciously low prices)
- ROA >= 5%
- Revenue growth >= -10%
- Net margin >= 3%
- Current ratio >= 1.0
- Net debt / equity <= 200%
- Market cap >= 500M

Depositary receipts accept P/E up to 25 and require ROE >= 12%, net margin >= 5%,
net debt / equity <= 250% and market cap >= 2B.

**Results**: up to {params.limit} companies ordered by value score{technical}.
"""
