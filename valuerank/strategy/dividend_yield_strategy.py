"""Dividend-yield strategy with dividend-trap filters.

A high yield alone is not enough: it can come from a collapsing price or an
unsustainable payout. Companies must also show profitability, liquidity, a
sane multiple and low leverage. Rankings are ordered by a sustainability
score in which the yield matters but does not dominate.
"""

import logging
from typing import List, Optional

from valuerank.config.strategy_params import DividendYieldParams
from valuerank.data.analysis_results import Criterion, RankBuilderResult, StrategyAnalysis, build_ranking_result
from valuerank.data.company_data import CompanyData
from valuerank.strategy.base_strategy import BaseStrategy
from valuerank.strategy.ranking_pipeline import evaluate_universe, finalize_ranking, prepare_universe
from valuerank.strategy.strategy_utils import capped, format_currency, format_percent, format_ratio

logger = logging.getLogger(__name__)

MIN_CRITERIA = 5
MIN_MARKET_CAP = 1_000_000_000


def calculate_sustainability_score(
    dividend_yield: Optional[float],
    roe: Optional[float],
    current_ratio: Optional[float],
    net_debt_to_equity: Optional[float],
    net_margin: Optional[float],
    roic: Optional[float],
) -> float:
    """Score how sustainable a dividend is, capped at 100."""
    score = (
        capped(roe, 0.30) * 25
        + capped(current_ratio, 3) * 15
        + max(0.0, 50 - (net_debt_to_equity or 0.0) * 50)
        + capped(net_margin, 0.20) * 75
        + capped(roic, 0.25) * 20
        + (dividend_yield or 0.0) * 50
    )
    return min(score, 100.0)


def passes_strict_requirements(company: CompanyData, min_yield: float) -> bool:
    """Ranking requirements; unlike the analysis criteria, missing values fail."""
    f = company.financials
    return (
        f.dividend_yield is not None
        and f.dividend_yield >= min_yield
        and f.roe is not None
        and f.roe >= 0.10
        and f.current_ratio is not None
        and f.current_ratio >= 1.2
        and (f.net_debt_to_equity is None or f.net_debt_to_equity <= 1.0)
        and f.pe_ratio is not None
        and 5 <= f.pe_ratio <= 25
        and f.net_margin is not None
        and f.net_margin >= 0.05
        and f.market_cap is not None
        and f.market_cap >= MIN_MARKET_CAP
    )


class DividendYieldStrategy(BaseStrategy):
    """High dividend yield backed by a sustainable business."""

    params_class = DividendYieldParams

    @property
    def name(self) -> str:
        return "dividend_yield"

    @property
    def display_name(self) -> str:
        return self._display_name or "Dividend Yield"

    def validate(self, company: CompanyData, params: Optional[DividendYieldParams] = None) -> bool:
        params = self.coerce_params(params)
        dividend_yield = company.financials.dividend_yield
        return dividend_yield is not None and dividend_yield > 0 and dividend_yield >= params.min_yield

    def analyze(self, company: CompanyData, params: Optional[DividendYieldParams] = None) -> StrategyAnalysis:
        params = self.coerce_params(params)
        f = company.financials

        dividend_yield = f.dividend_yield
        roe = f.roe
        current_ratio = f.current_ratio
        net_debt_to_equity = f.net_debt_to_equity
        pe = f.pe_ratio
        net_margin = f.net_margin
        market_cap = f.market_cap
        roic = f.roic

        has_min_yield = dividend_yield is not None and dividend_yield >= params.min_yield

        criteria = [
            Criterion(
                label=f"Dividend yield >= {params.min_yield * 100:.0f}%",
                value=has_min_yield,
                description=f"DY: {format_percent(dividend_yield)}",
            ),
            Criterion(label="ROE >= 10%", value=roe is None or roe >= 0.10, description=f"ROE: {format_percent(roe)}"),
            Criterion(
                label="Current ratio >= 1.2",
                value=current_ratio is None or current_ratio >= 1.2,
                description=f"Current ratio: {format_ratio(current_ratio)}",
            ),
            Criterion(
                label="Net debt / equity <= 100%",
                value=net_debt_to_equity is None or net_debt_to_equity <= 1.0,
                description=f"Net debt / equity: {format_percent(net_debt_to_equity)}",
            ),
            Criterion(label="P/E between 4 and 25", value=pe is None or 4 <= pe <= 25, description=f"P/E: {format_ratio(pe, 1)}"),
            Criterion(
                label="Net margin >= 5%",
                value=net_margin is None or net_margin >= 0.05,
                description=f"Net margin: {format_percent(net_margin)}",
            ),
            Criterion(
                label="Market cap >= 1B",
                value=market_cap is None or market_cap >= MIN_MARKET_CAP,
                description=f"Market cap: {format_currency(market_cap)}",
            ),
        ]

        passed = sum(1 for c in criteria if c.value)
        is_eligible = passed >= MIN_CRITERIA and has_min_yield
        score = passed / len(criteria) * 100

        sustainability = calculate_sustainability_score(
            dividend_yield, roe, current_ratio, net_debt_to_equity, net_margin, roic
        )

        if is_eligible:
            reasoning = (
                f"Approved by the anti dividend trap model with DY {format_percent(dividend_yield)}. "
                f"Sustainability score: {sustainability:.1f}/100."
            )
        else:
            reasoning = f"Possible dividend trap ({passed}/{len(criteria)} criteria passed)."

        return StrategyAnalysis(
            is_eligible=is_eligible,
            score=score,
            reasoning=reasoning,
            criteria=criteria,
            key_metrics={
                "dividend_yield": dividend_yield,
                "sustainability_score": round(sustainability, 1),
                "roe": roe,
                "roic": roic,
                "pe_ratio": pe,
                "current_ratio": current_ratio,
                "net_debt_to_equity": net_debt_to_equity,
                "net_margin": net_margin,
                "market_cap": market_cap,
            },
        )

    def rank(
        self, companies: List[CompanyData], params: Optional[DividendYieldParams] = None
    ) -> List[RankBuilderResult]:
        params = self.coerce_params(params)
        universe = prepare_universe(companies, params)

        def score(company: CompanyData):
            if not passes_strict_requirements(company, params.min_yield):
                return None
            analysis = self.analyze(company, params)
            metrics = analysis.key_metrics
            rational = (
                f"Approved by the anti dividend trap model with DY {format_percent(metrics['dividend_yield'])}. "
                f"Sustainable business: ROE {format_percent(metrics['roe'])}, current ratio "
                f"{format_ratio(metrics['current_ratio'])}, net margin {format_percent(metrics['net_margin'])}. "
                f"Sustainability score: {metrics['sustainability_score']:.1f}/100."
            )
            return metrics["sustainability_score"], build_ranking_result(company, rational, key_metrics=metrics)

        scored = evaluate_universe(
            universe, params, lambda c: self.validate(c, params), score, self.overall_score_config
        )
        return finalize_ranking(scored, companies, params)

    def explain_methodology(self, params: Optional[DividendYieldParams] = None) -> str:
        params = self.coerce_params(params)
        return f"""# ANTI DIVIDEND TRAP MODEL

**Philosophy**: Sustainable passive income, avoiding companies that pay high dividends while in decline.

**Strategy**: Dividend yield >= {params.min_yield * 100:.1f}% with strict sustainability filters.

## Anti-trap filters

- ROE >= 10%
- Current ratio >= 1.2
- P/E between 4 and 25 (5 and 25 in rankings)
- Net margin >= 5%
- Net debt / equity <= 100%
- Market cap >= 1B

Rankings require every filter to be backed by reported data.

**Results**: up to {params.limit} companies ordered by sustainability score.
"""
