"""Graham fair-value strategy.

Fair value is the Graham number, sqrt(22.5 * EPS * BVPS). A company is
eligible when the price leaves at least 10% upside and it passes seven of
nine quality criteria. Rankings are ordered by a composite quality score
that weights the margin of safety at 60% and fundamentals at 40%.
"""

import logging
from typing import List, Optional

from valuerank.analysis.normalization import get_indicator_value
from valuerank.analysis.numeric import (
    calculate_graham_fair_value,
    calculate_upside,
    validate_annual_growth,
    validate_cagr_5y,
)
from valuerank.config.strategy_params import GrahamParams
from valuerank.data.analysis_results import Criterion, RankBuilderResult, StrategyAnalysis, build_ranking_result
from valuerank.data.company_data import CompanyData, Indicator
from valuerank.strategy.base_strategy import BaseStrategy
from valuerank.strategy.ranking_pipeline import evaluate_universe, finalize_ranking, prepare_universe
from valuerank.strategy.strategy_utils import format_currency, format_percent, format_ratio

logger = logging.getLogger(__name__)

MIN_UPSIDE = 10.0
MIN_CRITERIA = 7
MIN_MARKET_CAP = 2_000_000_000

MARGIN_OF_SAFETY_POINTS = 60.0
MARGIN_OF_SAFETY_CAP = 50.0


def calculate_graham_quality_score(
    upside: Optional[float],
    roe: Optional[float],
    current_ratio: Optional[float],
    net_margin: Optional[float],
    earnings_cagr: Optional[float],
) -> float:
    """Composite quality score used to order Graham rankings.

    Margin of safety contributes up to 60 points (full at 50% upside).
    Fundamentals contribute up to 40 points: ROE (12, capped at 25%),
    current ratio (10, capped at 2.5), net margin (10, capped at 15%) and a
    positive 5-year earnings CAGR (8, capped at 20%).
    """
    margin_points = min(max(upside or 0.0, 0.0) / MARGIN_OF_SAFETY_CAP, 1.0) * MARGIN_OF_SAFETY_POINTS

    fundamentals = 0.0
    fundamentals += max(0.0, min(roe or 0.0, 0.25)) / 0.25 * 12
    fundamentals += max(0.0, min(current_ratio or 0.0, 2.5)) / 2.5 * 10
    fundamentals += max(0.0, min(net_margin or 0.0, 0.15)) / 0.15 * 10
    if earnings_cagr is not None and earnings_cagr > 0:
        fundamentals += min(earnings_cagr, 0.20) / 0.20 * 8

    return min(100.0, margin_points + fundamentals)


class GrahamStrategy(BaseStrategy):
    """Benjamin Graham's fair value with a quality screen."""

    params_class = GrahamParams

    @property
    def name(self) -> str:
        return "graham"

    @property
    def display_name(self) -> str:
        return self._display_name or "Graham"

    def validate(self, company: CompanyData, params: Optional[GrahamParams] = None) -> bool:
        eps = company.financials.eps
        book_value = company.financials.book_value_per_share
        return eps is not None and eps > 0 and book_value is not None and book_value > 0

    def analyze(self, company: CompanyData, params: Optional[GrahamParams] = None) -> StrategyAnalysis:
        params = self.coerce_params(params)
        use_avg = params.use_7_year_averages
        financials = company.financials

        eps = financials.eps
        book_value = financials.book_value_per_share
        roe = get_indicator_value(company, Indicator.ROE, use_avg)
        current_ratio = get_indicator_value(company, Indicator.CURRENT_RATIO, use_avg)
        net_margin = get_indicator_value(company, Indicator.NET_MARGIN, use_avg)
        net_debt_to_equity = get_indicator_value(company, Indicator.NET_DEBT_TO_EQUITY, use_avg)
        earnings_growth = validate_annual_growth(financials.earnings_growth)
        earnings_cagr = validate_cagr_5y(financials.earnings_cagr_5y)
        market_cap = financials.market_cap

        fair_value = calculate_graham_fair_value(eps, book_value)
        upside = calculate_upside(fair_value, company.current_price)

        growth_ok = (earnings_growth is None or earnings_growth >= -0.15) or (
            earnings_cagr is not None and earnings_cagr > 0
        )

        criteria = [
            Criterion(
                label="Upside >= 10%",
                value=upside is not None and upside >= MIN_UPSIDE,
                description=f"Upside: {format_ratio(upside, 1)}%",
            ),
            Criterion(label="Positive EPS", value=eps is not None and eps > 0, description=f"EPS: {format_ratio(eps)}"),
            Criterion(
                label="Positive book value per share",
                value=book_value is not None and book_value > 0,
                description=f"BVPS: {format_ratio(book_value)}",
            ),
            Criterion(
                label="ROE >= 10%",
                value=roe is None or roe >= 0.10,
                description=f"ROE: {format_percent(roe)}",
            ),
            Criterion(
                label="Current ratio >= 1.0",
                value=current_ratio is None or current_ratio >= 1.0,
                description=f"Current ratio: {format_ratio(current_ratio)}",
            ),
            Criterion(
                label="Positive net margin",
                value=net_margin is None or net_margin > 0,
                description=f"Net margin: {format_percent(net_margin)}",
            ),
            Criterion(
                label="Net debt / equity <= 150%",
                value=net_debt_to_equity is None or net_debt_to_equity <= 1.5,
                description=f"Net debt / equity: {format_percent(net_debt_to_equity)}",
            ),
            Criterion(
                label="Earnings growth >= -15% or positive 5-year CAGR",
                value=growth_ok,
                description=(
                    f"Growth: {format_percent(earnings_growth)}, 5-year CAGR: {format_percent(earnings_cagr)}"
                ),
            ),
            Criterion(
                label="Market cap >= 2B",
                value=market_cap is None or market_cap >= MIN_MARKET_CAP,
                description=f"Market cap: {format_currency(market_cap)}",
            ),
        ]

        passed = sum(1 for c in criteria if c.value)
        has_minimum_criteria = passed >= MIN_CRITERIA
        has_minimum_upside = upside is not None and upside >= MIN_UPSIDE
        is_eligible = has_minimum_criteria and fair_value is not None and has_minimum_upside
        score = passed / len(criteria) * 100

        quality_score = calculate_graham_quality_score(upside, roe, current_ratio, net_margin, earnings_cagr)

        if is_eligible:
            reasoning = (
                f"Approved by the Graham model with {upside:.1f}% margin of safety. "
                f"Quality score: {quality_score:.1f}/100."
            )
        else:
            reasons = []
            if not has_minimum_criteria:
                reasons.append(f"insufficient fundamental criteria ({passed}/{len(criteria)} passed)")
            if fair_value is None:
                reasons.append("fair value could not be computed")
            if upside is not None and not has_minimum_upside:
                reasons.append(f"insufficient upside ({upside:.1f}%, minimum {MIN_UPSIDE:.0f}%)")
            elif upside is None:
                reasons.append("upside could not be computed")
            reasoning = f"Does not meet the Graham criteria: {', '.join(reasons)}."

        return StrategyAnalysis(
            is_eligible=is_eligible,
            score=score,
            fair_value=fair_value,
            upside=upside,
            reasoning=reasoning,
            criteria=criteria,
            key_metrics={
                "eps": eps,
                "book_value_per_share": book_value,
                "quality_score": round(quality_score, 1),
                "pe_ratio": financials.pe_ratio,
                "pb_ratio": financials.pb_ratio,
                "roe": roe,
            },
        )

    def rank(self, companies: List[CompanyData], params: Optional[GrahamParams] = None) -> List[RankBuilderResult]:
        params = self.coerce_params(params)
        universe = prepare_universe(companies, params)
        min_upside = params.margin_of_safety * 100

        def score(company: CompanyData):
            analysis = self.analyze(company, params)
            if not analysis.is_eligible or analysis.upside < min_upside:
                return None
            quality_score = analysis.key_metrics["quality_score"]
            rational = (
                f"Approved by the Graham quality model with {analysis.upside:.1f}% margin of safety. "
                f"Fair value {analysis.fair_value:.2f} vs price {company.current_price:.2f}. "
                f"Quality score: {quality_score:.1f}/100."
            )
            result = build_ranking_result(
                company, rational, analysis.fair_value, analysis.upside, analysis.key_metrics
            )
            return quality_score, result

        scored = evaluate_universe(
            universe, params, lambda c: self.validate(c, params), score, self.overall_score_config
        )
        return finalize_ranking(scored, companies, params)

    def explain_methodology(self, params: Optional[GrahamParams] = None) -> str:
        params = self.coerce_params(params)
        return f"""# GRAHAM MODEL

**Philosophy**: Benjamin Graham's classic formula to find cheap shares of solid companies.

**Formula**: Fair value = sqrt(22.5 x EPS x BVPS), requiring a margin of safety of {params.margin_of_safety * 100:.0f}%.

## Quality criteria (7 of 9 required)

- Upside >= 10%
- Positive EPS and book value per share
- ROE >= 10%
- Current ratio >= 1.0
- Positive net margin
- Net debt / equity <= 150%
- Earnings growth >= -15% or positive 5-year CAGR
- Market cap >= 2B

Missing optional indicators pass (benefit of the doubt).

## Ranking

Quality score = 60% margin of safety (full at 50% upside) + 40% fundamentals
(ROE, liquidity, net margin and positive 5-year CAGR, each capped).

**Results**: up to {params.limit} companies ordered by quality score.
"""
