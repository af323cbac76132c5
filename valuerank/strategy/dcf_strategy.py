"""Discounted-cash-flow strategy.

Projects free cash flow over an explicit horizon with a growth rate that
decays towards the perpetual rate, discounts it at the configured rate and
adds a discounted Gordon terminal value. The enterprise value divided by the
share count is the fair value per share.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from valuerank.analysis.numeric import calculate_upside
from valuerank.config.strategy_params import DCFParams
from valuerank.data.analysis_results import Criterion, RankBuilderResult, StrategyAnalysis, build_ranking_result
from valuerank.data.company_data import CompanyData
from valuerank.strategy.base_strategy import BaseStrategy
from valuerank.strategy.ranking_pipeline import evaluate_universe, finalize_ranking, prepare_universe
from valuerank.strategy.strategy_utils import capped, format_currency, format_percent, format_ratio

logger = logging.getLogger(__name__)

EBITDA_CASH_CONVERSION = 0.6
GROWTH_PREMIUM = 0.05
GROWTH_DECAY = 0.5

MIN_CRITERIA = 6
MIN_MARKET_CAP = 2_000_000_000


@dataclass(frozen=True)
class DCFValuation:
    """Intermediate values of a DCF valuation."""

    base_cash_flow: float
    present_value_cash_flows: float
    present_value_terminal: float
    enterprise_value: float
    fair_value: float


def calculate_dcf_valuation(
    ebitda: Optional[float],
    free_cash_flow: Optional[float],
    shares_outstanding: Optional[float],
    growth_rate: float = 0.025,
    discount_rate: float = 0.10,
    years: int = 5,
) -> Optional[DCFValuation]:
    """Value a company by discounted cash flow.

    The base flow is reported free cash flow when positive, otherwise
    ``EBITDA * 0.6``. Year ``t`` grows at ``g + 0.05 * exp(-0.5 * t)``.

    Args:
        ebitda: Latest EBITDA
        free_cash_flow: Latest free cash flow
        shares_outstanding: Share count
        growth_rate: Perpetual growth rate
        discount_rate: Discount rate, must exceed ``growth_rate``
        years: Explicit projection horizon

    Returns:
        DCFValuation, or None when EBITDA, shares or the base flow are not positive
    """
    if ebitda is None or ebitda <= 0 or shares_outstanding is None or shares_outstanding <= 0:
        return None
    if discount_rate <= growth_rate:
        return None

    if free_cash_flow is not None and free_cash_flow > 0:
        base = free_cash_flow
    else:
        base = ebitda * EBITDA_CASH_CONVERSION
    if base <= 0:
        return None

    t = np.arange(1, years + 1)
    yearly_growth = growth_rate + GROWTH_PREMIUM * np.exp(-GROWTH_DECAY * t)
    projected = base * np.cumprod(1 + yearly_growth)
    discount_factors = (1 + discount_rate) ** t
    present_value_flows = float(np.sum(projected / discount_factors))

    terminal_value = projected[-1] * (1 + growth_rate) / (discount_rate - growth_rate)
    present_value_terminal = float(terminal_value / (1 + discount_rate) ** years)

    enterprise_value = present_value_flows + present_value_terminal
    return DCFValuation(
        base_cash_flow=base,
        present_value_cash_flows=present_value_flows,
        present_value_terminal=present_value_terminal,
        enterprise_value=enterprise_value,
        fair_value=enterprise_value / shares_outstanding,
    )


class DCFStrategy(BaseStrategy):
    """Cash-generation valuation with a decaying growth projection."""

    params_class = DCFParams

    @property
    def name(self) -> str:
        return "dcf"

    @property
    def display_name(self) -> str:
        return self._display_name or "Discounted Cash Flow"

    def validate(self, company: CompanyData, params: Optional[DCFParams] = None) -> bool:
        ebitda = company.financials.ebitda
        shares = company.financials.shares_outstanding
        return ebitda is not None and ebitda > 0 and shares is not None and shares > 0

    def analyze(self, company: CompanyData, params: Optional[DCFParams] = None) -> StrategyAnalysis:
        params = self.coerce_params(params)
        financials = company.financials

        ebitda = financials.ebitda
        operating_cash_flow = financials.operating_cash_flow
        roe = financials.roe
        ebitda_margin = financials.ebitda_margin
        revenue_growth = financials.revenue_growth
        current_ratio = financials.current_ratio
        market_cap = financials.market_cap

        valuation = calculate_dcf_valuation(
            ebitda,
            financials.free_cash_flow,
            financials.shares_outstanding,
            params.growth_rate,
            params.discount_rate,
            params.years_projection,
        )
        fair_value = valuation.fair_value if valuation else None
        upside = calculate_upside(fair_value, company.current_price)
        min_upside = params.min_margin_of_safety * 100

        criteria = [
            Criterion(
                label=f"Upside >= {min_upside:.0f}%",
                value=upside is not None and upside >= min_upside,
                description=f"Upside: {format_ratio(upside, 1)}%",
            ),
            Criterion(label="EBITDA > 0", value=ebitda is not None and ebitda > 0, description=f"EBITDA: {format_currency(ebitda)}"),
            Criterion(
                label="Operating cash flow > 0",
                value=operating_cash_flow is None or operating_cash_flow > 0,
                description=f"Operating cash flow: {format_currency(operating_cash_flow)}",
            ),
            Criterion(label="ROE >= 12%", value=roe is None or roe >= 0.12, description=f"ROE: {format_percent(roe)}"),
            Criterion(
                label="EBITDA margin >= 15%",
                value=ebitda_margin is None or ebitda_margin >= 0.15,
                description=f"EBITDA margin: {format_percent(ebitda_margin)}",
            ),
            Criterion(
                label="Revenue growth >= -10%",
                value=revenue_growth is None or revenue_growth >= -0.10,
                description=f"Revenue growth: {format_percent(revenue_growth)}",
            ),
            Criterion(
                label="Current ratio >= 1.2",
                value=current_ratio is None or current_ratio >= 1.2,
                description=f"Current ratio: {format_ratio(current_ratio)}",
            ),
            Criterion(
                label="Market cap >= 2B",
                value=market_cap is None or market_cap >= MIN_MARKET_CAP,
                description=f"Market cap: {format_currency(market_cap)}",
            ),
        ]

        passed = sum(1 for c in criteria if c.value)
        is_eligible = passed >= MIN_CRITERIA and fair_value is not None and upside is not None and upside >= min_upside
        score = passed / len(criteria) * 100

        quality_score = min(
            100.0,
            capped(roe, 0.4) * 100
            + capped(ebitda_margin, 0.5) * 80
            + max(0.0, (revenue_growth or 0.0) + 0.2) * 50
            + capped(current_ratio, 3) * 5
            + min((upside or 0.0) / 100, 1) * 5,
        )

        if is_eligible:
            outcome = f"Upside of {upside:.1f}% with a robust margin of safety."
        elif fair_value is None:
            outcome = "Fair value could not be computed (insufficient cash flow data)."
        elif upside is None or upside < min_upside:
            outcome = f"Insufficient upside ({format_ratio(upside, 1)}%), minimum {min_upside:.0f}%."
        else:
            outcome = f"Only {passed} criteria met."
        reasoning = (
            f"DCF fair value {format_currency(fair_value)} vs price {company.current_price:.2f}. "
            f"{passed} of {len(criteria)} criteria met (DCF score {quality_score:.1f}). {outcome}"
        )

        return StrategyAnalysis(
            is_eligible=is_eligible,
            score=score,
            fair_value=fair_value,
            upside=upside,
            reasoning=reasoning,
            criteria=criteria,
            key_metrics={
                "fair_value": fair_value,
                "dcf_quality_score": round(quality_score, 1),
                "ebitda": ebitda,
                "base_cash_flow": valuation.base_cash_flow if valuation else None,
                "enterprise_value": valuation.enterprise_value if valuation else None,
                "present_value_cash_flows": valuation.present_value_cash_flows if valuation else None,
                "present_value_terminal": valuation.present_value_terminal if valuation else None,
                "roe": roe,
                "ebitda_margin": ebitda_margin,
            },
        )

    def rank(self, companies: List[CompanyData], params: Optional[DCFParams] = None) -> List[RankBuilderResult]:
        params = self.coerce_params(params)
        universe = prepare_universe(companies, params)

        def score(company: CompanyData):
            analysis = self.analyze(company, params)
            if not analysis.is_eligible:
                return None
            metrics = analysis.key_metrics
            terminal_share = metrics["present_value_terminal"] / metrics["enterprise_value"] * 100
            rational = (
                f"Approved by the DCF model with {analysis.upside:.1f}% margin of safety. "
                f"Fair value {analysis.fair_value:.2f} vs price {company.current_price:.2f}. "
                f"Base flow {format_currency(metrics['base_cash_flow'])}, growth {params.growth_rate * 100:.1f}%, "
                f"discount rate {params.discount_rate * 100:.1f}%. Terminal value is {terminal_share:.1f}% of the "
                f"enterprise value. DCF score: {metrics['dcf_quality_score']:.1f}/100."
            )
            key_metrics = {**metrics, "terminal_value_share": round(terminal_share, 1)}
            return analysis.upside, build_ranking_result(
                company, rational, analysis.fair_value, analysis.upside, key_metrics
            )

        scored = evaluate_universe(
            universe, params, lambda c: self.validate(c, params), score, self.overall_score_config
        )
        return finalize_ranking(scored, companies, params)

    def explain_methodology(self, params: Optional[DCFParams] = None) -> str:
        params = self.coerce_params(params)
        return f"""# DISCOUNTED CASH FLOW MODEL

**Philosophy**: The intrinsic value of a company is the present value of the cash it will generate.

## Method

1. Base flow: free cash flow when positive, otherwise EBITDA x {EBITDA_CASH_CONVERSION}
2. Projection over {params.years_projection} years with decaying growth g(t) = {params.growth_rate * 100:.1f}% + 5% x e^(-0.5t)
3. Discount at {params.discount_rate * 100:.1f}% per year
4. Terminal value by perpetuity at {params.growth_rate * 100:.1f}% growth, discounted to today
5. Fair value = enterprise value / shares outstanding

## Criteria (6 of 8 required)

- Upside >= {params.min_margin_of_safety * 100:.0f}%
- EBITDA > 0 and operating cash flow > 0
- ROE >= 12% and EBITDA margin >= 15%
- Revenue growth >= -10%
- Current ratio >= 1.2
- Market cap >= 2B

**Results**: up to {params.limit} companies ordered by upside.
"""
