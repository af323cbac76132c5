"""Dividend-discount (Gordon growth) strategy.

Fair value is D / (r - g) where D is the best available estimate of the next
twelve months of dividends. Discount and growth rates can be calibrated per
sector; the calibrated pair is always clamped to a plausible band and kept
convergent (r > g).
"""

import logging
from typing import Dict, List, Optional, Tuple

from valuerank.analysis.numeric import calculate_upside, validate_annual_growth
from valuerank.config.strategy_params import GordonParams
from valuerank.data.analysis_results import Criterion, RankBuilderResult, StrategyAnalysis, build_ranking_result
from valuerank.data.company_data import CompanyData
from valuerank.strategy.base_strategy import BaseStrategy
from valuerank.strategy.ranking_pipeline import evaluate_universe, finalize_ranking, prepare_universe
from valuerank.strategy.strategy_utils import format_percent, format_ratio

logger = logging.getLogger(__name__)

# sector -> (discount rate adjustment, growth rate adjustment)
SECTORAL_PARAMETERS: Dict[str, Tuple[float, float]] = {
    "Energia Elétrica": (-0.02, 0.02),
    "Saneamento": (-0.02, 0.02),
    "Água e Saneamento": (-0.02, 0.02),
    "Petróleo e Gás": (-0.01, 0.015),
    "Bancos": (0.00, 0.03),
    "Seguros": (0.00, 0.025),
    "Serviços Financeiros": (0.00, 0.025),
    "Alimentos e Bebidas": (0.00, 0.035),
    "Comércio": (0.01, 0.03),
    "Consumo": (0.01, 0.03),
    "Siderurgia e Metalurgia": (0.015, 0.02),
    "Papel e Celulose": (0.01, 0.025),
    "Mineração": (0.02, 0.02),
    "Tecnologia": (0.03, 0.06),
    "Telecomunicações": (0.015, 0.02),
    "Saúde": (0.02, 0.04),
}
DEFAULT_SECTORAL_PARAMETERS = (0.00, 0.03)

MIN_DISCOUNT_RATE = 0.06
MAX_DISCOUNT_RATE = 0.25
MIN_GROWTH_RATE = 0.0
MAX_GROWTH_RATE = 0.12
MIN_SPREAD = 0.01

MIN_UPSIDE = 15.0
MIN_CRITERIA = 6


def adjust_rates(sector: Optional[str], params: GordonParams) -> Tuple[float, float]:
    """Calibrate the discount and growth rates for a sector.

    Args:
        sector: Company sector; unknown sectors use the default adjustment
        params: Strategy parameters holding the base rates

    Returns:
        (discount rate, growth rate)
    """
    if not params.use_sectoral_adjustment:
        return params.discount_rate, params.dividend_growth_rate

    rate_adjustment, growth_adjustment = SECTORAL_PARAMETERS.get(sector or "", DEFAULT_SECTORAL_PARAMETERS)
    discount_rate = params.discount_rate + rate_adjustment
    growth_rate = min(params.dividend_growth_rate + growth_adjustment, discount_rate - MIN_SPREAD)

    if params.sectoral_wacc_adjustment is not None:
        discount_rate += params.sectoral_wacc_adjustment

    if discount_rate <= growth_rate:
        growth_rate = discount_rate - MIN_SPREAD

    discount_rate = max(MIN_DISCOUNT_RATE, min(MAX_DISCOUNT_RATE, discount_rate))
    growth_rate = max(MIN_GROWTH_RATE, min(MAX_GROWTH_RATE, growth_rate))
    return discount_rate, growth_rate


def estimate_dividend(company: CompanyData) -> Optional[float]:
    """Next-twelve-months dividend per share from the best available source."""
    financials = company.financials
    price = company.current_price
    if financials.last_dividend is not None and financials.last_dividend > 0:
        return financials.last_dividend
    if financials.dividend_yield_12m is not None and financials.dividend_yield_12m > 0 and price > 0:
        return financials.dividend_yield_12m * price
    if financials.dividend_yield is not None and financials.dividend_yield > 0 and price > 0:
        return financials.dividend_yield * price
    return None


def calculate_gordon_fair_value(dividend: Optional[float], discount_rate: float, growth_rate: float) -> Optional[float]:
    """Gordon growth model, D / (r - g)."""
    if dividend is None or dividend <= 0 or discount_rate <= growth_rate:
        return None
    fair_value = dividend / (discount_rate - growth_rate)
    return fair_value if fair_value > 0 else None


def peer_warnings(company: CompanyData, upside: Optional[float]) -> List[str]:
    """Plausibility warnings comparing the valuation with market multiples."""
    if upside is None:
        return []
    pe = company.financials.pe_ratio
    pb = company.financials.pb_ratio
    warnings = []
    if upside > 100:
        warnings.append("upside above 100%, rates may be optimistic")
    if pe is not None and 0 < pe < 5 and upside > 50:
        warnings.append("very low P/E with high upside, check earnings quality")
    if pb is not None and 0 < pb < 0.5 and upside > 30:
        warnings.append("very low P/B, possible fundamental problems")
    return warnings


def calculate_composite_score(
    upside: Optional[float],
    dividend_yield: Optional[float],
    roe: Optional[float],
    payout: Optional[float],
) -> float:
    """40% upside, 30% yield, 20% ROE and 10% payout headroom, scaled to 0-100."""
    upside_score = min(upside / 50, 1) if upside else 0.0
    yield_score = min(dividend_yield / 0.12, 1) if dividend_yield else 0.0
    roe_score = min(roe / 0.25, 1) if roe else 0.0
    payout_score = 1 - min(payout / 0.8, 1) if payout else 0.0
    return (upside_score * 0.4 + yield_score * 0.3 + roe_score * 0.2 + payout_score * 0.1) * 100


class GordonStrategy(BaseStrategy):
    """Dividend-discount valuation with sector calibration."""

    params_class = GordonParams

    @property
    def name(self) -> str:
        return "gordon"

    @property
    def display_name(self) -> str:
        return self._display_name or "Gordon Growth Model"

    def validate(self, company: CompanyData, params: Optional[GordonParams] = None) -> bool:
        params = self.coerce_params(params)
        dividend_yield = company.financials.dividend_yield
        if dividend_yield is None or dividend_yield <= 0 or company.current_price <= 0:
            return False
        if estimate_dividend(company) is None:
            return False
        discount_rate, growth_rate = adjust_rates(company.sector, params)
        return discount_rate > growth_rate

    def analyze(self, company: CompanyData, params: Optional[GordonParams] = None) -> StrategyAnalysis:
        params = self.coerce_params(params)
        financials = company.financials
        discount_rate, growth_rate = adjust_rates(company.sector, params)

        dividend_yield = financials.dividend_yield
        dividend_yield_12m = financials.dividend_yield_12m
        payout = financials.payout
        roe = financials.roe
        earnings_growth = validate_annual_growth(financials.earnings_growth)
        current_ratio = financials.current_ratio
        net_debt_to_equity = financials.net_debt_to_equity

        dividend = estimate_dividend(company)
        fair_value = calculate_gordon_fair_value(dividend, discount_rate, growth_rate)
        upside = calculate_upside(fair_value, company.current_price)

        criteria = [
            Criterion(
                label="Upside >= 15%",
                value=upside is not None and upside >= MIN_UPSIDE,
                description=f"Upside: {format_ratio(upside, 1)}%",
            ),
            Criterion(
                label="Dividend yield >= 4%",
                value=dividend_yield is not None and dividend_yield >= 0.04,
                description=f"DY: {format_percent(dividend_yield)}",
            ),
            Criterion(
                label="12-month dividend yield >= 3%",
                value=dividend_yield_12m is None or dividend_yield_12m >= 0.03,
                description=f"DY 12m: {format_percent(dividend_yield_12m)}",
            ),
            Criterion(label="Payout <= 80%", value=payout is None or payout <= 0.80, description=f"Payout: {format_percent(payout)}"),
            Criterion(label="ROE >= 12%", value=roe is None or roe >= 0.12, description=f"ROE: {format_percent(roe)}"),
            Criterion(
                label="Earnings growth >= -20%",
                value=earnings_growth is None or earnings_growth >= -0.20,
                description=f"Growth: {format_percent(earnings_growth)}",
            ),
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
        ]

        passed = sum(1 for c in criteria if c.value)
        has_minimum_criteria = passed >= MIN_CRITERIA
        has_minimum_upside = upside is not None and upside >= MIN_UPSIDE
        is_eligible = has_minimum_criteria and fair_value is not None and has_minimum_upside
        score = passed / len(criteria) * 100

        rates_adjusted = discount_rate != params.discount_rate or growth_rate != params.dividend_growth_rate
        sector_info = f" (sector: {company.sector})" if company.sector else ""
        if params.use_sectoral_adjustment and rates_adjusted:
            rates_text = (
                f"Sector-adjusted rates{sector_info}: discount {format_percent(discount_rate)} "
                f"(base {format_percent(params.discount_rate)}), growth {format_percent(growth_rate)} "
                f"(base {format_percent(params.dividend_growth_rate)})."
            )
        else:
            rates_text = (
                f"Base rates{sector_info}: discount {format_percent(discount_rate)}, "
                f"growth {format_percent(growth_rate)}."
            )

        parts = []
        if is_eligible:
            parts.append(f"Eligible with {passed}/{len(criteria)} criteria and {upside:.1f}% upside.")
        if not has_minimum_criteria:
            failed = [c.label for c in criteria if not c.value]
            parts.append(f"Minimum criteria not met ({passed}/{len(criteria)}): {', '.join(failed)}.")
        if fair_value is None:
            parts.append("Fair value could not be computed from dividends.")
        elif not has_minimum_upside:
            parts.append("Insufficient upside (< 15%).")
        parts.append(rates_text)

        warnings = peer_warnings(company, upside)
        if warnings:
            parts.append(f"Peer check warning: {'; '.join(warnings)}.")

        composite = calculate_composite_score(upside, dividend_yield, roe, payout)

        return StrategyAnalysis(
            is_eligible=is_eligible,
            score=score,
            fair_value=fair_value,
            upside=upside,
            reasoning=" ".join(parts),
            criteria=criteria,
            key_metrics={
                "estimated_dividend": dividend,
                "dividend_yield": dividend_yield,
                "roe": roe,
                "payout": payout,
                "adjusted_discount_rate": discount_rate,
                "adjusted_growth_rate": growth_rate,
                "composite_score": round(composite, 1),
            },
        )

    def rank(self, companies: List[CompanyData], params: Optional[GordonParams] = None) -> List[RankBuilderResult]:
        params = self.coerce_params(params)
        universe = prepare_universe(companies, params)

        def score(company: CompanyData):
            analysis = self.analyze(company, params)
            if not analysis.is_eligible:
                return None
            metrics = analysis.key_metrics
            sector_info = f" ({company.sector})" if company.sector else ""
            rational = (
                f"Gordon growth model{sector_info}: fair value {analysis.fair_value:.2f} based on dividends. "
                f"Rates: {format_percent(metrics['adjusted_discount_rate'])} discount, "
                f"{format_percent(metrics['adjusted_growth_rate'])} growth. "
                f"DY: {format_percent(metrics['dividend_yield'])}, ROE: {format_percent(metrics['roe'])}, "
                f"Payout: {format_percent(metrics['payout'])}."
            )
            return metrics["composite_score"], build_ranking_result(
                company, rational, analysis.fair_value, analysis.upside, metrics
            )

        scored = evaluate_universe(
            universe, params, lambda c: self.validate(c, params), score, self.overall_score_config
        )
        return finalize_ranking(scored, companies, params)

    def explain_methodology(self, params: Optional[GordonParams] = None) -> str:
        params = self.coerce_params(params)
        if params.use_sectoral_adjustment:
            calibration = (
                "Rates are adjusted per sector: utilities and sanitation get a lower discount rate, "
                "industrial and mining companies a higher one, technology the highest with faster growth. "
                "Discount rates stay within 6%-25% and growth within 0%-12%."
            )
        else:
            calibration = "Fixed rates, no sector calibration."
        manual = ""
        if params.sectoral_wacc_adjustment:
            manual = f"\n- **Manual discount adjustment**: {params.sectoral_wacc_adjustment * 100:+.1f}%"
        return f"""# GORDON GROWTH MODEL (Dividend Discount)

**Philosophy**: Value a company by the sustainability and growth of its dividends.

## Parameters

- **Base discount rate**: {format_percent(params.discount_rate)}
- **Base growth rate**: {format_percent(params.dividend_growth_rate)}
- **Sector calibration**: {"enabled" if params.use_sectoral_adjustment else "disabled"}{manual}

## Sector calibration

{calibration}

## Criteria (6 of 8 required)

- Upside >= 15%
- Dividend yield >= 4% and 12-month yield >= 3%
- Payout <= 80%
- ROE >= 12%
- Earnings growth >= -20%
- Current ratio >= 1.2
- Net debt / equity <= 100%

Peer checks flag upside above 100% and very low P/E or P/B multiples.

**Results**: up to {params.limit} companies ordered by composite score
(40% upside, 30% yield, 20% ROE, 10% payout headroom).
"""
