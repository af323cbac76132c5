"""Fundamentalist 3+1 strategy.

Three essential pillars plus a dividend bonus, with the indicators chosen by
the company's profile:

- Companies without relevant debt: ROE, P/E against the 5-year earnings
  CAGR, and leverage
- Companies with relevant debt: ROIC, EV/EBITDA, and leverage
- Banks and insurers: ROE and P/E; leverage does not apply

The score is the sum of the pillar points (35 + 30 + 20 + 15), capped at 100.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from valuerank.config.strategy_params import FundamentalistParams
from valuerank.data.analysis_results import Criterion, RankBuilderResult, StrategyAnalysis, build_ranking_result
from valuerank.data.company_data import CompanyData
from valuerank.strategy.base_strategy import BaseStrategy
from valuerank.strategy.ranking_pipeline import evaluate_universe, finalize_ranking, prepare_universe
from valuerank.strategy.strategy_utils import format_percent

logger = logging.getLogger(__name__)

BANK_OR_INSURANCE_KEYWORDS = [
    "bancos",
    "seguradoras",
    "previdência",
    "serviços financeiros",
    "intermediários financeiros",
]


@dataclass(frozen=True)
class PillarScore:
    """Points awarded by one pillar and whether it disqualifies the company."""

    points: float
    indicator: str
    value: Optional[float]
    note: str
    disqualifies: bool = False
    is_warning: bool = False


def is_bank_or_insurance(sector: Optional[str]) -> bool:
    """Whether the sector name denotes a bank, insurer or financial intermediary."""
    lowered = (sector or "").lower()
    return any(keyword in lowered for keyword in BANK_OR_INSURANCE_KEYWORDS)


def score_quality(indicator: str, value: Optional[float], target: float) -> PillarScore:
    """Quality pillar from ROE or ROIC (up to 35 points)."""
    if value is None:
        return PillarScore(0, indicator, None, f"{indicator} not available", disqualifies=True, is_warning=True)
    text = f"{indicator} of {value * 100:.1f}%"
    if value >= target:
        return PillarScore(35, indicator, value, f"Excellent {text}")
    if value >= 0.10:
        return PillarScore(25, indicator, value, f"Adequate {text}")
    if value >= 0.05:
        return PillarScore(15, indicator, value, f"Low {text}", is_warning=True)
    return PillarScore(5, indicator, value, f"Very low {text}", disqualifies=True, is_warning=True)


def score_bank_price(pe: Optional[float]) -> PillarScore:
    """Price pillar of banks and insurers from the P/E (up to 30 points)."""
    if pe is None or pe <= 0:
        return PillarScore(0, "P/E", pe, "P/E not available or negative", disqualifies=True, is_warning=True)
    for limit, points in ((8, 30), (12, 25), (18, 15), (25, 10)):
        if pe <= limit:
            return PillarScore(points, "P/E", pe, f"P/E of {pe:.1f}x", is_warning=points <= 10)
    return PillarScore(5, "P/E", pe, f"Very high P/E of {pe:.1f}x", is_warning=True)


def score_growth_adjusted_price(pe: Optional[float], earnings_cagr: Optional[float]) -> PillarScore:
    """Price pillar of unlevered companies: P/E against the 5-year earnings CAGR in percent."""
    indicator = "P/E vs 5y earnings CAGR"
    if pe is None or pe <= 0:
        return PillarScore(0, indicator, pe, "P/E not available or negative", disqualifies=True, is_warning=True)

    if earnings_cagr is not None and earnings_cagr > 0:
        cagr_percent = earnings_cagr * 100
        text = f"P/E {pe:.1f}x vs 5y CAGR {cagr_percent:.1f}%"
        if pe <= cagr_percent * 0.8:
            return PillarScore(30, indicator, pe, f"{text}, very attractive")
        if pe <= cagr_percent:
            return PillarScore(25, indicator, pe, f"{text}, attractive")
        if pe <= cagr_percent * 1.5:
            return PillarScore(15, indicator, pe, f"{text}, moderate")
        return PillarScore(5, indicator, pe, f"{text}, expensive", is_warning=True)

    if pe <= 10:
        return PillarScore(25, indicator, pe, f"Attractive P/E of {pe:.1f}x (no 5y CAGR)")
    if pe <= 15:
        return PillarScore(15, indicator, pe, f"Moderate P/E of {pe:.1f}x (no 5y CAGR)")
    return PillarScore(5, indicator, pe, f"High P/E of {pe:.1f}x (no 5y CAGR)", is_warning=True)


def score_ev_ebitda_price(ev_ebitda: Optional[float]) -> PillarScore:
    """Price pillar of levered companies from EV/EBITDA (up to 30 points)."""
    if ev_ebitda is None or ev_ebitda <= 0:
        return PillarScore(0, "EV/EBITDA", ev_ebitda, "EV/EBITDA not available", disqualifies=True, is_warning=True)
    for limit, points in ((6, 30), (10, 25), (15, 15), (20, 10)):
        if ev_ebitda <= limit:
            return PillarScore(points, "EV/EBITDA", ev_ebitda, f"EV/EBITDA of {ev_ebitda:.1f}x", is_warning=points <= 10)
    return PillarScore(5, "EV/EBITDA", ev_ebitda, f"Very high EV/EBITDA of {ev_ebitda:.1f}x", is_warning=True)


def score_debt(net_debt_to_ebitda: Optional[float], max_debt_to_ebitda: float, bank_or_insurance: bool) -> PillarScore:
    """Leverage pillar from net debt / EBITDA (up to 20 points)."""
    indicator = "Net debt / EBITDA"
    if bank_or_insurance:
        return PillarScore(20, indicator, None, "Leverage not applicable to banks and insurers")
    if net_debt_to_ebitda is None:
        return PillarScore(10, indicator, None, "Leverage data not available", is_warning=True)
    if net_debt_to_ebitda < 0:
        return PillarScore(20, indicator, net_debt_to_ebitda, "Net cash position")
    text = f"{net_debt_to_ebitda:.1f}x EBITDA"
    if net_debt_to_ebitda <= 1:
        return PillarScore(20, indicator, net_debt_to_ebitda, f"Very low leverage: {text}")
    if net_debt_to_ebitda <= 2:
        return PillarScore(15, indicator, net_debt_to_ebitda, f"Low leverage: {text}")
    if net_debt_to_ebitda <= max_debt_to_ebitda:
        return PillarScore(10, indicator, net_debt_to_ebitda, f"Moderate leverage: {text}", is_warning=True)
    return PillarScore(
        0, indicator, net_debt_to_ebitda, f"High leverage: {text} (> {max_debt_to_ebitda:.1f}x)",
        disqualifies=True, is_warning=True,
    )


def score_dividends(
    payout: Optional[float], dividend_yield: Optional[float], min_payout: float, max_payout: float
) -> PillarScore:
    """Dividend bonus from payout and yield (up to 15 points)."""
    if payout is not None and dividend_yield is not None:
        text = f"payout {payout * 100:.1f}%, DY {dividend_yield * 100:.1f}%"
        if min_payout <= payout <= max_payout and dividend_yield >= 0.04:
            return PillarScore(15, "Dividends", dividend_yield, f"Excellent dividend payer: {text}")
        if payout >= min_payout and dividend_yield >= 0.02:
            return PillarScore(10, "Dividends", dividend_yield, f"Good dividend payer: {text}")
        if payout > 0 and dividend_yield > 0:
            return PillarScore(5, "Dividends", dividend_yield, f"Moderate dividends: {text}")
        return PillarScore(0, "Dividends", dividend_yield, "No dividends or very low payout", is_warning=True)
    if dividend_yield is not None and dividend_yield >= 0.04:
        return PillarScore(8, "Dividends", dividend_yield, f"Good dividend yield: {dividend_yield * 100:.1f}%")
    return PillarScore(0, "Dividends", dividend_yield, "Dividend data not available or insufficient", is_warning=True)


class FundamentalistStrategy(BaseStrategy):
    """Three essential indicators plus a dividend bonus."""

    params_class = FundamentalistParams

    @property
    def name(self) -> str:
        return "fundamentalist"

    @property
    def display_name(self) -> str:
        return self._display_name or "Fundamentalist 3+1"

    def validate(self, company: CompanyData, params: Optional[FundamentalistParams] = None) -> bool:
        if company.current_price <= 0:
            return False
        return company.financials.roe is not None or company.financials.roic is not None

    def analyze(self, company: CompanyData, params: Optional[FundamentalistParams] = None) -> StrategyAnalysis:
        params = self.coerce_params(params)
        f = company.financials

        bank_or_insurance = is_bank_or_insurance(company.sector)
        relevant_debt = f.net_debt_to_ebitda is not None and f.net_debt_to_ebitda > 0

        if bank_or_insurance:
            profile = "bank/insurer"
            quality = score_quality("ROE", f.roe, params.min_roe)
            price = score_bank_price(f.pe_ratio)
        elif not relevant_debt:
            profile = "no relevant debt"
            quality = score_quality("ROE", f.roe, params.min_roe)
            price = score_growth_adjusted_price(f.pe_ratio, f.earnings_cagr_5y)
        else:
            profile = "with debt"
            quality = score_quality("ROIC", f.roic, params.min_roic)
            price = score_ev_ebitda_price(f.ev_ebitda)

        debt = score_debt(f.net_debt_to_ebitda, params.max_debt_to_ebitda, bank_or_insurance)
        dividends = score_dividends(f.payout, f.dividend_yield, params.min_payout, params.max_payout)
        pillars = [quality, price, debt, dividends]

        is_eligible = not any(p.disqualifies for p in pillars)
        score = min(sum(p.points for p in pillars), 100.0)

        criteria = [
            Criterion(
                label="Company quality",
                value=quality.points >= 25,
                description=f"{quality.indicator}: {format_percent(quality.value) if quality.value is not None else 'N/A'}",
            ),
            Criterion(
                label="Attractive price",
                value=price.points >= 20,
                description=f"{price.indicator}: {f'{price.value:.1f}x' if price.value is not None else 'N/A'}",
            ),
            Criterion(
                label="Controlled leverage",
                value=debt.points >= 15,
                description=debt.note,
            ),
            Criterion(
                label="Dividends (bonus)",
                value=dividends.points >= 8,
                description=f"Payout: {format_percent(f.payout)}, DY: {format_percent(f.dividend_yield)}",
            ),
        ]

        strengths = [p.note for p in pillars if not p.is_warning]
        warnings = [p.note for p in pillars if p.is_warning]
        reasoning = f"Fundamentalist 3+1 analysis ({profile}): score {score:.0f}/100."
        if strengths:
            reasoning += f" Strengths: {', '.join(strengths[:2])}."
        if warnings:
            reasoning += f" Attention: {', '.join(warnings[:2])}."

        return StrategyAnalysis(
            is_eligible=is_eligible,
            score=score,
            reasoning=reasoning,
            criteria=criteria,
            key_metrics={
                "fundamentalist_score": score,
                "quality_indicator": quality.value,
                "price_indicator": price.value,
                "roe": f.roe,
                "roic": f.roic,
                "pe_ratio": f.pe_ratio,
                "ev_ebitda": f.ev_ebitda,
                "net_debt_to_ebitda": f.net_debt_to_ebitda,
                "earnings_cagr_5y": f.earnings_cagr_5y,
                "payout": f.payout,
                "dividend_yield": f.dividend_yield,
            },
        )

    def rank(
        self, companies: List[CompanyData], params: Optional[FundamentalistParams] = None
    ) -> List[RankBuilderResult]:
        params = self.coerce_params(params)
        universe = prepare_universe(companies, params)

        def score(company: CompanyData):
            analysis = self.analyze(company, params)
            if not analysis.is_eligible:
                return None
            return analysis.score, build_ranking_result(company, analysis.reasoning, key_metrics=analysis.key_metrics)

        scored = evaluate_universe(
            universe, params, lambda c: self.validate(c, params), score, self.overall_score_config
        )
        return finalize_ranking(scored, companies, params)

    def explain_methodology(self, params: Optional[FundamentalistParams] = None) -> str:
        params = self.coerce_params(params)
        return f"""# FUNDAMENTALIST 3+1

**Philosophy**: Simplified fundamental analysis with three essential indicators for quick decisions.

## Adaptive method

- **Companies without relevant debt**: ROE + P/E vs 5-year earnings CAGR + leverage
- **Companies with relevant debt**: ROIC + EV/EBITDA + leverage
- **Banks and insurers**: ROE + P/E (leverage not applicable)
- **Dividend bonus**: payout and dividend yield

## Parameters

- **Company size**: {params.company_size.value}
- **Minimum ROE**: {params.min_roe * 100:.0f}% (companies without debt)
- **Minimum ROIC**: {params.min_roic * 100:.0f}% (companies with debt)
- **Net debt / EBITDA**: at most {params.max_debt_to_ebitda:.1f}x
- **Ideal payout**: {params.min_payout * 100:.0f}% - {params.max_payout * 100:.0f}%

**Results**: up to {params.limit} companies ordered by fundamentalist score.
"""
