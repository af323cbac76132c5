"""Magic formula strategy.

Good businesses (high return on invested capital) at fair prices (high
earnings yield), ordered by a magic score that also rewards ROE, margin and
non-negative revenue growth.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from valuerank.analysis.normalization import get_indicator_value, is_bdr_ticker
from valuerank.config.strategy_params import MagicFormulaParams
from valuerank.data.analysis_results import Criterion, RankBuilderResult, StrategyAnalysis, build_ranking_result
from valuerank.data.company_data import CompanyData, Indicator
from valuerank.strategy.base_strategy import BaseStrategy
from valuerank.strategy.ranking_pipeline import evaluate_universe, finalize_ranking, prepare_universe
from valuerank.strategy.strategy_utils import capped, format_currency, format_percent, format_ratio

logger = logging.getLogger(__name__)

ANALYSIS_MIN_ROIC = 0.15
ANALYSIS_MIN_EARNINGS_YIELD = 0.08
MIN_CRITERIA = 6


@dataclass(frozen=True)
class MagicFormulaThresholds:
    """Analysis thresholds for one listing type."""

    min_roic: float
    min_earnings_yield: float
    min_roe: float
    min_net_margin: float
    min_current_ratio: float
    max_net_debt_to_equity: float
    min_market_cap: float


def thresholds_for(ticker: str, params: MagicFormulaParams) -> MagicFormulaThresholds:
    if is_bdr_ticker(ticker):
        return MagicFormulaThresholds(
            min_roic=max(params.min_roic, 0.12),
            min_earnings_yield=max(params.min_ey, 0.05),
            min_roe=0.12,
            min_net_margin=0.05,
            min_current_ratio=1.0,
            max_net_debt_to_equity=2.0,
            min_market_cap=3_000_000_000,
        )
    return MagicFormulaThresholds(
        min_roic=max(params.min_roic, ANALYSIS_MIN_ROIC),
        min_earnings_yield=max(params.min_ey, ANALYSIS_MIN_EARNINGS_YIELD),
        min_roe=0.15,
        min_net_margin=0.05,
        min_current_ratio=1.2,
        max_net_debt_to_equity=1.5,
        min_market_cap=1_000_000_000,
    )


def calculate_magic_score(
    roic: Optional[float],
    earnings_yield: Optional[float],
    roe: Optional[float],
    net_margin: Optional[float],
    revenue_growth: Optional[float],
) -> float:
    """Magic score: ROIC and earnings yield up to 50 points each plus quality, capped at 100."""
    score = (
        capped(roic, 0.50) * 100
        + capped(earnings_yield, 0.25) * 200
        + capped(roe, 0.30) * 50
        + capped(net_margin, 0.30) * 50
        + max(0.0, (revenue_growth or 0.0) + 0.05) * 80
    )
    return min(score, 100.0)


class MagicFormulaStrategy(BaseStrategy):
    """High return on capital bought at a high earnings yield."""

    params_class = MagicFormulaParams

    @property
    def name(self) -> str:
        return "magic_formula"

    @property
    def display_name(self) -> str:
        return self._display_name or "Magic Formula"

    def validate(self, company: CompanyData, params: Optional[MagicFormulaParams] = None) -> bool:
        params = self.coerce_params(params)
        roic = company.financials.roic
        earnings_yield = company.financials.earnings_yield
        return (
            roic is not None
            and roic != 0
            and roic >= params.min_roic
            and earnings_yield is not None
            and earnings_yield != 0
            and earnings_yield >= params.min_ey
        )

    def analyze(self, company: CompanyData, params: Optional[MagicFormulaParams] = None) -> StrategyAnalysis:
        params = self.coerce_params(params)
        use_avg = params.use_7_year_averages
        f = company.financials
        limits = thresholds_for(company.ticker, params)
        bdr_tag = " (BDR)" if is_bdr_ticker(company.ticker) else ""

        roic = get_indicator_value(company, Indicator.ROIC, use_avg)
        earnings_yield = f.earnings_yield
        roe = get_indicator_value(company, Indicator.ROE, use_avg)
        revenue_growth = f.revenue_growth
        net_margin = get_indicator_value(company, Indicator.NET_MARGIN, use_avg)
        current_ratio = f.current_ratio
        net_debt_to_equity = get_indicator_value(company, Indicator.NET_DEBT_TO_EQUITY, use_avg)
        market_cap = f.market_cap

        criteria = [
            Criterion(
                label=f"ROIC >= {limits.min_roic * 100:.0f}%{bdr_tag}",
                value=roic is not None and roic >= limits.min_roic,
                description=f"ROIC: {format_percent(roic)}",
            ),
            Criterion(
                label=f"Earnings yield >= {limits.min_earnings_yield * 100:.0f}%{bdr_tag}",
                value=earnings_yield is not None and earnings_yield >= limits.min_earnings_yield,
                description=f"EY: {format_percent(earnings_yield)}",
            ),
            Criterion(
                label=f"ROE >= {limits.min_roe * 100:.0f}%{bdr_tag}",
                value=roe is None or roe >= limits.min_roe,
                description=f"ROE: {format_percent(roe)}",
            ),
            Criterion(
                label="Revenue growth >= -5%",
                value=revenue_growth is None or revenue_growth >= -0.05,
                description=f"Revenue growth: {format_percent(revenue_growth)}",
            ),
            Criterion(
                label=f"Net margin >= {limits.min_net_margin * 100:.0f}%",
                value=net_margin is None or net_margin >= limits.min_net_margin,
                description=f"Net margin: {format_percent(net_margin)}",
            ),
            Criterion(
                label=f"Current ratio >= {limits.min_current_ratio:.1f}{bdr_tag}",
                value=current_ratio is None or current_ratio >= limits.min_current_ratio,
                description=f"Current ratio: {format_ratio(current_ratio)}",
            ),
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
        is_eligible = passed >= MIN_CRITERIA and roic is not None
        score = passed / len(criteria) * 100

        magic_score = calculate_magic_score(roic, earnings_yield, roe, net_margin, revenue_growth)

        if is_eligible:
            reasoning = (
                f"Approved by the magic formula with ROIC {format_percent(roic)} and EY "
                f"{format_percent(earnings_yield)}. Magic score: {magic_score:.1f}/100."
            )
        else:
            reasoning = f"Does not meet the magic formula minimum ({passed}/{len(criteria)} criteria passed)."

        return StrategyAnalysis(
            is_eligible=is_eligible,
            score=score,
            reasoning=reasoning,
            criteria=criteria,
            key_metrics={
                "roic": roic,
                "earnings_yield": earnings_yield,
                "magic_score": round(magic_score, 1),
                "roe": roe,
                "net_margin": net_margin,
            },
        )

    def rank(
        self, companies: List[CompanyData], params: Optional[MagicFormulaParams] = None
    ) -> List[RankBuilderResult]:
        """Rank every company with sufficient data by magic score.

        Ranking uses the latest reported values, so the score ignores the
        7-year averaging toggle.
        """
        params = self.coerce_params(params)
        universe = prepare_universe(companies, params, params.asset_type_filter, drop_secondary_classes=True)

        def score(company: CompanyData):
            f = company.financials
            magic_score = round(
                calculate_magic_score(f.roic, f.earnings_yield, f.roe, f.net_margin, f.revenue_growth), 1
            )
            rational = (
                f"Approved by the magic formula with ROIC {format_percent(f.roic)} and earnings yield "
                f"{format_percent(f.earnings_yield)}. ROE {format_percent(f.roe)}, net margin "
                f"{format_percent(f.net_margin)}, revenue growth {format_percent(f.revenue_growth)}. "
                f"Magic score: {magic_score:.1f}/100."
            )
            key_metrics = {
                "roic": f.roic,
                "earnings_yield": f.earnings_yield,
                "magic_score": magic_score,
                "roe": f.roe,
                "net_margin": f.net_margin,
                "current_ratio": f.current_ratio,
                "revenue_growth": f.revenue_growth,
            }
            return magic_score, build_ranking_result(company, rational, key_metrics=key_metrics)

        scored = evaluate_universe(
            universe, params, lambda c: self.validate(c, params), score, self.overall_score_config
        )
        return finalize_ranking(scored, companies, params)

    def explain_methodology(self, params: Optional[MagicFormulaParams] = None) -> str:
        params = self.coerce_params(params)
        return f"""# MAGIC FORMULA

**Philosophy**: Joel Greenblatt's formula, buy good businesses at fair prices.

**Strategy**: Combine a high return on invested capital (business quality) with a
high earnings yield (cheap price).

## Requirements

- ROIC >= {params.min_roic * 100:.0f}% and earnings yield >= {params.min_ey * 100:.0f}% to be ranked
- Analysis also checks ROE, revenue growth >= -5%, net margin, liquidity,
  leverage and size, with relaxed thresholds for depositary receipts

## Magic score

ROIC (up to 50 points) + earnings yield (up to 50 points) + ROE, net margin and
revenue growth bonuses, capped at 100.

**Results**: up to {params.limit} companies ordered by magic score.
"""
