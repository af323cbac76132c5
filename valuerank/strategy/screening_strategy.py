"""Configurable screening strategy.

Evaluates any combination of range filters over the company's indicators,
its overall score and its Graham upside, plus sector and industry
selections.

Filter policy:
- A disabled filter always passes
- A filter on a missing indicator passes, except the Graham upside filter,
  where a value that cannot be computed fails
- A sector or industry selection passes when the company's own sector or
  industry is unknown
"""

import logging
from typing import Callable, Dict, List, Optional, Tuple

from valuerank.analysis.normalization import filter_by_asset_type
from valuerank.analysis.deduplication import remove_duplicate_companies
from valuerank.analysis.overall_score import compute_overall_score
from valuerank.config.strategy_params import ScreeningFilter, ScreeningParams
from valuerank.data.analysis_results import Criterion, RankBuilderResult, StrategyAnalysis, build_ranking_result
from valuerank.data.company_data import CompanyData
from valuerank.strategy.base_strategy import BaseStrategy
from valuerank.strategy.graham_strategy import GrahamStrategy
from valuerank.strategy.ranking_pipeline import finalize_ranking, passes_quality_gate, prepare_universe
from valuerank.strategy.strategy_utils import format_currency, format_percent, format_ratio

logger = logging.getLogger(__name__)

NO_FILTER_RATIONAL = "No active filter: configure at least one filter to run the screening."

Formatter = Callable[[Optional[float]], str]


def _format_score(value: Optional[float]) -> str:
    return format_ratio(value, 0)


def _format_upside(value: Optional[float]) -> str:
    return "N/A (fails)" if value is None else f"{value:.1f}%"


# filter field -> (label, snapshot field, formatter); None marks a derived value
FILTER_FIELDS: Dict[str, Tuple[str, Optional[str], Formatter]] = {
    "pe_filter": ("P/E", "pe_ratio", format_ratio),
    "pb_filter": ("P/B", "pb_ratio", format_ratio),
    "ev_ebitda_filter": ("EV/EBITDA", "ev_ebitda", format_ratio),
    "ps_filter": ("P/S", "ps_ratio", format_ratio),
    "roe_filter": ("ROE", "roe", format_percent),
    "roic_filter": ("ROIC", "roic", format_percent),
    "roa_filter": ("ROA", "roa", format_percent),
    "net_margin_filter": ("Net margin", "net_margin", format_percent),
    "ebitda_margin_filter": ("EBITDA margin", "ebitda_margin", format_percent),
    "earnings_cagr_filter": ("5y earnings CAGR", "earnings_cagr_5y", format_percent),
    "revenue_cagr_filter": ("5y revenue CAGR", "revenue_cagr_5y", format_percent),
    "dividend_yield_filter": ("Dividend yield", "dividend_yield", format_percent),
    "payout_filter": ("Payout", "payout", format_percent),
    "net_debt_to_equity_filter": ("Net debt / equity", "net_debt_to_equity", format_percent),
    "current_ratio_filter": ("Current ratio", "current_ratio", format_ratio),
    "net_debt_to_ebitda_filter": ("Net debt / EBITDA", "net_debt_to_ebitda", format_ratio),
    "market_cap_filter": ("Market cap", "market_cap", format_currency),
    "overall_score_filter": ("Overall score", None, _format_score),
    "graham_upside_filter": ("Graham upside", None, _format_upside),
}


def describe_bounds(screening_filter: ScreeningFilter, formatter: Formatter) -> str:
    """Human-readable range of a filter, e.g. '>= 10.0% and <= 30.0%'."""
    parts = []
    if screening_filter.min is not None:
        parts.append(f">= {formatter(screening_filter.min)}")
    if screening_filter.max is not None:
        parts.append(f"<= {formatter(screening_filter.max)}")
    return " and ".join(parts) or "any value"


class ScreeningStrategy(BaseStrategy):
    """User-defined range filters over fundamental indicators."""

    params_class = ScreeningParams

    @property
    def name(self) -> str:
        return "screening"

    @property
    def display_name(self) -> str:
        return self._display_name or "Screening"

    def validate(self, company: CompanyData, params: Optional[ScreeningParams] = None) -> bool:
        market_cap = company.financials.market_cap
        return market_cap is not None and market_cap > 0

    def graham_upside(self, company: CompanyData) -> Optional[float]:
        """Graham upside of a company, None when its data does not support the model."""
        graham = GrahamStrategy(overall_score_config=self.overall_score_config)
        if not graham.validate(company):
            return None
        return graham.analyze(company).upside

    def _derived_value(self, filter_name: str, company: CompanyData) -> Optional[float]:
        if filter_name == "overall_score_filter":
            return compute_overall_score(company, self.overall_score_config)
        if filter_name == "graham_upside_filter":
            return self.graham_upside(company)
        raise ValueError(f"Unknown derived screening filter '{filter_name}'")

    def build_criteria(self, company: CompanyData, params: ScreeningParams) -> List[Criterion]:
        """One criterion per active filter, in declaration order."""
        criteria = []
        for filter_name, screening_filter in params.range_filters().items():
            if not screening_filter.enabled:
                continue
            label, field, formatter = FILTER_FIELDS[filter_name]
            if field is None:
                value = self._derived_value(filter_name, company)
            else:
                value = getattr(company.financials, field)

            if value is None:
                passed = filter_name != "graham_upside_filter"
            else:
                passed = screening_filter.accepts(value)

            criteria.append(
                Criterion(
                    label=label,
                    value=passed,
                    description=f"{describe_bounds(screening_filter, formatter)} (current: {formatter(value)})",
                )
            )

        if params.selected_sectors:
            sector = company.sector
            criteria.append(
                Criterion(
                    label="Sector",
                    value=not sector or sector in params.selected_sectors,
                    description=(
                        f"Selected sectors: {', '.join(params.selected_sectors)} "
                        f"(company: {sector or 'N/A, filter ignored'})"
                    ),
                )
            )
        if params.selected_industries:
            industry = company.industry
            criteria.append(
                Criterion(
                    label="Industry",
                    value=not industry or industry in params.selected_industries,
                    description=(
                        f"Selected industries: {', '.join(params.selected_industries)} "
                        f"(company: {industry or 'N/A, filter ignored'})"
                    ),
                )
            )
        return criteria

    def analyze(self, company: CompanyData, params: Optional[ScreeningParams] = None) -> StrategyAnalysis:
        params = self.coerce_params(params)
        criteria = self.build_criteria(company, params)
        total = len(criteria)
        passed = sum(1 for c in criteria if c.value)
        is_eligible = total > 0 and passed == total
        score = passed / total * 100 if total else 0.0

        if total == 0:
            reasoning = NO_FILTER_RATIONAL
        elif is_eligible:
            reasoning = f"Passes all {total} active filters."
        else:
            failed = [c.label for c in criteria if not c.value]
            reasoning = f"Passes {passed} of {total} active filters. Failed: {', '.join(failed)}."

        f = company.financials
        return StrategyAnalysis(
            is_eligible=is_eligible,
            score=score,
            reasoning=reasoning,
            criteria=criteria,
            key_metrics={
                "market_cap": f.market_cap,
                "pe_ratio": f.pe_ratio,
                "pb_ratio": f.pb_ratio,
                "roe": f.roe,
                "dividend_yield": f.dividend_yield,
                "net_margin": f.net_margin,
                "passed_filters": float(passed),
                "active_filters": float(total),
            },
        )

    def _rank_without_filters(self, companies: List[CompanyData], params: ScreeningParams) -> List[RankBuilderResult]:
        universe = filter_by_asset_type(companies, params.asset_type_filter)
        ordered = sorted(universe, key=lambda c: -(c.financials.market_cap or 0.0))
        results = [
            build_ranking_result(c, NO_FILTER_RATIONAL, key_metrics={"market_cap": c.financials.market_cap})
            for c in ordered
        ]
        return remove_duplicate_companies(results)[: params.limit]

    def rank(self, companies: List[CompanyData], params: Optional[ScreeningParams] = None) -> List[RankBuilderResult]:
        """Screen a universe.

        With no active filter the asset-type filtered universe is returned
        ordered by market cap, without the quality gate. Otherwise companies
        passing every active filter are ordered by market cap.
        """
        params = self.coerce_params(params)
        if params.active_filter_count() == 0:
            return self._rank_without_filters(companies, params)

        universe = prepare_universe(companies, params, params.asset_type_filter)

        scored = []
        for company in universe:
            if not self.validate(company, params):
                continue
            if not passes_quality_gate(company, params, self.overall_score_config):
                continue
            analysis = self.analyze(company, params)
            if not analysis.is_eligible:
                continue
            passed_labels = ", ".join(c.label for c in analysis.criteria)
            rational = f"Passes all {len(analysis.criteria)} active filters: {passed_labels}."
            result = build_ranking_result(company, rational, key_metrics=analysis.key_metrics)
            scored.append((company.financials.market_cap, result))

        logger.info(f"Screening: {len(scored)} of {len(universe)} companies pass {params.active_filter_count()} filters")
        return finalize_ranking(scored, companies, params)

    def explain_methodology(self, params: Optional[ScreeningParams] = None) -> str:
        params = self.coerce_params(params)
        active = [FILTER_FIELDS[name][0] for name, f in params.range_filters().items() if f.enabled]
        if params.selected_sectors:
            active.append(f"sectors ({', '.join(params.selected_sectors)})")
        if params.selected_industries:
            active.append(f"industries ({', '.join(params.selected_industries)})")
        active_text = "\n".join(f"- {name}" for name in active) or "- none (results ordered by market cap)"
        return f"""# CUSTOM SCREENING

**Philosophy**: Find companies matching your own ranges on valuation, profitability,
growth, dividends, leverage and size.

## Active filters

{active_text}

## Rules

- A missing indicator does not fail a filter (benefit of the doubt)
- The Graham upside filter fails when the upside cannot be computed
- A company with unknown sector or industry passes those selections

**Results**: up to {params.limit} companies passing every active filter, ordered by market cap.
"""
