"""Overall score aggregator.

Combines the scores of the core strategies, the raw fundamental ratios and,
when statement series are available, the statement quality analysis into a
single 0-100 score with a letter grade.

Fair-value strategies (Graham, DCF, Gordon) contribute their own score only
when the current price leaves a margin of safety; otherwise a penalized
score is used, so an expensive company cannot reach a high grade.
"""

import logging
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from valuerank.config.default_pydantic_config import DEFAULT_PYDANTIC_CONFIG
from valuerank.config.overall_score_config import OverallScoreConfig
from valuerank.analysis.statements_analysis import (
    CompanyStrength,
    RiskLevel,
    StatementsAnalysis,
    analyze_financial_statements,
)
from valuerank.data.analysis_results import StrategyAnalysis
from valuerank.data.company_data import CompanyData

logger = logging.getLogger(__name__)

MAX_STRENGTHS = 5
MAX_WEAKNESSES = 5
MAX_STATEMENT_ITEMS = 3

PENALIZED_SCORE = 20.0
GORDON_PENALIZED_SCORE = 25.0
GORDON_PENALTY_UPSIDE = 15.0

# (minimum score, grade, classification, recommendation)
GRADE_TABLE = [
    (95, "A+", "Excellent", "Strong Buy"),
    (90, "A", "Excellent", "Strong Buy"),
    (85, "A-", "Very Good", "Buy"),
    (80, "B+", "Very Good", "Buy"),
    (75, "B", "Good", "Buy"),
    (70, "B-", "Good", "Neutral"),
    (65, "C+", "Regular", "Neutral"),
    (60, "C", "Regular", "Neutral"),
    (50, "C-", "Regular", "Sell"),
    (30, "D", "Weak", "Sell"),
    (0, "F", "Very Weak", "Strong Sell"),
]

# Strategy key -> (strength when eligible with score >= 80, weakness when score < 60)
_QUALITY_MESSAGES = {
    "graham": ("Solid fundamentals (Graham)", "Weak fundamentals"),
    "dividend_yield": ("Sustainable dividends", "Dividends at risk"),
    "low_pe": ("Good value opportunity", "Possible value trap"),
    "magic_formula": ("Excellent operational quality", "Questionable operational quality"),
    "gordon": ("Excellent for passive income (Gordon)", "Inconsistent dividends"),
    "fundamentalist": ("Strong fundamentalist profile", "Weak fundamentalist profile"),
}

FAIR_VALUE_STRATEGIES = ("graham", "dcf", "gordon")


class OverallScore(BaseModel):
    """Composite quality grade of a company."""

    model_config = DEFAULT_PYDANTIC_CONFIG

    score: float = Field(ge=0.0, le=100.0)
    grade: str
    classification: str
    recommendation: str
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    statements_analysis: Optional[StatementsAnalysis] = None


def grade_for_score(score: float):
    """Return (grade, classification, recommendation) for a score."""
    for minimum, grade, classification, recommendation in GRADE_TABLE:
        if score >= minimum:
            return grade, classification, recommendation
    return GRADE_TABLE[-1][1:]


def _is_price_compatible(analysis: StrategyAnalysis, current_price: float, min_upside: float) -> bool:
    if analysis.fair_value is None or analysis.upside is None or current_price <= 0:
        return False
    return analysis.upside >= min_upside


def _fair_value_contribution(
    key: str,
    analysis: StrategyAnalysis,
    current_price: float,
    config: OverallScoreConfig,
    strengths: List[str],
    weaknesses: List[str],
) -> float:
    """Score a fair-value strategy contributes, with strength/weakness notes."""
    has_fair_value = analysis.fair_value is not None and analysis.upside is not None
    upside = analysis.upside

    if _is_price_compatible(analysis, current_price, config.price_compatible_upside):
        if key == "dcf":
            if upside > 20:
                strengths.append("High appreciation potential")
        else:
            strength, weakness = _QUALITY_MESSAGES[key]
            if analysis.is_eligible and analysis.score >= 80:
                strengths.append(strength)
            elif analysis.score < 60:
                weaknesses.append(weakness)
        return analysis.score

    if key == "gordon":
        penalized = GORDON_PENALIZED_SCORE if has_fair_value and upside < GORDON_PENALTY_UPSIDE else analysis.score
        if has_fair_value and upside < 0:
            weaknesses.append("Price above the dividend-based fair value")
        return penalized

    penalized = PENALIZED_SCORE if has_fair_value and upside < config.price_compatible_upside else analysis.score
    if key == "graham" and has_fair_value and upside < -20:
        weaknesses.append("Price far above fair value (Graham)")
    if key == "dcf" and has_fair_value and upside < config.price_compatible_upside:
        weaknesses.append("Little margin of safety (DCF)")
    return penalized


def calculate_overall_score(
    analyses: Dict[str, Optional[StrategyAnalysis]],
    company: CompanyData,
    config: OverallScoreConfig,
    statements: Optional[StatementsAnalysis] = None,
) -> OverallScore:
    """Aggregate strategy analyses into an overall score.

    Args:
        analyses: Strategy analyses keyed by strategy name; None entries are skipped
        company: Company the analyses belong to
        config: Weights and thresholds
        statements: Statement quality analysis, if available

    Returns:
        OverallScore with grade, classification and recommendation
    """
    weights = config.weights.model_dump()
    total_score = 0.0
    total_weight = 0.0
    strengths: List[str] = []
    weaknesses: List[str] = []

    for key, analysis in analyses.items():
        if analysis is None:
            continue
        weight = weights.get(key, 0.0)

        if key in FAIR_VALUE_STRATEGIES:
            contribution = _fair_value_contribution(
                key, analysis, company.current_price, config, strengths, weaknesses
            )
        else:
            contribution = analysis.score
            strength, weakness = _QUALITY_MESSAGES[key]
            if analysis.is_eligible and analysis.score >= 80:
                strengths.append(strength)
            elif analysis.score < 60:
                weaknesses.append(weakness)

        total_score += contribution * weight
        total_weight += weight

    if statements is not None:
        total_score += statements.score * config.weights.statements
        total_weight += config.weights.statements

        if statements.risk_level == RiskLevel.CRITICAL:
            weaknesses.append("Financial statements indicate critical risk")
        elif statements.risk_level == RiskLevel.HIGH:
            weaknesses.append("Financial statements indicate high risk")
        elif statements.risk_level == RiskLevel.LOW and statements.score >= 80:
            strengths.append("Healthy financial statements")

        if statements.company_strength == CompanyStrength.VERY_STRONG:
            strengths.append("Financially very robust company")
        elif statements.company_strength == CompanyStrength.STRONG:
            strengths.append("Financially robust company")
        elif statements.company_strength == CompanyStrength.WEAK:
            weaknesses.append("Financially fragile company")

        weaknesses.extend(f for f in statements.red_flags[:MAX_STATEMENT_ITEMS] if f not in weaknesses)
        strengths.extend(s for s in statements.positive_signals[:MAX_STATEMENT_ITEMS] if s not in strengths)

    final_score = round(total_score / total_weight) if total_weight > 0 else 0

    financials = company.financials
    roe = financials.roe
    current_ratio = financials.current_ratio
    net_debt_to_equity = financials.net_debt_to_equity
    net_margin = financials.net_margin

    if roe is not None and roe >= 0.15:
        strengths.append("High ROE")
    if roe is not None and roe < 0.05:
        weaknesses.append("Very low ROE")
    if current_ratio is not None and current_ratio >= 1.5:
        strengths.append("Good liquidity")
    if current_ratio is not None and current_ratio < 1.0:
        weaknesses.append("Low liquidity")
    if net_debt_to_equity is None or net_debt_to_equity <= 0.5:
        strengths.append("Controlled leverage")
    if net_debt_to_equity is not None and net_debt_to_equity > 2.0:
        weaknesses.append("High leverage")
    if net_margin is not None and net_margin >= 0.10:
        strengths.append("Good profit margin")
    if net_margin is not None and net_margin < 0.02:
        weaknesses.append("Low profit margin")

    grade, classification, recommendation = grade_for_score(final_score)

    return OverallScore(
        score=max(0, min(100, final_score)),
        grade=grade,
        classification=classification,
        recommendation=recommendation,
        strengths=strengths[:MAX_STRENGTHS],
        weaknesses=weaknesses[:MAX_WEAKNESSES],
        statements_analysis=statements,
    )


def evaluate_company(company: CompanyData, config: Optional[OverallScoreConfig] = None) -> OverallScore:
    """Run every core strategy on a company and aggregate the results.

    Args:
        company: Company snapshot
        config: Aggregator configuration; defaults to OverallScoreConfig()

    Returns:
        OverallScore of the company

    Raises:
        Exception: Whatever a strategy raises; use compute_overall_score for
            the fail-closed variant
    """
    # Strategies use this module through the exclusion filter
    from valuerank.strategy.strategy_factory import create_strategy

    config = config or OverallScoreConfig()
    defaults = config.strategy_defaults

    analyses: Dict[str, Optional[StrategyAnalysis]] = {}
    for key in ("graham", "dividend_yield", "low_pe", "magic_formula", "dcf", "gordon", "fundamentalist"):
        strategy = create_strategy(key, overall_score_config=config)
        analyses[key] = strategy.analyze(company, getattr(defaults, key))

    statements = analyze_financial_statements(company) if company.has_statements else None
    return calculate_overall_score(analyses, company, config, statements)


def compute_overall_score(company: CompanyData, config: Optional[OverallScoreConfig] = None) -> float:
    """Overall score of a company, falling back to a conservative score on failure.

    Args:
        company: Company snapshot
        config: Aggregator configuration; defaults to OverallScoreConfig()

    Returns:
        Score in [0, 100]; ``config.fallback_score`` if the computation raised
    """
    config = config or OverallScoreConfig()
    try:
        return evaluate_company(company, config).score
    except Exception as e:
        logger.warning(
            f"Overall score of {company.ticker} failed with {type(e).__name__}: {e}. "
            f"Falling back to {config.fallback_score}."
        )
        return config.fallback_score
