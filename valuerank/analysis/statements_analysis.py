"""Financial statement quality analysis.

Scores the quarterly income, balance sheet and cash flow series of a company
on a 0-100 scale. The analysis starts from 100 and applies adjustments from
several contextual checks:

- Year-over-year trends of revenue and profit over up to 12 quarters
- Cash position and liquidity, judged against the company's strength
- Revenue and margin quality with sector-specific tolerances
- Leverage level and its growth
- Operational resilience (cash conversion, revenue stability, asset turnover)

The adjusted score is scaled by a multiplier that rewards financially strong
companies and penalizes weak ones.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

import numpy as np

from valuerank.data.company_data import BalanceSheet, CashflowStatement, CompanyData, IncomeStatement

logger = logging.getLogger(__name__)

QUARTERS_PER_YEAR = 4
MIN_QUARTERS = 4
FULL_HISTORY_QUARTERS = 8
MAX_QUARTERS = 12

MAX_RED_FLAGS = 10
MAX_POSITIVE_SIGNALS = 8
MAX_CONTEXTUAL_FACTORS = 5


class CompanyStrength(str, Enum):
    """Overall financial robustness derived from the latest statements."""

    WEAK = "WEAK"
    MODERATE = "MODERATE"
    STRONG = "STRONG"
    VERY_STRONG = "VERY_STRONG"


class RiskLevel(str, Enum):
    """Risk classification of the statement analysis."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class SectorType(str, Enum):
    """Coarse sector family used for tolerances."""

    FINANCIAL = "FINANCIAL"
    CYCLICAL = "CYCLICAL"
    DEFENSIVE = "DEFENSIVE"
    COMMODITY = "COMMODITY"
    TECH = "TECH"
    UTILITY = "UTILITY"
    OTHER = "OTHER"


class SizeCategory(str, Enum):
    """Market-cap category."""

    MICRO = "MICRO"
    SMALL = "SMALL"
    MEDIUM = "MEDIUM"
    LARGE = "LARGE"
    MEGA = "MEGA"


@dataclass(frozen=True)
class SectorContext:
    """Tolerances of a sector family."""

    type: SectorType
    volatility_tolerance: str
    margin_expectation: str
    cash_intensive: bool


@dataclass(frozen=True)
class SizeContext:
    """Tolerances of a size category."""

    category: SizeCategory
    volatility_tolerance: str
    growth_expectation: str


@dataclass(frozen=True)
class StatementsAnalysis:
    """Result of the statement quality analysis."""

    score: int
    red_flags: List[str]
    positive_signals: List[str]
    risk_level: RiskLevel
    company_strength: CompanyStrength
    contextual_factors: List[str]


@dataclass
class _Adjustment:
    score: float = 0.0
    red_flags: List[str] = field(default_factory=list)
    positive_signals: List[str] = field(default_factory=list)
    contextual_factors: List[str] = field(default_factory=list)

    def merge(self, other: "_Adjustment") -> None:
        self.score += other.score
        self.red_flags.extend(other.red_flags)
        self.positive_signals.extend(other.positive_signals)
        self.contextual_factors.extend(other.contextual_factors)


def _revenue(statement: IncomeStatement, default: float = 0.0) -> float:
    return statement.total_revenue or statement.operating_income or default


def _is_strong(strength: CompanyStrength) -> bool:
    return strength in (CompanyStrength.STRONG, CompanyStrength.VERY_STRONG)


def _debt_ratio(balance: BalanceSheet) -> float:
    liabilities = balance.total_liabilities or 0.0
    equity = balance.total_stockholder_equity or 1.0
    total = liabilities + equity
    if total == 0:
        return 0.0
    return liabilities / total


def assess_company_strength(
    income_statements: Sequence[IncomeStatement],
    balance_sheets: Sequence[BalanceSheet],
    cashflow_statements: Sequence[CashflowStatement],
) -> CompanyStrength:
    """Classify robustness from the latest quarter.

    Cash ratio (25 points), current ratio (20), net margin (25), debt ratio
    (15) and operating cash flow margin (15) add up to a 0-100 score.
    """
    if not income_statements or not balance_sheets or not cashflow_statements:
        return CompanyStrength.WEAK

    income, balance, cashflow = income_statements[0], balance_sheets[0], cashflow_statements[0]
    points = 0

    cash_ratio = (balance.cash or 0.0) / (balance.total_assets or 1.0)
    if cash_ratio > 0.15:
        points += 25
    elif cash_ratio > 0.08:
        points += 15
    elif cash_ratio > 0.03:
        points += 8

    current_ratio = (balance.total_current_assets or 0.0) / (balance.total_current_liabilities or 1.0)
    if current_ratio > 2.0:
        points += 20
    elif current_ratio > 1.5:
        points += 15
    elif current_ratio > 1.2:
        points += 10
    elif current_ratio > 1.0:
        points += 5

    revenue = _revenue(income, 1.0)
    net_margin = (income.net_income or 0.0) / revenue
    if net_margin > 0.15:
        points += 25
    elif net_margin > 0.08:
        points += 18
    elif net_margin > 0.03:
        points += 10
    elif net_margin > 0:
        points += 5

    debt_ratio = _debt_ratio(balance)
    if debt_ratio < 0.3:
        points += 15
    elif debt_ratio < 0.5:
        points += 10
    elif debt_ratio < 0.7:
        points += 5

    operating_cash_flow = cashflow.operating_cash_flow or 0.0
    if operating_cash_flow > 0:
        cash_flow_margin = operating_cash_flow / revenue
        if cash_flow_margin > 0.12:
            points += 15
        elif cash_flow_margin > 0.06:
            points += 10
        elif cash_flow_margin > 0.02:
            points += 5

    if points >= 80:
        return CompanyStrength.VERY_STRONG
    if points >= 60:
        return CompanyStrength.STRONG
    if points >= 40:
        return CompanyStrength.MODERATE
    return CompanyStrength.WEAK


def get_sector_context(sector: Optional[str], industry: Optional[str]) -> SectorContext:
    """Map sector and industry names to a sector family."""
    sector_lower = (sector or "").lower()
    industry_lower = (industry or "").lower()

    def sector_has(*words: str) -> bool:
        return any(w in sector_lower for w in words)

    def industry_has(*words: str) -> bool:
        return any(w in industry_lower for w in words)

    if sector_has("financial", "bank") or industry_has("insurance", "seguros"):
        return SectorContext(SectorType.FINANCIAL, "MEDIUM", "MEDIUM", True)
    if sector_has("technology", "software") or industry_has("tech", "internet"):
        return SectorContext(SectorType.TECH, "HIGH", "HIGH", False)
    if sector_has("consumer", "retail", "automotive", "construction"):
        return SectorContext(SectorType.CYCLICAL, "HIGH", "MEDIUM", False)
    if sector_has("utilities", "healthcare", "food", "pharmaceutical"):
        return SectorContext(SectorType.DEFENSIVE, "LOW", "MEDIUM", False)
    if sector_has("materials", "mining", "oil", "steel"):
        return SectorContext(SectorType.COMMODITY, "HIGH", "LOW", False)
    return SectorContext(SectorType.OTHER, "MEDIUM", "MEDIUM", False)


def get_size_context(market_cap: Optional[float]) -> SizeContext:
    """Map a market cap to a size category."""
    if not market_cap or market_cap <= 0:
        return SizeContext(SizeCategory.SMALL, "HIGH", "MEDIUM")
    if market_cap > 100_000_000_000:
        return SizeContext(SizeCategory.MEGA, "LOW", "LOW")
    if market_cap > 20_000_000_000:
        return SizeContext(SizeCategory.LARGE, "LOW", "MEDIUM")
    if market_cap > 5_000_000_000:
        return SizeContext(SizeCategory.MEDIUM, "MEDIUM", "MEDIUM")
    if market_cap > 1_000_000_000:
        return SizeContext(SizeCategory.SMALL, "HIGH", "HIGH")
    return SizeContext(SizeCategory.MICRO, "HIGH", "HIGH")


def _yoy_previous(values: Sequence[Optional[float]], index: int = 0) -> Optional[float]:
    """Value of the same quarter one year before ``index``, when non-zero."""
    yoy_index = index + QUARTERS_PER_YEAR
    if len(values) <= yoy_index:
        return None
    return values[yoy_index] or None


def _analyze_historical_trends(income_statements: Sequence[IncomeStatement], periods: int) -> _Adjustment:
    result = _Adjustment()
    if periods < MIN_QUARTERS:
        return result

    # Oldest first
    revenues = [_revenue(s) for s in income_statements[:periods]][::-1]
    profits = [s.net_income or 0.0 for s in income_statements[:periods]][::-1]

    revenue_changes = []
    revenue_growth = revenue_decline = profit_growth = profit_decline = 0
    profit_comparisons = 0
    for i in range(QUARTERS_PER_YEAR, len(revenues)):
        current_revenue, previous_revenue = revenues[i], revenues[i - QUARTERS_PER_YEAR]
        if previous_revenue > 0 and current_revenue > 0:
            change = (current_revenue - previous_revenue) / previous_revenue
            revenue_changes.append(abs(change))
            if change > 0.03:
                revenue_growth += 1
            elif change < -0.05:
                revenue_decline += 1

        current_profit, previous_profit = profits[i], profits[i - QUARTERS_PER_YEAR]
        if previous_profit != 0 and current_profit != 0:
            change = (current_profit - previous_profit) / abs(previous_profit)
            profit_comparisons += 1
            if change > 0.05:
                profit_growth += 1
            elif change < -0.1:
                profit_decline += 1

    revenue_comparisons = len(revenue_changes)
    revenue_growth_ratio = revenue_growth / revenue_comparisons if revenue_comparisons else 0.0
    revenue_decline_ratio = revenue_decline / revenue_comparisons if revenue_comparisons else 0.0
    profit_growth_ratio = profit_growth / profit_comparisons if profit_comparisons else 0.0
    profit_decline_ratio = profit_decline / profit_comparisons if profit_comparisons else 0.0
    revenue_volatility = float(np.mean(revenue_changes)) if revenue_changes else 0.0
    valid_comparisons = min(revenue_comparisons, profit_comparisons)

    if valid_comparisons >= 4:
        if revenue_growth_ratio > 0.6:
            result.score += 10
            result.positive_signals.append("Consistent year-over-year revenue growth")
        elif revenue_decline_ratio > 0.6:
            result.score -= 15
            result.red_flags.append("Recurring year-over-year revenue decline")

        if profit_growth_ratio > 0.5:
            result.score += 8
            result.positive_signals.append("Consistent year-over-year profit growth")
        elif profit_decline_ratio > 0.6:
            result.score -= 12
            result.red_flags.append("Recurring year-over-year profit decline")
    elif valid_comparisons >= 2:
        if revenue_decline_ratio > 0.8:
            result.score -= 8
            result.red_flags.append("Revenue declining (limited data)")
        if profit_decline_ratio > 0.8:
            result.score -= 6
            result.red_flags.append("Profit declining (limited data)")

    if revenue_volatility > 0.3:
        result.score -= 3
        result.red_flags.append("High revenue volatility")
    elif revenue_volatility < 0.1:
        result.score += 3
        result.positive_signals.append("Stable and predictable revenue")

    return result


def _analyze_cash_position(
    balance_sheets: Sequence[BalanceSheet],
    cashflow_statements: Sequence[CashflowStatement],
    strength: CompanyStrength,
    sector: SectorContext,
) -> _Adjustment:
    result = _Adjustment()
    if not balance_sheets or not cashflow_statements:
        return result

    balance = balance_sheets[0]
    cash_ratio = (balance.cash or 0.0) / (balance.total_assets or 1.0)
    current_ratio = (balance.total_current_assets or 0.0) / (balance.total_current_liabilities or 1.0)
    operating_cash_flow = cashflow_statements[0].operating_cash_flow or 0.0

    if _is_strong(strength):
        if operating_cash_flow < 0:
            if cash_ratio > 0.1:
                result.score -= 5
                result.contextual_factors.append("Robust company with reserves to absorb temporary cash burn")
            else:
                result.score -= 10
                result.red_flags.append("Cash burn in a solid company")
        if current_ratio > 1.5:
            result.score += 5
            result.positive_signals.append("Robust liquidity")
    else:
        if operating_cash_flow < 0:
            result.score -= 20
            result.red_flags.append("Cash burn in a fragile company")
        if current_ratio < 1.2:
            result.score -= 15
            result.red_flags.append("Low liquidity in a fragile company")

    if sector.cash_intensive:
        if cash_ratio > 0.15:
            result.positive_signals.append("Cash position adequate for a capital-intensive sector")
        elif cash_ratio < 0.05:
            result.red_flags.append("Low cash position for a sector that requires reserves")

    return result


def _analyze_revenue_quality(
    income_statements: Sequence[IncomeStatement],
    strength: CompanyStrength,
    sector: SectorContext,
    size: SizeContext,
) -> _Adjustment:
    result = _Adjustment()
    if len(income_statements) < 2:
        return result

    revenues = [_revenue(s) for s in income_statements]
    previous = _yoy_previous(revenues)
    if previous is not None:
        revenue_change = (revenues[0] - previous) / abs(previous)
    else:
        previous_revenue = _revenue(income_statements[1], 1.0)
        revenue_change = (revenues[0] - previous_revenue) / previous_revenue
        result.contextual_factors.append("Sequential comparison, not enough year-over-year data")

    threshold = {"HIGH": 0.5, "LOW": 0.15}.get(sector.volatility_tolerance, 0.3)
    if size.category in (SizeCategory.MICRO, SizeCategory.SMALL):
        threshold *= 1.5

    if abs(revenue_change) > threshold:
        if revenue_change > 0:
            if _is_strong(strength):
                result.score += 5
                result.positive_signals.append("Accelerated growth in a solid company")
            else:
                result.contextual_factors.append("Accelerated growth, check sustainability")
        elif _is_strong(strength):
            result.score -= 8
            result.contextual_factors.append("Revenue drop in a robust company")
        else:
            result.score -= 20
            result.red_flags.append("Significant revenue drop in a fragile company")
    elif revenue_change > 0.05:
        result.score += 3
        result.positive_signals.append("Consistent revenue growth")

    return result


def _analyze_margin_quality(
    income_statements: Sequence[IncomeStatement], strength: CompanyStrength, sector: SectorContext
) -> _Adjustment:
    result = _Adjustment()
    if len(income_statements) < 2:
        return result

    latest = income_statements[0]
    current_margin = (latest.net_income or 0.0) / _revenue(latest, 1.0)

    revenues = [_revenue(s) for s in income_statements]
    profits = [s.net_income or 0.0 for s in income_statements]
    previous_revenue = _yoy_previous(revenues)
    previous_profit = _yoy_previous(profits)
    if previous_revenue is not None and previous_profit is not None and previous_revenue > 0:
        previous_margin = previous_profit / previous_revenue
    else:
        previous = income_statements[1]
        previous_margin = (previous.net_income or 0.0) / _revenue(previous, 1.0)

    good, excellent = {"HIGH": (0.15, 0.25), "LOW": (0.05, 0.10)}.get(sector.margin_expectation, (0.10, 0.15))

    if current_margin > excellent:
        result.score += 8
        result.positive_signals.append("Excellent net margin for the sector")
    elif current_margin > good:
        result.score += 4
        result.positive_signals.append("Healthy net margin")
    elif current_margin < 0:
        if _is_strong(strength):
            result.score -= 10
        else:
            result.score -= 20
            result.red_flags.append("Negative net margin")

    if previous_margin > good and current_margin < previous_margin * 0.6:
        if _is_strong(strength):
            result.score -= 8
        else:
            result.score -= 15
            result.red_flags.append("Significant net margin deterioration")

    return result


def _analyze_debt_context(
    balance_sheets: Sequence[BalanceSheet], strength: CompanyStrength, sector: SectorContext
) -> _Adjustment:
    result = _Adjustment()
    if len(balance_sheets) < 2:
        return result

    current_ratio = _debt_ratio(balance_sheets[0])

    liabilities = [b.total_liabilities or 0.0 for b in balance_sheets]
    equities = [b.total_stockholder_equity or 0.0 for b in balance_sheets]
    previous_liabilities = _yoy_previous(liabilities)
    previous_equity = _yoy_previous(equities)
    if (
        previous_liabilities is not None
        and previous_equity is not None
        and previous_liabilities + previous_equity > 0
    ):
        previous_ratio = previous_liabilities / (previous_liabilities + previous_equity)
    else:
        previous_ratio = _debt_ratio(balance_sheets[1])

    high, critical = {
        SectorType.FINANCIAL: (0.8, 0.9),
        SectorType.UTILITY: (0.7, 0.85),
    }.get(sector.type, (0.6, 0.8))

    if current_ratio > critical:
        if strength == CompanyStrength.VERY_STRONG:
            result.score -= 15
        else:
            result.score -= 25
            result.red_flags.append("Excessive leverage")
    elif current_ratio > high:
        if strength == CompanyStrength.WEAK:
            result.score -= 15
            result.red_flags.append("High leverage in a fragile company")
        else:
            result.score -= 8
    elif current_ratio < 0.3:
        result.score += 5
        result.positive_signals.append("Controlled leverage")

    if current_ratio - previous_ratio > 0.15:
        if _is_strong(strength):
            result.score -= 8
        else:
            result.score -= 15
            result.red_flags.append("Fast leverage growth")

    return result


def _analyze_operational_resilience(
    income_statements: Sequence[IncomeStatement],
    balance_sheets: Sequence[BalanceSheet],
    cashflow_statements: Sequence[CashflowStatement],
    strength: CompanyStrength,
) -> _Adjustment:
    result = _Adjustment()
    if not income_statements or not balance_sheets or not cashflow_statements:
        return result

    income, balance = income_statements[0], balance_sheets[0]
    net_income = income.net_income or 0.0
    operating_cash_flow = cashflow_statements[0].operating_cash_flow or 0.0
    revenue = _revenue(income, 1.0)

    if net_income > 0 and operating_cash_flow > 0:
        conversion = operating_cash_flow / net_income
        if conversion > 1.2:
            result.score += 8
            result.positive_signals.append("Excellent conversion of profit into cash")
        elif conversion < 0.5:
            result.score -= 10
            result.red_flags.append("Weak conversion of profit into cash")

    if len(income_statements) >= MIN_QUARTERS:
        recent = np.array([_revenue(s) for s in income_statements[:MIN_QUARTERS]], dtype=float)
        mean = recent.mean()
        if mean != 0:
            volatility = recent.std() / mean
            if volatility < 0.15:
                result.score += 5
                result.positive_signals.append("Stable and predictable revenue")
            elif volatility > 0.4:
                if _is_strong(strength):
                    result.contextual_factors.append("High revenue volatility in a robust company")
                else:
                    result.score -= 8
                    result.red_flags.append("High revenue volatility")

    asset_turnover = revenue / (balance.total_assets or 1.0)
    if asset_turnover > 1.0:
        result.score += 3
        result.positive_signals.append("Efficient use of assets")
    elif asset_turnover < 0.3:
        result.score -= 5

    return result


STRENGTH_MULTIPLIER = {
    CompanyStrength.VERY_STRONG: 1.1,
    CompanyStrength.STRONG: 1.05,
    CompanyStrength.MODERATE: 1.0,
    CompanyStrength.WEAK: 0.9,
}


def _risk_level(score: float, strength: CompanyStrength) -> RiskLevel:
    weak = strength == CompanyStrength.WEAK
    if score < 20 or (score < 40 and weak):
        return RiskLevel.CRITICAL
    if score < 40 or (score < 60 and weak):
        return RiskLevel.HIGH
    if score < 60 or (score < 75 and strength == CompanyStrength.MODERATE):
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def analyze_financial_statements(company: CompanyData) -> StatementsAnalysis:
    """Score the quarterly statements of a company.

    Args:
        company: Company with statement series, most recent quarter first

    Returns:
        StatementsAnalysis with a 0-100 score, flags and risk level
    """
    incomes = company.income_statements
    balances = company.balance_sheets
    cashflows = company.cashflow_statements

    strength = assess_company_strength(incomes, balances, cashflows)
    sector = get_sector_context(company.sector, company.industry)
    size = get_size_context(company.financials.market_cap)

    total = _Adjustment(score=100.0)

    if len(incomes) < MIN_QUARTERS or len(balances) < MIN_QUARTERS or len(cashflows) < MIN_QUARTERS:
        total.score -= 15
        total.red_flags.append("Insufficient history for a complete analysis")
    elif len(incomes) < FULL_HISTORY_QUARTERS:
        total.score -= 5
        total.contextual_factors.append("Limited history, analysis based on partial data")

    periods = min(MAX_QUARTERS, len(incomes))
    total.merge(_analyze_historical_trends(incomes, periods))
    total.merge(_analyze_cash_position(balances, cashflows, strength, sector))
    total.merge(_analyze_revenue_quality(incomes, strength, sector, size))
    total.merge(_analyze_margin_quality(incomes, strength, sector))
    total.merge(_analyze_debt_context(balances, strength, sector))
    total.merge(_analyze_operational_resilience(incomes, balances, cashflows, strength))

    risk_level = _risk_level(total.score, strength)
    final_score = int(max(0, min(100, round(total.score * STRENGTH_MULTIPLIER[strength]))))

    logger.debug(f"{company.ticker}: statements score {final_score} ({strength.value}, risk {risk_level.value})")

    return StatementsAnalysis(
        score=final_score,
        red_flags=[f for f in total.red_flags if f][:MAX_RED_FLAGS],
        positive_signals=[s for s in total.positive_signals if s][:MAX_POSITIVE_SIGNALS],
        risk_level=risk_level,
        company_strength=strength,
        contextual_factors=[c for c in total.contextual_factors if c][:MAX_CONTEXTUAL_FACTORS],
    )
