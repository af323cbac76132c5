"""Tests for the financial statement quality analysis."""

from valuerank.analysis.statements_analysis import (
    CompanyStrength,
    RiskLevel,
    SectorType,
    SizeCategory,
    analyze_financial_statements,
    assess_company_strength,
    get_sector_context,
    get_size_context,
)
from valuerank.data.company_data import BalanceSheet, CashflowStatement, CompanyData, IncomeStatement

N_QUARTERS = 8


def _healthy_company() -> CompanyData:
    # Most recent quarter first, revenue growing 2% per quarter
    revenues = [1000 * 1.02 ** (N_QUARTERS - 1 - i) for i in range(N_QUARTERS)]
    return CompanyData(
        ticker="HLTH3",
        current_price=10.0,
        income_statements=[IncomeStatement(total_revenue=r, net_income=0.2 * r) for r in revenues],
        balance_sheets=[
            BalanceSheet(
                cash=400,
                total_assets=2000,
                total_current_assets=900,
                total_current_liabilities=400,
                total_liabilities=500,
                total_stockholder_equity=1500,
            )
        ]
        * N_QUARTERS,
        cashflow_statements=[CashflowStatement(operating_cash_flow=0.25 * r) for r in revenues],
    )


class TestCompanyStrength:
    """Test the robustness classification."""

    def test_missing_statements_are_weak(self):
        """Test that incomplete series classify as weak."""
        assert assess_company_strength([], [], []) == CompanyStrength.WEAK

    def test_healthy_company_is_very_strong(self):
        """Test cash, liquidity, margin, leverage and cash flow all scoring."""
        company = _healthy_company()
        strength = assess_company_strength(
            company.income_statements, company.balance_sheets, company.cashflow_statements
        )
        assert strength == CompanyStrength.VERY_STRONG


class TestContexts:
    """Test sector and size context mapping."""

    def test_sector_context(self):
        """Test sector families from sector and industry names."""
        assert get_sector_context("Financial Services", None).type == SectorType.FINANCIAL
        assert get_sector_context(None, "Seguros").type == SectorType.FINANCIAL
        assert get_sector_context("Basic Materials", None).type == SectorType.COMMODITY
        assert get_sector_context(None, None).type == SectorType.OTHER

    def test_size_context(self):
        """Test market-cap categories."""
        assert get_size_context(None).category == SizeCategory.SMALL
        assert get_size_context(500_000_000).category == SizeCategory.MICRO
        assert get_size_context(50_000_000_000).category == SizeCategory.LARGE
        assert get_size_context(200_000_000_000).category == SizeCategory.MEGA


class TestAnalyzeFinancialStatements:
    """Test the aggregated statement score."""

    def test_healthy_statements(self):
        """Test a growing, profitable, liquid company scores high with low risk."""
        analysis = analyze_financial_statements(_healthy_company())

        assert analysis.score >= 90
        assert analysis.risk_level == RiskLevel.LOW
        assert analysis.company_strength == CompanyStrength.VERY_STRONG
        assert "Consistent year-over-year revenue growth" in analysis.positive_signals
        assert not analysis.red_flags

    def test_missing_statements(self):
        """Test a company without statements is penalized for insufficient history."""
        analysis = analyze_financial_statements(CompanyData(ticker="NONE3", current_price=10.0))

        assert analysis.company_strength == CompanyStrength.WEAK
        assert "Insufficient history for a complete analysis" in analysis.red_flags
        assert 0 <= analysis.score <= 100
