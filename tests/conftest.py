"""
Test configuration for valuerank-core tests.
"""

from datetime import date

import pytest

from valuerank.config.strategy_params import QualityFilterConfig
from valuerank.data.company_data import CompanyData, FinancialSnapshot, HistoricalFinancials
from valuerank.data.dividend_providers import DividendPayment


@pytest.fixture
def make_company():
    """Factory building a CompanyData from keyword financials."""

    def _make_company(ticker="WEGE3", current_price=50.0, sector=None, history=None, **financials):
        return CompanyData(
            ticker=ticker,
            name=f"{ticker} S.A.",
            sector=sector,
            current_price=current_price,
            financials=FinancialSnapshot(**financials),
            historical_financials=[HistoricalFinancials(**row) for row in (history or [])],
        )

    return _make_company


@pytest.fixture
def no_quality_filter():
    """Disabled exclusion filter, so rankings only apply strategy rules."""
    return QualityFilterConfig(enabled=False)


@pytest.fixture
def graham_company(make_company):
    """Solid company priced below its Graham number (fair value ~67.08)."""
    return make_company(
        ticker="WEGE3",
        current_price=50.0,
        eps=5.0,
        book_value_per_share=40.0,
        pe_ratio=10.0,
        pb_ratio=1.25,
        roe=0.15,
        current_ratio=1.8,
        net_margin=0.12,
        net_debt_to_equity=0.4,
        earnings_growth=0.08,
        earnings_cagr_5y=0.10,
        market_cap=5_000_000_000,
        net_income=1_000_000_000,
    )


@pytest.fixture
def value_company(make_company):
    """Cheap, profitable company passing the value, yield and magic formula checks."""
    return make_company(
        ticker="ABCD3",
        current_price=20.0,
        pe_ratio=10.0,
        roe=0.20,
        roa=0.10,
        roic=0.20,
        net_margin=0.15,
        revenue_growth=0.05,
        current_ratio=1.5,
        net_debt_to_equity=0.5,
        dividend_yield=0.08,
        earnings_yield=0.10,
        market_cap=5_000_000_000,
    )


@pytest.fixture
def utility_company(make_company):
    """Perennial-sector dividend payer priced at 30."""
    return make_company(
        ticker="TAEE11",
        current_price=30.0,
        sector="Energia Elétrica",
        dividend_yield=0.07,
        last_dividend=1.5,
        roe=0.15,
        net_debt_to_equity=0.5,
        net_margin=0.30,
        payout=0.70,
        market_cap=10_000_000_000,
    )


@pytest.fixture
def dividend_payments():
    """Two yearly totals of 2.00 per share (2023 and 2024)."""
    return [
        DividendPayment(ex_date=date(2024, 11, 20), amount=1.2),
        DividendPayment(ex_date=date(2024, 5, 15), amount=0.8),
        DividendPayment(ex_date=date(2023, 8, 10), amount=2.0),
    ]
