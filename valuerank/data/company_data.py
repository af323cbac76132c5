"""Company snapshot models.

This module contains the typed value objects the engine consumes: the latest
fundamental ratios of a company, its prior-year history, oscillator readings
and quarterly statement series. A data-loading collaborator builds one
``CompanyData`` per company and per ranking request; the engine never mutates
it.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from valuerank.analysis.numeric import to_number
from valuerank.config.default_pydantic_config import DEFAULT_PYDANTIC_CONFIG


class FinancialSnapshot(BaseModel):
    """Fundamental ratios of one period.

    Ratios are fractions (0.15 = 15%) except multiples such as P/E and
    absolute amounts such as market cap. Every field is optional; numeric
    inputs of any common representation are coerced, and unparseable values
    become None.
    """

    model_config = DEFAULT_PYDANTIC_CONFIG

    eps: float | None = None  # Earnings per share
    book_value_per_share: float | None = None
    pe_ratio: float | None = None  # Price / earnings
    pb_ratio: float | None = None  # Price / book
    ps_ratio: float | None = None  # Price / sales
    dividend_yield: float | None = None
    dividend_yield_12m: float | None = None
    last_dividend: float | None = None
    payout: float | None = None
    roe: float | None = None
    roa: float | None = None
    roic: float | None = None
    net_margin: float | None = None
    ebitda_margin: float | None = None
    current_ratio: float | None = None
    net_debt_to_equity: float | None = None
    net_debt_to_ebitda: float | None = None
    liabilities_to_assets: float | None = None
    earnings_growth: float | None = None
    revenue_growth: float | None = None
    earnings_cagr_5y: float | None = None
    revenue_cagr_5y: float | None = None
    market_cap: float | None = None
    total_revenue: float | None = None
    ev_ebitda: float | None = None
    ebitda: float | None = None
    free_cash_flow: float | None = None
    operating_cash_flow: float | None = None
    shares_outstanding: float | None = None
    earnings_yield: float | None = None
    net_income: float | None = None

    @field_validator("*", mode="before")
    @classmethod
    def coerce_number(cls, v, info):
        if info.field_name == "year":
            return v
        return to_number(v)


class HistoricalFinancials(FinancialSnapshot):
    """Fundamental ratios of one prior fiscal year."""

    year: int


class Indicator(str, Enum):
    """Indicator names that may be averaged over the history."""

    EPS = "eps"
    BOOK_VALUE_PER_SHARE = "book_value_per_share"
    PE_RATIO = "pe_ratio"
    PB_RATIO = "pb_ratio"
    PS_RATIO = "ps_ratio"
    DIVIDEND_YIELD = "dividend_yield"
    DIVIDEND_YIELD_12M = "dividend_yield_12m"
    LAST_DIVIDEND = "last_dividend"
    PAYOUT = "payout"
    ROE = "roe"
    ROA = "roa"
    ROIC = "roic"
    NET_MARGIN = "net_margin"
    EBITDA_MARGIN = "ebitda_margin"
    CURRENT_RATIO = "current_ratio"
    NET_DEBT_TO_EQUITY = "net_debt_to_equity"
    NET_DEBT_TO_EBITDA = "net_debt_to_ebitda"
    LIABILITIES_TO_ASSETS = "liabilities_to_assets"
    EARNINGS_GROWTH = "earnings_growth"
    REVENUE_GROWTH = "revenue_growth"
    EARNINGS_CAGR_5Y = "earnings_cagr_5y"
    REVENUE_CAGR_5Y = "revenue_cagr_5y"
    MARKET_CAP = "market_cap"
    TOTAL_REVENUE = "total_revenue"
    EV_EBITDA = "ev_ebitda"
    EBITDA = "ebitda"
    FREE_CASH_FLOW = "free_cash_flow"
    OPERATING_CASH_FLOW = "operating_cash_flow"
    SHARES_OUTSTANDING = "shares_outstanding"
    EARNINGS_YIELD = "earnings_yield"
    NET_INCOME = "net_income"


class TechnicalSignal(str, Enum):
    """Aggregated oscillator reading."""

    OVERSOLD = "oversold"
    """Momentum indicators point to an oversold asset."""

    OVERBOUGHT = "overbought"
    """Momentum indicators point to an overbought asset."""

    NEUTRAL = "neutral"
    """No clear signal."""


class TechnicalAnalysisData(BaseModel):
    """Oscillator readings used for timing."""

    model_config = DEFAULT_PYDANTIC_CONFIG

    rsi: float | None = None
    stochastic_k: float | None = None
    stochastic_d: float | None = None
    overall_signal: TechnicalSignal | None = None

    @field_validator("rsi", "stochastic_k", "stochastic_d", mode="before")
    @classmethod
    def coerce_number(cls, v):
        return to_number(v)


class IncomeStatement(BaseModel):
    """Quarterly income statement line items."""

    model_config = DEFAULT_PYDANTIC_CONFIG

    total_revenue: float | None = None
    operating_income: float | None = None
    net_income: float | None = None

    @field_validator("*", mode="before")
    @classmethod
    def coerce_number(cls, v):
        return to_number(v)


class BalanceSheet(BaseModel):
    """Quarterly balance sheet line items."""

    model_config = DEFAULT_PYDANTIC_CONFIG

    cash: float | None = None
    total_assets: float | None = None
    total_current_assets: float | None = None
    total_current_liabilities: float | None = None
    total_liabilities: float | None = None
    total_stockholder_equity: float | None = None

    @field_validator("*", mode="before")
    @classmethod
    def coerce_number(cls, v):
        return to_number(v)


class CashflowStatement(BaseModel):
    """Quarterly cash flow line items."""

    model_config = DEFAULT_PYDANTIC_CONFIG

    operating_cash_flow: float | None = None

    @field_validator("*", mode="before")
    @classmethod
    def coerce_number(cls, v):
        return to_number(v)


class CompanyData(BaseModel):
    """Read-only snapshot of one listed company."""

    model_config = DEFAULT_PYDANTIC_CONFIG

    ticker: str
    name: str = ""
    sector: Optional[str] = None
    industry: Optional[str] = None
    current_price: float
    logo_url: Optional[str] = None

    financials: FinancialSnapshot = Field(default_factory=FinancialSnapshot)
    historical_financials: List[HistoricalFinancials] = Field(default_factory=list)
    technical_analysis: Optional[TechnicalAnalysisData] = None

    income_statements: List[IncomeStatement] = Field(default_factory=list)
    balance_sheets: List[BalanceSheet] = Field(default_factory=list)
    cashflow_statements: List[CashflowStatement] = Field(default_factory=list)

    # Latest persisted overall score, when the loader provides one
    overall_score: Optional[float] = None

    @field_validator("ticker", mode="before")
    @classmethod
    def normalize_ticker(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("current_price", "overall_score", mode="before")
    @classmethod
    def coerce_number(cls, v):
        return to_number(v)

    @property
    def has_statements(self) -> bool:
        """Whether any quarterly statement series is present."""
        return bool(self.income_statements or self.balance_sheets or self.cashflow_statements)
