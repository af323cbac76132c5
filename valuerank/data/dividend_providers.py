"""Dividend history providers.

The income-ceiling strategy needs the cash dividends a company paid over the
last years. Loading them is an external concern; this module defines the
interface the strategy calls plus two implementations:

- An in-memory provider backed by a pandas DataFrame, used when the caller
  has already loaded the payments
- A unified provider that tries several providers in order and falls back
  to the next one when a provider fails
"""

import logging
from abc import ABC, abstractmethod
from datetime import date
from typing import Dict, List, Optional

import pandas as pd
from pydantic import BaseModel, field_validator

from valuerank.analysis.numeric import to_number
from valuerank.config.default_pydantic_config import DEFAULT_PYDANTIC_CONFIG

logger = logging.getLogger(__name__)


class DividendPayment(BaseModel):
    """One cash distribution per share."""

    model_config = DEFAULT_PYDANTIC_CONFIG

    ex_date: date
    amount: float

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount(cls, v):
        return to_number(v)


class DividendHistoryProvider(ABC):
    """Abstract base class for dividend history sources."""

    @abstractmethod
    def get_dividend_history(self, ticker: str) -> List[DividendPayment]:
        """Get the dividend payments of a ticker.

        Args:
            ticker: Ticker symbol

        Returns:
            Payments in any order; empty when none are known
        """
        pass


class InMemoryDividendProvider(DividendHistoryProvider):
    """Provider serving payments held in a DataFrame.

    The frame has the columns ``ticker``, ``ex_date`` and ``amount``.
    """

    REQUIRED_COLUMNS = ("ticker", "ex_date", "amount")

    def __init__(self, df_dividends: Optional[pd.DataFrame] = None):
        """Initialize the provider.

        Args:
            df_dividends: Payments of all tickers

        Raises:
            ValueError: If a required column is missing
        """
        if df_dividends is None:
            df_dividends = pd.DataFrame(columns=list(self.REQUIRED_COLUMNS))

        missing = [c for c in self.REQUIRED_COLUMNS if c not in df_dividends.columns]
        if missing:
            raise ValueError(f"Dividend frame is missing columns: {missing}")

        df = df_dividends.loc[:, list(self.REQUIRED_COLUMNS)].copy()
        df["ticker"] = df["ticker"].astype(str).str.upper()
        df["ex_date"] = pd.to_datetime(df["ex_date"]).dt.date
        df["amount"] = pd.to_numeric(df["amount"], errors="coerce")
        self._df = df.dropna(subset=["amount"])

        logger.debug(f"Loaded {len(self._df)} dividend payments for {self._df['ticker'].nunique()} tickers")

    @classmethod
    def from_payments(cls, payments: Dict[str, List[DividendPayment]]) -> "InMemoryDividendProvider":
        """Build a provider from payments grouped by ticker."""
        rows = [
            {"ticker": ticker, "ex_date": p.ex_date, "amount": p.amount}
            for ticker, ticker_payments in payments.items()
            for p in ticker_payments
        ]
        return cls(pd.DataFrame(rows, columns=list(cls.REQUIRED_COLUMNS)))

    def get_dividend_history(self, ticker: str) -> List[DividendPayment]:
        """Return the stored payments of a ticker, most recent first."""
        df_ticker = self._df[self._df["ticker"] == ticker.upper()].sort_values("ex_date", ascending=False)
        return [
            DividendPayment(ex_date=row.ex_date, amount=row.amount)
            for row in df_ticker.itertuples(index=False)
        ]


class UnifiedDividendProvider(DividendHistoryProvider):
    """Provider that tries multiple sources with fallback.

    Providers are asked in order; a provider that raises is skipped and an
    empty answer falls through to the next provider.
    """

    def __init__(self, providers: List[DividendHistoryProvider], enable_caching: bool = False):
        """Initialize unified provider.

        Args:
            providers: Providers to try in order (first = highest priority)
            enable_caching: Whether to remember non-empty answers per ticker
        """
        if not providers:
            raise ValueError("At least one dividend history provider must be provided")

        self.providers = providers
        self._cache: Optional[Dict[str, List[DividendPayment]]] = {} if enable_caching else None

    def get_dividend_history(self, ticker: str) -> List[DividendPayment]:
        """Get payments from the first provider that has them.

        Args:
            ticker: Ticker symbol

        Returns:
            Payments of the first successful provider, empty when none has any
        """
        if self._cache is not None and ticker in self._cache:
            return list(self._cache[ticker])

        for provider in self.providers:
            try:
                payments = provider.get_dividend_history(ticker)
            except Exception as e:
                logger.warning(f"{provider.__class__.__name__} failed for {ticker}: {e}")
                continue

            if payments:
                logger.debug(f"Dividends for {ticker} fetched from {provider.__class__.__name__}")
                if self._cache is not None:
                    self._cache[ticker] = list(payments)
                return list(payments)

        logger.debug(f"No dividend history found for {ticker}")
        return []
