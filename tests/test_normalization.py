"""Tests for company-level normalization helpers and deduplication."""

import pytest

from valuerank.analysis.deduplication import extract_company_prefix, remove_duplicate_companies
from valuerank.analysis.normalization import (
    extract_historical_values,
    filter_by_asset_type,
    filter_companies_by_size,
    filter_ticker_ending_digits,
    get_indicator_value,
    is_bdr_ticker,
)
from valuerank.config.strategy_params import AssetTypeFilter, CompanySize
from valuerank.data.analysis_results import build_ranking_result
from valuerank.data.company_data import Indicator


class TestIndicatorValues:
    """Test latest-value and averaged indicator access."""

    def test_extract_sorted_most_recent_first(self, make_company):
        """Test history values are ordered by year descending, missing dropped."""
        company = make_company(
            history=[
                {"year": 2021, "roe": 0.10},
                {"year": 2023, "roe": 0.30},
                {"year": 2022, "roe": None},
            ]
        )
        assert extract_historical_values(company.historical_financials, Indicator.ROE) == [0.30, 0.10]

    def test_latest_value_without_averages(self, make_company):
        """Test the toggle off returns the latest value."""
        company = make_company(roe=0.20, history=[{"year": 2023, "roe": 0.10}])
        assert get_indicator_value(company, Indicator.ROE, use_averages=False) == 0.20

    def test_averaged_value(self, make_company):
        """Test the toggle on averages current and history."""
        company = make_company(roe=0.20, history=[{"year": 2023, "roe": 0.10}, {"year": 2022, "roe": 0.30}])
        assert get_indicator_value(company, Indicator.ROE, use_averages=True) == pytest.approx(0.20)


class TestUniverseFilters:
    """Test size, asset-type and share-class filters."""

    def test_size_buckets(self, make_company):
        """Test market-cap buckets and exclusion of unknown market caps."""
        small = make_company(ticker="SMAL3", market_cap=1_000_000_000)
        mid = make_company(ticker="MIDD3", market_cap=2_000_000_000)
        blue = make_company(ticker="BLUE3", market_cap=10_000_000_000)
        unknown = make_company(ticker="UNKN3")
        universe = [small, mid, blue, unknown]

        assert filter_companies_by_size(universe, CompanySize.ALL) == universe
        assert filter_companies_by_size(universe, CompanySize.SMALL_CAPS) == [small]
        assert filter_companies_by_size(universe, CompanySize.MID_CAPS) == [mid]
        assert filter_companies_by_size(universe, CompanySize.BLUE_CHIPS) == [blue]

    def test_bdr_detection(self):
        """Test depositary receipt tickers, with and without the .SA suffix."""
        assert is_bdr_ticker("AAPL34")
        assert is_bdr_ticker("msft34.sa")
        assert is_bdr_ticker("GOGL35")
        assert not is_bdr_ticker("PETR4")
        assert not is_bdr_ticker("TAEE11")

    def test_asset_type_filter(self, make_company):
        """Test local-only, BDR-only and combined universes."""
        local = make_company(ticker="PETR4")
        bdr = make_company(ticker="AAPL34")
        assert filter_by_asset_type([local, bdr], AssetTypeFilter.B3) == [local]
        assert filter_by_asset_type([local, bdr], AssetTypeFilter.BDR) == [bdr]
        assert filter_by_asset_type([local, bdr], AssetTypeFilter.BOTH) == [local, bdr]

    def test_ending_digits(self, make_company):
        """Test secondary classes are dropped while BDRs and units stay."""
        kept = [make_company(ticker=t) for t in ("PETR4", "PETR3", "TAEE11", "GOGL35")]
        dropped = [make_company(ticker=t) for t in ("ABCD5", "ABCD6", "XPTO9")]
        assert filter_ticker_ending_digits(kept + dropped) == kept


class TestDeduplication:
    """Test share-class deduplication of rankings."""

    def test_company_prefix(self):
        """Test stripping of share-class suffixes."""
        assert extract_company_prefix("PETR4") == "PETR"
        assert extract_company_prefix("BPAC11") == "BPAC"
        assert extract_company_prefix("petr3.SA") == "PETR"

    def test_keeps_first_entry_per_issuer(self, make_company):
        """Test the highest ranked share class survives, order preserved."""
        results = [
            build_ranking_result(make_company(ticker=t), "r") for t in ("PETR4", "VALE3", "PETR3", "ITUB4")
        ]
        unique = remove_duplicate_companies(results)
        assert [r.ticker for r in unique] == ["PETR4", "VALE3", "ITUB4"]
