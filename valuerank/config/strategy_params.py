"""Strategy parameter models.

Each valuation strategy receives exactly one immutable parameter object per
invocation. The models below hold the thresholds, discount and growth rates
and toggles the strategies read.

Design Principles:
- Immutable: frozen=True, so a parameter object can be shared across
  concurrent ranking requests.
- Explicit: no module-level defaults are consulted at call time; every value
  travels with the object.
- Validated: ranges are enforced on construction and invalid combinations
  raise ValueError.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from valuerank.config.default_pydantic_config import DEFAULT_PYDANTIC_CONFIG


class CompanySize(str, Enum):
    """Market-cap bucket used to restrict a ranking universe."""

    ALL = "all"
    """No size restriction."""

    SMALL_CAPS = "small_caps"
    """Market cap below 2 billion."""

    MID_CAPS = "mid_caps"
    """Market cap between 2 and 10 billion."""

    BLUE_CHIPS = "blue_chips"
    """Market cap of 10 billion or more."""


class AssetTypeFilter(str, Enum):
    """Which listings a ranking considers."""

    B3 = "b3"
    """Local shares only."""

    BDR = "bdr"
    """Depositary receipts only."""

    BOTH = "both"
    """Local shares and depositary receipts."""


class QualityFilterConfig(BaseModel):
    """Settings of the profit-consistency and overall-score gate.

    The gate runs in every ranking before strategy-specific eligibility.
    """

    model_config = DEFAULT_PYDANTIC_CONFIG

    enabled: bool = Field(
        default=True,
        description="Apply the exclusion filter before strategy eligibility",
    )

    min_overall_score: float = Field(
        default=50.0,
        ge=0.0,
        le=100.0,
        description="Companies with an overall score below this value are excluded",
    )


class StrategyParams(BaseModel):
    """Parameters shared by every strategy."""

    model_config = DEFAULT_PYDANTIC_CONFIG

    limit: int = Field(default=50, ge=1, description="Maximum number of ranking results")

    company_size: CompanySize = Field(
        default=CompanySize.ALL,
        description="Market-cap bucket applied before ranking",
    )

    use_technical_analysis: bool = Field(
        default=False,
        description="Reorder results within quality bands using technical timing",
    )

    use_7_year_averages: bool = Field(
        default=False,
        description="Use up-to-7-year averages of indicators instead of the latest value",
    )

    quality_filter: QualityFilterConfig = Field(
        default_factory=QualityFilterConfig,
        description="Profit-consistency and overall-score gate",
    )


class GrahamParams(StrategyParams):
    """Parameters of the Graham fair-value strategy."""

    margin_of_safety: float = Field(
        default=0.10,
        ge=0.0,
        le=5.0,
        description="Minimum upside (fraction) required in the ranking",
    )


class DCFParams(StrategyParams):
    """Parameters of the discounted-cash-flow strategy."""

    growth_rate: float = Field(default=0.025, ge=-0.5, le=0.5, description="Perpetual growth rate")
    discount_rate: float = Field(default=0.10, gt=0.0, le=1.0, description="Discount rate (WACC)")
    years_projection: int = Field(default=5, ge=1, le=30, description="Years of explicit projection")
    min_margin_of_safety: float = Field(
        default=0.20,
        ge=0.0,
        le=5.0,
        description="Minimum upside (fraction) for eligibility",
    )

    @model_validator(mode="after")
    def validate_rates(self) -> "DCFParams":
        """Reject a perpetuity that does not converge."""
        if self.discount_rate <= self.growth_rate:
            raise ValueError(
                f"discount_rate ({self.discount_rate}) must be greater than growth_rate ({self.growth_rate})"
            )
        return self


class GordonParams(StrategyParams):
    """Parameters of the dividend-discount (Gordon) strategy."""

    discount_rate: float = Field(default=0.12, gt=0.0, le=1.0, description="Required return")
    dividend_growth_rate: float = Field(default=0.05, ge=-0.5, le=0.5, description="Dividend growth rate")
    use_sectoral_adjustment: bool = Field(
        default=True,
        description="Adjust rates with the sector table",
    )
    sectoral_wacc_adjustment: Optional[float] = Field(
        default=None,
        ge=-0.02,
        le=0.05,
        description="Manual adjustment added to the sector-adjusted discount rate",
    )


class BarsiParams(StrategyParams):
    """Parameters of the income-ceiling (Barsi) strategy."""

    use_7_year_averages: bool = Field(default=True)

    target_dividend_yield: float = Field(default=0.06, gt=0.0, le=1.0, description="Target dividend yield")
    max_price_to_pay_multiplier: float = Field(
        default=1.0,
        gt=0.0,
        le=5.0,
        description="Multiplier applied to the ceiling price",
    )
    min_consecutive_dividends: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Years inspected by the consistent-dividend check",
    )
    max_debt_to_equity: float = Field(default=1.0, ge=0.0, description="Maximum net debt / equity")
    min_roe: float = Field(default=0.10, description="Minimum return on equity")
    focus_on_best: bool = Field(default=True, description="Require a perennial sector")
    reference_year: Optional[int] = Field(
        default=None,
        ge=1900,
        description="Year the dividend window ends at; defaults to the current year",
    )
    max_concurrent_lookups: int = Field(
        default=8,
        ge=1,
        le=128,
        description="Upper bound of dividend-history lookups in flight",
    )


class LowPEParams(StrategyParams):
    """Parameters of the low price/earnings strategy."""

    use_7_year_averages: bool = Field(default=True)

    max_pe: float = Field(default=15.0, gt=3.0, description="Maximum P/E")
    min_roe: float = Field(default=0.15, description="Minimum return on equity")
    asset_type_filter: AssetTypeFilter = Field(default=AssetTypeFilter.BOTH)


class DividendYieldParams(StrategyParams):
    """Parameters of the dividend-yield (anti dividend trap) strategy."""

    min_yield: float = Field(default=0.06, ge=0.0, le=1.0, description="Minimum dividend yield")


class MagicFormulaParams(StrategyParams):
    """Parameters of the magic-formula strategy."""

    min_roic: float = Field(default=0.0, description="Minimum return on invested capital")
    min_ey: float = Field(default=0.0, description="Minimum earnings yield")
    asset_type_filter: AssetTypeFilter = Field(default=AssetTypeFilter.BOTH)


class FundamentalistParams(StrategyParams):
    """Parameters of the fundamentalist 3+1 strategy."""

    min_roe: float = Field(default=0.15, description="ROE target for banks and unlevered companies")
    min_roic: float = Field(default=0.15, description="ROIC target for levered companies")
    max_debt_to_ebitda: float = Field(default=3.0, gt=0.0, description="Maximum net debt / EBITDA")
    min_payout: float = Field(default=0.40, ge=0.0, le=1.0)
    max_payout: float = Field(default=0.80, ge=0.0, le=2.0)

    @model_validator(mode="after")
    def validate_payout_range(self) -> "FundamentalistParams":
        """Ensure the payout band is ordered."""
        if self.min_payout > self.max_payout:
            raise ValueError(f"min_payout ({self.min_payout}) must not exceed max_payout ({self.max_payout})")
        return self


class ScreeningFilter(BaseModel):
    """Range constraint on one indicator; a no-op unless enabled."""

    model_config = DEFAULT_PYDANTIC_CONFIG

    enabled: bool = False
    min: Optional[float] = None
    max: Optional[float] = None

    @model_validator(mode="after")
    def validate_bounds(self) -> "ScreeningFilter":
        """Ensure min does not exceed max."""
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError(f"Filter min ({self.min}) must not exceed max ({self.max})")
        return self

    def accepts(self, value: Optional[float]) -> bool:
        """Check a present value against the bounds."""
        if value is None:
            return False
        if self.min is not None and value < self.min:
            return False
        if self.max is not None and value > self.max:
            return False
        return True


class ScreeningParams(StrategyParams):
    """Parameters of the configurable screening strategy."""

    limit: int = Field(default=100, ge=1)

    pe_filter: ScreeningFilter = Field(default_factory=ScreeningFilter)
    pb_filter: ScreeningFilter = Field(default_factory=ScreeningFilter)
    ev_ebitda_filter: ScreeningFilter = Field(default_factory=ScreeningFilter)
    ps_filter: ScreeningFilter = Field(default_factory=ScreeningFilter)

    roe_filter: ScreeningFilter = Field(default_factory=ScreeningFilter)
    roic_filter: ScreeningFilter = Field(default_factory=ScreeningFilter)
    roa_filter: ScreeningFilter = Field(default_factory=ScreeningFilter)
    net_margin_filter: ScreeningFilter = Field(default_factory=ScreeningFilter)
    ebitda_margin_filter: ScreeningFilter = Field(default_factory=ScreeningFilter)

    earnings_cagr_filter: ScreeningFilter = Field(default_factory=ScreeningFilter)
    revenue_cagr_filter: ScreeningFilter = Field(default_factory=ScreeningFilter)

    dividend_yield_filter: ScreeningFilter = Field(default_factory=ScreeningFilter)
    payout_filter: ScreeningFilter = Field(default_factory=ScreeningFilter)

    net_debt_to_equity_filter: ScreeningFilter = Field(default_factory=ScreeningFilter)
    current_ratio_filter: ScreeningFilter = Field(default_factory=ScreeningFilter)
    net_debt_to_ebitda_filter: ScreeningFilter = Field(default_factory=ScreeningFilter)

    market_cap_filter: ScreeningFilter = Field(default_factory=ScreeningFilter)
    overall_score_filter: ScreeningFilter = Field(default_factory=ScreeningFilter)
    graham_upside_filter: ScreeningFilter = Field(default_factory=ScreeningFilter)

    selected_sectors: List[str] = Field(default_factory=list)
    selected_industries: List[str] = Field(default_factory=list)
    asset_type_filter: AssetTypeFilter = Field(default=AssetTypeFilter.BOTH)

    @field_validator("selected_sectors", "selected_industries", mode="before")
    @classmethod
    def validate_selection(cls, v):
        """Accept a single name as a one-element selection."""
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v

    def range_filters(self) -> Dict[str, ScreeningFilter]:
        """Return the range filters keyed by field name."""
        return {
            name: getattr(self, name)
            for name in type(self).model_fields
            if isinstance(getattr(self, name), ScreeningFilter)
        }

    def active_filter_count(self) -> int:
        """Count enabled range filters plus non-empty sector and industry selections."""
        count = sum(1 for f in self.range_filters().values() if f.enabled)
        if self.selected_sectors:
            count += 1
        if self.selected_industries:
            count += 1
        return count
