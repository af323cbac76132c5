"""Configuration of the overall score aggregator.

The aggregator runs every core strategy with a fixed set of default
parameters and combines their scores with the weights below. Both the
defaults and the weights are immutable values handed to the aggregator.
"""

from pydantic import BaseModel, Field, model_validator

from valuerank.config.default_pydantic_config import DEFAULT_PYDANTIC_CONFIG
from valuerank.config.strategy_params import (
    DCFParams,
    DividendYieldParams,
    FundamentalistParams,
    GordonParams,
    GrahamParams,
    LowPEParams,
    MagicFormulaParams,
)


class OverallScoreWeights(BaseModel):
    """Relative weight of each component in the overall score."""

    model_config = DEFAULT_PYDANTIC_CONFIG

    graham: float = Field(default=0.15, ge=0.0, le=1.0)
    dividend_yield: float = Field(default=0.15, ge=0.0, le=1.0)
    low_pe: float = Field(default=0.20, ge=0.0, le=1.0)
    magic_formula: float = Field(default=0.15, ge=0.0, le=1.0)
    dcf: float = Field(default=0.20, ge=0.0, le=1.0)
    gordon: float = Field(default=0.05, ge=0.0, le=1.0)
    statements: float = Field(default=0.10, ge=0.0, le=1.0)
    fundamentalist: float = Field(default=0.0, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def validate_not_all_zero(self) -> "OverallScoreWeights":
        """At least one component must carry weight."""
        if sum(self.model_dump().values()) <= 0:
            raise ValueError("At least one overall score weight must be positive")
        return self


class StrategyDefaults(BaseModel):
    """Parameters each strategy runs with inside the aggregator."""

    model_config = DEFAULT_PYDANTIC_CONFIG

    graham: GrahamParams = Field(default_factory=GrahamParams)
    dividend_yield: DividendYieldParams = Field(default_factory=lambda: DividendYieldParams(min_yield=0.04))
    low_pe: LowPEParams = Field(default_factory=lambda: LowPEParams(max_pe=15, min_roe=0.12))
    magic_formula: MagicFormulaParams = Field(default_factory=MagicFormulaParams)
    dcf: DCFParams = Field(default_factory=DCFParams)
    gordon: GordonParams = Field(
        default_factory=lambda: GordonParams(discount_rate=0.11, dividend_growth_rate=0.04)
    )
    fundamentalist: FundamentalistParams = Field(default_factory=FundamentalistParams)


class OverallScoreConfig(BaseModel):
    """Settings of the overall score aggregator.

    Attributes:
        weights: Weight per component
        fallback_score: Score assigned when the computation fails
        strategy_defaults: Parameters used for each strategy run
    """

    model_config = DEFAULT_PYDANTIC_CONFIG

    weights: OverallScoreWeights = Field(default_factory=OverallScoreWeights)

    fallback_score: float = Field(
        default=30.0,
        ge=0.0,
        le=100.0,
        description="Conservative score returned when the computation raises",
    )

    price_compatible_upside: float = Field(
        default=10.0,
        description="Minimum upside (percent) for a fair-value strategy to contribute its own score",
    )

    strategy_defaults: StrategyDefaults = Field(default_factory=StrategyDefaults)
