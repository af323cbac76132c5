"""Shared pydantic model configuration."""

from pydantic import ConfigDict

DEFAULT_PYDANTIC_CONFIG = ConfigDict(
    frozen=True,
    extra="forbid",
    validate_default=True,
    use_enum_values=False,
    arbitrary_types_allowed=False,
)
