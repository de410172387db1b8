"""Configuration models."""

from typing import Any
from pydantic import BaseModel, ConfigDict, Field


class TokenEstimatorConfig(BaseModel):
    """Tuning constants for the tokenizer-free estimator."""

    model_config = ConfigDict(frozen=True)

    chars_per_token: int = Field(default=4, gt=0, description="Characters per token")
    message_overhead: int = Field(
        default=4, ge=0, description="Fixed tokens per message for role framing"
    )
    block_overhead: int = Field(
        default=3, ge=0, description="Fixed tokens per non-text content block"
    )
    tool_overhead: int = Field(default=10, ge=0, description="Fixed tokens per tool schema")


class ContextConfig(BaseModel):
    """Context window configuration owned by one context manager."""

    model_config = ConfigDict(validate_assignment=True)

    max_context_tokens: int = Field(
        default=100000, gt=0, description="Hard ceiling on estimated tokens"
    )
    compact_threshold: float = Field(
        default=0.8,
        gt=0.0,
        le=1.0,
        description="Fraction of the ceiling at which compaction is advised",
    )
    auto_compact: bool = Field(default=True, description="Compact automatically at threshold")
    clear_tool_results: bool = Field(
        default=True, description="Truncate tool result payloads during compaction"
    )
    truncation_marker: str = Field(
        default="[tool result truncated]",
        description="Placeholder replacing truncated tool result payloads",
    )
    estimator: TokenEstimatorConfig = Field(
        default_factory=TokenEstimatorConfig, description="Token estimator constants"
    )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ContextConfig":
        """Build configuration from a plain dict."""
        return cls.model_validate(data)

    @classmethod
    def from_yaml(cls, path: str) -> "ContextConfig":
        """Load configuration from YAML file.

        The file may hold the settings at top level or under a
        ``context`` key.
        """
        import yaml

        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if "context" in data:
            data = data["context"]
        return cls.from_dict(data)
