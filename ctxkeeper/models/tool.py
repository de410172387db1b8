"""Tool schema models."""

from typing import Any
from pydantic import BaseModel, ConfigDict, Field


class ToolSchema(BaseModel):
    """Tool definition sent alongside the conversation.

    Only used for sizing; schemas are never compacted.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    name: str = Field(description="Tool name")
    description: str = Field(default="", description="Tool description")
    input_schema: dict[str, Any] = Field(
        default_factory=dict, description="JSON schema of the tool input"
    )

    def to_api_dict(self) -> dict[str, Any]:
        """Convert to the plain tool payload sent to a model client."""
        return self.model_dump(mode="json")
