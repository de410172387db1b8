"""Message models for conversation context."""

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union
from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    RootModel,
    Tag,
    ValidationError,
    field_validator,
)


class Role(str, Enum):
    """Message roles."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class BlockType(str, Enum):
    """Content block kinds with special handling."""

    TEXT = "text"
    TOOL_USE = "tool_use"
    TOOL_RESULT = "tool_result"
    OTHER = "other"


class TextBlock(BaseModel):
    """Plain text fragment of a message."""

    model_config = ConfigDict(frozen=True, extra="allow")

    type: Literal["text"] = Field(default="text", description="Block type")
    text: str = Field(description="Text payload")


class ToolUseBlock(BaseModel):
    """A tool invocation issued by the assistant."""

    model_config = ConfigDict(frozen=True, extra="allow")

    type: Literal["tool_use"] = Field(default="tool_use", description="Block type")
    id: str = Field(description="Stable identifier of this invocation")
    name: str = Field(default="", description="Name of the tool to call")
    input: Any = Field(default_factory=dict, description="Structured tool input")


class ToolResultBlock(BaseModel):
    """The result answering a tool invocation."""

    model_config = ConfigDict(frozen=True, extra="allow")

    type: Literal["tool_result"] = Field(default="tool_result", description="Block type")
    tool_use_id: str = Field(description="ID of the tool_use this result answers")
    content: Any = Field(default="", description="Result payload, text or structured")
    is_error: Optional[bool] = Field(default=None, description="Whether the tool failed")


class OtherBlock(BaseModel):
    """Opaque block (image, unknown or malformed), preserved verbatim."""

    model_config = ConfigDict(frozen=True, extra="allow")

    type: Any = Field(default=None, description="Raw block type, if any")


class RawBlock(RootModel[Any]):
    """Non-object block payload, such as a bare string, kept as is."""

    model_config = ConfigDict(frozen=True)


_RAW_TAG = "raw"

_BLOCK_MODELS = {
    BlockType.TEXT.value: TextBlock,
    BlockType.TOOL_USE.value: ToolUseBlock,
    BlockType.TOOL_RESULT.value: ToolResultBlock,
}

_BLOCK_TAGS = {model: tag for tag, model in _BLOCK_MODELS.items()}
_BLOCK_TAGS[RawBlock] = _RAW_TAG


def _block_tag(value: Any) -> str:
    """Pick the union member for a raw or already-built block."""
    if isinstance(value, BaseModel):
        return _BLOCK_TAGS.get(type(value), BlockType.OTHER.value)

    if not isinstance(value, dict):
        return _RAW_TAG

    kind = value.get("type")
    model = _BLOCK_MODELS.get(kind) if isinstance(kind, str) else None
    if model is None:
        return BlockType.OTHER.value

    # Anything the tagged model would reject stays opaque
    try:
        model.model_validate(value)
    except ValidationError:
        return BlockType.OTHER.value
    return kind


ContentBlock = Annotated[
    Union[
        Annotated[TextBlock, Tag(BlockType.TEXT.value)],
        Annotated[ToolUseBlock, Tag(BlockType.TOOL_USE.value)],
        Annotated[ToolResultBlock, Tag(BlockType.TOOL_RESULT.value)],
        Annotated[OtherBlock, Tag(BlockType.OTHER.value)],
        Annotated[RawBlock, Tag(_RAW_TAG)],
    ],
    Discriminator(_block_tag),
]


class Message(BaseModel):
    """A message in the conversation."""

    model_config = ConfigDict(frozen=True, extra="allow")

    role: str = Field(description="Message role; unknown roles are preserved")
    content: Union[str, list[ContentBlock]] = Field(
        default="", description="Text content or ordered content blocks"
    )

    @field_validator("role", mode="before")
    @classmethod
    def _normalize_role(cls, value: Any) -> Any:
        if isinstance(value, Enum):
            return value.value
        return value

    @property
    def blocks(self) -> list[ContentBlock]:
        """Content blocks, empty for plain string content."""
        if isinstance(self.content, str):
            return []
        return self.content

    def has_tool_use(self) -> bool:
        """Check whether this message issues any tool invocation."""
        return any(isinstance(block, ToolUseBlock) for block in self.blocks)

    def has_tool_result(self) -> bool:
        """Check whether this message carries any tool result."""
        return any(isinstance(block, ToolResultBlock) for block in self.blocks)

    def tool_use_ids(self) -> list[str]:
        """IDs of the tool invocations in this message, in order."""
        return [block.id for block in self.blocks if isinstance(block, ToolUseBlock)]

    def tool_result_ids(self) -> list[str]:
        """IDs of the invocations answered by this message, in order."""
        return [
            block.tool_use_id
            for block in self.blocks
            if isinstance(block, ToolResultBlock)
        ]

    def text(self) -> str:
        """Get the text of this message.

        String content is returned as is; for block content the text
        payloads are joined with newlines and other blocks are skipped.
        """
        if isinstance(self.content, str):
            return self.content
        return "\n".join(
            block.text for block in self.content if isinstance(block, TextBlock)
        )

    def to_api_dict(self) -> dict[str, Any]:
        """Convert to the plain payload sent to a model client."""
        return self.model_dump(mode="json", exclude_none=True)
