"""Data models for ctxkeeper."""

from ctxkeeper.models.message import (
    BlockType,
    ContentBlock,
    Message,
    OtherBlock,
    RawBlock,
    Role,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)
from ctxkeeper.models.tool import ToolSchema
from ctxkeeper.models.config import ContextConfig, TokenEstimatorConfig

__all__ = [
    "BlockType",
    "ContentBlock",
    "Message",
    "OtherBlock",
    "RawBlock",
    "Role",
    "TextBlock",
    "ToolResultBlock",
    "ToolUseBlock",
    "ToolSchema",
    "ContextConfig",
    "TokenEstimatorConfig",
]
