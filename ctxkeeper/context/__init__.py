"""Context management for agent conversations."""

from .tokens import (
    TokenEstimator,
    estimate_conversation_tokens,
    estimate_message_tokens,
    estimate_tokens,
    estimate_tool_tokens,
    estimate_total,
)
from .editor import ContextEditor
from .manager import ContextManager
from .conversation import Conversation

__all__ = [
    "TokenEstimator",
    "estimate_tokens",
    "estimate_message_tokens",
    "estimate_conversation_tokens",
    "estimate_tool_tokens",
    "estimate_total",
    "ContextEditor",
    "ContextManager",
    "Conversation",
]
