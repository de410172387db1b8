"""Tokenizer-free token estimation."""

import json
from typing import Any, Iterable, Optional, Union
from pydantic import BaseModel
from ctxkeeper.models.config import TokenEstimatorConfig
from ctxkeeper.models.message import ContentBlock, Message, TextBlock
from ctxkeeper.models.tool import ToolSchema

ToolLike = Union[ToolSchema, dict[str, Any]]


def _serialize(value: Any) -> str:
    """Deterministic compact JSON used for sizing structured payloads."""
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json", exclude_none=True)
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


class TokenEstimator:
    """Approximates token cost from character counts.

    Every estimate is a pure function of its input and the constants in
    the estimator config; no tokenizer is involved.
    """

    def __init__(self, config: Optional[TokenEstimatorConfig] = None):
        """Initialize token estimator.

        Args:
            config: Tuning constants (defaults to 4 chars per token)
        """
        self.config = config or TokenEstimatorConfig()

    def estimate_tokens(self, text: str) -> int:
        """Estimate tokens for a string, never less than 1.

        Args:
            text: Text to size

        Returns:
            Estimated token count
        """
        return max(1, -(-len(text) // self.config.chars_per_token))

    def estimate_block_tokens(self, block: ContentBlock) -> int:
        """Estimate tokens for a single content block."""
        if isinstance(block, TextBlock):
            return self.estimate_tokens(block.text)
        return self.config.block_overhead + self.estimate_tokens(_serialize(block))

    def estimate_message_tokens(self, message: Message) -> int:
        """Estimate tokens for one message including role framing.

        Args:
            message: Message to size

        Returns:
            Estimated token count
        """
        if isinstance(message.content, str):
            return self.config.message_overhead + self.estimate_tokens(message.content)
        return self.config.message_overhead + sum(
            self.estimate_block_tokens(block) for block in message.content
        )

    def estimate_conversation_tokens(self, messages: Iterable[Message]) -> int:
        """Estimate tokens for a message sequence (0 when empty)."""
        return sum(self.estimate_message_tokens(msg) for msg in messages)

    def estimate_tool_tokens(self, tool: ToolLike) -> int:
        """Estimate tokens for a tool schema.

        Args:
            tool: ToolSchema or dict with name, description and input_schema

        Returns:
            Estimated token count
        """
        if not isinstance(tool, ToolSchema):
            tool = ToolSchema.model_validate(tool)
        return (
            self.config.tool_overhead
            + self.estimate_tokens(tool.name)
            + self.estimate_tokens(tool.description)
            + self.estimate_tokens(_serialize(tool.input_schema))
        )

    def estimate_tools_tokens(self, tools: Optional[Iterable[ToolLike]]) -> int:
        """Estimate tokens for all tool schemas (0 when none)."""
        if not tools:
            return 0
        return sum(self.estimate_tool_tokens(tool) for tool in tools)

    def estimate_total(
        self,
        messages: Iterable[Message],
        tools: Optional[Iterable[ToolLike]] = None,
    ) -> int:
        """Estimate tokens for messages plus tool schemas."""
        return self.estimate_conversation_tokens(messages) + self.estimate_tools_tokens(tools)


_default_estimator = TokenEstimator()


def estimate_tokens(text: str) -> int:
    """Estimate tokens for a string with default constants."""
    return _default_estimator.estimate_tokens(text)


def estimate_message_tokens(message: Message) -> int:
    """Estimate tokens for a message with default constants."""
    return _default_estimator.estimate_message_tokens(message)


def estimate_conversation_tokens(messages: Iterable[Message]) -> int:
    """Estimate tokens for a message sequence with default constants."""
    return _default_estimator.estimate_conversation_tokens(messages)


def estimate_tool_tokens(tool: ToolLike) -> int:
    """Estimate tokens for a tool schema with default constants."""
    return _default_estimator.estimate_tool_tokens(tool)


def estimate_total(
    messages: Iterable[Message], tools: Optional[Iterable[ToolLike]] = None
) -> int:
    """Estimate tokens for messages plus tools with default constants."""
    return _default_estimator.estimate_total(messages, tools)
