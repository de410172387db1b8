"""Stateless transformations over message sequences."""

from typing import Optional, Sequence
from ctxkeeper.context.tokens import TokenEstimator
from ctxkeeper.models.message import Message, Role, TextBlock, ToolResultBlock


class ContextEditor:
    """Pure editing operations on conversations.

    Every operation returns a new list; the input sequence and its
    messages are never modified.
    """

    @staticmethod
    def clear_tool_results(messages: Sequence[Message]) -> list[Message]:
        """Remove tool_result blocks from user messages.

        Other blocks keep their order. String content and messages of
        other roles pass through unchanged.

        Args:
            messages: Conversation to edit

        Returns:
            New message list
        """
        cleaned = []
        for msg in messages:
            if msg.role == Role.USER.value and msg.has_tool_result():
                blocks = [b for b in msg.blocks if not isinstance(b, ToolResultBlock)]
                msg = msg.model_copy(update={"content": blocks})
            cleaned.append(msg)
        return cleaned

    @staticmethod
    def remove_by_role(messages: Sequence[Message], role: str) -> list[Message]:
        """Drop every message with the given role."""
        role = getattr(role, "value", role)
        return [msg for msg in messages if msg.role != role]

    @staticmethod
    def keep_recent(messages: Sequence[Message], limit: int) -> list[Message]:
        """Keep the first message plus the last ``limit`` messages.

        Args:
            messages: Conversation to trim
            limit: Size of the recent window

        Returns:
            New message list, unchanged when it has at most limit + 1 messages
        """
        limit = max(0, limit)
        if len(messages) <= limit + 1:
            return list(messages)
        return [messages[0], *messages[len(messages) - limit:]]

    @staticmethod
    def summarize_early(messages: Sequence[Message], limit: int) -> list[Message]:
        """Replace early history with a summary marker.

        Strategy:
        1. Keep leading system messages verbatim
        2. Insert one marker saying how many messages were elided
        3. Keep the last ``limit`` messages

        Args:
            messages: Conversation to shorten
            limit: Number of recent messages to preserve

        Returns:
            New message list, unchanged when within limit
        """
        limit = max(0, limit)
        if len(messages) <= limit:
            return list(messages)

        system_count = 0
        while system_count < len(messages) and messages[system_count].role == Role.SYSTEM.value:
            system_count += 1

        tail_start = max(system_count, len(messages) - limit)
        elided = tail_start - system_count
        if elided <= 0:
            return list(messages)

        summary = Message(
            role=Role.USER,
            content=f"[Previous conversation summarized: {elided} earlier messages omitted]",
        )
        return [*messages[:system_count], summary, *messages[tail_start:]]

    @staticmethod
    def extract_text_only(messages: Sequence[Message]) -> list[Message]:
        """Flatten block content to newline-joined text, dropping non-text blocks."""
        flattened = []
        for msg in messages:
            if not isinstance(msg.content, str):
                text = "\n".join(b.text for b in msg.content if isinstance(b, TextBlock))
                msg = msg.model_copy(update={"content": text})
            flattened.append(msg)
        return flattened

    @staticmethod
    def get_stats(
        messages: Sequence[Message],
        estimator: Optional[TokenEstimator] = None,
    ) -> dict:
        """Get message statistics.

        Unknown roles count towards the total only.

        Args:
            messages: Conversation to inspect
            estimator: Estimator to size with (defaults to standard constants)

        Returns:
            Dict with message counts and estimated tokens
        """
        estimator = estimator or TokenEstimator()
        counts = {Role.USER.value: 0, Role.ASSISTANT.value: 0, Role.SYSTEM.value: 0}
        for msg in messages:
            if msg.role in counts:
                counts[msg.role] += 1

        return {
            "total_messages": len(messages),
            "user_messages": counts[Role.USER.value],
            "assistant_messages": counts[Role.ASSISTANT.value],
            "system_messages": counts[Role.SYSTEM.value],
            "total_estimated_tokens": estimator.estimate_conversation_tokens(messages),
        }
