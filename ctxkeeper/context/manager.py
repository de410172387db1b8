"""Context window manager."""

import logging
from typing import Any, Iterable, Optional, Sequence
from ctxkeeper.context.editor import ContextEditor
from ctxkeeper.context.tokens import TokenEstimator, ToolLike
from ctxkeeper.models.config import ContextConfig
from ctxkeeper.models.message import Message, Role, ToolResultBlock

logger = logging.getLogger(__name__)

# (input index, message) pairs, so privileged positions survive filtering
_Entry = tuple[int, Message]


class ContextManager:
    """Keeps conversations within a token budget.

    Holds configuration only, never conversation state, so one instance
    can be reused across independent conversations.
    """

    def __init__(
        self,
        max_context_tokens: Optional[int] = None,
        config: Optional[ContextConfig] = None,
        **options: Any,
    ):
        """Initialize context manager.

        Args:
            max_context_tokens: Maximum tokens to allow in context
            config: Base configuration (copied, never shared)
            **options: Overrides for ContextConfig fields such as
                compact_threshold, auto_compact or clear_tool_results
        """
        settings = config.model_dump() if config is not None else {}
        if max_context_tokens is not None:
            settings["max_context_tokens"] = max_context_tokens
        settings.update(options)

        self.config = ContextConfig.model_validate(settings)
        self.estimator = TokenEstimator(self.config.estimator)

    @property
    def max_context_tokens(self) -> int:
        return self.config.max_context_tokens

    @max_context_tokens.setter
    def max_context_tokens(self, value: int) -> None:
        self.config.max_context_tokens = value

    def get_max_context_tokens(self) -> int:
        """Get the maximum context tokens."""
        return self.config.max_context_tokens

    def set_max_context_tokens(self, max_tokens: int) -> None:
        """Set maximum context tokens.

        Raises:
            pydantic.ValidationError: If max_tokens is not positive
        """
        self.config.max_context_tokens = max_tokens

    def get_compact_threshold(self) -> float:
        """Get compact threshold."""
        return self.config.compact_threshold

    def estimate_total(
        self, messages: Iterable[Message], tools: Optional[Iterable[ToolLike]] = None
    ) -> int:
        """Estimate tokens for messages plus tool schemas."""
        return self.estimator.estimate_total(messages, tools)

    def fits_in_context(
        self, messages: Sequence[Message], tools: Optional[Sequence[ToolLike]] = None
    ) -> bool:
        """Check if messages and tools fit within the context window.

        Args:
            messages: Messages to check
            tools: Tool schemas to include in the count

        Returns:
            True if the estimate is within max_context_tokens
        """
        return self.estimate_total(messages, tools) <= self.config.max_context_tokens

    def get_usage_percentage(
        self, messages: Sequence[Message], tools: Optional[Sequence[ToolLike]] = None
    ) -> float:
        """Get estimated context usage as a fraction of the ceiling.

        Not clamped: values above 1.0 mean the window is exceeded.
        """
        return self.estimate_total(messages, tools) / self.config.max_context_tokens

    @staticmethod
    def has_dangling_tool_use(messages: Sequence[Message]) -> bool:
        """Check if the last message is an assistant tool call awaiting results."""
        if not messages:
            return False
        last = messages[-1]
        return last.role == Role.ASSISTANT.value and last.has_tool_use()

    def should_compact(
        self, messages: Sequence[Message], tools: Optional[Sequence[ToolLike]] = None
    ) -> bool:
        """Check if messages should be proactively compacted.

        Compaction is deferred while a tool call awaits its results, since
        compacting then would separate the pair.

        Args:
            messages: Messages to check
            tools: Tool schemas to include in the count

        Returns:
            True if compaction is advised
        """
        if not self.config.auto_compact or self.has_dangling_tool_use(messages):
            return False
        return self.get_usage_percentage(messages, tools) >= self.config.compact_threshold

    def threshold_budget(self) -> int:
        """Token budget corresponding to the compact threshold."""
        return int(self.config.max_context_tokens * self.config.compact_threshold)

    def get_stats(
        self, messages: Sequence[Message], tools: Optional[Sequence[ToolLike]] = None
    ) -> dict:
        """Get context statistics.

        Args:
            messages: List of messages
            tools: Tool schemas in use

        Returns:
            Dict with message counts and token stats
        """
        stats = ContextEditor.get_stats(messages, self.estimator)
        tool_tokens = self.estimator.estimate_tools_tokens(tools)
        total = stats["total_estimated_tokens"] + tool_tokens
        stats.update(
            {
                "tool_tokens": tool_tokens,
                "total_tokens": total,
                "max_context_tokens": self.config.max_context_tokens,
                "utilization": total / self.config.max_context_tokens,
                "should_compact": self.should_compact(messages, tools),
            }
        )
        return stats

    def compact_messages(
        self,
        messages: Sequence[Message],
        tools: Optional[Sequence[ToolLike]] = None,
        *,
        budget: Optional[int] = None,
    ) -> list[Message]:
        """Compact messages to fit within the context window.

        Strategy:
        1. Set aside the leading system message and the first user message
        2. Truncate tool result payloads outside that prefix (if enabled)
        3. Drop the oldest remaining turns, keeping tool_use/tool_result
           pairs together, until the estimate fits
        4. Repair any broken tool pairing and make sure a user turn leads

        Never raises for size reasons: if the privileged prefix alone is
        over budget it is returned anyway.

        Args:
            messages: Messages to compact
            tools: Tool schemas in use
            budget: Token ceiling for this call (defaults to max_context_tokens)

        Returns:
            New message list; equal to the input when it already fits
        """
        messages = list(messages)
        limit = self.config.max_context_tokens if budget is None else budget
        tool_tokens = self.estimator.estimate_tools_tokens(tools)

        total = self.estimator.estimate_conversation_tokens(messages) + tool_tokens
        if total <= limit:
            return messages

        logger.info(
            f"Compacting context: {len(messages)} messages, ~{total} tokens (budget {limit})"
        )

        privileged = self._privileged_indices(messages)

        if self.config.clear_tool_results:
            messages = self._truncate_tool_results(messages, privileged)
            total = self.estimator.estimate_conversation_tokens(messages) + tool_tokens
            logger.debug(f"Truncated tool results: ~{total} tokens")

        entries: list[_Entry] = list(enumerate(messages))
        if total > limit:
            entries = self._drop_oldest_units(entries, privileged, total, limit)

        entries = self._repair_tool_pairs(entries, privileged)
        entries = self._ensure_user_first(entries)

        compacted = [msg for _, msg in entries]
        logger.debug(f"Compacted to {len(compacted)} messages")
        return compacted

    @staticmethod
    def _privileged_indices(messages: Sequence[Message]) -> set[int]:
        """Indices of the leading system message and the first user message."""
        privileged = set()
        if messages and messages[0].role == Role.SYSTEM.value:
            privileged.add(0)
        for idx, msg in enumerate(messages):
            if msg.role == Role.USER.value:
                privileged.add(idx)
                break
        return privileged

    def _truncate_tool_results(
        self, messages: list[Message], privileged: set[int]
    ) -> list[Message]:
        """Replace tool result payloads with a marker, keeping tool_use_id."""
        truncated = []
        for idx, msg in enumerate(messages):
            if idx not in privileged and msg.has_tool_result():
                blocks = [
                    self._truncated_block(b) if isinstance(b, ToolResultBlock) else b
                    for b in msg.blocks
                ]
                msg = msg.model_copy(update={"content": blocks})
            truncated.append(msg)
        return truncated

    def _truncated_block(self, block: ToolResultBlock) -> ToolResultBlock:
        return ToolResultBlock(
            tool_use_id=block.tool_use_id,
            content=self.config.truncation_marker,
            is_error=True if block.is_error else None,
        )

    @staticmethod
    def _build_units(entries: list[_Entry]) -> list[list[_Entry]]:
        """Group entries so each tool_use travels with its tool_result message."""
        units = []
        i = 0
        while i < len(entries):
            msg = entries[i][1]
            if (
                msg.has_tool_use()
                and i + 1 < len(entries)
                and entries[i + 1][1].has_tool_result()
            ):
                units.append(entries[i:i + 2])
                i += 2
                continue
            units.append([entries[i]])
            i += 1
        return units

    def _drop_oldest_units(
        self,
        entries: list[_Entry],
        privileged: set[int],
        total: int,
        limit: int,
    ) -> list[_Entry]:
        """Remove non-privileged units oldest first until the total fits."""
        removed: set[int] = set()
        for unit in self._build_units(entries):
            if total <= limit:
                break
            indices = [idx for idx, _ in unit]
            if privileged.intersection(indices):
                continue
            removed.update(indices)
            total -= sum(self.estimator.estimate_message_tokens(msg) for _, msg in unit)
            logger.debug(f"Dropped message(s) {indices}: ~{total} tokens remain")

        if total > limit:
            logger.warning(
                f"Privileged prefix alone exceeds budget (~{total} > {limit} tokens)"
            )
        return [entry for entry in entries if entry[0] not in removed]

    @staticmethod
    def _repair_tool_pairs(entries: list[_Entry], privileged: set[int]) -> list[_Entry]:
        """Drop tool_use messages not answered by the immediately next message."""
        changed = True
        while changed:
            changed = False
            for pos, (idx, msg) in enumerate(entries):
                if idx in privileged or not msg.has_tool_use():
                    continue
                nxt = entries[pos + 1] if pos + 1 < len(entries) else None
                if nxt is not None and set(msg.tool_use_ids()) <= set(nxt[1].tool_result_ids()):
                    continue

                drop = {pos}
                if nxt is not None and nxt[0] not in privileged and nxt[1].has_tool_result():
                    drop.add(pos + 1)
                logger.debug(f"Dropping unpaired tool_use at message {idx}")
                entries = [e for p, e in enumerate(entries) if p not in drop]
                changed = True
                break
        return entries

    @staticmethod
    def _ensure_user_first(entries: list[_Entry]) -> list[_Entry]:
        """Drop non-user messages between a leading system message and the first user turn."""
        start = 0
        if entries and entries[0][0] == 0 and entries[0][1].role == Role.SYSTEM.value:
            start = 1
        end = start
        while end < len(entries) and entries[end][1].role != Role.USER.value:
            end += 1
        if end > start:
            logger.debug(f"Dropping {end - start} message(s) ahead of the first user turn")
        return entries[:start] + entries[end:]
