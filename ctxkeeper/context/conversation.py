"""Running conversation with automatic compaction."""

import logging
from typing import Any, Iterable, Optional, Union
from ctxkeeper.context.editor import ContextEditor
from ctxkeeper.context.manager import ContextManager
from ctxkeeper.context.tokens import ToolLike
from ctxkeeper.models.message import Message, Role

logger = logging.getLogger(__name__)


class Conversation:
    """Single-writer message list kept within a context manager's budget."""

    def __init__(
        self,
        manager: Optional[ContextManager] = None,
        messages: Iterable[Union[Message, dict[str, Any]]] = (),
        tools: Iterable[ToolLike] = (),
    ):
        """Initialize conversation.

        Args:
            manager: Context manager; without one nothing is compacted
            messages: Initial messages
            tools: Tool schemas sent with every request
        """
        self.manager = manager
        self.tools: list[ToolLike] = list(tools)
        self._messages: list[Message] = [self._coerce(m) for m in messages]

    @staticmethod
    def _coerce(message: Union[Message, dict[str, Any]]) -> Message:
        if isinstance(message, Message):
            return message
        return Message.model_validate(message)

    @property
    def messages(self) -> tuple[Message, ...]:
        """Snapshot of the stored messages."""
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def add_message(self, message: Union[Message, dict[str, Any]]) -> None:
        """Append a message, compacting once the threshold is reached.

        Compaction targets the threshold budget and is skipped while the
        last message is a tool call still waiting for its results.

        Args:
            message: Message or dict with role and content

        Raises:
            pydantic.ValidationError: If message cannot be parsed
        """
        self._messages.append(self._coerce(message))

        if self.manager is None or not self.manager.should_compact(self._messages, self.tools):
            return

        before = len(self._messages)
        self._messages = self.manager.compact_messages(
            self._messages,
            self.tools,
            budget=self.manager.threshold_budget(),
        )
        logger.info(f"Auto-compacted conversation: {before} -> {len(self._messages)} messages")

    def set_messages(self, messages: Iterable[Union[Message, dict[str, Any]]]) -> None:
        """Replace the stored messages without compacting."""
        self._messages = [self._coerce(m) for m in messages]

    def clear_messages(self) -> None:
        """Drop everything except the system prompt and the initial task."""
        prefix = []
        if self._messages and self._messages[0].role == Role.SYSTEM.value:
            prefix.append(self._messages[0])
        task = next((m for m in self._messages if m.role == Role.USER.value), None)
        if task is not None:
            prefix.append(task)
        self._messages = prefix

    def remove_message(self, index: int) -> None:
        """Remove the message at index; out-of-range indices are ignored."""
        if -len(self._messages) <= index < len(self._messages):
            del self._messages[index]

    def replace_last_message(self, message: Union[Message, dict[str, Any]]) -> None:
        """Replace the last message; does nothing on an empty conversation."""
        if self._messages:
            self._messages[-1] = self._coerce(message)

    def get_messages_with_compaction(self) -> list[Message]:
        """Get messages compacted to the hard ceiling, leaving storage untouched."""
        if self.manager is None:
            return list(self._messages)
        return self.manager.compact_messages(self._messages, self.tools)

    def fits(self) -> bool:
        """Check if the stored messages fit the context window."""
        if self.manager is None:
            return True
        return self.manager.fits_in_context(self._messages, self.tools)

    def usage(self) -> float:
        """Fraction of the context window in use (0.0 without a manager)."""
        if self.manager is None:
            return 0.0
        return self.manager.get_usage_percentage(self._messages, self.tools)

    def stats(self) -> dict:
        """Get conversation statistics."""
        if self.manager is None:
            return ContextEditor.get_stats(self._messages)
        return self.manager.get_stats(self._messages, self.tools)
