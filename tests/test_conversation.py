"""Tests for the running conversation holder."""

import pytest
from pydantic import ValidationError
from ctxkeeper.context import ContextManager, Conversation
from ctxkeeper.models import Message


def _tool_use(tool_id, text):
    return {
        "role": "assistant",
        "content": [
            {"type": "text", "text": text},
            {"type": "tool_use", "id": tool_id, "name": "read", "input": {}},
        ],
    }


def _tool_result(tool_id):
    return {
        "role": "user",
        "content": [{"type": "tool_result", "tool_use_id": tool_id, "content": "ok"}],
    }


def test_add_message_accepts_dicts_and_models():
    """Test messages are coerced into Message models."""
    conversation = Conversation()

    conversation.add_message({"role": "user", "content": "Task"})
    conversation.add_message(Message(role="assistant", content="Sure"))

    assert len(conversation) == 2
    assert all(isinstance(m, Message) for m in conversation.messages)


def test_add_message_rejects_invalid_message():
    """Test malformed messages raise validation errors."""
    conversation = Conversation()

    with pytest.raises(ValidationError):
        conversation.add_message({"content": "no role"})


def test_messages_snapshot_is_immutable():
    """Test callers get a snapshot rather than the stored list."""
    conversation = Conversation(messages=[{"role": "user", "content": "Task"}])

    snapshot = conversation.messages

    assert isinstance(snapshot, tuple)
    assert len(snapshot) == 1


def test_without_manager_nothing_is_compacted():
    """Test a conversation without a manager keeps everything."""
    conversation = Conversation()
    for i in range(20):
        conversation.add_message({"role": "user", "content": "x" * 1000})

    assert len(conversation) == 20
    assert conversation.fits()
    assert conversation.usage() == 0.0
    assert conversation.stats()["total_messages"] == 20
    assert len(conversation.get_messages_with_compaction()) == 20


def test_auto_compacts_to_threshold():
    """Test reaching the threshold compacts below the threshold budget."""
    manager = ContextManager(100, compact_threshold=0.5)
    conversation = Conversation(manager)

    conversation.add_message({"role": "system", "content": "System prompt"})
    conversation.add_message({"role": "user", "content": "Task"})
    conversation.add_message({"role": "assistant", "content": "a" * 160})
    conversation.add_message({"role": "user", "content": "b" * 40})

    messages = conversation.messages
    assert manager.estimate_total(messages) <= manager.threshold_budget()
    assert messages[0].content == "System prompt"
    assert messages[1].content == "Task"
    assert messages[-1].content == "b" * 40


def test_auto_compact_disabled():
    """Test nothing is compacted when auto compaction is off."""
    manager = ContextManager(100, compact_threshold=0.5, auto_compact=False)
    conversation = Conversation(manager)

    conversation.add_message({"role": "user", "content": "Task"})
    conversation.add_message({"role": "assistant", "content": "a" * 400})

    assert len(conversation) == 2
    assert not conversation.fits()


def test_auto_compact_waits_for_tool_results():
    """Test compaction is deferred while a tool call awaits results."""
    manager = ContextManager(50, compact_threshold=0.5)
    conversation = Conversation(manager)

    conversation.add_message({"role": "user", "content": "Task"})
    conversation.add_message(_tool_use("t1", "x" * 200))

    assert len(conversation) == 2

    conversation.add_message(_tool_result("t1"))

    assert [m.content for m in conversation.messages] == ["Task"]


def test_get_messages_with_compaction_leaves_storage():
    """Test the compacted view does not replace stored messages."""
    manager = ContextManager(50, auto_compact=False)
    conversation = Conversation(
        manager,
        messages=[
            {"role": "user", "content": "Task"},
            {"role": "assistant", "content": "a" * 400},
            {"role": "user", "content": "Next"},
        ],
    )

    compacted = conversation.get_messages_with_compaction()

    assert [m.content for m in compacted] == ["Task", "Next"]
    assert len(conversation) == 3


def test_tools_count_towards_usage():
    """Test stored tool schemas are included in sizing."""
    manager = ContextManager(1000)
    plain = Conversation(manager, messages=[{"role": "user", "content": "Hi"}])
    with_tools = Conversation(
        manager,
        messages=[{"role": "user", "content": "Hi"}],
        tools=[{"name": "read", "description": "Read a file"}],
    )

    assert with_tools.usage() > plain.usage()
    assert with_tools.stats()["tool_tokens"] > 0


def test_add_message_keeps_malformed_blocks():
    """Test malformed blocks are stored instead of rejected."""
    conversation = Conversation()

    conversation.add_message(
        {"role": "assistant", "content": [{"type": "tool_use", "id": "t1", "name": None}]}
    )

    assert len(conversation) == 1
    assert not conversation.messages[0].has_tool_use()


def test_set_messages_replaces_history():
    """Test setting messages swaps the stored list."""
    conversation = Conversation(messages=[{"role": "user", "content": "Old"}])

    conversation.set_messages([{"role": "user", "content": "New"}, Message(role="assistant", content="Ok")])

    assert [m.content for m in conversation.messages] == ["New", "Ok"]


def test_clear_messages_keeps_system_and_task():
    """Test clearing keeps only the system prompt and the initial task."""
    conversation = Conversation(
        messages=[
            {"role": "system", "content": "System prompt"},
            {"role": "user", "content": "Task"},
            {"role": "assistant", "content": "Working"},
            {"role": "user", "content": "More"},
        ]
    )

    conversation.clear_messages()

    assert [m.content for m in conversation.messages] == ["System prompt", "Task"]


def test_remove_message():
    """Test removing by index ignores out-of-range indices."""
    conversation = Conversation(
        messages=[{"role": "user", "content": "Task"}, {"role": "assistant", "content": "Reply"}]
    )

    conversation.remove_message(5)
    assert len(conversation) == 2

    conversation.remove_message(1)
    assert [m.content for m in conversation.messages] == ["Task"]


def test_replace_last_message():
    """Test the last message is swapped and empty conversations are left alone."""
    conversation = Conversation()
    conversation.replace_last_message({"role": "user", "content": "Ignored"})
    assert len(conversation) == 0

    conversation.add_message({"role": "user", "content": "Task"})
    conversation.add_message({"role": "assistant", "content": "Draft"})
    conversation.replace_last_message({"role": "assistant", "content": "Final"})

    assert [m.content for m in conversation.messages] == ["Task", "Final"]
