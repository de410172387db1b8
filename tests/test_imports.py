"""Test that all modules can be imported successfully."""

import pytest


def test_models_import():
    """Test model imports."""
    from ctxkeeper.models import (
        BlockType,
        ContextConfig,
        Message,
        OtherBlock,
        RawBlock,
        Role,
        TextBlock,
        TokenEstimatorConfig,
        ToolResultBlock,
        ToolSchema,
        ToolUseBlock,
    )
    assert Message is not None
    assert Role is not None
    assert ContextConfig is not None


def test_context_import():
    """Test context imports."""
    from ctxkeeper.context import (
        ContextEditor,
        ContextManager,
        Conversation,
        TokenEstimator,
        estimate_tokens,
        estimate_total,
    )

    assert ContextManager is not None
    assert ContextEditor is not None
    assert Conversation is not None
    assert TokenEstimator is not None


def test_top_level_import():
    """Test package-level exports."""
    import ctxkeeper

    assert ctxkeeper.ContextManager is not None
    assert ctxkeeper.__version__
