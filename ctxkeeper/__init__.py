"""ctxkeeper - keeps agent conversations within a token budget."""

from ctxkeeper.context import ContextEditor, ContextManager, Conversation, TokenEstimator
from ctxkeeper.models import ContextConfig, Message, Role, ToolSchema

__version__ = "0.1.0"

__all__ = [
    "ContextEditor",
    "ContextManager",
    "Conversation",
    "TokenEstimator",
    "ContextConfig",
    "Message",
    "Role",
    "ToolSchema",
]
