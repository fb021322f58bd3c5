"""Hyperfy agent data models."""

from hyperfy_agent.models.character import Character
from hyperfy_agent.models.config import EmoteTextMode, ServerConfig, configure_logging
from hyperfy_agent.models.decision import Decision
from hyperfy_agent.models.execution import CommitReport, DispatchResult, EvaluationResult
from hyperfy_agent.models.memory import (
    Content,
    ConversationRecord,
    is_uuid,
    string_to_uuid,
)
from hyperfy_agent.models.world import WorldSnapshot

__all__ = [
    "Character",
    "CommitReport",
    "Content",
    "ConversationRecord",
    "Decision",
    "DispatchResult",
    "EmoteTextMode",
    "EvaluationResult",
    "ServerConfig",
    "WorldSnapshot",
    "configure_logging",
    "is_uuid",
    "string_to_uuid",
]
