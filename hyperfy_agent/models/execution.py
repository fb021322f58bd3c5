"""Outcomes of the work that follows a committed decision."""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel

from hyperfy_agent.models.memory import ConversationRecord


class EvaluationResult(BaseModel):
    """Outcome of one evaluator run over an exchange."""

    evaluator: str
    success: bool
    data: Any = None
    error: Optional[str] = None
    evaluated_at: datetime


class DispatchResult(BaseModel):
    """Outcome of dispatching a named behavior."""

    behavior: str                           # Name as requested by the decision
    resolved_behavior: Optional[str] = None  # Registered behavior that handled it
    success: bool
    data: Any = None
    error: Optional[str] = None
    dispatched_at: datetime
    duration_seconds: float = 0.0


class CommitReport(BaseModel):
    """Everything the committer did for one decision."""

    outgoing: ConversationRecord
    incoming: ConversationRecord
    evaluations: List[EvaluationResult] = []
    dispatch: Optional[DispatchResult] = None
