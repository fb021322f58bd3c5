"""Agent runtime — the per-agent collaborator a turn talks to."""

from typing import Any, Dict, List, Mapping, Optional, Protocol

from hyperfy_agent.models.execution import DispatchResult, EvaluationResult
from hyperfy_agent.models.memory import ConversationRecord
from hyperfy_agent.runtime.behaviors import Continuation
from hyperfy_agent.schema.synthesizer import ActionSchema


class AgentRuntime(Protocol):
    """
    Everything the turn pipeline needs from a hosted agent.

    The runtime owns the agent's persona, its generative backend and its
    long-term memory. The pipeline only calls these methods.
    """

    agent_id: str
    name: str

    async def compose_state(
        self,
        message: ConversationRecord,
        additional_keys: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Context values (persona, history, actions) for the prompt template."""
        ...

    async def generate_object(self, prompt: str, schema: ActionSchema) -> Optional[Any]:
        """Structured generation; None when the backend has no answer."""
        ...

    async def create_memory(self, record: ConversationRecord) -> ConversationRecord:
        """Durably store a record. Raises PersistenceFailure."""
        ...

    async def evaluate(
        self, record: ConversationRecord, state: Mapping[str, Any]
    ) -> List[EvaluationResult]:
        ...

    async def process_actions(
        self,
        message: ConversationRecord,
        responses: List[ConversationRecord],
        state: Mapping[str, Any],
        callback: Continuation,
    ) -> Optional[DispatchResult]:
        ...
