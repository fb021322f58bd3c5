"""
Local Agent Runtime — an in-process agent host.

Bundles a persona, a generative backend, conversation memory, evaluators
and behaviors behind the AgentRuntime protocol. Production hosts can supply
their own runtime; the turn pipeline does not care which one it talks to.
"""

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional

from hyperfy_agent.decision.backends import GenerativeBackend
from hyperfy_agent.memory.store import ConversationStore
from hyperfy_agent.models.character import Character
from hyperfy_agent.models.execution import DispatchResult, EvaluationResult
from hyperfy_agent.models.memory import ConversationRecord, string_to_uuid
from hyperfy_agent.runtime.behaviors import BehaviorDispatcher, Continuation
from hyperfy_agent.runtime.evaluators import EvaluatorSet
from hyperfy_agent.schema.synthesizer import ActionSchema

logger = logging.getLogger(__name__)


def _bullets(items: List[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


class LocalAgentRuntime:
    """In-process implementation of the AgentRuntime protocol."""

    def __init__(
        self,
        character: Character,
        backend: GenerativeBackend,
        store: Optional[ConversationStore] = None,
        evaluators: Optional[EvaluatorSet] = None,
        behaviors: Optional[BehaviorDispatcher] = None,
        agent_id: Optional[str] = None,
        recent_message_limit: int = 10,
        sender_names: Optional[Dict[str, str]] = None,
    ):
        self.character = character
        self.backend = backend
        self.store = store or ConversationStore()
        self.evaluators = evaluators or EvaluatorSet()
        self.behaviors = behaviors or BehaviorDispatcher()
        self.agent_id = agent_id or string_to_uuid(character.name)
        self.recent_message_limit = recent_message_limit
        # user_id -> display name used when formatting history
        self._sender_names: Dict[str, str] = {
            string_to_uuid("hyperfy"): "hyperfy",
            **(sender_names or {}),
        }

    @property
    def name(self) -> str:
        return self.character.name

    # --- Context ---

    def _format_recent_messages(self, room_id: str) -> str:
        records = self.store.query_by_room(room_id, limit=self.recent_message_limit)
        if not records:
            return ""
        lines = []
        for record in records:
            sender = self.name if record.is_from_agent else self._sender_names.get(
                record.user_id, record.user_id
            )
            line = f"{sender}: {record.content.text}"
            if record.content.action:
                line += f" ({record.content.action})"
            lines.append(line)
        return "# Recent Messages\n" + "\n".join(lines)

    async def compose_state(
        self,
        message: ConversationRecord,
        additional_keys: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        character = self.character
        attachments = message.content.attachments
        recent_messages = await asyncio.to_thread(self._format_recent_messages, message.room_id)
        state: Dict[str, Any] = {
            "agentName": character.name,
            "bio": " ".join(character.bio),
            "lore": "\n".join(character.lore),
            "knowledge": _bullets(character.knowledge),
            "messageDirections": (
                f"# Message Directions for {character.name}\n{_bullets(character.message_directions)}"
                if character.message_directions
                else ""
            ),
            "actionExamples": "\n\n".join(character.action_examples),
            "providers": "",
            "attachments": (
                "# Attachments\n" + "\n".join(str(a) for a in attachments) if attachments else ""
            ),
            "recentMessages": recent_messages,
            "actions": self.behaviors.describe(),
            "roomId": message.room_id,
        }
        state.update(additional_keys or {})
        return state

    # --- Generation ---

    async def generate_object(self, prompt: str, schema: ActionSchema) -> Optional[Any]:
        return await self.backend.generate_object(prompt, schema)

    # --- Memory ---

    async def create_memory(self, record: ConversationRecord) -> ConversationRecord:
        stored = await asyncio.to_thread(self.store.append, record)
        logger.debug("Stored memory %s in room %s", stored.id, stored.room_id)
        return stored

    # --- Post-commit hooks ---

    async def evaluate(
        self, record: ConversationRecord, state: Mapping[str, Any]
    ) -> List[EvaluationResult]:
        return await self.evaluators.run(record, state, self)

    async def process_actions(
        self,
        message: ConversationRecord,
        responses: List[ConversationRecord],
        state: Mapping[str, Any],
        callback: Continuation,
    ) -> Optional[DispatchResult]:
        """Dispatch the behavior named by the first response that carries one."""
        for response in responses:
            action = response.content.action
            if action:
                return await self.behaviors.dispatch(action, message, state, callback)
        return None
