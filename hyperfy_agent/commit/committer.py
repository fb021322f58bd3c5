"""
Action Committer — makes a decision durable, then lets it have effects.

Protocol (fixed order):
  1. compose outgoing text       4. store incoming record (world)
  2. pick the action tag         5. run evaluators over the incoming record
  3. store outgoing record       6. dispatch the tagged behavior, if any

Behavioral Contract:
- A behavior never runs unless both records of its exchange are stored
- A persistence failure in step 3 or 4 aborts everything after it
- Exactly one outgoing record per committed decision; this is the only
  place that creates one
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping
from uuid import uuid4

from hyperfy_agent.errors import PersistenceFailure
from hyperfy_agent.models.config import EmoteTextMode
from hyperfy_agent.models.decision import Decision
from hyperfy_agent.models.execution import CommitReport
from hyperfy_agent.models.memory import Content, ConversationRecord
from hyperfy_agent.runtime.base import AgentRuntime

logger = logging.getLogger(__name__)


def compose_text(decision: Decision, mode: EmoteTextMode = EmoteTextMode.LEGACY) -> str:
    """
    Text of the agent's conversation record for a decision.

    `say` comes first; gaze and emote are narrated after it. How the emote
    clause lands depends on `mode` (see EmoteTextMode).
    """
    text = decision.say or ""
    if decision.look_at is None and decision.emote is None:
        return text

    text += ". Then I "
    if decision.look_at is not None:
        text += "looked at " + decision.look_at
        if decision.emote is not None:
            text += " and "

    if decision.emote is not None:
        if mode == EmoteTextMode.OVERWRITE:
            text = "emoted " + decision.emote
        elif mode == EmoteTextMode.APPEND:
            text += "emoted " + decision.emote
        # LEGACY: the emote clause never reaches the stored text
    return text


@dataclass
class Stimulus:
    """The world event a decision answers."""

    content: Content                        # Serialized world payload
    room_id: str
    world_user_id: str
    state: Mapping[str, Any] = field(default_factory=dict)


class ActionCommitter:
    """Persists decisions and runs their follow-up work in a fixed order."""

    def __init__(self, emote_text_mode: EmoteTextMode = EmoteTextMode.LEGACY):
        self.emote_text_mode = emote_text_mode

    def build_outgoing(
        self, runtime: AgentRuntime, decision: Decision, stimulus: Stimulus
    ) -> ConversationRecord:
        content = Content(
            text=compose_text(decision, self.emote_text_mode),
            action=decision.action_tag,
        )
        return ConversationRecord(
            id=str(uuid4()),
            agent_id=runtime.agent_id,
            user_id=runtime.agent_id,
            room_id=stimulus.room_id,
            content=content,
            created_at=datetime.now(timezone.utc),
        )

    def build_incoming(self, runtime: AgentRuntime, stimulus: Stimulus) -> ConversationRecord:
        return ConversationRecord(
            id=str(uuid4()),
            agent_id=runtime.agent_id,
            user_id=stimulus.world_user_id,
            room_id=stimulus.room_id,
            content=stimulus.content,
            created_at=datetime.now(timezone.utc),
        )

    async def commit(
        self, runtime: AgentRuntime, decision: Decision, stimulus: Stimulus
    ) -> CommitReport:
        """
        Commit a non-silent decision.

        Raises PersistenceFailure if either record cannot be stored; no
        evaluation or dispatch happens in that case.
        """
        if decision.is_silent:
            raise ValueError("Silent decisions are not committed")

        outgoing = await self._persist(runtime, self.build_outgoing(runtime, decision, stimulus))
        incoming = await self._persist(runtime, self.build_incoming(runtime, stimulus))
        logger.info(
            "Committed exchange in room %s for agent %s (action=%s)",
            stimulus.room_id,
            runtime.agent_id,
            outgoing.content.action,
        )

        evaluations = await runtime.evaluate(incoming, stimulus.state)

        dispatch = None
        if outgoing.content.action:
            dispatch = await runtime.process_actions(
                incoming,
                [outgoing],
                stimulus.state,
                self._continuation(incoming),
            )

        return CommitReport(
            outgoing=outgoing,
            incoming=incoming,
            evaluations=evaluations,
            dispatch=dispatch,
        )

    async def _persist(
        self, runtime: AgentRuntime, record: ConversationRecord
    ) -> ConversationRecord:
        try:
            stored = await runtime.create_memory(record)
        except PersistenceFailure:
            logger.error("Failed to store record %s; aborting commit", record.id)
            raise
        except Exception as e:
            logger.error("Failed to store record %s; aborting commit", record.id)
            raise PersistenceFailure(str(e), record_id=record.id) from e
        return stored if stored is not None else record

    def _continuation(self, incoming: ConversationRecord):
        """
        Callback handed to a dispatched behavior.

        The decision has already been returned to the world, so new content
        from the behavior cannot replace it. It is logged and dropped.
        """
        async def _callback(new_content: Content) -> List[ConversationRecord]:
            logger.debug(
                "Behavior produced follow-up content that is not applied: %r",
                getattr(new_content, "text", new_content),
            )
            return [incoming]

        return _callback


def report_summary(report: CommitReport) -> Dict[str, Any]:
    """Compact view of a commit for logs and introspection."""
    return {
        "outgoing_id": report.outgoing.id,
        "incoming_id": report.incoming.id,
        "evaluations": [e.evaluator for e in report.evaluations],
        "dispatched": report.dispatch.resolved_behavior if report.dispatch else None,
        "dispatch_success": report.dispatch.success if report.dispatch else None,
    }
