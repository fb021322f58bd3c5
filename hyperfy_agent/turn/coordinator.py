"""
Turn Coordinator — one world stimulus in, one decision out.

States:
  RESOLVE AGENT → PARSE SNAPSHOT → COMPOSE → DECIDE → (SILENT | COMMIT IN BACKGROUND)

The decision goes back to the caller as soon as it is classified. The
commit (records, evaluators, behavior) runs detached afterwards, so a
response can reach the world before conversation memory reflects it.
Detached commits are never cancelled; `drain()` waits for them.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Mapping, Optional, Set
from uuid import uuid4

from hyperfy_agent.commit.committer import ActionCommitter, Stimulus, report_summary
from hyperfy_agent.decision.engine import DecisionEngine
from hyperfy_agent.errors import TurnError
from hyperfy_agent.models.config import ServerConfig
from hyperfy_agent.models.decision import Decision
from hyperfy_agent.models.execution import CommitReport
from hyperfy_agent.models.memory import Content, ConversationRecord, string_to_uuid
from hyperfy_agent.models.world import WorldSnapshot
from hyperfy_agent.prompt.assembler import assemble_prompt
from hyperfy_agent.registry.agents import AgentRegistry
from hyperfy_agent.runtime.base import AgentRuntime
from hyperfy_agent.schema.synthesizer import build_action_schema

logger = logging.getLogger(__name__)

CommitJob = Callable[[], Awaitable[Optional[CommitReport]]]
Spawn = Callable[[CommitJob], Any]


class TurnCoordinator:
    """Runs turns against the agents of a registry."""

    def __init__(
        self,
        registry: AgentRegistry,
        engine: Optional[DecisionEngine] = None,
        committer: Optional[ActionCommitter] = None,
        config: Optional[ServerConfig] = None,
        template: Optional[str] = None,
    ):
        self.registry = registry
        self.config = config or ServerConfig()
        self.engine = engine or DecisionEngine()
        self.committer = committer or ActionCommitter(self.config.emote_text_mode)
        self.template = template
        self._tasks: Set["asyncio.Task[Optional[CommitReport]]"] = set()

    @property
    def pending_commits(self) -> int:
        return len(self._tasks)

    async def run_turn(
        self,
        target: str,
        body: Optional[Mapping[str, Any]],
        spawn: Optional[Spawn] = None,
    ) -> Decision:
        """
        Run one turn for the agent named by `target`.

        Returns the decision (possibly silent) without waiting for its commit.
        Raises AgentNotFound, MissingVocabulary, BackendUnavailable or
        SchemaViolation.
        """
        runtime = self.registry.resolve(target)
        body = dict(body or {})
        snapshot = WorldSnapshot.from_body(body)

        room_id = string_to_uuid(snapshot.room_id or self.config.default_room)
        world_user_id = string_to_uuid(self.config.world_sender)
        content = Content(
            text=json.dumps(body),
            attachments=[],
            source="hyperfy",
        )
        logger.info("Turn for agent %s in room %s", runtime.agent_id, room_id)

        message = ConversationRecord(
            id=str(uuid4()),
            agent_id=runtime.agent_id,
            user_id=world_user_id,
            room_id=room_id,
            content=content,
            created_at=datetime.now(timezone.utc),
        )
        state = await runtime.compose_state(message, {"agentName": runtime.name})

        prompt = assemble_prompt(snapshot, state, self.template)
        schema = build_action_schema(snapshot.emotes, snapshot.triggers)
        decision = await self.engine.decide(prompt, schema, runtime)

        if decision.is_silent:
            return decision

        stimulus = Stimulus(
            content=content,
            room_id=room_id,
            world_user_id=world_user_id,
            state=state,
        )
        (spawn or self._spawn_detached)(self._commit_job(runtime, decision, stimulus))
        return decision

    def _commit_job(
        self, runtime: AgentRuntime, decision: Decision, stimulus: Stimulus
    ) -> CommitJob:
        async def _job() -> Optional[CommitReport]:
            try:
                report = await self.committer.commit(runtime, decision, stimulus)
            except TurnError as e:
                logger.error("Commit for agent %s failed: %s", runtime.agent_id, e)
                return None
            except Exception:
                logger.exception("Commit for agent %s crashed", runtime.agent_id)
                return None
            logger.debug("Commit finished: %s", report_summary(report))
            return report

        return _job

    def _spawn_detached(self, job: CommitJob) -> None:
        task = asyncio.create_task(job())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait for every detached commit started so far."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
