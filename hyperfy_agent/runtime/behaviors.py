"""
Behavior Dispatcher — runs the behavior a decision names.

Behavioral Contract:
- Dispatch only happens for a decision whose records are already committed
- One behavior per turn; the committer passes the decision's first action
- An unknown behavior or a handler error yields a failed DispatchResult
- The continuation handed to handlers cannot change the decision that was
  already returned to the world; whatever it is given is only logged
"""

import inspect
import logging
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict

from hyperfy_agent.models.execution import DispatchResult
from hyperfy_agent.models.memory import Content, ConversationRecord

logger = logging.getLogger(__name__)

Continuation = Callable[[Content], Awaitable[List[ConversationRecord]]]

BehaviorHandler = Callable[
    [ConversationRecord, Mapping[str, Any], Continuation],
    Union[Any, Awaitable[Any]],
]


def normalize_behavior_name(name: str) -> str:
    """Case- and underscore-insensitive form used for matching."""
    return name.strip().lower().replace("_", "")


class Behavior(BaseModel):
    """A named action handler the agent can trigger from a decision."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str                               # e.g., "WAVE_BACK"
    description: str = ""
    similes: List[str] = []                 # Alternative names the model may use
    handler: BehaviorHandler


class BehaviorDispatcher:
    """Registry and dispatcher for an agent's behaviors."""

    def __init__(self, behaviors: Optional[List[Behavior]] = None):
        self._behaviors: Dict[str, Behavior] = {}
        for behavior in behaviors or []:
            self.register(behavior)

    def register(self, behavior: Behavior) -> None:
        """Register a behavior; a later one with the same name replaces it."""
        self._behaviors[behavior.name] = behavior

    def behaviors(self) -> List[Behavior]:
        return list(self._behaviors.values())

    def describe(self) -> str:
        """Human-readable list of available behaviors for the prompt."""
        if not self._behaviors:
            return ""
        lines = [f"- {b.name}: {b.description}" for b in self._behaviors.values()]
        return "# Available Actions\n" + "\n".join(lines)

    def resolve(self, name: str) -> Optional[Behavior]:
        """Find a behavior by exact name, normalized name, then simile."""
        if name in self._behaviors:
            return self._behaviors[name]
        wanted = normalize_behavior_name(name)
        for behavior in self._behaviors.values():
            if normalize_behavior_name(behavior.name) == wanted:
                return behavior
        for behavior in self._behaviors.values():
            if any(normalize_behavior_name(s) == wanted for s in behavior.similes):
                return behavior
        return None

    async def dispatch(
        self,
        name: str,
        message: ConversationRecord,
        state: Mapping[str, Any],
        callback: Continuation,
    ) -> DispatchResult:
        """Dispatch a single behavior by name."""
        dispatched_at = datetime.now(timezone.utc)
        behavior = self.resolve(name)
        if behavior is None:
            logger.warning("No behavior registered for %r", name)
            return DispatchResult(
                behavior=name,
                success=False,
                error=f"No behavior registered for: {name}",
                dispatched_at=dispatched_at,
            )

        start = time.monotonic()
        try:
            data = behavior.handler(message, state, callback)
            if inspect.isawaitable(data):
                data = await data
        except Exception as e:
            elapsed = time.monotonic() - start
            logger.exception("Behavior %s failed", behavior.name)
            return DispatchResult(
                behavior=name,
                resolved_behavior=behavior.name,
                success=False,
                error=str(e),
                dispatched_at=dispatched_at,
                duration_seconds=round(elapsed, 3),
            )

        elapsed = time.monotonic() - start
        logger.info("Behavior %s completed in %.3fs", behavior.name, elapsed)
        return DispatchResult(
            behavior=name,
            resolved_behavior=behavior.name,
            success=True,
            data=data,
            dispatched_at=dispatched_at,
            duration_seconds=round(elapsed, 3),
        )
