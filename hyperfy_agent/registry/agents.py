"""
Agent Registry — which agents this process answers for.

Registration happens outside of turns (the hosting environment adds and
removes agents); turns only read. Every read takes one snapshot under the
lock so a turn never sees a half-applied change.
"""

import logging
import threading
from typing import Dict, List, Optional

from hyperfy_agent.errors import AgentNotFound
from hyperfy_agent.runtime.base import AgentRuntime

logger = logging.getLogger(__name__)


class AgentRegistry:
    """Thread-safe mapping of agent id to runtime."""

    def __init__(self):
        self._lock = threading.Lock()
        self._agents: Dict[str, AgentRuntime] = {}

    def register(self, runtime: AgentRuntime) -> None:
        """Register an agent. Re-registering an id replaces the prior entry."""
        logger.info("Registering agent %s (%s)", runtime.agent_id, runtime.name)
        with self._lock:
            self._agents[runtime.agent_id] = runtime

    def unregister(self, runtime: AgentRuntime) -> None:
        """Remove an agent. Unknown agents are ignored."""
        logger.info("Unregistering agent %s", runtime.agent_id)
        with self._lock:
            self._agents.pop(runtime.agent_id, None)

    def get(self, agent_id: str) -> Optional[AgentRuntime]:
        with self._lock:
            return self._agents.get(agent_id)

    def resolve(self, agent_id_or_name: str) -> AgentRuntime:
        """
        Find an agent by exact id, then by case-insensitive name.

        Raises AgentNotFound when neither matches.
        """
        with self._lock:
            agents = dict(self._agents)

        runtime = agents.get(agent_id_or_name)
        if runtime is not None:
            return runtime

        wanted = agent_id_or_name.lower()
        for candidate in agents.values():
            if candidate.name.lower() == wanted:
                return candidate

        raise AgentNotFound(f"No agent registered as {agent_id_or_name!r}", target=agent_id_or_name)

    def agent_ids(self) -> List[str]:
        with self._lock:
            return list(self._agents)

    def __len__(self) -> int:
        with self._lock:
            return len(self._agents)

    def __contains__(self, agent_id: object) -> bool:
        with self._lock:
            return agent_id in self._agents
