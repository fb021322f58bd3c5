"""
Hyperfy API — FastAPI endpoints.

Exposes:
- Health and registered agents
- The per-agent Hyperfy turn endpoint
"""

import logging
from typing import Optional

from fastapi import BackgroundTasks, Body, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from hyperfy_agent.errors import MissingVocabulary, TurnError
from hyperfy_agent.models.config import ServerConfig
from hyperfy_agent.registry.agents import AgentRegistry
from hyperfy_agent.turn.coordinator import TurnCoordinator

logger = logging.getLogger(__name__)


# --- Application Factory ---

def create_app(
    registry: Optional[AgentRegistry] = None,
    config: Optional[ServerConfig] = None,
    coordinator: Optional[TurnCoordinator] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="Hyperfy Agent API",
        description="Embodied agent decisions for Hyperfy virtual worlds",
        version="0.1.0",
    )

    # Initialize components
    cfg = config or ServerConfig()
    reg = registry or AgentRegistry()
    turns = coordinator or TurnCoordinator(registry=reg, config=cfg)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_credentials="*" not in cfg.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Store components on app state for access in endpoints
    app.state.config = cfg
    app.state.registry = reg
    app.state.coordinator = turns

    # === HEALTH ===

    @app.get("/health")
    def health():
        """Liveness and registered agent ids."""
        return {"status": "ok", "agents": reg.agent_ids()}

    # === TURNS ===

    @app.post("/agents/{agent_id_or_name}/hyperfy")
    async def hyperfy_turn(
        agent_id_or_name: str,
        background_tasks: BackgroundTasks,
        body: Optional[dict] = Body(default=None),
    ):
        """Decide how the agent reacts to a world snapshot."""
        try:
            decision = await turns.run_turn(
                agent_id_or_name,
                body,
                spawn=background_tasks.add_task,
            )
        except TurnError as e:
            if e.status_code >= 500:
                logger.error("Turn for %s failed: %s", agent_id_or_name, e)
            else:
                logger.info("Turn for %s rejected: %s", agent_id_or_name, e)
            detail = str(e) if isinstance(e, MissingVocabulary) else e.public_message
            raise HTTPException(e.status_code, detail)
        return decision.to_wire()

    return app
