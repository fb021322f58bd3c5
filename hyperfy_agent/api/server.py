"""Server lifecycle for the Hyperfy API."""

import json
import logging
import os
import threading
from pathlib import Path
from typing import Optional

import uvicorn

from hyperfy_agent.api.app import create_app
from hyperfy_agent.decision.backends import OpenAICompatibleBackend
from hyperfy_agent.models.character import Character
from hyperfy_agent.models.config import ServerConfig, configure_logging
from hyperfy_agent.registry.agents import AgentRegistry
from hyperfy_agent.runtime.base import AgentRuntime
from hyperfy_agent.runtime.local import LocalAgentRuntime

logger = logging.getLogger(__name__)


class HyperfyServer:
    """Serves the Hyperfy API on a background thread."""

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        registry: Optional[AgentRegistry] = None,
    ):
        self.config = config or ServerConfig.from_env()
        self.registry = registry or AgentRegistry()
        self.app = create_app(registry=self.registry, config=self.config)
        self._server: Optional[uvicorn.Server] = None
        self._thread: Optional[threading.Thread] = None
        self._state_lock = threading.Lock()

    @property
    def running(self) -> bool:
        with self._state_lock:
            return bool(self._thread and self._thread.is_alive())

    def register_agent(self, runtime: AgentRuntime) -> None:
        self.registry.register(runtime)

    def unregister_agent(self, runtime: AgentRuntime) -> None:
        self.registry.unregister(runtime)

    def start(self) -> "HyperfyServer":
        with self._state_lock:
            if self._thread and self._thread.is_alive():
                return self
            uv_config = uvicorn.Config(
                self.app,
                host=self.config.host,
                port=self.config.port,
                log_level=self.config.log_level.lower(),
            )
            self._server = uvicorn.Server(uv_config)
            thread = threading.Thread(
                target=self._server.run,
                name="hyperfy-api-server",
                daemon=True,
            )
            thread.start()
            self._thread = thread
        logger.info(
            "Hyperfy REST API bound to %s:%d. If running locally, access it at http://localhost:%d.",
            self.config.host,
            self.config.port,
            self.config.port,
        )
        return self

    def stop(self, join_timeout_seconds: float = 5.0) -> None:
        with self._state_lock:
            server, thread = self._server, self._thread
            if server is None or thread is None:
                return
            server.should_exit = True
        thread.join(timeout=max(0.1, join_timeout_seconds))
        with self._state_lock:
            if self._thread is thread:
                self._thread = None
                self._server = None
        logger.info("Hyperfy server stopped")


class ClientInstance:
    """Handle returned to a host that started the client for one agent."""

    def __init__(self, server: HyperfyServer, runtime: AgentRuntime):
        self.server = server
        self.runtime = runtime

    def stop(self) -> None:
        logger.info("Stopping Hyperfy client for %s", self.runtime.agent_id)
        self.server.unregister_agent(self.runtime)
        self.server.stop()


def start_client(runtime: AgentRuntime, config: Optional[ServerConfig] = None) -> ClientInstance:
    """Start a dedicated server for one agent runtime."""
    server = HyperfyServer(config=config)
    server.register_agent(runtime)
    server.start()
    return ClientInstance(server, runtime)


def load_character(path: str) -> Character:
    return Character.model_validate(json.loads(Path(path).read_text(encoding="utf-8")))


def main() -> None:
    """Console entry point: serve the API in the foreground."""
    config = ServerConfig.from_env()
    configure_logging(config.log_level)

    registry = AgentRegistry()
    character_file = os.environ.get("HYPERFY_CHARACTER_FILE")
    if character_file:
        runtime = LocalAgentRuntime(
            character=load_character(character_file),
            backend=OpenAICompatibleBackend.from_env(),
        )
        registry.register(runtime)
    else:
        logger.warning("HYPERFY_CHARACTER_FILE not set; serving with no registered agents")

    app = create_app(registry=registry, config=config)
    uvicorn.run(app, host=config.host, port=config.port, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()
