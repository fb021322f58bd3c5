"""Server configuration and logging setup."""

import logging
import os
import sys
from enum import Enum
from typing import List, Mapping, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3001
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class EmoteTextMode(str, Enum):
    """How an emote is reflected in the text of the agent's conversation record."""
    LEGACY = "legacy"          # Gaze continuation kept, emote clause dropped
    OVERWRITE = "overwrite"    # Whole text replaced by "emoted <emote>"
    APPEND = "append"          # Emote clause appended after the gaze clause


class ServerConfig(BaseModel):
    """Configuration for the Hyperfy inbound interface."""

    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    default_room: str = "hyperfy"           # Room used when a request has no roomId
    world_sender: str = "hyperfy"           # Sender identity of world stimuli
    emote_text_mode: EmoteTextMode = EmoteTextMode.LEGACY
    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        env = os.environ if environ is None else environ
        values: dict = {}

        raw_port = (env.get("HYPERFY_SERVER_PORT") or "").strip()
        if raw_port:
            try:
                values["port"] = int(raw_port)
            except ValueError:
                logger.warning(
                    "HYPERFY_SERVER_PORT=%r is not a number, using %d", raw_port, DEFAULT_PORT
                )

        host = (env.get("HYPERFY_SERVER_HOST") or "").strip()
        if host:
            values["host"] = host

        mode = (env.get("HYPERFY_EMOTE_TEXT_MODE") or "").strip().lower()
        if mode:
            try:
                values["emote_text_mode"] = EmoteTextMode(mode)
            except ValueError:
                logger.warning("Unknown HYPERFY_EMOTE_TEXT_MODE=%r, using legacy", mode)

        origins = env.get("HYPERFY_CORS_ORIGINS")
        if origins:
            values["cors_origins"] = [o.strip() for o in origins.split(",") if o.strip()]

        level = (env.get("HYPERFY_LOG_LEVEL") or "").strip().upper()
        if level:
            values["log_level"] = level

        return cls(**values)


def configure_logging(level: str = "INFO") -> None:
    """Send package logs to stdout. Called once by the process entry point."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
