"""Conversation Record — one durable entry in an agent's exchange with the world."""

from datetime import datetime
from typing import List, Optional
from uuid import NAMESPACE_URL, UUID, uuid5

from pydantic import BaseModel, ConfigDict


def string_to_uuid(value: str) -> str:
    """Deterministic identifier for a room, sender or agent name."""
    return str(uuid5(NAMESPACE_URL, f"hyperfy:{value}"))


def is_uuid(value: str) -> bool:
    try:
        UUID(value)
    except (ValueError, TypeError, AttributeError):
        return False
    return True


class Content(BaseModel):
    """The payload of a conversation record."""

    model_config = ConfigDict(frozen=True)

    text: str = ""
    action: Optional[str] = None            # Behavior named by the decision, if any
    source: Optional[str] = None            # e.g., "hyperfy"
    attachments: List[dict] = []
    in_reply_to: Optional[str] = None


class ConversationRecord(BaseModel):
    """
    A stimulus from the world or a decision by the agent.

    Records are immutable. The memory store fills in `signature` and
    `prior_record_hash` when it appends, returning a new instance.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    agent_id: str                           # Agent whose memory this belongs to
    user_id: str                            # Sender: the agent itself or the world
    room_id: str                            # Conversation identifier
    content: Content
    created_at: datetime

    # INTEGRITY
    signature: str = ""
    prior_record_hash: Optional[str] = None

    @property
    def is_from_agent(self) -> bool:
        return self.user_id == self.agent_id
