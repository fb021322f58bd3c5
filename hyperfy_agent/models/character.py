"""Character — persona of a locally hosted agent."""

from typing import List

from pydantic import BaseModel


class Character(BaseModel):
    """Everything the prompt says about who the agent is."""

    name: str
    bio: List[str] = []
    lore: List[str] = []
    knowledge: List[str] = []
    message_directions: List[str] = []       # Style rules, e.g. "keep it short"
    action_examples: List[str] = []          # Example exchanges shown to the model
