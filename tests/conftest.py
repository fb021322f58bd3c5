"""Shared fixtures: a scripted generative backend and a ready-made agent."""

from typing import List, Optional

import pytest

from hyperfy_agent.decision.backends import BackendError
from hyperfy_agent.models.character import Character
from hyperfy_agent.runtime.local import LocalAgentRuntime
from hyperfy_agent.schema.synthesizer import ActionSchema


class ScriptedBackend:
    """Returns queued answers in order and records every call."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.prompts: List[str] = []
        self.schemas: List[ActionSchema] = []

    @property
    def calls(self) -> int:
        return len(self.prompts)

    def push(self, answer) -> None:
        self.answers.append(answer)

    async def generate_object(self, prompt: str, schema: ActionSchema) -> Optional[dict]:
        self.prompts.append(prompt)
        self.schemas.append(schema)
        answer = self.answers.pop(0) if self.answers else None
        if isinstance(answer, BackendError):
            raise answer
        return answer


def make_character(name: str = "Ava") -> Character:
    return Character(
        name=name,
        bio=["A friendly guide who lives in the plaza."],
        lore=["Once mapped every portal in the world."],
        knowledge=["The fountain is in the middle of the plaza."],
        message_directions=["Keep replies short."],
    )


@pytest.fixture
def backend():
    return ScriptedBackend()


@pytest.fixture
def runtime(backend):
    return LocalAgentRuntime(character=make_character(), backend=backend)
