"""
Schema Synthesizer — builds the action schema for one turn.

The world tells us which emotes the avatar can play and which things it can
look at. Those vocabularies steer the generative backend (they show up as
enums in the JSON schema), but they never hard-block it: a reasonable value
outside the vocabulary still validates. Over-constraining here turns every
slightly creative answer into an unrecoverable turn failure.

Behavioral Contract:
- Pure: vocabularies in, schema value out
- Never fails, including for two empty vocabularies
- Never cached; every turn builds its own schema from its own snapshot
"""

from dataclasses import dataclass
from typing import Any, List, Literal, Optional, Sequence, Tuple, Type, Union

from pydantic import BaseModel, ConfigDict, Field, create_model

from hyperfy_agent.models.decision import Decision


class ActionSchemaModel(BaseModel):
    """Base for the per-turn models generated by `build_action_schema`."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


def _vocabulary_annotation(vocabulary: Tuple[str, ...]) -> Any:
    """Exact entry, any other string, or null. Just string-or-null when empty."""
    if not vocabulary:
        return Optional[str]
    return Union[Literal[vocabulary], str, None]


@dataclass(frozen=True)
class ActionSchema:
    """A validation contract bound to one vocabulary snapshot."""

    emotes: Tuple[str, ...]
    triggers: Tuple[str, ...]
    model: Type[ActionSchemaModel]

    def validate(self, obj: Any) -> Decision:
        """
        Validate a backend answer and return it as a Decision.

        Raises pydantic.ValidationError when the answer does not conform.
        """
        if isinstance(obj, BaseModel):
            obj = obj.model_dump(by_alias=True)
        validated = self.model.model_validate(obj)
        return Decision.model_validate(validated.model_dump(by_alias=True))

    def json_schema(self) -> dict:
        return self.model.model_json_schema(by_alias=True)

    def vocabulary_for(self, field: str) -> Tuple[str, ...]:
        if field in ("lookAt", "look_at"):
            return self.triggers
        if field == "emote":
            return self.emotes
        raise KeyError(field)

    def in_vocabulary(self, field: str, value: Optional[str]) -> bool:
        """Whether `value` is an entry of this snapshot's vocabulary for `field`."""
        return value is not None and value in self.vocabulary_for(field)

    def novel_values(self, decision: Decision) -> List[str]:
        """Fields whose value is a string outside this snapshot's vocabulary."""
        novel = []
        for field, value in (("lookAt", decision.look_at), ("emote", decision.emote)):
            if value is not None and self.vocabulary_for(field) and not self.in_vocabulary(field, value):
                novel.append(field)
        return novel


def build_action_schema(
    emotes: Sequence[str] = (),
    triggers: Sequence[str] = (),
) -> ActionSchema:
    """Build the action schema for the given emote and trigger vocabularies."""
    emote_vocab = tuple(dict.fromkeys(emotes or ()))
    trigger_vocab = tuple(dict.fromkeys(triggers or ()))

    model = create_model(
        "HyperfyActionSchema",
        __base__=ActionSchemaModel,
        look_at=(_vocabulary_annotation(trigger_vocab), Field(..., alias="lookAt")),
        emote=(_vocabulary_annotation(emote_vocab), Field(...)),
        say=(Optional[str], Field(...)),
        actions=(Optional[List[str]], Field(...)),
    )
    return ActionSchema(emotes=emote_vocab, triggers=trigger_vocab, model=model)
