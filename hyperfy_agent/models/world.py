"""World Snapshot — the world state as seen by the agent for one turn."""

from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from hyperfy_agent.errors import MissingVocabulary


def _require_vocabulary(body: Mapping[str, Any], key: str) -> List[str]:
    value = body.get(key)
    if value is None:
        raise MissingVocabulary(f"Request body is missing required '{key}' array", field=key)
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise MissingVocabulary(f"'{key}' must be an array of strings", field=key)
    return list(value)


class WorldSnapshot(BaseModel):
    """
    Opaque world payload with two distinguished vocabularies.

    Only `emotes`, `triggers` and `roomId` are read. The request body itself
    is kept as received (key order, nulls and value types included) so it
    can be rendered verbatim into the prompt.
    """

    model_config = ConfigDict(extra="ignore")

    emotes: List[str]                        # Emote names the avatar can play
    triggers: List[str]                      # Ids of things the avatar can look at
    room_id: Optional[str] = Field(default=None, alias="roomId")

    _body: Dict[str, Any] = PrivateAttr(default_factory=dict)

    @classmethod
    def from_body(cls, body: Optional[Mapping[str, Any]]) -> "WorldSnapshot":
        """Build a snapshot from a raw request body, enforcing both vocabularies."""
        body = dict(body or {})
        emotes = _require_vocabulary(body, "emotes")
        triggers = _require_vocabulary(body, "triggers")
        room_id = body.get("roomId")
        snapshot = cls.model_validate({
            "emotes": emotes,
            "triggers": triggers,
            "roomId": None if room_id is None else str(room_id),
        })
        snapshot._body = body
        return snapshot

    def to_body(self) -> Dict[str, Any]:
        """The request body exactly as the world sent it."""
        if self._body:
            return dict(self._body)
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
