"""Decision — the validated action the agent chose for one turn."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Decision(BaseModel):
    """What the agent does this turn. Read-only once validated."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    look_at: Optional[str] = Field(default=None, alias="lookAt")
    emote: Optional[str] = None
    say: Optional[str] = None
    actions: Optional[List[str]] = None      # Ordered; only the first is dispatched

    @property
    def is_silent(self) -> bool:
        """True when the agent explicitly chose not to react."""
        return (
            self.look_at is None
            and self.emote is None
            and self.say is None
            and self.actions is None
        )

    @property
    def action_tag(self) -> Optional[str]:
        """The single behavior eligible for dispatch this turn."""
        if not self.actions:
            return None
        return self.actions[0]

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
