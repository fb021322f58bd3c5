"""
Prompt Assembler — renders the decision prompt for one turn.

Substitution is exact-match and single-pass: each `{{name}}` in the template
is replaced once by its value, and values are never re-scanned, so a world
payload that happens to contain `{{bio}}` stays literal.
"""

import json
import re
from typing import Any, Dict, Mapping, Optional

from hyperfy_agent.errors import PromptAssemblyError
from hyperfy_agent.models.world import WorldSnapshot
from hyperfy_agent.prompt.template import HYPERFY_HANDLER_TEMPLATE

_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")


def snapshot_values(snapshot: WorldSnapshot) -> Dict[str, str]:
    """Placeholder values contributed by the world snapshot."""
    return {
        "hyperfy": json.dumps(snapshot.to_body(), indent=2),
        "emotes": "|".join(snapshot.emotes),
        "triggers": "|".join(snapshot.triggers),
    }


def render(template: str, values: Mapping[str, Any]) -> str:
    """Substitute every placeholder; an unknown one is a caller error."""
    missing = sorted({m for m in _PLACEHOLDER.findall(template) if m not in values})
    if missing:
        raise PromptAssemblyError(
            f"Unresolved prompt placeholders: {', '.join(missing)}",
            placeholders=missing,
        )

    def _substitute(match: "re.Match[str]") -> str:
        value = values[match.group(1)]
        return "" if value is None else str(value)

    return _PLACEHOLDER.sub(_substitute, template)


def assemble_prompt(
    snapshot: WorldSnapshot,
    state: Mapping[str, Any],
    template: Optional[str] = None,
) -> str:
    """
    Merge the template with per-turn context.

    `state` carries the persona, history and available actions composed by
    the agent runtime. The snapshot's own values win over anything in state
    with the same name.
    """
    values: Dict[str, Any] = dict(state)
    values.update(snapshot_values(snapshot))
    return render(template or HYPERFY_HANDLER_TEMPLATE, values)
