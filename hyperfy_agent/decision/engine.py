"""
Decision Engine — turns a prompt and a schema into a validated Decision.

Protocol:
  GENERATE → RE-VALIDATE → CLASSIFY (act | stay silent)

The backend is told about the schema, but we never trust it to have honored
it: every answer is validated again against the schema built for this turn.
Neither failure is retried here; the caller owns retry policy.
"""

import logging
from typing import Optional

from pydantic import ValidationError

from hyperfy_agent.decision.backends import BackendError, GenerativeBackend
from hyperfy_agent.errors import BackendUnavailable, SchemaViolation
from hyperfy_agent.models.decision import Decision
from hyperfy_agent.schema.synthesizer import ActionSchema

logger = logging.getLogger(__name__)


class DecisionEngine:
    """Invokes the generative backend and enforces the action schema."""

    async def decide(
        self,
        prompt: str,
        schema: ActionSchema,
        backend: GenerativeBackend,
    ) -> Decision:
        """
        Run one decision.

        Raises BackendUnavailable when the backend produces nothing and
        SchemaViolation when its answer does not conform.
        """
        raw = await self._generate(prompt, schema, backend)
        if raw is None:
            raise BackendUnavailable("Generative backend returned no result")

        try:
            decision = schema.validate(raw)
        except ValidationError as exc:
            logger.error("Backend answer does not match action schema: %r", raw)
            raise SchemaViolation(
                f"Backend answer does not match action schema: {exc.error_count()} error(s)",
                raw=raw,
            ) from exc

        if decision.is_silent:
            logger.info("Decision: stay silent")
            return decision

        novel = schema.novel_values(decision)
        if novel:
            logger.debug("Decision uses values outside the vocabulary for %s", ", ".join(novel))
        if decision.actions and len(decision.actions) > 1:
            logger.info(
                "Decision named %d actions; only %r is eligible for dispatch",
                len(decision.actions),
                decision.action_tag,
            )
        return decision

    async def _generate(
        self,
        prompt: str,
        schema: ActionSchema,
        backend: GenerativeBackend,
    ) -> Optional[object]:
        try:
            return await backend.generate_object(prompt, schema)
        except BackendError as exc:
            logger.warning("Generative backend failed (%s): %s", exc.error_code, exc)
            raise BackendUnavailable(str(exc), error_code=exc.error_code) from exc
