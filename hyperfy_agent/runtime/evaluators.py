"""
Evaluators — post-hoc policy hooks over a committed exchange.

Evaluators run after both conversation records are stored. They may look at
the exchange and react (collect facts, update counters, notify someone), but
the records they receive are frozen and already committed.

Behavioral Contract:
- Only active evaluators run (temporal activation: always, or a cron schedule)
- An evaluator failure is reported in its result, never raised into the commit
- Evaluators run in registration order
"""

import inspect
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

from croniter import croniter
from pydantic import BaseModel, ConfigDict

from hyperfy_agent.models.execution import EvaluationResult
from hyperfy_agent.models.memory import ConversationRecord

logger = logging.getLogger(__name__)

EvaluatorHandler = Callable[
    [ConversationRecord, Mapping[str, Any], Any],
    Union[Any, Awaitable[Any]],
]


class EvaluatorActivation(BaseModel):
    """When an evaluator is active: always, or on a cron schedule."""

    always: bool = True
    schedule: Optional[str] = None          # Cron expression, matched to the minute


class Evaluator(BaseModel):
    """A named hook run over each incoming stimulus after commit."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    description: str = ""
    activation: EvaluatorActivation = EvaluatorActivation()
    handler: EvaluatorHandler


def is_evaluator_active(evaluator: Evaluator, current_time: datetime) -> bool:
    """Determine if an evaluator is active based on its activation."""
    activation = evaluator.activation
    if activation.always:
        return True
    if not activation.schedule:
        return False
    try:
        return bool(croniter.match(activation.schedule, current_time))
    except (ValueError, KeyError):
        # Invalid cron expression: inactive
        logger.warning(
            "Evaluator %s has an invalid schedule %r", evaluator.name, activation.schedule
        )
        return False


class EvaluatorSet:
    """Ordered collection of evaluators for one agent."""

    def __init__(self, evaluators: Optional[List[Evaluator]] = None):
        self._evaluators: Dict[str, Evaluator] = {}
        for evaluator in evaluators or []:
            self.register(evaluator)

    def register(self, evaluator: Evaluator) -> None:
        """Register an evaluator; a later one with the same name replaces it."""
        self._evaluators[evaluator.name] = evaluator

    def names(self) -> List[str]:
        return list(self._evaluators)

    async def run(
        self,
        record: ConversationRecord,
        state: Mapping[str, Any],
        runtime: Any,
        current_time: Optional[datetime] = None,
    ) -> List[EvaluationResult]:
        """Run every active evaluator over `record`."""
        if current_time is None:
            current_time = datetime.now(timezone.utc)

        results = []
        for evaluator in self._evaluators.values():
            if not is_evaluator_active(evaluator, current_time):
                continue
            results.append(await self._run_one(evaluator, record, state, runtime))
        return results

    async def _run_one(
        self,
        evaluator: Evaluator,
        record: ConversationRecord,
        state: Mapping[str, Any],
        runtime: Any,
    ) -> EvaluationResult:
        try:
            data = evaluator.handler(record, state, runtime)
            if inspect.isawaitable(data):
                data = await data
        except Exception as e:
            logger.exception("Evaluator %s failed on record %s", evaluator.name, record.id)
            return EvaluationResult(
                evaluator=evaluator.name,
                success=False,
                error=str(e),
                evaluated_at=datetime.now(timezone.utc),
            )
        return EvaluationResult(
            evaluator=evaluator.name,
            success=True,
            data=data,
            evaluated_at=datetime.now(timezone.utc),
        )
