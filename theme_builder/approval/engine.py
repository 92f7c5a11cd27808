"""
Approval Engine - bounded generate, display, decide negotiation.

One loop negotiates one artifact for one (phase, step) pair. Every round
calls ``generate(feedback)``, shows the result, and asks the decision
provider to accept or revise. After ``max_iterations`` rejected rounds the
reviewer must either accept the next revision or skip the step.
"""

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar, Union

from ..models import SKIPPED_FEEDBACK, ApprovalRecord, Phase
from .providers import Decision, DecisionProvider, ForcedChoice

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ITERATIONS = 10

GenerateFn = Callable[[Optional[str]], Union[T, Awaitable[T]]]
DisplayFn = Callable[[T], None]
RevisionCallback = Callable[[ApprovalRecord], None]


@dataclass
class ApprovalOutcome(Generic[T]):
    """Result of one approval loop."""

    artifact: T
    record: ApprovalRecord
    records: list[ApprovalRecord] = field(default_factory=list)

    @property
    def accepted(self) -> bool:
        return self.record.accepted

    @property
    def skipped(self) -> bool:
        return self.record.skipped

    @property
    def result(self) -> Optional[T]:
        """The artifact, or None when the step was skipped."""
        return None if self.skipped else self.artifact


async def _call_generate(generate: GenerateFn, feedback: Optional[str]) -> Any:
    value = generate(feedback)
    if inspect.isawaitable(value):
        value = await value
    return value


class ApprovalEngine:
    """Runs approval loops against a decision provider."""

    def __init__(
        self,
        decisions: DecisionProvider,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
    ):
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.decisions = decisions
        self.max_iterations = max_iterations

    async def run(
        self,
        phase: Phase,
        step: str,
        generate: GenerateFn,
        display: DisplayFn,
        max_iterations: Optional[int] = None,
        prior_history: Optional[list[ApprovalRecord]] = None,
        on_revision: Optional[RevisionCallback] = None,
    ) -> ApprovalOutcome:
        """
        Negotiate one artifact until it is accepted or the loop is forced.

        Args:
            phase: Phase the step belongs to.
            step: Step name, unique within the phase.
            generate: Produces an artifact from optional feedback. May be async.
                Its exceptions propagate unchanged.
            display: Renders an artifact for review.
            max_iterations: Rounds allowed before the forced decision.
            prior_history: Rejected records from an interrupted loop for the
                same step. Numbering continues after them and the first
                generation uses the last recorded feedback.
            on_revision: Called with each new rejected record, so the caller
                can checkpoint it.

        Returns:
            ApprovalOutcome with the artifact and the new records.
        """
        limit = self.max_iterations if max_iterations is None else max_iterations
        if limit < 1:
            raise ValueError("max_iterations must be at least 1")
        prior = list(prior_history or [])
        iteration = len(prior) + 1
        feedback = prior[-1].feedback if prior else None
        records: list[ApprovalRecord] = []

        while iteration <= limit:
            artifact = await _call_generate(generate, feedback)
            display(artifact)

            decision = await self.decisions.request_decision(phase, step, iteration)
            if decision == Decision.ACCEPT:
                record = ApprovalRecord(
                    phase=phase, step=step, iteration=iteration, accepted=True
                )
                records.append(record)
                logger.info("Accepted %s/%s at iteration %d", phase.value, step, iteration)
                return ApprovalOutcome(artifact=artifact, record=record, records=records)

            feedback = await self._collect_feedback(phase, step, iteration)
            record = ApprovalRecord(
                phase=phase,
                step=step,
                iteration=iteration,
                accepted=False,
                feedback=feedback,
            )
            records.append(record)
            if on_revision is not None:
                on_revision(record)
            iteration += 1

        return await self._force(phase, step, generate, limit, iteration, feedback, records)

    async def _collect_feedback(self, phase: Phase, step: str, iteration: int) -> str:
        while True:
            feedback = (await self.decisions.request_feedback(phase, step, iteration)).strip()
            if feedback:
                return feedback
            logger.warning("Empty feedback for %s/%s, asking again", phase.value, step)
            self.decisions.notify_invalid_feedback(phase, step, iteration)

    async def _force(
        self,
        phase: Phase,
        step: str,
        generate: GenerateFn,
        limit: int,
        iteration: int,
        feedback: Optional[str],
        records: list[ApprovalRecord],
    ) -> ApprovalOutcome:
        choice = await self.decisions.request_forced_choice(phase, step, limit)
        artifact = await _call_generate(generate, feedback)

        if choice == ForcedChoice.SKIP:
            record = ApprovalRecord(
                phase=phase,
                step=step,
                iteration=iteration,
                accepted=False,
                feedback=SKIPPED_FEEDBACK,
                forced=True,
                skipped=True,
            )
            logger.warning("Skipped %s/%s after %d iterations", phase.value, step, limit)
        else:
            record = ApprovalRecord(
                phase=phase, step=step, iteration=iteration, accepted=True, forced=True
            )
            logger.warning("Force-accepted %s/%s after %d iterations", phase.value, step, limit)

        records.append(record)
        return ApprovalOutcome(artifact=artifact, record=record, records=records)


async def run_approval_loop(
    phase: Phase,
    step: str,
    generate: GenerateFn,
    display: DisplayFn,
    decisions: DecisionProvider,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    prior_history: Optional[list[ApprovalRecord]] = None,
    on_revision: Optional[RevisionCallback] = None,
) -> ApprovalOutcome:
    """Functional form of ``ApprovalEngine.run``."""
    engine = ApprovalEngine(decisions, max_iterations=max_iterations)
    return await engine.run(
        phase,
        step,
        generate,
        display,
        prior_history=prior_history,
        on_revision=on_revision,
    )
