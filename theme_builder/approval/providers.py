"""
Decision Providers - where accept/revise decisions come from.

The approval engine only speaks the protocol below. Whether the answers come
from a person at a terminal, a scripted replay, or an auto-approver is the
provider's concern.
"""

import logging
from abc import ABC, abstractmethod
from collections import deque
from enum import Enum
from typing import Iterable, Optional

from ..models import Phase
from ..ui.display import Display
from ..ui.prompts import Prompter, ScriptExhaustedError

logger = logging.getLogger(__name__)


class Decision(str, Enum):
    """Reviewer's answer after seeing an artifact."""

    ACCEPT = "accept"
    REVISE = "revise"


class ForcedChoice(str, Enum):
    """Reviewer's answer once the iteration limit is reached."""

    ACCEPT = "accept"
    SKIP = "skip"


class DecisionProvider(ABC):
    """Transport for approval decisions."""

    @abstractmethod
    async def request_decision(self, phase: Phase, step: str, iteration: int) -> Decision:
        """Ask whether the displayed artifact is accepted."""
        pass

    @abstractmethod
    async def request_feedback(self, phase: Phase, step: str, iteration: int) -> str:
        """Ask what should change in the next revision."""
        pass

    @abstractmethod
    async def request_forced_choice(
        self, phase: Phase, step: str, max_iterations: int
    ) -> ForcedChoice:
        """Ask how to end a loop that ran out of iterations."""
        pass

    def notify_invalid_feedback(self, phase: Phase, step: str, iteration: int) -> None:
        """Called when the feedback returned was empty."""
        pass


class PromptDecisionProvider(DecisionProvider):
    """Interactive decisions through a Prompter."""

    def __init__(self, prompter: Prompter, display: Optional[Display] = None):
        self.prompter = prompter
        self.display = display or Display()

    async def request_decision(self, phase: Phase, step: str, iteration: int) -> Decision:
        return self.prompter.select(
            f"Review {step} (iteration {iteration})",
            [
                ("Accept", Decision.ACCEPT),
                ("Request changes", Decision.REVISE),
            ],
        )

    async def request_feedback(self, phase: Phase, step: str, iteration: int) -> str:
        return self.prompter.text("What would you like changed?", allow_empty=True)

    async def request_forced_choice(
        self, phase: Phase, step: str, max_iterations: int
    ) -> ForcedChoice:
        self.display.warning(f"Reached {max_iterations} iterations for {step}.")
        return self.prompter.select(
            "How do you want to proceed?",
            [
                ("Accept the next revision", ForcedChoice.ACCEPT),
                ("Skip this step", ForcedChoice.SKIP),
            ],
        )

    def notify_invalid_feedback(self, phase: Phase, step: str, iteration: int) -> None:
        self.display.error("Feedback is required to request changes.")


class ScriptedDecisionProvider(DecisionProvider):
    """
    Replays queued decisions, feedback and forced choices.

    Each queue is consumed independently. ``calls`` records every request as
    ``(method, step, iteration_or_limit)``.
    """

    def __init__(
        self,
        decisions: Iterable[Decision | str] = (),
        feedback: Iterable[str] = (),
        forced: Iterable[ForcedChoice | str] = (),
    ):
        self.decisions = deque(Decision(d) for d in decisions)
        self.feedback = deque(feedback)
        self.forced = deque(ForcedChoice(f) for f in forced)
        self.calls: list[tuple[str, str, int]] = []
        self.invalid_feedback_count = 0

    def _pop(self, queue: deque, what: str, step: str):
        if not queue:
            raise ScriptExhaustedError(f"No scripted {what} left for step {step!r}")
        return queue.popleft()

    async def request_decision(self, phase: Phase, step: str, iteration: int) -> Decision:
        self.calls.append(("decision", step, iteration))
        return self._pop(self.decisions, "decision", step)

    async def request_feedback(self, phase: Phase, step: str, iteration: int) -> str:
        self.calls.append(("feedback", step, iteration))
        return self._pop(self.feedback, "feedback", step)

    async def request_forced_choice(
        self, phase: Phase, step: str, max_iterations: int
    ) -> ForcedChoice:
        self.calls.append(("forced", step, max_iterations))
        return self._pop(self.forced, "forced choice", step)

    def notify_invalid_feedback(self, phase: Phase, step: str, iteration: int) -> None:
        self.invalid_feedback_count += 1


class AutoApproveDecisionProvider(DecisionProvider):
    """Accepts every artifact on sight. For offline runs and testing only."""

    async def request_decision(self, phase: Phase, step: str, iteration: int) -> Decision:
        logger.warning("Auto-approving %s/%s (iteration %d)", phase.value, step, iteration)
        return Decision.ACCEPT

    async def request_feedback(self, phase: Phase, step: str, iteration: int) -> str:
        raise RuntimeError("Auto-approve never requests feedback")

    async def request_forced_choice(
        self, phase: Phase, step: str, max_iterations: int
    ) -> ForcedChoice:
        return ForcedChoice.ACCEPT
