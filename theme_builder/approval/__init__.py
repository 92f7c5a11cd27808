"""Human approval loop and decision providers."""

from .engine import (
    DEFAULT_MAX_ITERATIONS,
    ApprovalEngine,
    ApprovalOutcome,
    run_approval_loop,
)
from .providers import (
    AutoApproveDecisionProvider,
    Decision,
    DecisionProvider,
    ForcedChoice,
    PromptDecisionProvider,
    ScriptedDecisionProvider,
)

__all__ = [
    "DEFAULT_MAX_ITERATIONS",
    "ApprovalEngine",
    "ApprovalOutcome",
    "run_approval_loop",
    "AutoApproveDecisionProvider",
    "Decision",
    "DecisionProvider",
    "ForcedChoice",
    "PromptDecisionProvider",
    "ScriptedDecisionProvider",
]
