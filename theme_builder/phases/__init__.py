"""
Phase registry - the ordered workflow stages and the function that runs each.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Sequence

from ..errors import ThemeBuilderError
from ..models import Phase, SessionState
from . import (
    brief,
    code_generation,
    design_system,
    differentiation,
    images,
    products,
    submission,
    testing,
)
from .common import PhasePreconditionError
from .context import PhaseContext

PhaseRunner = Callable[[SessionState, PhaseContext], Awaitable[None]]


class RegistryError(ThemeBuilderError):
    """The phase registry does not list every phase exactly once, in order."""

    pass


@dataclass(frozen=True)
class PhaseDefinition:
    phase: Phase
    run: PhaseRunner

    @property
    def name(self) -> str:
        return self.phase.display_name


PHASE_REGISTRY: tuple[PhaseDefinition, ...] = (
    PhaseDefinition(Phase.BRIEF, brief.run),
    PhaseDefinition(Phase.PRODUCTS, products.run),
    PhaseDefinition(Phase.IMAGES, images.run),
    PhaseDefinition(Phase.DIFFERENTIATION, differentiation.run),
    PhaseDefinition(Phase.DESIGN_SYSTEM, design_system.run),
    PhaseDefinition(Phase.CODE_GENERATION, code_generation.run),
    PhaseDefinition(Phase.TESTING, testing.run),
    PhaseDefinition(Phase.SUBMISSION, submission.run),
)


def check_registry(registry: Sequence[PhaseDefinition] = PHASE_REGISTRY) -> None:
    """Raise RegistryError unless *registry* covers every phase once, in order."""
    listed = [definition.phase for definition in registry]
    expected = Phase.ordered()
    if listed != expected:
        missing = [p.value for p in expected if p not in listed]
        duplicated = sorted({p.value for p in listed if listed.count(p) > 1})
        details = []
        if missing:
            details.append(f"missing {', '.join(missing)}")
        if duplicated:
            details.append(f"duplicated {', '.join(duplicated)}")
        if not details:
            details.append("phases out of order")
        raise RegistryError(f"Invalid phase registry: {'; '.join(details)}")


def get_phase_definition(
    phase: Phase, registry: Sequence[PhaseDefinition] = PHASE_REGISTRY
) -> PhaseDefinition:
    for definition in registry:
        if definition.phase == phase:
            return definition
    raise RegistryError(f"No registered phase for {phase.value}")


__all__ = [
    "PHASE_REGISTRY",
    "PhaseContext",
    "PhaseDefinition",
    "PhasePreconditionError",
    "PhaseRunner",
    "RegistryError",
    "check_registry",
    "get_phase_definition",
]
