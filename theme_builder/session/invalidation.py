"""
Invalidation Rules - cascading clears when a session is rewound.

Each phase owns a fixed set of SessionState fields. Rewinding to a phase
clears the fields owned by that phase and by every later phase, and drops
the approval history and step checkpoints recorded for them. Fields owned
by earlier phases are left untouched.
"""

import logging
from typing import Callable

from ..errors import ThemeBuilderError
from ..models import Phase, ProductImages, SessionState

logger = logging.getLogger(__name__)


class InvalidationTableError(ThemeBuilderError):
    """The phase ownership table is inconsistent with the phases or the state model."""

    pass


def _clear_product_images(session: SessionState) -> None:
    for product in session.products:
        product.images = ProductImages()


# Fields that are not plain SessionState attributes need their own clearer.
VIRTUAL_FIELD_CLEARERS: dict[str, Callable[[SessionState], None]] = {
    "product_images": _clear_product_images,
}

# Bookkeeping fields are managed by the controller and rewind itself.
BOOKKEEPING_FIELDS = frozenset({
    "id",
    "started_at",
    "last_updated_at",
    "current_phase",
    "completed_phases",
    "approval_history",
    "step_artifacts",
})

PHASE_OWNED_FIELDS: dict[Phase, tuple[str, ...]] = {
    Phase.BRIEF: ("brief", "theme_name"),
    Phase.PRODUCTS: ("products",),
    Phase.IMAGES: ("product_images", "image_manifest"),
    Phase.DIFFERENTIATION: ("sections", "generated_files"),
    Phase.DESIGN_SYSTEM: ("design_system",),
    Phase.CODE_GENERATION: ("theme_build",),
    Phase.TESTING: ("test_results", "test_theme_preview_url"),
    Phase.SUBMISSION: ("submission_assets", "submission_theme_id", "documentation"),
}


def check_invalidation_table(
    table: dict[Phase, tuple[str, ...]] | None = None,
) -> None:
    """Verify the ownership table covers every phase and every payload field.

    Raises:
        InvalidationTableError: Describing every problem found.
    """
    table = PHASE_OWNED_FIELDS if table is None else table
    model_fields = set(SessionState.model_fields)
    problems = []

    missing_phases = [p.value for p in Phase.ordered() if p not in table]
    if missing_phases:
        problems.append(f"phases without an entry: {', '.join(missing_phases)}")

    owners: dict[str, Phase] = {}
    for phase, fields in table.items():
        for name in fields:
            if name in owners:
                problems.append(
                    f"field {name!r} owned by both {owners[name].value} and {phase.value}"
                )
                continue
            owners[name] = phase
            if name not in model_fields and name not in VIRTUAL_FIELD_CLEARERS:
                problems.append(f"field {name!r} ({phase.value}) has no clearer")
            if name in BOOKKEEPING_FIELDS:
                problems.append(f"bookkeeping field {name!r} cannot be owned by a phase")

    unowned = sorted(model_fields - BOOKKEEPING_FIELDS - set(owners))
    if unowned:
        problems.append(f"payload fields without an owning phase: {', '.join(unowned)}")

    if problems:
        raise InvalidationTableError("; ".join(problems))


def fields_cleared_by(target: Phase) -> list[str]:
    """All fields cleared when rewinding to *target*, in phase order."""
    cleared = []
    for phase in Phase.ordered()[target.position:]:
        cleared.extend(PHASE_OWNED_FIELDS[phase])
    return cleared


def _clear_field(session: SessionState, name: str) -> None:
    clearer = VIRTUAL_FIELD_CLEARERS.get(name)
    if clearer is not None:
        clearer(session)
        return
    field_info = SessionState.model_fields[name]
    setattr(session, name, field_info.get_default(call_default_factory=True))


def reset_to_phase(session: SessionState, target: Phase | str) -> SessionState:
    """Rewind *session* to *target*, clearing everything that depended on it.

    Mutates and returns the same session. Applying it twice is the same as
    applying it once.
    """
    target = Phase.parse(target)
    earlier = set(Phase.ordered()[: target.position])

    session.current_phase = target
    session.completed_phases = [p for p in session.completed_phases if p in earlier]
    session.approval_history = [r for r in session.approval_history if r.phase in earlier]
    session.step_artifacts = {
        key: steps
        for key, steps in session.step_artifacts.items()
        if Phase.parse(key) in earlier
    }

    cleared = fields_cleared_by(target)
    for name in cleared:
        _clear_field(session, name)

    logger.info(
        "Rewound session %s to %s (cleared: %s)",
        session.id,
        target.value,
        ", ".join(cleared),
    )
    return session
