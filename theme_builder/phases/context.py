"""
Phase Context - the services a phase function is given.

Phases never reach for module-level clients; everything they talk to is on
the context, so tests can swap any collaborator for a mock.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from pydantic import TypeAdapter

from ..ai.client import ChatClient
from ..ai.images import ImageClient
from ..approval.engine import ApprovalEngine, ApprovalOutcome, GenerateFn
from ..config import Config
from ..models import ApprovalRecord, Phase, SessionState
from ..session.store import SessionStore
from ..shopify.cli import MockShopifyCLI, ShopifyCLI
from ..ui.display import Display
from ..ui.prompts import Prompter
from .common import slugify

logger = logging.getLogger(__name__)


@dataclass
class PhaseContext:
    """Collaborators shared by every phase in a run."""

    config: Config
    store: SessionStore
    chat: ChatClient
    images: ImageClient
    shopify: ShopifyCLI | MockShopifyCLI
    prompter: Prompter
    display: Display
    engine: ApprovalEngine

    def output_dir(self, session: SessionState) -> Path:
        """Per-session output directory, named after the theme once it has one."""
        return Path(self.config.paths.output_dir) / slugify(session.output_name)

    def theme_dir(self, session: SessionState) -> Path:
        return self.output_dir(session) / "theme"

    def checkpoint(self, session: SessionState) -> None:
        """Persist mid-phase progress."""
        self.store.save(session)

    async def approve(
        self,
        session: SessionState,
        phase: Phase,
        step: str,
        generate: GenerateFn,
        display: Callable[[Any], None],
        artifact_type: Any = Any,
    ) -> ApprovalOutcome:
        """Run (or resume) the approval loop for one step of a phase.

        A step that already ended in an earlier run of the phase is not
        negotiated again; its stored artifact is returned. Otherwise the loop
        continues from any rejected rounds recorded for the step, and each new
        round is saved as it happens.

        Args:
            session: Session receiving the approval records
            phase: Phase the step belongs to
            step: Step name, unique within the phase
            generate: Artifact generator taking optional feedback
            display: Renders an artifact for review
            artifact_type: Type used to store and restore the artifact as JSON

        Returns:
            ApprovalOutcome for the step
        """
        adapter = TypeAdapter(artifact_type)

        stored = session.stored_artifact(phase, step)
        history = session.step_history(phase, step)
        if stored is not None and history and history[-1].terminal:
            logger.info("Reusing %s/%s from an earlier run", phase.value, step)
            artifact = adapter.validate_python(stored["data"])
            return ApprovalOutcome(artifact=artifact, record=history[-1], records=[])

        def on_revision(record: ApprovalRecord) -> None:
            session.add_approval_record(record)
            self.checkpoint(session)

        outcome = await self.engine.run(
            phase,
            step,
            generate,
            display,
            prior_history=history,
            on_revision=on_revision,
        )

        session.add_approval_record(outcome.record)
        session.store_artifact(
            phase,
            step,
            adapter.dump_python(outcome.artifact, mode="json"),
            skipped=outcome.skipped,
        )
        self.checkpoint(session)
        return outcome

