"""
Session Controller - drives a session through the registered phases.

The controller is the single place phase failures are caught: the session
is saved as it stood and the failure is re-raised as PhaseExecutionError.
"""

import logging
from pathlib import Path
from typing import Optional, Sequence

from .ai.client import get_chat_client
from .ai.images import get_image_client
from .approval.engine import ApprovalEngine
from .approval.providers import AutoApproveDecisionProvider, PromptDecisionProvider
from .config import Config
from .errors import ThemeBuilderError
from .models import Phase, SessionState
from .phases import PHASE_REGISTRY, PhaseDefinition, check_registry
from .phases.context import PhaseContext
from .session.invalidation import check_invalidation_table
from .session.resume import choose_session
from .session.store import SessionStore
from .shopify.cli import get_shopify_cli
from .ui.display import Display
from .ui.prompts import Prompter, TerminalPrompter

logger = logging.getLogger(__name__)


class PhaseExecutionError(ThemeBuilderError):
    """A phase raised; the session was saved before this was raised."""

    def __init__(self, phase: Phase, session_id: str = ""):
        self.phase = phase
        self.session_id = session_id
        super().__init__(f"Phase '{phase.value}' failed")


def build_context(
    config: Config,
    prompter: Optional[Prompter] = None,
    display: Optional[Display] = None,
) -> PhaseContext:
    """Wire up the collaborators for a run from configuration."""
    display = display or Display()
    prompter = prompter or TerminalPrompter(display.console)

    if config.review.auto_approve:
        decisions = AutoApproveDecisionProvider()
    else:
        decisions = PromptDecisionProvider(prompter, display)

    return PhaseContext(
        config=config,
        store=SessionStore(Path(config.paths.sessions_dir)),
        chat=get_chat_client(config),
        images=get_image_client(config),
        shopify=get_shopify_cli(config),
        prompter=prompter,
        display=display,
        engine=ApprovalEngine(decisions, max_iterations=config.generation.max_approval_iterations),
    )


class SessionController:
    """Selects a session and runs its remaining phases in order."""

    def __init__(
        self,
        ctx: PhaseContext,
        registry: Sequence[PhaseDefinition] = PHASE_REGISTRY,
    ):
        self.ctx = ctx
        self.registry = tuple(registry)
        self.session: Optional[SessionState] = None

    def validate(self) -> None:
        """Check the registry and the invalidation table before any work starts."""
        check_registry(self.registry)
        check_invalidation_table()

    def select_session(self) -> SessionState:
        """Resume a stored session, or create a new one."""
        session = choose_session(self.ctx.store, self.ctx.prompter, self.ctx.display)
        if session is None:
            session = self.ctx.store.create()
            self.ctx.display.success(f"New session: {session.id}")
        self.session = session
        return session

    async def start(self) -> SessionState:
        """Validate, pick a session and run it to the end."""
        self.validate()
        self.ctx.display.banner()
        session = self.select_session()
        await self.run_generation_flow(session)
        return session

    async def run_generation_flow(self, session: SessionState) -> None:
        """
        Run every phase from the session's current phase onwards.

        Each completed phase is recorded and saved before the next begins, so
        an interruption resumes at the phase that was running.

        Raises:
            PhaseExecutionError: If a phase raises. The session is saved first.
        """
        self.session = session
        phases = [d.phase for d in self.registry]
        start = phases.index(session.current_phase)
        total = len(self.registry)

        for number, definition in enumerate(self.registry[start:], start + 1):
            if definition.phase in session.completed_phases:
                continue
            session.current_phase = definition.phase
            self.ctx.display.phase_header(definition.name, number, total)
            logger.info("Starting phase %s for session %s", definition.phase.value, session.id)

            try:
                await definition.run(session, self.ctx)
            except Exception as e:
                logger.exception("Phase %s failed", definition.phase.value)
                self.ctx.store.save(session)
                raise PhaseExecutionError(definition.phase, session.id) from e

            session.mark_completed(definition.phase)
            session.touch()
            self.ctx.store.save(session)
            logger.info("Completed phase %s", definition.phase.value)

        self.ctx.display.success(f"All phases complete for {session.output_name}")
