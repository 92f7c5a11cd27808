"""Choosing a stored session to continue, restart, or rewind."""

import logging
from enum import Enum
from typing import Optional

from ..models import Phase, SessionState
from ..ui.display import Display
from ..ui.prompts import Prompter
from .invalidation import reset_to_phase
from .store import SessionStore

logger = logging.getLogger(__name__)

_NEW_SESSION = "__new__"


class ResumeOption(str, Enum):
    CONTINUE = "continue"
    RESTART_PHASE = "restart-phase"
    RESTART_ALL = "restart-all"


def display_session_info(session: SessionState, display: Display) -> None:
    """Show where a session stands and what it already holds."""
    display.section_header("Session")
    display.key_value("ID", session.id)
    display.key_value("Theme", session.theme_name or "(unnamed)")
    display.key_value("Started", session.started_at.strftime("%Y-%m-%d %H:%M"))
    display.key_value("Last updated", session.last_updated_at.strftime("%Y-%m-%d %H:%M"))
    display.key_value("Current phase", session.current_phase.display_name)

    completed = [p.display_name for p in session.completed_phases]
    remaining = [p.display_name for p in session.remaining_phases()]
    display.key_value("Completed", ", ".join(completed) or "none")
    display.key_value("Remaining", ", ".join(remaining) or "none")

    display.section_header("Data")
    display.key_value("Products", str(len(session.products)))
    display.key_value("Sections", str(len(session.sections)))
    display.key_value("Design system", "yes" if session.design_system else "no")
    display.key_value("Test results", str(len(session.test_results)))

    skipped = session.skipped_steps()
    if skipped:
        display.warning(f"Skipped steps: {', '.join(skipped)}")


def prompt_resume_option(prompter: Prompter) -> ResumeOption:
    return prompter.select(
        "What would you like to do?",
        [
            ("Continue from where you left off", ResumeOption.CONTINUE),
            ("Restart a phase", ResumeOption.RESTART_PHASE),
            ("Start over from the beginning", ResumeOption.RESTART_ALL),
        ],
    )


def _prompt_restart_phase(session: SessionState, prompter: Prompter) -> Phase:
    candidates = list(session.completed_phases)
    if session.current_phase not in candidates:
        candidates.append(session.current_phase)
    candidates.sort(key=lambda p: p.position)
    return prompter.select(
        "Which phase should be restarted?",
        [(p.display_name, p) for p in candidates],
    )


def choose_session(
    store: SessionStore, prompter: Prompter, display: Display
) -> Optional[SessionState]:
    """
    Let the operator pick a stored session or start a new one.

    Returns:
        The session to run, already saved, or None when the operator asked
        for a new session.
    """
    summaries = store.list_sessions()
    if not summaries:
        return None

    choices = [("Start a new session", _NEW_SESSION)]
    for summary in summaries:
        label = (
            f"{summary.theme_name or '(unnamed)'} | {summary.current_phase.display_name} | "
            f"{summary.last_updated_at.strftime('%Y-%m-%d %H:%M')} ({summary.id})"
        )
        choices.append((label, summary.id))

    picked = prompter.select("Select a session", choices)
    if picked == _NEW_SESSION:
        return None

    session = store.load(picked)
    display_session_info(session, display)

    option = prompt_resume_option(prompter)
    if option == ResumeOption.RESTART_ALL:
        reset_to_phase(session, Phase.BRIEF)
    elif option == ResumeOption.RESTART_PHASE:
        reset_to_phase(session, _prompt_restart_phase(session, prompter))

    store.save(session)
    logger.info("Resuming session %s at %s", session.id, session.current_phase.value)
    return session
