"""Session persistence, rewind and resume."""

from .invalidation import (
    PHASE_OWNED_FIELDS,
    InvalidationTableError,
    check_invalidation_table,
    fields_cleared_by,
    reset_to_phase,
)
from .resume import ResumeOption, choose_session, display_session_info, prompt_resume_option
from .store import SessionNotFoundError, SessionStore

__all__ = [
    "PHASE_OWNED_FIELDS",
    "InvalidationTableError",
    "check_invalidation_table",
    "fields_cleared_by",
    "reset_to_phase",
    "ResumeOption",
    "choose_session",
    "display_session_info",
    "prompt_resume_option",
    "SessionNotFoundError",
    "SessionStore",
]
