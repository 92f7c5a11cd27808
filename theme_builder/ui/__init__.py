"""Terminal rendering and operator prompts."""

from .display import Display
from .prompts import Prompter, ScriptedPrompter, ScriptExhaustedError, TerminalPrompter

__all__ = [
    "Display",
    "Prompter",
    "ScriptedPrompter",
    "ScriptExhaustedError",
    "TerminalPrompter",
]
