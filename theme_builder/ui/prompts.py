"""Operator input: an abstract prompter with terminal and scripted implementations."""

from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Iterable, Sequence

from rich.console import Console
from rich.prompt import Confirm, IntPrompt, Prompt

from ..errors import ThemeBuilderError
from .display import console as default_console

Choice = tuple[str, Any]
"""(label shown to the operator, value returned)"""


class ScriptExhaustedError(ThemeBuilderError):
    """A scripted prompter or decision provider ran out of answers."""

    pass


class Prompter(ABC):
    """Source of operator answers."""

    @abstractmethod
    def text(self, message: str, default: str | None = None, allow_empty: bool = False) -> str:
        pass

    @abstractmethod
    def select(self, message: str, choices: Sequence[Choice]) -> Any:
        pass

    @abstractmethod
    def confirm(self, message: str, default: bool = True) -> bool:
        pass

    @abstractmethod
    def number(self, message: str, default: int, minimum: int, maximum: int) -> int:
        pass

    def list_items(self, message: str) -> list[str]:
        """Collect entries one per prompt until an empty answer."""
        items = []
        while True:
            value = self.text(f"{message} ({len(items) + 1}, empty to finish)", allow_empty=True)
            if not value.strip():
                return items
            items.append(value.strip())


class TerminalPrompter(Prompter):
    """Interactive prompts on the terminal via rich."""

    def __init__(self, output: Console | None = None):
        self.console = output or default_console

    def text(self, message: str, default: str | None = None, allow_empty: bool = False) -> str:
        while True:
            if default is None:
                value = Prompt.ask(message, console=self.console, default="")
            else:
                value = Prompt.ask(message, console=self.console, default=default)
            if value.strip() or allow_empty:
                return value.strip()
            self.console.print("[red]A value is required.[/red]")

    def select(self, message: str, choices: Sequence[Choice]) -> Any:
        if not choices:
            raise ValueError("select() requires at least one choice")
        self.console.print(f"[bold]{message}[/bold]")
        for i, (label, _value) in enumerate(choices, 1):
            self.console.print(f"  {i}. {label}")
        while True:
            index = IntPrompt.ask("Choose", console=self.console, default=1)
            if 1 <= index <= len(choices):
                return choices[index - 1][1]
            self.console.print(f"[red]Enter a number between 1 and {len(choices)}.[/red]")

    def confirm(self, message: str, default: bool = True) -> bool:
        return Confirm.ask(message, console=self.console, default=default)

    def number(self, message: str, default: int, minimum: int, maximum: int) -> int:
        while True:
            value = IntPrompt.ask(message, console=self.console, default=default)
            if minimum <= value <= maximum:
                return value
            self.console.print(f"[red]Enter a number between {minimum} and {maximum}.[/red]")


class ScriptedPrompter(Prompter):
    """Replays a fixed sequence of answers. Used by tests and replays.

    Answers are consumed in order regardless of the prompt type; each call
    records the message it was asked in ``asked``.
    """

    def __init__(self, answers: Iterable[Any] = ()):
        self.answers = deque(answers)
        self.asked: list[str] = []

    def _next(self, message: str) -> Any:
        self.asked.append(message)
        if not self.answers:
            raise ScriptExhaustedError(f"No scripted answer left for prompt: {message}")
        return self.answers.popleft()

    def text(self, message: str, default: str | None = None, allow_empty: bool = False) -> str:
        value = self._next(message)
        if value is None:
            return default or ""
        return str(value)

    def select(self, message: str, choices: Sequence[Choice]) -> Any:
        value = self._next(message)
        values = [v for _label, v in choices]
        if value not in values:
            raise ValueError(f"Scripted answer {value!r} is not one of {values!r}")
        return value

    def confirm(self, message: str, default: bool = True) -> bool:
        value = self._next(message)
        return default if value is None else bool(value)

    def number(self, message: str, default: int, minimum: int, maximum: int) -> int:
        value = self._next(message)
        return default if value is None else int(value)

    def list_items(self, message: str) -> list[str]:
        value = self._next(message)
        return list(value or [])
