"""Helpers shared by the phase modules."""

import logging
import re
from typing import Any, Callable, Optional

from ..ai.client import Message, TaskType, get_task_type, system_message, user_message
from ..ai.parsing import parse_response, unwrap
from ..config import Config
from ..errors import ThemeBuilderError
from ..models import ThemeBrief

logger = logging.getLogger(__name__)


class PhasePreconditionError(ThemeBuilderError):
    """A phase was started before the data it depends on exists."""

    pass


def slugify(value: str) -> str:
    """Lowercase, hyphen-separated identifier, e.g. 'Artisan Jewelry' -> 'artisan-jewelry'."""
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")
    return slug or "theme"


def describe_model(config: Config, task: str) -> str:
    """Model a named task will run on, for progress messages."""
    task_type = get_task_type(task)
    settings = config.ai.coding if task_type == TaskType.CODING else config.ai.planning
    return f"{settings.model} ({task_type.value})"


def brief_context(brief: ThemeBrief) -> str:
    lines = [
        f"Industry: {brief.industry}",
        f"Target market: {brief.target_market}",
        f"Style direction: {brief.style_direction}",
    ]
    if brief.brand_name:
        lines.append(f"Brand name: {brief.brand_name}")
    if brief.positioning:
        lines.append(f"Positioning: {brief.positioning}")
    return "\n".join(lines)


def task_prompt(task: str, role: str, context: str, instructions: str) -> str:
    """System prompt carrying the task name and its inputs as ``Key: value`` lines."""
    return f"{role}\n\nTask: {task}\n{context}\n\n{instructions.strip()}"


def build_messages(system: str, feedback: Optional[str], initial: str) -> list[Message]:
    """System prompt plus either the initial request or the revision request."""
    if feedback:
        request = f"Please revise based on this feedback: {feedback}\nRespond in the same format."
    else:
        request = initial
    return [system_message(system), user_message(request)]


async def ask_json(
    chat,
    task: str,
    messages: list[Message],
    schema: Any,
    what: str,
    fallback: Optional[Callable[[], Any]] = None,
) -> Any:
    """Send *messages* and parse the reply into *schema*.

    Raises:
        ArtifactParseError: If the reply does not validate and there is no fallback.
    """
    text = await chat.chat(messages, get_task_type(task))
    return unwrap(parse_response(text, schema, fallback), what)


def require(condition: Any, message: str) -> None:
    if not condition:
        raise PhasePreconditionError(message)


def keep_known(what: str, values: list[str], known: list[str]) -> list[str]:
    """Filter *values* to those in *known*, logging the rest."""
    unknown = [v for v in values if v not in known]
    if unknown:
        logger.warning("Ignoring unknown %s: %s", what, ", ".join(unknown))
    return [v for v in values if v in known]
