"""
Parsing model replies into typed artifacts.

Every parse produces a tagged result: ``Parsed`` when the reply validated,
``Fallback`` when it did not and a deterministic substitute was built, and
``Failed`` when there was nothing to fall back to.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar, Union

from pydantic import TypeAdapter, ValidationError

from ..errors import ThemeBuilderError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ArtifactParseError(ThemeBuilderError):
    """A model reply could not be turned into an artifact."""

    pass


@dataclass
class Parsed(Generic[T]):
    value: T


@dataclass
class Fallback(Generic[T]):
    value: T
    reason: str


@dataclass
class Failed:
    reason: str
    raw: str


ParseResult = Union[Parsed[T], Fallback[T], Failed]

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_DECODER = json.JSONDecoder()


def _longest_json_value(text: str) -> Any:
    # Try every opening bracket and keep the longest value that decodes, so
    # bracketed prose around the payload is ignored.
    best = None
    best_length = 0
    position = 0
    while position < len(text):
        if text[position] not in "{[":
            position += 1
            continue
        try:
            value, end = _DECODER.raw_decode(text, position)
        except json.JSONDecodeError:
            position += 1
            continue
        if end - position > best_length:
            best, best_length = value, end - position
        position = end
    if best_length == 0:
        raise json.JSONDecodeError("No JSON object or array found", text, 0)
    return best


def extract_json(text: str) -> Any:
    """Pull a JSON value out of a reply that may wrap it in prose or fences.

    Raises:
        json.JSONDecodeError: If no JSON value can be decoded.
    """
    candidate = text.strip()

    match = _FENCED_BLOCK.search(candidate)
    if match:
        candidate = match.group(1).strip()

    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        return _longest_json_value(candidate)


def parse_response(
    text: str,
    schema: Any,
    fallback: Optional[Callable[[], T]] = None,
) -> ParseResult:
    """Validate a reply against *schema* (any type a TypeAdapter accepts)."""
    try:
        data = extract_json(text)
        return Parsed(TypeAdapter(schema).validate_python(data))
    except (json.JSONDecodeError, ValidationError) as e:
        reason = f"{type(e).__name__}: {e}"
        if fallback is not None:
            return Fallback(fallback(), reason)
        return Failed(reason, text)


def unwrap(result: ParseResult, what: str) -> Any:
    """Return the artifact of a Parsed or Fallback result.

    Raises:
        ArtifactParseError: If the result is Failed.
    """
    if isinstance(result, Parsed):
        return result.value
    if isinstance(result, Fallback):
        logger.warning("Using fallback %s: %s", what, result.reason.splitlines()[0])
        return result.value
    raise ArtifactParseError(f"Could not parse {what}: {result.reason}")


def strip_code_fences(text: str) -> str:
    """Return the body of the first fenced block, or the text itself."""
    match = re.search(r"```[\w-]*\s*\n([\s\S]*?)```", text)
    return (match.group(1) if match else text).strip() + "\n"
