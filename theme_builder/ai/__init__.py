"""AI collaborators: chat completions, reply parsing and image generation."""

from .client import (
    ChatClient,
    ChatError,
    MockChatClient,
    OpenRouterChatClient,
    TaskType,
    get_chat_client,
    get_task_type,
)
from .images import ImageClient, ImageResult, MockImageClient, ReplicateImageClient, get_image_client
from .parsing import ArtifactParseError, Failed, Fallback, Parsed, parse_response, unwrap

__all__ = [
    "ChatClient",
    "ChatError",
    "MockChatClient",
    "OpenRouterChatClient",
    "TaskType",
    "get_chat_client",
    "get_task_type",
    "ImageClient",
    "ImageResult",
    "MockImageClient",
    "ReplicateImageClient",
    "get_image_client",
    "ArtifactParseError",
    "Failed",
    "Fallback",
    "Parsed",
    "parse_response",
    "unwrap",
]
