"""Chat completion clients: OpenRouter via the OpenAI SDK, and an offline mock."""

import asyncio
import json
import logging
import os
import re
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from ..config import AIConfig, Config, ModelSettings
from ..errors import ThemeBuilderError

logger = logging.getLogger(__name__)

Message = dict[str, str]


class ChatError(ThemeBuilderError):
    """Chat completion failed after all retries."""

    pass


class TaskType(str, Enum):
    """Which model family a request goes to."""

    PLANNING = "planning"
    CODING = "coding"


TASK_MODEL_MAP: dict[str, TaskType] = {
    # Planning: analysis, concepts, design decisions
    "market-analysis": TaskType.PLANNING,
    "product-catalog": TaskType.PLANNING,
    "header-proposal": TaskType.PLANNING,
    "footer-proposal": TaskType.PLANNING,
    "js-enhancements": TaskType.PLANNING,
    "section-proposals": TaskType.PLANNING,
    "color-schemes": TaskType.PLANNING,
    "typography": TaskType.PLANNING,
    "spacing": TaskType.PLANNING,
    "buttons": TaskType.PLANNING,
    # Coding: Liquid, CSS, JavaScript, theme configuration
    "header-code": TaskType.CODING,
    "footer-code": TaskType.CODING,
    "js-code": TaskType.CODING,
    "section-code": TaskType.CODING,
    "homepage-layout": TaskType.CODING,
}


def get_task_type(task: str) -> TaskType:
    """Task type for a named task, defaulting to planning."""
    return TASK_MODEL_MAP.get(task, TaskType.PLANNING)


def system_message(content: str) -> Message:
    return {"role": "system", "content": content}


def user_message(content: str) -> Message:
    return {"role": "user", "content": content}


def assistant_message(content: str) -> Message:
    return {"role": "assistant", "content": content}


class ChatClient(ABC):
    """Abstract base class for chat completion clients."""

    def __init__(self, config: AIConfig):
        self.config = config

    def settings_for(self, task_type: TaskType) -> ModelSettings:
        if task_type == TaskType.CODING:
            return self.config.coding
        return self.config.planning

    @abstractmethod
    async def chat(self, messages: list[Message], task_type: TaskType) -> str:
        """Send a conversation and return the assistant's reply text.

        Args:
            messages: Conversation so far, as role/content dicts.
            task_type: Selects model, temperature and token limit.

        Returns:
            The reply content.

        Raises:
            ChatError: If the request cannot be completed.
        """
        pass


class OpenRouterChatClient(ChatClient):
    """OpenRouter chat completions through the OpenAI-compatible API.

    The SDK's own retries are disabled; this client retries with
    exponential backoff (1s, 2s, 4s by default).
    """

    def __init__(self, config: AIConfig, api_key: str | None = None):
        super().__init__(config)
        self._api_key = api_key or os.environ.get("OPENROUTER_API_KEY")
        self._client = None

    def _get_client(self):
        """Lazy-init the OpenAI client."""
        if self._client is None:
            if not self._api_key:
                raise ChatError("OPENROUTER_API_KEY is not set")
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(
                api_key=self._api_key,
                base_url=self.config.base_url,
                max_retries=0,
                default_headers={
                    "HTTP-Referer": self.config.referer,
                    "X-Title": self.config.app_title,
                },
            )
        return self._client

    async def chat(self, messages: list[Message], task_type: TaskType) -> str:
        from openai import APIError

        settings = self.settings_for(task_type)
        client = self._get_client()
        retries = self.config.max_retries

        for attempt in range(retries + 1):
            try:
                response = await client.chat.completions.create(
                    model=settings.model,
                    messages=messages,
                    temperature=settings.temperature,
                    max_tokens=settings.max_tokens,
                )
                if not response.choices:
                    raise ChatError(f"No choices in response from {settings.model}")
                content = response.choices[0].message.content
                if not content:
                    raise ChatError(f"Empty response from {settings.model}")
                if response.usage is not None:
                    logger.debug(
                        "%s used %d tokens", settings.model, response.usage.total_tokens
                    )
                return content
            except (APIError, ChatError) as e:
                if attempt == retries:
                    raise ChatError(
                        f"Chat request to {settings.model} failed after "
                        f"{retries + 1} attempts: {e}"
                    ) from e
                delay = self.config.retry_base_delay * 2**attempt
                logger.warning(
                    "Chat request failed (attempt %d/%d): %s; retrying in %.0fs",
                    attempt + 1,
                    retries + 1,
                    e,
                    delay,
                )
                await asyncio.sleep(delay)

        raise ChatError("Chat request failed after all retries")


def _field(prompt: str, name: str, default: str = "") -> str:
    match = re.search(rf"^{re.escape(name)}:\s*(.+)$", prompt, re.MULTILINE | re.IGNORECASE)
    return match.group(1).strip() if match else default


def _fenced(payload: Any) -> str:
    return "```json\n" + json.dumps(payload, indent=2) + "\n```"


class MockChatClient(ChatClient):
    """Deterministic responses for offline runs and tests.

    Requests are matched on the ``Task:`` line every phase prompt carries.
    Each call is recorded in ``calls`` as ``(task, task_type)``.
    """

    def __init__(self, config: AIConfig | None = None):
        super().__init__(config or AIConfig(provider="mock"))
        self.calls: list[tuple[str, TaskType]] = []

    async def chat(self, messages: list[Message], task_type: TaskType) -> str:
        prompt = "\n".join(m["content"] for m in messages)
        task = _field(prompt, "Task")
        self.calls.append((task, task_type))

        handler = {
            "market-analysis": self._market_analysis,
            "product-catalog": self._product_catalog,
            "header-proposal": self._header_proposal,
            "footer-proposal": self._footer_proposal,
            "js-enhancements": self._js_enhancements,
            "section-proposals": self._section_proposals,
            "header-code": self._section_code,
            "footer-code": self._section_code,
            "section-code": self._section_code,
            "js-code": self._js_code,
            "color-schemes": self._color_schemes,
            "typography": self._typography,
            "spacing": self._spacing,
            "buttons": self._buttons,
            "homepage-layout": self._homepage_layout,
        }.get(task)

        if handler is None:
            return "This is a mock chat response for testing purposes."
        return handler(prompt)

    def _market_analysis(self, prompt: str) -> str:
        industry = _field(prompt, "Industry", "General goods")
        return _fenced({
            "brand_name": f"{industry.split()[0].title()} Atelier",
            "positioning": f"Considered {industry.lower()} for people who buy less and better.",
            "target_audience": {
                "demographics": _field(prompt, "Target market", "Adults 25-45"),
                "psychographics": "Design-led, values craftsmanship",
                "pain_points": ["Generic storefronts", "Unclear product origins"],
            },
            "differentiation": {
                "unique_value": "Editorial storytelling around every product",
                "competitor_gaps": ["Weak product narratives", "Cluttered navigation"],
                "opportunities": ["Lookbook-driven shopping", "Material transparency"],
            },
            "theme_features": {
                "must_have": ["Quick shop", "Product filtering", "Mobile-first layout"],
                "nice_to_have": ["Wishlist", "Size guide"],
                "unique": ["Shoppable lookbook", "Material explorer"],
            },
            "color_mood": {
                "primary": "Warm neutral",
                "mood": _field(prompt, "Style direction", "minimalist"),
                "reasoning": "Lets product photography lead",
            },
        })

    def _product_catalog(self, prompt: str) -> str:
        count = int(_field(prompt, "Count", "5"))
        products = []
        for i in range(1, count + 1):
            price = 20.0 + 15 * i
            products.append({
                "id": f"mock-product-{i}",
                "name": f"Mock Product {i}",
                "description": f"Description for mock product {i}.",
                "price": price,
                "compare_at_price": price + 10 if i % 3 == 0 else None,
                "category": "Essentials",
                "collection": "Core" if i % 2 else "Seasonal",
                "variants": [
                    {"name": "Small", "option1": "Small", "sku": f"MP{i:03d}-S", "inventory": 25},
                    {"name": "Large", "option1": "Large", "sku": f"MP{i:03d}-L", "inventory": 15},
                ],
                "seo_title": f"Mock Product {i}",
                "seo_description": f"Buy mock product {i}.",
            })
        return _fenced({"products": products})

    def _header_proposal(self, prompt: str) -> str:
        return _fenced({
            "concept": "Split header with centred logo and editorial mega menu",
            "layout": "logo-center",
            "features": ["Mega menu with imagery", "Predictive search drawer"],
            "mega_menu": True,
            "sticky": True,
            "search_style": "drawer",
        })

    def _footer_proposal(self, prompt: str) -> str:
        return _fenced({
            "concept": "Four-column footer with newsletter band",
            "layout": "columns",
            "columns": 4,
            "features": ["Newsletter signup", "Payment icons"],
            "newsletter": True,
            "social_style": "icons",
        })

    def _js_enhancements(self, prompt: str) -> str:
        return _fenced([
            {
                "name": "Reveal on scroll",
                "description": "Fade sections in as they enter the viewport",
                "type": "animation",
                "affected_elements": [".section"],
            },
            {
                "name": "Sticky add to cart",
                "description": "Keep the buy button visible on product pages",
                "type": "interaction",
                "affected_elements": [".product-form"],
            },
        ])

    def _section_proposals(self, prompt: str) -> str:
        kind = _field(prompt, "Section type", "new")
        count = int(_field(prompt, "Count", "2"))
        available = [s.strip() for s in _field(prompt, "Available sections").split(",") if s.strip()]

        proposals = []
        for i in range(1, count + 1):
            if kind == "modified" and available:
                section_id = available[(i - 1) % len(available)]
            else:
                section_id = f"mock-{kind}-{i}"
            proposals.append({
                "id": section_id,
                "name": f"{kind.title()} Section {i}",
                "type": kind,
                "concept": f"Mock {kind} section concept {i}",
                "functionality": "Displays curated content blocks",
                "unique_features": ["Configurable layout", "Animated entrance"],
            })
        return _fenced(proposals)

    def _section_code(self, prompt: str) -> str:
        section_id = _field(prompt, "Section id", "section")
        return _fenced({
            "liquid": (
                f'<section class="{section_id}">{{{{ section.settings.heading }}}}</section>\n'
                "{% schema %}\n"
                f'{{"name": "{section_id}", "settings": '
                '[{"type": "text", "id": "heading", "label": "Heading"}]}\n'
                "{% endschema %}\n"
            ),
            "css": f".{section_id} {{ padding: var(--section-padding); }}\n",
        })

    def _js_code(self, prompt: str) -> str:
        return (
            "document.querySelectorAll('.section').forEach((el) => {\n"
            "  el.classList.add('is-visible');\n"
            "});\n"
        )

    def _color_schemes(self, prompt: str) -> str:
        palettes = [
            ("Linen", "#2F2A25", "#8C7B6B", "#C46A3C", "#FAF7F2", "#1E1B18", "#B8AFA6"),
            ("Slate", "#1F2A36", "#5A6B7D", "#E0A458", "#F5F7FA", "#111820", "#A3B0BE"),
            ("Moss", "#2E3B2C", "#6B7F5E", "#D4A373", "#F6F4EC", "#1C2319", "#A9B39D"),
            ("Ink", "#111111", "#444444", "#E63946", "#FFFFFF", "#111111", "#999999"),
            ("Blush", "#4A2C2A", "#B07D7B", "#E9C46A", "#FFF8F5", "#2B1A19", "#D6B8B4"),
        ]
        return _fenced([
            dict(zip(("name", "primary", "secondary", "accent", "background", "text", "muted"), p))
            for p in palettes
        ])

    def _typography(self, prompt: str) -> str:
        return _fenced({
            "heading_font": "Cormorant Garamond",
            "heading_fallback": "serif",
            "heading_weight": 600,
            "body_font": "Inter",
            "body_fallback": "sans-serif",
            "body_weight": 400,
            "base_size": "16px",
            "scale": 1.25,
            "line_height_heading": 1.2,
            "line_height_body": 1.6,
        })

    def _spacing(self, prompt: str) -> str:
        return _fenced({
            "base_unit": 8,
            "scale": [0.5, 1, 1.5, 2, 3, 4, 6],
            "section_padding_mobile": "48px",
            "section_padding_desktop": "96px",
            "container_width": "1280px",
            "grid_gap": "24px",
        })

    def _buttons(self, prompt: str) -> str:
        return _fenced({
            "border_radius": "2px",
            "padding_x": "28px",
            "padding_y": "14px",
            "font_weight": 600,
            "text_transform": "uppercase",
            "style": "filled",
        })

    def _homepage_layout(self, prompt: str) -> str:
        sections = [s.strip() for s in _field(prompt, "Sections").split(",") if s.strip()]
        return _fenced({"sections": sections})


def get_chat_client(config: Config | None = None) -> ChatClient:
    """Get the chat client for the configured provider.

    Raises:
        ValueError: If the provider name is not recognized.
    """
    if config is None:
        from ..config import load_config

        config = load_config()

    provider_name = config.ai.provider.lower()

    if provider_name == "mock":
        return MockChatClient(config.ai)
    elif provider_name == "openrouter":
        return OpenRouterChatClient(config.ai)
    else:
        raise ValueError(f"Unknown AI provider: {provider_name}")
