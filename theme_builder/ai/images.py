"""Product image generation through Replicate predictions, plus an offline mock.

Replicate runs asynchronously: a prediction is created, then polled until it
succeeds or fails. Failures are reported in the ImageResult rather than
raised, so one bad image never aborts a whole catalog.
"""

import asyncio
import base64
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Optional

import httpx

from ..config import Config, ImageConfig
from ..errors import ThemeBuilderError

logger = logging.getLogger(__name__)

ImageKind = Literal["studio", "angle", "lifestyle"]

DEFAULT_ANGLES = ["front", "side", "detail", "flat-lay"]
DEFAULT_LIFESTYLE_CONTEXTS = ["in-use", "environment", "styled"]

ANGLE_DESCRIPTIONS = {
    "front": "front view, straight on, showing main features",
    "side": "side profile view, 90 degree angle, showing depth",
    "detail": "extreme close-up detail shot, texture and craftsmanship visible",
    "flat-lay": "flat lay overhead view, top down perspective, clean arrangement",
}

LIFESTYLE_DESCRIPTIONS = {
    "in-use": "product being used in natural setting, lifestyle photography",
    "environment": "product in styled environment, interior design setting",
    "styled": "artistic product styling with props and accessories",
}


class ImageGenerationError(ThemeBuilderError):
    """A single prediction failed or timed out."""

    pass


@dataclass
class ImageResult:
    """Outcome of one image generation."""

    success: bool
    prompt: str
    kind: ImageKind
    variant: Optional[str] = None
    image_url: Optional[str] = None
    error: Optional[str] = None


def build_studio_prompt(name: str, description: str, style: str | None = None) -> str:
    style_guide = style or "clean, professional, high-end"
    return (
        f"Professional product photography of {name}. {description}. "
        f"Studio lighting, white background, {style_guide}. "
        "E-commerce ready, high resolution, sharp focus."
    )


def build_angle_prompt(name: str, description: str, angle: str) -> str:
    angle_desc = ANGLE_DESCRIPTIONS.get(angle, angle)
    return (
        f"Professional product photography of {name}. {description}. {angle_desc}. "
        "Studio lighting, white background, clean, sharp focus, e-commerce ready."
    )


def build_lifestyle_prompt(name: str, description: str, context: str) -> str:
    context_desc = LIFESTYLE_DESCRIPTIONS.get(context, context)
    return (
        f"{name} - {description}. {context_desc}. "
        "Professional lifestyle photography, natural lighting, aspirational mood."
    )


class ImageClient(ABC):
    """Abstract base class for image generators."""

    @abstractmethod
    async def generate(
        self, prompt: str, kind: ImageKind, variant: Optional[str] = None
    ) -> ImageResult:
        """Generate one image. Never raises for generation failures."""
        pass

    @abstractmethod
    async def download(self, url: str, path: Path) -> Path:
        """Save a generated image to *path*."""
        pass

    async def generate_studio(
        self, name: str, description: str, style: str | None = None
    ) -> ImageResult:
        return await self.generate(build_studio_prompt(name, description, style), "studio")

    async def generate_angles(
        self, name: str, description: str, angles: list[str] | None = None
    ) -> list[ImageResult]:
        results = []
        for angle in angles or DEFAULT_ANGLES:
            prompt = build_angle_prompt(name, description, angle)
            results.append(await self.generate(prompt, "angle", angle))
        return results

    async def generate_lifestyle(
        self, name: str, description: str, contexts: list[str] | None = None
    ) -> list[ImageResult]:
        results = []
        for context in contexts or DEFAULT_LIFESTYLE_CONTEXTS:
            prompt = build_lifestyle_prompt(name, description, context)
            results.append(await self.generate(prompt, "lifestyle", context))
        return results


class ReplicateImageClient(ImageClient):
    """Image generation via the Replicate predictions API."""

    def __init__(
        self,
        config: ImageConfig,
        api_token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the Replicate client.

        Args:
            config: Image settings (model version, polling and retry limits)
            api_token: Replicate token (defaults to REPLICATE_API_TOKEN env var)
            transport: Optional httpx transport, used by tests
        """
        self.config = config
        self.api_token = api_token or os.environ.get("REPLICATE_API_TOKEN")
        if not self.api_token:
            raise ValueError(
                "Replicate API token required. Set REPLICATE_API_TOKEN environment "
                "variable or pass api_token parameter."
            )
        self._transport = transport

    def _get_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_token}",
            "Content-Type": "application/json",
        }

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    async def generate(
        self, prompt: str, kind: ImageKind, variant: Optional[str] = None
    ) -> ImageResult:
        retries = self.config.max_retries
        last_error = "Image generation failed after retries"

        for attempt in range(retries + 1):
            try:
                prediction_id = await self._create_prediction(prompt)
                output = await self._wait_for_completion(prediction_id)
                if not output:
                    raise ImageGenerationError("Prediction succeeded but returned no output")
                return ImageResult(
                    success=True,
                    prompt=prompt,
                    kind=kind,
                    variant=variant,
                    image_url=output[0],
                )
            except (httpx.HTTPError, ImageGenerationError, TimeoutError) as e:
                last_error = str(e) or type(e).__name__
                if attempt < retries:
                    delay = self.config.retry_base_delay * 2**attempt
                    logger.warning(
                        "Image generation failed (attempt %d/%d): %s; retrying in %.0fs",
                        attempt + 1,
                        retries + 1,
                        last_error,
                        delay,
                    )
                    await asyncio.sleep(delay)

        logger.error("Giving up on %s image: %s", kind, last_error)
        return ImageResult(
            success=False, prompt=prompt, kind=kind, variant=variant, error=last_error
        )

    async def _create_prediction(self, prompt: str) -> str:
        """Create a prediction and return its id."""
        payload = {
            "version": self.config.model_version,
            "input": {
                "prompt": prompt,
                "width": self.config.width,
                "height": self.config.height,
                "num_outputs": 1,
            },
        }

        async with self._client(timeout=60.0) as client:
            response = await client.post(
                f"{self.config.base_url}/predictions",
                headers=self._get_headers(),
                json=payload,
            )
            response.raise_for_status()
            data = response.json()

        return data["id"]

    async def _wait_for_completion(self, prediction_id: str) -> list[str]:
        """Poll a prediction until it finishes and return its output URLs.

        Raises:
            ImageGenerationError: If the prediction failed or was canceled
            TimeoutError: If it does not finish within max_poll_attempts polls
        """
        url = f"{self.config.base_url}/predictions/{prediction_id}"

        async with self._client(timeout=30.0) as client:
            for _ in range(self.config.max_poll_attempts):
                response = await client.get(url, headers=self._get_headers())
                response.raise_for_status()
                data = response.json()

                status = data.get("status")

                if status == "succeeded":
                    output = data.get("output") or []
                    return [output] if isinstance(output, str) else list(output)

                elif status in ("failed", "canceled"):
                    error = data.get("error") or status
                    raise ImageGenerationError(f"Image generation failed: {error}")

                await asyncio.sleep(self.config.poll_interval)

        raise TimeoutError(
            f"Prediction {prediction_id} did not finish after "
            f"{self.config.max_poll_attempts} polls"
        )

    async def download(self, url: str, path: Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        async with self._client(timeout=120.0) as client:
            response = await client.get(url)
            response.raise_for_status()

            with open(path, "wb") as f:
                f.write(response.content)

        return path


# 1x1 PNG
_PLACEHOLDER_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


class MockImageClient(ImageClient):
    """Instant placeholder images for offline runs and tests."""

    def __init__(self):
        self.prompts: list[str] = []

    async def generate(
        self, prompt: str, kind: ImageKind, variant: Optional[str] = None
    ) -> ImageResult:
        self.prompts.append(prompt)
        suffix = f"-{variant}" if variant else ""
        return ImageResult(
            success=True,
            prompt=prompt,
            kind=kind,
            variant=variant,
            image_url=f"mock://images/{kind}{suffix}/{len(self.prompts)}.png",
        )

    async def download(self, url: str, path: Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(_PLACEHOLDER_PNG)
        return path


def get_image_client(config: Config | None = None) -> ImageClient:
    """Get the image client for the configured provider.

    Raises:
        ValueError: If the provider name is not recognized.
    """
    if config is None:
        from ..config import load_config

        config = load_config()

    provider_name = config.images.provider.lower()

    if provider_name == "mock":
        return MockImageClient()
    elif provider_name == "replicate":
        return ReplicateImageClient(config.images)
    else:
        raise ValueError(f"Unknown image provider: {provider_name}")
