"""Configuration loading and management."""

import os
from pathlib import Path
from typing import Mapping

import yaml
from pydantic import BaseModel, Field

from .errors import ThemeBuilderError


class ConfigurationError(ThemeBuilderError):
    """Required credentials or settings are missing."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Missing required configuration: {', '.join(missing)}")


class ModelSettings(BaseModel):
    """Model selection for one task type."""

    model: str
    temperature: float = 0.7
    max_tokens: int = 4096


class AIConfig(BaseModel):
    """Chat completion provider configuration."""

    provider: str = "openrouter"
    base_url: str = "https://openrouter.ai/api/v1"
    referer: str = "https://github.com/theme-builder"
    app_title: str = "Shopify Theme Builder"
    planning: ModelSettings = Field(
        default_factory=lambda: ModelSettings(
            model="anthropic/claude-opus-4.5", temperature=0.7, max_tokens=4096
        )
    )
    coding: ModelSettings = Field(
        default_factory=lambda: ModelSettings(
            model="openai/gpt-5.2-codex", temperature=0.2, max_tokens=8192
        )
    )
    max_retries: int = 3
    retry_base_delay: float = 1.0


class ImageConfig(BaseModel):
    """Image generation configuration."""

    provider: str = "replicate"
    base_url: str = "https://api.replicate.com/v1"
    model_version: str = "4acb778eb059772225ec213948f0660867b2e03f277448f18cf1800b96a65a1a"
    width: int = 1024
    height: int = 1024
    poll_interval: float = 5.0
    max_poll_attempts: int = 60
    max_retries: int = 2
    retry_base_delay: float = 5.0


class ShopifyConfig(BaseModel):
    """Shopify CLI configuration (credentials come from the environment)."""

    provider: str = "cli"
    executable: str = "shopify"
    push_timeout: int = 300
    delete_timeout: int = 60
    list_timeout: int = 30
    check_timeout: int = 120


class GenerationConfig(BaseModel):
    """Counts and limits for generated content."""

    products_count: int = 20
    new_sections_count: int = 4
    modified_sections_count: int = 4
    angles_per_product: int = 4
    lifestyle_images_per_product: int = 3
    max_approval_iterations: int = 10


class PathsConfig(BaseModel):
    """Path configuration."""

    sessions_dir: str = "sessions"
    output_dir: str = "output"
    base_theme_dir: str = "base-theme"


class ReviewConfig(BaseModel):
    """Human review configuration."""

    auto_approve: bool = False


class Config(BaseModel):
    """Main application configuration."""

    ai: AIConfig = Field(default_factory=AIConfig)
    images: ImageConfig = Field(default_factory=ImageConfig)
    shopify: ShopifyConfig = Field(default_factory=ShopifyConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    review: ReviewConfig = Field(default_factory=ReviewConfig)

    @classmethod
    def from_yaml(cls, path: Path | str) -> "Config":
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f)

        if data is None:
            return cls()

        return cls(**data)

    def to_yaml(self, path: Path | str) -> None:
        """Save configuration to a YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = self.model_dump()
        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False)

    @classmethod
    def offline(cls) -> "Config":
        """Configuration with every external service replaced by its mock."""
        config = cls()
        config.ai.provider = "mock"
        config.images.provider = "mock"
        config.shopify.provider = "mock"
        return config


def load_config(config_path: Path | str | None = None) -> Config:
    """Load configuration from file or use defaults."""
    if config_path is None:
        # Look for config.yaml in current directory or project root
        candidates = [Path("config.yaml"), Path(__file__).parent.parent / "config.yaml"]
        for candidate in candidates:
            if candidate.exists():
                config_path = candidate
                break

    if config_path is not None:
        return Config.from_yaml(config_path)

    return Config()


def required_env_keys(config: Config) -> list[str]:
    """Environment variables needed by the configured providers."""
    keys = []
    if config.ai.provider == "openrouter":
        keys.append("OPENROUTER_API_KEY")
    if config.images.provider == "replicate":
        keys.append("REPLICATE_API_TOKEN")
    if config.shopify.provider == "cli":
        keys.extend(["SHOPIFY_CLI_THEME_TOKEN", "SHOPIFY_DEV_STORE"])
    return keys


def validate_environment(
    config: Config, env: Mapping[str, str] | None = None
) -> list[str]:
    """Return the required environment keys that are missing or empty."""
    env = os.environ if env is None else env
    return [key for key in required_env_keys(config) if not env.get(key)]
