"""Shared test fixtures."""

import io
from pathlib import Path

import pytest
from rich.console import Console

from theme_builder.ai.client import MockChatClient
from theme_builder.ai.images import MockImageClient
from theme_builder.approval import ApprovalEngine, AutoApproveDecisionProvider
from theme_builder.config import Config
from theme_builder.models import Phase, Product, ProductVariant, SessionState, ThemeBrief
from theme_builder.phases.context import PhaseContext
from theme_builder.session.store import SessionStore
from theme_builder.shopify.cli import MockShopifyCLI
from theme_builder.ui.display import Display
from theme_builder.ui.prompts import ScriptedPrompter


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--run-llm-tests",
        action="store_true",
        default=False,
        help="Run LLM integration tests (expensive, makes real API calls)",
    )


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "llm_integration: mark test as requiring real LLM calls"
    )


def pytest_collection_modifyitems(config, items):
    """Skip LLM tests unless --run-llm-tests is provided."""
    if not config.getoption("--run-llm-tests", default=False):
        skip_llm = pytest.mark.skip(
            reason="LLM integration tests skipped. Use --run-llm-tests to run."
        )
        for item in items:
            if "llm_integration" in item.keywords:
                item.add_marker(skip_llm)


@pytest.fixture
def mock_config(tmp_path) -> Config:
    """Offline configuration writing everything below tmp_path."""
    config = Config.offline()
    config.paths.sessions_dir = str(tmp_path / "sessions")
    config.paths.output_dir = str(tmp_path / "output")
    config.paths.base_theme_dir = str(tmp_path / "base-theme")
    config.generation.products_count = 5
    config.generation.new_sections_count = 2
    config.generation.modified_sections_count = 2
    config.generation.angles_per_product = 2
    config.generation.lifestyle_images_per_product = 1
    config.review.auto_approve = True
    return config


@pytest.fixture
def store(mock_config) -> SessionStore:
    return SessionStore(mock_config.paths.sessions_dir)


@pytest.fixture
def quiet_display() -> Display:
    """Display that renders into a buffer instead of the terminal."""
    return Display(Console(record=True, width=120, file=io.StringIO()))


@pytest.fixture
def context(mock_config, store, quiet_display) -> PhaseContext:
    """Phase context with every collaborator mocked and nothing scripted yet."""
    return PhaseContext(
        config=mock_config,
        store=store,
        chat=MockChatClient(mock_config.ai),
        images=MockImageClient(),
        shopify=MockShopifyCLI(),
        prompter=ScriptedPrompter(),
        display=quiet_display,
        engine=ApprovalEngine(AutoApproveDecisionProvider()),
    )


@pytest.fixture
def sample_brief() -> ThemeBrief:
    return ThemeBrief(
        industry="Artisan jewelry",
        target_market="Women 28-45 who value handmade pieces",
        style_direction="luxury",
        competitors=["https://example-jewels.com"],
        brand_name="Artisan Atelier",
        positioning="Handmade jewelry with a story",
    )


@pytest.fixture
def sample_products() -> list[Product]:
    return [
        Product(
            id=f"ring-{i}",
            name=f"Ring {i}",
            description=f"Hand-forged ring number {i}",
            price=50.0 * i,
            category="Rings",
            collection="Signature",
            variants=[ProductVariant(name="Size 6", option1="6", sku=f"R{i}-6", inventory=5)],
        )
        for i in range(1, 4)
    ]


@pytest.fixture
def sample_session(sample_brief, sample_products) -> SessionState:
    """A session that has completed the brief and products phases."""
    session = SessionState.create()
    session.theme_name = "Artisan Atelier"
    session.brief = sample_brief
    session.products = sample_products
    session.completed_phases = [Phase.BRIEF, Phase.PRODUCTS]
    session.current_phase = Phase.IMAGES
    return session


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent
