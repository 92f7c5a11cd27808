"""End-to-end runs of the full workflow with every external service mocked."""

import json
import zipfile

import pytest

from theme_builder.controller import SessionController
from theme_builder.models import Phase
from theme_builder.ui.prompts import ScriptedPrompter

# One answer per operator prompt, in the order the phases ask them.
FULL_RUN_ANSWERS = [
    # brief: industry, target market, style, competitors
    "Artisan jewelry",
    "Women 28-45 who value handmade pieces",
    "luxury",
    ["https://example-jewels.com"],
    # products: catalog size (default)
    None,
    # images: generate for every product
    True,
    # design-system: default scheme
    0,
    # testing: begin, review verdict, delete test theme
    True,
    "pass",
    True,
    # submission: push a preview, delete it afterwards, final review
    True,
    True,
    "complete",
]


class TestFullPipeline:
    """Tests for a complete offline run."""

    @pytest.fixture
    def full_run_context(self, context):
        context.prompter = ScriptedPrompter(FULL_RUN_ANSWERS)
        return context

    @pytest.mark.asyncio
    async def test_runs_all_phases(self, full_run_context):
        """Test that a new session goes from brief to submission."""
        ctx = full_run_context

        session = await SessionController(ctx).start()

        assert session.completed_phases == Phase.ordered()
        assert session.theme_name == "Artisan Atelier"
        assert len(session.products) == 5
        assert all(p.images.studio for p in session.products)
        assert not ctx.prompter.answers

        stored = ctx.store.load(session.id)
        assert stored.completed_phases == Phase.ordered()
        assert stored.submission_assets.package_path.endswith("artisan-atelier.zip")

    @pytest.mark.asyncio
    async def test_outputs_on_disk(self, full_run_context):
        """Test the files a complete run leaves behind."""
        ctx = full_run_context

        session = await SessionController(ctx).start()
        output_dir = ctx.output_dir(session)

        assert (output_dir / "products.csv").exists()
        assert (output_dir / "images" / "manifest.json").exists()
        assert (output_dir / "documentation.md").read_text().startswith("# Artisan Atelier")
        assert "Differentiation score" in (output_dir / "submission-checklist.md").read_text()

        with zipfile.ZipFile(output_dir / "artisan-atelier.zip") as archive:
            names = set(archive.namelist())
        assert {
            "layout/theme.liquid",
            "config/settings_data.json",
            "templates/index.json",
            "sections/header.liquid",
            "sections/footer.liquid",
            "assets/theme.js",
            "assets/design-system.css",
            "theme-manifest.json",
        } <= names

        index = json.loads((ctx.theme_dir(session) / "templates" / "index.json").read_text())
        assert index["order"] == ["mock-new-1", "mock-new-2", "mock-modified-1", "mock-modified-2"]

    @pytest.mark.asyncio
    async def test_store_themes_cleaned_up(self, full_run_context):
        """Test that the test and preview themes are both deleted."""
        ctx = full_run_context

        session = await SessionController(ctx).start()

        assert ctx.shopify.deleted == ["100001", "100002"]
        assert ctx.shopify.pushed == {}
        assert session.test_theme_preview_url is None
        assert session.submission_theme_id is None
        assert session.submission_assets.preview_url.endswith("preview_theme_id=100002")
        assert [r.passed for r in session.test_results] == [True, True, True]

    @pytest.mark.asyncio
    async def test_every_step_recorded(self, full_run_context):
        """Test that every approval step left exactly one accepted record."""
        ctx = full_run_context

        session = await SessionController(ctx).start()

        steps = {(r.phase, r.step) for r in session.approval_history}
        assert (Phase.BRIEF, "market-analysis") in steps
        assert (Phase.PRODUCTS, "product-catalog") in steps
        assert (Phase.DIFFERENTIATION, "new-section-mock-new-1") in steps
        assert (Phase.DESIGN_SYSTEM, "buttons") in steps
        assert (Phase.CODE_GENERATION, "homepage-layout") in steps
        assert all(r.accepted and r.iteration == 1 for r in session.approval_history)
        assert len(steps) == len(session.approval_history)

    @pytest.mark.asyncio
    async def test_rewind_and_rerun_later_phases(self, full_run_context):
        """Test rewinding a finished session to the design system and running again."""
        from theme_builder.session.invalidation import reset_to_phase

        ctx = full_run_context
        session = await SessionController(ctx).start()
        products = list(session.products)

        reset_to_phase(session, Phase.DESIGN_SYSTEM)
        ctx.prompter = ScriptedPrompter([3, True, "pass", True, True, True, "complete"])
        await SessionController(ctx).run_generation_flow(session)

        assert session.products == products
        assert session.design_system.scheme.name == "Ink"
        assert session.completed_phases == Phase.ordered()
