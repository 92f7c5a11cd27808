"""Tests for individual phases against mocked collaborators."""

import csv
import io
import json

import pytest

from theme_builder.approval import ApprovalEngine, ScriptedDecisionProvider
from theme_builder.models import SKIPPED_FEEDBACK, Phase
from theme_builder.phases import PhasePreconditionError
from theme_builder.phases import brief, code_generation, design_system, differentiation, images, products, testing
from theme_builder.shopify.cli import ThemeCheckResult
from theme_builder.ui.prompts import ScriptedPrompter


def skip_everything(max_iterations=1):
    """Engine that rejects every round and then skips the step."""
    decisions = ScriptedDecisionProvider(
        decisions=["revise"] * 20,
        feedback=["try again"] * 20,
        forced=["skip"] * 20,
    )
    return ApprovalEngine(decisions, max_iterations=max_iterations)


class TestBriefPhase:
    """Tests for the brief phase."""

    @pytest.mark.asyncio
    async def test_collects_brief_and_names_theme(self, context):
        """Test brief collection and the accepted market analysis."""
        context.prompter = ScriptedPrompter(
            ["Artisan jewelry", "Collectors of handmade pieces", "luxury", ["https://rival.example"]]
        )
        session = context.store.create()

        await brief.run(session, context)

        assert session.brief.industry == "Artisan jewelry"
        assert session.brief.competitors == ["https://rival.example"]
        assert session.brief.brand_name == "Artisan Atelier"
        assert session.theme_name == "Artisan Atelier"
        assert session.was_step_accepted(Phase.BRIEF, "market-analysis")

    @pytest.mark.asyncio
    async def test_skipped_analysis_uses_industry_slug(self, context, sample_brief):
        """Test that a skipped analysis leaves the brief unenriched."""
        context.engine = skip_everything()
        session = context.store.create()
        session.brief = sample_brief.model_copy(update={"brand_name": None, "positioning": None})

        await brief.run(session, context)

        assert session.theme_name == "artisan-jewelry"
        assert session.brief.brand_name is None
        record = session.approval_history[-1]
        assert record.skipped and record.feedback == SKIPPED_FEEDBACK

    @pytest.mark.asyncio
    async def test_rerun_reuses_accepted_analysis(self, context, sample_brief):
        """Test that a finished step is not negotiated again on resume."""
        session = context.store.create()
        session.brief = sample_brief

        await brief.run(session, context)
        calls = len(context.chat.calls)
        await brief.run(session, context)

        assert len(context.chat.calls) == calls
        assert len(session.step_history(Phase.BRIEF, "market-analysis")) == 1


class TestProductsPhase:
    """Tests for the product catalog phase."""

    @pytest.mark.asyncio
    async def test_writes_csv(self, context, sample_brief):
        """Test catalog generation and the CSV export."""
        context.prompter = ScriptedPrompter([6])
        session = context.store.create()
        session.brief = sample_brief
        session.theme_name = "Artisan Atelier"

        await products.run(session, context)

        assert len(session.products) == 6
        assert all(p.images.empty for p in session.products)
        csv_text = (context.output_dir(session) / "products.csv").read_text()
        rows = list(csv.DictReader(io.StringIO(csv_text)))
        assert len(rows) == 12
        assert context.prompter.asked == ["How many products should the catalog have?"]

    @pytest.mark.asyncio
    async def test_requires_brief(self, context):
        with pytest.raises(PhasePreconditionError):
            await products.run(context.store.create(), context)

    @pytest.mark.asyncio
    async def test_skipped_catalog(self, context, sample_brief):
        """Test that a skipped catalog leaves no products."""
        context.engine = skip_everything()
        context.prompter = ScriptedPrompter([None])
        session = context.store.create()
        session.brief = sample_brief

        await products.run(session, context)

        assert session.products == []
        assert not (context.output_dir(session) / "products.csv").exists()


class TestImagesPhase:
    """Tests for the image generation phase."""

    @pytest.mark.asyncio
    async def test_generates_full_sets(self, context, sample_session):
        """Test studio, angle and lifestyle images for every product."""
        context.prompter = ScriptedPrompter([True])

        await images.run(sample_session, context)

        first = sample_session.products[0].images
        assert first.studio.endswith("ring-1/studio.png")
        assert [p.rsplit("/", 1)[-1] for p in first.angles] == ["angle-front.png", "angle-side.png"]
        assert [p.rsplit("/", 1)[-1] for p in first.lifestyle] == ["lifestyle-in-use.png"]
        manifest = json.loads((context.output_dir(sample_session) / "images" / "manifest.json").read_text())
        assert set(manifest) == {"ring-1", "ring-2", "ring-3"}
        assert sample_session.image_manifest.endswith("manifest.json")

    @pytest.mark.asyncio
    async def test_operator_declines(self, context, sample_session):
        context.prompter = ScriptedPrompter([False])

        await images.run(sample_session, context)

        assert all(p.images.empty for p in sample_session.products)
        assert sample_session.image_manifest is None

    @pytest.mark.asyncio
    async def test_no_products(self, context):
        """Test that an empty catalog asks nothing."""
        await images.run(context.store.create(), context)

        assert context.prompter.asked == []

    @pytest.mark.asyncio
    async def test_resume_only_pending_products(self, context, sample_session):
        """Test that products with images are not regenerated."""
        sample_session.products[0].images.studio = "done.png"
        context.prompter = ScriptedPrompter([True])

        await images.run(sample_session, context)

        assert context.prompter.asked == ["Generate images for 2 products?"]
        assert sample_session.products[0].images.studio == "done.png"

    @pytest.mark.asyncio
    async def test_revision_feedback_reaches_prompt(self, context, sample_session):
        """Test that studio feedback is appended to the image prompt."""
        decisions = ScriptedDecisionProvider(
            decisions=["revise", "accept", "accept", "accept"],
            feedback=["softer shadows"],
        )
        context.engine = ApprovalEngine(decisions)
        context.prompter = ScriptedPrompter([True])

        await images.run(sample_session, context)

        assert context.images.prompts[1].endswith("Adjustments: softer shadows")


class TestDifferentiationPhase:
    """Tests for the differentiation phase."""

    @pytest.mark.asyncio
    async def test_generates_all_parts(self, context, sample_session):
        """Test header, footer, scripts and both section kinds."""
        await differentiation.run(sample_session, context)

        paths = {f.path for f in sample_session.generated_files}
        assert {"sections/header.liquid", "sections/footer.liquid", "assets/theme.js"} <= paths
        assert "sections/mock-new-1.liquid" in paths
        assert "assets/section-mock-new-1.css" in paths
        assert [s.id for s in sample_session.sections] == [
            "mock-new-1",
            "mock-new-2",
            "mock-modified-1",
            "mock-modified-2",
        ]

    @pytest.mark.asyncio
    async def test_modified_sections_come_from_base_theme(self, context, sample_session, tmp_path):
        """Test that modified proposals are limited to base theme sections."""
        sections_dir = tmp_path / "base-theme" / "sections"
        sections_dir.mkdir(parents=True)
        for name in ("header", "hero", "faq"):
            (sections_dir / f"{name}.liquid").write_text(f"<{name}/>")

        await differentiation.run(sample_session, context)

        modified = [s.id for s in sample_session.sections if s.type == "modified"]
        assert modified == ["faq", "hero"]
        origins = {f.path: f.origin for f in sample_session.generated_files}
        assert origins["sections/hero.liquid"] == "modified"

    @pytest.mark.asyncio
    async def test_requires_brief(self, context):
        with pytest.raises(PhasePreconditionError):
            await differentiation.run(context.store.create(), context)


class TestDesignSystemPhase:
    """Tests for the design system phase."""

    @pytest.mark.asyncio
    async def test_selects_scheme_and_components(self, context, sample_session):
        context.prompter = ScriptedPrompter([2])

        await design_system.run(sample_session, context)

        design = sample_session.design_system
        assert len(design.color_schemes) == 5
        assert design.scheme.name == "Moss"
        assert design.typography.heading_font == "Cormorant Garamond"
        assert design.spacing.container_width == "1280px"
        assert design.buttons.text_transform == "uppercase"

    @pytest.mark.asyncio
    async def test_skipped_schemes(self, context, sample_session):
        """Test that skipping the color schemes leaves no design system."""
        context.engine = skip_everything()

        await design_system.run(sample_session, context)

        assert sample_session.design_system is None
        assert context.prompter.asked == []


class TestCodeGenerationAndTesting:
    """Tests for assembly and the testing phase."""

    @pytest.mark.asyncio
    async def test_assembles_theme(self, context, sample_session):
        context.prompter = ScriptedPrompter([0])
        await differentiation.run(sample_session, context)
        await design_system.run(sample_session, context)

        await code_generation.run(sample_session, context)

        build = sample_session.theme_build
        assert build.valid
        assert build.homepage_sections == ["mock-new-1", "mock-new-2", "mock-modified-1", "mock-modified-2"]
        assert (context.theme_dir(sample_session) / "sections" / "header.liquid").exists()

    @pytest.mark.asyncio
    async def test_code_generation_requires_inputs(self, context, sample_session):
        with pytest.raises(PhasePreconditionError):
            await code_generation.run(sample_session, context)

    @pytest.mark.asyncio
    async def test_testing_stops_on_check_errors(self, context, sample_session):
        """Test that declining to continue after errors skips the push."""
        context.prompter = ScriptedPrompter([0])
        await differentiation.run(sample_session, context)
        await design_system.run(sample_session, context)
        await code_generation.run(sample_session, context)
        context.shopify.check_result = ThemeCheckResult(passed=False, errors=["layout/theme.liquid: boom"])
        context.prompter = ScriptedPrompter([True, False])

        await testing.run(sample_session, context)

        assert [r.passed for r in sample_session.test_results] == [False]
        assert context.shopify.pushed == {}
        assert sample_session.test_theme_preview_url is None

    @pytest.mark.asyncio
    async def test_testing_keeps_theme_when_not_deleted(self, context, sample_session):
        """Test that keeping the test theme keeps its preview URL."""
        context.prompter = ScriptedPrompter([0])
        await differentiation.run(sample_session, context)
        await design_system.run(sample_session, context)
        await code_generation.run(sample_session, context)
        context.prompter = ScriptedPrompter([True, "minor", False])

        await testing.run(sample_session, context)

        assert sample_session.test_theme_preview_url.endswith("preview_theme_id=100001")
        assert [r.category for r in sample_session.test_results] == [
            "theme-check",
            "shopify-push",
            "manual-review",
        ]
        assert sample_session.test_results[-1].severity == "warning"
        assert context.shopify.deleted == []
