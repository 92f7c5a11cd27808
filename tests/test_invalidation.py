"""Tests for the phase ownership table and session rewind."""

import pytest

from theme_builder.models import (
    ApprovalRecord,
    ColorScheme,
    DesignSystem,
    GeneratedFile,
    Phase,
    ProductImages,
    SectionProposal,
    SubmissionAssets,
    TestResult,
    ThemeBuild,
)
from theme_builder.session.invalidation import (
    PHASE_OWNED_FIELDS,
    InvalidationTableError,
    check_invalidation_table,
    fields_cleared_by,
    reset_to_phase,
)


@pytest.fixture
def full_session(sample_session):
    """A session that has reached design-system with later data populated."""
    session = sample_session
    session.products[0].images = ProductImages(studio="s.png", angles=["a.png"])
    session.image_manifest = "images/manifest.json"
    session.sections = [SectionProposal(id="lookbook", name="Lookbook", type="new", concept="c")]
    session.generated_files = [
        GeneratedFile(path="sections/lookbook.liquid", content="x", step="new-section-lookbook", origin="new")
    ]
    session.design_system = DesignSystem(
        color_schemes=[
            ColorScheme(name="Ink", primary="#111", secondary="#222", accent="#f00", background="#fff", text="#111", muted="#999")
        ]
    )
    session.theme_build = ThemeBuild(theme_dir="output/theme")
    session.test_results = [TestResult(passed=True, category="theme-check", name="Theme Check")]
    session.test_theme_preview_url = "https://preview"
    session.submission_assets = SubmissionAssets(preview_url="https://preview")
    session.documentation = "# Docs"
    session.current_phase = Phase.DESIGN_SYSTEM
    session.completed_phases = [Phase.BRIEF, Phase.PRODUCTS, Phase.IMAGES, Phase.DIFFERENTIATION]
    for phase, step in [
        (Phase.BRIEF, "market-analysis"),
        (Phase.PRODUCTS, "product-catalog"),
        (Phase.DIFFERENTIATION, "header-code"),
        (Phase.DESIGN_SYSTEM, "color-schemes"),
    ]:
        session.add_approval_record(ApprovalRecord(phase=phase, step=step, iteration=1, accepted=True))
        session.store_artifact(phase, step, {"ok": True})
    return session


class TestInvalidationTable:
    """Tests for the exhaustiveness check."""

    def test_shipped_table_is_valid(self):
        """Test that the shipped table passes the startup check."""
        check_invalidation_table()

    def test_every_phase_has_an_entry(self):
        """Test that the table is keyed by every phase."""
        assert set(PHASE_OWNED_FIELDS) == set(Phase)

    def test_missing_phase_fails(self):
        """Test that dropping a phase is reported."""
        table = dict(PHASE_OWNED_FIELDS)
        del table[Phase.TESTING]

        with pytest.raises(InvalidationTableError, match="testing"):
            check_invalidation_table(table)

    def test_double_ownership_fails(self):
        """Test that a field owned by two phases is reported."""
        table = dict(PHASE_OWNED_FIELDS)
        table[Phase.SUBMISSION] = table[Phase.SUBMISSION] + ("design_system",)

        with pytest.raises(InvalidationTableError, match="owned by both"):
            check_invalidation_table(table)

    def test_unknown_field_fails(self):
        """Test that a name with no field and no clearer is reported."""
        table = dict(PHASE_OWNED_FIELDS)
        table[Phase.IMAGES] = table[Phase.IMAGES] + ("screenshots",)

        with pytest.raises(InvalidationTableError, match="screenshots"):
            check_invalidation_table(table)

    def test_unowned_field_fails(self):
        """Test that a payload field nobody owns is reported."""
        table = dict(PHASE_OWNED_FIELDS)
        table[Phase.CODE_GENERATION] = ()

        with pytest.raises(InvalidationTableError, match="theme_build"):
            check_invalidation_table(table)

    def test_fields_cleared_by(self):
        """Test the cascade for a middle phase."""
        cleared = fields_cleared_by(Phase.CODE_GENERATION)

        assert cleared == [
            "theme_build",
            "test_results",
            "test_theme_preview_url",
            "submission_assets",
            "submission_theme_id",
            "documentation",
        ]


class TestResetToPhase:
    """Tests for reset_to_phase."""

    def test_reset_to_products(self, full_session):
        """Test rewinding to products: catalog and everything later cleared, brief kept."""
        brief = full_session.brief

        reset_to_phase(full_session, Phase.PRODUCTS)

        assert full_session.current_phase == Phase.PRODUCTS
        assert full_session.brief == brief
        assert full_session.theme_name == "Artisan Atelier"
        assert full_session.products == []
        assert full_session.design_system is None
        assert full_session.test_results == []
        assert full_session.submission_assets == SubmissionAssets()
        assert full_session.documentation is None

    def test_reset_to_images_keeps_products(self, full_session):
        """Test that rewinding to images clears only image references."""
        reset_to_phase(full_session, Phase.IMAGES)

        assert len(full_session.products) == 3
        assert all(p.images.empty for p in full_session.products)
        assert full_session.image_manifest is None
        assert full_session.sections == []

    def test_reset_to_design_system(self, full_session):
        """Test that differentiation output survives a design-system rewind."""
        reset_to_phase(full_session, Phase.DESIGN_SYSTEM)

        assert full_session.design_system is None
        assert full_session.theme_build is None
        assert full_session.test_theme_preview_url is None
        assert len(full_session.generated_files) == 1
        assert len(full_session.sections) == 1

    def test_history_and_checkpoints_filtered(self, full_session):
        """Test that records and artifacts of the target and later phases are dropped."""
        reset_to_phase(full_session, Phase.DIFFERENTIATION)

        assert {r.phase for r in full_session.approval_history} == {Phase.BRIEF, Phase.PRODUCTS}
        assert set(full_session.step_artifacts) == {"brief", "products"}
        assert full_session.completed_phases == [Phase.BRIEF, Phase.PRODUCTS, Phase.IMAGES]

    def test_reset_to_brief_clears_everything(self, full_session):
        """Test a full restart."""
        reset_to_phase(full_session, "brief")

        assert full_session.brief is None
        assert full_session.theme_name == ""
        assert full_session.products == []
        assert full_session.approval_history == []
        assert full_session.completed_phases == []

    def test_idempotent(self, full_session):
        """Test that applying the same rewind twice equals applying it once."""
        once = reset_to_phase(full_session, Phase.IMAGES).model_dump()
        twice = reset_to_phase(full_session, Phase.IMAGES).model_dump()

        once.pop("last_updated_at")
        twice.pop("last_updated_at")
        assert once == twice

    def test_returns_same_object(self, full_session):
        """Test that the session is mutated in place."""
        assert reset_to_phase(full_session, Phase.TESTING) is full_session
