"""Tests for the file generators."""

import csv
import io
import json
import zipfile

import pytest

from theme_builder.generators import (
    assemble_theme,
    build_checklist,
    build_css_variables,
    build_documentation,
    build_settings_data,
    differentiation_score,
    generate_product_csv,
    key_features,
    package_theme,
    verify_theme_package,
    write_product_csv,
)
from theme_builder.generators.csv_export import CSV_HEADERS
from theme_builder.models import (
    SKIPPED_FEEDBACK,
    ApprovalRecord,
    ButtonStyle,
    ColorScheme,
    DesignSystem,
    GeneratedFile,
    Phase,
    Product,
    SectionProposal,
    TestResult,
    Typography,
)


@pytest.fixture
def design_system():
    schemes = [
        ColorScheme(name="Linen", primary="#2F2A25", secondary="#8C7B6B", accent="#C46A3C",
                    background="#FAF7F2", text="#1E1B18", muted="#B8AFA6"),
        ColorScheme(name="Ink", primary="#111111", secondary="#444444", accent="#E63946",
                    background="#FFFFFF", text="#111111", muted="#999999"),
    ]
    return DesignSystem(
        color_schemes=schemes,
        selected_scheme=1,
        typography=Typography(heading_font="Cormorant", body_font="Inter", base_size="18px"),
    )


@pytest.fixture
def built_session(sample_session, design_system):
    """Session with header, one accepted and one skipped new section."""
    session = sample_session
    session.sections = [
        SectionProposal(id="lookbook", name="Lookbook", type="new", concept="Shoppable looks"),
        SectionProposal(id="story", name="Story", type="new", concept="Maker story", skipped=True),
        SectionProposal(id="hero", name="Hero", type="modified", concept="Split hero"),
    ]
    session.generated_files = [
        GeneratedFile(path="sections/header.liquid", content="<header/>", step="header-code"),
        GeneratedFile(path="sections/lookbook.liquid", content="<lookbook/>", step="new-section-lookbook", origin="new"),
        GeneratedFile(path="assets/section-lookbook.css", content=".lookbook{}", step="new-section-lookbook", origin="new"),
        GeneratedFile(path="sections/story.liquid", content="<story/>", step="new-section-story", origin="new"),
        GeneratedFile(path="sections/hero.liquid", content="<hero/>", step="modified-section-hero", origin="modified"),
    ]
    session.add_approval_record(
        ApprovalRecord(
            phase=Phase.DIFFERENTIATION,
            step="new-section-story",
            iteration=4,
            accepted=False,
            feedback=SKIPPED_FEEDBACK,
            forced=True,
            skipped=True,
        )
    )
    session.design_system = design_system
    return session


class TestProductCsv:
    """Tests for the product import CSV."""

    def test_one_row_per_variant(self, sample_products):
        """Test row layout and product-level columns on the first row only."""
        sample_products[0].variants.append(sample_products[0].variants[0].model_copy(update={"option1": "7"}))

        rows = list(csv.DictReader(io.StringIO(generate_product_csv(sample_products))))

        assert len(rows) == 4
        assert rows[0]["Handle"] == rows[1]["Handle"] == "ring-1"
        assert rows[0]["Title"] == "Ring 1"
        assert rows[1]["Title"] == ""
        assert rows[0]["Option1 Name"] == "Size"
        assert rows[1]["Option1 Value"] == "7"
        assert rows[0]["Variant Price"] == "50.00"
        assert rows[0]["Body (HTML)"] == "<p>Hand-forged ring number 1</p>"

    def test_headers(self, sample_products):
        header = generate_product_csv(sample_products).splitlines()[0]

        assert header.split(",")[0] == "Handle"
        assert len(next(csv.reader([header]))) == len(CSV_HEADERS)

    def test_default_variant_and_sale_tag(self):
        """Test products without variants and with a compare-at price."""
        product = Product(
            id="tote-bag", name="Tote", description="Canvas", price=30.0,
            compare_at_price=40.0, category="Bags", collection="Core",
        )

        row = next(csv.DictReader(io.StringIO(generate_product_csv([product]))))

        assert row["Variant SKU"] == "TOTEBAG"
        assert row["Option1 Value"] == "Default Title"
        assert row["Tags"] == "Core, Bags, Sale"
        assert row["Variant Compare At Price"] == "40.00"

    def test_write(self, tmp_path, sample_products):
        path = write_product_csv(sample_products, tmp_path / "out" / "products.csv")

        assert path.read_text().startswith("Handle,")


class TestDesignTokens:
    """Tests for settings_data and CSS variables."""

    def test_settings_data_uses_selected_scheme(self, design_system):
        settings = build_settings_data(design_system)["current"]["settings"]

        assert settings["colors_primary"] == "#111111"
        assert settings["type_heading_font"] == "Cormorant"
        assert settings["type_base_size"] == 18

    def test_skipped_components_are_left_out(self, design_system):
        """Test that None components produce no settings or variables."""
        settings = build_settings_data(design_system)["current"]["settings"]
        css = build_css_variables(design_system)

        assert not any(key.startswith("spacing_") for key in settings)
        assert not any(key.startswith("button_") for key in settings)
        assert "--spacing-unit" not in css
        assert "--button-radius" not in css

    def test_css_variables(self, design_system):
        design_system.buttons = ButtonStyle(border_radius="0px")

        css = build_css_variables(design_system)

        assert "/* Colors - Ink */" in css
        assert '--font-heading: "Cormorant", serif;' in css
        assert "--button-radius: 0px;" in css
        assert ".color-scheme-2 {" in css


class TestAssembleTheme:
    """Tests for theme assembly."""

    def test_skipped_files_excluded(self, tmp_path, built_session):
        """Test that files from skipped steps never reach the theme."""
        theme_dir = tmp_path / "out" / "theme"

        build = assemble_theme(built_session, theme_dir, tmp_path / "no-base", ["lookbook", "story", "hero"])

        assert (theme_dir / "sections" / "header.liquid").read_text() == "<header/>"
        assert (theme_dir / "sections" / "lookbook.liquid").exists()
        assert not (theme_dir / "sections" / "story.liquid").exists()
        assert build.new_sections == ["lookbook"]
        assert build.modified_sections == ["hero"]
        assert build.excluded_steps == ["differentiation/new-section-story"]
        assert build.homepage_sections == ["lookbook", "hero"]

        index = json.loads((theme_dir / "templates" / "index.json").read_text())
        assert index["order"] == ["lookbook", "hero"]

    def test_skeleton_when_base_missing(self, tmp_path, built_session):
        """Test that a missing base theme gives a valid skeleton with a warning."""
        build = assemble_theme(built_session, tmp_path / "theme", tmp_path / "no-base", [])

        assert build.valid
        assert any("Base theme not found" in w for w in build.warnings)
        assert (tmp_path / "theme" / "assets" / "design-system.css").exists()

    def test_copies_base_theme(self, tmp_path, built_session):
        """Test that base theme files are copied and generated files overlay them."""
        base = tmp_path / "base"
        (base / "sections").mkdir(parents=True)
        (base / "sections" / "header.liquid").write_text("<old-header/>")
        (base / "sections" / "faq.liquid").write_text("<faq/>")

        assemble_theme(built_session, tmp_path / "theme", base, [])

        assert (tmp_path / "theme" / "sections" / "header.liquid").read_text() == "<header/>"
        assert (tmp_path / "theme" / "sections" / "faq.liquid").read_text() == "<faq/>"

    def test_without_design_system(self, tmp_path, built_session):
        """Test that no design system leaves settings_data missing."""
        built_session.design_system = None

        build = assemble_theme(built_session, tmp_path / "theme", tmp_path / "no-base", [])

        assert "Missing required file: config/settings_data.json" in build.errors
        assert not build.valid


class TestPackaging:
    """Tests for verification and zip packaging."""

    def test_verify_empty_directory(self, tmp_path):
        result = verify_theme_package(tmp_path)

        assert not result.valid
        assert "Missing required directory: layout" in result.errors

    def test_package_theme(self, tmp_path, built_session):
        """Test the zip contents and manifest."""
        theme_dir = tmp_path / "theme"
        built_session.theme_build = assemble_theme(built_session, theme_dir, tmp_path / "no-base", ["lookbook"])

        result = package_theme(built_session, theme_dir, tmp_path / "artisan-atelier.zip", base_theme="dawn")

        with zipfile.ZipFile(result.zip_path) as archive:
            names = archive.namelist()
        assert "theme-manifest.json" in names
        assert "sections/lookbook.liquid" in names
        assert result.file_count == len(names)
        assert result.manifest.sections.new == ["lookbook"]
        assert result.manifest.base_theme == "dawn"
        assert result.manifest.config.settings_data
        assert "design-system.css" in result.manifest.assets.css


class TestDocumentation:
    """Tests for documentation, checklist and score."""

    @pytest.fixture
    def manifest(self, tmp_path, built_session):
        theme_dir = tmp_path / "theme"
        built_session.theme_build = assemble_theme(built_session, theme_dir, tmp_path / "no-base", [])
        return package_theme(built_session, theme_dir, tmp_path / "t.zip").manifest

    def test_score(self, built_session, manifest):
        """Test scoring: 1/4 new, 1/4 modified, design system, header only."""
        score = differentiation_score(built_session, manifest)

        assert score.new_sections == 6.25
        assert score.modified_sections == 6.25
        assert score.design_system == 25.0
        assert score.header_footer == 12.5
        assert score.total == 50.0

    def test_documentation(self, built_session, manifest):
        doc = build_documentation(built_session, manifest)

        assert doc.startswith("# Artisan Atelier")
        assert "### Lookbook" in doc
        assert "### Story" not in doc
        assert "**Ink** (default)" in doc
        assert "- differentiation/new-section-story" in doc

    def test_checklist(self, built_session, manifest):
        built_session.test_results = [TestResult(passed=True, category="theme-check", name="Theme Check")]
        score = differentiation_score(built_session, manifest)

        checklist = build_checklist(built_session, manifest, score, "https://preview")

        assert "Differentiation score: 50%" in checklist
        assert "- [ ] 1 new sections (need 4+)" in checklist
        assert "- [x] All preview tests passed" in checklist
        assert "- [x] Preview URL: https://preview" in checklist

    def test_key_features(self, built_session):
        features = key_features(built_session)

        assert features[0] == "Lookbook: Shoppable looks"
        assert features[1].startswith("Custom Design System")
        assert len(features) == 3
