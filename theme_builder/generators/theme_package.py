"""
Theme Package Generator - assembles the theme directory and the upload zip.

Assembly copies the base theme, overlays the accepted generated files,
writes design tokens and the homepage template, then verifies the result.
Files from skipped steps never reach the theme.
"""

import json
import logging
import shutil
import zipfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field

from ..models import SessionState, ThemeBuild
from .design_tokens import build_css_variables, build_settings_data

logger = logging.getLogger(__name__)

REQUIRED_DIRS = ["assets", "config", "layout", "sections", "snippets", "templates"]
REQUIRED_FILES = [
    "layout/theme.liquid",
    "config/settings_schema.json",
    "config/settings_data.json",
]
MIN_SECTION_COUNT = 10
IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".svg", ".webp", ".gif"}

_SKELETON_LAYOUT = """<!doctype html>
<html lang="{{ request.locale.iso_code }}">
  <head>
    <meta charset="utf-8">
    <title>{{ page_title }}</title>
    {{ 'design-system.css' | asset_url | stylesheet_tag }}
    {{ content_for_header }}
  </head>
  <body>
    {% sections 'header-group' %}
    <main id="MainContent">{{ content_for_layout }}</main>
    {% sections 'footer-group' %}
  </body>
</html>
"""


class ManifestSections(BaseModel):
    total: int = 0
    new: list[str] = Field(default_factory=list)
    modified: list[str] = Field(default_factory=list)
    original: list[str] = Field(default_factory=list)


class ManifestAssets(BaseModel):
    css: list[str] = Field(default_factory=list)
    js: list[str] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)


class ManifestConfig(BaseModel):
    settings_schema: bool = False
    settings_data: bool = False


class ThemeManifest(BaseModel):
    """Summary written to ``theme-manifest.json`` inside the theme."""

    name: str
    version: str = "1.0.0"
    generated_at: datetime = Field(default_factory=datetime.now)
    base_theme: str = ""
    sections: ManifestSections = Field(default_factory=ManifestSections)
    assets: ManifestAssets = Field(default_factory=ManifestAssets)
    config: ManifestConfig = Field(default_factory=ManifestConfig)
    excluded_steps: list[str] = Field(default_factory=list)


@dataclass
class VerificationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class ThemePackageResult:
    theme_path: Path
    zip_path: Path
    file_count: int
    size_bytes: int
    manifest: ThemeManifest


def build_index_template(section_ids: list[str]) -> dict:
    """``templates/index.json`` rendering the given sections in order."""
    return {
        "sections": {sid: {"type": sid, "settings": {}} for sid in section_ids},
        "order": list(section_ids),
    }


def _write_skeleton(theme_dir: Path) -> None:
    for name in REQUIRED_DIRS:
        (theme_dir / name).mkdir(parents=True, exist_ok=True)
    (theme_dir / "layout" / "theme.liquid").write_text(_SKELETON_LAYOUT, encoding="utf-8")
    (theme_dir / "config" / "settings_schema.json").write_text(
        json.dumps([{"name": "theme_info", "theme_name": theme_dir.parent.name}], indent=2),
        encoding="utf-8",
    )


def assemble_theme(
    session: SessionState,
    theme_dir: Path,
    base_theme_dir: Path,
    homepage_sections: list[str],
) -> ThemeBuild:
    """Build the theme directory from the base theme and the session's outputs.

    Args:
        session: Session holding generated files, sections and design system
        theme_dir: Destination; replaced if it already exists
        base_theme_dir: Theme to start from. A minimal skeleton is written
            when it does not exist.
        homepage_sections: Section ids for templates/index.json, in order

    Returns:
        ThemeBuild describing what was assembled and any verification issues
    """
    theme_dir = Path(theme_dir)
    base_theme_dir = Path(base_theme_dir)
    warnings: list[str] = []

    if theme_dir.exists():
        shutil.rmtree(theme_dir)

    if base_theme_dir.is_dir():
        shutil.copytree(base_theme_dir, theme_dir)
    else:
        warnings.append(f"Base theme not found at {base_theme_dir}; using a minimal skeleton")
        _write_skeleton(theme_dir)

    excluded_steps = session.skipped_steps()
    skipped_section_ids = {s.id for s in session.sections if s.skipped}
    excluded_labels = set(excluded_steps)

    new_sections = []
    modified_sections = []
    for generated in session.generated_files:
        if f"differentiation/{generated.step}" in excluded_labels:
            continue
        target = theme_dir / generated.path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(generated.content, encoding="utf-8")

        if generated.path.startswith("sections/") and generated.path.endswith(".liquid"):
            section_id = Path(generated.path).stem
            if generated.origin == "new":
                new_sections.append(section_id)
            elif generated.origin == "modified":
                modified_sections.append(section_id)

    if session.design_system:
        config_dir = theme_dir / "config"
        config_dir.mkdir(parents=True, exist_ok=True)
        (config_dir / "settings_data.json").write_text(
            json.dumps(build_settings_data(session.design_system), indent=2), encoding="utf-8"
        )
        assets_dir = theme_dir / "assets"
        assets_dir.mkdir(parents=True, exist_ok=True)
        (assets_dir / "design-system.css").write_text(
            build_css_variables(session.design_system), encoding="utf-8"
        )
    else:
        warnings.append("No design system; base theme settings are kept")

    homepage = [sid for sid in homepage_sections if sid not in skipped_section_ids]
    templates_dir = theme_dir / "templates"
    templates_dir.mkdir(parents=True, exist_ok=True)
    (templates_dir / "index.json").write_text(
        json.dumps(build_index_template(homepage), indent=2), encoding="utf-8"
    )

    verification = verify_theme_package(theme_dir)
    logger.info(
        "Assembled theme at %s (%d new, %d modified sections, %d excluded steps)",
        theme_dir,
        len(new_sections),
        len(modified_sections),
        len(excluded_steps),
    )

    return ThemeBuild(
        theme_dir=str(theme_dir),
        homepage_sections=homepage,
        new_sections=new_sections,
        modified_sections=modified_sections,
        excluded_steps=excluded_steps,
        errors=verification.errors,
        warnings=warnings + verification.warnings,
    )


def verify_theme_package(theme_path: Path | str) -> VerificationResult:
    """Check the directory layout Shopify requires of an uploaded theme."""
    theme_path = Path(theme_path)
    errors = []
    warnings = []

    for name in REQUIRED_DIRS:
        if not (theme_path / name).is_dir():
            errors.append(f"Missing required directory: {name}")

    for name in REQUIRED_FILES:
        if not (theme_path / name).is_file():
            errors.append(f"Missing required file: {name}")

    templates_dir = theme_path / "templates"
    if templates_dir.is_dir() and not any(
        p.name.startswith("index.") for p in templates_dir.iterdir()
    ):
        errors.append("Missing index template")

    sections_dir = theme_path / "sections"
    if sections_dir.is_dir():
        count = len(list(sections_dir.glob("*.liquid")))
        if count < MIN_SECTION_COUNT:
            warnings.append(f"Low section count: {count} sections (expected {MIN_SECTION_COUNT}+)")

    return VerificationResult(valid=not errors, errors=errors, warnings=warnings)


def build_manifest(session: SessionState, theme_dir: Path, base_theme: str = "") -> ThemeManifest:
    """Describe an assembled theme and write ``theme-manifest.json`` into it."""
    theme_dir = Path(theme_dir)
    build = session.theme_build

    sections_dir = theme_dir / "sections"
    all_sections = sorted(p.stem for p in sections_dir.glob("*.liquid")) if sections_dir.is_dir() else []
    new = list(build.new_sections) if build else []
    modified = list(build.modified_sections) if build else []

    assets_dir = theme_dir / "assets"
    assets = sorted(p.name for p in assets_dir.iterdir()) if assets_dir.is_dir() else []

    manifest = ThemeManifest(
        name=session.output_name,
        base_theme=base_theme,
        sections=ManifestSections(
            total=len(all_sections),
            new=new,
            modified=modified,
            original=[s for s in all_sections if s not in new and s not in modified],
        ),
        assets=ManifestAssets(
            css=[a for a in assets if a.endswith(".css")],
            js=[a for a in assets if a.endswith(".js")],
            images=[a for a in assets if Path(a).suffix.lower() in IMAGE_SUFFIXES],
        ),
        config=ManifestConfig(
            settings_schema=(theme_dir / "config" / "settings_schema.json").exists(),
            settings_data=(theme_dir / "config" / "settings_data.json").exists(),
        ),
        excluded_steps=list(build.excluded_steps) if build else [],
    )

    (theme_dir / "theme-manifest.json").write_text(
        manifest.model_dump_json(indent=2), encoding="utf-8"
    )
    return manifest


def package_theme(session: SessionState, theme_dir: Path, zip_path: Path, base_theme: str = "") -> ThemePackageResult:
    """Write the manifest and zip the theme directory."""
    theme_dir = Path(theme_dir)
    zip_path = Path(zip_path)
    zip_path.parent.mkdir(parents=True, exist_ok=True)

    manifest = build_manifest(session, theme_dir, base_theme)

    file_count = 0
    with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
        for path in sorted(theme_dir.rglob("*")):
            if path.is_file():
                archive.write(path, path.relative_to(theme_dir).as_posix())
                file_count += 1

    size_bytes = zip_path.stat().st_size
    logger.info("Packaged %d files into %s (%d bytes)", file_count, zip_path, size_bytes)
    return ThemePackageResult(
        theme_path=theme_dir,
        zip_path=zip_path,
        file_count=file_count,
        size_bytes=size_bytes,
        manifest=manifest,
    )


def package_summary(result: ThemePackageResult) -> str:
    manifest = result.manifest
    size_mb = result.size_bytes / 1024 / 1024
    return "\n".join([
        f"Theme Package: {manifest.name}",
        f"Files: {result.file_count}",
        f"Size: {size_mb:.2f} MB",
        f"Sections: {manifest.sections.total} total "
        f"({len(manifest.sections.new)} new, {len(manifest.sections.modified)} modified)",
        f"Assets: {len(manifest.assets.css)} CSS, {len(manifest.assets.js)} JS, "
        f"{len(manifest.assets.images)} images",
        f"Theme: {result.theme_path}",
        f"ZIP: {result.zip_path}",
    ])
