"""
Phase 6: Code Generation

Settles the homepage layout and assembles the theme directory from the base
theme, the accepted differentiation files and the design tokens.
"""

import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from ..generators.theme_package import assemble_theme
from ..models import Phase, SessionState, ThemeBuild
from ..ui.display import Display
from .common import ask_json, brief_context, build_messages, keep_known, require, task_prompt
from .context import PhaseContext

logger = logging.getLogger(__name__)

STEP_LAYOUT = "homepage-layout"


class HomepageLayout(BaseModel):
    sections: list[str] = Field(default_factory=list)


def homepage_candidates(session: SessionState) -> list[str]:
    """Accepted new sections first, then modified ones; only sections that have files."""
    section_paths = {f.path for f in session.generated_files}
    ordered = [s for s in session.sections if s.type == "new"] + [
        s for s in session.sections if s.type == "modified"
    ]
    return [
        s.id
        for s in ordered
        if not s.skipped and f"sections/{s.id}.liquid" in section_paths
    ]


async def generate_layout(
    ctx: PhaseContext, session: SessionState, candidates: list[str], feedback: Optional[str]
) -> HomepageLayout:
    system = task_prompt(
        STEP_LAYOUT,
        "You are a conversion-focused Shopify homepage designer.",
        f"{brief_context(session.brief)}\nSections: {', '.join(candidates)}",
        'Order the sections for the homepage as JSON: {"sections": [...]}. '
        "Use only the listed section ids. Respond with valid JSON only.",
    )
    messages = build_messages(system, feedback, "Propose the homepage layout now.")
    layout = await ask_json(
        ctx.chat,
        STEP_LAYOUT,
        messages,
        HomepageLayout,
        "homepage layout",
        fallback=lambda: HomepageLayout(sections=list(candidates)),
    )
    return HomepageLayout(sections=keep_known("homepage sections", layout.sections, candidates))


def display_layout(display: Display, layout: HomepageLayout) -> None:
    display.proposal(
        "Homepage Layout",
        "\n".join(f"{i}. {sid}" for i, sid in enumerate(layout.sections, 1)) or "(no sections)",
    )


def display_build(display: Display, build: ThemeBuild) -> None:
    display.section_header("Theme Build")
    display.key_value("Theme directory", build.theme_dir)
    display.key_value("New sections", ", ".join(build.new_sections) or "none")
    display.key_value("Modified sections", ", ".join(build.modified_sections) or "none")
    display.key_value("Homepage", ", ".join(build.homepage_sections) or "empty")
    if build.excluded_steps:
        display.warning(f"Excluded skipped steps: {', '.join(build.excluded_steps)}")
    for warning in build.warnings:
        display.warning(warning)
    for error in build.errors:
        display.error(error)


async def run(session: SessionState, ctx: PhaseContext) -> None:
    """Approve the homepage layout and assemble the theme."""
    require(
        session.design_system is not None or session.generated_files,
        "Code generation needs a design system or generated differentiation files",
    )
    require(session.brief is not None, "Code generation needs a brief")
    display = ctx.display

    candidates = homepage_candidates(session)
    outcome = await ctx.approve(
        session,
        Phase.CODE_GENERATION,
        STEP_LAYOUT,
        generate=lambda feedback: generate_layout(ctx, session, candidates, feedback),
        display=lambda layout: display_layout(display, layout),
        artifact_type=HomepageLayout,
    )
    layout = outcome.result
    if layout is None:
        display.warning("Homepage layout skipped; using the default section order")
        homepage = candidates
    else:
        homepage = layout.sections

    build = assemble_theme(
        session,
        ctx.theme_dir(session),
        Path(ctx.config.paths.base_theme_dir),
        homepage,
    )
    session.theme_build = build
    display_build(display, build)

    if build.valid:
        display.success(f"Theme assembled at {build.theme_dir}")
    else:
        logger.warning("Theme at %s failed verification: %s", build.theme_dir, "; ".join(build.errors))
        display.warning("Theme assembled with verification errors; review them before testing")
