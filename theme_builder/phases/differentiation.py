"""
Phase 4: Theme Differentiation

Makes the theme distinct from its base: a rewritten header and footer,
JavaScript enhancements, brand-new sections and reworked base sections.
Every concept is approved before its code is generated, and every piece of
code is approved before it becomes a theme file.

A skipped concept never gets code. Skipped code is recorded on the section
and kept out of the assembled theme.
"""

import logging
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

from ..ai.client import get_task_type
from ..ai.parsing import strip_code_fences
from ..models import GeneratedFile, Phase, SectionProposal, SessionState, ThemeBrief
from ..ui.display import Display
from .common import (
    ask_json,
    brief_context,
    build_messages,
    describe_model,
    keep_known,
    require,
    slugify,
    task_prompt,
)
from .context import PhaseContext

logger = logging.getLogger(__name__)

CODE_PREVIEW_LINES = 40
RESERVED_SECTIONS = {"header", "footer"}


class HeaderProposal(BaseModel):
    concept: str
    layout: str = ""
    features: list[str] = Field(default_factory=list)
    mega_menu: bool = False
    sticky: bool = False
    search_style: str = "inline"


class FooterProposal(BaseModel):
    concept: str
    layout: str = ""
    columns: int = 4
    features: list[str] = Field(default_factory=list)
    newsletter: bool = True
    social_style: str = "icons"


class JSEnhancement(BaseModel):
    name: str
    description: str
    type: str = "interaction"
    affected_elements: list[str] = Field(default_factory=list)


class GeneratedCode(BaseModel):
    """Code for one section: Liquid markup plus optional stylesheet and script."""

    liquid: str
    css: Optional[str] = None
    js: Optional[str] = None


PROPOSAL_INSTRUCTIONS = "Respond with valid JSON only, no additional text."

CODE_INSTRUCTIONS = """
Write a production-ready Shopify Online Store 2.0 section.
Return JSON: {"liquid": "...", "css": "...", "js": "..."} (css and js may be null).
The liquid must end with a {% schema %} block exposing the section's settings.
Use CSS custom properties from the design system, e.g. var(--color-primary).
Respond with valid JSON only.
"""


# ============================================================================
# PROMPTS
# ============================================================================


async def _propose(
    ctx: PhaseContext,
    task: str,
    brief: ThemeBrief,
    extra: str,
    instructions: str,
    schema: Any,
    what: str,
    feedback: Optional[str],
):
    system = task_prompt(
        task,
        "You are a senior Shopify theme designer.",
        f"{brief_context(brief)}\n{extra}".rstrip(),
        f"{instructions}\n{PROPOSAL_INSTRUCTIONS}",
    )
    messages = build_messages(system, feedback, f"Propose the {what} now.")
    return await ask_json(ctx.chat, task, messages, schema, what)


async def _write_code(
    ctx: PhaseContext,
    task: str,
    brief: ThemeBrief,
    section_id: str,
    concept: BaseModel,
    feedback: Optional[str],
    original: str = "",
) -> GeneratedCode:
    extra = f"Section id: {section_id}\nConcept: {concept.model_dump_json()}"
    if original:
        extra += f"\n\nOriginal section source:\n{original}"
    system = task_prompt(
        task,
        "You are an expert Shopify theme developer.",
        f"{brief_context(brief)}\n{extra}",
        CODE_INSTRUCTIONS,
    )
    messages = build_messages(system, feedback, f"Write the code for the {section_id} section now.")
    return await ask_json(ctx.chat, task, messages, GeneratedCode, f"{section_id} code")


# ============================================================================
# DISPLAY
# ============================================================================


def _preview(code: str) -> str:
    lines = code.splitlines()
    if len(lines) <= CODE_PREVIEW_LINES:
        return code
    hidden = len(lines) - CODE_PREVIEW_LINES
    return "\n".join(lines[:CODE_PREVIEW_LINES] + [f"... ({hidden} more lines)"])


def display_concept(display: Display, title: str, proposal: BaseModel) -> None:
    data = proposal.model_dump()
    lines = [data.pop("concept", "")]
    for key, value in data.items():
        label = key.replace("_", " ").title()
        if isinstance(value, list):
            lines.append(f"{label}:")
            lines.extend(f"  - {item}" for item in value)
        else:
            lines.append(f"{label}: {value}")
    display.proposal(title, "\n".join(lines))


def display_enhancements(display: Display, enhancements: list[JSEnhancement]) -> None:
    display.table(
        "JavaScript Enhancements",
        ["Name", "Type", "Description", "Elements"],
        [[e.name, e.type, e.description, ", ".join(e.affected_elements)] for e in enhancements],
    )


def display_sections(display: Display, title: str, proposals: list[SectionProposal]) -> None:
    display.table(
        title,
        ["Id", "Name", "Concept", "Unique features"],
        [[p.id, p.name, p.concept, ", ".join(p.unique_features)] for p in proposals],
    )


def display_code(display: Display, title: str, code: GeneratedCode) -> None:
    parts = [_preview(code.liquid)]
    if code.css:
        parts.append(f"/* CSS */\n{_preview(code.css)}")
    if code.js:
        parts.append(f"// JS\n{_preview(code.js)}")
    display.proposal(title, "\n\n".join(parts))


# ============================================================================
# SESSION UPDATES
# ============================================================================


def add_generated_files(session: SessionState, files: list[GeneratedFile]) -> None:
    """Add files, replacing any earlier file at the same path."""
    paths = {f.path for f in files}
    session.generated_files = [f for f in session.generated_files if f.path not in paths] + files


def section_files(section_id: str, code: GeneratedCode, step: str, origin: str) -> list[GeneratedFile]:
    asset = section_id if section_id in RESERVED_SECTIONS else f"section-{section_id}"
    files = [GeneratedFile(path=f"sections/{section_id}.liquid", content=code.liquid, step=step, origin=origin)]
    if code.css:
        files.append(GeneratedFile(path=f"assets/{asset}.css", content=code.css, step=step, origin=origin))
    if code.js:
        files.append(GeneratedFile(path=f"assets/{asset}.js", content=code.js, step=step, origin=origin))
    return files


def merge_sections(session: SessionState, sections: list[SectionProposal]) -> None:
    """Replace sections with the same id, keeping the rest in order."""
    ids = {s.id for s in sections}
    session.sections = [s for s in session.sections if s.id not in ids] + sections


def available_base_sections(base_theme_dir: Path) -> list[str]:
    sections_dir = Path(base_theme_dir) / "sections"
    if not sections_dir.is_dir():
        return []
    return sorted(p.stem for p in sections_dir.glob("*.liquid") if p.stem not in RESERVED_SECTIONS)


def _normalize_proposals(proposals: list[SectionProposal], kind: str) -> list[SectionProposal]:
    normalized = []
    seen = set()
    for proposal in proposals:
        section_id = slugify(proposal.id or proposal.name)
        if section_id in seen or section_id in RESERVED_SECTIONS:
            logger.warning("Dropping duplicate or reserved section id %s", section_id)
            continue
        seen.add(section_id)
        normalized.append(proposal.model_copy(update={"id": section_id, "type": kind, "skipped": False}))
    return normalized


# ============================================================================
# STEPS
# ============================================================================


async def _header_or_footer(
    session: SessionState,
    ctx: PhaseContext,
    part: str,
    schema: type[BaseModel],
    instructions: str,
) -> None:
    brief = session.brief
    display = ctx.display
    display.section_header(f"{part.title()} Rewrite")

    proposal = await ctx.approve(
        session,
        Phase.DIFFERENTIATION,
        f"{part}-proposal",
        generate=lambda feedback: _propose(
            ctx, f"{part}-proposal", brief, "", instructions, schema, f"{part} concept", feedback
        ),
        display=lambda concept: display_concept(display, f"{part.title()} Concept", concept),
        artifact_type=schema,
    )
    concept = proposal.result
    if concept is None:
        display.warning(f"{part.title()} concept skipped; the base theme {part} is kept")
        return

    display.info(f"Using {describe_model(ctx.config, f'{part}-code')} for code...")
    step = f"{part}-code"
    code = await ctx.approve(
        session,
        Phase.DIFFERENTIATION,
        step,
        generate=lambda feedback: _write_code(ctx, step, brief, part, concept, feedback),
        display=lambda generated: display_code(display, f"sections/{part}.liquid", generated),
        artifact_type=GeneratedCode,
    )
    if code.result is None:
        display.warning(f"{part.title()} code skipped; the base theme {part} is kept")
        return

    add_generated_files(session, section_files(part, code.result, step, "rewrite"))
    ctx.checkpoint(session)
    display.success(f"{part.title()} rewritten")


async def _js_enhancements(session: SessionState, ctx: PhaseContext) -> None:
    brief = session.brief
    display = ctx.display
    display.section_header("JavaScript Enhancements")

    proposal = await ctx.approve(
        session,
        Phase.DIFFERENTIATION,
        "js-enhancements",
        generate=lambda feedback: _propose(
            ctx,
            "js-enhancements",
            brief,
            "",
            "Propose 3-5 JavaScript enhancements as a JSON list of "
            "{name, description, type, affected_elements[]}.",
            list[JSEnhancement],
            "JavaScript enhancements",
            feedback,
        ),
        display=lambda enhancements: display_enhancements(display, enhancements),
        artifact_type=list[JSEnhancement],
    )
    enhancements = proposal.result
    if enhancements is None:
        display.warning("JavaScript enhancements skipped")
        return

    async def generate_js(feedback: Optional[str]) -> str:
        listing = "\n".join(f"- {e.name}: {e.description}" for e in enhancements)
        system = task_prompt(
            "js-code",
            "You are an expert front-end developer writing vanilla JavaScript for Shopify themes.",
            f"{brief_context(brief)}\nEnhancements:\n{listing}",
            "Write a single assets/theme.js file implementing every enhancement. "
            "No frameworks. Respond with the code only.",
        )
        messages = build_messages(system, feedback, "Write theme.js now.")
        text = await ctx.chat.chat(messages, get_task_type("js-code"))
        return strip_code_fences(text)

    code = await ctx.approve(
        session,
        Phase.DIFFERENTIATION,
        "js-code",
        generate=generate_js,
        display=lambda js: display.proposal("assets/theme.js", _preview(js)),
        artifact_type=str,
    )
    if code.result is None:
        display.warning("JavaScript code skipped")
        return

    add_generated_files(
        session, [GeneratedFile(path="assets/theme.js", content=code.result, step="js-code", origin="rewrite")]
    )
    ctx.checkpoint(session)
    display.success("JavaScript enhancements written")


async def _sections(session: SessionState, ctx: PhaseContext, kind: str) -> None:
    """Propose, then code, a batch of new or modified sections."""
    brief = session.brief
    display = ctx.display
    generation = ctx.config.generation
    count = generation.new_sections_count if kind == "new" else generation.modified_sections_count
    base_dir = Path(ctx.config.paths.base_theme_dir)
    available = available_base_sections(base_dir) if kind == "modified" else []

    display.section_header(f"{kind.title()} Sections")

    extra = f"Section type: {kind}\nCount: {count}"
    if kind == "new":
        instructions = (
            f"Propose {count} sections that do not exist in the base theme, as a JSON list of "
            "{id, name, type, concept, functionality, unique_features[]}."
        )
    else:
        extra += f"\nAvailable sections: {', '.join(available)}"
        instructions = (
            f"Pick {count} of the available base theme sections and propose how to rework each, "
            "as a JSON list of {id, name, type, concept, functionality, unique_features[]}. "
            "The id must be the base section's id."
        )

    async def propose(feedback: Optional[str]) -> list[SectionProposal]:
        proposals = await _propose(
            ctx,
            "section-proposals",
            brief,
            extra,
            instructions,
            list[SectionProposal],
            f"{kind} sections",
            feedback,
        )
        proposals = _normalize_proposals(proposals, kind)
        if available:
            known = keep_known("base sections", [p.id for p in proposals], available)
            proposals = [p for p in proposals if p.id in known]
        return proposals

    proposal = await ctx.approve(
        session,
        Phase.DIFFERENTIATION,
        f"{kind}-section-proposals",
        generate=propose,
        display=lambda proposals: display_sections(display, f"{kind.title()} Section Proposals", proposals),
        artifact_type=list[SectionProposal],
    )
    proposals = proposal.result
    if proposals is None:
        display.warning(f"{kind.title()} sections skipped")
        return

    for index, section in enumerate(proposals, 1):
        display.info(f"Section {index}/{len(proposals)}: {section.name}")
        step = f"{kind}-section-{section.id}"
        original = ""
        if kind == "modified":
            source = base_dir / "sections" / f"{section.id}.liquid"
            if source.is_file():
                original = source.read_text(encoding="utf-8")

        code = await ctx.approve(
            session,
            Phase.DIFFERENTIATION,
            step,
            generate=lambda feedback, section=section, original=original: _write_code(
                ctx, "section-code", brief, section.id, section, feedback, original
            ),
            display=lambda generated, section=section: display_code(
                display, f"sections/{section.id}.liquid", generated
            ),
            artifact_type=GeneratedCode,
        )

        if code.result is None:
            section.skipped = True
            display.warning(f"{section.name} skipped; it will not be part of the theme")
        else:
            add_generated_files(session, section_files(section.id, code.result, step, kind))
        merge_sections(session, [section])
        ctx.checkpoint(session)

    kept = [s for s in proposals if not s.skipped]
    display.success(f"{len(kept)} of {len(proposals)} {kind} sections generated")


async def run(session: SessionState, ctx: PhaseContext) -> None:
    """Header, footer, scripts and sections, each approved before use."""
    require(session.brief is not None, "Differentiation needs a brief")

    await _header_or_footer(
        session,
        ctx,
        "header",
        HeaderProposal,
        "Propose a distinctive header as JSON: "
        "{concept, layout, features[], mega_menu, sticky, search_style}.",
    )
    await _header_or_footer(
        session,
        ctx,
        "footer",
        FooterProposal,
        "Propose a distinctive footer as JSON: "
        "{concept, layout, columns, features[], newsletter, social_style}.",
    )
    await _js_enhancements(session, ctx)
    await _sections(session, ctx, "new")
    await _sections(session, ctx, "modified")

    rewritten = sorted({f.path for f in session.generated_files})
    ctx.display.key_value("Generated files", str(len(rewritten)))
    logger.info("Differentiation produced %d files: %s", len(rewritten), ", ".join(rewritten))
