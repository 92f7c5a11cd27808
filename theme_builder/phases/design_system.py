"""
Phase 5: Design System

Color schemes, typography, spacing and button styles, each approved on its
own. Skipping the color schemes leaves the theme without a design system;
skipping any later component leaves just that component unset.
"""

import logging
from typing import Any, Optional

from ..models import ButtonStyle, ColorScheme, DesignSystem, Phase, SessionState, Spacing, Typography
from ..ui.display import Display
from .common import ask_json, brief_context, build_messages, require, task_prompt
from .context import PhaseContext

logger = logging.getLogger(__name__)

SCHEME_COUNT = 5

COMPONENTS = [
    (
        "typography",
        Typography,
        "Propose a font pairing as JSON: {heading_font, heading_fallback, heading_weight, "
        "body_font, body_fallback, body_weight, base_size, scale, line_height_heading, "
        "line_height_body}. Use Google Fonts available in Shopify.",
    ),
    (
        "spacing",
        Spacing,
        "Propose a spacing system as JSON: {base_unit, scale[], section_padding_mobile, "
        "section_padding_desktop, container_width, grid_gap}.",
    ),
    (
        "buttons",
        ButtonStyle,
        "Propose button styling as JSON: {border_radius, padding_x, padding_y, font_weight, "
        "text_transform (none|uppercase|capitalize), style (filled|outline|ghost)}.",
    ),
]


async def _generate(
    ctx: PhaseContext,
    session: SessionState,
    task: str,
    schema: Any,
    instructions: str,
    feedback: Optional[str],
):
    context = brief_context(session.brief)
    if session.design_system:
        scheme = session.design_system.scheme
        context += f"\nColor scheme: {scheme.name} (primary {scheme.primary}, accent {scheme.accent})"
    system = task_prompt(
        task,
        "You are a senior visual designer building a Shopify theme design system.",
        context,
        f"{instructions}\nRespond with valid JSON only.",
    )
    messages = build_messages(system, feedback, f"Propose the {task} now.")
    return await ask_json(ctx.chat, task, messages, schema, task)


def display_schemes(display: Display, schemes: list[ColorScheme]) -> None:
    display.table(
        "Color Schemes",
        ["#", "Name", "Primary", "Secondary", "Accent", "Background", "Text", "Muted"],
        [
            [str(i), s.name, s.primary, s.secondary, s.accent, s.background, s.text, s.muted]
            for i, s in enumerate(schemes, 1)
        ],
    )


def display_component(display: Display, name: str, component: Any) -> None:
    display.proposal(
        name.title(),
        "\n".join(f"{key}: {value}" for key, value in component.model_dump().items()),
    )


async def run(session: SessionState, ctx: PhaseContext) -> None:
    """Negotiate each part of the design system."""
    require(session.brief is not None, "The design system needs a brief")
    display = ctx.display

    display.section_header("Color Schemes")
    outcome = await ctx.approve(
        session,
        Phase.DESIGN_SYSTEM,
        "color-schemes",
        generate=lambda feedback: _generate(
            ctx,
            session,
            "color-schemes",
            list[ColorScheme],
            f"Propose {SCHEME_COUNT} color schemes as a JSON list of "
            "{name, primary, secondary, accent, background, text, muted} hex values.",
            feedback,
        ),
        display=lambda schemes: display_schemes(display, schemes),
        artifact_type=list[ColorScheme],
    )
    schemes = outcome.result
    if not schemes:
        session.design_system = None
        display.warning("Color schemes skipped; the theme keeps the base design settings")
        return

    if session.design_system is None or session.design_system.color_schemes != schemes:
        selected = ctx.prompter.select(
            "Which scheme should be the default?",
            [(s.name, i) for i, s in enumerate(schemes)],
        )
        session.design_system = DesignSystem(color_schemes=schemes, selected_scheme=selected)
        ctx.checkpoint(session)
    design = session.design_system

    for name, schema, instructions in COMPONENTS:
        display.section_header(name.title())
        outcome = await ctx.approve(
            session,
            Phase.DESIGN_SYSTEM,
            name,
            generate=lambda feedback, name=name, schema=schema, instructions=instructions: _generate(
                ctx, session, name, schema, instructions, feedback
            ),
            display=lambda component, name=name: display_component(display, name, component),
            artifact_type=schema,
        )
        setattr(design, name, outcome.result)
        if outcome.skipped:
            display.warning(f"{name.title()} skipped; theme defaults will be used")
        ctx.checkpoint(session)

    display.success(f"Design system ready with the {design.scheme.name} scheme")
