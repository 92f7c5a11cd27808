"""Design system output: settings_data.json and CSS custom properties.

Components whose step was skipped are None on the DesignSystem and are left
out of both outputs; the base theme's own defaults then apply.
"""

import re
from typing import Any

from ..models import DesignSystem

SPACING_NAMES = ["xs", "sm", "md", "lg", "xl", "2xl", "3xl", "4xl", "5xl"]


def _leading_int(value: str) -> int | str:
    match = re.match(r"\d+", value)
    return int(match.group(0)) if match else value


def build_settings_data(design: DesignSystem) -> dict[str, Any]:
    """The ``config/settings_data.json`` document for a design system."""
    scheme = design.scheme
    settings: dict[str, Any] = {
        "colors_primary": scheme.primary,
        "colors_secondary": scheme.secondary,
        "colors_accent": scheme.accent,
        "colors_background": scheme.background,
        "colors_text": scheme.text,
        "corner_radius_small": design.corners.small,
        "corner_radius_medium": design.corners.medium,
        "corner_radius_large": design.corners.large,
    }

    if design.typography:
        t = design.typography
        settings.update({
            "type_heading_font": t.heading_font,
            "type_heading_weight": t.heading_weight,
            "type_body_font": t.body_font,
            "type_body_weight": t.body_weight,
            "type_base_size": _leading_int(t.base_size),
            "type_scale": t.scale,
        })

    if design.spacing:
        s = design.spacing
        settings.update({
            "spacing_base": s.base_unit,
            "spacing_section_mobile": s.section_padding_mobile,
            "spacing_section_desktop": s.section_padding_desktop,
            "layout_container_width": s.container_width,
            "layout_grid_gap": s.grid_gap,
        })

    if design.buttons:
        b = design.buttons
        settings.update({
            "button_border_radius": b.border_radius,
            "button_padding_x": b.padding_x,
            "button_padding_y": b.padding_y,
            "button_font_weight": b.font_weight,
            "button_text_transform": b.text_transform,
            "button_style": b.style,
        })

    return {
        "current": {"sections": {}, "blocks": {}, "settings": settings},
        "presets": {"default": {"settings": {}, "sections": {}, "blocks": {}}},
    }


def build_css_variables(design: DesignSystem) -> str:
    """The ``assets/design-system.css`` stylesheet for a design system."""
    scheme = design.scheme
    lines = [
        "/**",
        " * Design System CSS Variables",
        " * Generated by Theme Builder",
        " */",
        ":root {",
        f"  /* Colors - {scheme.name} */",
        f"  --color-primary: {scheme.primary};",
        f"  --color-secondary: {scheme.secondary};",
        f"  --color-accent: {scheme.accent};",
        f"  --color-background: {scheme.background};",
        f"  --color-text: {scheme.text};",
        f"  --color-muted: {scheme.muted};",
    ]

    if design.typography:
        t = design.typography
        lines += [
            "",
            "  /* Typography */",
            f'  --font-heading: "{t.heading_font}", {t.heading_fallback};',
            f'  --font-body: "{t.body_font}", {t.body_fallback};',
            f"  --font-weight-heading: {t.heading_weight};",
            f"  --font-weight-body: {t.body_weight};",
            f"  --font-size-base: {t.base_size};",
            f"  --type-scale: {t.scale};",
            f"  --line-height-heading: {t.line_height_heading};",
            f"  --line-height-body: {t.line_height_body};",
        ]

    if design.spacing:
        s = design.spacing
        lines += ["", "  /* Spacing */", f"  --spacing-unit: {s.base_unit}px;"]
        for name, factor in zip(SPACING_NAMES, s.scale):
            lines.append(f"  --spacing-{name}: calc(var(--spacing-unit) * {factor});")
        lines += [
            f"  --section-padding-mobile: {s.section_padding_mobile};",
            f"  --section-padding-desktop: {s.section_padding_desktop};",
            f"  --container-width: {s.container_width};",
            f"  --grid-gap: {s.grid_gap};",
        ]

    if design.buttons:
        b = design.buttons
        lines += [
            "",
            "  /* Buttons */",
            f"  --button-radius: {b.border_radius};",
            f"  --button-padding-x: {b.padding_x};",
            f"  --button-padding-y: {b.padding_y};",
            f"  --button-font-weight: {b.font_weight};",
            f"  --button-text-transform: {b.text_transform};",
        ]

    c = design.corners
    lines += [
        "",
        "  /* Corner Radius */",
        f"  --radius-none: {c.none};",
        f"  --radius-sm: {c.small};",
        f"  --radius-md: {c.medium};",
        f"  --radius-lg: {c.large};",
        f"  --radius-full: {c.full};",
        "}",
    ]

    if design.typography:
        lines += [
            "",
            "/* Typography Scale */",
            ":root {",
            "  --font-size-sm: calc(var(--font-size-base) / var(--type-scale));",
            "  --font-size-md: var(--font-size-base);",
            "  --font-size-lg: calc(var(--font-size-base) * var(--type-scale));",
            "  --font-size-xl: calc(var(--font-size-base) * var(--type-scale) * var(--type-scale));",
            "}",
        ]

    for i, alt in enumerate(design.color_schemes, 1):
        lines += [
            "",
            f"/* Scheme {i}: {alt.name} */",
            f".color-scheme-{i} {{",
            f"  --color-primary: {alt.primary};",
            f"  --color-secondary: {alt.secondary};",
            f"  --color-accent: {alt.accent};",
            f"  --color-background: {alt.background};",
            f"  --color-text: {alt.text};",
            f"  --color-muted: {alt.muted};",
            "}",
        ]

    return "\n".join(lines) + "\n"
