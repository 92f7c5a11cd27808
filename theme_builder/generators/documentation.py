"""Merchant documentation and submission checklist in markdown."""

from dataclasses import dataclass

from ..models import SessionState
from .theme_package import ThemeManifest

REQUIRED_NEW_SECTIONS = 4
REQUIRED_MODIFIED_SECTIONS = 4


@dataclass
class DifferentiationScore:
    """How far the theme departs from its base, out of 100."""

    new_sections: float
    modified_sections: float
    design_system: float
    header_footer: float

    @property
    def total(self) -> float:
        return self.new_sections + self.modified_sections + self.design_system + self.header_footer


def differentiation_score(session: SessionState, manifest: ThemeManifest) -> DifferentiationScore:
    """Score each differentiation area out of 25."""
    rewritten = {f.path for f in session.generated_files if f.origin == "rewrite"}
    header_footer = 0.0
    if "sections/header.liquid" in rewritten:
        header_footer += 12.5
    if "sections/footer.liquid" in rewritten:
        header_footer += 12.5

    return DifferentiationScore(
        new_sections=min(len(manifest.sections.new) / REQUIRED_NEW_SECTIONS, 1) * 25,
        modified_sections=min(len(manifest.sections.modified) / REQUIRED_MODIFIED_SECTIONS, 1) * 25,
        design_system=25.0 if session.design_system else 0.0,
        header_footer=header_footer,
    )


def key_features(session: SessionState, limit: int = 3) -> list[str]:
    """Headline features for the listing, taken from the accepted sections."""
    features = [
        f"{s.name}: {s.concept}"
        for s in session.sections
        if s.type == "new" and not s.skipped
    ][: limit - 1]
    if session.design_system:
        features.append(
            "Custom Design System: crafted color palette, typography and spacing "
            "for a cohesive brand experience"
        )
    while len(features) < limit:
        features.append("Responsive Design: optimized layouts for desktop, tablet and mobile")
    return features[:limit]


def build_documentation(session: SessionState, manifest: ThemeManifest) -> str:
    """Merchant-facing ``documentation.md``."""
    brief = session.brief
    lines = [f"# {manifest.name}", ""]
    if brief and brief.positioning:
        lines += [brief.positioning, ""]

    lines += ["## Overview", ""]
    if brief:
        lines += [
            f"- **Industry:** {brief.industry}",
            f"- **Target market:** {brief.target_market}",
            f"- **Style:** {brief.style_direction}",
        ]
    lines += [
        f"- **Version:** {manifest.version}",
        f"- **Sections:** {manifest.sections.total}",
        "",
        "## Sections",
        "",
    ]

    for section in session.sections:
        if section.skipped:
            continue
        lines += [f"### {section.name}", "", section.concept, ""]
        if section.functionality:
            lines += [section.functionality, ""]
        for feature in section.unique_features:
            lines.append(f"- {feature}")
        if section.unique_features:
            lines.append("")

    design = session.design_system
    if design:
        lines += ["## Design System", "", "### Color schemes", ""]
        for i, scheme in enumerate(design.color_schemes, 1):
            marker = " (default)" if i - 1 == design.selected_scheme else ""
            lines.append(
                f"{i}. **{scheme.name}**{marker}: primary {scheme.primary}, "
                f"accent {scheme.accent}, background {scheme.background}"
            )
        lines.append("")
        if design.typography:
            t = design.typography
            lines += [
                "### Typography",
                "",
                f"- Headings: {t.heading_font} ({t.heading_weight})",
                f"- Body: {t.body_font} ({t.body_weight}), base size {t.base_size}",
                "",
            ]

    lines += [
        "## Customization",
        "",
        "All sections expose their settings in the theme editor. Design tokens live in",
        "`assets/design-system.css` and `config/settings_data.json`.",
        "",
    ]

    if manifest.excluded_steps:
        lines += ["## Not included", ""]
        lines += [f"- {step}" for step in manifest.excluded_steps]
        lines.append("")

    return "\n".join(lines)


def build_checklist(
    session: SessionState,
    manifest: ThemeManifest,
    score: DifferentiationScore,
    preview_url: str = "",
) -> str:
    """``submission-checklist.md`` for the Theme Store submission."""

    def box(done: bool) -> str:
        return "[x]" if done else "[ ]"

    new_count = len(manifest.sections.new)
    modified_count = len(manifest.sections.modified)
    testing_passed = bool(session.test_results) and all(r.passed for r in session.test_results)

    lines = [
        f"# Submission Checklist: {manifest.name}",
        "",
        f"Differentiation score: {score.total:.0f}%",
        "",
        "## Theme",
        "",
        f"- {box(new_count >= REQUIRED_NEW_SECTIONS)} {new_count} new sections "
        f"(need {REQUIRED_NEW_SECTIONS}+)",
        f"- {box(modified_count >= REQUIRED_MODIFIED_SECTIONS)} {modified_count} modified sections "
        f"(need {REQUIRED_MODIFIED_SECTIONS}+)",
        f"- {box(score.header_footer == 25)} Header and footer rewritten",
        f"- {box(session.design_system is not None)} Design system applied",
        f"- {box(manifest.config.settings_data)} config/settings_data.json present",
        "",
        "## Testing",
        "",
        f"- {box(testing_passed)} All preview tests passed",
        f"- {box(bool(preview_url))} Preview URL: {preview_url or 'not available'}",
        "",
        "## Listing assets",
        "",
        "- [ ] Thumbnail",
        "- [ ] Desktop and mobile previews",
        "- [ ] Key feature images",
        "- [x] Documentation (documentation.md)",
        "",
    ]

    if manifest.excluded_steps:
        lines += ["## Skipped steps", ""]
        lines += [f"- {step}" for step in manifest.excluded_steps]
        lines.append("")

    return "\n".join(lines)
