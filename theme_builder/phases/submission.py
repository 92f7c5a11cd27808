"""
Phase 8: Submission Assets

Packages the theme, verifies it, and writes what the Theme Store submission
needs: documentation, a checklist and the differentiation summary.
"""

import logging
from datetime import datetime
from pathlib import Path

from ..generators.documentation import (
    REQUIRED_MODIFIED_SECTIONS,
    REQUIRED_NEW_SECTIONS,
    DifferentiationScore,
    build_checklist,
    build_documentation,
    differentiation_score,
    key_features,
)
from ..generators.theme_package import (
    ThemePackageResult,
    package_summary,
    package_theme,
    verify_theme_package,
)
from ..models import SessionState, SubmissionAssets
from ..ui.display import Display
from .common import PhasePreconditionError, require, slugify
from .context import PhaseContext

logger = logging.getLogger(__name__)

MAX_LISTED_ERRORS = 5


def verify_package(ctx: PhaseContext, result: ThemePackageResult) -> None:
    """Show verification and Theme Check results; raise if the operator stops."""
    display = ctx.display
    verification = verify_theme_package(result.theme_path)
    if not verification.valid:
        display.error("Theme verification failed:")
        for error in verification.errors:
            display.error(f"  • {error}")
        if not ctx.prompter.confirm("Theme has errors. Continue anyway?", default=False):
            raise PhasePreconditionError("Theme verification failed; submission aborted")
    else:
        display.success("Theme verification passed")
    for warning in verification.warnings:
        display.warning(f"  • {warning}")

    display.info("Running Shopify Theme Check...")
    check = ctx.shopify.run_theme_check(result.theme_path)
    if check.passed:
        display.success(f"Theme Check passed ({len(check.warnings)} warnings)")
    else:
        display.warning(f"Theme Check reported {len(check.errors)} errors:")
        for error in check.errors[:MAX_LISTED_ERRORS]:
            display.warning(f"  • {error}")
        if len(check.errors) > MAX_LISTED_ERRORS:
            display.warning(f"  ... and {len(check.errors) - MAX_LISTED_ERRORS} more errors")


def resolve_preview_url(session: SessionState, ctx: PhaseContext, theme_path: Path) -> str:
    """Preview URL from testing, a fresh push, or the operator, in that order."""
    display = ctx.display
    if session.test_theme_preview_url:
        return session.test_theme_preview_url

    display.warning("No preview URL found from the testing phase.")
    if ctx.prompter.confirm("Push the theme to Shopify now for a preview?", default=True):
        display.info("Pushing theme to Shopify...")
        push = ctx.shopify.push_theme(theme_path, f"{session.output_name}-submission-preview")
        if push.success and push.preview_url:
            session.submission_theme_id = push.theme_id
            display.success(f"Theme pushed: {push.preview_url}")
            return push.preview_url
        logger.warning("Submission preview push failed: %s", push.error)
        display.error("Failed to push the theme to Shopify")

    return ctx.prompter.text(
        "Enter a preview URL manually (or leave empty to skip)",
        default="",
        allow_empty=True,
    ).strip()


def display_final_summary(
    display: Display,
    session: SessionState,
    result: ThemePackageResult,
    score: DifferentiationScore,
) -> None:
    manifest = result.manifest

    def mark(count: int, needed: int) -> str:
        return "✓" if count >= needed else "✗"

    new_count = len(manifest.sections.new)
    modified_count = len(manifest.sections.modified)
    display.box(
        "\n".join([
            "THEME GENERATION COMPLETE",
            "",
            f"Theme name: {session.output_name}",
            f"Differentiation score: {score.total:.0f}%",
            "",
            f"New sections:      {new_count} {mark(new_count, REQUIRED_NEW_SECTIONS)} (need {REQUIRED_NEW_SECTIONS}+)",
            f"Modified sections: {modified_count} {mark(modified_count, REQUIRED_MODIFIED_SECTIONS)} "
            f"(need {REQUIRED_MODIFIED_SECTIONS}+)",
            f"Total sections:    {manifest.sections.total}",
            "",
            f"Package: {result.zip_path.name}",
            "documentation.md",
            "submission-checklist.md",
        ])
    )


async def run(session: SessionState, ctx: PhaseContext) -> None:
    """Package, document and summarise the finished theme."""
    require(session.theme_build is not None, "Submission needs an assembled theme")
    display = ctx.display
    output_dir = ctx.output_dir(session)
    theme_dir = Path(session.theme_build.theme_dir)

    display.section_header("Packaging theme")
    result = package_theme(
        session,
        theme_dir,
        output_dir / f"{slugify(session.output_name)}.zip",
        base_theme=Path(ctx.config.paths.base_theme_dir).name,
    )
    display.success("Theme packaged")
    display.box(package_summary(result))

    display.section_header("Verifying theme package")
    verify_package(ctx, result)

    display.section_header("Preview")
    preview_url = resolve_preview_url(session, ctx, theme_dir)
    if not preview_url:
        display.warning("No preview URL; submission screenshots will need to be captured manually")

    display.section_header("Documentation")
    score = differentiation_score(session, result.manifest)
    documentation = build_documentation(session, result.manifest)
    docs_path = output_dir / "documentation.md"
    docs_path.write_text(documentation, encoding="utf-8")
    checklist_path = output_dir / "submission-checklist.md"
    checklist_path.write_text(
        build_checklist(session, result.manifest, score, preview_url), encoding="utf-8"
    )
    session.documentation = documentation
    display.success(f"Documentation written to {docs_path}")

    session.submission_assets = SubmissionAssets(
        key_features=key_features(session),
        documentation=str(docs_path),
        preview_url=preview_url,
        theme_name=session.output_name,
        package_path=str(result.zip_path),
        generated_at=datetime.now(),
    )
    ctx.checkpoint(session)

    display_final_summary(display, session, result, score)

    if session.submission_theme_id:
        if ctx.prompter.confirm("Delete the submission preview theme from Shopify?", default=True):
            if ctx.shopify.delete_theme(session.submission_theme_id):
                session.submission_theme_id = None
                display.success("Submission preview theme deleted")
            else:
                display.warning("Could not delete the preview theme; please delete it manually")

    review = ctx.prompter.select(
        "Review the generated files. What would you like to do?",
        [
            ("Complete - ready for submission", "complete"),
            ("Review files before finalizing", "review"),
            ("Regenerate specific components", "regenerate"),
        ],
    )
    if review == "review":
        display.info(f"Generated files are located at {theme_dir}")
        display.info("Review the files and run the builder again if changes are needed.")
    elif review == "regenerate":
        display.info("Restart the builder and choose 'Restart a phase' to regenerate components.")

    display.success("Theme generation complete!")
    display.text("Next steps:")
    display.numbered_list([
        "Review submission-checklist.md",
        "Test the theme thoroughly on a staging store",
        "Submit to the Shopify Theme Store via the Partner Dashboard",
    ])
