"""
Phase 7: Preview & Testing

Runs Theme Check, pushes the assembled theme to the dev store as an
unpublished theme and collects the operator's visual review. The test theme
is always offered for deletion, whatever happened before.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..models import SessionState, TestResult
from ..ui.display import Display
from .common import require
from .context import PhaseContext

logger = logging.getLogger(__name__)

MAX_LISTED_ERRORS = 10
MAX_LISTED_WARNINGS = 5

REVIEW_CHECKLIST = [
    "Header displays correctly on desktop and mobile",
    "Footer displays correctly",
    "New sections render properly",
    "Modified sections work as expected",
    "JavaScript interactions function correctly",
    "Colors and typography match the design system",
    "No console errors in browser dev tools",
]

REVIEW_OUTCOMES = {
    "pass": (True, "Approved", "info"),
    "minor": (True, "Minor issues noted", "warning"),
    "fail": (False, "Failed review", "error"),
}


def run_theme_check(ctx: PhaseContext, theme_path: Path, results: list[TestResult]) -> bool:
    """Record the Theme Check outcome. Returns False if the operator stops on errors."""
    display = ctx.display
    display.section_header("Theme Check Validation")
    check = ctx.shopify.run_theme_check(theme_path)

    if check.errors:
        display.error(f"Theme Check found {len(check.errors)} errors:")
        for error in check.errors[:MAX_LISTED_ERRORS]:
            display.error(f"  • {error}")
        if len(check.errors) > MAX_LISTED_ERRORS:
            display.error(f"  ... and {len(check.errors) - MAX_LISTED_ERRORS} more")
        results.append(
            TestResult(
                passed=False,
                category="theme-check",
                name="Theme Check Validation",
                message=f"{len(check.errors)} errors found",
                severity="error",
            )
        )
        if not ctx.prompter.confirm("Continue with errors?", default=False):
            display.info("Fix the errors and resume testing.")
            return False
    else:
        display.success("Theme Check passed")
        results.append(
            TestResult(passed=True, category="theme-check", name="Theme Check Validation")
        )

    if check.warnings:
        display.warning(f"{len(check.warnings)} warnings found")
        for warning in check.warnings[:MAX_LISTED_WARNINGS]:
            display.warning(f"  • {warning}")
    return True


def manual_review(ctx: PhaseContext, results: list[TestResult]) -> None:
    display = ctx.display
    display.section_header("Manual Review")
    display.info("Please review the theme in your browser and check:")
    display.bullet_list(REVIEW_CHECKLIST)

    verdict = ctx.prompter.select(
        "How does the theme look?",
        [
            ("Looks good - ready for final packaging", "pass"),
            ("Minor issues - note them and continue", "minor"),
            ("Major issues - need to fix before continuing", "fail"),
        ],
    )
    passed, message, severity = REVIEW_OUTCOMES[verdict]
    results.append(
        TestResult(
            passed=passed,
            category="manual-review",
            name="Visual Review",
            message=message,
            severity=severity,
        )
    )
    if passed:
        display.success("Testing complete")
    else:
        display.warning("Theme failed manual review. Fix the issues and re-run testing.")


def display_summary(display: Display, results: list[TestResult]) -> None:
    display.divider()
    passed = sum(1 for r in results if r.passed)
    display.key_value("Passed", str(passed))
    display.key_value("Failed", str(len(results) - passed))
    display.table(
        "Test Results",
        ["", "Test", "Category", "Message"],
        [
            ["✓" if r.passed else "✗", r.name, r.category, r.message or "OK"]
            for r in results
        ],
    )


async def run(session: SessionState, ctx: PhaseContext) -> None:
    """Check, push and review the assembled theme."""
    require(session.theme_build is not None, "Testing needs an assembled theme")
    display = ctx.display
    theme_path = Path(session.theme_build.theme_dir)

    display.section_header("Testing")
    display.numbered_list([
        "Run Shopify Theme Check",
        "Push to your dev store as an unpublished theme",
        "Manual review",
        "Clean up the test theme",
    ])
    if not ctx.prompter.confirm("Ready to begin testing?", default=True):
        display.info("Skipping the testing phase. You can run tests manually.")
        return

    results: list[TestResult] = []
    test_theme_id: Optional[str] = None
    try:
        if not run_theme_check(ctx, theme_path, results):
            return

        display.section_header("Push to Shopify")
        theme_name = f"{session.output_name} - Test {datetime.now():%Y%m%d%H%M%S}"
        display.info(f"Pushing theme as: {theme_name}")
        push = ctx.shopify.push_theme(theme_path, theme_name)
        if not push.success:
            display.error(f"Failed to push theme: {push.error}")
            results.append(
                TestResult(
                    passed=False,
                    category="shopify-push",
                    name="Theme Push",
                    message=push.error,
                    severity="error",
                )
            )
            return

        test_theme_id = push.theme_id
        session.test_theme_preview_url = push.preview_url
        display.success("Theme pushed")
        display.key_value("Theme ID", test_theme_id or "unknown")
        display.key_value("Preview URL", push.preview_url or "")
        results.append(
            TestResult(
                passed=True,
                category="shopify-push",
                name="Theme Push",
                message=f"Theme ID: {test_theme_id}",
            )
        )

        manual_review(ctx, results)
    finally:
        session.test_results = results
        if test_theme_id:
            display.section_header("Cleanup")
            if ctx.prompter.confirm("Delete the test theme from Shopify?", default=True):
                if ctx.shopify.delete_theme(test_theme_id):
                    session.test_theme_preview_url = None
                    display.success("Test theme deleted")
                else:
                    logger.warning("Could not delete test theme %s", test_theme_id)
                    display.warning("Could not delete the test theme; clean it up manually")
            else:
                display.info(f"Test theme remains on the store. Theme ID: {test_theme_id}")

    display_summary(display, results)
