"""Shopify CLI wrapper for pushing, checking and deleting development themes.

Every operation runs the ``shopify`` executable once. Failures, including a
missing executable or a timeout, come back in the result objects instead of
being raised.
"""

import json
import logging
import os
import re
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional

from ..config import Config, ShopifyConfig

logger = logging.getLogger(__name__)

Runner = Callable[..., subprocess.CompletedProcess]


@dataclass
class ThemePushResult:
    success: bool
    theme_id: Optional[str] = None
    preview_url: Optional[str] = None
    editor_url: Optional[str] = None
    error: Optional[str] = None


@dataclass
class ThemeCheckResult:
    passed: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class ThemeInfo:
    id: str
    name: str
    role: str
    preview_url: str


def _is_error_severity(severity: Any) -> bool:
    # Theme Check reports either names or numeric levels (0 = error)
    return severity == "error" or severity == 0


def parse_theme_check_output(stdout: str) -> ThemeCheckResult:
    """Split Theme Check JSON output into errors and warnings."""
    try:
        results = json.loads(stdout)
    except json.JSONDecodeError:
        # No JSON means no offenses were reported
        return ThemeCheckResult(passed=True)

    errors = []
    warnings = []
    for entry in results or []:
        path = entry.get("path", "")
        offenses = entry.get("offenses")
        issues = offenses if offenses is not None else [entry]
        for issue in issues:
            message = f"{path}: {issue.get('message', '')}"
            if _is_error_severity(issue.get("severity")):
                errors.append(message)
            else:
                warnings.append(message)

    return ThemeCheckResult(passed=not errors, errors=errors, warnings=warnings)


def parse_push_output(stdout: str) -> ThemePushResult:
    """Read theme id and URLs from ``theme push --json`` output.

    Falls back to the human-readable "Theme ID:" and "Preview:" lines.
    """
    try:
        data = json.loads(stdout)
        theme = data.get("theme") or {}
        theme_id = theme.get("id")
        return ThemePushResult(
            success=True,
            theme_id=str(theme_id) if theme_id is not None else None,
            preview_url=theme.get("preview_url"),
            editor_url=theme.get("editor_url"),
        )
    except (json.JSONDecodeError, AttributeError):
        pass

    theme_id_match = re.search(r"Theme ID: (\d+)", stdout)
    preview_match = re.search(r"Preview: (https?://\S+)", stdout)
    if theme_id_match:
        return ThemePushResult(
            success=True,
            theme_id=theme_id_match.group(1),
            preview_url=preview_match.group(1) if preview_match else None,
        )

    return ThemePushResult(success=False, error="Could not parse theme push output")


class ShopifyCLI:
    """Runs Shopify CLI theme commands against a development store."""

    def __init__(
        self,
        store: str,
        token: str,
        config: ShopifyConfig | None = None,
        runner: Runner = subprocess.run,
    ):
        """Initialize the wrapper.

        Args:
            store: Development store domain, e.g. my-store.myshopify.com
            token: Theme Access token passed as SHOPIFY_CLI_THEME_TOKEN
            config: Executable name and per-command timeouts
            runner: subprocess.run compatible callable, replaceable in tests
        """
        if not store or not token:
            raise ValueError("SHOPIFY_DEV_STORE and SHOPIFY_CLI_THEME_TOKEN must be set")
        self.store = store
        self.token = token
        self.config = config or ShopifyConfig()
        self.runner = runner

    def _run(self, args: list[str], timeout: int, with_token: bool = True) -> subprocess.CompletedProcess:
        env = dict(os.environ)
        if with_token:
            env["SHOPIFY_CLI_THEME_TOKEN"] = self.token
        cmd = [self.config.executable, *args]
        logger.debug("Running %s", " ".join(cmd))
        return self.runner(cmd, capture_output=True, text=True, timeout=timeout, env=env)

    def preview_url(self, theme_id: str) -> str:
        return f"https://{self.store}/?preview_theme_id={theme_id}"

    def push_theme(self, theme_path: Path | str, theme_name: str) -> ThemePushResult:
        """Push a theme directory as a new unpublished theme."""
        args = [
            "theme", "push",
            "--path", str(theme_path),
            "--unpublished",
            "--store", self.store,
            "--theme", theme_name,
            "--json",
        ]
        try:
            result = self._run(args, self.config.push_timeout)
        except subprocess.TimeoutExpired:
            return ThemePushResult(
                success=False, error=f"Theme push timed out after {self.config.push_timeout}s"
            )
        except FileNotFoundError:
            return ThemePushResult(success=False, error=f"{self.config.executable} not found")

        if result.returncode != 0:
            return ThemePushResult(
                success=False,
                error=(result.stderr or result.stdout).strip() or f"exit code {result.returncode}",
            )

        pushed = parse_push_output(result.stdout)
        if pushed.success and pushed.theme_id and not pushed.preview_url:
            pushed.preview_url = self.preview_url(pushed.theme_id)
        return pushed

    def delete_theme(self, theme_id: str) -> bool:
        args = ["theme", "delete", "--theme", theme_id, "--store", self.store, "--force"]
        try:
            result = self._run(args, self.config.delete_timeout)
        except (subprocess.TimeoutExpired, FileNotFoundError) as e:
            logger.warning("Failed to delete theme %s: %s", theme_id, e)
            return False

        if result.returncode != 0:
            logger.warning("Failed to delete theme %s: %s", theme_id, result.stderr.strip())
            return False
        return True

    def list_themes(self) -> list[ThemeInfo]:
        args = ["theme", "list", "--store", self.store, "--json"]
        try:
            result = self._run(args, self.config.list_timeout)
            themes = json.loads(result.stdout)
        except (subprocess.TimeoutExpired, FileNotFoundError, json.JSONDecodeError) as e:
            logger.warning("Could not list themes: %s", e)
            return []

        return [
            ThemeInfo(
                id=str(t["id"]),
                name=str(t.get("name", "")),
                role=str(t.get("role", "")),
                preview_url=self.preview_url(str(t["id"])),
            )
            for t in themes
        ]

    def run_theme_check(self, theme_path: Path | str) -> ThemeCheckResult:
        """Run Theme Check on a theme directory."""
        args = ["theme", "check", "--path", str(theme_path), "--output", "json"]
        try:
            result = self._run(args, self.config.check_timeout, with_token=False)
        except subprocess.TimeoutExpired:
            return ThemeCheckResult(
                passed=False,
                errors=[f"Theme check timed out after {self.config.check_timeout}s"],
            )
        except FileNotFoundError:
            return ThemeCheckResult(passed=False, errors=[f"{self.config.executable} not found"])

        if not result.stdout.strip() and result.returncode != 0:
            return ThemeCheckResult(
                passed=False, errors=[result.stderr.strip() or f"exit code {result.returncode}"]
            )
        return parse_theme_check_output(result.stdout)


class MockShopifyCLI:
    """In-memory stand-in for offline runs and tests."""

    def __init__(self, store: str = "mock-store.myshopify.com"):
        self.store = store
        self.pushed: dict[str, str] = {}
        self.deleted: list[str] = []
        self._push_count = 0
        self.check_result = ThemeCheckResult(passed=True)

    def preview_url(self, theme_id: str) -> str:
        return f"https://{self.store}/?preview_theme_id={theme_id}"

    def push_theme(self, theme_path: Path | str, theme_name: str) -> ThemePushResult:
        self._push_count += 1
        theme_id = str(100000 + self._push_count)
        self.pushed[theme_id] = theme_name
        return ThemePushResult(
            success=True,
            theme_id=theme_id,
            preview_url=self.preview_url(theme_id),
            editor_url=f"https://{self.store}/admin/themes/{theme_id}/editor",
        )

    def delete_theme(self, theme_id: str) -> bool:
        self.deleted.append(theme_id)
        return self.pushed.pop(theme_id, None) is not None

    def list_themes(self) -> list[ThemeInfo]:
        return [
            ThemeInfo(id=tid, name=name, role="unpublished", preview_url=self.preview_url(tid))
            for tid, name in self.pushed.items()
        ]

    def run_theme_check(self, theme_path: Path | str) -> ThemeCheckResult:
        return self.check_result


def get_shopify_cli(config: Config | None = None) -> ShopifyCLI | MockShopifyCLI:
    """Get the Shopify CLI wrapper for the configured provider.

    Raises:
        ValueError: If the provider name is not recognized.
    """
    if config is None:
        from ..config import load_config

        config = load_config()

    provider_name = config.shopify.provider.lower()

    if provider_name == "mock":
        return MockShopifyCLI()
    elif provider_name == "cli":
        return ShopifyCLI(
            store=os.environ.get("SHOPIFY_DEV_STORE", ""),
            token=os.environ.get("SHOPIFY_CLI_THEME_TOKEN", ""),
            config=config.shopify,
        )
    else:
        raise ValueError(f"Unknown Shopify provider: {provider_name}")
