"""Main CLI entry point for the Shopify theme builder.

Usage:
    python -m theme_builder.cli              # Start or resume a session
    theme-builder --version

Everything else is interactive. Configuration is read from the YAML file
named by THEME_BUILDER_CONFIG (or ./config.yaml), credentials from the
environment or a .env file:

    OPENROUTER_API_KEY        AI chat (provider: openrouter)
    REPLICATE_API_TOKEN       Product images (provider: replicate)
    SHOPIFY_CLI_THEME_TOKEN   Theme push / check (provider: cli)
    SHOPIFY_DEV_STORE         Dev store domain (provider: cli)

Exit codes: 0 success, 1 configuration error or phase failure, 130 interrupted.
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from rich.logging import RichHandler

from .. import __version__

CONFIG_ENV = "THEME_BUILDER_CONFIG"
LOG_LEVEL_ENV = "THEME_BUILDER_LOG_LEVEL"

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

logger = logging.getLogger(__name__)


def configure_logging(level: str = "WARNING") -> None:
    """Send diagnostics through rich, below the operator-facing output."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="theme-builder",
        description="Generate a Shopify theme with AI, approving every step.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"Configuration: ${CONFIG_ENV} (YAML path), ${LOG_LEVEL_ENV} (e.g. INFO).",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def cmd_run(controller) -> int:
    """Run the interactive session, translating failures into exit codes."""
    from ..controller import PhaseExecutionError

    display = controller.ctx.display
    try:
        asyncio.run(controller.start())
    except PhaseExecutionError as e:
        display.error(f"{e}: {e.__cause__}")
        display.info(f"Progress saved. Resume session {e.session_id} to retry.")
        return EXIT_FAILURE
    except KeyboardInterrupt:
        if controller.session is not None:
            controller.ctx.store.save(controller.session)
            display.warning(f"Interrupted. Progress saved to session {controller.session.id}.")
        else:
            display.warning("Interrupted.")
        return EXIT_INTERRUPTED

    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    build_parser().parse_args(argv)

    load_dotenv(Path.cwd() / ".env")
    configure_logging(os.environ.get(LOG_LEVEL_ENV, "WARNING"))

    from ..config import load_config, validate_environment
    from ..controller import SessionController, build_context

    config = load_config(os.environ.get(CONFIG_ENV))

    missing = validate_environment(config)
    if missing:
        print("Error: missing required configuration:", file=sys.stderr)
        for key in missing:
            print(f"  {key}", file=sys.stderr)
        print("Set them in the environment or a .env file.", file=sys.stderr)
        return EXIT_FAILURE

    controller = SessionController(build_context(config))
    return cmd_run(controller)


if __name__ == "__main__":
    sys.exit(main())
