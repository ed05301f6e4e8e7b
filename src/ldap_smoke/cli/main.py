"""
ldap-smoke - Main Entry Point

Command line front end of the smoke tester. It resolves the container
runtime once, then either streams the fixed test sequence or runs a single
interactive search.

Usage:
    ldap-smoke test [--strict] [--no-color]
    ldap-smoke search [--no-color]
    python -m ldap_smoke test

``test`` exits 0 even when checks fail, so it can sit at the end of a
setup script; ``--strict`` turns failures into exit status 1.
"""

import argparse
import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import List, Optional

from .. import __version__
from ..client import LdapSearchClient
from ..config import Config
from ..fixtures import FixtureLoadError, FixtureValidationError, load_expectations
from ..probes import full_suite
from ..report import Presenter
from ..runtime import ExecutionContext, RuntimeLocator
from .interactive import run_interactive_search

logger = logging.getLogger(__name__)

COMMANDS = ("test", "search")

EXIT_INTERRUPTED = 130


def setup_logging(config: Config) -> logging.Logger:
    """
    Set up console and file logging.

    Console output goes to stderr so it never mixes with the report on
    stdout. The file handler is skipped, with a warning, when the log
    directory cannot be written.

    Returns:
        Logger instance for the main module
    """
    log_level = getattr(logging, config.log_level, logging.WARNING)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    root_logger.addHandler(console_handler)

    if config.file_logging:
        log_file = os.path.join(config.log_dir, "ldap-smoke.log")
        try:
            Path(config.log_dir).mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                log_file, maxBytes=10 * 1024 * 1024, backupCount=5  # 10MB
            )
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
                )
            )
            root_logger.addHandler(file_handler)
        except OSError as e:
            logger.warning("Could not set up file logging: %s", e)
    else:
        root_logger.setLevel(log_level)

    return logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ldap-smoke",
        description="Smoke tests for a containerized OpenLDAP directory",
    )
    parser.add_argument("command", nargs="?", help="test or search")
    parser.add_argument(
        "--strict",
        action="store_true",
        help="exit with status 1 if any check failed (test only)",
    )
    parser.add_argument(
        "--no-color", action="store_true", help="disable colored output"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def run_tests(
    ctx: ExecutionContext,
    client: LdapSearchClient,
    presenter: Presenter,
    config: Config,
    strict: bool = False,
) -> int:
    """Stream the full sequence; the exit status only reflects results with ``strict``."""
    try:
        expectations = load_expectations(config.fixtures_file)
    except (FixtureLoadError, FixtureValidationError) as e:
        logger.error("%s", e)
        presenter.error(str(e))
        return 1

    summary = presenter.present(full_suite(ctx, client, expectations))

    if strict and summary.has_failures:
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Parse arguments and dispatch to the requested command.

    Returns:
        Process exit status
    """
    args, extra = build_parser().parse_known_args(argv)

    try:
        config = Config()
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    presenter = Presenter(color=None if config.color and not args.no_color else False)

    if args.command not in COMMANDS or extra:
        presenter.usage()
        return 1

    setup_logging(config)

    errors = config.validate()
    if errors:
        for error in errors:
            logger.error("Configuration error: %s", error)
            presenter.error(error)
        return 1

    logger.info("Starting ldap-smoke v%s (%s)", __version__, args.command)
    logger.debug("Configuration: %s", config.get_startup_summary())

    try:
        ctx = RuntimeLocator(timeout_seconds=config.runtime_timeout).resolve_or_unavailable()
        client = LdapSearchClient(max_output_size=config.max_output_size)

        if args.command == "test":
            return run_tests(ctx, client, presenter, config, strict=args.strict)
        return run_interactive_search(ctx, client, presenter)

    except KeyboardInterrupt:
        logger.info("Interrupted")
        return EXIT_INTERRUPTED


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
