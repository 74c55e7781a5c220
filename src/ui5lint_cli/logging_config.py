"""
Logging configuration for the ui5lint command line.

Log records go to stderr through a rich handler so that report output on
stdout stays machine readable.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

# Loggers of the packages that make up the linter
PACKAGE_LOGGERS = ("ui5lint_cli", "ui5lint_linter", "ui5lint_symbols", "ui5lint_tree_sitter")


def setup_logging(verbose: bool = False, quiet: bool = False) -> logging.Logger:
    """
    Configure logging with a rich handler.

    Args:
        verbose: Enable DEBUG level logging
        quiet: Suppress all but ERROR level logging

    Returns:
        The ui5lint_cli logger
    """
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.WARNING

    console = Console(stderr=True)
    handler = RichHandler(
        console=console,
        rich_tracebacks=True,
        tracebacks_show_locals=verbose,
        markup=False,
        show_time=verbose,
        show_path=verbose,
    )
    logging.basicConfig(level=level, format="%(message)s", datefmt="[%X]", handlers=[handler], force=True)

    for name in PACKAGE_LOGGERS:
        logging.getLogger(name).setLevel(level)
    return logging.getLogger("ui5lint_cli")
