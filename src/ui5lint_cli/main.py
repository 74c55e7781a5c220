import logging
from enum import Enum
from pathlib import Path
from typing import Optional

import typer
from ui5lint_linter import (
    LinterEngine,
    MessageOrder,
    ModuleNormalizer,
    RuleRegistry,
    Ui5LintError,
    finalize_results,
)
from ui5lint_tree_sitter import JSParser

from .config import LintConfig
from .formatters import format_json, format_markdown, format_text
from .logging_config import setup_logging

logger = logging.getLogger(__name__)

app = typer.Typer(help="UI5 Linter - Find deprecated framework APIs and legacy module definitions in UI5 projects")


class OutputFormat(str, Enum):
    TEXT = "text"
    MARKDOWN = "markdown"
    JSON = "json"


@app.command()
def lint(
    paths: list[Path] = typer.Argument(None, help="Files or directories to lint (default: current directory)"),
    details: bool = typer.Option(False, "--details", help="Show migration details for each finding"),
    coverage: bool = typer.Option(False, "--coverage", help="Report how much of each file could be typed"),
    output_format: OutputFormat = typer.Option(OutputFormat.TEXT, "--format", help="Report format"),
    config_file: Optional[Path] = typer.Option(None, "--config", help="Path to a TOML config file"),
    jobs: Optional[int] = typer.Option(None, "--jobs", help="Number of files analyzed in parallel"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Per-file analysis timeout in seconds"),
    message_order: Optional[MessageOrder] = typer.Option(None, "--message-order", help="Order of findings per file"),
    catalog: Optional[Path] = typer.Option(None, "--catalog", help="API catalog JSON to use instead of the bundled one"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log errors"),
):
    """Run the linter on UI5 scripts, XML views, HTML pages and manifest.json files"""
    setup_logging(verbose=verbose, quiet=quiet)

    try:
        config = LintConfig(config_file)
        options = config.to_options(
            include_message_details=True if details else None,
            report_coverage=True if coverage else None,
            jobs=jobs,
            file_timeout=timeout,
            message_order=message_order,
            catalog_path=str(catalog) if catalog else None,
        )
        engine = LinterEngine(options)
    except Ui5LintError as e:
        logger.debug("Configuration failed", exc_info=True)
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=2)

    results = finalize_results(engine.lint_files(paths or [Path(".")]), options.message_order)

    show_details = options.include_message_details
    if output_format is OutputFormat.JSON:
        typer.echo(format_json(results))
    elif output_format is OutputFormat.MARKDOWN:
        typer.echo(format_markdown(results, show_details))
    else:
        typer.echo(format_text(results, show_details))

    if any(r.error_count or r.fatal_error_count for r in results):
        raise typer.Exit(code=1)


@app.command()
def normalize(
    files: list[Path] = typer.Argument(..., help="Legacy module files to convert"),
    write: bool = typer.Option(False, "--write", help="Rewrite the files in place instead of printing"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Convert sap.ui.define/define modules into ES modules"""
    setup_logging(verbose=verbose)
    parser = JSParser()
    normalizer = ModuleNormalizer()
    failed = False

    for file_path in files:
        try:
            source = file_path.read_bytes()
        except OSError as e:
            typer.echo(f"Error: cannot read {file_path}: {e.strerror or e}", err=True)
            failed = True
            continue

        parse_result = parser.parse_bytes(source)
        problem = parse_result.first_error
        if problem is not None:
            typer.echo(f"{file_path}:{problem.line}:{problem.column}: {problem.message}", err=True)
            failed = True
            continue

        result = normalizer.normalize(parse_result)
        for diagnostic in result.diagnostics:
            location = f"{diagnostic.position.line}:{diagnostic.position.column}" if diagnostic.position else "0:0"
            typer.echo(f"{file_path}:{location}: {diagnostic.message}", err=True)
            failed = True

        if write:
            if result.modified:
                file_path.write_bytes(result.source)
                typer.echo(f"Normalized {file_path}")
        else:
            typer.echo(result.source.decode("utf-8", errors="replace"), nl=False)

    if failed:
        raise typer.Exit(code=1)


@app.command()
def rules():
    """List the available rules"""
    for rule in RuleRegistry().get_all_rules():
        typer.echo(f"{rule.rule_id:<40} {rule.severity.name.lower():<8} {rule.description}")


if __name__ == "__main__":
    app()
