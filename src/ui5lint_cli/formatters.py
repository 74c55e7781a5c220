"""Report rendering. Results are expected to be finalized (sorted) already."""

import re
from typing import List, Optional

from ui5lint_linter import LintMessage, LintResult, Severity

from .converters import build_report

_WHITESPACE_RUN = re.compile(r"\s\s+|\n")


def _severity_label(message: LintMessage) -> str:
    if message.fatal:
        return "Fatal Error"
    if message.severity is Severity.WARNING:
        return "Warning"
    if message.severity is Severity.ERROR:
        return "Error"
    raise ValueError(f"Unknown severity: {message.severity!r}")


def _location(line: Optional[int], column: Optional[int]) -> str:
    return f"{line or 0}:{column or 0}"


def format_text(results: List[LintResult], show_details: bool = False) -> str:
    lines = []
    total_errors = total_warnings = total_fatal = 0
    for result in results:
        total_errors += result.error_count
        total_warnings += result.warning_count
        total_fatal += result.fatal_error_count
        for message in result.messages:
            label = _severity_label(message).upper().replace(" ", "_")
            location = _location(message.line, message.column)
            lines.append(f"{label}: {result.file_path}:{location} [{message.rule_id}] - {message.message}")
            if show_details and message.message_details:
                lines.append(f"    {_WHITESPACE_RUN.sub(' ', message.message_details)}")
        if result.coverage is not None:
            c = result.coverage
            lines.append(
                f"COVERAGE: {result.file_path} {c.ratio:.0%} typed "
                f"({c.typed} typed, {c.unknown} unknown, {c.any} any, {c.ambiguous} ambiguous)"
            )

    if lines:
        lines.append("")
    summary = f"Total issues found: {total_errors + total_warnings} ({total_errors} errors, {total_warnings} warnings)"
    if total_fatal:
        summary += f", {total_fatal} fatal"
    lines.append(summary)
    return "\n".join(lines)


def format_markdown(results: List[LintResult], show_details: bool = False) -> str:
    """Markdown report grouped by file, with a summary section.

    Files without errors or warnings are omitted.
    """
    output = "# UI5 Linter Report\n\n"
    total_errors = total_warnings = total_fatal = 0

    for result in sorted(results, key=lambda r: r.file_path):
        if not result.error_count and not result.warning_count:
            continue
        total_errors += result.error_count
        total_warnings += result.warning_count
        total_fatal += result.fatal_error_count

        output += f"#### {result.file_path}\n\n"
        if show_details:
            output += "| Severity | Line | Message | Details |\n"
            output += "|----------|------|---------|---------|\n"
        else:
            output += "| Severity | Line | Message |\n"
            output += "|----------|------|---------|\n"

        for message in result.messages:
            location = f"[{_location(message.line, message.column)}]"
            row = f"| {_severity_label(message)} | `{location}` | {message.message} |"
            if show_details:
                details = _WHITESPACE_RUN.sub(" ", message.message_details) if message.message_details else ""
                row += f" {details} |"
            output += row + "\n"
        output += "\n"

    output += "## Summary\n\n"
    output += f"  - Total problems: {total_errors + total_warnings}\n"
    output += f"  - Warnings: {total_warnings}\n"
    output += f"  - Errors: {total_errors}\n"
    if total_fatal:
        output += f"  - Fatal errors: {total_fatal}\n"

    if not show_details and (total_errors + total_warnings + total_fatal) > 0:
        output += "\n**Note:** Use `ui5lint lint --details` to show more information about the findings.\n"
    return output


def format_json(results: List[LintResult]) -> str:
    return build_report(results).model_dump_json(indent=2)
