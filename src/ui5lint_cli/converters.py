from typing import Iterable

from ui5lint_linter import LintMessage, LintResult

from .models import FileReport, LintReport, ReportCoverage, ReportMessage, ReportSummary


def lint_message_to_report_message(message: LintMessage) -> ReportMessage:
    """Convert an internal dataclass message to an external Pydantic message"""
    return ReportMessage(
        rule_id=message.rule_id,
        severity=message.severity.name.lower(),  # IntEnum member name, e.g. 'ERROR'
        fatal=message.fatal,
        line=message.line,
        column=message.column,
        message=message.message,
        message_details=message.message_details,
    )


def lint_result_to_file_report(result: LintResult) -> FileReport:
    return FileReport(
        file_path=result.file_path,
        messages=[lint_message_to_report_message(m) for m in result.messages],
        error_count=result.error_count,
        warning_count=result.warning_count,
        fatal_error_count=result.fatal_error_count,
        coverage=ReportCoverage(**result.coverage.as_dict()) if result.coverage else None,
    )


def build_report(results: Iterable[LintResult]) -> LintReport:
    files = [lint_result_to_file_report(r) for r in results]
    return LintReport(
        results=files,
        summary=ReportSummary(
            files=len(files),
            errors=sum(f.error_count for f in files),
            warnings=sum(f.warning_count for f in files),
            fatal_errors=sum(f.fatal_error_count for f in files),
        ),
    )
