from typing import List, Literal, Optional

from pydantic import BaseModel


class ReportMessage(BaseModel):
    rule_id: str
    severity: Literal["warning", "error"]
    fatal: bool = False
    line: Optional[int] = None
    column: Optional[int] = None
    message: str
    message_details: Optional[str] = None


class ReportCoverage(BaseModel):
    typed: int
    unknown: int
    any: int
    ambiguous: int
    total: int
    ratio: float


class FileReport(BaseModel):
    file_path: str
    messages: List[ReportMessage]
    error_count: int
    warning_count: int
    fatal_error_count: int
    coverage: Optional[ReportCoverage] = None


class ReportSummary(BaseModel):
    files: int
    errors: int
    warnings: int
    fatal_errors: int


class LintReport(BaseModel):
    """External, serializable form of a linter run"""

    results: List[FileReport]
    summary: ReportSummary
