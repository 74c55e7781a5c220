"""Linter exceptions: source access and analysis failures."""

from pathlib import Path

from ui5lint_symbols.exceptions import CatalogError, Ui5LintError

__all__ = ["AnalysisError", "CatalogError", "DocumentSyntaxError", "SourceAccessError", "Ui5LintError"]


class AnalysisError(Ui5LintError):
    """Base class for analysis-related errors."""

    pass


class SourceAccessError(AnalysisError):
    """Raised when a source file cannot be read."""

    def __init__(self, filepath: Path, reason: str):
        super().__init__(
            f"Cannot read file: {filepath}",
            details={"filepath": str(filepath), "reason": reason},
        )
        self.filepath = filepath
        self.reason = reason


class DocumentSyntaxError(AnalysisError):
    """Raised when an XML view, HTML page or manifest is not well-formed."""

    def __init__(self, reason: str, line: int, column: int):
        super().__init__(reason, details={"line": str(line), "column": str(column)})
        self.reason = reason
        self.line = line
        self.column = column
