"""Base exceptions shared by all ui5lint packages."""

from typing import Dict, Optional


class Ui5LintError(Exception):
    """Base exception for all ui5lint errors."""

    def __init__(self, message: str, details: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class CatalogError(Ui5LintError):
    """Raised when an API catalog cannot be read or validated."""

    def __init__(self, source: str, reason: str):
        super().__init__(f"Invalid API catalog: {source}", details={"source": source, "reason": reason})
        self.source = source
        self.reason = reason
