"""
ui5lint linter - deprecated API detection and legacy module normalization for UI5 projects
"""

from .analyzer import SourceFileLinter
from .cancellation import CancelToken
from .context import LinterContext
from .document_linter import DocumentLinter, HtmlPageLinter, ManifestLinter, XmlViewLinter
from .engine import LinterEngine, discover_files
from .exceptions import AnalysisError, CatalogError, DocumentSyntaxError, SourceAccessError, Ui5LintError
from .models import CoverageInfo, LintMessage, LintResult, Position, Severity
from .normalizer import ModuleDescriptor, ModuleNormalizer, NormalizationResult
from .options import LinterOptions
from .registry import RuleRegistry
from .sorting import MessageOrder, finalize_results, sort_messages
from .source_map import SourceMap, Transformation, apply_transformations

__all__ = [
    "AnalysisError",
    "CancelToken",
    "CatalogError",
    "CoverageInfo",
    "DocumentLinter",
    "DocumentSyntaxError",
    "HtmlPageLinter",
    "LintMessage",
    "LintResult",
    "LinterContext",
    "LinterEngine",
    "LinterOptions",
    "ManifestLinter",
    "MessageOrder",
    "ModuleDescriptor",
    "ModuleNormalizer",
    "NormalizationResult",
    "Position",
    "RuleRegistry",
    "Severity",
    "SourceAccessError",
    "SourceFileLinter",
    "SourceMap",
    "Transformation",
    "Ui5LintError",
    "XmlViewLinter",
    "apply_transformations",
    "discover_files",
    "finalize_results",
    "sort_messages",
]
