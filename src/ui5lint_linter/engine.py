"""
Workspace orchestration: discovery, parsing, normalization and analysis of many files.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, List, Optional

from ui5lint_symbols import ApiCatalog, ScopeResolver, load_catalog
from ui5lint_tree_sitter import JSParser, ParseResult

from .analyzer import SourceFileLinter
from .cancellation import CancelToken
from .context import LinterContext
from .document_linter import document_linter_for
from .exceptions import SourceAccessError
from .manifest import MANIFEST_FILE_NAME
from .models import LintResult, Position
from .normalizer import ModuleNormalizer, NormalizationResult
from .options import LinterOptions
from .registry import RuleRegistry
from .rules import INTERNAL_ERROR, UNSUPPORTED_MODULE_DEFINITION
from .source_map import SourceMap

logger = logging.getLogger(__name__)

SOURCE_SUFFIXES = (".js", ".xml", ".html", ".htm")
EXCLUDED_DIRECTORIES = frozenset({"node_modules", "dist", ".git"})


def is_lintable(path: Path) -> bool:
    """Scripts, XML views and fragments, HTML pages and manifest.json descriptors"""
    return path.suffix.lower() in SOURCE_SUFFIXES or path.name == MANIFEST_FILE_NAME


def discover_files(paths: Iterable[Path]) -> List[Path]:
    """Expand directories into the lintable files below them, sorted and de-duplicated"""
    found = []
    seen = set()
    for path in paths:
        path = Path(path)
        if path.is_dir():
            candidates = sorted(
                p
                for p in path.rglob("*")
                if p.is_file()
                and is_lintable(p)
                and not EXCLUDED_DIRECTORIES.intersection(p.relative_to(path).parts[:-1])
            )
        else:
            candidates = [path]
        for candidate in candidates:
            key = candidate.resolve()
            if key not in seen:
                seen.add(key)
                found.append(candidate)
    return found


class LinterEngine:
    """Core engine for linting UI5 projects"""

    def __init__(
        self,
        options: Optional[LinterOptions] = None,
        catalog: Optional[ApiCatalog] = None,
        registry: Optional[RuleRegistry] = None,
    ):
        self.options = options or LinterOptions()
        self.catalog = catalog or load_catalog(Path(self.options.catalog_path) if self.options.catalog_path else None)
        self.registry = registry or RuleRegistry()
        self.normalizer = ModuleNormalizer()

    def create_context(self) -> LinterContext:
        return LinterContext(self.options, self.registry)

    def lint_files(self, paths: Iterable[Path]) -> List[LintResult]:
        """Lint files and directories with a bounded worker pool.

        Returns one result per discovered file, unsorted; sorting is done by
        the reporting layer.
        """
        files = discover_files(paths)
        context = self.create_context()
        logger.info("Linting %d file(s) with %d job(s)", len(files), self.options.jobs)

        with ThreadPoolExecutor(max_workers=self.options.jobs) as pool:
            list(pool.map(lambda f: self.lint_file(context, f), files))
        return context.get_results()

    def lint_file(self, context: LinterContext, file_path: Path):
        """Lint one file; never raises for problems confined to that file."""
        display_path = str(file_path)
        context.get_result(display_path)
        try:
            source = self._read(file_path)
        except SourceAccessError as e:
            logger.error("%s", e)
            context.report_fatal(display_path, f"{e.message}: {e.reason}", rule_id=INTERNAL_ERROR.rule_id)
            return

        token = CancelToken(self.options.file_timeout)
        try:
            self.lint_source(context, display_path, source, token)
        except Exception as e:
            logger.exception("Internal error while linting %s", display_path)
            context.report_fatal(display_path, f"Internal error: {e}", rule_id=INTERNAL_ERROR.rule_id)

    def lint_source(
        self,
        context: LinterContext,
        file_path: str,
        source: bytes,
        cancel_token: Optional[CancelToken] = None,
    ) -> bool:
        """Analyze one source text. Returns False if the file hit a fatal condition.

        XML views, HTML pages and manifest.json descriptors go to their document
        linter; everything else is parsed and normalized as JavaScript.
        """
        document_linter = document_linter_for(file_path)
        if document_linter is not None:
            return document_linter(context, file_path, source, self.catalog, cancel_token).lint()

        parser = JSParser()
        parse_result = parser.parse_bytes(source)
        problem = parse_result.first_error
        if problem is not None:
            logger.debug("Parse error in %s at %d:%d", file_path, problem.line, problem.column)
            context.report_fatal(file_path, problem.message, position=Position(problem.line, problem.column))
            return False

        normalized = self.normalizer.normalize(parse_result)
        for diagnostic in normalized.diagnostics:
            context.report_message(file_path, diagnostic.rule_id, diagnostic.message, position=diagnostic.position)

        tree, normalized = self._normalized_tree(parser, parse_result, normalized, context, file_path)
        resolver = ScopeResolver(tree.root, tree.source, self.catalog)
        linter = SourceFileLinter(
            context,
            file_path,
            tree,
            resolver,
            source_map=normalized.source_map,
            descriptor=normalized.descriptor,
            cancel_token=cancel_token,
        )
        return linter.lint()

    def _normalized_tree(
        self,
        parser: JSParser,
        original: ParseResult,
        normalized: NormalizationResult,
        context: LinterContext,
        file_path: str,
    ):
        if not normalized.modified:
            return original, normalized

        reparsed = normalized.parse_result or parser.parse_bytes(normalized.source)
        if not reparsed.errors:
            return reparsed, normalized

        # The rewrite produced invalid syntax; analyze the original form instead
        logger.warning("Normalized form of %s does not parse, analyzing original source", file_path)
        rule = UNSUPPORTED_MODULE_DEFINITION
        position = None
        if normalized.descriptor is not None:
            position = normalized.source_map.original_position(normalized.descriptor.factory.start_byte)
        context.report_message(
            file_path,
            rule.rule_id,
            rule.message_template.format(reason="the rewritten module is not valid JavaScript"),
            position=position,
        )
        fallback = NormalizationResult(source=original.source, source_map=SourceMap.identity(original.source))
        return original, fallback

    @staticmethod
    def _read(file_path: Path) -> bytes:
        try:
            with open(file_path, "rb") as f:
                return f.read()
        except OSError as e:
            raise SourceAccessError(file_path, e.strerror or str(e)) from e
