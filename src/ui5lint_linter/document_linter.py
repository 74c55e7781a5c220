"""
Linters for the non-JavaScript files of a project: XML views and fragments,
HTML bootstrap pages and manifest.json descriptors.

A document linter reads its file into markup elements or manifest entries,
classifies them into triggers and runs the enabled rules' detectors for those
triggers. Findings go to the same context as findings in JavaScript files.
"""

import logging
from pathlib import PurePath
from typing import Dict, Iterator, List, Optional, Tuple, Type

from ui5lint_symbols import ApiCatalog, ScopeResolver
from ui5lint_tree_sitter import JSParser

from .cancellation import CancelToken
from .context import LinterContext
from .exceptions import DocumentSyntaxError
from .manifest import MANIFEST_FILE_NAME, parse_manifest
from .markup import parse_embedded, parse_html, parse_xml
from .models import Position
from .rules import INTERNAL_ERROR, DetectionContext, RuleDefinition, Trigger
from .source_map import LineIndex, Segment, SourceMap

logger = logging.getLogger(__name__)

# Detection context and the map that locates its findings
Item = Tuple[Trigger, DetectionContext, SourceMap]


class DocumentLinter:
    """Base for linters of files that are not JavaScript modules"""

    kind = "document"

    def __init__(
        self,
        context: LinterContext,
        file_path: str,
        source: bytes,
        catalog: ApiCatalog,
        cancel_token: Optional[CancelToken] = None,
    ):
        self.context = context
        self.file_path = file_path
        self.source = source
        self.catalog = catalog
        self.cancel_token = cancel_token
        self.index = LineIndex(source)
        self.source_map = SourceMap(source, [Segment(0, len(source), 0, copied=True)], self.index)

        enabled = context.enabled_rules()
        self._rules: Dict[Trigger, List[RuleDefinition]] = {
            trigger: context.registry.rules_for(trigger, enabled) for trigger in Trigger
        }

    def read(self):
        raise NotImplementedError

    def items(self, document) -> Iterator[Item]:
        raise NotImplementedError

    def lint(self) -> bool:
        """Read and analyze the file. Returns False if it hit a fatal condition."""
        try:
            document = self.read()
        except DocumentSyntaxError as e:
            logger.debug("Invalid %s %s at %d:%d", self.kind, self.file_path, e.line, e.column)
            self.context.report_fatal(self.file_path, e.reason, position=Position(e.line, e.column))
            return False

        for trigger, detection, source_map in self.items(document):
            if self.cancel_token is not None and self.cancel_token.cancelled:
                logger.warning("Analysis of %s cancelled: %s", self.file_path, self.cancel_token.reason)
                self.context.report_fatal(
                    self.file_path,
                    f"Analysis cancelled: {self.cancel_token.reason}",
                    rule_id=INTERNAL_ERROR.rule_id,
                )
                return False
            for rule in self._rules[trigger]:
                self._run_rule(rule, trigger, detection, source_map)
        return True

    def _run_rule(self, rule: RuleDefinition, trigger: Trigger, detection: DetectionContext, source_map: SourceMap):
        for finding in rule.detector_for(trigger)(detection):
            severity = rule.severity_for(finding)
            if severity is None:
                logger.debug("%s: dropped uncertain finding of %s", self.file_path, rule.rule_id)
                continue
            self.context.report_message(
                self.file_path,
                rule.rule_id,
                rule.format_message(finding),
                severity=severity,
                position=source_map.locate_node(finding.node),
                details=rule.format_details(finding),
            )


class XmlViewLinter(DocumentLinter):
    """XML views and fragments: controls, their properties and the bindings in attribute values"""

    kind = "XML view"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.parser = JSParser()

    def read(self):
        return parse_xml(self.source)

    def items(self, document) -> Iterator[Item]:
        for element in document:
            yield (
                Trigger.MARKUP_ELEMENT,
                DetectionContext(node=element, source=self.source, catalog=self.catalog),
                self.source_map,
            )
            for attribute in element.attributes:
                embedded = parse_embedded(attribute, self.source, self.parser, self.index)
                if embedded is None:
                    continue
                tree = embedded.parse_result
                detection = DetectionContext(
                    node=embedded.expression,
                    source=tree.source,
                    resolver=ScopeResolver(tree.root, tree.source, self.catalog),
                    catalog=self.catalog,
                    attribute=attribute,
                )
                yield Trigger.BINDING_EXPRESSION, detection, embedded.source_map


class HtmlPageLinter(DocumentLinter):
    """HTML pages: the bootstrap script tag"""

    kind = "HTML page"

    def read(self):
        return parse_html(self.source)

    def items(self, document) -> Iterator[Item]:
        for element in document:
            yield (
                Trigger.MARKUP_ELEMENT,
                DetectionContext(node=element, source=self.source, catalog=self.catalog),
                self.source_map,
            )


class ManifestLinter(DocumentLinter):
    """manifest.json descriptors"""

    kind = "manifest"

    def read(self):
        return parse_manifest(self.source, JSParser())

    def items(self, document) -> Iterator[Item]:
        for entry in document:
            yield (
                Trigger.MANIFEST_ENTRY,
                DetectionContext(node=entry, source=self.source, catalog=self.catalog),
                self.source_map,
            )


_LINTERS_BY_SUFFIX: Dict[str, Type[DocumentLinter]] = {
    ".xml": XmlViewLinter,
    ".html": HtmlPageLinter,
    ".htm": HtmlPageLinter,
}


def document_linter_for(file_path: str) -> Optional[Type[DocumentLinter]]:
    """Linter class for a non-JavaScript file, None for JavaScript"""
    path = PurePath(file_path)
    if path.name == MANIFEST_FILE_NAME:
        return ManifestLinter
    return _LINTERS_BY_SUFFIX.get(path.suffix.lower())
