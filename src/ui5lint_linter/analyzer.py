"""
Semantic walk over one file.

The analyzer visits every node of a parsed file once, depth-first, classifies
it into rule triggers and hands it to the detectors of the enabled rules. The
detectors ask the semantic resolver what a node denotes; the rule's resolution
policy decides what happens with findings the resolver could not confirm.
"""

import logging
from typing import Dict, List, Optional

from tree_sitter import Node
from ui5lint_symbols import SemanticResolver
from ui5lint_tree_sitter import JSPatterns, ParseResult

from .cancellation import CancelToken
from .context import LinterContext
from .models import CoverageInfo
from .normalizer import ModuleDescriptor
from .rules import FACTORY_PARAMETER_WITHOUT_DEPENDENCY, INTERNAL_ERROR, DetectionContext, RuleDefinition, Trigger
from .source_map import SourceMap

logger = logging.getLogger(__name__)

# Expressions that carry a value type and count towards coverage
COVERAGE_NODE_TYPES = frozenset({"identifier", "member_expression", "call_expression", "new_expression"})


class SourceFileLinter:
    """Lints one parsed (and possibly normalized) file into the context"""

    def __init__(
        self,
        context: LinterContext,
        file_path: str,
        parse_result: ParseResult,
        resolver: SemanticResolver,
        source_map: Optional[SourceMap] = None,
        descriptor: Optional[ModuleDescriptor] = None,
        cancel_token: Optional[CancelToken] = None,
    ):
        self.context = context
        self.file_path = file_path
        self.parse_result = parse_result
        self.source = parse_result.source
        self.resolver = resolver
        self.source_map = source_map or SourceMap.identity(parse_result.source)
        self.descriptor = descriptor
        self.cancel_token = cancel_token
        self.coverage = CoverageInfo()
        self.report_coverage = context.options.report_coverage

        enabled = context.enabled_rules()
        self._rules: Dict[Trigger, List[RuleDefinition]] = {
            trigger: context.registry.rules_for(trigger, enabled) for trigger in Trigger
        }

    def lint(self) -> bool:
        """Walk the file. Returns False when the walk was cancelled."""
        self._report_descriptor_findings()

        completed = True
        stack = [self.parse_result.root]
        while stack:
            if self.cancel_token is not None and self.cancel_token.cancelled:
                logger.warning("Analysis of %s cancelled: %s", self.file_path, self.cancel_token.reason)
                self.context.report_fatal(
                    self.file_path,
                    f"Analysis cancelled: {self.cancel_token.reason}",
                    rule_id=INTERNAL_ERROR.rule_id,
                )
                completed = False
                break
            node = stack.pop()
            self._visit(node)
            stack.extend(reversed(node.children))

        if self.report_coverage:
            self.context.set_coverage(self.file_path, self.coverage)
        return completed

    def _report_descriptor_findings(self):
        if self.descriptor is None:
            return
        rule = FACTORY_PARAMETER_WITHOUT_DEPENDENCY
        for param in self.descriptor.unbound_parameters:
            self.context.report_message(
                self.file_path,
                rule.rule_id,
                rule.message_template.format(name=param.name),
                position=param.position,
            )

    def _triggers(self, node: Node) -> List[Trigger]:
        node_type = node.type
        if node_type == "member_expression":
            return [Trigger.MEMBER_ACCESS]
        if node_type == "call_expression":
            if JSPatterns.is_module_definition_call(node, self.source) or JSPatterns.is_module_require_call(
                node, self.source
            ):
                return [Trigger.CALL, Trigger.MODULE_IMPORT]
            return [Trigger.CALL]
        if node_type == "new_expression":
            return [Trigger.NEW]
        if node_type == "import_statement":
            return [Trigger.MODULE_IMPORT]
        if node_type == "identifier" and JSPatterns.is_reference_identifier(node) and self.resolver.is_global(node):
            return [Trigger.GLOBAL_REFERENCE]
        return []

    def _visit(self, node: Node):
        if self.report_coverage and node.type in COVERAGE_NODE_TYPES:
            self._record_coverage(node)

        seen = set()
        for trigger in self._triggers(node):
            for rule in self._rules[trigger]:
                if rule.rule_id in seen:
                    continue
                seen.add(rule.rule_id)
                self._run_rule(rule, trigger, node)

    def _run_rule(self, rule: RuleDefinition, trigger: Trigger, node: Node):
        detection = DetectionContext(node=node, source=self.source, resolver=self.resolver)
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
                position=self.source_map.locate_node(finding.node),
                details=rule.format_details(finding),
            )

    def _record_coverage(self, node: Node):
        if node.type == "identifier" and not JSPatterns.is_reference_identifier(node):
            return
        resolution = self.resolver.resolve(node)
        self.coverage.record(resolution.status.value)
