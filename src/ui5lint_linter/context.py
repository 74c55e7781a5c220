"""
Linter context: run-wide configuration plus the append-only result collector.

One context exists per linter run and is passed explicitly to everything that
reports. Analyses of different files may write concurrently; the context lock
only guards result creation, each result guards its own counters.
"""

import logging
import threading
from typing import Dict, List, Optional

from .models import CoverageInfo, LintMessage, LintResult, Position, Severity
from .options import LinterOptions
from .registry import RuleRegistry
from .rules import PARSING_ERROR

logger = logging.getLogger(__name__)


class LinterContext:
    def __init__(self, options: Optional[LinterOptions] = None, registry: Optional[RuleRegistry] = None):
        self.options = options or LinterOptions()
        self.registry = registry or RuleRegistry()
        self._results: Dict[str, LintResult] = {}
        self._lock = threading.Lock()
        self._enabled_rule_ids = {
            rule.rule_id for rule in self.registry.get_enabled_rules(self.options.select, self.options.ignore)
        }

    def is_rule_enabled(self, rule_id: str) -> bool:
        return rule_id in self._enabled_rule_ids

    def enabled_rules(self):
        return [rule for rule in self.registry.get_all_rules() if rule.rule_id in self._enabled_rule_ids]

    def get_result(self, file_path: str) -> LintResult:
        """Result for ``file_path``, created on first use"""
        with self._lock:
            result = self._results.get(file_path)
            if result is None:
                result = LintResult(file_path=file_path)
                self._results[file_path] = result
            return result

    def report_message(
        self,
        file_path: str,
        rule_id: str,
        message: str,
        severity: Optional[Severity] = None,
        position: Optional[Position] = None,
        details: Optional[str] = None,
    ):
        """Append a finding to the file's result.

        ``severity`` defaults to the rule's severity. Findings of disabled rules
        are dropped. An unknown rule id or severity raises: both are caller bugs.
        """
        rule = self.registry.get(rule_id)
        if severity is None:
            severity = rule.severity
        if not isinstance(severity, Severity):
            raise ValueError(f"Unknown severity: {severity!r}")
        if not self.is_rule_enabled(rule_id):
            return

        self.get_result(file_path).add_message(
            LintMessage(
                rule_id=rule_id,
                severity=severity,
                message=message,
                line=position.line if position else None,
                column=position.column if position else None,
                message_details=details if self.options.include_message_details else None,
            )
        )

    def report_fatal(
        self,
        file_path: str,
        message: str,
        position: Optional[Position] = None,
        rule_id: str = PARSING_ERROR.rule_id,
    ):
        """Record a condition that stopped the analysis of ``file_path``"""
        self.registry.get(rule_id)
        logger.debug("Fatal %s in %s: %s", rule_id, file_path, message)
        self.get_result(file_path).add_message(
            LintMessage(
                rule_id=rule_id,
                severity=Severity.ERROR,
                message=message,
                fatal=True,
                line=position.line if position else None,
                column=position.column if position else None,
            )
        )

    def set_coverage(self, file_path: str, coverage: CoverageInfo):
        if self.options.report_coverage:
            self.get_result(file_path).coverage = coverage

    def get_results(self) -> List[LintResult]:
        """All results in creation order, unsorted. Call once every analysis finished."""
        with self._lock:
            return list(self._results.values())
