from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, Mapping, Optional

from ui5lint_symbols import ApiCatalog
from ui5lint_symbols.resolver import SemanticResolver

from ..markup import MarkupAttribute
from ..models import Severity


class Trigger(str, Enum):
    """Node shapes a rule listens on"""

    MEMBER_ACCESS = "member-access"
    CALL = "call"
    NEW = "new"
    GLOBAL_REFERENCE = "global-reference"
    MODULE_IMPORT = "module-import"
    MODULE_DEFINITION = "module-definition"  # reported from the normalizer's descriptor
    FILE = "file"  # file-level conditions (parse failure, internal errors)
    MARKUP_ELEMENT = "markup-element"  # element of an XML view, fragment or HTML page
    BINDING_EXPRESSION = "binding-expression"  # object literal or expression embedded in a markup attribute
    MANIFEST_ENTRY = "manifest-entry"  # property of a manifest.json descriptor


class ResolutionPolicy(str, Enum):
    """What a rule does with findings the resolver could not confirm"""

    REQUIRE_CERTAINTY = "require-certainty"  # drop them
    REPORT_UNCERTAIN = "report-uncertain"  # report them at the rule's uncertain severity


class Confidence(Enum):
    CERTAIN = "certain"
    UNCERTAIN = "uncertain"


@dataclass(frozen=True)
class Finding:
    """Candidate violation produced by a detector, before policy and severity are applied"""

    node: Any  # anchor for the reported position: a syntax node or a markup node with a start_byte
    params: Dict[str, str] = field(default_factory=dict)
    confidence: Confidence = Confidence.CERTAIN
    message: Optional[str] = None  # built from declaration metadata, overrides the template
    details: Optional[str] = None


@dataclass(frozen=True)
class DetectionContext:
    node: Any
    source: bytes
    resolver: Optional[SemanticResolver] = None  # absent for markup elements and manifest entries
    catalog: Optional[ApiCatalog] = None
    attribute: Optional[MarkupAttribute] = None  # markup attribute an embedded expression was read from


Detector = Callable[[DetectionContext], Iterable[Finding]]


@dataclass(frozen=True)
class RuleDefinition:
    """A rule as plain data: what triggers it, how it treats uncertainty, how it reports."""

    rule_id: str
    name: str
    severity: Severity
    message_template: str
    triggers: FrozenSet[Trigger] = frozenset()
    policy: ResolutionPolicy = ResolutionPolicy.REQUIRE_CERTAINTY
    uncertain_severity: Severity = Severity.WARNING
    details_template: Optional[str] = None
    description: str = ""
    detector: Optional[Detector] = field(default=None, compare=False, repr=False)
    # Detectors for triggers that need a different one than ``detector``
    detectors: Mapping[Trigger, Detector] = field(default_factory=dict, compare=False, repr=False)

    def detector_for(self, trigger: Trigger) -> Optional[Detector]:
        return self.detectors.get(trigger, self.detector)

    def severity_for(self, finding: Finding) -> Optional[Severity]:
        """Severity to report ``finding`` with, or None when the policy drops it"""
        if finding.confidence is Confidence.CERTAIN:
            return self.severity
        if self.policy is ResolutionPolicy.REPORT_UNCERTAIN:
            return self.uncertain_severity
        return None

    def format_message(self, finding: Finding) -> str:
        if finding.message:
            return finding.message
        return self.message_template.format(**finding.params)

    def format_details(self, finding: Finding) -> Optional[str]:
        if finding.details:
            return finding.details
        if self.details_template:
            return self.details_template.format(**finding.params)
        return None
