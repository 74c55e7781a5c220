"""Findings produced around legacy module definitions and whole-file conditions.

These rules have no detector: the normalizer and the engine report them
directly through the context, the registry only supplies ids and severities.
"""

from ..models import Severity
from .base import RuleDefinition, Trigger

UNSUPPORTED_MODULE_DEFINITION = RuleDefinition(
    rule_id="unsupported-module-definition",
    name="Module definition not normalized",
    severity=Severity.WARNING,
    message_template="Automatic normalization of the module definition was skipped: {reason}",
    triggers=frozenset({Trigger.MODULE_DEFINITION}),
    details_template=(
        "Only a single top-level sap.ui.define/define call with a literal dependency array "
        "and a function or object literal factory can be converted. The file is analyzed in its original form."
    ),
    description="Reports legacy module definitions the normalizer cannot rewrite losslessly.",
)

FACTORY_PARAMETER_WITHOUT_DEPENDENCY = RuleDefinition(
    rule_id="factory-parameter-without-dependency",
    name="Factory parameter without dependency",
    severity=Severity.WARNING,
    message_template="Factory parameter '{name}' has no corresponding dependency and is always undefined",
    triggers=frozenset({Trigger.MODULE_DEFINITION}),
    description="Reports module factory parameters beyond the number of declared dependencies.",
)

PARSING_ERROR = RuleDefinition(
    rule_id="parsing-error",
    name="Parsing error",
    severity=Severity.ERROR,
    message_template="{reason}",
    triggers=frozenset({Trigger.FILE}),
    description="The file could not be parsed. Analysis of the file stops.",
)

INTERNAL_ERROR = RuleDefinition(
    rule_id="internal-error",
    name="Internal error",
    severity=Severity.ERROR,
    message_template="{reason}",
    triggers=frozenset({Trigger.FILE}),
    description="Analysis of the file was aborted or cancelled; its results may be incomplete.",
)

# Always enabled, select/ignore does not apply to them
FATAL_RULE_IDS = frozenset({PARSING_ERROR.rule_id, INTERNAL_ERROR.rule_id})
