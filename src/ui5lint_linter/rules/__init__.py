from .api_rules import NO_DEPRECATED_API, NO_DEPRECATED_MODULE, NO_GLOBALS
from .base import Confidence, DetectionContext, Finding, ResolutionPolicy, RuleDefinition, Trigger
from .loading_rules import NO_SYNC_LOADING
from .markup_rules import NO_DEPRECATED_LIBRARY
from .module_rules import (
    FACTORY_PARAMETER_WITHOUT_DEPENDENCY,
    FATAL_RULE_IDS,
    INTERNAL_ERROR,
    PARSING_ERROR,
    UNSUPPORTED_MODULE_DEFINITION,
)

BUILTIN_RULES = (
    NO_DEPRECATED_API,
    NO_DEPRECATED_MODULE,
    NO_DEPRECATED_LIBRARY,
    NO_GLOBALS,
    NO_SYNC_LOADING,
    UNSUPPORTED_MODULE_DEFINITION,
    FACTORY_PARAMETER_WITHOUT_DEPENDENCY,
    PARSING_ERROR,
    INTERNAL_ERROR,
)

__all__ = [
    "BUILTIN_RULES",
    "Confidence",
    "DetectionContext",
    "FACTORY_PARAMETER_WITHOUT_DEPENDENCY",
    "FATAL_RULE_IDS",
    "Finding",
    "INTERNAL_ERROR",
    "NO_DEPRECATED_API",
    "NO_DEPRECATED_LIBRARY",
    "NO_DEPRECATED_MODULE",
    "NO_GLOBALS",
    "NO_SYNC_LOADING",
    "PARSING_ERROR",
    "ResolutionPolicy",
    "RuleDefinition",
    "Trigger",
    "UNSUPPORTED_MODULE_DEFINITION",
]
