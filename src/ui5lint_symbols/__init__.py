"""
ui5lint symbols - API catalog and semantic resolution for UI5 JavaScript sources
"""

from .catalog import ApiCatalog, default_catalog, load_catalog
from .exceptions import CatalogError, Ui5LintError
from .models import ApiDeclaration, DeprecatedSetting, ModuleEntry, Resolution, ResolutionStatus, ValueType
from .resolver import ScopeResolver, SemanticResolver

__all__ = [
    "ApiCatalog",
    "ApiDeclaration",
    "CatalogError",
    "DeprecatedSetting",
    "ModuleEntry",
    "Resolution",
    "ResolutionStatus",
    "ScopeResolver",
    "SemanticResolver",
    "Ui5LintError",
    "ValueType",
    "default_catalog",
    "load_catalog",
]
