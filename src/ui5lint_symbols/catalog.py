"""
API catalog: the declarations (and their deprecation metadata) the resolver
maps syntax nodes to.

The bundled catalog lives in ``data/api_catalog.json``. Projects can point
``catalog_path`` at their own file with the same layout.
"""

import json
import logging
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ValidationError, model_validator

from .exceptions import CatalogError
from .models import ApiDeclaration, DeprecatedSetting, ModuleEntry, ValueType

logger = logging.getLogger(__name__)


class ApiCatalog(BaseModel):
    """Framework API declarations keyed by qualified name.

    Static members and namespaces use dots (``sap.ui.getCore``), instance
    members use ``#`` (``sap.ui.core.Core#byId``).
    """

    version: str = "0"
    globals: List[str] = []
    builtins: List[str] = []
    symbols: Dict[str, ApiDeclaration] = {}
    modules: Dict[str, ModuleEntry] = {}
    libraries: Dict[str, DeprecatedSetting] = {}  # deprecated libraries by name
    manifest: Dict[str, DeprecatedSetting] = {}  # deprecated descriptor settings by path, e.g. 'sap.ui5/resources/js'
    bootstrap: Dict[str, DeprecatedSetting] = {}  # deprecated bootstrap attributes, e.g. 'data-sap-ui-areas'

    @model_validator(mode="after")
    def _fill_names(self) -> "ApiCatalog":
        for name, declaration in self.symbols.items():
            declaration.name = name
        return self

    def lookup(self, name: str) -> Optional[ApiDeclaration]:
        return self.symbols.get(name)

    def lookup_member(self, value: ValueType, member: str) -> Optional[ApiDeclaration]:
        """Find ``member`` on a namespace/class (static) or on an instance of a class."""
        if not value.instance:
            return self.symbols.get(f"{value.path}.{member}")

        seen = set()
        class_name: Optional[str] = value.path
        while class_name and class_name not in seen:
            seen.add(class_name)
            declaration = self.symbols.get(f"{class_name}#{member}")
            if declaration is not None:
                return declaration
            parent = self.symbols.get(class_name)
            class_name = parent.extends if parent is not None else None
        return None

    def module_entry(self, specifier: str) -> Optional[ModuleEntry]:
        """Describe the default export of ``specifier``.

        Unlisted specifiers fall back to the naming convention
        'sap/m/Button' -> 'sap.m.Button'.
        """
        entry = self.modules.get(specifier)
        if entry is not None:
            return entry
        derived = specifier.replace("/", ".")
        if derived in self.symbols:
            return ModuleEntry(export=derived)
        return None

    def is_global(self, name: str) -> bool:
        return name in self.globals

    def is_builtin(self, name: str) -> bool:
        return name in self.builtins


def _parse_catalog(text: str, source: str) -> ApiCatalog:
    try:
        return ApiCatalog.model_validate(json.loads(text))
    except json.JSONDecodeError as e:
        raise CatalogError(source, f"line {e.lineno}: {e.msg}") from e
    except ValidationError as e:
        raise CatalogError(source, str(e)) from e


def load_catalog(path: Optional[Path] = None) -> ApiCatalog:
    """Load a catalog file, or the bundled one when no path is given."""
    if path is None:
        return default_catalog()

    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise CatalogError(str(path), e.strerror or str(e)) from e

    catalog = _parse_catalog(text, str(path))
    logger.debug("Loaded API catalog %s (%d symbols)", path, len(catalog.symbols))
    return catalog


@lru_cache(maxsize=1)
def default_catalog() -> ApiCatalog:
    text = resources.files("ui5lint_symbols").joinpath("data/api_catalog.json").read_text(encoding="utf-8")
    return _parse_catalog(text, "bundled api_catalog.json")
