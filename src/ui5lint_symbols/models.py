from dataclasses import dataclass
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel

DeclarationKind = Literal["namespace", "class", "function", "method", "property", "enum"]


class ApiDeclaration(BaseModel):
    """A framework API symbol as described by the API catalog"""

    name: str = ""  # qualified name, filled in from the catalog key
    kind: DeclarationKind
    deprecated: Optional[str] = None  # deprecation text, None when not deprecated
    details: Optional[str] = None  # long-form migration guidance
    since: Optional[str] = None
    returns: Optional[str] = None  # class of the value returned by functions/methods
    type: Optional[str] = None  # class of a property value
    extends: Optional[str] = None
    sync: bool = False  # performs synchronous loading / blocking I/O

    @property
    def is_deprecated(self) -> bool:
        return self.deprecated is not None

    @property
    def is_callable(self) -> bool:
        return self.kind in ("function", "method")


class DeprecatedSetting(BaseModel):
    """A deprecated library, descriptor setting or bootstrap parameter"""

    deprecated: str
    details: Optional[str] = None


class ModuleEntry(BaseModel):
    """What a module specifier exports"""

    export: str
    instance: bool = False  # module exports a singleton instance of ``export``
    deprecated: Optional[str] = None
    details: Optional[str] = None


class ResolutionStatus(str, Enum):
    TYPED = "typed"
    UNKNOWN = "unknown"  # declarations are missing for the referenced symbol
    ANY = "any"  # untyped by design (parameters, unknown return values)
    AMBIGUOUS = "ambiguous"  # name bound to conflicting values


@dataclass(frozen=True)
class ValueType:
    """What an expression evaluates to"""

    path: str  # qualified API name, e.g. 'sap.ui.core.Core'
    instance: bool = False
    builtin: bool = False  # JavaScript builtin or literal
    local: bool = False  # declared in the analyzed file
    module: Optional[str] = None


@dataclass(frozen=True, eq=False)
class Resolution:
    """Answer of the semantic resolver for one syntax node"""

    status: ResolutionStatus
    declaration: Optional[ApiDeclaration] = None
    value: Optional[ValueType] = None
    reason: str = ""

    @property
    def is_typed(self) -> bool:
        return self.status is ResolutionStatus.TYPED

    def same_meaning(self, other: "Resolution") -> bool:
        """Two bindings agree when they lead to the same status and value"""
        return self.status is other.status and self.value == other.value


ANY = Resolution(ResolutionStatus.ANY)
