import threading
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, List, Optional


class Severity(IntEnum):
    """Ordered severity of a finding"""

    WARNING = 1
    ERROR = 2


@dataclass(frozen=True)
class Position:
    """1-based source position"""

    line: int
    column: int


@dataclass(frozen=True)
class LintMessage:
    """One finding. Immutable once created."""

    rule_id: str
    severity: Severity
    message: str
    fatal: bool = False
    line: Optional[int] = None  # None for file-level findings
    column: Optional[int] = None
    message_details: Optional[str] = None


@dataclass
class CoverageInfo:
    """How many type-bearing expressions of a file the resolver could classify"""

    typed: int = 0
    unknown: int = 0
    any: int = 0
    ambiguous: int = 0

    def record(self, category: str):
        setattr(self, category, getattr(self, category) + 1)

    @property
    def total(self) -> int:
        return self.typed + self.unknown + self.any + self.ambiguous

    @property
    def ratio(self) -> float:
        return self.typed / self.total if self.total else 1.0

    def as_dict(self) -> Dict[str, float]:
        return {
            "typed": self.typed,
            "unknown": self.unknown,
            "any": self.any,
            "ambiguous": self.ambiguous,
            "total": self.total,
            "ratio": round(self.ratio, 4),
        }


@dataclass
class LintResult:
    """All findings for one file.

    Counters are maintained as messages are added and are never recomputed.
    """

    file_path: str
    messages: List[LintMessage] = field(default_factory=list)
    error_count: int = 0
    warning_count: int = 0
    fatal_error_count: int = 0
    coverage: Optional[CoverageInfo] = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def add_message(self, message: LintMessage):
        if not isinstance(message.severity, Severity):
            raise ValueError(f"Unknown severity: {message.severity!r}")
        with self._lock:
            self.messages.append(message)
            if message.fatal:
                self.fatal_error_count += 1
            if message.severity is Severity.ERROR:
                self.error_count += 1
            else:
                self.warning_count += 1

    @property
    def has_fatal(self) -> bool:
        return self.fatal_error_count > 0
