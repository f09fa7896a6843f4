"""Diagnostics produced while gating a SQL submission.

Every decision the policy engine takes is reported as a Diagnostic. Errors
block the submission, warnings ride along with a confirmation request, and
info entries are purely descriptive. The whole set is returned to the caller
so agents learn why a statement was refused or held back.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from sqlgate.diagnostics.codes import DiagnosticCode


class Level(enum.IntEnum):
    INFO = 0
    WARNING = 1
    ERROR = 2


@dataclass
class Diagnostic:
    level: Level
    code: DiagnosticCode
    message: str
    notes: list[str] = field(default_factory=list)

    # -- Builder classmethods ---------------------------------------------------

    @classmethod
    def error(cls, code: DiagnosticCode, message: str) -> Diagnostic:
        return cls(level=Level.ERROR, code=code, message=message)

    @classmethod
    def warning(cls, code: DiagnosticCode, message: str) -> Diagnostic:
        return cls(level=Level.WARNING, code=code, message=message)

    @classmethod
    def info(cls, code: DiagnosticCode, message: str) -> Diagnostic:
        return cls(level=Level.INFO, code=code, message=message)

    # -- Builder chain methods --------------------------------------------------

    def note(self, note: str) -> Diagnostic:
        self.notes.append(note)
        return self

    # -- Query methods ----------------------------------------------------------

    @property
    def is_blocking(self) -> bool:
        return self.level == Level.ERROR


@dataclass
class DiagnosticResult:
    original_sql: str
    classification: str
    diagnostics: list[Diagnostic]
    blocked: bool
    statements: list[str] = field(default_factory=list)
    forbidden_keyword: str | None = None
    query_type: str | None = None
    tables: list[str] = field(default_factory=list)

    @property
    def needs_confirmation(self) -> bool:
        return not self.blocked and self.classification == "mutating"

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.level == Level.WARNING]

    @property
    def max_level(self) -> Level | None:
        if not self.diagnostics:
            return None
        return max(d.level for d in self.diagnostics)
