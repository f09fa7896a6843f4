"""Stable, searchable error code registry.

Ranges:
- Q0001  General (malformed requests)
- Q02xx  Advisory safety checks
- Q03xx  Classification / access control
- Q07xx  Confirmation tokens
- Q08xx  Execution
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DiagnosticCode:
    value: int

    def __str__(self) -> str:
        return f"Q{self.value:04d}"


# General
INVALID_REQUEST = DiagnosticCode(1)

# Advisory safety checks (Q02xx)
DELETE_WITHOUT_WHERE = DiagnosticCode(201)
UPDATE_WITHOUT_WHERE = DiagnosticCode(203)

# Classification / access control (Q03xx)
FORBIDDEN_OPERATION = DiagnosticCode(301)
CONFIRMATION_REQUIRED = DiagnosticCode(302)

# Confirmation tokens (Q07xx)
TOKEN_INVALID = DiagnosticCode(701)

# Execution (Q08xx)
EXECUTION_FAILED = DiagnosticCode(801)
