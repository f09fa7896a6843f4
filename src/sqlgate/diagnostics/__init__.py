"""Diagnostic system: codes, types and rendering."""

from sqlgate.diagnostics.codes import DiagnosticCode
from sqlgate.diagnostics.types import Diagnostic, DiagnosticResult, Level

__all__ = [
    "Diagnostic",
    "DiagnosticCode",
    "DiagnosticResult",
    "Level",
]
