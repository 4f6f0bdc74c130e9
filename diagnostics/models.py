"""Models for diagnostics results."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class DiagnosticStatus(str, Enum):
    """Status for diagnostics checks."""

    PASS = "PASS"
    WARN = "WARN"
    FAIL = "FAIL"


@dataclass(frozen=True)
class DiagnosticResult:
    """Outcome of one subsystem probe."""

    name: str
    status: DiagnosticStatus
    details: str

    @property
    def ok(self) -> bool:
        return self.status is not DiagnosticStatus.FAIL
