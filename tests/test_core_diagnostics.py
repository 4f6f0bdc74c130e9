"""Tests for core diagnostics."""

from __future__ import annotations

from diagnostics.models import DiagnosticStatus
from core.diagnostics import probe
from core.logging import LOGGER_NAME


def test_core_probe() -> None:
    """Core probe should pass when rich logging is available."""

    result = probe()
    assert result.status is DiagnosticStatus.PASS
    assert f"logger={LOGGER_NAME}" in result.details
