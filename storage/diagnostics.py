"""Diagnostics routines for the storage subsystem."""

from __future__ import annotations

from pathlib import Path
import sqlite3

from diagnostics.models import DiagnosticResult, DiagnosticStatus


def probe(base_dir: Path | None = None) -> DiagnosticResult:
    """Check that the var/log directories are writable and SQLite opens.

    Args:
        base_dir: Optional base directory for offline testing.

    Returns:
        Diagnostic result indicating storage readiness.
    """

    name = "storage"
    test_db = None
    try:
        if base_dir is None:
            from config import ConfigController

            config = ConfigController.get_instance().get_config()
            var_dir = Path(config.get("var_dir", "./var/")).expanduser()
            log_dir = Path(config.get("log_dir", "./log/")).expanduser()
        else:
            var_dir = base_dir / "var"
            log_dir = base_dir / "log"

        var_dir.mkdir(parents=True, exist_ok=True)
        log_dir.mkdir(parents=True, exist_ok=True)

        sentinel = log_dir / "diagnostics_probe.txt"
        sentinel.write_text("ok", encoding="utf-8")
        sentinel.unlink(missing_ok=True)

        test_db = var_dir / "diagnostics_probe.db"
        with sqlite3.connect(test_db) as conn:
            conn.execute("CREATE TABLE IF NOT EXISTS probe (value INTEGER)")
            conn.execute("INSERT INTO probe (value) VALUES (1)")
        conn.close()

        details = f"Storage writable at {var_dir} (logs at {log_dir})"
        return DiagnosticResult(name=name, status=DiagnosticStatus.PASS, details=details)
    except OSError as exc:
        details = f"Filesystem access failed: {exc}"
        return DiagnosticResult(name=name, status=DiagnosticStatus.FAIL, details=details)
    except sqlite3.Error as exc:
        details = f"SQLite probe failed: {exc}"
        return DiagnosticResult(name=name, status=DiagnosticStatus.FAIL, details=details)
    finally:
        if test_db and test_db.exists():
            test_db.unlink(missing_ok=True)
