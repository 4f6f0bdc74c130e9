"""Command-line entry point for running diagnostics."""

from __future__ import annotations

import argparse
from pathlib import Path
import tempfile

from config.diagnostics import probe as config_probe
from core.diagnostics import probe as core_probe
from diagnostics.models import DiagnosticResult
from diagnostics.runner import Probe, format_results, has_failures, run_diagnostics
from hardware.diagnostics import HardwareProbeConfig, probe as hardware_probe
from storage.diagnostics import probe as storage_probe
from vision.diagnostics import probe as vision_probe


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""

    parser = argparse.ArgumentParser(description="Run diagnostics probes.")
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Run probes against a temporary offline directory.",
    )
    parser.add_argument(
        "--base-dir",
        type=Path,
        default=None,
        help="Optional base directory for offline diagnostics.",
    )
    parser.add_argument(
        "--model-path",
        type=str,
        default=None,
        help="Classifier model file to check for.",
    )
    parser.add_argument(
        "--require-all",
        action="store_true",
        help="Fail instead of warn when the camera or model backend is missing.",
    )
    return parser.parse_args(argv)


def build_probes(
    base_dir: Path | None,
    hardware_config: HardwareProbeConfig,
    available_modules: set[str] | None = None,
) -> list[Probe]:
    """Return the probe list for one diagnostics run."""

    def config_probe_with_base() -> DiagnosticResult:
        return config_probe(base_dir=base_dir)

    def hardware_probe_with_config() -> DiagnosticResult:
        return hardware_probe(config=hardware_config, available_modules=available_modules)

    def storage_probe_with_base() -> DiagnosticResult:
        return storage_probe(base_dir=base_dir)

    return [
        config_probe_with_base,
        core_probe,
        vision_probe,
        hardware_probe_with_config,
        storage_probe_with_base,
    ]


def main(argv: list[str] | None = None) -> int:
    """Run diagnostics and return an exit code."""

    args = parse_args(argv)
    hardware_config = HardwareProbeConfig(require_all=args.require_all, model_path=args.model_path)

    if args.offline and args.base_dir is None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            tmp_base = Path(tmp_dir)
            config_dir = tmp_base / "config"
            config_dir.mkdir(parents=True, exist_ok=True)
            (config_dir / "default.yaml").write_text("{}", encoding="utf-8")

            results = run_diagnostics(
                build_probes(
                    tmp_base,
                    HardwareProbeConfig(require_all=False),
                    available_modules={"numpy", "PIL"},
                )
            )
    else:
        results = run_diagnostics(build_probes(args.base_dir, hardware_config))

    print(format_results(results))
    return 1 if has_failures(results) else 0


if __name__ == "__main__":
    raise SystemExit(main())
