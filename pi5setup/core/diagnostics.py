from __future__ import annotations

import datetime
import json
import platform
import shutil
from pathlib import Path
from typing import Any

from pi5setup.core.command import run_command
from pi5setup.core.configfile import ConfigFile
from pi5setup.core.io import atomic_write_text
from pi5setup.core.logger import LoggerProxy
from pi5setup.core.preflight import ExecutionContext

log = LoggerProxy(__name__)

DIAGNOSTICS_FILE = "diagnostics.json"


def _safe_run_command(cmd: list[str], description: str) -> str:
    """Executes a read-only command and returns its output or a summarized error."""
    log.debug("Running: %s: %s", description, " ".join(cmd))
    result = run_command(cmd, check=False)
    if result.success:
        return result.stdout.strip() or "No output"
    msg = f"Failed (RC={result.returncode})"
    if result.stderr:
        msg += f" Stderr: {result.stderr[:200]}"
    log.warning("%s failed: %s", description, msg)
    return msg


def collect_base_system_info(ctx: ExecutionContext) -> dict[str, Any]:
    """Collects basic OS and hardware diagnostics."""
    log.info("Collecting base system info...")
    total, _, free = shutil.disk_usage("/")
    uname = platform.uname()
    return {
        "model": ctx.platform,
        "kernel": uname.release,
        "machine": uname.machine,
        "hostname": uname.node,
        "user": ctx.user,
        "python_version": platform.python_version(),
        "disk_total_gb": f"{total // (2**30)} GB",
        "disk_free_gb": f"{free // (2**30)} GB",
        "uptime": _safe_run_command(["uptime"], "System Uptime"),
    }


def collect_hat_info(ctx: ExecutionContext) -> dict[str, Any]:
    """Boot config directives and peripheral state relevant to the HATs."""
    log.info("Collecting HAT diagnostics...")
    boot = ConfigFile(ctx.path("boot_config"), use_sudo=ctx.use_sudo)
    try:
        boot_lines: list[str] | str = [
            line for line in boot.active_lines() if line.startswith(("dtoverlay", "dtparam"))
        ]
    except OSError as e:
        boot_lines = f"unreadable: {e}"
    dev = ctx.path("dev_dir")
    return {
        "boot_config": str(boot.path),
        "boot_directives": boot_lines,
        "spi_devices": [str(p) for p in sorted(dev.glob("spidev*"))],
        "i2c_devices": [str(p) for p in sorted(dev.glob("i2c-*"))],
        "playback_cards": _safe_run_command(["aplay", "-l"], "ALSA playback devices"),
    }


def generate_diagnostic_report(
    failed_step: str | None, error_message: str | None, ctx: ExecutionContext
) -> dict[str, Any]:
    """Generates a diagnostic snapshot for a failed provisioning step."""
    log.info("Generating diagnostic report for: %s", failed_step)
    return {
        "failed_step": failed_step,
        "error_message": error_message,
        "timestamp": datetime.datetime.now().isoformat(),
        "dry_run": ctx.dry_run,
        "system_info": collect_base_system_info(ctx),
        "hat_info": collect_hat_info(ctx),
    }


def write_diagnostic_report(report: dict[str, Any], directory: Path) -> Path:
    path = directory / DIAGNOSTICS_FILE
    atomic_write_text(path, json.dumps(report, indent=2) + "\n")
    log.info("Diagnostic report written to %s", path)
    return path
