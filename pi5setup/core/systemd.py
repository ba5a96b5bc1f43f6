# pi5setup/core/systemd.py

from pathlib import Path

from pi5setup.core.command import run_command
from pi5setup.core.configfile import ConfigFile
from pi5setup.core.logger import LoggerProxy
from pi5setup.core.step import StepFailure

log = LoggerProxy(__name__)


def _sudo(use_sudo: bool) -> list[str]:
    return ["sudo"] if use_sudo else []


def is_enabled(unit: str) -> bool:
    return run_command(["systemctl", "is-enabled", "--quiet", unit], check=False).success


def is_active(unit: str) -> bool:
    return run_command(["systemctl", "is-active", "--quiet", unit], check=False).success


def enable_unit(unit: str, use_sudo: bool = True) -> None:
    result = run_command(_sudo(use_sudo) + ["systemctl", "enable", unit])
    if not result.success:
        raise StepFailure(f"systemctl enable {unit} failed ({result.describe()})")
    log.info("Unit %s enabled.", unit)


def daemon_reload(use_sudo: bool = True) -> None:
    result = run_command(_sudo(use_sudo) + ["systemctl", "daemon-reload"])
    if not result.success:
        raise StepFailure(f"systemctl daemon-reload failed ({result.describe()})")


def unit_installed(unit_dir: Path, unit: str, content: str) -> bool:
    """Unit file matches ``content`` and the unit is enabled."""
    return ConfigFile(unit_dir / unit).matches(content) and is_enabled(unit)


def install_unit(unit_dir: Path, unit: str, content: str, use_sudo: bool = True) -> None:
    """
    Write the unit file, reload the manager and enable the unit.

    The reload runs even when the file was already current, so a reload that
    failed on an earlier run is retried. Reloading and enabling are both
    harmless to repeat.
    """
    unit_file = ConfigFile(unit_dir / unit, use_sudo=use_sudo)
    if unit_file.ensure_content(content):
        log.info("Unit file %s written.", unit_file.path)
    daemon_reload(use_sudo)
    enable_unit(unit, use_sudo)
