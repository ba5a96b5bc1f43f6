# pi5setup/tasks/packages.py

from collections.abc import Mapping
from typing import Any

from pi5setup.core.command import run_command
from pi5setup.core.logger import LoggerProxy
from pi5setup.core.preflight import ExecutionContext
from pi5setup.core.step import Step, StepFailure

log = LoggerProxy(__name__)

INSTALLED_STATUS = "install ok installed"

# Sections that may carry their own apt_packages list, in install order
PACKAGE_SECTIONS = ("home_assistant", "audio_hat", "zigbee_hat")


def required_packages(config: Mapping[str, Any]) -> list[str]:
    """
    Packages needed by every enabled section, first occurrence wins.

    A HAT brings its own tools, so disabling Home Assistant still installs
    PulseAudio for the audio HAT.
    """
    wanted: list[str] = []
    for name in PACKAGE_SECTIONS:
        section = config.get(name, {})
        if not section.get("enable", True):
            continue
        for pkg in section.get("apt_packages", []):
            if pkg not in wanted:
                wanted.append(pkg)
    return wanted


def _packages(ctx: ExecutionContext) -> list[str]:
    return required_packages(ctx.config)


def missing_packages(packages: list[str]) -> list[str]:
    """Packages dpkg does not report as fully installed."""
    if not packages:
        return []
    result = run_command(
        ["dpkg-query", "-W", "-f=${Package} ${Status}\\n", *packages], check=False
    )
    installed: set[str] = set()
    for line in result.stdout.splitlines():
        name, _, status = line.partition(" ")
        if status.strip() == INSTALLED_STATUS:
            # multiarch packages are reported as name:arch
            installed.add(name.split(":")[0])
    return [pkg for pkg in packages if pkg not in installed]


def packages_installed(ctx: ExecutionContext) -> bool:
    missing = missing_packages(_packages(ctx))
    if missing:
        log.info("Missing packages: %s", ", ".join(missing))
    return not missing


def install_packages(ctx: ExecutionContext) -> None:
    packages = missing_packages(_packages(ctx))
    sudo = ["sudo"] if ctx.use_sudo else []

    log.info("Updating package lists...")
    update = run_command(sudo + ["apt-get", "update"])
    if not update.success:
        raise StepFailure(f"apt-get update failed ({update.describe()})")

    log.info("Installing %d package(s): %s", len(packages), " ".join(packages))
    install = run_command(sudo + ["apt-get", "install", "-y", *packages])
    if not install.success:
        raise StepFailure(f"apt-get install failed ({install.describe()})")


SYSTEM_PACKAGES = Step(
    "system-packages",
    "Install system packages",
    packages_installed,
    install_packages,
    fetches_remote=True,
)
