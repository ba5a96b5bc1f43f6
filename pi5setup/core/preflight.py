"""
Preflight guard shared by the provisioning and verification workflows.

Nothing here mutates the host: the guard only reads identity, platform and
(optionally) network facts and freezes them into an ExecutionContext.
"""

from __future__ import annotations

import getpass
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

from pi5setup.core.command import run_command
from pi5setup.core.logger import LoggerProxy

log = LoggerProxy(__name__)


class GuardFailure(Exception):
    """A precondition for running any workflow is not met."""


class PrivilegeViolation(GuardFailure):
    pass


class PlatformMismatch(GuardFailure):
    pass


class NetworkUnavailable(GuardFailure):
    pass


def freeze(value: Any) -> Any:
    """Read-only deep copy: mappings become MappingProxyType, lists become tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(item) for item in value)
    return value


@dataclass(frozen=True)
class ExecutionContext:
    user: str
    uid: int
    platform: str
    network_reachable: bool | None = None
    dry_run: bool = False
    config: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self) -> None:
        # The context is shared by every step and check; nothing may edit its config.
        object.__setattr__(self, "config", freeze(self.config))

    @property
    def use_sudo(self) -> bool:
        return bool(self.config.get("privilege", {}).get("use_sudo", True))

    def section(self, name: str) -> Mapping[str, Any]:
        return self.config.get(name, {})

    def path(self, key: str) -> Path:
        return Path(self.config["paths"][key])


def read_platform_model(model_files: list[str]) -> str | None:
    """
    Return the board model string.

    The device-tree model file holds the string directly (NUL terminated);
    /proc/cpuinfo carries it on a ``Model`` line.
    """
    for name in model_files:
        path = Path(name)
        try:
            raw = path.read_text(encoding="utf-8", errors="ignore")
        except OSError:
            continue
        if path.name == "cpuinfo":
            for line in raw.splitlines():
                key, _, value = line.partition(":")
                if key.strip() == "Model" and value.strip():
                    return value.strip()
            continue
        model = raw.replace("\x00", "").strip()
        if model:
            return model
    return None


def _current_user(uid: int) -> str:
    try:
        return getpass.getuser()
    except (OSError, KeyError):
        return str(uid)


def reach_host(host: str, timeout: int) -> bool:
    """Single bounded ping; True when the host answered within ``timeout`` seconds."""
    result = run_command(
        ["ping", "-c", "1", "-W", str(timeout), host],
        check=False,
        timeout=timeout + 2,
    )
    return result.success


def run_preflight(
    config: dict[str, Any], require_network: bool = False, dry_run: bool = False
) -> ExecutionContext:
    """
    Check execution preconditions and build the ExecutionContext.

    Raises:
        PrivilegeViolation: running as root.
        PlatformMismatch: host model does not contain the required family.
        NetworkUnavailable: ``require_network`` and the host was unreachable.
    """
    platform_cfg = config.get("platform", {})

    uid = os.geteuid()
    if uid == 0:
        raise PrivilegeViolation(
            "This tool should not be run as root. Run it as a regular user; "
            "sudo is used only for the individual writes that need it."
        )

    family = platform_cfg.get("required_family", "Raspberry Pi")
    model = read_platform_model(
        platform_cfg.get("model_files", ["/proc/device-tree/model", "/proc/cpuinfo"])
    )
    if model is None or family not in model:
        raise PlatformMismatch(
            f"This tool must be run on a {family} (detected: {model or 'unknown'})"
        )
    log.info("Detected platform: %s", model)

    reachable: bool | None = None
    if require_network:
        host = platform_cfg.get("network_check_host", "8.8.8.8")
        reachable = reach_host(host, int(platform_cfg.get("network_check_timeout", 5)))
        if not reachable:
            raise NetworkUnavailable(
                f"No internet connection detected (ping {host} failed). "
                "Check the network connection and try again."
            )

    return ExecutionContext(
        user=_current_user(uid),
        uid=uid,
        platform=model,
        network_reachable=reachable,
        dry_run=dry_run,
        config=config,
    )
