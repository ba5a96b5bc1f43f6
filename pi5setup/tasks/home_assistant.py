"""
Home Assistant Core runtime
===========================

Installs Home Assistant Core into a virtualenv owned by a dedicated system
user, registers it as a systemd service and creates the directories the
tabletop sound boards are served from.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

from pi5setup.core import systemd
from pi5setup.core.command import run_command
from pi5setup.core.logger import LoggerProxy
from pi5setup.core.preflight import ExecutionContext
from pi5setup.core.step import Step, StepFailure

log = LoggerProxy(__name__)

HA_UNIT = "home-assistant.service"


def _ha_config(ctx: ExecutionContext) -> Mapping:
    return ctx.section("home_assistant")


def _root(ctx: ExecutionContext, cmd: list[str]) -> list[str]:
    return (["sudo"] if ctx.use_sudo else []) + cmd


def _as_service_user(ctx: ExecutionContext, cmd: list[str]) -> list[str]:
    if not ctx.use_sudo:
        return cmd
    return ["sudo", "-u", _ha_config(ctx)["user"], *cmd]


def _run_or_fail(cmd: list[str], what: str) -> None:
    result = run_command(cmd)
    if not result.success:
        raise StepFailure(f"{what} failed ({result.describe()})")


def path_owner(path: Path) -> str | None:
    """Name of the user owning *path*, or None when it is missing or unmapped."""
    try:
        return path.owner()
    except (KeyError, OSError):
        return None


# ── Service user ───────────────────────────────────────────────────────────
def _user_exists(user: str) -> bool:
    return run_command(["getent", "passwd", user], check=False).success


def service_user_ready(ctx: ExecutionContext) -> bool:
    """The account exists and owns its home directory."""
    cfg = _ha_config(ctx)
    user, home = cfg["user"], Path(cfg["home"])
    return _user_exists(user) and home.is_dir() and path_owner(home) == user


def create_service_user(ctx: ExecutionContext) -> None:
    cfg = _ha_config(ctx)
    user, home = cfg["user"], cfg["home"]
    if not _user_exists(user):
        _run_or_fail(
            _root(
                ctx,
                [
                    "adduser",
                    "--system",
                    "--group",
                    "--no-create-home",
                    "--gecos",
                    "Home Assistant",
                    user,
                ],
            ),
            f"creating user {user}",
        )
    _run_or_fail(_root(ctx, ["mkdir", "-p", home]), f"creating {home}")
    _run_or_fail(_root(ctx, ["chown", f"{user}:{user}", home]), f"chown {home}")


# ── Virtualenv + Home Assistant Core ───────────────────────────────────────
def _venv(ctx: ExecutionContext) -> Path:
    return Path(_ha_config(ctx)["venv"])


def core_installed(ctx: ExecutionContext) -> bool:
    return (_venv(ctx) / "bin" / "hass").is_file()


def install_core(ctx: ExecutionContext) -> None:
    venv = _venv(ctx)
    pip = str(venv / "bin" / "pip")
    log.info("Installing Home Assistant Core into %s - this takes a while.", venv)
    _run_or_fail(
        _as_service_user(ctx, ["python3", "-m", "venv", str(venv)]), "creating virtualenv"
    )
    _run_or_fail(_as_service_user(ctx, [pip, "install", "--upgrade", "pip"]), "upgrading pip")
    _run_or_fail(_as_service_user(ctx, [pip, "install", "wheel"]), "installing wheel")
    _run_or_fail(
        _as_service_user(ctx, [pip, "install", "homeassistant"]), "installing homeassistant"
    )


# ── systemd unit ───────────────────────────────────────────────────────────
def render_unit(cfg: Mapping) -> str:
    venv = cfg["venv"]
    return f"""\
[Unit]
Description=Home Assistant Core
After=network-online.target

[Service]
Type=simple
User={cfg["user"]}
WorkingDirectory={cfg["home"]}
Environment="PATH={venv}/bin:/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin"
ExecStart={venv}/bin/hass -c "{cfg["config_dir"]}"

[Install]
WantedBy=multi-user.target
"""


def service_enabled(ctx: ExecutionContext) -> bool:
    return systemd.unit_installed(
        ctx.path("systemd_unit_dir"), HA_UNIT, render_unit(_ha_config(ctx))
    )


def enable_service(ctx: ExecutionContext) -> None:
    systemd.install_unit(
        ctx.path("systemd_unit_dir"), HA_UNIT, render_unit(_ha_config(ctx)), ctx.use_sudo
    )


# ── Sound directories ──────────────────────────────────────────────────────
def sound_dirs(ctx: ExecutionContext) -> list[Path]:
    cfg = _ha_config(ctx)
    return [Path(cfg["config_dir"]) / sub for sub in cfg.get("sound_subdirs", [])]


def sound_dirs_ready(ctx: ExecutionContext) -> bool:
    dirs = sound_dirs(ctx)
    if not all(d.is_dir() for d in dirs):
        return False
    if not ctx.use_sudo:
        # Without sudo the directories belong to whoever created them
        return True
    user = _ha_config(ctx)["user"]
    return all(path_owner(d) == user for d in dirs)


def create_sound_dirs(ctx: ExecutionContext) -> None:
    cfg = _ha_config(ctx)
    dirs = [str(d) for d in sound_dirs(ctx)]
    _run_or_fail(_root(ctx, ["mkdir", "-p", *dirs]), "creating sound directories")
    if ctx.use_sudo:
        user = cfg["user"]
        _run_or_fail(
            _root(ctx, ["chown", "-R", f"{user}:{user}", cfg["config_dir"]]),
            f"chown {cfg['config_dir']}",
        )


HA_USER = Step(
    "ha-user", "Create Home Assistant service user", service_user_ready, create_service_user
)
HA_CORE = Step(
    "ha-core", "Install Home Assistant Core", core_installed, install_core, fetches_remote=True
)
HA_SERVICE = Step("ha-service", "Enable Home Assistant service", service_enabled, enable_service)
SOUND_DIRS = Step(
    "sound-dirs", "Create audio file directories", sound_dirs_ready, create_sound_dirs
)
