import importlib
import json
from collections.abc import Callable
from pathlib import Path

import pytest

from pi5setup.core.command import CommandResult
from pi5setup.core.config import schema_defaults
from pi5setup.core.preflight import ExecutionContext

PI_MODEL = "Raspberry Pi 5 Model B Rev 1.0"

# Modules that import run_command by name
COMMAND_USERS = [
    "pi5setup.core.io",
    "pi5setup.core.preflight",
    "pi5setup.core.systemd",
    "pi5setup.core.diagnostics",
    "pi5setup.tasks.packages",
    "pi5setup.tasks.home_assistant",
    "pi5setup.tasks.zigbee_hat",
    "pi5setup.checks.audio",
    "pi5setup.checks.zigbee",
    "pi5setup.checks.system",
]


class FakeRunner:
    """Stand-in for run_command: records calls, answers by longest matching prefix."""

    def __init__(self):
        self.calls: list[list[str]] = []
        self.inputs: list[str | None] = []
        self._responses: dict[tuple[str, ...], tuple[int, str, str, Callable | None]] = {}

    def respond(self, *prefix: str, returncode=0, stdout="", stderr="", effect=None) -> None:
        self._responses[tuple(prefix)] = (returncode, stdout, stderr, effect)

    def __call__(self, cmd_list, dry_run=False, check=True, capture=True, input_text=None,
                 timeout=None, cwd=None, env=None, strip=True) -> CommandResult:
        cmd = list(cmd_list)
        self.calls.append(cmd)
        self.inputs.append(input_text)
        best: tuple[str, ...] | None = None
        for prefix in self._responses:
            if tuple(cmd[: len(prefix)]) == prefix and (best is None or len(prefix) > len(best)):
                best = prefix
        if best is None:
            return CommandResult(0, "", "", True)
        returncode, stdout, stderr, effect = self._responses[best]
        if effect is not None:
            effect(cmd)
        return CommandResult(returncode, stdout, stderr, returncode == 0)

    def ran(self, *prefix: str) -> bool:
        return any(tuple(c[: len(prefix)]) == prefix for c in self.calls)

    def count(self, *prefix: str) -> int:
        return sum(1 for c in self.calls if tuple(c[: len(prefix)]) == prefix)


class FakeSystemd:
    """Tracks enabled units and answers systemctl through a FakeRunner."""

    def __init__(self, runner: FakeRunner):
        self.enabled: set[str] = set()
        self.active: set[str] = set()
        self.runner = runner
        self._sync()
        runner.respond("systemctl", "enable", effect=self._enable)

    def _enable(self, cmd: list[str]) -> None:
        self.enabled.add(cmd[-1])
        self._sync()

    def _sync(self) -> None:
        for unit in ["pulseaudio.service", "home-assistant.service", "serial-getty@ttyAMA0.service", "ssh"]:
            self.runner.respond(
                "systemctl", "is-enabled", "--quiet", unit,
                returncode=0 if unit in self.enabled else 1,
            )
            self.runner.respond(
                "systemctl", "is-active", "--quiet", unit,
                returncode=0 if unit in self.active else 3,
            )


@pytest.fixture
def fake_run(monkeypatch) -> FakeRunner:
    runner = FakeRunner()
    for name in COMMAND_USERS:
        module = importlib.import_module(name)
        monkeypatch.setattr(module, "run_command", runner)
    return runner


@pytest.fixture
def fake_systemd(fake_run) -> FakeSystemd:
    return FakeSystemd(fake_run)


@pytest.fixture
def config(tmp_path: Path) -> dict:
    cfg = schema_defaults()
    root = tmp_path / "root"
    paths = {
        "boot_config": root / "boot" / "config.txt",
        "asound_conf": root / "etc" / "asound.conf",
        "pulse_daemon_conf": root / "etc" / "pulse" / "daemon.conf",
        "modprobe_dir": root / "etc" / "modprobe.d",
        "systemd_unit_dir": root / "etc" / "systemd" / "system",
        "proc_modules": root / "proc" / "modules",
        "dev_dir": root / "dev",
    }
    for key in ("boot_config", "pulse_daemon_conf", "proc_modules"):
        paths[key].parent.mkdir(parents=True, exist_ok=True)
    paths["dev_dir"].mkdir(parents=True)
    paths["boot_config"].write_text("# Pi boot config\ndtparam=audio=on\ncamera_auto_detect=1\n")

    model_file = root / "proc" / "device-tree" / "model"
    model_file.parent.mkdir(parents=True)
    model_file.write_text(PI_MODEL + "\x00")

    cfg["paths"] = {key: str(value) for key, value in paths.items()}
    cfg["platform"]["model_files"] = [str(model_file)]
    cfg["privilege"]["use_sudo"] = False
    cfg["script_behavior"]["log_to_file"] = False
    cfg["script_behavior"]["log_file_directory"] = str(tmp_path / "logs")
    cfg["home_assistant"]["home"] = str(root / "home" / "homeassistant")
    cfg["home_assistant"]["venv"] = str(root / "home" / "homeassistant" / "venv")
    cfg["home_assistant"]["config_dir"] = str(root / "home" / "homeassistant" / ".homeassistant")
    return cfg


@pytest.fixture
def make_ctx(config) -> Callable[..., ExecutionContext]:
    def _make(dry_run: bool = False) -> ExecutionContext:
        return ExecutionContext(
            user="pi", uid=1000, platform=PI_MODEL, dry_run=dry_run, config=config
        )

    return _make


@pytest.fixture
def ctx(make_ctx) -> ExecutionContext:
    return make_ctx()


@pytest.fixture
def config_file(tmp_path: Path, config: dict) -> Path:
    path = tmp_path / "config.json"
    path.write_text(json.dumps(config))
    return path
