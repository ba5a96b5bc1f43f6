from dataclasses import FrozenInstanceError
from pathlib import Path

import pytest

from pi5setup.core import preflight
from pi5setup.core.preflight import (
    NetworkUnavailable,
    PlatformMismatch,
    PrivilegeViolation,
    read_platform_model,
    run_preflight,
)


@pytest.fixture
def as_user(monkeypatch):
    monkeypatch.setattr(preflight.os, "geteuid", lambda: 1000)


def test_root_is_rejected_before_anything_else(monkeypatch, config, fake_run):
    monkeypatch.setattr(preflight.os, "geteuid", lambda: 0)
    with pytest.raises(PrivilegeViolation, match="should not be run as root"):
        run_preflight(config, require_network=True)
    assert fake_run.calls == []


def test_platform_mismatch(as_user, config, tmp_path: Path):
    model = tmp_path / "model"
    model.write_text("Generic x86 PC\x00")
    config["platform"]["model_files"] = [str(model)]

    with pytest.raises(PlatformMismatch, match="Generic x86 PC"):
        run_preflight(config)


def test_no_model_file_is_a_mismatch(as_user, config, tmp_path: Path):
    config["platform"]["model_files"] = [str(tmp_path / "missing")]
    with pytest.raises(PlatformMismatch, match="unknown"):
        run_preflight(config)


def test_cpuinfo_model_line_is_used(tmp_path: Path):
    cpuinfo = tmp_path / "cpuinfo"
    cpuinfo.write_text("processor\t: 0\nModel\t\t: Raspberry Pi 5 Model B Rev 1.0\n")
    assert read_platform_model([str(tmp_path / "missing"), str(cpuinfo)]) == (
        "Raspberry Pi 5 Model B Rev 1.0"
    )


def test_context_is_built_without_network_check(as_user, config, fake_run):
    ctx = run_preflight(config, dry_run=True)

    assert ctx.uid == 1000
    assert ctx.platform == "Raspberry Pi 5 Model B Rev 1.0"
    assert ctx.network_reachable is None
    assert ctx.dry_run is True
    assert fake_run.calls == []
    with pytest.raises(FrozenInstanceError):
        ctx.dry_run = False  # type: ignore[misc]


def test_context_config_is_a_read_only_snapshot(as_user, config, fake_run):
    ctx = run_preflight(config)

    with pytest.raises(TypeError):
        ctx.config["privilege"]["use_sudo"] = True  # type: ignore[index]
    with pytest.raises(AttributeError):
        ctx.section("home_assistant")["sound_subdirs"].append("extra")

    config["privilege"]["use_sudo"] = True
    config["home_assistant"]["sound_subdirs"].append("extra")
    assert ctx.use_sudo is False
    assert "extra" not in ctx.section("home_assistant")["sound_subdirs"]


def test_network_required_and_unreachable(as_user, config, fake_run):
    fake_run.respond("ping", returncode=1)
    with pytest.raises(NetworkUnavailable, match="8.8.8.8"):
        run_preflight(config, require_network=True)
    assert fake_run.calls == [["ping", "-c", "1", "-W", "5", "8.8.8.8"]]


def test_network_required_and_reachable(as_user, config, fake_run):
    ctx = run_preflight(config, require_network=True)
    assert ctx.network_reachable is True
