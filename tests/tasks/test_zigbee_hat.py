import pytest

from pi5setup.checks.hardware import spi_devices
from pi5setup.checks.system import radio_module_params
from pi5setup.core.check import CheckStatus
from pi5setup.core.executor import run_steps
from pi5setup.core.step import StepFailure, StepStatus
from pi5setup.tasks import zigbee_hat


def test_interface_query_parses_raspi_config(ctx, fake_run):
    fake_run.respond("raspi-config", "nonint", "get_spi", stdout="0")
    fake_run.respond("raspi-config", "nonint", "get_i2c", stdout="1")

    assert zigbee_hat.interface_enabled(ctx, "spi")
    assert not zigbee_hat.interface_enabled(ctx, "i2c")


def test_raspi_config_runs_under_sudo_when_configured(config, make_ctx, fake_run):
    config["privilege"]["use_sudo"] = True
    ctx = make_ctx()
    zigbee_hat.enable_interface(ctx, "spi")
    assert fake_run.calls == [["sudo", "raspi-config", "nonint", "do_spi", "0"]]


def test_enable_spi_then_devices_check(ctx, fake_run):
    dev = ctx.path("dev_dir")
    outcome = spi_devices(ctx)
    assert outcome.status is CheckStatus.FAIL
    assert "no interface device found" in outcome.detail

    def _kernel_creates_nodes(cmd):
        (dev / "spidev0.0").touch()
        (dev / "spidev0.1").touch()
        fake_run.respond("raspi-config", "nonint", "get_spi", stdout="0")

    fake_run.respond("raspi-config", "nonint", "get_spi", stdout="1")
    fake_run.respond("raspi-config", "nonint", "do_spi", effect=_kernel_creates_nodes)

    run = run_steps([zigbee_hat.ENABLE_SPI], ctx)
    assert run.results[0].status is StepStatus.APPLIED

    outcome = spi_devices(ctx)
    assert outcome.status is CheckStatus.PASS
    assert "spidev0.0" in outcome.detail and "spidev0.1" in outcome.detail

    again = run_steps([zigbee_hat.ENABLE_SPI], ctx)
    assert again.results[0].status is StepStatus.ALREADY_SATISFIED
    assert fake_run.count("raspi-config", "nonint", "do_spi") == 1


def test_enable_interface_failure_is_step_failure(ctx, fake_run):
    fake_run.respond("raspi-config", "nonint", "do_i2c", returncode=1, stderr="not supported")
    with pytest.raises(StepFailure, match="do_i2c failed"):
        zigbee_hat.enable_interface(ctx, "i2c")


def test_module_params_written_once(ctx):
    assert radio_module_params(ctx).status is CheckStatus.WARN

    zigbee_hat.write_module_params(ctx)
    path = ctx.path("modprobe_dir") / "raspbee2.conf"
    assert path.read_text() == "# RaspBee II configuration\noptions spidev bufsiz=4096\n"
    assert zigbee_hat.module_params_written(ctx)

    outcome = radio_module_params(ctx)
    assert outcome.status is CheckStatus.PASS
    assert "options spidev bufsiz=4096" in outcome.detail


def test_uart_getty(ctx, fake_systemd):
    assert not zigbee_hat.uart_getty_enabled(ctx)
    zigbee_hat.enable_uart_getty(ctx)
    assert zigbee_hat.UART_GETTY_UNIT in fake_systemd.enabled
    assert zigbee_hat.uart_getty_enabled(ctx)
