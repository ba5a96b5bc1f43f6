"""
RaspBee II Zigbee HAT enablement
================================

The radio talks to the Pi over SPI (I2C for the optional RTC), so the bus
interfaces are switched on through ``raspi-config`` before anything that
needs firmware access. ``spidev`` gets a larger transfer buffer and the
UART getty is enabled for firmware updates.
"""

from __future__ import annotations

from collections.abc import Mapping

from pi5setup.core import systemd
from pi5setup.core.command import run_command
from pi5setup.core.configfile import ConfigFile
from pi5setup.core.logger import LoggerProxy
from pi5setup.core.preflight import ExecutionContext
from pi5setup.core.step import Step, StepFailure

log = LoggerProxy(__name__)

RASPI_CONFIG = "raspi-config"
UART_GETTY_UNIT = "serial-getty@ttyAMA0.service"


def _zigbee_config(ctx: ExecutionContext) -> Mapping:
    return ctx.section("zigbee_hat")


def _raspi_config(ctx: ExecutionContext, *args: str) -> list[str]:
    # raspi-config refuses to run unprivileged, even for the get_* queries
    prefix = ["sudo"] if ctx.use_sudo else []
    return prefix + [RASPI_CONFIG, "nonint", *args]


def interface_enabled(ctx: ExecutionContext, interface: str) -> bool:
    """raspi-config prints 0 for an enabled interface and 1 for a disabled one."""
    result = run_command(_raspi_config(ctx, f"get_{interface}"), check=False)
    return result.success and result.stdout.strip() == "0"


def enable_interface(ctx: ExecutionContext, interface: str) -> None:
    result = run_command(_raspi_config(ctx, f"do_{interface}", "0"))
    if not result.success:
        raise StepFailure(f"{RASPI_CONFIG} do_{interface} failed ({result.describe()})")
    log.info("%s interface enabled.", interface.upper())


def render_module_params(options: str) -> str:
    return f"# RaspBee II configuration\n{options.strip()}\n"


def _params_file(ctx: ExecutionContext) -> ConfigFile:
    cfg = _zigbee_config(ctx)
    return ConfigFile(
        ctx.path("modprobe_dir") / cfg.get("params_file", "raspbee2.conf"),
        use_sudo=ctx.use_sudo,
    )


def _expected_params(ctx: ExecutionContext) -> str:
    return render_module_params(
        _zigbee_config(ctx).get("module_options", "options spidev bufsiz=4096")
    )


def module_params_written(ctx: ExecutionContext) -> bool:
    return _params_file(ctx).matches(_expected_params(ctx))


def write_module_params(ctx: ExecutionContext) -> None:
    _params_file(ctx).ensure_content(_expected_params(ctx))


def uart_getty_enabled(ctx: ExecutionContext) -> bool:
    return systemd.is_enabled(UART_GETTY_UNIT)


def enable_uart_getty(ctx: ExecutionContext) -> None:
    systemd.enable_unit(UART_GETTY_UNIT, ctx.use_sudo)


ENABLE_SPI = Step(
    "enable-spi",
    "Enable SPI bus interface",
    lambda ctx: interface_enabled(ctx, "spi"),
    lambda ctx: enable_interface(ctx, "spi"),
)
ENABLE_I2C = Step(
    "enable-i2c",
    "Enable I2C bus interface",
    lambda ctx: interface_enabled(ctx, "i2c"),
    lambda ctx: enable_interface(ctx, "i2c"),
)
RADIO_MODULE_PARAMS = Step(
    "radio-module-params",
    "Write radio module parameters",
    module_params_written,
    write_module_params,
)
UART_GETTY = Step(
    "uart-getty", "Enable UART console for firmware updates", uart_getty_enabled, enable_uart_getty
)
