# pi5setup/checks/hardware.py
from pathlib import Path

from pi5setup.core.check import CheckOutcome
from pi5setup.core.preflight import ExecutionContext, read_platform_model
from pi5setup.core.registry import check

SECTION = "Hardware Detection"


def device_nodes(ctx: ExecutionContext, pattern: str) -> list[Path]:
    """All device nodes matching ``pattern``; zero, one or many."""
    return sorted(ctx.path("dev_dir").glob(pattern))


def _interface_outcome(nodes: list[Path], bus: str, consumer: str) -> CheckOutcome:
    if not nodes:
        return CheckOutcome.fail(f"{bus}: no interface device found - {consumer} may not work")
    found = ", ".join(str(n) for n in nodes)
    return CheckOutcome.passed(f"{bus} enabled - found: {found}")


@check("pi-model", "Checking Raspberry Pi model", SECTION)
def pi_model(ctx: ExecutionContext) -> CheckOutcome:
    model = read_platform_model(ctx.section("platform").get("model_files", []))
    if model is None:
        return CheckOutcome.warn("Could not read the board model")
    return CheckOutcome.passed(f"Detected: {model}")


@check("spi-devices", "Checking SPI is enabled", SECTION)
def spi_devices(ctx: ExecutionContext) -> CheckOutcome:
    return _interface_outcome(device_nodes(ctx, "spidev*"), "SPI", "RaspBee II")


@check("i2c-devices", "Checking I2C is enabled", SECTION)
def i2c_devices(ctx: ExecutionContext) -> CheckOutcome:
    return _interface_outcome(device_nodes(ctx, "i2c-*"), "I2C", "WM8960")
