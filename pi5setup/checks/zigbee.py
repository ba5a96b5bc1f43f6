# pi5setup/checks/zigbee.py
from pi5setup.core.check import CheckOutcome
from pi5setup.core.command import run_command
from pi5setup.core.preflight import ExecutionContext
from pi5setup.core.registry import check

SECTION = "RaspBee II Zigbee HAT"


def loaded_modules(proc_modules: str) -> list[str]:
    return [line.split()[0] for line in proc_modules.splitlines() if line.strip()]


def parse_i2cdetect(output: str) -> list[str]:
    """
    Addresses that answered in an ``i2cdetect -y`` table.

    Each row is ``"NN:"`` followed by 16 three-character cells; a cell holds
    the address, ``UU`` when a kernel driver owns it, or ``--``/blank.
    """
    found: list[str] = []
    for line in output.splitlines():
        head, sep, _ = line.partition(":")
        if not sep or len(head) != 2:
            continue
        try:
            row = int(head, 16)
        except ValueError:
            continue
        for col in range(16):
            cell = line[3 + 3 * col + 1 : 3 + 3 * col + 3].strip()
            if cell and cell != "--":
                found.append(f"{row + col:02x}")
    return found


@check("spi-module", "Checking for RaspBee II on SPI", SECTION)
def spi_module(ctx: ExecutionContext) -> CheckOutcome:
    try:
        modules = loaded_modules(ctx.path("proc_modules").read_text())
    except OSError as e:
        return CheckOutcome.fail(f"Could not read loaded modules: {e}")
    if "spidev" not in modules:
        return CheckOutcome.fail("SPI module not loaded (spidev)")
    return CheckOutcome.passed("SPI module loaded: spidev")


@check("radio-i2c", "Checking for RaspBee II on I2C", SECTION)
def radio_i2c(ctx: ExecutionContext) -> CheckOutcome:
    cfg = ctx.section("zigbee_hat")
    bus = str(cfg.get("i2c_bus", 1))
    result = run_command(["i2cdetect", "-y", bus], check=False)
    if not result.success:
        return CheckOutcome.warn(
            f"RaspBee II I2C not detected - i2cdetect failed ({result.describe()})"
        )
    expected = set(cfg.get("i2c_addresses", ["18", "19", "1a", "1b"]))
    hits = [addr for addr in parse_i2cdetect(result.stdout) if addr in expected]
    if not hits:
        return CheckOutcome.warn("RaspBee II I2C not detected - this may be normal")
    found = ", ".join(f"0x{addr}" for addr in hits)
    return CheckOutcome.passed(f"RaspBee II I2C addresses found: {found}")
