# pi5setup/checks/system.py
import shutil

from pi5setup.core.check import CheckOutcome
from pi5setup.core.command import run_command
from pi5setup.core.configfile import ConfigFile
from pi5setup.core.preflight import ExecutionContext
from pi5setup.core.registry import check
from pi5setup.tasks.audio_hat import ONBOARD_AUDIO_LINE, overlay_directive, render_routing
from pi5setup.tasks.zigbee_hat import render_module_params

SECTION = "System Configuration"


def _read_only(ctx: ExecutionContext, key: str) -> ConfigFile:
    return ConfigFile(ctx.path(key), use_sudo=ctx.use_sudo)


@check("boot-overlay", "Checking boot config for HAT overlay", SECTION)
def boot_overlay(ctx: ExecutionContext) -> CheckOutcome:
    boot = _read_only(ctx, "boot_config")
    if not boot.exists():
        return CheckOutcome.fail(f"Boot config {boot.path} not found")
    directive = overlay_directive(ctx)
    if boot.has_line(directive):
        return CheckOutcome.passed(f"Found '{directive}' in {boot.path}")
    return CheckOutcome.fail(f"WM8960 HAT not configured in {boot.path} - add: {directive}")


@check("onboard-audio", "Checking onboard audio is disabled", SECTION)
def onboard_audio(ctx: ExecutionContext) -> CheckOutcome:
    boot = _read_only(ctx, "boot_config")
    if boot.has_line(ONBOARD_AUDIO_LINE):
        return CheckOutcome.fail(
            f"Onboard audio still enabled - comment out: {ONBOARD_AUDIO_LINE}"
        )
    return CheckOutcome.passed("Onboard audio properly disabled")


@check("pulseaudio-installed", "Checking for PulseAudio", SECTION)
def pulseaudio_installed(ctx: ExecutionContext) -> CheckOutcome:
    if shutil.which("pulseaudio") is None:
        return CheckOutcome.warn("PulseAudio not installed - run the provisioning workflow")
    version = run_command(["pulseaudio", "--version"], check=False)
    return CheckOutcome.passed(f"PulseAudio installed: {version.stdout or 'unknown version'}")


@check("audio-routing", "Checking for ALSA configuration", SECTION)
def audio_routing(ctx: ExecutionContext) -> CheckOutcome:
    asound = _read_only(ctx, "asound_conf")
    if not asound.exists():
        return CheckOutcome.warn("No ALSA configuration found - run the provisioning workflow")
    card = ctx.section("audio_hat").get("card_index", 1)
    expected = set(render_routing(card).splitlines())
    if expected.issubset(asound.active_lines()):
        return CheckOutcome.passed(f"{asound.path} routes defaults to card {card}")
    found = "; ".join(asound.active_lines()) or "empty"
    return CheckOutcome.warn(f"{asound.path} does not route to card {card} ({found})")


@check("radio-module-params", "Checking radio module parameters", SECTION)
def radio_module_params(ctx: ExecutionContext) -> CheckOutcome:
    cfg = ctx.section("zigbee_hat")
    params = ConfigFile(
        ctx.path("modprobe_dir") / cfg.get("params_file", "raspbee2.conf"),
        use_sudo=ctx.use_sudo,
    )
    if not params.exists():
        return CheckOutcome.warn(f"{params.path} not found - run the provisioning workflow")
    expected = render_module_params(cfg.get("module_options", "options spidev bufsiz=4096"))
    options = [line for line in expected.splitlines() if not line.startswith("#")]
    if all(params.has_line(line) for line in options):
        return CheckOutcome.passed(f"{params.path}: {'; '.join(options)}")
    return CheckOutcome.warn(f"{params.path} lacks: {'; '.join(options)}")
