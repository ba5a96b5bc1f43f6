# pi5setup/checks/services.py
from pi5setup.core import systemd
from pi5setup.core.check import CheckOutcome
from pi5setup.core.preflight import ExecutionContext
from pi5setup.core.registry import check
from pi5setup.tasks.audio_hat import PULSEAUDIO_UNIT
from pi5setup.tasks.home_assistant import HA_UNIT

SECTION = "Network and Services"


@check("ssh-service", "Checking SSH service", SECTION)
def ssh_service(ctx: ExecutionContext) -> CheckOutcome:
    unit = ctx.section("verification").get("ssh_unit", "ssh")
    if systemd.is_active(unit):
        return CheckOutcome.passed("SSH service is running")
    return CheckOutcome.warn("SSH service not running")


@check("pulseaudio-service", "Checking PulseAudio service", SECTION)
def pulseaudio_service(ctx: ExecutionContext) -> CheckOutcome:
    if systemd.is_enabled(PULSEAUDIO_UNIT):
        return CheckOutcome.passed("PulseAudio service enabled")
    return CheckOutcome.warn("PulseAudio service not enabled - run the provisioning workflow")


@check("ha-service", "Checking Home Assistant service", SECTION)
def ha_service(ctx: ExecutionContext) -> CheckOutcome:
    if not systemd.is_enabled(HA_UNIT):
        return CheckOutcome.warn(
            "Home Assistant service not enabled - run the provisioning workflow"
        )
    state = "running" if systemd.is_active(HA_UNIT) else "not running yet (reboot pending?)"
    return CheckOutcome.passed(f"Home Assistant service enabled, {state}")
