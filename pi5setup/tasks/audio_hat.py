"""
WM8960 audio HAT enablement
===========================

* Enable the ``seeed-voicecard`` device-tree overlay in the boot config.
* Comment out ``dtparam=audio=on`` so the onboard codec does not take card 0.
* Route ALSA defaults to the HAT card.
* Low-latency PulseAudio sample settings.
* System-wide PulseAudio service.
"""

from __future__ import annotations

from collections.abc import Mapping

from pi5setup.core import systemd
from pi5setup.core.configfile import ConfigFile
from pi5setup.core.preflight import ExecutionContext
from pi5setup.core.step import Step, StepFailure

# ── Constants ───────────────────────────────────────────────────────────────
ONBOARD_AUDIO_LINE = "dtparam=audio=on"
OVERLAY_COMMENT = "WM8960 Audio HAT Configuration"
LATENCY_BLOCK = "audio-latency"
PULSEAUDIO_UNIT = "pulseaudio.service"
PULSEAUDIO_UNIT_CONTENT = """\
[Unit]
Description=PulseAudio Daemon
After=sound.target

[Service]
Type=notify
ExecStart=/usr/bin/pulseaudio --system --disallow-exit --realtime --no-cpu-limit

[Install]
WantedBy=multi-user.target
"""


# ── Helpers ────────────────────────────────────────────────────────────────
def _audio_config(ctx: ExecutionContext) -> Mapping:
    return ctx.section("audio_hat")


def overlay_directive(ctx: ExecutionContext) -> str:
    return f"dtoverlay={_audio_config(ctx).get('overlay', 'seeed-voicecard')}"


def _boot_config(ctx: ExecutionContext) -> ConfigFile:
    return ConfigFile(ctx.path("boot_config"), use_sudo=ctx.use_sudo)


def _existing_boot_config(ctx: ExecutionContext) -> ConfigFile:
    boot = _boot_config(ctx)
    if not boot.exists():
        raise StepFailure(f"Boot config {boot.path} not found")
    return boot


def render_routing(card_index: int) -> str:
    return f"defaults.pcm.card {card_index}\ndefaults.ctl.card {card_index}\n"


def render_latency_block(latency: Mapping) -> str:
    lines = ["# Low latency configuration for gaming"]
    lines += [f"{key} = {value}" for key, value in latency.items()]
    return "\n".join(lines)


# ── Step implementations ───────────────────────────────────────────────────
def overlay_enabled(ctx: ExecutionContext) -> bool:
    return _boot_config(ctx).has_line(overlay_directive(ctx))


def enable_overlay(ctx: ExecutionContext) -> None:
    _existing_boot_config(ctx).ensure_line(overlay_directive(ctx), comment=OVERLAY_COMMENT)


def onboard_audio_disabled(ctx: ExecutionContext) -> bool:
    return not _boot_config(ctx).has_line(ONBOARD_AUDIO_LINE)


def disable_onboard_audio(ctx: ExecutionContext) -> None:
    _existing_boot_config(ctx).comment_out(ONBOARD_AUDIO_LINE)


def _routing_file(ctx: ExecutionContext) -> ConfigFile:
    return ConfigFile(ctx.path("asound_conf"), use_sudo=ctx.use_sudo)


def routing_configured(ctx: ExecutionContext) -> bool:
    return _routing_file(ctx).matches(render_routing(_audio_config(ctx).get("card_index", 1)))


def write_routing(ctx: ExecutionContext) -> None:
    _routing_file(ctx).ensure_content(render_routing(_audio_config(ctx).get("card_index", 1)))


def _pulse_config(ctx: ExecutionContext) -> ConfigFile:
    return ConfigFile(ctx.path("pulse_daemon_conf"), use_sudo=ctx.use_sudo)


def latency_configured(ctx: ExecutionContext) -> bool:
    block = render_latency_block(_audio_config(ctx).get("latency", {}))
    return _pulse_config(ctx).block(LATENCY_BLOCK) == block


def write_latency(ctx: ExecutionContext) -> None:
    daemon_conf = _pulse_config(ctx)
    if not daemon_conf.path.parent.is_dir():
        raise StepFailure(f"PulseAudio is not installed ({daemon_conf.path.parent} missing)")
    block = render_latency_block(_audio_config(ctx).get("latency", {}))
    daemon_conf.ensure_block(LATENCY_BLOCK, block)


def pulseaudio_service_enabled(ctx: ExecutionContext) -> bool:
    return systemd.unit_installed(
        ctx.path("systemd_unit_dir"), PULSEAUDIO_UNIT, PULSEAUDIO_UNIT_CONTENT
    )


def enable_pulseaudio_service(ctx: ExecutionContext) -> None:
    systemd.install_unit(
        ctx.path("systemd_unit_dir"), PULSEAUDIO_UNIT, PULSEAUDIO_UNIT_CONTENT, ctx.use_sudo
    )


# ── Step list ──────────────────────────────────────────────────────────────
AUDIO_OVERLAY = Step("audio-overlay", "Enable audio overlay", overlay_enabled, enable_overlay)
ONBOARD_AUDIO_OFF = Step(
    "onboard-audio-off", "Disable onboard audio", onboard_audio_disabled, disable_onboard_audio
)
AUDIO_ROUTING = Step(
    "audio-routing", "Write audio routing config", routing_configured, write_routing
)
AUDIO_LATENCY = Step(
    "audio-latency", "Tune audio daemon latency", latency_configured, write_latency
)
PULSEAUDIO_SERVICE = Step(
    "pulseaudio-service",
    "Enable background audio service",
    pulseaudio_service_enabled,
    enable_pulseaudio_service,
)
