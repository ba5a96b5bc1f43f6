# pi5setup/tasks/plan.py
"""Ordered provisioning step list."""

from collections.abc import Iterable
from typing import Any

from pi5setup.core.step import Step
from pi5setup.tasks import audio_hat, home_assistant, packages, zigbee_hat


def build_provisioning_steps(config: dict[str, Any]) -> list[Step]:
    """
    Assemble the steps enabled in ``config``, in the order they must run.

    Packages for every enabled section come first, then the runtime, then
    file-only HAT configuration, then the bus interfaces, and finally the
    services that depend on them.
    """
    ha = config.get("home_assistant", {}).get("enable", True)
    audio = config.get("audio_hat", {}).get("enable", True)
    zigbee_cfg = config.get("zigbee_hat", {})
    zigbee = zigbee_cfg.get("enable", True)

    steps: list[Step] = []
    if packages.required_packages(config):
        steps.append(packages.SYSTEM_PACKAGES)
    if ha:
        steps += [home_assistant.HA_USER, home_assistant.HA_CORE]
    if audio:
        steps += [
            audio_hat.AUDIO_OVERLAY,
            audio_hat.ONBOARD_AUDIO_OFF,
            audio_hat.AUDIO_ROUTING,
            audio_hat.AUDIO_LATENCY,
        ]
    if zigbee:
        steps.append(zigbee_hat.ENABLE_SPI)
        if zigbee_cfg.get("enable_i2c", True):
            steps.append(zigbee_hat.ENABLE_I2C)
        steps.append(zigbee_hat.RADIO_MODULE_PARAMS)
        if zigbee_cfg.get("uart_getty", True):
            steps.append(zigbee_hat.UART_GETTY)
    if audio:
        steps.append(audio_hat.PULSEAUDIO_SERVICE)
    if ha:
        steps += [home_assistant.HA_SERVICE, home_assistant.SOUND_DIRS]
    return steps


def select_steps(steps: list[Step], only: Iterable[str]) -> list[Step]:
    """
    Keep only the named steps, preserving list order.

    Raises:
        ValueError: a requested id is not in ``steps``.
    """
    wanted = {name.strip() for name in only}
    unknown = wanted - {s.step_id for s in steps}
    if unknown:
        raise ValueError(f"Unknown step(s): {', '.join(sorted(unknown))}")
    return [s for s in steps if s.step_id in wanted]


def requires_network(steps: Iterable[Step]) -> bool:
    return any(s.fetches_remote for s in steps)
