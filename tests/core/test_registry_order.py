import pytest

import pi5setup.checks  # noqa: F401
from pi5setup.core.registry import check, get_check_registry

EXPECTED_ORDER = [
    "pi-model",
    "spi-devices",
    "i2c-devices",
    "audio-hat-device",
    "audio-input",
    "audio-output",
    "spi-module",
    "radio-i2c",
    "boot-overlay",
    "onboard-audio",
    "pulseaudio-installed",
    "audio-routing",
    "radio-module-params",
    "ssh-service",
    "pulseaudio-service",
    "ha-service",
]


def test_checks_register_in_suite_order():
    assert list(get_check_registry()) == EXPECTED_ORDER


def test_every_check_has_a_section():
    assert all(c.section for c in get_check_registry().values())


def test_duplicate_check_id_is_rejected():
    with pytest.raises(RuntimeError, match="Duplicate check id: pi-model"):

        @check("pi-model", "again")
        def _dupe(ctx):
            return None
