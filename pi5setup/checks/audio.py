# pi5setup/checks/audio.py
from pi5setup.core.check import CheckOutcome
from pi5setup.core.command import run_command
from pi5setup.core.preflight import ExecutionContext
from pi5setup.core.registry import check

SECTION = "WM8960 Audio HAT"

SPEAKER_TEST_CMD = ["speaker-test", "-t", "sine", "-f", "440", "-l", "1", "-s", "1", "-c", "2"]


def card_lines(output: str) -> list[str]:
    """``card N: ...`` lines from ``aplay -l`` / ``arecord -l``."""
    return [line.strip() for line in output.splitlines() if line.startswith("card ")]


@check("audio-hat-device", "Checking for WM8960 audio device", SECTION)
def audio_hat_device(ctx: ExecutionContext) -> CheckOutcome:
    result = run_command(["aplay", "-l"], check=False)
    if result.returncode == 127:
        return CheckOutcome.fail("aplay not available - install alsa-utils")

    patterns = [p.lower() for p in ctx.section("audio_hat").get("card_patterns", [])]
    matches = [
        line for line in card_lines(result.stdout) if any(p in line.lower() for p in patterns)
    ]
    if not matches:
        overlay = ctx.section("audio_hat").get("overlay", "seeed-voicecard")
        return CheckOutcome.fail(
            f"WM8960 Audio HAT not detected - check the boot config for dtoverlay={overlay}"
        )
    return CheckOutcome.passed("WM8960 Audio HAT detected: " + "; ".join(matches))


@check("audio-input", "Testing audio card access", SECTION)
def audio_input(ctx: ExecutionContext) -> CheckOutcome:
    result = run_command(["arecord", "-l"], check=False)
    cards = card_lines(result.stdout) if result.success else []
    if not cards:
        return CheckOutcome.warn("No audio input devices found (this may be OK)")
    return CheckOutcome.passed("Audio input devices accessible: " + "; ".join(cards))


@check("audio-output", "Testing audio output", SECTION)
def audio_output(ctx: ExecutionContext) -> CheckOutcome:
    if not ctx.section("verification").get("speaker_test", True):
        return CheckOutcome.warn("Speaker test skipped by configuration")
    result = run_command(SPEAKER_TEST_CMD, check=False)
    if not result.success:
        return CheckOutcome.fail(
            f"Audio output test failed ({result.describe()}) - "
            "this could be a driver issue or missing dependencies"
        )
    return CheckOutcome.passed("Speakers working - you should have heard a 440Hz tone")
