import io

from rich.console import Console

from pi5setup.core.printer import ProvisionLevel, StatusPrinter, VerifyLevel, format_line


def _printer() -> tuple[StatusPrinter, io.StringIO]:
    buf = io.StringIO()
    console = Console(file=buf, force_terminal=False, width=200, highlight=False)
    return StatusPrinter(console), buf


def test_format_line():
    assert format_line(ProvisionLevel.SUCCESS, "SPI enabled") == "[SUCCESS] SPI enabled"
    assert format_line(VerifyLevel.WARN, "no input") == "[WARN] no input"


def test_vocabularies_share_structure():
    assert [lvl.tag for lvl in ProvisionLevel] == ["INFO", "SUCCESS", "WARNING", "ERROR"]
    assert [lvl.tag for lvl in VerifyLevel] == ["TEST", "PASS", "WARN", "FAIL"]
    assert ProvisionLevel.ERROR.style == VerifyLevel.FAIL.style == "red"


def test_status_prints_plain_line_and_escapes_markup():
    printer, buf = _printer()
    printer.status(VerifyLevel.PASS, "Found [dtoverlay] in /boot/config.txt")
    assert buf.getvalue() == "[PASS] Found [dtoverlay] in /boot/config.txt\n"


def test_status_is_logged(caplog):
    printer, _ = _printer()
    with caplog.at_level("INFO", logger="pi5setup.core.printer"):
        printer.status(ProvisionLevel.ERROR, "boom")
    assert "[ERROR] boom" in caplog.text
