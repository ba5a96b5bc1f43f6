#!/usr/bin/env python3
"""
pi5setup - Raspberry Pi 5 provisioning for the tabletop gaming Home Assistant
=============================================================================

CLI entry points that wire up:
* Logging & configuration
* The preflight guard
* Provisioning (ordered, fail-fast) and verification (exhaustive) workflows
"""

from __future__ import annotations

# ── Standard library ────────────────────────────────────────────────────────
from pathlib import Path
from typing import Annotated, Any

# ── Third-party ─────────────────────────────────────────────────────────────
import jsonschema
import typer

# ── Local imports ───────────────────────────────────────────────────────────
from pi5setup.core import config as config_loader
from pi5setup.core.check import Check, CheckOutcome, CheckStatus, run_checks
from pi5setup.core.diagnostics import generate_diagnostic_report, write_diagnostic_report
from pi5setup.core.executor import ExecutorRun, run_steps
from pi5setup.core.logger import LoggerProxy, log_directory, setup_logging
from pi5setup.core.preflight import ExecutionContext, GuardFailure, run_preflight
from pi5setup.core.printer import ProvisionLevel, StatusPrinter, VerifyLevel
from pi5setup.core.registry import get_check_registry
from pi5setup.core.report import write_markdown_report
from pi5setup.core.step import Step, StepResult, StepStatus
from pi5setup.tasks.plan import build_provisioning_steps, requires_network, select_steps

# ── Constants & default paths ───────────────────────────────────────────────
DEFAULT_CONFIG_PATH = config_loader.DEFAULT_CONFIG_PATH

NEXT_STEPS = [
    "1. Reboot the system: sudo reboot",
    "2. After reboot, Home Assistant will start automatically",
    "3. Access Home Assistant at: http://raspberrypi.local:8123",
    "4. Complete Home Assistant onboarding",
    "5. Install the Zigbee integration via the Home Assistant UI",
    "6. Run pi5-verify to check both HATs",
]

_STEP_LEVELS = {
    StepStatus.APPLIED: ProvisionLevel.SUCCESS,
    StepStatus.ALREADY_SATISFIED: ProvisionLevel.SUCCESS,
    StepStatus.WOULD_APPLY: ProvisionLevel.WARNING,
    StepStatus.FAILED: ProvisionLevel.ERROR,
}

_CHECK_LEVELS = {
    CheckStatus.PASS: VerifyLevel.PASS,
    CheckStatus.WARN: VerifyLevel.WARN,
    CheckStatus.FAIL: VerifyLevel.FAIL,
}

# ── Typer CLI app ───────────────────────────────────────────────────────────
app = typer.Typer(
    help="pi5setup - Raspberry Pi 5 Home Assistant + audio/Zigbee HAT provisioning.",
    add_completion=False,
)

ConfigOption = Annotated[
    Path,
    typer.Option(help="Path to JSON configuration file.", envvar="PI5SETUP_CONFIG_FILE"),
]
VerboseOption = Annotated[
    bool, typer.Option("--verbose", "-v", help="Enable verbose (DEBUG) output.")
]


def _load(config_file: Path, verbose: bool) -> tuple[dict[str, Any], LoggerProxy]:
    try:
        config = config_loader.load_config(config_file)
    except jsonschema.ValidationError as exc:
        typer.echo(f"CRITICAL: Invalid configuration - {exc.message}", err=True)
        raise typer.Exit(code=1) from None
    if not config:
        typer.echo("CRITICAL: Failed to load configuration - aborting.", err=True)
        raise typer.Exit(code=1)
    setup_logging(config, verbose=verbose)
    return config, LoggerProxy(__name__)


# ── CLI commands ────────────────────────────────────────────────────────────
@app.command()
def provision(
    config_file: ConfigOption = DEFAULT_CONFIG_PATH,
    dry_run: Annotated[
        bool, typer.Option("--dry-run", "-n", help="Report what would change without changing it.")
    ] = False,
    verbose: VerboseOption = False,
    only: Annotated[
        list[str] | None,
        typer.Option(
            "--only",
            "-o",
            help=(
                "Run only the specified step(s), in their normal order. May be supplied "
                "multiple times - e.g. -o audio-overlay -o enable-spi"
            ),
        ),
    ] = None,
    skip_network_check: Annotated[
        bool,
        typer.Option("--skip-network-check", help="Do not check the network before downloads."),
    ] = False,
) -> None:
    """
    Provision the Pi: Home Assistant Core, WM8960 audio HAT and RaspBee II HAT.

    Steps run in order and stop at the first failure. Re-running is safe:
    steps whose effect is already present are skipped.
    """
    config, log = _load(config_file, verbose)
    printer = StatusPrinter()
    printer.banner("Starting Raspberry Pi 5 Setup for Tabletop Gaming Home Assistant")

    steps = build_provisioning_steps(config)
    if only:
        try:
            steps = select_steps(steps, only)
        except ValueError as exc:
            printer.status(ProvisionLevel.ERROR, str(exc))
            raise typer.Exit(code=1) from None

    try:
        ctx = run_preflight(
            config,
            require_network=requires_network(steps) and not skip_network_check,
            dry_run=dry_run,
        )
    except GuardFailure as exc:
        log.debug("Preflight failed: %r", exc)
        printer.status(ProvisionLevel.ERROR, str(exc))
        raise typer.Exit(code=1) from None

    printer.status(ProvisionLevel.INFO, f"Detected {ctx.platform} - continuing setup...")
    if ctx.network_reachable:
        printer.status(ProvisionLevel.SUCCESS, "Internet connectivity verified")
    if dry_run:
        printer.status(ProvisionLevel.WARNING, "Dry run - no changes will be made")
    printer.blank()

    def _on_start(step: Step) -> None:
        printer.status(ProvisionLevel.INFO, f"{step.description}...")

    def _on_result(step: Step, result: StepResult) -> None:
        printer.status(_STEP_LEVELS[result.status], _describe_result(step, result))

    run = run_steps(steps, ctx, on_start=_on_start, on_result=_on_result)

    if not run.success:
        _write_diagnostics(run, ctx, printer, log)

    _print_provision_summary(steps, run, ctx, printer)
    raise typer.Exit(code=0 if run.success else 1)


@app.command()
def verify(
    config_file: ConfigOption = DEFAULT_CONFIG_PATH,
    verbose: VerboseOption = False,
    report: Annotated[
        Path | None,
        typer.Option("--report", "-r", help="Also write a markdown report to this path."),
    ] = None,
) -> None:
    """
    Verify the HATs and system configuration. Read-only.

    Every check runs even if earlier ones fail. Exits 0 whenever the run
    completes; problems are reported per check and in the overall status.
    """
    # Register checks (import side-effects)
    import pi5setup.checks  # noqa: F401

    config, log = _load(config_file, verbose)
    printer = StatusPrinter()
    printer.banner("Starting Raspberry Pi 5 HAT Testing")

    try:
        ctx = run_preflight(config)
    except GuardFailure as exc:
        log.debug("Preflight failed: %r", exc)
        printer.status(VerifyLevel.FAIL, str(exc))
        raise typer.Exit(code=1) from None

    printer.text(f"Running on {ctx.platform} - continuing tests...")
    printer.blank()

    current_section: list[str] = []

    def _on_start(chk: Check) -> None:
        if chk.section and chk.section not in current_section:
            if current_section:
                printer.blank()
            current_section.append(chk.section)
            printer.section(f"Test {len(current_section)}: {chk.section}")
        printer.status(VerifyLevel.TEST, f"{chk.description}...")

    def _on_outcome(chk: Check, outcome: CheckOutcome) -> None:
        printer.status(_CHECK_LEVELS[outcome.status], outcome.detail)

    checks = list(get_check_registry().values())
    result = run_checks(checks, ctx, on_start=_on_start, on_outcome=_on_outcome)

    printer.blank()
    printer.section("Testing Complete!")
    printer.status(
        _CHECK_LEVELS[result.overall],
        f"Overall status: {result.overall.name} "
        f"({result.count(CheckStatus.PASS)} passed, "
        f"{result.count(CheckStatus.WARN)} warnings, "
        f"{result.count(CheckStatus.FAIL)} failed)",
    )
    if result.overall is CheckStatus.FAIL:
        printer.text("Check HAT connections, review the boot config, reboot,")
        printer.text("and run pi5-provision if not already done.")

    if report:
        path = write_markdown_report(result, ctx, report)
        printer.text(f"Report written to {path}")

    raise typer.Exit(code=0)


@app.command(name="generate-config")
def generate_config_command(
    config_file: ConfigOption = DEFAULT_CONFIG_PATH,
    force: Annotated[bool, typer.Option("--force", help="Overwrite existing config file.")] = False,
) -> None:
    """
    Write a config file holding every default, ready for editing.
    """
    if config_file.exists() and not force:
        typer.echo(f"Config already exists at {config_file} - use --force to overwrite.", err=True)
        raise typer.Exit(code=1)

    if config_loader.generate_default_config(config_file):
        typer.echo(f"Default config written to {config_file}")
    else:
        typer.echo("Failed to create default config", err=True)
        raise typer.Exit(code=1)


# ── Helpers ────────────────────────────────────────────────────────────────
def _describe_result(step: Step, result: StepResult) -> str:
    if result.status is StepStatus.APPLIED:
        return f"{step.description}: done"
    if result.status is StepStatus.ALREADY_SATISFIED:
        return f"{step.description}: already configured"
    if result.status is StepStatus.WOULD_APPLY:
        return f"{step.description}: would be applied"
    return f"{step.description} failed: {result.reason}"


def _write_diagnostics(
    run: ExecutorRun, ctx: ExecutionContext, printer: StatusPrinter, log: LoggerProxy
) -> None:
    failed = run.failed
    diagnostics = generate_diagnostic_report(
        failed_step=failed.step_id if failed else None,
        error_message=failed.reason if failed else None,
        ctx=ctx,
    )
    try:
        path = write_diagnostic_report(diagnostics, log_directory(ctx.config))
    except OSError as exc:
        log.error("Could not write diagnostic report: %s", exc)
        return
    printer.status(ProvisionLevel.INFO, f"Diagnostic report written to {path}")


def _print_provision_summary(
    steps: list[Step], run: ExecutorRun, ctx: ExecutionContext, printer: StatusPrinter
) -> None:
    """One line per step, then the overall result."""
    printer.blank()
    printer.section("Summary")
    by_id = {r.step_id: r for r in run.results}
    for step in steps:
        res = by_id.get(step.step_id)
        status = res.status.value if res else "not run"
        printer.text(f"* {step.step_id:<22} : {status}")

    if not run.success:
        failed = run.failed
        printer.status(
            ProvisionLevel.ERROR,
            f"Setup stopped at '{failed.step_id if failed else '?'}'. "
            "Fix the problem above and re-run; completed steps will be skipped.",
        )
        return

    if ctx.dry_run:
        printer.status(ProvisionLevel.SUCCESS, "Dry run completed - nothing was changed")
        return

    printer.status(ProvisionLevel.SUCCESS, "Setup completed successfully!")
    if run.changed:
        printer.blank()
        printer.text("Next steps:")
        for line in NEXT_STEPS:
            printer.text(line)


# ── Console script entry points ─────────────────────────────────────────────
def provision_main() -> None:
    typer.run(provision)


def verify_main() -> None:
    typer.run(verify)


# ── Main guard ──────────────────────────────────────────────────────────────
if __name__ == "__main__":
    app()
