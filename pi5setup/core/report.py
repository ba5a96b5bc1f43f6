# pi5setup/core/report.py

from datetime import datetime, timezone
from pathlib import Path

from pi5setup.core.check import VerificationReport
from pi5setup.core.io import atomic_write_text
from pi5setup.core.preflight import ExecutionContext


def markdown_escape(text: str) -> str:
    return str(text).replace("\\", "\\\\").replace("|", "\\|").replace("\n", " ")


def render_markdown_report(report: VerificationReport, ctx: ExecutionContext) -> str:
    now = datetime.now(timezone.utc).replace(microsecond=0).isoformat()
    lines = [
        "# Raspberry Pi HAT Verification Report",
        f"Generated: {now}",
        f"Platform: {markdown_escape(ctx.platform)}",
        "",
        f"**Overall: {report.overall.name}**",
        "",
        "| Check | Status | Detail |",
        "|-------|--------|--------|",
    ]
    for check_id, outcome in report.entries:
        lines.append(
            f"| {markdown_escape(check_id)} | {outcome.status.name} | "
            f"{markdown_escape(outcome.detail)} |"
        )
    return "\n".join(lines) + "\n"


def write_markdown_report(report: VerificationReport, ctx: ExecutionContext, path: Path) -> Path:
    atomic_write_text(path, render_markdown_report(report, ctx))
    return path
