# pi5setup/core/command.py

import shlex
import subprocess

from pi5setup.core.logger import LoggerProxy

log = LoggerProxy(__name__)


class CommandResult:
    """Holds the result of a command execution."""

    def __init__(self, returncode: int, stdout: str, stderr: str, success: bool):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.success = success

    def __bool__(self) -> bool:
        """Allows treating the result object as boolean for success."""
        return self.success

    def describe(self) -> str:
        """Short human-readable failure summary."""
        detail = self.stderr or self.stdout
        if detail:
            return f"exit code {self.returncode}: {detail.splitlines()[-1]}"
        return f"exit code {self.returncode}"


def run_command(
    cmd_list: list[str],
    dry_run: bool = False,
    check: bool = True,  # If True, non-zero exit code is considered failure
    capture: bool = True,  # Capture stdout/stderr
    input_text: str | None = None,  # Fed to stdin
    timeout: float | None = None,  # Seconds; None blocks until the command returns
    cwd: str | None = None,
    env: dict[str, str] | None = None,
    strip: bool = True,  # Trim surrounding whitespace from captured output
) -> CommandResult:
    """
    Runs an external command using subprocess.

    Args:
        cmd_list: Command and arguments as a list of strings.
        dry_run: If True, log the command instead of running it.
        check: If True, non-zero exit codes indicate failure.
        capture: If True, capture stdout and stderr.
        input_text: Optional text written to the command's stdin.
        timeout: Optional timeout in seconds.
        cwd: Directory to run the command in.
        env: Environment variables dictionary for the subprocess.
        strip: If False, stdout and stderr are returned exactly as captured.

    Returns:
        CommandResult object with success status, return code, stdout, stderr.
    """
    cmd_str = shlex.join(cmd_list)
    log.info("Running: %s%s", cmd_str, f" in {cwd}" if cwd else "")

    if dry_run:
        log.info("DRYRUN: Would execute: %s", cmd_str)
        return CommandResult(returncode=0, stdout="", stderr="", success=True)

    try:
        process = subprocess.run(
            cmd_list,
            check=False,  # We check manually based on the 'check' flag
            capture_output=capture,
            text=True,
            input=input_text,
            timeout=timeout,
            cwd=cwd,
            env=env,
        )
    except FileNotFoundError:
        log.error("Command not found: %s", cmd_list[0])
        return CommandResult(
            returncode=127,
            stdout="",
            stderr=f"Command not found: {cmd_list[0]}",
            success=False,
        )
    except subprocess.TimeoutExpired:
        log.warning("Command timed out after %ss: %s", timeout, cmd_str)
        return CommandResult(
            returncode=-1, stdout="", stderr=f"Timed out after {timeout}s", success=False
        )

    stdout = process.stdout or ""
    stderr = process.stderr or ""
    if strip:
        stdout, stderr = stdout.strip(), stderr.strip()

    if stdout:
        log.debug("STDOUT: %s", stdout.rstrip())
    if stderr:
        if process.returncode == 0:
            log.debug("STDERR (RC=0): %s", stderr)
        elif check:
            log.error("STDERR (RC=%s): %s", process.returncode, stderr)
        else:
            log.debug("STDERR (RC=%s): %s", process.returncode, stderr)

    success = process.returncode == 0
    if check and not success:
        log.error("Command failed with exit code %s: %s", process.returncode, cmd_str)
    else:
        log.debug("Command finished with exit code %s.", process.returncode)
    return CommandResult(process.returncode, stdout, stderr, success=success)
