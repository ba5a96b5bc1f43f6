import contextlib
import os
import stat
import tempfile
from pathlib import Path

from pi5setup.core.command import run_command
from pi5setup.core.logger import LoggerProxy

log = LoggerProxy(__name__)

DEFAULT_FILE_MODE = 0o644


def _fsync_directory(directory: Path) -> None:
    """Best-effort fsync of the containing directory so the rename is durable."""
    flags = os.O_RDONLY
    if hasattr(os, "O_DIRECTORY"):
        flags |= os.O_DIRECTORY

    try:
        dir_fd = os.open(str(directory), flags)
    except OSError:
        return

    try:
        os.fsync(dir_fd)
    except OSError:
        pass
    finally:
        os.close(dir_fd)


def _existing_mode(path: Path) -> int | None:
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        return None


def atomic_write_text(path: Path | str, content: str, perms: int | None = None) -> None:
    """
    Atomically write text content:
    1) write temp file in destination directory
    2) flush + fsync temp file
    3) chmod (explicit perms, else the replaced file's mode, else 0644)
    4) os.replace(temp, final)
    5) best-effort fsync destination directory
    """
    final_path = Path(path)
    final_path.parent.mkdir(parents=True, exist_ok=True)
    if perms is None:
        perms = _existing_mode(final_path) or DEFAULT_FILE_MODE

    fd, temp_name = tempfile.mkstemp(
        dir=str(final_path.parent),
        prefix=f".{final_path.name}.",
        suffix=".tmp",
        text=True,
    )
    temp_path = Path(temp_name)

    try:
        try:
            temp_file = os.fdopen(fd, "w", encoding="utf-8")
        except Exception:
            os.close(fd)
            raise

        with temp_file:
            temp_file.write(content)
            temp_file.flush()
            os.fsync(temp_file.fileno())

        os.chmod(temp_path, perms)  # noqa: PTH101
        os.replace(temp_path, final_path)  # noqa: PTH105
        _fsync_directory(final_path.parent)
    except Exception:
        with contextlib.suppress(OSError):
            temp_path.unlink()
        raise


def read_text(path: Path, use_sudo: bool = False) -> str | None:
    """Return file content, or None when the file does not exist."""
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except PermissionError:
        if not use_sudo:
            raise
        log.debug("Need sudo to read %s", path)

    result = run_command(["sudo", "cat", str(path)], check=False, strip=False)
    if not result.success:
        if "No such file" in result.stderr:
            return None
        raise OSError(f"sudo cat {path} failed ({result.describe()})")
    return result.stdout


def write_text(path: Path, content: str, use_sudo: bool = False) -> None:
    """
    Replace ``path`` with ``content``.

    Without sudo the write is atomic. With sudo the content is piped through
    ``sudo tee`` so only the write itself runs elevated.
    """
    if not use_sudo:
        atomic_write_text(path, content)
        return

    if not path.parent.is_dir():
        mkdir = run_command(["sudo", "mkdir", "-p", str(path.parent)])
        if not mkdir.success:
            raise OSError(f"could not create {path.parent} ({mkdir.describe()})")

    result = run_command(["sudo", "tee", str(path)], input_text=content)
    if not result.success:
        raise OSError(f"could not write {path} ({result.describe()})")
