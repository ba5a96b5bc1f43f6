"""
Owned views over shared system configuration files.

Every mutation of a system file goes through one of the operations below so
that re-running a step never duplicates or clobbers content:

* ``ensure_line``   - append a directive once (guarded append)
* ``comment_out``   - disable a directive in place
* ``ensure_block``  - replace the marker-delimited block this tool owns
* ``ensure_content`` - own the whole file (rewrite only when it differs)
"""

from __future__ import annotations

from pathlib import Path

from pi5setup.core.io import read_text, write_text
from pi5setup.core.logger import LoggerProxy

log = LoggerProxy(__name__)

BLOCK_START = "# --- pi5setup {name} start ---"
BLOCK_END = "# --- pi5setup {name} end ---"


def _is_comment(line: str) -> bool:
    return line.lstrip().startswith("#")


class ConfigFile:
    def __init__(self, path: Path | str, use_sudo: bool = False):
        self.path = Path(path)
        self.use_sudo = use_sudo

    def __repr__(self) -> str:
        return f"ConfigFile({str(self.path)!r})"

    # ── reads ──────────────────────────────────────────────────────────────
    def exists(self) -> bool:
        return self.path.is_file()

    def read(self) -> str:
        """Current content; a missing file reads as empty."""
        content = read_text(self.path, use_sudo=self.use_sudo)
        return content or ""

    def active_lines(self) -> list[str]:
        """Stripped, non-empty, uncommented lines."""
        return [
            line.strip()
            for line in self.read().splitlines()
            if line.strip() and not _is_comment(line)
        ]

    def has_line(self, directive: str) -> bool:
        return directive.strip() in self.active_lines()

    @staticmethod
    def _block_span(lines: list[str], name: str) -> tuple[int, int] | None:
        """Line indexes of the first complete owned block ``name``, markers included."""
        start, end = BLOCK_START.format(name=name), BLOCK_END.format(name=name)
        begin: int | None = None
        for i, line in enumerate(lines):
            if line.strip() == start:
                begin = i
            elif line.strip() == end and begin is not None:
                return begin, i
        return None

    def block(self, name: str) -> str | None:
        """Body of the owned block ``name`` or None when absent."""
        lines = self.read().splitlines()
        span = self._block_span(lines, name)
        if span is None:
            return None
        return "\n".join(lines[span[0] + 1 : span[1]])

    def matches(self, content: str) -> bool:
        return self.exists() and self.read() == content

    # ── writes ─────────────────────────────────────────────────────────────
    def _write(self, content: str) -> None:
        log.info("Writing %s", self.path)
        write_text(self.path, content, use_sudo=self.use_sudo)

    def ensure_line(self, directive: str, comment: str | None = None) -> bool:
        """Append ``directive`` unless an active copy exists. Returns True if written."""
        if self.has_line(directive):
            return False
        current = self.read()
        if current and not current.endswith("\n"):
            current += "\n"
        addition = "\n" if current else ""
        if comment:
            addition += f"# {comment}\n"
        addition += f"{directive.strip()}\n"
        self._write(current + addition)
        return True

    def comment_out(self, directive: str) -> bool:
        """Prefix every active ``directive`` line with '#'. Returns True if written."""
        target = directive.strip()
        lines = self.read().splitlines(keepends=True)
        changed = False
        for i, line in enumerate(lines):
            if line.strip() == target and not _is_comment(line):
                lines[i] = "#" + line.lstrip()
                changed = True
        if changed:
            self._write("".join(lines))
        return changed

    def ensure_block(self, name: str, body: str) -> bool:
        """
        Make the owned block ``name`` contain exactly ``body``.

        An existing block is replaced where it stands; otherwise the block is
        appended. Content outside the markers is left untouched.
        """
        body = body.rstrip("\n")
        if self.block(name) == body:
            return False

        rendered = f"{BLOCK_START.format(name=name)}\n{body}\n{BLOCK_END.format(name=name)}\n"
        lines = self.read().splitlines(keepends=True)
        span = self._block_span(lines, name)
        if span is not None:
            lines[span[0] : span[1] + 1] = [rendered]
        else:
            if lines and not lines[-1].endswith("\n"):
                lines[-1] += "\n"
            lines.append(("\n" if lines else "") + rendered)

        self._write("".join(lines))
        return True

    def ensure_content(self, content: str) -> bool:
        """Own the whole file: rewrite only when it differs. Returns True if written."""
        if self.matches(content):
            return False
        self._write(content)
        return True
