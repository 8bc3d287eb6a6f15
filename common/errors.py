from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional


class MakeLiveError(Exception):
    """Base class for every error raised while building exercise notebooks."""


class ParseError(MakeLiveError):
    """
    A chunk fence or option list could not be parsed.
    Carries the source path (if known), the segment position and the
    1-based line number of the offending line.
    """

    def __init__(
        self,
        message: str,
        source: Optional[Path | str] = None,
        position: Optional[int] = None,
        line_no: Optional[int] = None,
    ):
        self.message = message
        self.source = source
        self.position = position
        self.line_no = line_no
        super().__init__(str(self))

    def with_context(
        self, source: Optional[Path | str] = None, position: Optional[int] = None
    ) -> "ParseError":
        return ParseError(
            self.message,
            source=self.source if source is None else source,
            position=self.position if position is None else position,
            line_no=self.line_no,
        )

    def __str__(self) -> str:
        where = []
        if self.source is not None:
            where.append(str(self.source))
        if self.line_no is not None:
            where.append(f"line {self.line_no}")
        if self.position is not None:
            where.append(f"segment {self.position}")
        prefix = ", ".join(where)
        return f"{prefix}: {self.message}" if prefix else self.message


class RenderError(MakeLiveError):
    """The external render of a notebook failed."""

    def __init__(self, source: Path | str, returncode: Optional[int], stderr: str = ""):
        self.source = source
        self.returncode = returncode
        self.stderr = stderr
        tail = "\n".join(stderr.strip().splitlines()[-10:])
        msg = f"render of {source} failed (exit code {returncode})"
        if tail:
            msg = f"{msg}:\n{tail}"
        super().__init__(msg)


class DependencyMissing(MakeLiveError):
    """Rscript or a required R package is not available."""

    def __init__(self, names: Iterable[str]):
        self.names = list(names)
        super().__init__("missing dependencies: " + ", ".join(self.names))
