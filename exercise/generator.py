from __future__ import annotations

import os
import stat
import tempfile
from pathlib import Path
from typing import Mapping, Optional, Sequence

from common.config import GlobalYAMLConfig, yaml_config
from common.logger import get_logger
from exercise.renderer import RenderValidator
from exercise.transform import transform_document
from rmd.document_models import Document
from rmd.parser import read_document

log = get_logger(__name__)


def derive_output_path(path: Path, suffix: str = "-live") -> Path:
    """foo/bar.Rmd -> foo/bar-live.Rmd"""
    path = Path(path)
    return path.with_name(f"{path.stem}{suffix}{path.suffix}")


def _output_mode(path: Path) -> int:
    """Mode of the file being replaced, else what a plain open() would create."""
    try:
        return stat.S_IMODE(os.stat(path).st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def write_atomic(path: Path, text: str) -> None:
    """
    Write through a temporary file in the same directory and rename it into
    place, so a failed write never leaves a partial file behind.
    """
    path = Path(path)
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        os.chmod(tmp, _output_mode(path))
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


class ExerciseGenerator:
    def __init__(
        self,
        root_dir: Path | str,
        markers: Mapping[str, str],
        replace_flags: Sequence[str] = ("live",),
        remove_flags: Sequence[str] = (),
        suffix: str = "-live",
        validator: Optional[RenderValidator] = None,
    ):
        """
        Builds exercise notebooks for sources under `root_dir`.
        Relative source paths are resolved against the root; nothing is
        discovered implicitly. Without a validator, rendering is skipped.
        """
        self.root_dir = Path(root_dir)
        self.markers = dict(markers)
        self.replace_flags = tuple(replace_flags)
        self.remove_flags = tuple(remove_flags)
        self.suffix = suffix
        self.validator = validator

    @classmethod
    def from_config(
        cls,
        root_dir: Path | str,
        config: GlobalYAMLConfig | None = None,
        render: bool | None = None,
    ) -> "ExerciseGenerator":
        config = config or yaml_config
        render = config.render.enabled if render is None else render
        validator = (
            RenderValidator(
                rscript=config.render.rscript,
                quiet=config.render.quiet,
                timeout=config.render.timeout,
            )
            if render
            else None
        )
        return cls(
            root_dir=root_dir,
            markers=config.exercise.comment_markers,
            replace_flags=config.exercise.replace_flags,
            remove_flags=config.exercise.remove_flags,
            suffix=config.app.output_suffix,
            validator=validator,
        )

    def resolve(self, source: Path | str) -> Path:
        source = Path(source)
        return source if source.is_absolute() else self.root_dir / source

    def output_path(self, source: Path | str) -> Path:
        return derive_output_path(self.resolve(source), self.suffix)

    def validate(self, source: Path | str) -> None:
        """Render the notebook; raises RenderError if it does not run cleanly."""
        if self.validator is None:
            return
        self.validator.validate(self.resolve(source))

    def transform(self, document: Document) -> Document:
        return transform_document(
            document,
            self.markers,
            replace_flags=self.replace_flags,
            remove_flags=self.remove_flags,
        )

    def generate(self, source: Path | str, validate: bool = True) -> Path:
        """
        Validate (optionally), parse and transform one notebook, then write the
        exercise version next to it. Returns the path written.
        """
        path = self.resolve(source)
        if validate:
            self.validate(path)

        document = read_document(path)
        exercise = self.transform(document)

        out = derive_output_path(path, self.suffix)
        write_atomic(out, exercise.to_text())
        log.info("Wrote %s", out)
        return out
