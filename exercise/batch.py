from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List

import orjson
from tqdm import tqdm

from common.errors import MakeLiveError
from common.hash_utils import sha1_file
from common.logger import get_logger
from exercise.generator import ExerciseGenerator

log = get_logger(__name__)


@dataclass
class GeneratedNotebook:
    source: Path
    output: Path
    sha1: str  # of the written exercise file


@dataclass
class BatchFailure:
    source: Path
    error: Exception

    @property
    def kind(self) -> str:
        return type(self.error).__name__


@dataclass
class BatchReport:
    generated: List[GeneratedNotebook] = field(default_factory=list)
    failures: List[BatchFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def run_batch(
    generator: ExerciseGenerator,
    sources: Iterable[Path | str],
    validate: bool = True,
    fail_fast: bool = False,
) -> BatchReport:
    """
    Generate exercise notebooks one source at a time.
    By default a failing notebook is logged and recorded, and the rest of the
    batch still runs; with fail_fast the first error is raised instead.
    """
    sources = [generator.resolve(s) for s in sources]
    report = BatchReport()

    for src in tqdm(sources, desc="Generating exercises", disable=len(sources) < 2):
        try:
            out = generator.generate(src, validate=validate)
        except (MakeLiveError, OSError) as e:
            if fail_fast:
                raise
            log.error("Failed to generate exercise for %s: %s", src, e)
            report.failures.append(BatchFailure(source=src, error=e))
            continue
        report.generated.append(
            GeneratedNotebook(source=src, output=out, sha1=sha1_file(out))
        )

    log.info(
        "Batch complete: %d generated, %d failed",
        len(report.generated),
        len(report.failures),
    )
    return report


def write_manifest(report: BatchReport, path: Path) -> Path:
    """Write a JSON record of the batch (for audit/debug)."""
    manifest = {
        "generated": [
            {"source": str(g.source), "output": str(g.output), "sha1": g.sha1}
            for g in report.generated
        ],
        "failures": [
            {"source": str(f.source), "error": f.kind, "message": str(f.error)}
            for f in report.failures
        ],
    }
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(orjson.dumps(manifest, option=orjson.OPT_INDENT_2))
    log.info("Wrote manifest to %s", path)
    return path
