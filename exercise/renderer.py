"""
Pre-flight checks and render validation through the R toolchain.

Rendering runs the notebook end to end with rmarkdown::render, which is how we
know a tutorial still executes before its exercise version is written.
"""
from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from common.errors import DependencyMissing, RenderError
from common.logger import get_logger

log = get_logger(__name__)


def _r_str(s: str) -> str:
    """Return s as a double-quoted R string literal with escapes."""
    s = s.replace("\\", "\\\\").replace('"', '\\"')
    s = s.replace("\n", "\\n")
    return f'"{s}"'


def _r_vector(items: Iterable[str]) -> str:
    return "c(" + ", ".join(_r_str(i) for i in items) + ")"


def resolve_rscript(user_spec: Optional[str] = None) -> str:
    """Prefer an explicit Rscript path, else whatever is on PATH."""
    rscript = user_spec or shutil.which("Rscript")
    if not rscript:
        raise DependencyMissing(["Rscript"])
    return rscript


def _run_r(rscript: str, expr: str, timeout: Optional[int] = None):
    try:
        return subprocess.run(
            [rscript, "-e", expr],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError:
        raise DependencyMissing([rscript]) from None


def check_r_packages(packages: Sequence[str], rscript: Optional[str] = None) -> List[str]:
    """Return the subset of `packages` that is not installed."""
    if not packages:
        return []
    rscript = resolve_rscript(rscript)
    expr = (
        f"pkgs <- {_r_vector(packages)}; "
        "missing <- pkgs[!vapply(pkgs, requireNamespace, logical(1), quietly = TRUE)]; "
        'cat(missing, sep = "\\n")'
    )
    proc = _run_r(rscript, expr)
    if proc.returncode != 0:
        log.error("Package check failed: %s", proc.stderr.strip())
        return list(packages)
    found = {p.strip() for p in proc.stdout.splitlines() if p.strip()}
    return [p for p in packages if p in found]


@retry(
    retry=retry_if_exception_type(subprocess.CalledProcessError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)
def _install_packages(rscript: str, packages: Sequence[str], repo: str) -> None:
    """Install from CRAN with retry logic; downloads fail transiently."""
    log.info("Installing R packages: %s", ", ".join(packages))
    expr = f"install.packages({_r_vector(packages)}, repos = {_r_str(repo)})"
    proc = _run_r(rscript, expr)
    if proc.returncode != 0:
        raise subprocess.CalledProcessError(
            proc.returncode, [rscript, "-e", expr], proc.stdout, proc.stderr
        )


def ensure_r_packages(
    packages: Sequence[str],
    rscript: Optional[str] = None,
    install: bool = False,
    repo: str = "https://cloud.r-project.org",
) -> None:
    """
    Make sure Rscript and the given R packages are available.
    Raises DependencyMissing if anything is still missing afterwards.
    """
    rscript = resolve_rscript(rscript)
    missing = check_r_packages(packages, rscript=rscript)
    if missing and install:
        try:
            _install_packages(rscript, missing, repo)
        except subprocess.CalledProcessError as e:
            log.error("Install of %s failed: %s", ", ".join(missing), (e.stderr or "").strip())
        missing = check_r_packages(packages, rscript=rscript)
    if missing:
        raise DependencyMissing(missing)


class RenderValidator:
    def __init__(
        self,
        rscript: Optional[str] = None,
        quiet: bool = True,
        timeout: Optional[int] = None,
    ):
        """
        Renders notebooks with rmarkdown in a fresh environment.
        Rscript is looked up lazily, on the first validation.
        """
        self._rscript = rscript
        self.quiet = quiet
        self.timeout = timeout

    @property
    def rscript(self) -> str:
        if self._rscript is None:
            self._rscript = resolve_rscript()
        return self._rscript

    def render_expr(self, path: Path) -> str:
        quiet = "TRUE" if self.quiet else "FALSE"
        return f"rmarkdown::render({_r_str(str(path))}, envir = new.env(), quiet = {quiet})"

    def validate(self, path: Path) -> None:
        path = Path(path)
        log.info("Rendering %s", path)
        try:
            proc = _run_r(self.rscript, self.render_expr(path), timeout=self.timeout)
        except subprocess.TimeoutExpired:
            raise RenderError(path, None, f"timed out after {self.timeout}s") from None
        if proc.returncode != 0:
            raise RenderError(path, proc.returncode, proc.stderr or "")
