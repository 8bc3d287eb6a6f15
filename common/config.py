from __future__ import annotations

from pathlib import Path
from typing import Dict, List

import yaml
from pydantic import BaseModel, Field

from common.logger import get_logger
from common.settings import settings

log = get_logger(__name__)

# Single-line comment marker per knitr engine
DEFAULT_COMMENT_MARKERS: Dict[str, str] = {
    "r": "#",
    "python": "#",
    "bash": "#",
    "sh": "#",
    "zsh": "#",
    "perl": "#",
    "ruby": "#",
    "sql": "--",
    "rcpp": "//",
    "cpp": "//",
    "c": "//",
    "js": "//",
    "stan": "//",
}


class AppConfig(BaseModel):
    output_suffix: str = Field(default="-live", min_length=1)
    manifest_path: Path | None = None


class ExerciseConfig(BaseModel):
    replace_flags: List[str] = Field(default_factory=lambda: ["live"])
    remove_flags: List[str] = Field(default_factory=list)
    comment_markers: Dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_COMMENT_MARKERS)
    )


class RenderConfig(BaseModel):
    enabled: bool = True
    rscript: str | None = None
    quiet: bool = True
    timeout: int | None = None
    required_packages: List[str] = Field(default_factory=lambda: ["rmarkdown"])
    install_missing: bool = False
    cran_repo: str = "https://cloud.r-project.org"


class NotebookGroup(BaseModel):
    area: str
    notebooks: List[str]

    def paths(self) -> List[Path]:
        return [Path(self.area) / name for name in self.notebooks]


def _default_groups() -> List[NotebookGroup]:
    return [
        NotebookGroup(
            area="intro-to-R-tidyverse",
            notebooks=[
                "01-intro_to_base_R.Rmd",
                "02-intro_to_ggplot2.Rmd",
                "03-intro_to_tidyverse.Rmd",
            ],
        ),
        NotebookGroup(
            area="RNA-seq",
            notebooks=[
                "02-gastric_cancer_tximport.Rmd",
                "03-gastric_cancer_exploratory.Rmd",
                "05-nb_cell_line_DESeq2.Rmd",
            ],
        ),
    ]


class BatchConfig(BaseModel):
    fail_fast: bool = False
    groups: List[NotebookGroup] = Field(default_factory=_default_groups)

    def sources(self) -> List[Path]:
        return [p for g in self.groups for p in g.paths()]


class GlobalYAMLConfig(BaseModel):
    app: AppConfig = Field(default_factory=AppConfig)
    exercise: ExerciseConfig = Field(default_factory=ExerciseConfig)
    render: RenderConfig = Field(default_factory=RenderConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)


def load_yaml_config(path: Path = settings.config_path) -> GlobalYAMLConfig:
    path = Path(path)
    if not path.exists():
        log.debug("No config file at %s, using defaults", path)
        return GlobalYAMLConfig()
    with open(path, "r") as f:
        raw = yaml.safe_load(f) or {}
    return GlobalYAMLConfig(**raw)


yaml_config = load_yaml_config()
