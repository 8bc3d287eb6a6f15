from __future__ import annotations

import argparse
from pathlib import Path

from common.config import load_yaml_config
from common.errors import DependencyMissing, MakeLiveError
from common.logger import get_logger
from common.settings import settings
from exercise.batch import run_batch, write_manifest
from exercise.generator import ExerciseGenerator
from exercise.renderer import ensure_r_packages

log = get_logger(__name__)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Make live (exercise) versions of .Rmd training notebooks."
    )
    parser.add_argument(
        "--root",
        type=str,
        default=str(settings.root_dir),
        help="Repository root that notebook paths are relative to",
    )
    parser.add_argument(
        "--config", type=str, default=str(settings.config_path), help="YAML config"
    )
    parser.add_argument(
        "--no-render",
        action="store_true",
        help="Skip rendering the notebooks before transforming them",
    )
    parser.add_argument("--fail-fast", action="store_true", help="Stop at the first failure")
    parser.add_argument(
        "--install-missing",
        action="store_true",
        help="Install missing R packages before rendering",
    )
    parser.add_argument("--manifest", type=str, default="", help="Optional manifest JSON path")
    parser.add_argument(
        "notebooks", nargs="*", help="Notebooks to convert (default: configured batch)"
    )
    args = parser.parse_args(argv)

    config = load_yaml_config(Path(args.config))
    root = Path(args.root)
    if not root.is_dir():
        log.error("Root directory does not exist: %s", root)
        return 1

    render = config.render.enabled and not args.no_render
    if render:
        try:
            ensure_r_packages(
                config.render.required_packages,
                rscript=config.render.rscript,
                install=args.install_missing or config.render.install_missing,
                repo=config.render.cran_repo,
            )
        except DependencyMissing as e:
            log.error("%s", e)
            return 2

    generator = ExerciseGenerator.from_config(root, config, render=render)
    sources = args.notebooks or config.batch.sources()
    try:
        report = run_batch(
            generator,
            sources,
            validate=render,
            fail_fast=args.fail_fast or config.batch.fail_fast,
        )
    except (MakeLiveError, OSError) as e:
        log.error("Stopping: %s", e)
        return 1

    manifest = Path(args.manifest) if args.manifest else config.app.manifest_path
    if manifest:
        write_manifest(report, manifest)

    return 0 if report.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
