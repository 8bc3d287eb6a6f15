import exercise.cli_make_live as cli
from common.errors import DependencyMissing

LIVE = "```{r a, live = TRUE}\n# read the counts\ncounts <- readr::read_tsv(path)\n```\n"


def test_cli_converts_named_notebooks(tmp_path):
    (tmp_path / "nb.Rmd").write_text(LIVE)
    code = cli.main(
        [
            "--root",
            str(tmp_path),
            "--config",
            str(tmp_path / "none.yaml"),
            "--no-render",
            "--manifest",
            str(tmp_path / "manifest.json"),
            "nb.Rmd",
        ]
    )
    assert code == 0
    assert (tmp_path / "nb-live.Rmd").read_text() == "```{r a}\n# read the counts\n```\n"
    assert (tmp_path / "manifest.json").exists()


def test_cli_uses_configured_batch(tmp_path):
    (tmp_path / "area").mkdir()
    (tmp_path / "area" / "one.Rmd").write_text(LIVE)
    config = tmp_path / "config.yaml"
    config.write_text("batch:\n  groups:\n    - area: area\n      notebooks: [one.Rmd]\n")
    code = cli.main(["--root", str(tmp_path), "--config", str(config), "--no-render"])
    assert code == 0
    assert (tmp_path / "area" / "one-live.Rmd").exists()


def test_cli_reports_failures(tmp_path):
    (tmp_path / "bad.Rmd").write_text("```{r\n")
    (tmp_path / "good.Rmd").write_text(LIVE)
    args = ["--root", str(tmp_path), "--config", str(tmp_path / "none.yaml"), "--no-render"]
    assert cli.main(args + ["bad.Rmd", "good.Rmd"]) == 1
    assert (tmp_path / "good-live.Rmd").exists()
    assert cli.main(args + ["--fail-fast", "good.Rmd", "missing.Rmd"]) == 1


def test_cli_missing_root(tmp_path):
    assert cli.main(["--root", str(tmp_path / "nope"), "--no-render"]) == 1


def test_cli_preflight_failure(tmp_path, monkeypatch):
    def missing(*args, **kwargs):
        raise DependencyMissing(["rmarkdown"])

    monkeypatch.setattr(cli, "ensure_r_packages", missing)
    code = cli.main(["--root", str(tmp_path), "--config", str(tmp_path / "none.yaml")])
    assert code == 2
