import json

import pytest

from common.config import DEFAULT_COMMENT_MARKERS
from common.errors import ParseError
from common.hash_utils import sha1_text
from exercise.batch import run_batch, write_manifest
from exercise.generator import ExerciseGenerator

GOOD = "```{r a, live=TRUE}\n# normalize counts\nvsd <- vst(dds)\n```\n"
BAD = "```{r a, live=TRUE}\nnever closed\n"


@pytest.fixture
def notebooks(tmp_path):
    (tmp_path / "A.Rmd").write_text(BAD)
    (tmp_path / "B.Rmd").write_text(GOOD)
    return tmp_path


def test_failure_does_not_stop_the_batch(notebooks):
    gen = ExerciseGenerator(notebooks, DEFAULT_COMMENT_MARKERS)
    report = run_batch(gen, ["A.Rmd", "B.Rmd"], validate=False)

    assert not report.ok
    assert [f.source for f in report.failures] == [notebooks / "A.Rmd"]
    assert report.failures[0].kind == "ParseError"
    assert not (notebooks / "A-live.Rmd").exists()

    (generated,) = report.generated
    assert generated.output == notebooks / "B-live.Rmd"
    expected = "```{r a}\n# normalize counts\n```\n"
    assert generated.output.read_text() == expected
    assert generated.sha1 == sha1_text(expected)


def test_fail_fast_raises_first_error(notebooks):
    gen = ExerciseGenerator(notebooks, DEFAULT_COMMENT_MARKERS)
    with pytest.raises(ParseError):
        run_batch(gen, ["A.Rmd", "B.Rmd"], validate=False, fail_fast=True)
    assert not (notebooks / "B-live.Rmd").exists()


def test_missing_file_is_recorded(notebooks):
    gen = ExerciseGenerator(notebooks, DEFAULT_COMMENT_MARKERS)
    report = run_batch(gen, ["nope.Rmd", "B.Rmd"], validate=False)
    assert report.failures[0].kind == "FileNotFoundError"
    assert len(report.generated) == 1


def test_all_good_batch_is_ok(tmp_path):
    for name in ("x.Rmd", "y.Rmd"):
        (tmp_path / name).write_text(GOOD)
    gen = ExerciseGenerator(tmp_path, DEFAULT_COMMENT_MARKERS)
    report = run_batch(gen, ["x.Rmd", "y.Rmd"], validate=False)
    assert report.ok
    assert [g.output.name for g in report.generated] == ["x-live.Rmd", "y-live.Rmd"]


def test_write_manifest(notebooks):
    gen = ExerciseGenerator(notebooks, DEFAULT_COMMENT_MARKERS)
    report = run_batch(gen, ["A.Rmd", "B.Rmd"], validate=False)
    path = write_manifest(report, notebooks / "cache" / "manifest.json")

    data = json.loads(path.read_text())
    assert data["generated"][0]["output"] == str(notebooks / "B-live.Rmd")
    assert data["failures"][0]["source"] == str(notebooks / "A.Rmd")
    assert data["failures"][0]["error"] == "ParseError"


def test_undecodable_notebook_does_not_stop_the_batch(tmp_path):
    (tmp_path / "A.Rmd").write_bytes(b"\xff\xfe bad \x80\n")
    (tmp_path / "B.Rmd").write_text(GOOD)
    gen = ExerciseGenerator(tmp_path, DEFAULT_COMMENT_MARKERS)
    report = run_batch(gen, ["A.Rmd", "B.Rmd"], validate=False)

    (failure,) = report.failures
    assert failure.kind == "ParseError"
    assert failure.error.source == tmp_path / "A.Rmd"
    assert (tmp_path / "B-live.Rmd").exists()
