from __future__ import annotations

import json
from pathlib import Path
from typing import Callable

import pytest

import epubwc.cli as cli
from epubwc.aggregate import AggregateReport
from epubwc.core import Failure, FileResult
from epubwc.counting import CountMode, WordCount
from epubwc.errors import FailureReason


def test_text_report_lists_files_and_total(make_epub: Callable[..., Path], tmp_path: Path, capsys) -> None:
    make_epub("library/a.epub", [("ch1", "<p>one two</p>")])
    make_epub("library/sub/b.epub", [("ch1", "<p>世界</p>")])
    make_epub("library/sub/c.epub", [("ch1", "<p>x</p>")], spine=["ghost"])

    exit_code = cli.main([str(tmp_path / "library"), "--no-progress", "-j", "2"])

    assert exit_code == 0
    lines = capsys.readouterr().out.strip().splitlines()
    assert lines[0] == f"2\t{tmp_path / 'library' / 'a.epub'}"
    assert lines[1] == f"2\t{tmp_path / 'library' / 'sub' / 'b.epub'}"
    assert lines[2].startswith(f"ERROR\t{tmp_path / 'library' / 'sub' / 'c.epub'}\tdangling-spine-reference: ")
    assert lines[3] == "Total: 4 words in 2 files (1 failed)"


def test_json_report_with_documents(make_epub: Callable[..., Path], capsys) -> None:
    path = make_epub("a.epub", [("ch1", "<p>one</p>"), ("ch2", "<p>二三</p>")])

    exit_code = cli.main([str(path), "--json", "--per-document", "--no-progress"])

    assert exit_code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["mode"] == "words"
    assert payload["total"] == 3
    assert payload["cancelled"] is False
    entry = payload["files"][0]
    assert entry["ok"] is True
    assert entry["cjk"] == 2
    assert entry["other"] == 1
    assert [doc["source"] for doc in entry["documents"]] == ["OEBPS/ch1.xhtml", "OEBPS/ch2.xhtml"]


def test_chars_mode(make_epub: Callable[..., Path], capsys) -> None:
    path = make_epub("a.epub", [("ch1", "<p>ab 世界</p>")])

    assert cli.main([str(path), "-m", "chars", "--no-progress"]) == 0
    assert capsys.readouterr().out.strip().splitlines()[-1] == "Total: 4 characters in 1 file"


def test_exclude_nonlinear_flag(make_epub: Callable[..., Path], capsys) -> None:
    path = make_epub("a.epub", [("cover", "<p>Cover</p>"), ("ch1", "<p>one two</p>")], nonlinear=["cover"])

    assert cli.main([str(path), "--exclude-nonlinear", "--no-progress"]) == 0
    assert capsys.readouterr().out.strip().splitlines()[-1] == "Total: 2 words in 1 file"


def test_no_candidates_exits_non_zero(tmp_path: Path, capsys) -> None:
    (tmp_path / "notes.txt").write_text("hi", encoding="utf-8")

    assert cli.main([str(tmp_path), "--no-progress"]) == cli.EXIT_NO_INPUT
    assert capsys.readouterr().out == ""


def test_all_failed_still_reports_total(tmp_path: Path, capsys) -> None:
    broken = tmp_path / "broken.epub"
    broken.write_text("nope", encoding="utf-8")

    assert cli.main([str(broken), "--no-progress"]) == 0
    out = capsys.readouterr().out
    assert "not-an-archive" in out
    assert out.strip().splitlines()[-1] == "Total: 0 words in 0 files (1 failed)"


def test_missing_path_is_warned_and_skipped(make_epub: Callable[..., Path], tmp_path: Path, capsys) -> None:
    path = make_epub("a.epub", [("ch1", "<p>one</p>")])

    assert cli.main([str(path), str(tmp_path / "nope.epub"), "--no-progress"]) == 0
    captured = capsys.readouterr()
    assert "Path not found" in captured.err
    assert captured.out.strip().splitlines()[-1] == "Total: 1 words in 1 file"


def test_invalid_jobs_is_usage_error(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main([str(tmp_path), "-j", "0"])
    assert excinfo.value.code == 2


def test_interrupted_run_exits_130(monkeypatch, tmp_path: Path, capsys) -> None:
    report = AggregateReport(
        results=(FileResult(path=tmp_path / "a.epub", count=WordCount(other=5)),),
        cancelled=True,
    )
    monkeypatch.setattr(cli.aggregate, "run", lambda *args, **kwargs: report)

    assert cli.main([str(tmp_path), "--no-progress"]) == cli.EXIT_INTERRUPTED
    assert capsys.readouterr().out.strip().splitlines()[-1] == "Total: 5 words in 1 file [interrupted]"


def test_format_report_per_document(tmp_path: Path) -> None:
    report = AggregateReport(
        results=(
            FileResult(
                path=tmp_path / "a.epub",
                count=WordCount(cjk=1, other=2),
            ),
            FileResult(
                path=tmp_path / "b.epub",
                failure=Failure(reason=FailureReason.MALFORMED_MARKUP, message="bad"),
            ),
        ),
        mode=CountMode.WORDS,
    )
    text = cli.format_report(report)
    assert text.splitlines() == [
        f"3\t{tmp_path / 'a.epub'}",
        f"ERROR\t{tmp_path / 'b.epub'}\tmalformed-markup: bad",
        "Total: 3 words in 1 file (1 failed)",
    ]


def test_version_flag(capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--version"])
    assert excinfo.value.code == 0
    assert capsys.readouterr().out.startswith("epubwc ")
