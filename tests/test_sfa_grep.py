import json
import os
import sys

import pytest

import sfa_grep
from sfa_grep import make_snippet, search_file, search_project
from sfa_runtime import InvalidArgument, NotFound, ReadFailed


@pytest.fixture
def sample(tmp_path):
    f = tmp_path / "sample.txt"
    f.write_text("foo\nbar baz\nFOO again\n")
    return f


def test_case_insensitive_matches_in_file_order(sample):
    matches = search_file(str(sample), "foo")
    assert [(m.line, m.snippet) for m in matches] == [(1, "foo"), (3, "FOO again")]
    assert [m.to_dict() for m in matches] == [
        {"line": 1, "snippet": "foo"},
        {"line": 3, "snippet": "FOO again"},
    ]


def test_no_matches_is_empty_not_error(sample):
    assert search_file(str(sample), "quux") == []


def test_blank_lines_are_counted(tmp_path):
    f = tmp_path / "gaps.txt"
    f.write_text("\n\n   needle   \n")
    matches = search_file(str(f), "NEEDLE")
    assert matches[0].line == 3
    assert matches[0].snippet == "needle"


def test_max_matches_stops_early(tmp_path):
    f = tmp_path / "many.txt"
    f.write_text("hit\n" * 100)
    assert len(search_file(str(f), "hit", max_matches=3)) == 3
    assert len(search_file(str(f), "hit", max_matches=500)) == 50
    assert len(search_file(str(f), "hit", max_matches=0)) == 1


@pytest.mark.parametrize("query", ["", "   ", "\t"])
def test_empty_query_rejected(sample, query):
    with pytest.raises(InvalidArgument):
        search_file(str(sample), query)


def test_missing_file(tmp_path):
    with pytest.raises(NotFound):
        search_file(str(tmp_path / "nope.txt"), "foo")


def test_snippet_truncation():
    long_line = "  " + "x" * 100 + "  "
    assert make_snippet(long_line, 40) == "x" * 40 + "..."
    assert make_snippet("x" * 40, 40) == "x" * 40


@pytest.mark.parametrize("requested,effective", [(10, 40), (40, 40), (120, 120), (9999, 400)])
def test_snippet_length_never_exceeds_cap(tmp_path, requested, effective):
    f = tmp_path / "long.txt"
    f.write_text("match " + "y" * 1000 + "\nmatch short\n")
    long_hit, short_hit = search_file(str(f), "match", snippet_chars=requested)
    assert len(long_hit.snippet) == effective + len("...")
    assert long_hit.snippet.endswith("...")
    assert short_hit.snippet == "match short"


def test_project_search_reports_file_and_skips_artifacts(source_tree):
    matches = search_project(str(source_tree), "widget")
    assert matches
    for m in matches:
        assert set(m.to_dict()) == {"file", "line", "snippet"}
        for excluded in ("/bin/", "/obj/", "/.git/"):
            assert excluded not in m.source


def test_project_search_extension_filter(source_tree):
    matches = search_project(str(source_tree), "render", extension=".cs")
    assert [m.line for m in matches] == [3]
    assert matches[0].source.endswith("src/Widget.cs")


def test_project_search_cap_binds_mid_tree(source_tree):
    matches = search_project(str(source_tree), "widget", limit=1)
    assert len(matches) == 1


def test_project_search_orders_by_file_then_line(tmp_path):
    (tmp_path / "a.txt").write_text("hit 1\nmiss\nhit 3\n")
    (tmp_path / "b.txt").write_text("hit 1\n")
    matches = search_project(str(tmp_path), "hit")
    assert [(m.source.rsplit("/", 1)[-1], m.line) for m in matches] == [
        ("a.txt", 1), ("a.txt", 3), ("b.txt", 1),
    ]


@pytest.mark.skipif(sys.platform == "win32" or os.geteuid() == 0,
                    reason="needs POSIX permissions and a non-root user")
def test_project_search_skips_unreadable_files(tmp_path):
    (tmp_path / "a.txt").write_text("hit\n")
    locked = tmp_path / "b.txt"
    locked.write_text("hit\n")
    locked.chmod(0)
    try:
        matches = search_project(str(tmp_path), "hit")
    finally:
        locked.chmod(0o644)
    assert [m.source.rsplit("/", 1)[-1] for m in matches] == ["a.txt"]


def test_project_search_missing_root(tmp_path):
    with pytest.raises(NotFound):
        search_project(str(tmp_path / "nope"), "x")


def test_project_search_empty_query(source_tree):
    with pytest.raises(InvalidArgument):
        search_project(str(source_tree), " ")


def test_cli_file_search(sample, monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["sfa_grep.py", "file", str(sample), "foo"])
    sfa_grep.main()
    output = json.loads(capsys.readouterr().out)
    assert [m["line"] for m in output] == [1, 3]


def test_cli_project_search(source_tree, monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", [
        "sfa_grep.py", "project", "render", "--path", str(source_tree), "--ext", "cs",
    ])
    sfa_grep.main()
    output = json.loads(capsys.readouterr().out)
    assert output[0]["file"].endswith("Widget.cs")
    assert output[0]["snippet"] == "public void Render()"


def test_cli_empty_query(sample, monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["sfa_grep.py", "file", str(sample), ""])
    with pytest.raises(SystemExit):
        sfa_grep.main()
    assert json.loads(capsys.readouterr().out) == {"error": "Query was empty.", "kind": "invalid_argument"}


def broken_lines(path):
    raise OSError(5, "Input/output error")
    yield


def test_read_error_in_single_file_becomes_read_failed(sample, monkeypatch):
    monkeypatch.setattr(sfa_grep, "iter_lines", broken_lines)
    with pytest.raises(ReadFailed) as exc:
        search_file(str(sample), "foo")
    assert exc.value.to_dict()["kind"] == "read_failed"


def test_project_search_skips_files_that_fail_to_read(tmp_path, monkeypatch):
    (tmp_path / "a.txt").write_text("hit\n")
    (tmp_path / "b.txt").write_text("hit\n")
    real_iter_lines = sfa_grep.iter_lines

    def deny_b(path):
        if path.name == "b.txt":
            raise PermissionError(13, "Permission denied", str(path))
        return real_iter_lines(path)

    monkeypatch.setattr(sfa_grep, "iter_lines", deny_b)
    matches = search_project(str(tmp_path), "hit")
    assert [m.source.rsplit("/", 1)[-1] for m in matches] == ["a.txt"]


def test_cli_read_error_exits_with_json(sample, monkeypatch, capsys):
    monkeypatch.setattr(sfa_grep, "iter_lines", broken_lines)
    monkeypatch.setattr(sys, "argv", ["sfa_grep.py", "file", str(sample), "foo"])
    with pytest.raises(SystemExit) as exc:
        sfa_grep.main()
    assert exc.value.code == 1
    assert json.loads(capsys.readouterr().out)["kind"] == "read_failed"
