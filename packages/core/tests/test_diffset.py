"""Tests for FileDiffSet: ignore filtering, per-file error isolation, ordering."""

import pytest

from prscribe_core.diffset import FileDiffSet
from prscribe_core.errors import DiffRetrievalError

A_DIFF = "--- a/a.js\n+++ b/a.js\n@@ -1,2 +1,3 @@\n one\n+two\n three"
WHOLE_DIFF = "diff --git a/a.js b/a.js\n..."


class FakeSource:
    def __init__(self, paths, diffs=None, failing=()):
        self.paths = paths
        self.diffs = diffs or {}
        self.failing = set(failing)
        self.calls = []

    def list_changed_paths(self, base, head):
        return list(self.paths)

    def diff_range(self, base, head, path=None):
        self.calls.append((base, head, path))
        if path is None:
            return WHOLE_DIFF
        if path in self.failing:
            raise DiffRetrievalError("boom", path=path)
        return self.diffs.get(path, A_DIFF)


def test_ignored_path_is_excluded():
    source = FakeSource(["a.js", "secrets.env"])
    result = FileDiffSet(source).compute("c1", "c3", {"secrets.env"})
    assert [fd.path for fd in result.per_file] == ["a.js"]
    assert result.ignored == ("secrets.env",)
    assert ("c1", "c3", "secrets.env") not in source.calls


def test_ignore_patterns_are_trimmed_and_exact():
    source = FakeSource(["config/secrets.env", "secrets.env"])
    result = FileDiffSet(source).compute("c1", "c3", {"  secrets.env  "})
    assert [fd.path for fd in result.per_file] == ["config/secrets.env"]


def test_ignore_file_itself_is_never_reviewed():
    source = FakeSource(["a.js", ".prscribe-ignore"])
    result = FileDiffSet(source, ignore_file=".prscribe-ignore").compute("c1", "c3", set())
    assert [fd.path for fd in result.per_file] == ["a.js"]


def test_order_follows_source():
    source = FakeSource(["z.py", "a.py", "m.py"])
    result = FileDiffSet(source).compute("c1", "c3")
    assert [fd.path for fd in result.per_file] == ["z.py", "a.py", "m.py"]


def test_failed_file_is_reported_and_skipped():
    source = FakeSource(["a.py", "b.py", "c.py"], failing={"b.py"})
    result = FileDiffSet(source).compute("c1", "c3")
    assert [fd.path for fd in result.per_file] == ["a.py", "c.py"]
    assert [e.path for e in result.errored] == ["b.py"]


def test_malformed_hunk_header_is_reported_and_skipped():
    source = FakeSource(["a.py", "b.py"], diffs={"b.py": "@@ nonsense @@\n+x"})
    result = FileDiffSet(source).compute("c1", "c3")
    assert [fd.path for fd in result.per_file] == ["a.py"]
    assert result.errored[0].path == "b.py"
    assert "Malformed hunk header" in result.errored[0].error


def test_empty_change_set_is_valid():
    result = FileDiffSet(FakeSource([])).compute("c1", "c3")
    assert result.per_file == ()
    assert result.whole_range_diff == WHOLE_DIFF


def test_all_files_ignored_is_valid():
    result = FileDiffSet(FakeSource(["secrets.env"])).compute("c1", "c3", {"secrets.env"})
    assert result.per_file == ()


def test_whole_range_diff_uses_synopsis_base_when_given():
    source = FakeSource(["a.js"])
    FileDiffSet(source).compute("c2", "c3", synopsis_base="c0")
    assert ("c0", "c3", None) in source.calls
    assert ("c2", "c3", "a.js") in source.calls


def test_whole_range_diff_defaults_to_base():
    source = FakeSource(["a.js"])
    FileDiffSet(source).compute("c1", "c3")
    assert ("c1", "c3", None) in source.calls


def test_listing_failure_propagates():
    class BrokenSource(FakeSource):
        def list_changed_paths(self, base, head):
            raise DiffRetrievalError("bad revision")

    with pytest.raises(DiffRetrievalError):
        FileDiffSet(BrokenSource([])).compute("c1", "c3")


def test_listed_path_with_empty_diff_is_reported():
    source = FakeSource(["a.py", "gone.py"], diffs={"gone.py": ""})
    result = FileDiffSet(source).compute("c1", "c3")
    assert [fd.path for fd in result.per_file] == ["a.py"]
    assert [e.path for e in result.errored] == ["gone.py"]
    assert "no output" in result.errored[0].error
