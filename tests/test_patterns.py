"""Tests for pattern learning and similarity checks."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import pytest

from memguard.checks.base import Severity
from memguard.config import PatternConfig
from memguard.memory.models import Category, Importance
from memguard.patterns import (
    PatternRecognizer,
    extract_snippets,
    levenshtein,
    normalize_code,
    signature,
    similarity,
)

HANDLER = """\
func Get{name}(w http.ResponseWriter, r *http.Request) {{
    id := r.URL.Query().Get("{param}")
    item, err := store.Find(id, {limit})
    if err != nil {{
        http.Error(w, err.Error(), 500)
        return
    }}
    json.NewEncoder(w).Encode(item)
}}
"""

ODD = """\
func stop() {
    os.Exit(1)
}
"""


def _handler(param: str = "id", limit: int = 10) -> str:
    return HANDLER.format(name="Item", param=param, limit=limit)


class TestNormalization:
    def test_literals_and_comments(self):
        code = 'x := "hello" // greet\ny := 42 /* answer */\nz := 0x1F'
        assert normalize_code(code) == 'x := "" y := 0 z := 0'

    def test_python_comments_and_docstrings(self):
        code = 'def f():\n    """Doc."""\n    # note\n    return 3\n'
        assert normalize_code(code, "indent") == 'def f(): "" return 0'

    def test_signature_is_bounded(self):
        code = "\n".join(f"line{i} = {i}" for i in range(10))
        sig = signature(code, lines=5, chars=30)
        assert sig.count("\n") <= 4
        assert len(sig) <= 30

    def test_literal_changes_keep_signature(self):
        assert signature(_handler("id", 10)) == signature(_handler("key", 99))


class TestDistance:
    def test_levenshtein(self):
        assert levenshtein("kitten", "sitting") == 3
        assert levenshtein("", "abc") == 3
        assert levenshtein("same", "same") == 0

    def test_similarity(self):
        assert similarity("abcd", "abcd") == 1.0
        assert similarity("", "") == 1.0
        assert similarity("abcd", "wxyz") == 0.0
        assert similarity("abcd", "abcx") == pytest.approx(0.75)


class TestExtractSnippets:
    def test_brace_language(self):
        text = "package x\n\n" + _handler() + "\nfunc other() {\n    return\n}\n"
        snippets = extract_snippets(text, "go")
        assert [s.line for s in snippets] == [3, 13]
        assert snippets[0].text.startswith("func GetItem")
        assert snippets[0].text.endswith("}")

    def test_declaration_without_body_skipped(self):
        text = "public interface A {\n    public void run();\n    public void go() {\n    }\n}\n"
        snippets = extract_snippets(text, "java")
        assert [s.line for s in snippets] == [3]

    def test_python_indentation(self):
        text = "import os\n\ndef a():\n    x = 1\n\n    return x\n\ndef b():\n    pass\n"
        snippets = extract_snippets(text, "python")
        assert [(s.line, s.line_count) for s in snippets] == [(3, 4), (8, 2)]

    def test_unknown_language(self):
        assert extract_snippets("function f() {}", "cobol") == []


class TestRecognizer:
    def _seed(self, recognizer: PatternRecognizer, count: int = 5) -> None:
        for i in range(count):
            recognizer.observe(_handler(f"p{i}", i), "go", f"handlers/file{i % 2}.go")

    def test_recognized_after_three_in_two_files(self):
        recognizer = PatternRecognizer()
        recognizer.observe(_handler(), "go", "a.go")
        recognizer.observe(_handler(), "go", "a.go")
        recognizer.observe(_handler(), "go", "a.go")
        assert recognizer.recognized("go") == []
        recognizer.observe(_handler(), "go", "b.go")
        patterns = recognizer.recognized("go")
        assert len(patterns) == 1
        assert patterns[0].label == "Common pattern 1"
        assert patterns[0].files == ["a.go", "b.go"]
        assert patterns[0].frequency == 4

    def test_short_snippets_ignored(self):
        recognizer = PatternRecognizer()
        assert recognizer.observe("f()", "go", "a.go") is None

    def test_divergent_snippet_flagged(self):
        recognizer = PatternRecognizer()
        self._seed(recognizer)
        diagnostic = recognizer.check_snippet(ODD, "go", line=7)
        assert diagnostic is not None
        assert diagnostic.severity is Severity.INFO
        assert "Common pattern 1" in diagnostic.message
        assert diagnostic.line == 7

    def test_similar_snippet_passes(self):
        recognizer = PatternRecognizer()
        self._seed(recognizer)
        assert recognizer.check_snippet(_handler("other", 3), "go") is None

    def test_no_common_pattern_no_diagnostic(self):
        recognizer = PatternRecognizer()
        self._seed(recognizer, count=4)  # recognized, but not yet common
        assert recognizer.common("go") == []
        assert recognizer.check(ODD, "go") == []

    def test_check_whole_file(self):
        recognizer = PatternRecognizer()
        self._seed(recognizer)
        text = "package x\n\n" + _handler() + "\n" + ODD
        diagnostics = recognizer.check(text, "go")
        assert [d.line for d in diagnostics] == [13]

    def test_pattern_ids_are_stable(self):
        a, b = PatternRecognizer(), PatternRecognizer()
        self._seed(a)
        self._seed(b)
        assert a.recognized("go")[0].id == b.recognized("go")[0].id

    def test_to_records(self):
        recognizer = PatternRecognizer()
        self._seed(recognizer)
        records = recognizer.to_records()
        assert len(records) == 1
        record = records[0]
        assert record.id.startswith("pattern-")
        assert record.category is Category.CODE_STYLE
        assert record.importance is Importance.MEDIUM
        assert record.tags == frozenset({"code-pattern", "go", "auto-detected"})
        assert record.confidence == 0.5

    def test_restore_from_records(self):
        learned = PatternRecognizer()
        self._seed(learned)
        records = learned.to_records()

        fresh = PatternRecognizer()
        assert fresh.restore(records) == 1
        pattern = fresh.common("go")[0]
        assert pattern.frequency == 5
        assert pattern.files == ["handlers/file0.go", "handlers/file1.go"]
        diagnostic = fresh.check_snippet(ODD, "go")
        assert diagnostic is not None
        assert diagnostic.record_id == records[0].id
        assert fresh.check_snippet(_handler("other", 3), "go") is None

    def test_restore_is_idempotent(self):
        learned = PatternRecognizer()
        self._seed(learned)
        assert learned.restore(learned.to_records()) == 0
        fresh = PatternRecognizer()
        fresh.restore(learned.to_records())
        assert fresh.restore(learned.to_records()) == 0
        assert len(fresh.recognized("go")) == 1

    def test_restore_ignores_other_memories(self, make_record):
        learned = PatternRecognizer()
        self._seed(learned)
        garbled = replace(learned.to_records()[0], content="edited by hand")
        records = [make_record("禁止使用 panic(", "code-style", "high"), garbled]
        assert PatternRecognizer().restore(records) == 0

    def test_config_thresholds(self):
        recognizer = PatternRecognizer(PatternConfig(min_occurrences=2, min_files=1))
        recognizer.observe(_handler(), "go", "a.go")
        recognizer.observe(_handler(), "go", "a.go")
        assert len(recognizer.recognized("go")) == 1


class TestScanWorkspace:
    def test_scans_and_skips(self, tmp_path: Path):
        for i in range(3):
            (tmp_path / f"h{i}.go").write_text("package x\n\n" + _handler(f"p{i}"), encoding="utf-8")
        sub = tmp_path / "api"
        sub.mkdir()
        (sub / "h.go").write_text("package api\n\n" + _handler() + "\n" + _handler("q"), encoding="utf-8")
        vendored = tmp_path / "vendor"
        vendored.mkdir()
        (vendored / "lib.go").write_text("package lib\n\n" + _handler(), encoding="utf-8")
        (tmp_path / "notes.txt").write_text("not code", encoding="utf-8")

        recognizer = PatternRecognizer()
        counts = recognizer.scan_workspace(tmp_path)
        assert counts == {"go": 4}
        pattern = recognizer.recognized("go")[0]
        assert pattern.frequency == 5
        assert "vendor/lib.go" not in pattern.files

    def test_file_limit_per_language(self, tmp_path: Path):
        for i in range(4):
            (tmp_path / f"h{i}.go").write_text("package x\n\n" + _handler(), encoding="utf-8")
        recognizer = PatternRecognizer(PatternConfig(max_files_per_language=2))
        assert recognizer.scan_workspace(tmp_path) == {"go": 2}
