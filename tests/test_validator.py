"""Tests for the validation pipeline."""

from __future__ import annotations

from memguard.checks.base import Diagnostic, Severity
from memguard.patterns import PatternRecognizer
from memguard.validator import ValidationResult, Validator, default_checks

GO_PANIC = "package main\n\nfunc run() {\n\tpanic(err)\n}\n"


class RecordingCheck:
    name = "recording"

    def __init__(self):
        self.seen = []

    def run(self, features, records):
        self.seen.append((features.language, [r.id for r in records]))
        return [Diagnostic(severity=Severity.WARNING, message="seen", line=1)]


class TestValidationResult:
    def test_summary_counts(self):
        result = ValidationResult.from_diagnostics(
            [
                Diagnostic(Severity.ERROR, "a"),
                Diagnostic(Severity.WARNING, "b"),
                Diagnostic(Severity.WARNING, "c"),
            ]
        )
        assert not result.passed
        assert result.summary == "Validation failed | errors: 1 | warnings: 2 | info: 0"
        assert result.count(Severity.WARNING) == 2

    def test_empty_passes(self):
        result = ValidationResult.from_diagnostics([])
        assert result.passed
        assert result.summary == "Validation passed | errors: 0 | warnings: 0 | info: 0"


class TestValidator:
    def test_forbidden_panic_single_error(self, make_record):
        record = make_record("禁止使用 panic(", "architecture", "critical")
        result = Validator().validate(GO_PANIC, "main.go", None, [record])
        assert not result.passed
        assert len(result.diagnostics) == 1
        d = result.diagnostics[0]
        assert d.severity is Severity.ERROR
        assert d.record_id == record.id

    def test_important_is_not_an_import_rule(self, make_record):
        record = make_record("Important: never use panic(.", "architecture", "critical")
        result = Validator().validate(GO_PANIC, "main.go", None, [record])
        assert [(d.severity, d.line, d.source) for d in result.diagnostics] == [
            (Severity.ERROR, 4, "memguard.constraints")
        ]

    def test_mixed_import_and_code_record(self, make_record):
        record = make_record("Do not import unsafe. Never use panic(.", "architecture", "critical")
        code = 'package main\n\nimport "unsafe"\n\nfunc run() {\n\tpanic(err)\n}\n'
        result = Validator().validate(code, "main.go", None, [record])
        assert sorted((d.line, d.source) for d in result.diagnostics) == [
            (3, "memguard.dependencies"),
            (6, "memguard.constraints"),
        ]
        assert result.count(Severity.ERROR) == 2

    def test_snake_case_function_in_camel_language(self):
        code = "function get_user(id) {\n  return id;\n}\n"
        result = Validator().validate(code, "src/user.js", None, [])
        assert [d.severity for d in result.diagnostics] == [Severity.WARNING]
        assert "get_user" in result.diagnostics[0].message
        assert result.passed

    def test_deterministic(self, make_record):
        corpus = [
            make_record("禁止使用 panic(", "architecture", "critical"),
            make_record("必须使用 context.Context", "constraint", "high"),
            make_record("controller 不能依赖 model", "architecture", "critical"),
        ]
        code = 'package controller\n\nimport "shop/model"\n\nfunc get_user() {\n\tpanic(err)\n}\n'
        validator = Validator()
        first = validator.validate(code, "user_controller.go", None, corpus)
        second = validator.validate(code, "user_controller.go", None, corpus)
        assert first.diagnostics == second.diagnostics
        assert first.summary == second.summary
        assert first.count(Severity.ERROR) == 2

    def test_language_override(self, make_record):
        result = Validator().validate("function get_user() {}\n", "snippet.txt", "javascript", [])
        assert len(result.diagnostics) == 1

    def test_custom_checks_and_dict_corpus(self):
        check = RecordingCheck()
        corpus = [
            {"id": "d1", "content": "x", "category": "other", "importance": "low"},
            {"id": "broken"},
        ]
        result = Validator(checks=[check]).validate("x = 1\n", "a.py", None, corpus)
        assert check.seen == [("python", ["d1"])]
        assert [d.message for d in result.diagnostics] == ["seen"]

    def test_custom_extractor(self, make_record):
        record = make_record("禁止使用 panic(", "architecture", "critical")
        result = Validator(extractor=lambda content: []).validate(GO_PANIC, "main.go", None, [record])
        assert result.passed
        assert result.diagnostics == []

    def test_pattern_diagnostics_merged(self):
        handler = (
            "func Get(w http.ResponseWriter, r *http.Request) {\n"
            '    id := r.URL.Query().Get("id")\n'
            "    item, err := store.Find(id)\n"
            "    if err != nil {\n"
            "        return\n"
            "    }\n"
            "    json.NewEncoder(w).Encode(item)\n"
            "}\n"
        )
        patterns = PatternRecognizer()
        for i in range(5):
            patterns.observe(handler, "go", f"h{i % 2}.go")
        code = "package x\n\nfunc stop() {\n    os.Exit(1)\n}\n"
        result = Validator(patterns=patterns).validate(code, "x.go", None, [])
        assert [(d.severity, d.source) for d in result.diagnostics] == [(Severity.INFO, "memguard.patterns")]
        assert result.passed

    def test_default_check_order(self):
        assert [c.name for c in default_checks()] == [
            "constraints",
            "naming",
            "business-rules",
            "dependencies",
            "directories",
            "style",
        ]
