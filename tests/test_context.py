"""Tests for context bundle compression and injection."""

from __future__ import annotations

import pytest

from memguard.config import CompressionConfig
from memguard.context import (
    ELISION,
    FOOTER_MARKER,
    HEADER_MARKER,
    LEGACY_MARKER,
    ContextCompressor,
    compress_light,
    estimate_tokens,
    inject,
    is_injected,
    render_as_comment,
)


@pytest.fixture
def compressor() -> ContextCompressor:
    return ContextCompressor()


class TestEstimateTokens:
    def test_words(self):
        assert estimate_tokens("hello world") == 2

    def test_cjk(self):
        assert estimate_tokens("订单金额") == 6

    def test_mixed_rounds_up(self):
        assert estimate_tokens("订 total") == 3  # 1.5 + 1 → 2.5 → 3

    def test_punctuation_only(self):
        assert estimate_tokens("=== --- ✓") == 0
        assert estimate_tokens("") == 0


class TestCompressHelpers:
    def test_light_collapses_whitespace(self):
        assert compress_light("  a\n\n  b\tc ") == "a b c"

    def test_aggressive_strips_zh_fillers(self, compressor):
        assert compressor.compress_aggressive("我的代码和你的代码") == "我代码你代码"

    def test_aggressive_strips_en_fillers(self, compressor):
        assert compressor.compress_aggressive("Please use the logger") == "use logger"

    def test_aggressive_elides_long_content(self, compressor):
        result = compressor.compress_aggressive("x" * 300)
        assert result == "x" * 100 + ELISION + "x" * 100

    def test_aggressive_keeps_short_content(self, compressor):
        assert compressor.compress_aggressive("keep errors wrapped") == "keep errors wrapped"


class TestCompress:
    def test_empty_selection(self, compressor):
        assert compressor.compress([]) == ""

    def test_low_records_never_bundled(self, compressor, make_record):
        assert compressor.compress([make_record("minor", importance="low")]) == ""

    def test_small_critical_set_in_full(self, compressor, make_record):
        records = [
            make_record(f"Rule {i}: wrap every error with context before returning it", importance="critical")
            for i in range(3)
        ]
        bundle = compressor.compress(records, 2000)
        assert HEADER_MARKER in bundle
        assert FOOTER_MARKER in bundle
        assert "[CRITICAL] MUST FOLLOW - DO NOT VIOLATE:" in bundle
        for record in records:
            assert f"✓ {record.content}" in bundle
        assert ELISION not in bundle

    def test_tiers_in_order_with_bullets(self, compressor, make_record):
        records = [
            make_record("medium rule", importance="medium"),
            make_record("high rule", importance="high"),
            make_record("critical rule", importance="critical"),
        ]
        bundle = compressor.compress(records)
        assert bundle.index("✓ critical rule") < bundle.index("• high rule") < bundle.index("- medium rule")
        assert bundle.index("[HIGH] STRONGLY RECOMMENDED:") < bundle.index("[MEDIUM] RECOMMENDED:")

    def test_within_tier_order_preserved(self, compressor, make_record):
        records = [make_record(f"high {i}", importance="high") for i in range(4)]
        bundle = compressor.compress(records)
        positions = [bundle.index(f"• high {i}") for i in range(4)]
        assert positions == sorted(positions)

    def test_budget_respected(self, compressor, make_record):
        records = [make_record(f"note {i} " + "word " * 60, importance="medium") for i in range(10)]
        bundle = compressor.compress(records, 300)
        assert estimate_tokens(bundle) <= 300
        assert "- note 0 " in bundle
        assert "- note 9 " not in bundle

    def test_budget_overflow_skips_later_tiers(self, compressor, make_record):
        records = [
            make_record("high " + "word " * 200, importance="high"),
            make_record("medium fits", importance="medium"),
        ]
        bundle = compressor.compress(records, 100)
        assert "medium fits" not in bundle

    def test_critical_forced_in_aggressive_form(self, compressor, make_record):
        records = [make_record(f"rule{i} " + "token " * 299, importance="critical") for i in range(15)]
        bundle = compressor.compress(records, 500)
        for i in range(15):
            assert f"✓ rule{i} " in bundle
        assert bundle.count(ELISION) >= 14
        assert bundle.count("✓") == 15

    def test_critical_cap(self, make_record):
        compressor = ContextCompressor(CompressionConfig(critical_cap=20))
        records = [make_record(f"c{i}", importance="critical") for i in range(25)]
        bundle = compressor.compress(records)
        assert bundle.count("✓") == 20
        assert "✓ c19" in bundle
        assert "✓ c20" not in bundle

    def test_deterministic_markers(self, compressor, make_record):
        records = [make_record("one", importance="critical"), make_record("two", importance="high")]
        assert compressor.compress(records, 200) == compressor.compress(records, 200)

    def test_accepts_dicts(self, compressor):
        bundle = compressor.compress(
            [{"id": "d1", "content": "from dict", "category": "other", "importance": "high"}, {"id": "bad"}]
        )
        assert "• from dict" in bundle


class TestInjection:
    BUNDLE = f"{HEADER_MARKER}\n\nrule\n"

    def test_go_comments(self):
        rendered = render_as_comment(self.BUNDLE, "go")
        assert rendered.split("\n") == [f"// {HEADER_MARKER}", "", "// rule"]

    def test_python_and_html_comments(self):
        assert render_as_comment("rule", "python") == "# rule"
        assert render_as_comment("rule", "html") == "<!-- rule -->"

    def test_inject_is_idempotent(self):
        doc = "package main\n"
        once = inject(doc, self.BUNDLE, "go")
        assert once.startswith(f"// {HEADER_MARKER}")
        assert once.endswith(doc)
        assert is_injected(once)
        assert inject(once, self.BUNDLE, "go") == once

    def test_legacy_marker_counts_as_injected(self):
        doc = f"// {LEGACY_MARKER}\npackage main\n"
        assert inject(doc, self.BUNDLE, "go") == doc

    def test_empty_bundle_leaves_document(self):
        assert inject("x = 1\n", "", "python") == "x = 1\n"
