"""Learning recurring code shapes and flagging snippets that diverge from them.

Each language keeps a frequency table keyed by the normalized signature of a
function-sized snippet. A signature seen at least `min_occurrences` times in
at least `min_files` files becomes a recognized pattern; once its frequency
reaches `common_frequency` it is "common", and new snippets are compared
against it by normalized edit distance.
"""

from __future__ import annotations

import hashlib
import logging
import os
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from memguard.checks.base import Diagnostic, Severity
from memguard.config import PatternConfig
from memguard.languages import PROFILES, detect_language, get_profile
from memguard.memory.models import Category, Importance, MemoryRecord

logger = logging.getLogger(__name__)

SKIP_DIRS = {"node_modules", "vendor", "out", "dist", "build", "__pycache__"}
MAX_SNIPPET_LINES = 200

_TRIPLE_STRING = re.compile(r'"""[\s\S]*?"""|\'\'\'[\s\S]*?\'\'\'')
_STRING = re.compile(r'"(?:\\.|[^"\\\n])*"|\'(?:\\.|[^\'\\\n])*\'|`[^`]*`')
_LINE_COMMENT = {"brace": re.compile(r"//[^\n]*"), "indent": re.compile(r"#[^\n]*")}
_BLOCK_COMMENT = re.compile(r"/\*[\s\S]*?\*/")
_NUMBER = re.compile(r"\b(?:0[xX][0-9a-fA-F]+|\d+(?:\.\d+)?)\b")

# Content of a learned-pattern memory; `restore` parses it back.
_RECORD_CONTENT = re.compile(
    r"(?P<label>.+?) \((?P<language>[^,()\s]+), seen (?P<frequency>\d+) times in \d+ files\):\n(?P<signature>.+)",
    re.DOTALL,
)


@dataclass
class Snippet:
    text: str
    line: int  # 1-based start line

    @property
    def line_count(self) -> int:
        return self.text.count("\n") + 1


@dataclass
class CodePattern:
    id: str
    language: str
    signature: str
    label: str
    frequency: int = 0
    files: list[str] = field(default_factory=list)
    examples: list[str] = field(default_factory=list)


# ── Normalization ─────────────────────────────────────────────


def normalized_lines(code: str, block_style: str = "brace") -> list[str]:
    """Code with comments stripped, literals replaced, whitespace collapsed per line."""
    text = _TRIPLE_STRING.sub('""', code)
    text = _STRING.sub('""', text)
    text = _BLOCK_COMMENT.sub("", text)
    text = _LINE_COMMENT.get(block_style, _LINE_COMMENT["brace"]).sub("", text)
    text = _NUMBER.sub("0", text)
    return [" ".join(line.split()) for line in text.splitlines() if line.strip()]


def normalize_code(code: str, block_style: str = "brace") -> str:
    return " ".join(normalized_lines(code, block_style))


def signature(code: str, block_style: str = "brace", lines: int = 5, chars: int = 100) -> str:
    """The first few normalized lines, bounded in length."""
    return "\n".join(normalized_lines(code, block_style)[:lines])[:chars].rstrip()


def levenshtein(a: str, b: str) -> int:
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + (ca != cb)))
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """1 - edit distance / longer length; two empty strings are identical."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1 - levenshtein(a, b) / longest


# ── Snippet extraction ────────────────────────────────────────


def _brace_block(lines: list[str], start: int) -> int | None:
    """Index of the last line of the brace block opened at or after `start`."""
    depth = 0
    opened = False
    for i in range(start, min(len(lines), start + MAX_SNIPPET_LINES)):
        line = _STRING.sub('""', lines[i])
        if not opened and line.rstrip().endswith(";") and "{" not in line:
            return None  # declaration without a body
        depth += line.count("{") - line.count("}")
        if "{" in line:
            opened = True
        if opened and depth <= 0:
            return i
    return None


def _indent_block(lines: list[str], start: int) -> int:
    indent = len(lines[start]) - len(lines[start].lstrip())
    end = start
    for i in range(start + 1, min(len(lines), start + MAX_SNIPPET_LINES)):
        line = lines[i]
        if not line.strip():
            continue
        if len(line) - len(line.lstrip()) <= indent:
            break
        end = i
    return end


def extract_snippets(text: str, language: str | None) -> list[Snippet]:
    """Function-sized snippets, found from each language's function-start pattern."""
    profile = get_profile(language)
    if profile.snippet_start is None:
        return []
    lines = text.splitlines()
    snippets = []
    i = 0
    while i < len(lines):
        if not profile.snippet_start.match(lines[i]):
            i += 1
            continue
        if profile.block_style == "indent":
            end = _indent_block(lines, i)
        else:
            end = _brace_block(lines, i)
            if end is None:
                i += 1
                continue
        snippets.append(Snippet(text="\n".join(lines[i : end + 1]), line=i + 1))
        i = end + 1
    return snippets


# ── Recognizer ────────────────────────────────────────────────


class PatternRecognizer:
    """Per-language frequency tables of snippet signatures."""

    def __init__(self, config: PatternConfig | None = None) -> None:
        self.config = config or PatternConfig()
        self._tables: dict[str, dict[str, CodePattern]] = {}
        self._recognized: dict[str, list[CodePattern]] = {}

    def _pattern_id(self, language: str, sig: str) -> str:
        return hashlib.sha1(f"{language}\n{sig}".encode()).hexdigest()[:12]

    def observe(self, code: str, language: str, file: str) -> CodePattern | None:
        """Count one occurrence of a snippet; returns its table entry, or None if too short."""
        cfg = self.config
        style = get_profile(language).block_style
        if len(normalize_code(code, style)) < cfg.min_snippet_length:
            return None
        sig = signature(code, style, cfg.signature_lines, cfg.signature_chars)
        table = self._tables.setdefault(language, {})
        entry = table.get(sig)
        if entry is None:
            entry = CodePattern(id=self._pattern_id(language, sig), language=language, signature=sig, label="")
            table[sig] = entry

        entry.frequency += 1
        if file not in entry.files:
            entry.files.append(file)
        if len(entry.examples) < 3:
            entry.examples.append(code)

        if (
            not entry.label
            and entry.frequency >= cfg.min_occurrences
            and len(entry.files) >= cfg.min_files
        ):
            recognized = self._recognized.setdefault(language, [])
            entry.label = f"Common pattern {len(recognized) + 1}"
            recognized.append(entry)
            logger.info(
                "Recognized %s in %s (%d occurrences, %d files)",
                entry.label,
                language,
                entry.frequency,
                len(entry.files),
            )
        return entry

    def observe_file(self, text: str, path: str, language: str | None = None) -> int:
        language = detect_language(path, language)
        snippets = extract_snippets(text, language)
        for snippet in snippets:
            self.observe(snippet.text, language, path)
        return len(snippets)

    def recognized(self, language: str | None = None) -> list[CodePattern]:
        if language is not None:
            return list(self._recognized.get(detect_language(tag=language), []))
        return [p for patterns in self._recognized.values() for p in patterns]

    def common(self, language: str) -> list[CodePattern]:
        return [p for p in self.recognized(language) if p.frequency >= self.config.common_frequency]

    def check_snippet(self, code: str, language: str, line: int | None = None) -> Diagnostic | None:
        """An info diagnostic if `code` resembles none of the language's common patterns."""
        common = self.common(language)
        if not common:
            return None
        cfg = self.config
        style = get_profile(language).block_style
        if len(normalize_code(code, style)) < cfg.min_snippet_length:
            return None
        sig = signature(code, style, cfg.signature_lines, cfg.signature_chars)
        score, best = max(((similarity(sig, p.signature), p) for p in common), key=lambda pair: pair[0])
        if score >= cfg.similarity_threshold:
            return None
        return Diagnostic(
            severity=Severity.INFO,
            message=f"Code is inconsistent with {best.label} (similarity {score:.0%})",
            line=line,
            column=1,
            record_id=f"pattern-{best.id}",
            excerpt=best.signature.split("\n", 1)[0],
            source="memguard.patterns",
            suggestion=best.examples[0] if best.examples else None,
        )

    def check(self, text: str, language: str) -> list[Diagnostic]:
        language = detect_language(tag=language)
        if not self.common(language):
            return []
        diagnostics = []
        for snippet in extract_snippets(text, language):
            d = self.check_snippet(snippet.text, language, line=snippet.line)
            if d:
                diagnostics.append(d)
        return diagnostics

    def scan_workspace(self, root: str | Path) -> dict[str, int]:
        """Observe snippets from a sample of source files under `root`.

        Returns the number of files scanned per language.
        """
        root = Path(root)
        counts: dict[str, int] = {}
        limit = self.config.max_files_per_language
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(d for d in dirnames if not d.startswith(".") and d not in SKIP_DIRS)
            for filename in sorted(filenames):
                language = detect_language(filename)
                if language not in PROFILES or counts.get(language, 0) >= limit:
                    continue
                path = Path(dirpath) / filename
                try:
                    text = path.read_text(encoding="utf-8")
                except (OSError, UnicodeDecodeError) as e:
                    logger.debug("Skipping %s: %s", path, e)
                    continue
                counts[language] = counts.get(language, 0) + 1
                self.observe_file(text, str(path.relative_to(root)), language)
        logger.info("Scanned %s under %s", counts or "no files", root)
        return counts

    def restore(self, records: list[MemoryRecord]) -> int:
        """Reload patterns learned earlier from their stored memories.

        Signatures already in the tables are left alone, so restoring the same
        corpus twice changes nothing. Returns the number of patterns added.
        """
        restored = 0
        for record in records:
            if not record.id.startswith("pattern-") or "code-pattern" not in record.tags:
                continue
            m = _RECORD_CONTENT.fullmatch(record.content.strip())
            if not m:
                logger.debug("Pattern memory %s has unexpected content, skipped", record.id)
                continue
            language, sig = m.group("language"), m.group("signature")
            table = self._tables.setdefault(language, {})
            if sig in table:
                continue
            recognized = self._recognized.setdefault(language, [])
            label = m.group("label")
            if any(p.label == label for p in recognized):
                label = f"Common pattern {len(recognized) + 1}"
            entry = CodePattern(
                id=record.id.removeprefix("pattern-"),
                language=language,
                signature=sig,
                label=label,
                frequency=int(m.group("frequency")),
                files=sorted(record.related_files or ()),
            )
            table[sig] = entry
            recognized.append(entry)
            restored += 1
        if restored:
            logger.debug("Restored %d learned patterns", restored)
        return restored

    def to_records(self) -> list[MemoryRecord]:
        """Recognized patterns as code-style memories."""
        now = datetime.now(timezone.utc)
        records = []
        for p in self.recognized():
            records.append(
                MemoryRecord(
                    id=f"pattern-{p.id}",
                    content=(
                        f"{p.label} ({p.language}, seen {p.frequency} times in {len(p.files)} files):\n"
                        f"{p.signature}"
                    ),
                    category=Category.CODE_STYLE,
                    importance=Importance.MEDIUM,
                    tags=frozenset({"code-pattern", p.language, "auto-detected"}),
                    timestamp=now,
                    related_files=frozenset(p.files[:10]),
                    confidence=min(p.frequency / 10, 1.0),
                )
            )
        return records
