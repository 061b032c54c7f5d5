"""Per-language lexical profiles.

One `LanguageProfile` per language tag holds every regex the analysis core
needs (declarations, imports, snippet starts) plus the default naming
conventions, so feature extraction and validation never branch on language.
None of this is a parser: patterns are applied to raw text, line by line or
over the whole file.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import PurePath


class Convention(str, Enum):
    CAMEL = "camelCase"
    PASCAL = "PascalCase"
    SNAKE = "snake_case"
    UPPER_SNAKE = "UPPER_SNAKE_CASE"


_SHAPES = {
    Convention.CAMEL: re.compile(r"^[a-z][a-zA-Z0-9]*$"),
    Convention.PASCAL: re.compile(r"^[A-Z][a-zA-Z0-9]*$"),
    Convention.SNAKE: re.compile(r"^[a-z][a-z0-9_]*$"),
    Convention.UPPER_SNAKE: re.compile(r"^[A-Z][A-Z0-9_]*$"),
}


def matches_convention(name: str, convention: Convention) -> bool:
    return bool(_SHAPES[convention].match(name))


@dataclass(frozen=True)
class NamingRules:
    """Allowed conventions per identifier kind."""

    variable: frozenset[Convention]
    function: frozenset[Convention]
    type: frozenset[Convention] = frozenset({Convention.PASCAL})
    constant: frozenset[Convention] = frozenset({Convention.UPPER_SNAKE})

    def allowed(self, kind: str) -> frozenset[Convention]:
        return getattr(self, kind)

    def with_style(self, style: Convention) -> NamingRules:
        """Rules after a project memory mandates `style` for general identifiers."""
        if style is Convention.PASCAL:
            return replace(self, function=frozenset({style}), type=frozenset({style}))
        return replace(
            self,
            variable=frozenset({style, Convention.UPPER_SNAKE}),
            function=frozenset({style}),
        )


def _rules(variable, function, type_=(Convention.PASCAL,), constant=(Convention.UPPER_SNAKE,)):
    return NamingRules(
        variable=frozenset(variable),
        function=frozenset(function),
        type=frozenset(type_),
        constant=frozenset(constant),
    )


def _compile(*patterns: str) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(p, re.MULTILINE) for p in patterns)


@dataclass(frozen=True)
class LanguageProfile:
    name: str
    extensions: tuple[str, ...] = ()
    function_patterns: tuple[re.Pattern, ...] = ()
    type_patterns: tuple[re.Pattern, ...] = ()
    import_patterns: tuple[re.Pattern, ...] = ()
    # Grouped imports, e.g. Go's `import ( ... )`; items are matched inside the block.
    import_block: re.Pattern | None = None
    import_block_item: re.Pattern | None = None
    variable_patterns: tuple[re.Pattern, ...] = ()
    constant_patterns: tuple[re.Pattern, ...] = ()
    snippet_start: re.Pattern | None = None
    block_style: str = "brace"  # "brace" or "indent"
    default_naming: NamingRules | None = None
    comment_prefix: str = "// "
    comment_suffix: str = ""
    comment_markers: tuple[str, ...] = field(default=("//", "/*"))


_IDENT = r"[A-Za-z_]\w*"
_JS_IDENT = r"[A-Za-z_$][\w$]*"

GO = LanguageProfile(
    name="go",
    extensions=(".go",),
    function_patterns=_compile(rf"\bfunc\s+(?:\([^)]*\)\s*)?({_IDENT})\s*(?:\[[^\]]*\]\s*)?\("),
    type_patterns=_compile(rf"\btype\s+({_IDENT})\s+(?:struct|interface)\b"),
    import_patterns=_compile(rf'\bimport\s+(?:{_IDENT}\s+|\.\s+)?"([^"]+)"'),
    import_block=re.compile(r"\bimport\s*\(([^)]*)\)", re.DOTALL),
    import_block_item=re.compile(r'"([^"]+)"'),
    variable_patterns=_compile(rf"\bvar\s+({_IDENT})", rf"\b({_IDENT})\s*:="),
    constant_patterns=_compile(rf"\bconst\s+({_IDENT})\s*(?:{_IDENT}\s*)?="),
    snippet_start=re.compile(r"^func\s"),
    # Exported identifiers are UpperCamel, unexported lowerCamel.
    default_naming=_rules(
        variable=(Convention.CAMEL, Convention.PASCAL),
        function=(Convention.CAMEL, Convention.PASCAL),
        type_=(Convention.PASCAL, Convention.CAMEL),
        constant=(Convention.CAMEL, Convention.PASCAL, Convention.UPPER_SNAKE),
    ),
)

JAVA = LanguageProfile(
    name="java",
    extensions=(".java",),
    function_patterns=_compile(
        rf"\b(?:public|private|protected)\s+(?:static\s+)?(?:final\s+)?(?:synchronized\s+)?"
        rf"[\w<>\[\],?]+\s+({_IDENT})\s*\("
    ),
    type_patterns=_compile(rf"\b(?:class|interface|enum|record)\s+({_IDENT})"),
    import_patterns=_compile(r"^\s*import\s+(?:static\s+)?([\w.]+(?:\.\*)?)\s*;"),
    variable_patterns=_compile(
        rf"\b(?:int|long|short|byte|boolean|double|float|char|String|var)\s+({_IDENT})\s*[=;]"
    ),
    constant_patterns=_compile(rf"\bstatic\s+final\s+[\w<>\[\]]+\s+({_IDENT})"),
    snippet_start=re.compile(
        r"^\s*(?:public|private|protected)\s+(?:static\s+)?[\w<>\[\]]+\s+\w+\s*\("
    ),
    default_naming=_rules(variable=(Convention.CAMEL,), function=(Convention.CAMEL,)),
)

_JS_FUNCTIONS = (
    rf"\bfunction\s*\*?\s*({_JS_IDENT})\s*\(",
    rf"\b(?:const|let|var)\s+({_JS_IDENT})\s*(?::[^=\n]+)?=\s*(?:async\s+)?"
    rf"(?:function\b|\([^)]*\)\s*(?::[^=\n]+)?=>|{_JS_IDENT}\s*=>)",
)
_JS_IMPORTS = (
    r"""\bimport\s+(?:[^'"\n;]*?\s+from\s+)?['"]([^'"]+)['"]""",
    r"""\brequire\(\s*['"]([^'"]+)['"]\s*\)""",
    r"""\bimport\(\s*['"]([^'"]+)['"]\s*\)""",
)
_JS_NAMING = _rules(
    variable=(Convention.CAMEL, Convention.UPPER_SNAKE),
    function=(Convention.CAMEL, Convention.PASCAL),
)

JAVASCRIPT = LanguageProfile(
    name="javascript",
    extensions=(".js", ".jsx", ".mjs", ".cjs"),
    function_patterns=_compile(*_JS_FUNCTIONS),
    type_patterns=_compile(rf"\bclass\s+({_JS_IDENT})"),
    import_patterns=_compile(*_JS_IMPORTS),
    variable_patterns=_compile(rf"\b(?:let|var|const)\s+({_JS_IDENT})"),
    snippet_start=re.compile(
        r"^\s*(?:export\s+)?(?:default\s+)?(?:async\s+)?function\b"
        r"|^\s*(?:export\s+)?const\s+\w+\s*=\s*(?:async\s+)?\("
    ),
    default_naming=_JS_NAMING,
)

TYPESCRIPT = replace(
    JAVASCRIPT,
    name="typescript",
    extensions=(".ts", ".tsx", ".mts", ".cts"),
    type_patterns=_compile(
        rf"\b(?:class|interface|enum)\s+({_JS_IDENT})",
        rf"\btype\s+({_JS_IDENT})\s*(?:<[^>\n]*>)?\s*=",
    ),
)

PYTHON = LanguageProfile(
    name="python",
    extensions=(".py", ".pyi"),
    function_patterns=_compile(rf"^\s*(?:async\s+)?def\s+({_IDENT})\s*\("),
    type_patterns=_compile(rf"^\s*class\s+({_IDENT})"),
    import_patterns=_compile(r"^\s*import\s+([\w.]+)", r"^\s*from\s+([\w.]+)\s+import\b"),
    # Lines ending in a comma are usually keyword arguments, not bindings.
    variable_patterns=_compile(rf"^\s*({_IDENT})\s*(?::\s*[^=\n]+)?=(?!=)(?![^\n]*,\s*$)"),
    snippet_start=re.compile(r"^\s*(?:async\s+)?def\s+\w+"),
    block_style="indent",
    default_naming=_rules(
        variable=(Convention.SNAKE, Convention.UPPER_SNAKE),
        function=(Convention.SNAKE,),
    ),
    comment_prefix="# ",
    comment_markers=("#", '"""'),
)

RUST = LanguageProfile(
    name="rust",
    extensions=(".rs",),
    function_patterns=_compile(rf"\bfn\s+({_IDENT})"),
    type_patterns=_compile(rf"\b(?:struct|enum|trait|type)\s+({_IDENT})"),
    import_patterns=_compile(r"^\s*(?:pub\s+)?use\s+([\w:]+)", r"^\s*extern\s+crate\s+(\w+)"),
    variable_patterns=_compile(rf"\blet\s+(?:mut\s+)?({_IDENT})"),
    constant_patterns=_compile(rf"\b(?:const|static)\s+(?:mut\s+)?({_IDENT})\s*:"),
    snippet_start=re.compile(r"^\s*(?:pub(?:\([^)]*\))?\s+)?(?:async\s+)?fn\s+\w+"),
    default_naming=_rules(variable=(Convention.SNAKE,), function=(Convention.SNAKE,)),
)

CSHARP = LanguageProfile(
    name="csharp",
    extensions=(".cs",),
    function_patterns=_compile(
        r"\b(?:public|private|protected|internal)\s+"
        r"(?:(?:static|virtual|override|async|abstract|sealed)\s+)*"
        rf"[\w<>\[\],?]+\s+({_IDENT})\s*\("
    ),
    type_patterns=_compile(rf"\b(?:class|interface|struct|enum|record)\s+({_IDENT})"),
    import_patterns=_compile(r"^\s*using\s+(?:static\s+)?([\w.]+)\s*;"),
    variable_patterns=_compile(
        rf"\b(?:int|long|bool|string|double|float|decimal|char|var)\s+({_IDENT})\s*[=;]"
    ),
    constant_patterns=_compile(rf"\bconst\s+\w+\s+({_IDENT})"),
    snippet_start=JAVA.snippet_start,
    default_naming=_rules(
        variable=(Convention.CAMEL,),
        function=(Convention.PASCAL,),
        constant=(Convention.PASCAL, Convention.UPPER_SNAKE),
    ),
)

GENERIC = LanguageProfile(
    name="unknown",
    function_patterns=_compile(
        rf"\bfunction\s+({_IDENT})\s*\(", rf"\bdef\s+({_IDENT})\s*\(", rf"\bfunc\s+({_IDENT})\s*\("
    ),
    type_patterns=_compile(rf"\bclass\s+({_IDENT})"),
    import_patterns=_compile(r"""\bimport\s+['"]?([\w./@-]+)"""),
    variable_patterns=_compile(rf"\b(?:var|let|const)\s+({_IDENT})"),
)

PROFILES: dict[str, LanguageProfile] = {
    p.name: p for p in (GO, JAVA, JAVASCRIPT, TYPESCRIPT, PYTHON, RUST, CSHARP)
}

_ALIASES = {
    "golang": "go",
    "js": "javascript",
    "javascriptreact": "javascript",
    "jsx": "javascript",
    "ts": "typescript",
    "typescriptreact": "typescript",
    "tsx": "typescript",
    "py": "python",
    "rs": "rust",
    "cs": "csharp",
    "c#": "csharp",
}

_EXTENSIONS = {ext: p.name for p in PROFILES.values() for ext in p.extensions}


def detect_language(path: str | None = None, tag: str | None = None) -> str:
    """Resolve a language tag: an explicit tag wins, else the file extension."""
    if tag:
        t = tag.strip().lower()
        return _ALIASES.get(t, t)
    if path:
        return _EXTENSIONS.get(PurePath(path).suffix.lower(), "unknown")
    return "unknown"


def get_profile(language: str | None) -> LanguageProfile:
    return PROFILES.get(detect_language(tag=language) if language else "unknown", GENERIC)


def line_of(text: str, offset: int) -> int:
    """1-based line number of a character offset."""
    return text.count("\n", 0, offset) + 1
