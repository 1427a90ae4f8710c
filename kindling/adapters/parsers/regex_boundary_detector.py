"""Regex-based boundary detectors.

Heuristic stand-ins for real parsers: a single-line regex recognizes
declarations in brace-delimited languages (JavaScript/TypeScript, Java, Go,
Rust, C-family, Kotlin, Swift, PHP) and braces are counted after stripping
string literals and line comments. Python and Ruby declarations are matched
the same way and their blocks end at the first line indented no deeper than
the declaration. Other languages get a detector that never matches, so the
chunker treats them as plain text.
"""

import re

from kindling.core.languages import get_language_info
from kindling.domain.entities import ChunkType
from kindling.ports.chunkers import BoundaryDetector, Declaration

_IDENT = r"[A-Za-z_$][\w$]*"
_MODIFIERS = (
    r"(?:(?:export|default|public|private|protected|internal|static|abstract|final|"
    r"sealed|open|override|async|suspend|virtual|synchronized|inline|unsafe|"
    r"pub(?:\([^)]*\))?|extern(?:\s+\"[^\"]*\")?|data)\s+)*"
)

# Ordered: the first pattern that matches wins.
_PATTERNS: list[tuple[re.Pattern[str], ChunkType]] = [
    # class Foo, interface Foo, struct Foo, enum Foo, trait Foo, impl Foo
    (
        re.compile(
            rf"^\s*{_MODIFIERS}(?:class|interface|struct|enum|trait|object|impl)\s+"
            rf"(?:<[^>]*>\s*)?({_IDENT})"
        ),
        ChunkType.CLASS,
    ),
    # Go: type Foo struct {
    (re.compile(rf"^\s*type\s+({_IDENT})\s+(?:struct|interface)\b"), ChunkType.CLASS),
    # Foo.prototype.bar = function
    (
        re.compile(rf"^\s*[\w$.]+\.prototype\.({_IDENT})\s*=\s*(?:async\s+)?function\b"),
        ChunkType.METHOD,
    ),
    # function foo(, async function* foo(
    (
        re.compile(rf"^\s*{_MODIFIERS}function\s*\*?\s*({_IDENT})\s*[<(]"),
        ChunkType.FUNCTION,
    ),
    # const foo = function(, const foo = (a) =>, const foo = async x =>
    (
        re.compile(
            rf"^\s*(?:export\s+)?(?:const|let|var)\s+({_IDENT})\s*(?::[^=]+)?=\s*"
            rf"(?:async\s+)?(?:function\b|\([^)]*\)\s*(?::[^=]+)?=>|{_IDENT}\s*=>)"
        ),
        ChunkType.FUNCTION,
    ),
    # Go: func foo(, func (r *T) foo(
    (
        re.compile(rf"^\s*func\s+\([^)]*\)\s*({_IDENT})\s*[\[(]"),
        ChunkType.METHOD,
    ),
    (re.compile(rf"^\s*func\s+({_IDENT})\s*[\[(<]"), ChunkType.FUNCTION),
    # Rust fn, Kotlin fun
    (re.compile(rf"^\s*{_MODIFIERS}(?:fn|fun)\s+(?:<[^>]*>\s*)?({_IDENT})"), ChunkType.FUNCTION),
]

# C-family method or function definition: requires an opening brace on the line.
_METHOD_PATTERN = re.compile(
    rf"^(\s*){_MODIFIERS}(?:[\w<>\[\],.?*&:]+\s+)*?({_IDENT})\s*\([^;]*\)\s*"
    r"(?::\s*[^{;]+)?(?:throws\s+[\w.,\s]+)?\{"
)

_CONTROL_KEYWORDS = frozenset(
    {
        "if",
        "else",
        "for",
        "foreach",
        "while",
        "do",
        "switch",
        "case",
        "catch",
        "try",
        "return",
        "new",
        "typeof",
        "sizeof",
        "with",
        "using",
        "lock",
        "elseif",
        "function",
        "await",
        "match",
        "loop",
    }
)

_STRING_LITERAL = re.compile(r"\"(?:\\.|[^\"\\])*\"|'(?:\\.|[^'\\])*'|`(?:\\.|[^`\\])*`")
_LINE_COMMENT = re.compile(r"(?<!:)//.*$")


class BraceBoundaryDetector:
    """Declaration detector for brace-delimited languages."""

    def match(self, line: str) -> Declaration | None:
        stripped = line.strip()
        if not stripped or stripped.startswith(("//", "/*", "*", "#")):
            return None

        opens_block = "{" in line or not stripped.endswith(";")

        for pattern, chunk_type in _PATTERNS:
            m = pattern.match(line)
            if m:
                return Declaration(type=chunk_type, name=m.group(1), opens_block=opens_block)

        m = _METHOD_PATTERN.match(line)
        if m and m.group(2) not in _CONTROL_KEYWORDS:
            chunk_type = ChunkType.METHOD if m.group(1) else ChunkType.FUNCTION
            return Declaration(type=chunk_type, name=m.group(2))

        return None

    def count_braces(self, line: str) -> tuple[int, int]:
        code = _LINE_COMMENT.sub("", _STRING_LITERAL.sub('""', line))
        return code.count("{"), code.count("}")

    def closes_before(self, line: str, declaration_indent: int) -> bool:
        return False


_WORD_IDENT = r"[A-Za-z_]\w*"

# Python: class Foo:, class Foo(Base):, def foo(, async def foo[T](
_PYTHON_PATTERNS: list[tuple[re.Pattern[str], ChunkType]] = [
    (re.compile(rf"^(\s*)class\s+({_WORD_IDENT})\s*[(:\[]"), ChunkType.CLASS),
    (re.compile(rf"^(\s*)(?:async\s+)?def\s+({_WORD_IDENT})\s*[(\[]"), ChunkType.FUNCTION),
]

# Ruby: class Foo < Bar, module Foo::Bar, def foo, def self.valid?
_RUBY_PATTERNS: list[tuple[re.Pattern[str], ChunkType]] = [
    (re.compile(r"^(\s*)(?:class|module)\s+([A-Z]\w*(?:::[A-Z]\w*)*)"), ChunkType.CLASS),
    (re.compile(rf"^(\s*)def\s+(?:self\.)?({_WORD_IDENT}[?!=]?)"), ChunkType.FUNCTION),
]

# Lines at the declaration's indentation that still belong to its block
_PYTHON_CONTINUATION = re.compile(r"[)\]}]")
_RUBY_CONTINUATION = re.compile(r"(?:end\b|[)\]}])")


class IndentBoundaryDetector:
    """Declaration detector for languages whose blocks follow indentation.

    A block ends at the first non-blank line indented no deeper than its
    declaration, unless that line continues the declaration (the closing
    bracket of a multi-line signature, or Ruby's ``end``).
    """

    def __init__(
        self,
        patterns: list[tuple[re.Pattern[str], ChunkType]],
        continuation: re.Pattern[str],
    ) -> None:
        self.patterns = patterns
        self.continuation = continuation

    def match(self, line: str) -> Declaration | None:
        for pattern, chunk_type in self.patterns:
            m = pattern.match(line)
            if m:
                if chunk_type is ChunkType.FUNCTION and m.group(1):
                    chunk_type = ChunkType.METHOD
                return Declaration(type=chunk_type, name=m.group(2))
        return None

    def count_braces(self, line: str) -> tuple[int, int]:
        return 0, 0

    def closes_before(self, line: str, declaration_indent: int) -> bool:
        stripped = line.lstrip()
        if not stripped or self.continuation.match(stripped):
            return False
        return len(line) - len(stripped) <= declaration_indent


class NullBoundaryDetector:
    """Detector for languages without recognizable declarations. Never matches."""

    def match(self, line: str) -> Declaration | None:
        return None

    def count_braces(self, line: str) -> tuple[int, int]:
        return 0, 0

    def closes_before(self, line: str, declaration_indent: int) -> bool:
        return False


_BRACE = BraceBoundaryDetector()
_NULL = NullBoundaryDetector()
_INDENT: dict[str, IndentBoundaryDetector] = {
    "python": IndentBoundaryDetector(_PYTHON_PATTERNS, _PYTHON_CONTINUATION),
    "ruby": IndentBoundaryDetector(_RUBY_PATTERNS, _RUBY_CONTINUATION),
}


def select_detector(path: str) -> BoundaryDetector:
    """Pick the boundary detector for a file based on its extension."""
    info = get_language_info(path)
    if info.block_style == "brace":
        return _BRACE
    if info.block_style == "indent":
        return _INDENT.get(info.name, _NULL)
    return _NULL
