"""Tests for the regex boundary detectors."""

import pytest

from kindling.adapters.parsers.regex_boundary_detector import (
    BraceBoundaryDetector,
    IndentBoundaryDetector,
    NullBoundaryDetector,
    select_detector,
)
from kindling.domain.entities import ChunkType
from kindling.ports.chunkers import Declaration


@pytest.fixture
def detector() -> BraceBoundaryDetector:
    return BraceBoundaryDetector()


@pytest.mark.parametrize(
    ("line", "chunk_type", "name"),
    [
        ("export class UserService {", ChunkType.CLASS, "UserService"),
        ("public abstract class Base<T> {", ChunkType.CLASS, "Base"),
        ("interface Props {", ChunkType.CLASS, "Props"),
        ("pub struct Point {", ChunkType.CLASS, "Point"),
        ("impl Point {", ChunkType.CLASS, "Point"),
        ("type Server struct {", ChunkType.CLASS, "Server"),
        ("Widget.prototype.render = function() {", ChunkType.METHOD, "render"),
        ("export async function load(id) {", ChunkType.FUNCTION, "load"),
        ("function* gen() {", ChunkType.FUNCTION, "gen"),
        ("const handler = async (req, res) => {", ChunkType.FUNCTION, "handler"),
        ("export const pick = x => x.id;", ChunkType.FUNCTION, "pick"),
        ("func (s *Server) Start() error {", ChunkType.METHOD, "Start"),
        ("func main() {", ChunkType.FUNCTION, "main"),
        ("pub fn parse<'a>(input: &'a str) -> Result<()> {", ChunkType.FUNCTION, "parse"),
        ("fun greet(name: String) {", ChunkType.FUNCTION, "greet"),
        ("    public void run() throws IOException {", ChunkType.METHOD, "run"),
        ("int main(int argc, char **argv) {", ChunkType.FUNCTION, "main"),
    ],
)
def test_declarations(
    detector: BraceBoundaryDetector, line: str, chunk_type: ChunkType, name: str
) -> None:
    declaration = detector.match(line)
    assert declaration is not None
    assert declaration.type is chunk_type
    assert declaration.name == name


@pytest.mark.parametrize(
    "line",
    [
        "",
        "// function commented() {",
        " * class InDocComment {",
        "    if (ready) {",
        "    for (const x of xs) {",
        "    } else if (x) {",
        "    return compute(x);",
        "    const total = 1;",
        "import { db } from './db';",
    ],
)
def test_non_declarations(detector: BraceBoundaryDetector, line: str) -> None:
    assert detector.match(line) is None


def test_bodiless_signature(detector: BraceBoundaryDetector) -> None:
    declaration = detector.match("  abstract function area(): number;")
    assert declaration == Declaration(ChunkType.FUNCTION, "area", opens_block=False)


@pytest.mark.parametrize(
    ("line", "expected"),
    [
        ("function a() {", (1, 0)),
        ("}", (0, 1)),
        ("{ nested: { deep: 1 } }", (2, 2)),
        ('const s = "{{ not code }}";', (0, 0)),
        ("const t = `${x}`;", (0, 0)),
        ("x = 1; // } trailing", (0, 0)),
        ('const url = "http://a/{id}";', (0, 0)),
    ],
)
def test_count_braces(
    detector: BraceBoundaryDetector, line: str, expected: tuple[int, int]
) -> None:
    assert detector.count_braces(line) == expected


def test_select_detector() -> None:
    assert isinstance(select_detector("src/app.ts"), BraceBoundaryDetector)
    assert isinstance(select_detector("tool.py"), IndentBoundaryDetector)
    assert isinstance(select_detector("lib/tool.rb"), IndentBoundaryDetector)
    assert isinstance(select_detector("run.sh"), NullBoundaryDetector)
    assert isinstance(select_detector("README"), NullBoundaryDetector)
    null = NullBoundaryDetector()
    assert null.match("def f():") is None
    assert null.count_braces("{}") == (0, 0)
    assert not null.closes_before("x = 1", 4)


def test_brace_detector_never_closes_by_indentation(detector: BraceBoundaryDetector) -> None:
    assert not detector.closes_before("}", 0)
    assert not detector.closes_before("const x = 1;", 8)


@pytest.mark.parametrize(
    ("line", "chunk_type", "name"),
    [
        ("def build(target):", ChunkType.FUNCTION, "build"),
        ("async def fetch(url):", ChunkType.FUNCTION, "fetch"),
        ("    def run(self):", ChunkType.METHOD, "run"),
        ("class Builder:", ChunkType.CLASS, "Builder"),
        ("class Builder(Base, metaclass=Meta):", ChunkType.CLASS, "Builder"),
        ("def first[T](items: list[T]) -> T:", ChunkType.FUNCTION, "first"),
    ],
)
def test_python_declarations(line: str, chunk_type: ChunkType, name: str) -> None:
    detector = select_detector("app.py")
    assert detector.match(line) == Declaration(type=chunk_type, name=name)


@pytest.mark.parametrize(
    "line", ["x = build()", "# def commented():", "defaults = {}", "classes = []", ""]
)
def test_python_non_declarations(line: str) -> None:
    assert select_detector("app.py").match(line) is None


@pytest.mark.parametrize(
    ("line", "chunk_type", "name"),
    [
        ("class Parser < Base", ChunkType.CLASS, "Parser"),
        ("module Kindling::Util", ChunkType.CLASS, "Kindling::Util"),
        ("def parse(text)", ChunkType.FUNCTION, "parse"),
        ("def self.valid?", ChunkType.FUNCTION, "valid?"),
        ("  def save!", ChunkType.METHOD, "save!"),
    ],
)
def test_ruby_declarations(line: str, chunk_type: ChunkType, name: str) -> None:
    detector = select_detector("lib/parser.rb")
    assert detector.match(line) == Declaration(type=chunk_type, name=name)


@pytest.mark.parametrize(
    ("path", "line", "indent", "closes"),
    [
        ("app.py", "def next():", 0, True),
        ("app.py", "    return 1", 0, False),
        ("app.py", "", 0, False),
        ("app.py", "   ", 4, False),
        ("app.py", "):", 0, False),
        ("app.py", "    x = 1", 4, True),
        ("app.py", "# comment", 0, True),
        ("lib/a.rb", "end", 0, False),
        ("lib/a.rb", "ending = 1", 0, True),
        ("lib/a.rb", "  end", 0, False),
    ],
)
def test_indentation_closes_blocks(path: str, line: str, indent: int, closes: bool) -> None:
    assert select_detector(path).closes_before(line, indent) is closes
