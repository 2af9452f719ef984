"""Immutable C# syntax nodes and the emitter that renders them.

Generated code is built as a small tree of frozen nodes (compilation unit,
namespaces, classes, methods, raw statements) so that units can be grouped
and combined before anything is rendered. Rendering goes through
CodeEmitter, which owns indentation and brace placement.
"""

import re
from contextlib import contextmanager
from dataclasses import dataclass, replace
from io import StringIO
from typing import Iterator, Sequence, Tuple, Union

_PRAGMA_RE = re.compile(r"^\s*#pragma\s+warning\s+(?:disable|restore)\b")


class CodeEmitter:
    """Line-oriented C# writer with indentation tracking."""

    def __init__(self, indent_str: str = "    ") -> None:
        self._buffer = StringIO()
        self._indent_str = indent_str
        self._indent_level = 0

    def emit(self, code: str) -> None:
        """Emit a line of code at the current indentation."""
        if code.strip():
            self._buffer.write(self._indent_str * self._indent_level)
            self._buffer.write(code)
        self._buffer.write("\n")

    def emit_lines(self, text: str) -> None:
        """Emit a multi-line snippet, keeping its relative indentation."""
        for line in text.split("\n"):
            self.emit(line)

    def emit_blank(self, count: int = 1) -> None:
        for _ in range(count):
            self._buffer.write("\n")

    def indent(self) -> None:
        self._indent_level += 1

    def dedent(self) -> None:
        self._indent_level = max(0, self._indent_level - 1)

    @contextmanager
    def block(self, header: str) -> Iterator[None]:
        """Emit ``header`` followed by a braced, indented block."""
        self.emit(header)
        self.emit("{")
        self.indent()
        try:
            yield
        finally:
            self.dedent()
            self.emit("}")

    def get_code(self) -> str:
        return self._buffer.getvalue()


# =============================================================================
# Nodes
# =============================================================================

@dataclass(frozen=True)
class RawMember:
    """Verbatim C# text (a field, a property, a one-line declaration...)."""
    text: str

    def write(self, emitter: CodeEmitter) -> None:
        emitter.emit_lines(self.text)

    @property
    def is_block(self) -> bool:
        return "\n" in self.text


@dataclass(frozen=True)
class MethodDeclaration:
    """A method or constructor with a statement body."""
    signature: str
    body: Tuple[str, ...] = ()
    attributes: Tuple[str, ...] = ()

    def write(self, emitter: CodeEmitter) -> None:
        for attribute in self.attributes:
            emitter.emit(attribute)
        with emitter.block(self.signature):
            for statement in self.body:
                emitter.emit(statement)

    @property
    def is_block(self) -> bool:
        return True


@dataclass(frozen=True)
class ClassDeclaration:
    name: str
    modifiers: Tuple[str, ...] = ("public",)
    bases: Tuple[str, ...] = ()
    attributes: Tuple[str, ...] = ()
    members: Tuple["Member", ...] = ()

    @property
    def header(self) -> str:
        text = " ".join(self.modifiers + ("class", self.name))
        if self.bases:
            text += " : " + ", ".join(self.bases)
        return text

    def add_members(self, *members: "Member") -> "ClassDeclaration":
        return replace(self, members=self.members + tuple(members))

    def write(self, emitter: CodeEmitter) -> None:
        for attribute in self.attributes:
            emitter.emit(attribute)
        with emitter.block(self.header):
            _write_members(emitter, self.members)

    @property
    def is_block(self) -> bool:
        return True


@dataclass(frozen=True)
class NamespaceDeclaration:
    name: str
    members: Tuple["Member", ...] = ()
    usings: Tuple[str, ...] = ()

    def add_members(self, *members: "Member") -> "NamespaceDeclaration":
        return replace(self, members=self.members + tuple(members))

    def add_usings(self, usings: Sequence[str]) -> "NamespaceDeclaration":
        merged = self.usings + tuple(u for u in dict.fromkeys(usings) if u not in self.usings)
        return replace(self, usings=merged)

    def write(self, emitter: CodeEmitter) -> None:
        with emitter.block(f"namespace {self.name}"):
            for using in self.usings:
                emitter.emit(f"using {using};")
            if self.usings and self.members:
                emitter.emit_blank()
            _write_members(emitter, self.members)

    @property
    def is_block(self) -> bool:
        return True


Member = Union[RawMember, MethodDeclaration, ClassDeclaration, NamespaceDeclaration]


@dataclass(frozen=True)
class CompilationUnit:
    """A whole generated file: header, usings and top-level members."""
    header: str = ""
    usings: Tuple[str, ...] = ()
    members: Tuple[Member, ...] = ()

    def add_members(self, *members: Member) -> "CompilationUnit":
        return replace(self, members=self.members + tuple(members))

    def render(self) -> str:
        emitter = CodeEmitter()
        if self.header:
            emitter.emit_lines(self.header)
            emitter.emit_blank()
        for using in self.usings:
            emitter.emit(f"using {using};")
        if self.usings:
            emitter.emit_blank()
        _write_members(emitter, self.members)
        return emitter.get_code()


def _write_members(emitter: CodeEmitter, members: Sequence[Member]) -> None:
    previous = None
    for member in members:
        if previous is not None and (previous.is_block or member.is_block):
            emitter.emit_blank()
        member.write(emitter)
        previous = member


# =============================================================================
# Text post-processing
# =============================================================================

def normalize_whitespace(text: str) -> str:
    """Canonical layout for generated text.

    Unix line endings, no trailing whitespace, at most one blank line in a
    row, no blank line right after an opening or before a closing brace,
    exactly one trailing newline. Pragma warning lines are dropped; they
    are re-applied by apply_pragma_codes.
    """
    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    result = []
    for line in lines:
        line = line.rstrip()
        if _PRAGMA_RE.match(line):
            continue
        if not line:
            if result and result[-1] and not result[-1].endswith("{"):
                result.append("")
            continue
        if line.lstrip().startswith("}"):
            while result and not result[-1]:
                result.pop()
        result.append(line)
    while result and not result[-1]:
        result.pop()
    return "\n".join(result) + "\n"


def apply_pragma_codes(text: str, codes: Sequence[str]) -> str:
    """Wrap everything after the leading comment banner in a pragma region."""
    if not codes:
        return text
    joined = ", ".join(codes)
    lines = [line for line in text.rstrip("\n").split("\n") if not _PRAGMA_RE.match(line)]
    start = 0
    while start < len(lines) and (not lines[start].strip() or lines[start].lstrip().startswith("//")):
        start += 1
    body = lines[start:]
    banner = lines[:start]
    return "\n".join(
        banner + [f"#pragma warning disable {joined}"] + body + [f"#pragma warning restore {joined}"]
    ) + "\n"
