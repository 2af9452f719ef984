"""AST Parser data models.

Defines the core data structures for parsed code representation.
These are pure data containers with no parsing logic.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class CodeUnit:
    """A single parsed code entity (class, method, constructor).

    Represents one declaration extracted by tree-sitter AST parsing.
    Structured details the semantic model needs (modifiers, attributes,
    parameters, edit offsets) live in ``metadata``.
    """

    unit_type: str  # "class" | "method" | "constructor"
    name: str  # "Index"
    qualified_name: str  # "App.Controllers.HomeController.Index"
    language: str  # "csharp"
    start_line: int
    end_line: int
    source: str  # Raw source code
    file_path: str  # Relative path within project
    namespace: str = ""  # "App.Controllers"
    signature: Optional[str] = None  # "public IActionResult Index(int id)"
    parent_name: Optional[str] = None  # For members: enclosing class name
    start_byte: int = 0
    imports: List[str] = field(default_factory=list)  # File-level usings
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ParseError:
    """An error encountered during parsing."""

    file_path: str
    line: int
    message: str
    severity: str = "warning"  # "warning" | "error"


@dataclass
class ParseResult:
    """Complete parse output for a single file.

    Contains all extracted code units, imports, and any parse errors.
    """

    file_path: str
    language: str
    units: List[CodeUnit]
    imports: List[str]  # All using directives in file
    line_count: int = 0
    errors: List[ParseError] = field(default_factory=list)
    content: bytes = b""  # Source bytes; unit byte offsets index into these
