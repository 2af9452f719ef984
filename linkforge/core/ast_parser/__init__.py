"""tree-sitter parsing of C# sources into code units.

Public API:
    parse_file(path, project_root) → ParseResult
    parse_source(text or bytes, file_path) → ParseResult
    iter_source_files(project_root) → hand-written .cs paths, sorted
"""

from typing import Union

from .models import CodeUnit, ParseError, ParseResult
from .utils import (
    detect_language,
    get_parser,
    is_supported_file,
    iter_source_files,
    should_skip_directory,
)

__all__ = [
    "parse_file",
    "parse_source",
    "detect_language",
    "is_supported_file",
    "iter_source_files",
    "should_skip_directory",
    "CodeUnit",
    "ParseError",
    "ParseResult",
]


def parse_file(file_path: str, project_root: str = "") -> ParseResult:
    """Parse one C# file.

    Raises:
        ValueError: If ``file_path`` is not a .cs file
    """
    language = detect_language(file_path)
    if not language:
        raise ValueError(f"Unsupported source file: {file_path}")
    return get_parser(language).parse_file(file_path, project_root)


def parse_source(source_text: Union[str, bytes], file_path: str, language: str = "csharp") -> ParseResult:
    """Parse in-memory C# source recorded under ``file_path``."""
    return get_parser(language).parse_source(source_text, file_path)
