"""AST Parser utilities.

Language detection, parser registry, and source file walking helpers.
"""

import os
from typing import TYPE_CHECKING, Dict, Iterator, Optional

from ..constants import GENERATED_FILE_SUFFIX

if TYPE_CHECKING:
    from .csharp_parser import CSharpParser

# Extension → language mapping
SUPPORTED_EXTENSIONS: Dict[str, str] = {
    ".cs": "csharp",
}

# Directories to skip during file walking
SKIP_DIRECTORIES = frozenset({
    "node_modules",
    "dist",
    "build",
    # C# / .NET
    "bin",
    "obj",
    "packages",
    "TestResults",
})

# Parser instances, created on first use
_parsers: Dict[str, "CSharpParser"] = {}


def detect_language(file_path: str) -> Optional[str]:
    """Detect programming language from file extension.

    Args:
        file_path: Path to the source file

    Returns:
        Language identifier string or None if unsupported
    """
    _, ext = os.path.splitext(file_path)
    return SUPPORTED_EXTENSIONS.get(ext.lower())


def get_parser(language: str) -> "CSharpParser":
    """Get the shared parser for ``language``.

    Raises:
        ValueError: If language is not supported
    """
    if language not in SUPPORTED_EXTENSIONS.values():
        raise ValueError(f"Unsupported language: {language}")
    if language not in _parsers:
        from .csharp_parser import CSharpParser
        _parsers[language] = CSharpParser()
    return _parsers[language]


def should_skip_directory(dir_name: str) -> bool:
    """Check if a directory should be skipped during file walking.

    Args:
        dir_name: Directory name (not full path)

    Returns:
        True if directory should be skipped
    """
    return dir_name in SKIP_DIRECTORIES or dir_name.startswith(".")


def is_supported_file(file_path: str) -> bool:
    """Check if a file is a hand-written source the parser should read.

    Generated companions (``*.generated.cs``) are excluded so that a
    second run sees the same input as the first.
    """
    if file_path.lower().endswith(GENERATED_FILE_SUFFIX):
        return False
    return detect_language(file_path) is not None


def iter_source_files(project_root: str) -> Iterator[str]:
    """Yield supported source files below ``project_root`` in sorted order."""
    for dirpath, dirnames, filenames in os.walk(project_root):
        dirnames[:] = sorted(d for d in dirnames if not should_skip_directory(d))
        for filename in sorted(filenames):
            path = os.path.join(dirpath, filename)
            if is_supported_file(path):
                yield path
