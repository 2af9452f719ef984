"""Static file links.

Walks the static files directory (``wwwroot`` by default) and builds the
``Links`` namespace: one static class per directory, holding a ``UrlPath``
constant and one constant per file with its app-relative URL.
"""

import logging
import os
import re
from pathlib import Path
from typing import List, Optional, Set

from ..config import Settings
from .companion import GENERATED_CODE_ATTRIBUTE, csharp_string
from .syntax import ClassDeclaration, Member, NamespaceDeclaration, RawMember

logger = logging.getLogger(__name__)

_INVALID_IDENTIFIER_CHARS = re.compile(r"[^A-Za-z0-9_]")

URL_PATH_MEMBER = "UrlPath"

_CSHARP_KEYWORDS = frozenset("""
abstract as base bool break byte case catch char checked class const continue
decimal default delegate do double else enum event explicit extern false finally
fixed float for foreach goto if implicit in int interface internal is lock long
namespace new null object operator out override params private protected public
readonly ref return sbyte sealed short sizeof stackalloc static string struct
switch this throw true try typeof uint ulong unchecked unsafe ushort using
virtual void volatile while
""".split())


def sanitize_identifier(name: str) -> str:
    """Turn a file or directory name into a C# identifier."""
    identifier = _INVALID_IDENTIFIER_CHARS.sub("_", name) or "_"
    if identifier[0].isdigit():
        identifier = f"_{identifier}"
    if identifier in _CSHARP_KEYWORDS:
        identifier = f"@{identifier}"
    return identifier


def _unique(identifier: str, taken: Set[str]) -> str:
    while identifier in taken:
        identifier += "_"
    taken.add(identifier)
    return identifier


class StaticFileGenerator:
    """Builds link constants for the files under the static files path."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def generate(self, project_root: str) -> Optional[NamespaceDeclaration]:
        """Return the links namespace, or None when there is nothing to link."""
        if not self.settings.generate_static_files:
            return None
        root = Path(project_root) / self.settings.static_files_path
        if not root.is_dir():
            logger.debug(f"No static files directory at {root}")
            return None

        class_name = sanitize_identifier(root.name)
        top = self._directory_class(root, class_name, "")
        namespace = NamespaceDeclaration(self.settings.links_namespace, members=(top,))
        logger.info(f"Generated static file links for {root}")
        return namespace

    def _directory_class(self, directory: Path, class_name: str, relative: str) -> ClassDeclaration:
        # The enclosing class name and UrlPath are reserved inside the class
        taken: Set[str] = {class_name, URL_PATH_MEMBER}
        url_path = f"~/{relative}" if relative else "~"
        members: List[Member] = [
            RawMember(f"public const string {URL_PATH_MEMBER} = {csharp_string(url_path)};")
        ]

        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)
        subdirectories = []
        for entry in entries:
            if entry.is_dir():
                if not entry.name.startswith("."):
                    subdirectories.append(entry)
                continue
            if self._is_excluded(entry.name):
                continue
            identifier = _unique(sanitize_identifier(entry.name), taken)
            url = f"{url_path}/{entry.name}" if relative else f"~/{entry.name}"
            members.append(RawMember(f"public const string {identifier} = {csharp_string(url)};"))

        for entry in subdirectories:
            identifier = _unique(sanitize_identifier(entry.name), taken)
            child = f"{relative}/{entry.name}" if relative else entry.name
            members.append(self._directory_class(Path(entry.path), identifier, child))

        return ClassDeclaration(
            name=class_name,
            modifiers=("public", "static", "partial"),
            attributes=(GENERATED_CODE_ATTRIBUTE,),
            members=tuple(members),
        )

    def _is_excluded(self, file_name: str) -> bool:
        extension = os.path.splitext(file_name)[1].lower()
        return extension in self.settings.excluded_static_file_extensions


def generate_static_files(settings: Settings, project_root: str) -> Optional[NamespaceDeclaration]:
    """Static-asset collaborator entry point."""
    return StaticFileGenerator(settings).generate(project_root)
