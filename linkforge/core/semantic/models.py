"""Symbols of the semantic model.

Immutable views over parsed C# declarations. They are built once per run
from parser output and never change afterwards.
"""

import re
from dataclasses import dataclass, field
from typing import Optional, Tuple

_ATTRIBUTE_NAME_RE = re.compile(r"^\[\s*([\w.:]+)")
_ATTRIBUTE_STRING_ARG_RE = re.compile(r'\(\s*"([^"]*)"')


def attribute_name(attribute: str) -> str:
    """Return the short name of an attribute: `[Mvc.ActionNameAttribute("x")]` -> `ActionName`."""
    match = _ATTRIBUTE_NAME_RE.match(attribute)
    if not match:
        return ""
    name = match.group(1).replace("global::", "").split(".")[-1]
    if name.endswith("Attribute") and name != "Attribute":
        name = name[: -len("Attribute")]
    return name


def attribute_string_argument(attribute: str) -> Optional[str]:
    """Return the first string literal argument of an attribute, if any."""
    match = _ATTRIBUTE_STRING_ARG_RE.search(attribute)
    return match.group(1) if match else None


@dataclass(frozen=True)
class ParameterSymbol:
    """A method parameter as declared in source."""
    name: str
    type: Optional[str]
    default: Optional[str] = None
    modifiers: Tuple[str, ...] = ()

    @property
    def route_key(self) -> str:
        """Key the argument is stored under in route values: `@class` -> `class`."""
        return self.name[1:] if self.name.startswith("@") else self.name

    def render(self) -> str:
        """Render the parameter as it appears in a method signature."""
        parts = [m for m in self.modifiers if m != "this"]
        parts.append(f"{self.type} {self.name}" if self.type else self.name)
        text = " ".join(parts)
        if self.default is not None:
            text += f" = {self.default}"
        return text


@dataclass(frozen=True)
class MethodSymbol:
    """A method declared on a class."""
    name: str
    containing_class: str  # qualified name of the declaring class
    file_path: str
    return_type: Optional[str] = None
    parameters: Tuple[ParameterSymbol, ...] = ()
    modifiers: Tuple[str, ...] = ()
    attributes: Tuple[str, ...] = ()
    type_parameters: Tuple[str, ...] = ()
    start_line: int = 0
    return_type_byte: Optional[int] = None
    has_error: bool = False

    @property
    def is_public(self) -> bool:
        return "public" in self.modifiers

    @property
    def is_static(self) -> bool:
        return "static" in self.modifiers

    @property
    def is_generic(self) -> bool:
        return bool(self.type_parameters)

    @property
    def is_overridable(self) -> bool:
        return bool({"virtual", "override", "abstract"} & set(self.modifiers))

    @property
    def signature_key(self) -> Tuple[str, Tuple[str, ...]]:
        """Name plus parameter types; equal keys mean one method overrides the other."""
        return self.name, tuple(" ".join((p.type or "").split()) for p in self.parameters)

    def has_attribute(self, name: str) -> bool:
        return any(attribute_name(a) == name for a in self.attributes)

    def find_attribute(self, name: str) -> Optional[str]:
        return next((a for a in self.attributes if attribute_name(a) == name), None)


@dataclass(frozen=True)
class ClassSymbol:
    """A class declaration, merged across partial declarations."""
    name: str
    namespace: str
    file_path: str
    modifiers: Tuple[str, ...] = ()
    attributes: Tuple[str, ...] = ()
    extends: Optional[str] = None
    implements: Tuple[str, ...] = ()
    type_parameters: Tuple[str, ...] = ()
    usings: Tuple[str, ...] = ()
    methods: Tuple[MethodSymbol, ...] = ()
    has_constructors: bool = False
    is_nested: bool = False
    has_error: bool = False
    start_line: int = 0
    # Byte offset of the `class` keyword when the declaration lacks `partial`
    partial_insert_at: Optional[int] = None
    declaration_files: Tuple[str, ...] = field(default=())

    @property
    def qualified_name(self) -> str:
        return f"{self.namespace}.{self.name}" if self.namespace else self.name

    @property
    def is_public(self) -> bool:
        return "public" in self.modifiers

    @property
    def is_static(self) -> bool:
        return "static" in self.modifiers

    @property
    def is_abstract(self) -> bool:
        return "abstract" in self.modifiers

    @property
    def is_sealed(self) -> bool:
        return "sealed" in self.modifiers

    @property
    def is_partial(self) -> bool:
        return "partial" in self.modifiers

    @property
    def is_generic(self) -> bool:
        return bool(self.type_parameters)

    def has_attribute(self, name: str) -> bool:
        return any(attribute_name(a) == name for a in self.attributes)
