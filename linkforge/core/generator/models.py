"""Data contracts of the generation pipeline.

Everything here is an immutable value produced by one stage and read by
the next: the rewriter yields RewrittenHandler values, the generator turns
them into GeneratedUnit values, the run ends with a GenerationResult.
"""

import re
from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Protocol, Tuple, runtime_checkable

from ..constants import ACTION_RESULT_CLASS, COMPANION_PREFIX, JSON_RESULT_CLASS
from ..diagnostics import Diagnostic
from ..semantic.models import ClassSymbol, MethodSymbol, ParameterSymbol

# Keys the generated result classes fill from the route identity
ROUTE_IDENTITY_KEYS = frozenset({"area", "controller", "action"})

_INTEGER_RE = re.compile(r"^([+-]?)(0[xX]_*[0-9A-Fa-f][0-9A-Fa-f_]*|[0-9][0-9_]*)(?:[uU][lL]?|[lL][uU]?)?$")
_REAL_RE = re.compile(r"^[+-]?(?:[0-9][0-9_]*)?\.?[0-9][0-9_]*(?:[eE][+-]?[0-9]+)?[fFdDmM]?$")
_ESCAPE_RE = re.compile(r"\\(.)")
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0", "\\": "\\", '"': '"', "'": "'"}


def literal_value(expression: str) -> Any:
    """Python value of a C# literal used as a parameter default.

    `"pdf"` -> 'pdf', `null` -> None, `true` -> True, `10` -> 10,
    `2.5m` -> 2.5. Anything that is not a plain literal (`default`,
    `SortOrder.Name`, ...) is returned as its expression text.
    """
    text = expression.strip()
    if text == "null":
        return None
    if text in ("true", "false"):
        return text == "true"
    if len(text) >= 3 and text.startswith('@"') and text.endswith('"'):
        return text[2:-1].replace('""', '"')
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'":
        return _ESCAPE_RE.sub(lambda m: _ESCAPES.get(m.group(1), m.group(0)), text[1:-1])
    match = _INTEGER_RE.match(text)
    if match:
        sign, digits = match.group(1), match.group(2).replace("_", "")
        value = int(digits[2:], 16) if digits[:2].lower() == "0x" else int(digits)
        return -value if sign == "-" else value
    if _REAL_RE.match(text):
        return float(text.rstrip("fFdDmM").replace("_", ""))
    return text


class DescriptorKind(Enum):
    """The closed set of result shapes a rewritten action can return."""
    GENERIC = "generic"  # ActionResult
    DATA = "data"        # JsonResult

    @property
    def class_name(self) -> str:
        """Name of the generated C# class carrying this kind of descriptor."""
        return JSON_RESULT_CLASS if self is DescriptorKind.DATA else ACTION_RESULT_CLASS


@runtime_checkable
class DescriptorCarrier(Protocol):
    """Anything that can be stamped with a route identity."""

    def attach_route_identity(
        self, area: str, handler: str, method: str, protocol: Optional[str] = None
    ) -> None:
        ...


class ResultDescriptor:
    """What a rewritten action returns instead of executing.

    Mirrors the generated C# result classes: the constructor attaches the
    route identity, then each action parameter is added as a route value
    in declaration order.
    """

    def __init__(
        self,
        kind: DescriptorKind,
        area: str,
        handler: str,
        method: str,
        protocol: Optional[str] = None,
    ):
        self.kind = kind
        self.parameters: "OrderedDict[str, Any]" = OrderedDict()
        self.attach_route_identity(area, handler, method, protocol)

    def attach_route_identity(
        self, area: str, handler: str, method: str, protocol: Optional[str] = None
    ) -> None:
        self.area = area or ""
        self.handler = handler
        self.method = method
        self.protocol = protocol
        self.parameters.clear()

    def add_route_value(self, key: str, value: Any) -> None:
        if key.lower() in ROUTE_IDENTITY_KEYS:
            raise ValueError(f"Route value '{key}' would replace the route identity")
        if key in self.parameters:
            raise ValueError(f"Duplicate route value '{key}'")
        self.parameters[key] = value

    @property
    def route_values(self) -> Dict[str, Any]:
        """The full route dictionary: identity keys first, then parameters."""
        values: Dict[str, Any] = {"area": self.area, "controller": self.handler, "action": self.method}
        values.update(self.parameters)
        return values

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResultDescriptor):
            return NotImplemented
        return (
            self.kind, self.area, self.handler, self.method, self.protocol, list(self.parameters.items())
        ) == (
            other.kind, other.area, other.handler, other.method, other.protocol, list(other.parameters.items())
        )

    def __repr__(self) -> str:
        return (
            f"ResultDescriptor({self.kind.value}, area={self.area!r}, handler={self.handler!r}, "
            f"method={self.method!r}, protocol={self.protocol!r}, parameters={dict(self.parameters)!r})"
        )


@dataclass(frozen=True)
class RoutedMethod:
    """An action of a controller that gets a typed link in the companion.

    ``member_name`` is unique within the controller: the first method with
    a given name keeps it, later overloads get 1, 2, ... appended.
    """
    symbol: MethodSymbol
    member_name: str
    route_name: str
    kind: DescriptorKind
    result_type: str  # return type without the Task<> wrapper
    is_async: bool = False
    protocol: Optional[str] = None
    overload_index: int = 0

    @property
    def name(self) -> str:
        return self.symbol.name

    @property
    def parameters(self) -> Tuple[ParameterSymbol, ...]:
        return self.symbol.parameters

    @property
    def declaring_class(self) -> str:
        return self.symbol.containing_class

    @property
    def return_type(self) -> str:
        return self.symbol.return_type or "void"

    def describe(self, area: str, handler: str, *args: Any, **kwargs: Any) -> ResultDescriptor:
        """Build the descriptor the generated override returns for these arguments.

        Arguments bind like a C# call: positionally, then by name. Omitted
        optional parameters take their declared default: literals become
        Python values (see literal_value), other expressions stay text.
        """
        params = self.parameters
        if len(args) > len(params):
            raise TypeError(f"{self.name}() takes {len(params)} arguments but {len(args)} were given")
        bound: Dict[str, Any] = {p.name: value for p, value in zip(params, args)}
        for key, value in kwargs.items():
            if key not in {p.name for p in params}:
                raise TypeError(f"{self.name}() got an unexpected argument '{key}'")
            if key in bound:
                raise TypeError(f"{self.name}() got multiple values for argument '{key}'")
            bound[key] = value

        descriptor = ResultDescriptor(self.kind, area, handler, self.route_name, self.protocol)
        for param in params:
            if param.name in bound:
                descriptor.add_route_value(param.route_key, bound[param.name])
            elif param.default is not None:
                descriptor.add_route_value(param.route_key, literal_value(param.default))
            else:
                raise TypeError(f"{self.name}() missing required argument '{param.name}'")
        return descriptor


@dataclass(frozen=True)
class SourceEdit:
    """Text inserted at a byte offset of an original source file."""
    file_path: str
    offset: int
    text: str


@dataclass(frozen=True)
class RewrittenHandler:
    """A controller after rewriting: its actions, area and source edits."""
    symbol: ClassSymbol
    name: str  # route-facing name, "Home" for HomeController
    area: str
    routed_methods: Tuple[RoutedMethod, ...] = ()
    diagnostics: Tuple[Diagnostic, ...] = ()
    source_edits: Tuple[SourceEdit, ...] = ()
    base_handler: Optional[str] = None  # qualified name of a direct base that is also a controller
    protocol: Optional[str] = None
    usings: Tuple[str, ...] = ()  # namespaces the declaring files import

    @property
    def namespace(self) -> str:
        return self.symbol.namespace

    @property
    def class_name(self) -> str:
        return self.symbol.name

    @property
    def qualified_name(self) -> str:
        return self.symbol.qualified_name

    @property
    def companion_name(self) -> str:
        return f"{COMPANION_PREFIX}{self.symbol.name}"

    @property
    def companion_qualified_name(self) -> str:
        return f"{self.namespace}.{self.companion_name}" if self.namespace else self.companion_name

    @property
    def file_path(self) -> str:
        return self.symbol.file_path

    @property
    def is_abstract(self) -> bool:
        return self.symbol.is_abstract

    @property
    def own_methods(self) -> Tuple[RoutedMethod, ...]:
        """Routed methods declared by this controller (not inherited)."""
        return tuple(m for m in self.routed_methods if m.declaring_class == self.qualified_name)

    def member(self, member_name: str) -> RoutedMethod:
        for method in self.routed_methods:
            if method.member_name == member_name:
                return method
        raise KeyError(f"{self.class_name} has no routed member '{member_name}'")

    def describe(self, member_name: str, *args: Any, **kwargs: Any) -> ResultDescriptor:
        """Descriptor returned by the companion's override of ``member_name``."""
        return self.member(member_name).describe(self.area, self.name, *args, **kwargs)


@dataclass(frozen=True)
class GeneratedUnit:
    """One emitted C# file: normalized text and its target path."""
    path: str
    text: str
    is_aggregate: bool = False


@dataclass(frozen=True)
class SourceRewrite:
    """The rewritten bytes of an original controller source file."""
    path: str
    data: bytes


@dataclass(frozen=True)
class GenerationResult:
    """Everything a run produced, in the order it was produced."""
    handlers: Tuple[RewrittenHandler, ...] = ()
    units: Tuple[GeneratedUnit, ...] = ()
    source_rewrites: Tuple[SourceRewrite, ...] = ()
    diagnostics: Tuple[Diagnostic, ...] = ()
    registry_fields: Tuple[str, ...] = field(default=())

    @property
    def aggregate(self) -> GeneratedUnit:
        return next(unit for unit in self.units if unit.is_aggregate)
