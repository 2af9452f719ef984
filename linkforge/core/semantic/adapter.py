"""Semantic model over a parsed C# project.

Turns parser output into class and method symbols, resolves base classes
by namespace lookup, and decides which classes are controllers. This is
the read-only query surface the rewriter and the generator share.
"""

import logging
from dataclasses import replace
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from ..ast_parser import CodeUnit, ParseResult, iter_source_files, parse_file, parse_source
from ..constants import (
    CONTROLLER_ATTRIBUTE,
    HANDLER_BASE_NAMES,
    HANDLER_SUFFIX,
    NON_CONTROLLER_ATTRIBUTE,
)
from ..diagnostics import Diagnostic, DiagnosticKind
from .models import ClassSymbol, MethodSymbol, ParameterSymbol

logger = logging.getLogger(__name__)


def _strip_type_arguments(type_name: str) -> str:
    """`global::App.BaseController<Foo>` -> `App.BaseController`."""
    return type_name.replace("global::", "").split("<")[0].strip()


def _merge_unique(first: Iterable[str], second: Iterable[str]) -> Tuple[str, ...]:
    merged = list(first)
    merged.extend(item for item in second if item not in merged)
    return tuple(merged)


def _looks_like_handler_name(name: str) -> bool:
    return name in HANDLER_BASE_NAMES or name.endswith(HANDLER_SUFFIX)


class SemanticModel:
    """Class and method symbols of one program, keyed by qualified name.

    Classes keep discovery order: files in the order they were parsed
    (sorted paths when loaded from disk), declarations in source order.
    """

    def __init__(self, parse_results: Sequence[ParseResult]):
        self._sources: Dict[str, bytes] = {r.file_path: r.content for r in parse_results}
        self._classes: Dict[str, ClassSymbol] = {}
        for result in parse_results:
            for error in result.errors:
                logger.debug(f"{error.file_path}:{error.line}: {error.message}")
            self._add_parse_result(result)
        logger.debug(f"Semantic model built with {len(self._classes)} classes")

    @classmethod
    def from_sources(cls, sources: Mapping[str, Union[str, bytes]]) -> "SemanticModel":
        """Build a model from an in-memory mapping of relative path → C# source."""
        results = [parse_source(text, path, "csharp") for path, text in sorted(sources.items())]
        return cls(results)

    @classmethod
    def from_directory(cls, project_root: str) -> "SemanticModel":
        """Parse every hand-written .cs file below ``project_root``."""
        results = [parse_file(path, project_root) for path in iter_source_files(project_root)]
        results.sort(key=lambda r: r.file_path)
        logger.info(f"Loaded {len(results)} C# source files from {project_root}")
        return cls(results)

    # =========================================================================
    # Model construction
    # =========================================================================

    def _add_parse_result(self, result: ParseResult) -> None:
        methods: Dict[str, List[MethodSymbol]] = {}
        with_ctors = set()
        for unit in result.units:
            if unit.unit_type == "method":
                owner = self._owner_name(unit)
                methods.setdefault(owner, []).append(self._method_symbol(unit, owner))
            elif unit.unit_type == "constructor":
                with_ctors.add(self._owner_name(unit))

        for unit in result.units:
            if unit.unit_type != "class":
                continue
            symbol = self._class_symbol(unit, methods.get(unit.qualified_name, []), unit.qualified_name in with_ctors)
            existing = self._classes.get(symbol.qualified_name)
            self._classes[symbol.qualified_name] = self._merge_partial(existing, symbol) if existing else symbol

    @staticmethod
    def _owner_name(unit: CodeUnit) -> str:
        return f"{unit.namespace}.{unit.parent_name}" if unit.namespace else unit.parent_name

    @staticmethod
    def _method_symbol(unit: CodeUnit, owner: str) -> MethodSymbol:
        meta = unit.metadata
        return MethodSymbol(
            name=unit.name,
            containing_class=owner,
            file_path=unit.file_path,
            return_type=meta.get("return_type"),
            parameters=tuple(
                ParameterSymbol(
                    name=p["name"],
                    type=p.get("type"),
                    default=p.get("default"),
                    modifiers=tuple(p.get("modifiers", ())),
                )
                for p in meta.get("parameters", [])
            ),
            modifiers=tuple(meta.get("modifiers", ())),
            attributes=tuple(meta.get("annotations", ())),
            type_parameters=tuple(meta.get("generic_params", ())),
            start_line=unit.start_line,
            return_type_byte=meta.get("return_type_byte"),
            has_error=bool(meta.get("has_error")),
        )

    @staticmethod
    def _class_symbol(unit: CodeUnit, methods: List[MethodSymbol], has_constructors: bool) -> ClassSymbol:
        meta = unit.metadata
        modifiers = tuple(meta.get("modifiers", ()))
        usings = _merge_unique(unit.imports, meta.get("usings", ()))
        name = f"{unit.parent_name}.{unit.name}" if unit.parent_name else unit.name
        return ClassSymbol(
            name=name,
            namespace=unit.namespace,
            file_path=unit.file_path,
            modifiers=modifiers,
            attributes=tuple(meta.get("annotations", ())),
            extends=meta.get("extends"),
            implements=tuple(meta.get("implements", ())),
            type_parameters=tuple(meta.get("generic_params", ())),
            usings=usings,
            methods=tuple(methods),
            has_constructors=has_constructors,
            is_nested=unit.parent_name is not None,
            has_error=bool(meta.get("has_error")),
            start_line=unit.start_line,
            partial_insert_at=None if "partial" in modifiers else meta.get("class_keyword_byte"),
            declaration_files=(unit.file_path,),
        )

    @staticmethod
    def _merge_partial(first: ClassSymbol, other: ClassSymbol) -> ClassSymbol:
        """Merge a further partial declaration into the first one seen."""
        return replace(
            first,
            modifiers=_merge_unique(first.modifiers, other.modifiers),
            attributes=first.attributes + other.attributes,
            extends=first.extends or other.extends,
            implements=_merge_unique(first.implements, other.implements),
            usings=_merge_unique(first.usings, other.usings),
            methods=first.methods + other.methods,
            has_constructors=first.has_constructors or other.has_constructors,
            has_error=first.has_error or other.has_error,
            partial_insert_at=None,
            declaration_files=_merge_unique(first.declaration_files, other.declaration_files),
        )

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def classes(self) -> List[ClassSymbol]:
        return list(self._classes.values())

    @property
    def sources(self) -> Dict[str, bytes]:
        """Source bytes by relative path, as read; rewrites edit these."""
        return dict(self._sources)

    def get_class(self, qualified_name: str) -> Optional[ClassSymbol]:
        return self._classes.get(qualified_name)

    def resolve_namespace(self, symbol: ClassSymbol) -> str:
        """Dotted namespace path of a class (empty for the global namespace)."""
        return symbol.namespace

    def resolve_base(self, symbol: ClassSymbol) -> Optional[ClassSymbol]:
        """Find the declared base class among the program's own classes."""
        if not symbol.extends:
            return None
        name = _strip_type_arguments(symbol.extends)
        for candidate in self._candidate_names(symbol, name):
            found = self._classes.get(candidate)
            if found is not None and found.qualified_name != symbol.qualified_name:
                return found
        return None

    def resolve_ancestry(self, symbol: ClassSymbol) -> List[ClassSymbol]:
        """Ordered list from ``symbol`` itself to its furthest resolved base.

        Stops at the first base that is not declared in the program, and
        before a class that would repeat (cyclic inheritance).
        """
        chain, _, _ = self._walk_ancestry(symbol)
        return chain

    def external_base(self, symbol: ClassSymbol) -> Optional[str]:
        """Short name of the first ancestor that is not declared in the program."""
        _, external, _ = self._walk_ancestry(symbol)
        return external

    def _walk_ancestry(self, symbol: ClassSymbol) -> Tuple[List[ClassSymbol], Optional[str], bool]:
        chain = [symbol]
        seen = {symbol.qualified_name}
        current = symbol
        while current.extends:
            base = self.resolve_base(current)
            if base is None:
                return chain, _strip_type_arguments(current.extends).split(".")[-1], False
            if base.qualified_name in seen:
                return chain, None, True
            chain.append(base)
            seen.add(base.qualified_name)
            current = base
        return chain, None, False

    @staticmethod
    def _candidate_names(symbol: ClassSymbol, name: str) -> List[str]:
        """Qualified names ``name`` may refer to from inside ``symbol``'s namespace."""
        candidates = []
        parts = symbol.namespace.split(".") if symbol.namespace else []
        for i in range(len(parts), -1, -1):
            prefix = ".".join(parts[:i])
            candidates.append(f"{prefix}.{name}" if prefix else name)
        candidates.extend(f"{using}.{name}" for using in symbol.usings)
        return candidates

    # =========================================================================
    # Controller discovery
    # =========================================================================

    def is_handler_candidate(self, symbol: ClassSymbol) -> bool:
        """Whether a class looks like a controller by name, attribute or ancestry."""
        if symbol.is_nested:
            return False
        if symbol.name.endswith(HANDLER_SUFFIX) or symbol.has_attribute(CONTROLLER_ATTRIBUTE):
            return True
        chain, external, _ = self._walk_ancestry(symbol)
        if any(_looks_like_handler_name(c.name) for c in chain[1:]):
            return True
        return external is not None and _looks_like_handler_name(external)

    def discover_handlers(self) -> Tuple[List[ClassSymbol], List[Diagnostic]]:
        """List the controllers of the program in discovery order.

        Candidates that cannot be resolved (syntax errors in the class,
        cyclic inheritance) or derived from (sealed classes) are skipped
        and reported as diagnostics.
        """
        handlers: List[ClassSymbol] = []
        diagnostics: List[Diagnostic] = []
        for symbol in self._classes.values():
            if not self.is_handler_candidate(symbol):
                continue
            if not symbol.is_public or symbol.is_static or symbol.is_generic:
                logger.debug(f"Skipping {symbol.qualified_name}: not a public, non-static, non-generic class")
                continue
            if symbol.has_attribute(NON_CONTROLLER_ATTRIBUTE):
                logger.debug(f"Skipping {symbol.qualified_name}: marked [NonController]")
                continue

            reason = None
            if symbol.has_error:
                reason = "class declaration contains syntax errors"
            elif symbol.is_sealed:
                reason = "class is sealed and cannot be derived from"
            elif self._walk_ancestry(symbol)[2]:
                reason = "class has a cyclic inheritance chain"
            if reason:
                diagnostics.append(Diagnostic(
                    kind=DiagnosticKind.DISCOVERY,
                    subject=symbol.qualified_name,
                    message=f"skipped, {reason}",
                    file_path=symbol.file_path,
                    line=symbol.start_line,
                ))
                continue

            handlers.append(symbol)

        logger.info(f"Discovered {len(handlers)} controllers ({len(diagnostics)} skipped)")
        return handlers, diagnostics

    def list_handlers(self) -> List[ClassSymbol]:
        """Controllers in discovery order, without the discovery diagnostics."""
        handlers, _ = self.discover_handlers()
        return handlers

