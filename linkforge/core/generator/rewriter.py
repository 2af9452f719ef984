"""Controller rewriter.

Derives, for one controller, everything the companion generator needs:
the area, the routed methods with their unique member names and result
kinds, the actions that must be left out, and the source edits that make
the controller `partial` and its actions overridable.

Rewriting is a pure function of the semantic model: the original symbols
are never modified, and source edits are returned as values that the
pipeline applies (or not) when it persists files.
"""

import logging
import re
from typing import Dict, Iterable, List, Optional, Set, Tuple, Union

from ..constants import (
    ACTION_NAME_ATTRIBUTE,
    AREA_PATTERN,
    HANDLER_SUFFIX,
    NON_ACTION_ATTRIBUTE,
    REQUIRE_HTTPS_ATTRIBUTE,
)
from ..diagnostics import Diagnostic, DiagnosticKind
from ..semantic import ClassSymbol, MethodSymbol, ParameterSymbol, SemanticModel
from ..semantic.models import attribute_string_argument
from .models import ROUTE_IDENTITY_KEYS, DescriptorKind, RewrittenHandler, RoutedMethod, SourceEdit

logger = logging.getLogger(__name__)

_TASK_RE = re.compile(r"^(?:(?:global::)?System\.Threading\.Tasks\.)?Task<(.+)>$")

_GENERIC_RESULT_TYPES = frozenset({"IActionResult", "ActionResult"})
_DATA_RESULT_TYPES = frozenset({"JsonResult"})
_BY_REFERENCE_MODIFIERS = ("ref", "out", "in")


def area_for_namespace(namespace: str) -> str:
    """Area segment of a controller namespace, or "" when it has none."""
    match = AREA_PATTERN.search(namespace)
    return match.group(1) if match else ""


def route_name_for(class_name: str) -> str:
    """Trim the controller suffix once: `HomeController` -> `Home`."""
    if class_name.endswith(HANDLER_SUFFIX) and class_name != HANDLER_SUFFIX:
        return class_name[: -len(HANDLER_SUFFIX)]
    return class_name


def classify_return_type(return_type: Optional[str]) -> Optional[Tuple[DescriptorKind, str, bool]]:
    """Map an action return type to (descriptor kind, result type, is_async).

    Returns None when no generated result class can stand in for it.
    """
    if not return_type:
        return None
    text = "".join(return_type.split())
    is_async = False
    match = _TASK_RE.match(text)
    if match:
        text = match.group(1)
        is_async = True
    bare = text.split("<")[0].replace("global::", "").split(".")[-1]
    if bare in _DATA_RESULT_TYPES and "<" not in text:
        return DescriptorKind.DATA, text, is_async
    if bare in _GENERIC_RESULT_TYPES:
        if bare == "IActionResult" and "<" in text:
            return None
        return DescriptorKind.GENERIC, text, is_async
    return None


def unrepresentable_reason(param: ParameterSymbol) -> Optional[str]:
    """Why a parameter cannot appear in a generated override, or None."""
    if param.name == "__arglist" or not param.type:
        return "has no declared type"
    if "*" in param.type:
        return f"uses the pointer type {param.type}"
    for modifier in _BY_REFERENCE_MODIFIERS:
        if modifier in param.modifiers:
            return f"is passed by reference ({modifier})"
    # Route value keys are case-insensitive
    if param.route_key.lower() in ROUTE_IDENTITY_KEYS:
        return f"would replace the '{param.route_key.lower()}' route value"
    return None


def apply_source_edits(source: Union[str, bytes], edits: Iterable[SourceEdit]) -> Union[str, bytes]:
    """Insert edits into ``source``; offsets are byte offsets of the original.

    Bytes come back as bytes with every other byte untouched. Text is
    taken as UTF-8 and comes back as text.
    """
    data = source.encode("utf-8") if isinstance(source, str) else source
    for edit in sorted(edits, key=lambda e: e.offset, reverse=True):
        data = data[:edit.offset] + edit.text.encode("utf-8") + data[edit.offset:]
    return data.decode("utf-8") if isinstance(source, str) else data


class HandlerRewriter:
    """Rewrites controllers of one semantic model.

    ``handler_names`` holds the qualified names of every controller of the
    run; actions are inherited only from bases in that set.
    """

    def __init__(self, model: SemanticModel, handler_names: Iterable[str]):
        self._model = model
        self._handler_names: Set[str] = set(handler_names)

    def rewrite(self, symbol: ClassSymbol) -> RewrittenHandler:
        """Derive the rewritten form of one controller."""
        ancestry = self._model.resolve_ancestry(symbol)
        area = area_for_namespace(self._model.resolve_namespace(symbol))
        # [RequireHttps] is inherited by derived controllers
        requires_https = any(c.has_attribute(REQUIRE_HTTPS_ATTRIBUTE) for c in ancestry)
        class_protocol = "https" if requires_https else None

        diagnostics: List[Diagnostic] = []
        candidates: List[MethodSymbol] = []
        seen_signatures: Set[Tuple[str, Tuple[str, ...]]] = set()
        for method in symbol.methods:
            if self._is_action(method, self._handler_signatures(ancestry[1:]), diagnostics, symbol):
                candidates.append(method)
                seen_signatures.add(method.signature_key)

        for depth, base in enumerate(ancestry[1:], start=2):
            if base.qualified_name not in self._handler_names:
                continue
            inherited = self._handler_signatures(ancestry[depth:])
            for method in base.methods:
                if method.signature_key in seen_signatures:
                    continue
                seen_signatures.add(method.signature_key)
                if self._is_action(method, inherited, None, base):
                    candidates.append(method)

        routed = self._assign_member_names(candidates, class_protocol)
        edits = self._source_edits(symbol, routed)

        usings = list(symbol.usings)
        for base in ancestry[1:]:
            if not any(m.declaring_class == base.qualified_name for m in routed):
                continue
            for name in (base.namespace,) + base.usings:
                if name and name != symbol.namespace and name not in usings:
                    usings.append(name)

        direct_base = ancestry[1].qualified_name if len(ancestry) > 1 else None
        rewritten = RewrittenHandler(
            symbol=symbol,
            name=route_name_for(symbol.name),
            area=area,
            routed_methods=tuple(routed),
            diagnostics=tuple(diagnostics),
            source_edits=tuple(edits),
            base_handler=direct_base if direct_base in self._handler_names else None,
            protocol=class_protocol,
            usings=tuple(usings),
        )
        logger.debug(
            f"Rewrote {symbol.qualified_name}: area='{area}', "
            f"{len(routed)} actions, {len(diagnostics)} diagnostics"
        )
        return rewritten

    def rewrite_all(self, symbols: Iterable[ClassSymbol]) -> List[RewrittenHandler]:
        return [self.rewrite(symbol) for symbol in symbols]

    def _handler_signatures(self, bases: List[ClassSymbol]) -> Set[Tuple[str, Tuple[str, ...]]]:
        """Signatures declared by the controllers among ``bases``."""
        return {
            m.signature_key for base in bases if base.qualified_name in self._handler_names
            for m in base.methods
        }

    # =========================================================================
    # Action selection
    # =========================================================================

    def _is_action(
        self,
        method: MethodSymbol,
        base_signatures: Set[Tuple[str, Tuple[str, ...]]],
        diagnostics: Optional[List[Diagnostic]],
        owner: ClassSymbol,
    ) -> bool:
        """Whether ``method`` gets a link; records why not when it is excluded.

        Diagnostics are only recorded for the controller's own methods
        (``diagnostics`` is None for inherited ones, the base reports them).
        """
        if not method.is_public or method.is_static or method.is_generic:
            return False
        if method.has_attribute(NON_ACTION_ATTRIBUTE):
            return False
        # Overrides of framework members (OnActionExecuting, ...) are not actions
        if "override" in method.modifiers and method.signature_key not in base_signatures:
            return False

        subject = f"{owner.name}.{method.name}"

        def report(kind: DiagnosticKind, message: str) -> bool:
            if diagnostics is not None:
                diagnostic = Diagnostic(
                    kind=kind,
                    subject=subject,
                    message=message,
                    file_path=method.file_path,
                    line=method.start_line,
                )
                diagnostics.append(diagnostic)
                logger.warning(str(diagnostic))
            return False

        problems = [
            f"parameter '{p.name}' {reason}"
            for p in method.parameters
            for reason in [unrepresentable_reason(p)] if reason
        ]
        if problems:
            return report(
                DiagnosticKind.UNSUPPORTED_PARAMETER,
                "excluded from generated links: " + "; ".join(problems),
            )
        if "sealed" in method.modifiers:
            return report(DiagnosticKind.UNSUPPORTED_METHOD, "excluded from generated links: method is sealed")
        if classify_return_type(method.return_type) is None:
            return report(
                DiagnosticKind.UNSUPPORTED_METHOD,
                f"excluded from generated links: return type '{method.return_type}' has no result descriptor",
            )
        return True

    @staticmethod
    def _assign_member_names(methods: List[MethodSymbol], class_protocol: Optional[str]) -> List[RoutedMethod]:
        """Give every action a unique member name, numbering repeats in first-seen order."""
        used: Set[str] = set()
        counters: Dict[str, int] = {}
        routed = []
        for method in methods:
            member_name = method.name
            index = 0
            if member_name in used:
                index = counters.get(method.name, 0)
                while member_name in used:
                    index += 1
                    member_name = f"{method.name}{index}"
                counters[method.name] = index
            used.add(member_name)

            kind, result_type, is_async = classify_return_type(method.return_type)
            action_name = method.find_attribute(ACTION_NAME_ATTRIBUTE)
            route_name = (attribute_string_argument(action_name) if action_name else None) or method.name
            protocol = "https" if method.has_attribute(REQUIRE_HTTPS_ATTRIBUTE) else class_protocol

            routed.append(RoutedMethod(
                symbol=method,
                member_name=member_name,
                route_name=route_name,
                kind=kind,
                result_type=result_type,
                is_async=is_async,
                protocol=protocol,
                overload_index=index,
            ))
        return routed

    @staticmethod
    def _source_edits(symbol: ClassSymbol, routed: List[RoutedMethod]) -> List[SourceEdit]:
        """Edits that make the controller partial and its own actions virtual."""
        edits = []
        if symbol.partial_insert_at is not None:
            edits.append(SourceEdit(symbol.file_path, symbol.partial_insert_at, "partial "))
        for method in routed:
            declared = method.symbol
            if declared.containing_class != symbol.qualified_name:
                continue
            if declared.is_overridable or declared.return_type_byte is None:
                continue
            edits.append(SourceEdit(declared.file_path, declared.return_type_byte, "virtual "))
        return edits
