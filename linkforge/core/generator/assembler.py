"""Emission assembler.

Composes generated declarations into compilation units: header banner,
usings, the pragma region, and for the aggregate unit the shared support
types, the registry class and the two result descriptor classes.
"""

import logging
from typing import Optional, Sequence

from ..config import Settings
from ..constants import (
    BASE_USINGS,
    DESCRIPTOR_EXTENSIONS_CLASS,
    DESCRIPTOR_HOOK,
    DESCRIPTOR_INTERFACE,
    DUMMY_CLASS,
    HEADER_TEXT,
    PRAGMA_CODES,
)
from .companion import GENERATED_CODE_ATTRIBUTE
from .models import DescriptorKind
from .syntax import (
    ClassDeclaration,
    CompilationUnit,
    Member,
    MethodDeclaration,
    NamespaceDeclaration,
    RawMember,
    apply_pragma_codes,
    normalize_whitespace,
)

logger = logging.getLogger(__name__)

_DESCRIPTOR_PROPERTIES = (
    ("string", "Controller"),
    ("string", "Action"),
    ("string", "Protocol"),
    ("RouteValueDictionary", "RouteValueDictionary"),
)

_DESCRIPTOR_BASES = {
    DescriptorKind.GENERIC: "ActionResult",
    DescriptorKind.DATA: "JsonResult",
}


class EmissionAssembler:
    """Builds and finishes the compilation units of a run."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def new_compilation_unit(self) -> CompilationUnit:
        return CompilationUnit(
            header=HEADER_TEXT,
            usings=BASE_USINGS + (self.settings.target_namespace,),
        )

    def handler_unit(self, namespaces: Sequence[Member]) -> CompilationUnit:
        """A per-source unit holding the generated code of one file's controllers."""
        return self.new_compilation_unit().add_members(*namespaces)

    def aggregate_unit(
        self,
        namespaces: Sequence[Member],
        static_files: Optional[NamespaceDeclaration],
        registry_fields: Sequence[RawMember],
    ) -> CompilationUnit:
        """The unit written to the project root.

        Args:
            namespaces: Generated controller namespaces (empty in multi-file mode)
            static_files: Links namespace from the static files collaborator
            registry_fields: One field per controller, in registry order

        Returns:
            CompilationUnit with every shared declaration
        """
        unit = self.new_compilation_unit().add_members(*namespaces)
        if static_files is not None:
            unit = unit.add_members(static_files)
        return unit.add_members(
            self.support_namespace(),
            self.registry_class(registry_fields),
            self.descriptor_class(DescriptorKind.GENERIC),
            self.descriptor_class(DescriptorKind.DATA),
        )

    def finish(self, unit: CompilationUnit) -> str:
        """Render a unit to its final, normalized text."""
        logger.debug(f"Finishing unit with {len(unit.members)} top-level declarations")
        text = apply_pragma_codes(unit.render(), PRAGMA_CODES)
        # normalize_whitespace strips pragma lines
        return apply_pragma_codes(normalize_whitespace(text), PRAGMA_CODES)

    # =========================================================================
    # Shared declarations
    # =========================================================================

    def registry_class(self, fields: Sequence[RawMember]) -> ClassDeclaration:
        return ClassDeclaration(
            name=self.settings.naming_prefix,
            modifiers=("public", "static", "partial"),
            attributes=(GENERATED_CODE_ATTRIBUTE,),
            members=tuple(fields),
        )

    def support_namespace(self) -> NamespaceDeclaration:
        """Dummy marker, descriptor interface and its initializer."""
        dummy = ClassDeclaration(
            name=DUMMY_CLASS,
            attributes=(GENERATED_CODE_ATTRIBUTE,),
            members=(
                MethodDeclaration(signature=f"private {DUMMY_CLASS}()"),
                RawMember(f"public static {DUMMY_CLASS} Instance = new {DUMMY_CLASS}();"),
            ),
        )
        interface_lines = [f"public interface {DESCRIPTOR_INTERFACE}", "{"]
        interface_lines.extend(f"    {t} {name} {{ get; set; }}" for t, name in _DESCRIPTOR_PROPERTIES)
        interface_lines.append("}")

        init = MethodDeclaration(
            signature=(
                f"public static void {DESCRIPTOR_HOOK}(this {DESCRIPTOR_INTERFACE} result, "
                "string area, string controller, string action, string protocol = null)"
            ),
            body=(
                "result.Controller = controller;",
                "result.Action = action;",
                "result.Protocol = protocol;",
                "result.RouteValueDictionary = new RouteValueDictionary();",
                'result.RouteValueDictionary.Add("Area", area ?? "");',
                'result.RouteValueDictionary.Add("Controller", controller);',
                'result.RouteValueDictionary.Add("Action", action);',
            ),
        )
        extensions = ClassDeclaration(
            name=DESCRIPTOR_EXTENSIONS_CLASS,
            modifiers=("public", "static"),
            attributes=(GENERATED_CODE_ATTRIBUTE,),
            members=(init,),
        )
        return NamespaceDeclaration(
            self.settings.target_namespace,
            members=(dummy, RawMember("\n".join(interface_lines)), extensions),
        )

    def descriptor_class(self, kind: DescriptorKind) -> ClassDeclaration:
        """``LinkedActionResult`` or ``LinkedJsonResult``."""
        name = kind.class_name
        chain = " : base(null)" if kind is DescriptorKind.DATA else ""
        ctor = MethodDeclaration(
            signature=(
                f"public {name}(string area, string controller, string action, "
                f"string protocol = null){chain}"
            ),
            body=(f"this.{DESCRIPTOR_HOOK}(area, controller, action, protocol);",),
        )
        properties = tuple(
            RawMember(f"public {t} {prop} {{ get; set; }}") for t, prop in _DESCRIPTOR_PROPERTIES
        )
        return ClassDeclaration(
            name=name,
            modifiers=("internal", "partial"),
            bases=(_DESCRIPTOR_BASES[kind], DESCRIPTOR_INTERFACE),
            attributes=(GENERATED_CODE_ATTRIBUTE,),
            members=(ctor,) + properties,
        )

