"""Companion generator.

For each rewritten controller this builds:

* the generated half of the partial controller: constructors used by the
  companion, parameterless accessors, the ``Area``/``Name`` identity and
  the ``ActionNames``/``ActionNameConstants``/``ActionParamsClass_*``
  constants holders;
* the companion class ``Linked<Controller>``, which overrides every routed
  action so that calling it returns a result descriptor instead of running
  the action;
* the controller's field in the registry class.
"""

import logging
from typing import Dict, List, Optional, Set, Tuple

from ..constants import (
    ACTION_NAME_CONSTANTS_CLASS,
    ACTION_NAMES_ACCESSOR,
    ACTION_NAMES_CLASS,
    ACTION_PARAMS_CLASS_PREFIX,
    DUMMY_CLASS,
    NON_ACTION_ATTRIBUTE,
    OVERRIDE_HOOK_SUFFIX,
    TOOL_NAME,
    TOOL_VERSION,
)
from ..config import Settings
from .models import RewrittenHandler, RoutedMethod
from .syntax import ClassDeclaration, Member, MethodDeclaration, RawMember

logger = logging.getLogger(__name__)

GENERATED_CODE_ATTRIBUTE = f'[GeneratedCode("{TOOL_NAME}", "{TOOL_VERSION}"), DebuggerNonUserCode]'
NON_ACTION = f"[{NON_ACTION_ATTRIBUTE}]"


def csharp_string(value: str) -> str:
    """Quote ``value`` as a C# regular string literal."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _qualify(namespace: str, name: str) -> str:
    return f"{namespace}.{name}" if namespace else name


class CompanionGenerator:
    """Builds the generated C# declarations of one controller."""

    def __init__(self, settings: Settings):
        self.settings = settings

    # =========================================================================
    # Partial controller
    # =========================================================================

    def generate_partial_handler(
        self, handler: RewrittenHandler, registry_name: Optional[str] = None
    ) -> ClassDeclaration:
        """The generated half of the partial controller class.

        Args:
            handler: Rewritten controller
            registry_name: Its field name in the registry class; None for
                controllers without a registry field (abstract ones)

        Returns:
            ClassDeclaration for ``public partial class <Controller>``
        """
        cls = ClassDeclaration(name=handler.class_name, modifiers=("public", "partial"))
        cls = cls.add_members(*self._constructors(handler))
        cls = cls.add_members(*self._parameterless_accessors(handler))

        if registry_name is not None:
            cls = cls.add_members(RawMember(
                f"{GENERATED_CODE_ATTRIBUTE}\n"
                f"public {handler.class_name} Actions => {self.settings.naming_prefix}.{registry_name};"
            ))
        cls = cls.add_members(
            RawMember(f"{GENERATED_CODE_ATTRIBUTE}\npublic readonly string Area = {csharp_string(handler.area)};"),
            RawMember(f"{GENERATED_CODE_ATTRIBUTE}\npublic readonly string Name = {csharp_string(handler.name)};"),
            RawMember(f"{GENERATED_CODE_ATTRIBUTE}\npublic const string NameConst = {csharp_string(handler.name)};"),
        )
        cls = cls.add_members(*self._action_names(handler))
        cls = cls.add_members(*self._action_params(handler))
        return cls

    def _constructors(self, handler: RewrittenHandler) -> List[MethodDeclaration]:
        ctors = []
        if not handler.symbol.has_constructors:
            ctors.append(MethodDeclaration(
                signature=f"public {handler.class_name}()",
                attributes=(GENERATED_CODE_ATTRIBUTE,),
            ))
        chain = f" : base({DUMMY_CLASS}.Instance)" if handler.base_handler else ""
        ctors.append(MethodDeclaration(
            signature=f"protected {handler.class_name}({DUMMY_CLASS} d){chain}",
            attributes=(GENERATED_CODE_ATTRIBUTE,),
        ))
        return ctors

    def _parameterless_accessors(self, handler: RewrittenHandler) -> List[MethodDeclaration]:
        """`Edit()` shortcuts for own actions that only exist with parameters."""
        parameterless = {m.name for m in handler.symbol.methods if not m.parameters}
        emitted: Set[str] = set()
        accessors = []
        for method in handler.own_methods:
            if not method.parameters or method.name in parameterless or method.name in emitted:
                continue
            emitted.add(method.name)
            accessors.append(MethodDeclaration(
                signature=f"public virtual IActionResult {method.name}()",
                body=(
                    f"return new {method.kind.class_name}(Area, Name, "
                    f"{ACTION_NAMES_ACCESSOR}.{method.name});",
                ),
                attributes=(NON_ACTION, GENERATED_CODE_ATTRIBUTE),
            ))
        return accessors

    def _action_names(self, handler: RewrittenHandler) -> List[Member]:
        names: Dict[str, str] = {}
        for method in handler.routed_methods:
            names.setdefault(method.name, method.route_name)

        action_names = ClassDeclaration(
            name=ACTION_NAMES_CLASS,
            attributes=(GENERATED_CODE_ATTRIBUTE,),
            members=tuple(
                RawMember(f"public readonly string {name} = {csharp_string(route)};")
                for name, route in names.items()
            ),
        )
        constants = ClassDeclaration(
            name=ACTION_NAME_CONSTANTS_CLASS,
            attributes=(GENERATED_CODE_ATTRIBUTE,),
            members=tuple(
                RawMember(f"public const string {name} = {csharp_string(route)};")
                for name, route in names.items()
            ),
        )
        accessor = ACTION_NAMES_ACCESSOR
        return [
            RawMember(
                f"static readonly {ACTION_NAMES_CLASS} s_{accessor} = new {ACTION_NAMES_CLASS}();\n"
                f"{GENERATED_CODE_ATTRIBUTE}\n"
                f"public {ACTION_NAMES_CLASS} {accessor} => s_{accessor};"
            ),
            action_names,
            constants,
        ]

    def _action_params(self, handler: RewrittenHandler) -> List[Member]:
        members: List[Member] = []
        for method in handler.routed_methods:
            if not method.parameters:
                continue
            params_class = f"{ACTION_PARAMS_CLASS_PREFIX}{method.member_name}"
            members.append(RawMember(
                f"static readonly {params_class} s_{method.member_name}Params = new {params_class}();\n"
                f"{GENERATED_CODE_ATTRIBUTE}\n"
                f"public {params_class} {method.member_name}Params => s_{method.member_name}Params;"
            ))
            members.append(ClassDeclaration(
                name=params_class,
                attributes=(GENERATED_CODE_ATTRIBUTE,),
                members=tuple(
                    RawMember(f"public readonly string {p.name} = {csharp_string(p.route_key)};")
                    for p in method.parameters
                ),
            ))
        return members

    # =========================================================================
    # Companion class
    # =========================================================================

    def generate_companion(self, handler: RewrittenHandler) -> ClassDeclaration:
        """``Linked<Controller>``: overrides returning result descriptors."""
        cls = ClassDeclaration(
            name=handler.companion_name,
            modifiers=("public", "partial"),
            bases=(_qualify(handler.namespace, handler.class_name),),
            attributes=(GENERATED_CODE_ATTRIBUTE,),
        )
        cls = cls.add_members(MethodDeclaration(
            signature=f"public {handler.companion_name}() : base({DUMMY_CLASS}.Instance)",
        ))
        for method in handler.routed_methods:
            cls = cls.add_members(*self._override(method))
        logger.debug(f"Generated {handler.companion_name} with {len(handler.routed_methods)} overrides")
        return cls

    def _override(self, method: RoutedMethod) -> Tuple[RawMember, MethodDeclaration]:
        descriptor_class = method.kind.class_name
        hook = f"{method.member_name}{OVERRIDE_HOOK_SUFFIX}"
        hook_params = ", ".join(
            [f"{descriptor_class} callInfo"] + [f"{p.type} {p.name}" for p in method.parameters]
        )
        hook_args = ", ".join(["callInfo"] + [p.name for p in method.parameters])

        identity = ["Area", "Name", f"{ACTION_NAMES_ACCESSOR}.{method.name}"]
        if method.protocol:
            identity.append(csharp_string(method.protocol))

        body = [f"var callInfo = new {descriptor_class}({', '.join(identity)});"]
        body.extend(
            f"callInfo.RouteValueDictionary.Add({csharp_string(p.route_key)}, {p.name});"
            for p in method.parameters
        )
        body.append(f"{hook}({hook_args});")
        if method.is_async:
            body.append(f"return Task.FromResult<{method.result_type}>(callInfo);")
        else:
            body.append("return callInfo;")

        params = ", ".join(p.render() for p in method.parameters)
        hook_decl = RawMember(f"{NON_ACTION}\npartial void {hook}({hook_params});")
        override = MethodDeclaration(
            signature=f"public override {method.return_type} {method.name}({params})",
            body=tuple(body),
            attributes=(NON_ACTION, GENERATED_CODE_ATTRIBUTE),
        )
        return hook_decl, override

    # =========================================================================
    # Registry
    # =========================================================================

    def registry_field(self, handler: RewrittenHandler, field_name: str) -> RawMember:
        """``public static <Ns>.<Controller> <Name> = new <Ns>.Linked<Controller>();``"""
        return RawMember(
            f"public static {_qualify(handler.namespace, handler.class_name)} {field_name} = "
            f"new {handler.companion_qualified_name}();"
        )
