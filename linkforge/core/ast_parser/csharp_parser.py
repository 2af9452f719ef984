"""C# AST parser using tree-sitter.

Walks the tree-sitter AST to extract classes, methods and constructors
from C# source files, together with everything the semantic model needs
to reason about controllers: modifiers, attributes, base types, parameter
lists, return types and the byte offsets where ``partial`` or ``virtual``
can be inserted when a controller source is rewritten.
"""

import logging
import os
from typing import Any, Dict, List, Optional, Union

import tree_sitter
import tree_sitter_c_sharp

from .models import CodeUnit, ParseError, ParseResult

logger = logging.getLogger(__name__)

LANGUAGE = "csharp"

_CSHARP_LANGUAGE = tree_sitter.Language(tree_sitter_c_sharp.language())

# Keywords that can precede a parameter type: `ref int x`, `params string[] v`
_PARAMETER_KEYWORDS = frozenset({"ref", "out", "in", "this", "params", "scoped", "readonly"})


def _first_error_line(root: tree_sitter.Node) -> int:
    """1-based line of the first ERROR or MISSING node, 0 if there is none."""
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return node.start_point.row + 1
        if node.has_error:
            stack.extend(reversed(node.children))
    return 0


class CSharpParser:
    """tree-sitter based C# parser.

    Extracts:
    - Class declarations -> unit_type="class"
    - Method declarations -> unit_type="method"
    - Constructor declarations -> unit_type="constructor"
    - Namespace and using declarations -> metadata
    """

    def __init__(self):
        self._parser = tree_sitter.Parser(_CSHARP_LANGUAGE)

    def parse_file(self, file_path: str, project_root: str = "") -> ParseResult:
        """Read and parse one file.

        Args:
            file_path: Absolute path to the source file
            project_root: Project root; the result path is relative to it

        Returns:
            ParseResult; an unreadable file yields no units and one error
        """
        rel_path = os.path.relpath(file_path, project_root) if project_root else file_path
        rel_path = rel_path.replace(os.sep, "/")
        try:
            with open(file_path, "rb") as f:
                content = f.read()
        except OSError as e:
            logger.warning(f"Cannot read {file_path}: {e}")
            return ParseResult(
                file_path=rel_path,
                language=LANGUAGE,
                units=[],
                imports=[],
                errors=[ParseError(file_path=rel_path, line=0, message=str(e), severity="error")],
            )
        return self.parse_source(content, rel_path)

    def parse_source(self, source_text: Union[str, bytes], file_path: str) -> ParseResult:
        """Parse C# source; ``file_path`` is recorded on every unit.

        Bytes are parsed as they are, so byte offsets in the result index
        into the file exactly as it sits on disk (line endings and invalid
        UTF-8 included). Text is encoded as UTF-8 first.
        """
        source = source_text.encode("utf-8") if isinstance(source_text, str) else source_text
        tree = self._parser.parse(source)

        errors: List[ParseError] = []
        if tree.root_node.has_error:
            line = _first_error_line(tree.root_node)
            errors.append(ParseError(file_path=file_path, line=line, message="syntax errors in file"))
            logger.debug(f"{file_path}:{line}: tree-sitter reported syntax errors")

        imports = self.extract_imports(tree, source)
        units = self.extract_units(tree, source, file_path)
        for unit in units:
            unit.imports = list(imports)

        return ParseResult(
            file_path=file_path,
            language=LANGUAGE,
            units=units,
            imports=imports,
            line_count=len(source.splitlines()),
            errors=errors,
            content=source,
        )

    def extract_imports(self, tree: tree_sitter.Tree, source: bytes) -> List[str]:
        """Extract the namespaces imported by top-level using directives."""
        imports = []
        for child in tree.root_node.children:
            if child.type == "using_directive":
                target = self._using_target(child, source)
                if target:
                    imports.append(target)
        return imports

    def extract_units(
        self, tree: tree_sitter.Tree, source: bytes, file_path: str
    ) -> List[CodeUnit]:
        """Extract code units from the C# AST."""
        units: List[CodeUnit] = []
        self._walk_members(
            tree.root_node, source, file_path,
            namespace="", usings=[], parent_class=None, units=units,
        )
        return units

    # =========================================================================
    # Recursive member walker
    # =========================================================================

    def _walk_members(
        self,
        node: tree_sitter.Node,
        source: bytes,
        file_path: str,
        namespace: str,
        usings: List[str],
        parent_class: Optional[str],
        units: List[CodeUnit],
    ) -> None:
        """Recursively walk AST nodes to extract class declarations.

        Using directives seen at a level apply to every declaration that
        follows them at that level and below.
        """
        usings = list(usings)
        for child in node.children:
            if child.type == "using_directive":
                target = self._using_target(child, source)
                if target:
                    usings.append(target)

            elif child.type == "namespace_declaration":
                ns_name = self._extract_namespace_name(child, source)
                full_ns = f"{namespace}.{ns_name}" if namespace else ns_name
                self._walk_members(child, source, file_path, full_ns, usings, parent_class, units)

            elif child.type == "file_scoped_namespace_declaration":
                # Depending on the grammar version the members are either
                # children of this node or its following siblings.
                ns_name = self._extract_namespace_name(child, source)
                namespace = f"{namespace}.{ns_name}" if namespace else ns_name
                self._walk_members(child, source, file_path, namespace, usings, parent_class, units)

            elif child.type == "declaration_list":
                self._walk_members(child, source, file_path, namespace, usings, parent_class, units)

            elif child.type == "class_declaration":
                self._extract_class(child, source, file_path, namespace, usings, parent_class, units)

    # =========================================================================
    # Type-level extractors
    # =========================================================================

    def _extract_class(
        self,
        node: tree_sitter.Node,
        source: bytes,
        file_path: str,
        namespace: str,
        usings: List[str],
        parent_class: Optional[str],
        units: List[CodeUnit],
    ) -> None:
        """Extract a class declaration and its methods and constructors."""
        name = self._get_child_text(node, "name", source)
        if not name:
            return

        qualified_name = self._build_qualified_name(namespace, parent_class, name)
        extends, implements = self._extract_inheritance(node, source)
        class_keyword = self._get_child_by_type(node, "class")

        metadata: Dict[str, Any] = {
            "modifiers": self._extract_modifiers(node, source),
            "annotations": self._extract_attributes(node, source),
            "extends": extends,
            "implements": implements,
            "generic_params": self._extract_generic_params(node, source),
            "usings": list(usings),
            "has_error": node.has_error,
            "class_keyword_byte": class_keyword.start_byte if class_keyword else None,
        }

        units.append(CodeUnit(
            unit_type="class",
            name=name,
            qualified_name=qualified_name,
            language="csharp",
            start_line=node.start_point.row + 1,
            end_line=node.end_point.row + 1,
            source=self._node_text(node, source),
            file_path=file_path,
            namespace=namespace,
            signature=self._extract_type_signature(node, source),
            parent_name=parent_class,
            start_byte=node.start_byte,
            metadata=metadata,
        ))

        owner = f"{parent_class}.{name}" if parent_class else name
        body = self._get_child_by_type(node, "declaration_list")
        if not body:
            return
        for child in body.children:
            if child.type == "method_declaration":
                method = self._extract_method(child, source, file_path, namespace, owner)
                if method:
                    units.append(method)
            elif child.type == "constructor_declaration":
                units.append(self._extract_constructor(child, source, file_path, namespace, owner))
            elif child.type == "class_declaration":
                self._extract_class(child, source, file_path, namespace, usings, owner, units)

    # =========================================================================
    # Member extractors
    # =========================================================================

    def _extract_method(
        self,
        node: tree_sitter.Node,
        source: bytes,
        file_path: str,
        namespace: str,
        class_name: str,
    ) -> Optional[CodeUnit]:
        """Extract a method declaration with its signature details."""
        name = self._get_child_text(node, "name", source)
        if not name:
            return None

        return_node = node.child_by_field_name("returns") or node.child_by_field_name("type")
        params_node = node.child_by_field_name("parameters") or self._get_child_by_type(node, "parameter_list")
        type_params = node.child_by_field_name("type_parameters") or self._get_child_by_type(node, "type_parameter_list")

        metadata: Dict[str, Any] = {
            "modifiers": self._extract_modifiers(node, source),
            "annotations": self._extract_attributes(node, source),
            "return_type": self._node_text(return_node, source) if return_node else None,
            "return_type_byte": return_node.start_byte if return_node else None,
            "parameters": self._parse_parameters(params_node, source) if params_node else [],
            "generic_params": self._split_type_parameters(type_params, source),
            "has_error": node.has_error,
        }

        return CodeUnit(
            unit_type="method",
            name=name,
            qualified_name=self._build_qualified_name(namespace, class_name, name),
            language="csharp",
            start_line=node.start_point.row + 1,
            end_line=node.end_point.row + 1,
            source=self._node_text(node, source),
            file_path=file_path,
            namespace=namespace,
            signature=self._extract_method_signature(node, source),
            parent_name=class_name,
            start_byte=node.start_byte,
            metadata=metadata,
        )

    def _extract_constructor(
        self,
        node: tree_sitter.Node,
        source: bytes,
        file_path: str,
        namespace: str,
        class_name: str,
    ) -> CodeUnit:
        """Extract a constructor declaration."""
        name = self._get_child_text(node, "name", source) or class_name.split(".")[-1]
        params_node = node.child_by_field_name("parameters") or self._get_child_by_type(node, "parameter_list")

        return CodeUnit(
            unit_type="constructor",
            name=name,
            qualified_name=self._build_qualified_name(namespace, class_name, name),
            language="csharp",
            start_line=node.start_point.row + 1,
            end_line=node.end_point.row + 1,
            source=self._node_text(node, source),
            file_path=file_path,
            namespace=namespace,
            signature=self._extract_method_signature(node, source),
            parent_name=class_name,
            start_byte=node.start_byte,
            metadata={
                "modifiers": self._extract_modifiers(node, source),
                "parameters": self._parse_parameters(params_node, source) if params_node else [],
            },
        )

    def _parse_parameters(
        self, params_node: tree_sitter.Node, source: bytes
    ) -> List[Dict[str, Any]]:
        """Parse a C# parameter_list into a structured list.

        ``__arglist`` is reported as a parameter without a type so callers
        can treat it as unrepresentable.

        Newer grammars (tree-sitter-c-sharp 0.23) have no ``parameter_array``
        node: the ``params`` keyword, the array type and the name sit
        directly in the list, so they are gathered here.
        """
        params = []
        pending: Optional[Dict[str, Any]] = None
        for child in params_node.children:
            if pending is not None:
                if child.type == "identifier" and pending["type"] is not None:
                    pending["name"] = self._node_text(child, source)
                    params.append(pending)
                    pending = None
                elif child.is_named and child.type != "attribute_list" and pending["type"] is None:
                    pending["type"] = self._node_text(child, source)
                continue
            if child.type == "params":
                pending = {"name": "?", "type": None, "default": None, "modifiers": ["params"]}
            elif child.type == "__arglist":
                params.append({"name": "__arglist", "type": None, "default": None, "modifiers": []})
            elif child.type in ("parameter", "parameter_array"):
                params.append(self._parse_single_parameter(child, source))
        return params

    def _parse_single_parameter(self, node: tree_sitter.Node, source: bytes) -> Dict[str, Any]:
        name_node = node.child_by_field_name("name")
        type_node = node.child_by_field_name("type")
        if node.type == "parameter_array":
            # Older grammars: `params T[] name` without field names
            for sub in node.named_children:
                if type_node is None and sub.type in ("array_type", "nullable_type"):
                    type_node = sub
                elif sub.type == "identifier":
                    name_node = sub

        default = None
        default_node = node.child_by_field_name("default_value")
        if default_node is None:
            default_node = self._get_child_by_type(node, "equals_value_clause")
        if default_node is not None:
            default = self._node_text(default_node, source).lstrip("=").strip()
        else:
            # Grammars that inline the default: `=` token then the expression
            equals = self._get_child_by_type(node, "=")
            if equals is not None:
                default = source[equals.end_byte:node.end_byte].decode("utf-8", errors="replace").strip() or None

        # Modifier keywords sit between the attributes and the type
        boundary = type_node or name_node
        modifiers = []
        for sub in node.children:
            if boundary is not None and sub.start_byte >= boundary.start_byte:
                break
            if sub.type == "attribute_list":
                continue
            for word in self._node_text(sub, source).split():
                if word in _PARAMETER_KEYWORDS:
                    modifiers.append(word)
        if node.type == "parameter_array" and "params" not in modifiers:
            modifiers.append("params")

        return {
            "name": self._node_text(name_node, source) if name_node else "?",
            "type": self._node_text(type_node, source) if type_node else None,
            "default": default,
            "modifiers": modifiers,
        }

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _node_text(node: tree_sitter.Node, source: bytes) -> str:
        return source[node.start_byte:node.end_byte].decode("utf-8", errors="replace").strip()

    @staticmethod
    def _get_child_text(node: tree_sitter.Node, field_name: str, source: bytes) -> Optional[str]:
        child = node.child_by_field_name(field_name)
        if child:
            return source[child.start_byte:child.end_byte].decode("utf-8", errors="replace")
        return None

    @staticmethod
    def _get_child_by_type(node: tree_sitter.Node, type_name: str) -> Optional[tree_sitter.Node]:
        for child in node.children:
            if child.type == type_name:
                return child
        return None

    @staticmethod
    def _build_qualified_name(namespace: str, parent: Optional[str], name: str) -> str:
        """Build dotted qualified name from namespace, parent, and name."""
        parts = []
        if namespace:
            parts.append(namespace)
        if parent:
            parts.append(parent)
        parts.append(name)
        return ".".join(parts)

    @staticmethod
    def _extract_namespace_name(node: tree_sitter.Node, source: bytes) -> str:
        """Extract namespace name from a namespace declaration."""
        name_node = node.child_by_field_name("name")
        if name_node:
            return source[name_node.start_byte:name_node.end_byte].decode("utf-8", errors="replace")
        return ""

    @staticmethod
    def _using_target(node: tree_sitter.Node, source: bytes) -> Optional[str]:
        """Return the namespace of a plain using directive.

        `using static` and alias directives (`using X = Y;`) do not bring
        namespaces into scope and yield None.
        """
        text = source[node.start_byte:node.end_byte].decode("utf-8", errors="replace").strip()
        words = text.rstrip(";").split()
        if words and words[0] == "global":
            words = words[1:]
        if len(words) != 2 or words[0] != "using" or "=" in text:
            return None
        return words[1].replace("global::", "")

    @staticmethod
    def _extract_type_signature(node: tree_sitter.Node, source: bytes) -> str:
        """Extract class signature (first line up to brace)."""
        text = source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")
        first_line = text.split("\n")[0].rstrip()
        return first_line.rstrip(" {").rstrip()

    @staticmethod
    def _extract_method_signature(node: tree_sitter.Node, source: bytes) -> str:
        """Extract method/constructor signature up to opening brace, arrow or semicolon."""
        text = source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")
        depth = 0
        for i, char in enumerate(text):
            if char == "(":
                depth += 1
            elif char == ")":
                depth -= 1
            elif depth == 0 and (char in "{;" or text.startswith("=>", i)):
                return " ".join(text[:i].split())
        return text.split("\n")[0].rstrip()

    @staticmethod
    def _extract_inheritance(node: tree_sitter.Node, source: bytes) -> tuple:
        """Extract base class and implemented interfaces from base_list.

        C# uses `class Foo : Bar, IDisposable` syntax.
        Heuristic: names starting with 'I' + uppercase are interfaces,
        the first non-interface is the base class.

        Returns:
            (extends: str | None, implements: list[str])
        """
        extends = None
        implements = []

        base_list = None
        for child in node.children:
            if child.type == "base_list":
                base_list = child
                break

        if not base_list:
            return extends, implements

        for child in base_list.children:
            if not child.is_named:
                continue
            text = source[child.start_byte:child.end_byte].decode("utf-8", errors="replace").strip()
            if not text:
                continue

            bare_name = text.split("<")[0].split(".")[-1]
            if len(bare_name) >= 2 and bare_name[0] == "I" and bare_name[1].isupper():
                implements.append(text)
            elif extends is None:
                extends = text
            else:
                implements.append(text)

        return extends, implements

    @staticmethod
    def _extract_attributes(node: tree_sitter.Node, source: bytes) -> List[str]:
        """Extract C# attributes ([NonAction], [ActionName("x")]) from a declaration.

        Each attribute of a list is reported separately; `[return: X]`
        target specifiers are dropped.
        """
        attributes = []
        for child in node.children:
            if child.type != "attribute_list":
                continue
            for attr in child.named_children:
                if attr.type == "attribute":
                    text = source[attr.start_byte:attr.end_byte].decode("utf-8", errors="replace").strip()
                    attributes.append(f"[{text}]")
        return attributes

    @staticmethod
    def _extract_modifiers(node: tree_sitter.Node, source: bytes) -> List[str]:
        """Extract modifier keywords (public, static, override, virtual, etc.)."""
        modifiers = []
        for child in node.children:
            if child.type == "modifier":
                text = source[child.start_byte:child.end_byte].decode("utf-8", errors="replace").strip()
                modifiers.append(text)
        return modifiers

    def _extract_generic_params(self, node: tree_sitter.Node, source: bytes) -> List[str]:
        """Extract generic type parameters of a class declaration."""
        return self._split_type_parameters(self._get_child_by_type(node, "type_parameter_list"), source)

    @staticmethod
    def _split_type_parameters(node: Optional[tree_sitter.Node], source: bytes) -> List[str]:
        if node is None:
            return []
        text = source[node.start_byte:node.end_byte].decode("utf-8", errors="replace").strip()
        if text.startswith("<") and text.endswith(">"):
            text = text[1:-1]
        return [param.strip() for param in text.split(",") if param.strip()]
