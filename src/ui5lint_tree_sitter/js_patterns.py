"""UI5/JavaScript-specific AST pattern recognition."""

from typing import List, Optional

from tree_sitter import Node

from .ast_walker import ASTWalker

MODULE_DEFINITION_CALLEES = ("sap.ui.define", "define")
MODULE_REQUIRE_CALLEES = ("sap.ui.require",)

FUNCTION_NODE_TYPES = frozenset(
    {
        "function_expression",
        "function",
        "function_declaration",
        "generator_function",
        "generator_function_declaration",
        "arrow_function",
        "method_definition",
    }
)

# Parent types whose field at this position introduces a name instead of referencing one
_DECLARING_FIELDS = {
    "variable_declarator": "name",
    "function_declaration": "name",
    "function_expression": "name",
    "function": "name",
    "generator_function_declaration": "name",
    "generator_function": "name",
    "class_declaration": "name",
    "class": "name",
    "labeled_statement": "label",
    "break_statement": "label",
    "continue_statement": "label",
}

_NON_REFERENCE_PARENTS = frozenset(
    {
        "formal_parameters",
        "import_clause",
        "import_specifier",
        "namespace_import",
        "export_specifier",
        "catch_clause",
        "array_pattern",
        "pair_pattern",
        "rest_pattern",
        "object_pattern",
    }
)


class JSPatterns:
    """Recognize UI5-specific JavaScript patterns in the AST."""

    @staticmethod
    def dotted_name(node: Node, source: bytes | str) -> Optional[str]:
        """Return 'a.b.c' for identifier/member chains, None for anything dynamic.

        Examples: sap.ui.define, jQuery.sap.sjax, Core
        """
        if node.type == "identifier":
            return ASTWalker.get_text(node, source)
        if node.type == "member_expression":
            obj = node.child_by_field_name("object")
            prop = node.child_by_field_name("property")
            if obj is None or prop is None or prop.type != "property_identifier":
                return None
            base = JSPatterns.dotted_name(obj, source)
            if base is None:
                return None
            return f"{base}.{ASTWalker.get_text(prop, source)}"
        if node.type == "parenthesized_expression":
            inner = ASTWalker.named_children(node)
            if len(inner) == 1:
                return JSPatterns.dotted_name(inner[0], source)
        return None

    @staticmethod
    def callee_name(call: Node, source: bytes | str) -> Optional[str]:
        if call.type != "call_expression":
            return None
        callee = call.child_by_field_name("function")
        if callee is None:
            return None
        return JSPatterns.dotted_name(callee, source)

    @staticmethod
    def is_module_definition_call(node: Node, source: bytes | str) -> bool:
        """sap.ui.define(...) or define(...)"""
        return JSPatterns.callee_name(node, source) in MODULE_DEFINITION_CALLEES

    @staticmethod
    def is_module_require_call(node: Node, source: bytes | str) -> bool:
        """sap.ui.require([...], callback), the asynchronous variant only."""
        if JSPatterns.callee_name(node, source) not in MODULE_REQUIRE_CALLEES:
            return False
        args = JSPatterns.call_arguments(node)
        return bool(args) and args[0].type == "array"

    @staticmethod
    def call_arguments(call: Node) -> List[Node]:
        args = call.child_by_field_name("arguments")
        if args is None:
            return []
        return ASTWalker.named_children(args)

    @staticmethod
    def string_value(node: Node, source: bytes | str) -> Optional[str]:
        """Literal value of a string or substitution-free template string."""
        if node.type == "string":
            raw = ASTWalker.get_text(node, source)
            return raw[1:-1] if len(raw) >= 2 else None
        if node.type == "template_string":
            if any(c.type == "template_substitution" for c in node.named_children):
                return None
            raw = ASTWalker.get_text(node, source)
            return raw[1:-1]
        return None

    @staticmethod
    def is_function_like(node: Node) -> bool:
        return node.type in FUNCTION_NODE_TYPES

    @staticmethod
    def is_async_or_generator(node: Node) -> bool:
        if node.type in ("generator_function", "generator_function_declaration"):
            return True
        for child in node.children:
            if child.type in ("async", "*"):
                return True
            if child.type in ("formal_parameters", "statement_block", "identifier"):
                break
        return False

    @staticmethod
    def is_reference_identifier(node: Node) -> bool:
        """True for identifiers that read a binding (not declarations, labels or parameters)."""
        if node.type != "identifier":
            return False
        parent = node.parent
        if parent is None:
            return False
        if parent.type in _NON_REFERENCE_PARENTS:
            return False
        field_name = _DECLARING_FIELDS.get(parent.type)
        if field_name and ASTWalker.same_node(parent.child_by_field_name(field_name), node):
            return False
        if parent.type == "arrow_function" and ASTWalker.same_node(parent.child_by_field_name("parameter"), node):
            return False
        if parent.type == "assignment_pattern" and ASTWalker.same_node(parent.child_by_field_name("left"), node):
            return False
        if parent.type == "for_in_statement" and ASTWalker.same_node(parent.child_by_field_name("left"), node):
            return not any(c.type in ("const", "let", "var") for c in parent.children)
        return True

    @staticmethod
    def object_property(obj: Node, key: str, source: bytes | str) -> Optional[Node]:
        """Value node of ``key`` in an object literal"""
        if obj.type != "object":
            return None
        for child in ASTWalker.named_children(obj):
            if child.type != "pair":
                continue
            key_node = child.child_by_field_name("key")
            if key_node is None:
                continue
            if key_node.type in ("string",):
                name = JSPatterns.string_value(key_node, source)
            else:
                name = ASTWalker.get_text(key_node, source)
            if name == key:
                return child.child_by_field_name("value")
        return None

    @staticmethod
    def is_boolean_literal(node: Node) -> bool:
        return node.type in ("true", "false")

    @staticmethod
    def member_chain_root(node: Node) -> Node:
        """Outermost member_expression whose object chain contains ``node``."""
        current = node
        while (
            current.parent is not None
            and current.parent.type == "member_expression"
            and ASTWalker.same_node(current.parent.child_by_field_name("object"), current)
        ):
            current = current.parent
        return current
