"""Rules about deprecated framework APIs, deprecated modules and global access."""

from dataclasses import replace
from typing import Iterator, Optional, Tuple

from tree_sitter import Node
from ui5lint_tree_sitter import ASTWalker, JSPatterns

from ..models import Severity
from .base import DetectionContext, Finding, ResolutionPolicy, RuleDefinition, Trigger
from .markup_rules import detect_deprecated_manifest_setting, detect_deprecated_markup

# Globals that stay legitimate entry points for asynchronous module loading
ALLOWED_GLOBAL_PATHS = ("sap.ui.define", "sap.ui.require")

# Binding info keys whose string value names a function or class
BINDING_REFERENCE_KEYS = ("formatter", "factory", "type", "groupHeaderFactory")

_EXPRESSION_NODE_TYPES = frozenset({"member_expression", "call_expression", "new_expression"})


def _usage_verb(node: Node, target: Node) -> str:
    if node.type == "new_expression":
        return "Instantiation of"
    if node.type == "call_expression":
        return "Call to"
    parent = node.parent
    if parent is not None and parent.type == "call_expression":
        if ASTWalker.same_node(parent.child_by_field_name("function"), target):
            return "Call to"
    if parent is not None and parent.type == "new_expression":
        if ASTWalker.same_node(parent.child_by_field_name("constructor"), target):
            return "Instantiation of"
    return "Use of"


def detect_deprecated_api(ctx: DetectionContext) -> Iterator[Finding]:
    """Deprecated symbol behind a member access, a call of an identifier, or `new`.

    Member callees are handled once, on their member expression. Unresolved
    nodes produce no finding: without a declaration there is nothing to compare.
    """
    node = ctx.node
    if node.type == "member_expression":
        target = node
        anchor = node.child_by_field_name("property")
    else:
        field_name = "constructor" if node.type == "new_expression" else "function"
        target = node.child_by_field_name(field_name)
        if target is None or target.type != "identifier":
            return
        anchor = target
    if anchor is None:
        return

    resolution = ctx.resolver.resolve(target)
    declaration = resolution.declaration if resolution.is_typed else None
    if declaration is None or not declaration.is_deprecated:
        return

    name = declaration.name
    verb = _usage_verb(node, target)
    yield Finding(
        node=anchor,
        params={"kind": declaration.kind, "name": name},
        message=f"{verb} deprecated {declaration.kind} '{name}'. {declaration.deprecated}",
        details=declaration.details,
    )


def _imported_specifiers(node: Node, source: bytes) -> Iterator[Tuple[Node, str]]:
    if node.type == "import_statement":
        source_node = node.child_by_field_name("source")
        specifier = JSPatterns.string_value(source_node, source) if source_node else None
        if specifier is not None:
            yield source_node, specifier
        return

    args = JSPatterns.call_arguments(node)
    dependencies: Optional[Node] = next((a for a in args if a.type == "array"), None)
    if dependencies is None:
        return
    for element in ASTWalker.named_children(dependencies):
        specifier = JSPatterns.string_value(element, source)
        if specifier is not None:
            yield element, specifier


def _deprecated_module(ctx: DetectionContext, anchor: Node, specifier: str) -> Optional[Finding]:
    entry = ctx.resolver.module_entry(specifier)
    if entry is None:
        return None
    text, details = entry.deprecated, entry.details
    if text is None:
        export = ctx.resolver.declaration(entry.export)
        if export is None or not export.is_deprecated or export.kind not in ("class", "namespace"):
            return None
        text, details = export.deprecated, export.details
    return Finding(
        node=anchor,
        params={"module": specifier},
        message=f"Import of deprecated module '{specifier}'. {text}",
        details=details,
    )


def detect_deprecated_module(ctx: DetectionContext) -> Iterator[Finding]:
    """ES imports and sap.ui.define / sap.ui.require dependencies of deprecated modules"""
    node = ctx.node
    if node.type == "call_expression" and not (
        JSPatterns.is_module_definition_call(node, ctx.source) or JSPatterns.is_module_require_call(node, ctx.source)
    ):
        return

    for anchor, specifier in _imported_specifiers(node, ctx.source):
        finding = _deprecated_module(ctx, anchor, specifier)
        if finding is not None:
            yield finding


def _is_allowed_global(path: str) -> bool:
    return any(path == allowed or path.startswith(allowed + ".") for allowed in ALLOWED_GLOBAL_PATHS)


def detect_global_access(ctx: DetectionContext) -> Iterator[Finding]:
    """Framework namespaces reached through globals instead of module imports"""
    node = ctx.node
    if not ctx.resolver.is_global(node):
        return
    resolution = ctx.resolver.resolve(node)
    if not resolution.is_typed or resolution.value is None or resolution.value.builtin:
        return

    name = ASTWalker.get_text(node, ctx.source)
    chain = JSPatterns.member_chain_root(node)
    path = JSPatterns.dotted_name(chain, ctx.source) or name
    if _is_allowed_global(path):
        return
    yield Finding(node=node, params={"name": name, "path": path})


def _binding_references(ctx: DetectionContext) -> Iterator[Tuple[Node, str]]:
    """String values of binding info keys that name a function or class by its global name"""
    for node in ASTWalker.iter_preorder(ctx.node):
        if node.type != "pair":
            continue
        key_node = node.child_by_field_name("key")
        value = node.child_by_field_name("value")
        if key_node is None or value is None:
            continue
        if key_node.type == "string":
            key = JSPatterns.string_value(key_node, ctx.source)
        else:
            key = ASTWalker.get_text(key_node, ctx.source)
        if key not in BINDING_REFERENCE_KEYS:
            continue
        name = JSPatterns.string_value(value, ctx.source)
        # '.name' refers to the view's controller
        if name and not name.startswith("."):
            yield value, name


def detect_deprecated_binding_api(ctx: DetectionContext) -> Iterator[Finding]:
    """Deprecated APIs used in expression bindings or named as formatter, factory or type"""
    if ctx.attribute is not None and ctx.attribute.is_module_map:
        return
    for node in ASTWalker.iter_preorder(ctx.node):
        if node.type in _EXPRESSION_NODE_TYPES:
            yield from detect_deprecated_api(replace(ctx, node=node))

    for anchor, name in _binding_references(ctx):
        declaration = ctx.resolver.declaration(name)
        if declaration is None or not declaration.is_deprecated:
            continue
        yield Finding(
            node=anchor,
            params={"kind": declaration.kind, "name": name},
            message=f"Use of deprecated {declaration.kind} '{name}'. {declaration.deprecated}",
            details=declaration.details,
        )


def detect_required_modules(ctx: DetectionContext) -> Iterator[Finding]:
    """Deprecated modules listed in a core:require attribute"""
    if ctx.attribute is None or not ctx.attribute.is_module_map or ctx.node.type != "object":
        return
    for pair in ASTWalker.named_children(ctx.node):
        value = pair.child_by_field_name("value") if pair.type == "pair" else None
        specifier = JSPatterns.string_value(value, ctx.source) if value is not None else None
        if specifier is None:
            continue
        finding = _deprecated_module(ctx, value, specifier)
        if finding is not None:
            yield finding


def detect_binding_globals(ctx: DetectionContext) -> Iterator[Finding]:
    """Globals read in expression bindings, and global names used as formatter, factory or type"""
    if ctx.attribute is not None and ctx.attribute.is_module_map:
        return
    for node in ASTWalker.iter_preorder(ctx.node):
        if JSPatterns.is_reference_identifier(node):
            yield from detect_global_access(replace(ctx, node=node))

    for anchor, name in _binding_references(ctx):
        root = name.split(".")[0]
        if ctx.catalog.is_global(root) and not _is_allowed_global(name):
            yield Finding(node=anchor, params={"name": root, "path": name})


NO_DEPRECATED_API = RuleDefinition(
    rule_id="no-deprecated-api",
    name="Deprecated API usage",
    severity=Severity.ERROR,
    message_template="Use of deprecated {kind} '{name}'",
    triggers=frozenset(
        {
            Trigger.MEMBER_ACCESS,
            Trigger.CALL,
            Trigger.NEW,
            Trigger.MARKUP_ELEMENT,
            Trigger.BINDING_EXPRESSION,
            Trigger.MANIFEST_ENTRY,
        }
    ),
    policy=ResolutionPolicy.REQUIRE_CERTAINTY,
    details_template="Deprecated APIs are removed in the next major version of the framework.",
    description=(
        "Reports access to classes, functions and properties whose declaration is deprecated, "
        "in scripts, views, bindings and descriptors."
    ),
    detector=detect_deprecated_api,
    detectors={
        Trigger.MARKUP_ELEMENT: detect_deprecated_markup,
        Trigger.BINDING_EXPRESSION: detect_deprecated_binding_api,
        Trigger.MANIFEST_ENTRY: detect_deprecated_manifest_setting,
    },
)

NO_DEPRECATED_MODULE = RuleDefinition(
    rule_id="no-deprecated-module",
    name="Deprecated module import",
    severity=Severity.ERROR,
    message_template="Import of deprecated module '{module}'",
    triggers=frozenset({Trigger.MODULE_IMPORT, Trigger.BINDING_EXPRESSION}),
    policy=ResolutionPolicy.REQUIRE_CERTAINTY,
    description="Reports module dependencies whose module or default export is deprecated.",
    detector=detect_deprecated_module,
    detectors={Trigger.BINDING_EXPRESSION: detect_required_modules},
)

NO_GLOBALS = RuleDefinition(
    rule_id="no-globals",
    name="Global framework access",
    severity=Severity.ERROR,
    message_template="Access of global variable '{name}' ({path})",
    triggers=frozenset({Trigger.GLOBAL_REFERENCE, Trigger.BINDING_EXPRESSION}),
    policy=ResolutionPolicy.REQUIRE_CERTAINTY,
    details_template=(
        "Do not use global variables to access framework APIs. "
        "Declare the module as a dependency and use the imported value instead."
    ),
    description="Reports framework namespaces reached through global variables.",
    detector=detect_global_access,
    detectors={Trigger.BINDING_EXPRESSION: detect_binding_globals},
)
