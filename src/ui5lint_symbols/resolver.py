"""
Semantic resolver: maps JavaScript syntax nodes to API declarations and value types.

This is deliberately not a type checker. It builds one flat binding table per
file and answers "what does this expression denote" for identifiers, member
chains, calls and constructor invocations. A name that is bound more than once
to values that disagree is reported as ambiguous instead of guessing.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Set, Tuple

from tree_sitter import Node
from ui5lint_tree_sitter import ASTWalker, JSPatterns

from .catalog import ApiCatalog
from .models import ANY, ApiDeclaration, ModuleEntry, Resolution, ResolutionStatus, ValueType

logger = logging.getLogger(__name__)

LITERAL_NODE_TYPES = frozenset(
    {
        "string",
        "template_string",
        "number",
        "true",
        "false",
        "null",
        "regex",
        "object",
        "array",
        "function_expression",
        "function",
        "arrow_function",
        "class",
    }
)

# Values whose members behave like Function.prototype members
_CALLABLE_KINDS = ("function", "method", "class")


class SemanticResolver(Protocol):
    """What the file analyzer needs from a type-binding facility"""

    def resolve(self, node: Node) -> Resolution: ...

    def is_global(self, node: Node) -> bool: ...

    def module_entry(self, specifier: str) -> Optional[ModuleEntry]: ...

    def declaration(self, name: str) -> Optional[ApiDeclaration]: ...


@dataclass
class Binding:
    """One place where a name receives a value"""

    kind: str  # 'module', 'module_member', 'value', 'member_of', 'local', 'dynamic'
    node: Optional[Node] = None
    specifier: Optional[str] = None
    member: Optional[str] = None


class ScopeResolver:
    """Resolver for a single parsed file.

    Not shared between files; one instance is created per analyzed file, so it
    needs no locking.
    """

    def __init__(self, root: Node, source: bytes, catalog: ApiCatalog):
        self.root = root
        self.source = source
        self.catalog = catalog
        self._bindings: Dict[str, List[Binding]] = defaultdict(list)
        self._cache: Dict[Tuple[str, int, int], Resolution] = {}
        self._in_progress: Set[Tuple[str, int, int]] = set()
        self._collect_bindings()

    # Binding collection

    def _collect_bindings(self):
        for node in ASTWalker.iter_preorder(self.root):
            handler = getattr(self, f"_bind_{node.type}", None)
            if handler is not None:
                handler(node)

    def _text(self, node: Node) -> str:
        return ASTWalker.get_text(node, self.source)

    def _add(self, name_node: Optional[Node], binding: Binding):
        if name_node is not None and name_node.type == "identifier":
            self._bindings[self._text(name_node)].append(binding)

    def _bind_pattern_dynamic(self, pattern: Node):
        """Every identifier introduced by a destructuring pattern is untyped"""
        if pattern.type in ("identifier", "shorthand_property_identifier_pattern"):
            self._bindings[self._text(pattern)].append(Binding("dynamic"))
        elif pattern.type in ("assignment_pattern", "object_assignment_pattern"):
            left = pattern.child_by_field_name("left")
            if left is not None:
                self._bind_pattern_dynamic(left)
        elif pattern.type == "pair_pattern":
            value = pattern.child_by_field_name("value")
            if value is not None:
                self._bind_pattern_dynamic(value)
        elif pattern.type in ("object_pattern", "array_pattern", "rest_pattern"):
            for child in ASTWalker.named_children(pattern):
                self._bind_pattern_dynamic(child)

    def _bind_import_statement(self, node: Node):
        source_node = node.child_by_field_name("source")
        specifier = JSPatterns.string_value(source_node, self.source) if source_node else None
        if specifier is None:
            return
        clause = ASTWalker.get_child_of_type(node, "import_clause")
        if clause is None:
            return
        for child in ASTWalker.named_children(clause):
            if child.type == "identifier":
                self._add(child, Binding("module", specifier=specifier))
            elif child.type == "namespace_import":
                # The namespace object is not the module's default export
                self._add(ASTWalker.get_child_of_type(child, "identifier"), Binding("dynamic"))
            elif child.type == "named_imports":
                for spec in ASTWalker.named_children(child):
                    if spec.type != "import_specifier":
                        continue
                    name = spec.child_by_field_name("name")
                    alias = spec.child_by_field_name("alias") or name
                    if name is None:
                        continue
                    imported = self._text(name)
                    if imported == "default":
                        self._add(alias, Binding("module", specifier=specifier))
                    else:
                        self._add(alias, Binding("module_member", specifier=specifier, member=imported))

    def _bind_variable_declarator(self, node: Node):
        name = node.child_by_field_name("name")
        value = node.child_by_field_name("value")
        if name is None:
            return
        if name.type == "identifier":
            self._add(name, Binding("value", node=value) if value is not None else Binding("dynamic"))
        elif name.type == "object_pattern" and value is not None:
            for prop in ASTWalker.named_children(name):
                if prop.type == "shorthand_property_identifier_pattern":
                    key = self._text(prop)
                    self._bindings[key].append(Binding("member_of", node=value, member=key))
                elif prop.type == "pair_pattern":
                    key = prop.child_by_field_name("key")
                    target = prop.child_by_field_name("value")
                    if key is not None and key.type == "property_identifier" and target is not None:
                        if target.type == "identifier":
                            self._add(target, Binding("member_of", node=value, member=self._text(key)))
                        else:
                            self._bind_pattern_dynamic(target)
                else:
                    self._bind_pattern_dynamic(prop)
        else:
            self._bind_pattern_dynamic(name)

    def _bind_local(self, node: Node):
        self._add(node.child_by_field_name("name"), Binding("local"))

    _bind_function_declaration = _bind_local
    _bind_generator_function_declaration = _bind_local
    _bind_class_declaration = _bind_local

    def _bind_formal_parameters(self, node: Node):
        params = ASTWalker.named_children(node)
        dependencies = self._callback_dependencies(node.parent)
        for index, param in enumerate(params):
            if dependencies is not None and param.type == "identifier" and index < len(dependencies):
                specifier = dependencies[index]
                if specifier is not None:
                    self._add(param, Binding("module", specifier=specifier))
                    continue
            self._bind_pattern_dynamic(param)

    def _bind_arrow_function(self, node: Node):
        param = node.child_by_field_name("parameter")
        if param is None:
            return
        dependencies = self._callback_dependencies(node)
        if dependencies and dependencies[0] is not None:
            self._add(param, Binding("module", specifier=dependencies[0]))
        else:
            self._add(param, Binding("dynamic"))

    def _bind_catch_clause(self, node: Node):
        param = node.child_by_field_name("parameter")
        if param is not None:
            self._bind_pattern_dynamic(param)

    def _bind_for_in_statement(self, node: Node):
        left = node.child_by_field_name("left")
        if left is not None and any(c.type in ("const", "let", "var") for c in node.children):
            self._bind_pattern_dynamic(left)

    def _bind_assignment_expression(self, node: Node):
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        if left is not None and left.type == "identifier" and right is not None:
            self._add(left, Binding("value", node=right))

    def _callback_dependencies(self, function_node: Optional[Node]) -> Optional[List[Optional[str]]]:
        """Dependency specifiers bound positionally to a define/require callback's parameters"""
        if function_node is None or function_node.type not in ("function_expression", "function", "arrow_function"):
            return None
        arguments = function_node.parent
        call = arguments.parent if arguments is not None else None
        if call is None or call.type != "call_expression":
            return None
        if not (
            JSPatterns.is_module_definition_call(call, self.source)
            or JSPatterns.is_module_require_call(call, self.source)
        ):
            return None
        args = JSPatterns.call_arguments(call)
        position = next((i for i, a in enumerate(args) if ASTWalker.same_node(a, function_node)), None)
        if position is None or position == 0 or args[position - 1].type != "array":
            return None
        return [JSPatterns.string_value(e, self.source) for e in ASTWalker.named_children(args[position - 1])]

    # Queries

    def is_global(self, node: Node) -> bool:
        return node.type == "identifier" and self._text(node) not in self._bindings

    def module_entry(self, specifier: str) -> Optional[ModuleEntry]:
        return self.catalog.module_entry(specifier)

    def declaration(self, name: str) -> Optional[ApiDeclaration]:
        return self.catalog.lookup(name)

    def resolve(self, node: Node) -> Resolution:
        key = (node.type, node.start_byte, node.end_byte)
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        if key in self._in_progress:
            return Resolution(ResolutionStatus.ANY, reason="cyclic binding")

        self._in_progress.add(key)
        try:
            result = self._resolve(node)
        finally:
            self._in_progress.discard(key)
        self._cache[key] = result
        return result

    def _resolve(self, node: Node) -> Resolution:
        if node.type == "identifier":
            return self._resolve_identifier(node)
        if node.type == "member_expression":
            return self._resolve_member(node)
        if node.type == "call_expression":
            return self._resolve_call(node)
        if node.type == "new_expression":
            return self._resolve_new(node)
        if node.type == "parenthesized_expression":
            inner = ASTWalker.named_children(node)
            return self.resolve(inner[-1]) if inner else ANY
        if node.type in LITERAL_NODE_TYPES:
            return self._builtin(node.type)
        return Resolution(ResolutionStatus.ANY, reason=f"{node.type} is not tracked")

    @staticmethod
    def _builtin(path: str) -> Resolution:
        return Resolution(ResolutionStatus.TYPED, value=ValueType(path=path, builtin=True))

    def _resolve_identifier(self, node: Node) -> Resolution:
        name = self._text(node)
        bindings = self._bindings.get(name)
        if not bindings:
            return self._resolve_global(name)

        resolutions = [self._resolve_binding(name, b) for b in bindings]
        first = resolutions[0]
        if all(first.same_meaning(r) for r in resolutions[1:]):
            return first
        logger.debug("'%s' is bound to %d conflicting values", name, len(resolutions))
        return Resolution(ResolutionStatus.AMBIGUOUS, reason=f"'{name}' is bound to conflicting values")

    def _resolve_global(self, name: str) -> Resolution:
        if self.catalog.is_global(name):
            declaration = self.catalog.lookup(name)
            return Resolution(ResolutionStatus.TYPED, declaration=declaration, value=ValueType(path=name))
        if self.catalog.is_builtin(name):
            return self._builtin(name)
        return Resolution(ResolutionStatus.UNKNOWN, reason=f"undeclared global '{name}'")

    def _resolve_binding(self, name: str, binding: Binding) -> Resolution:
        if binding.kind == "module":
            return self._resolve_module(binding.specifier)
        if binding.kind == "module_member":
            module = self._resolve_module(binding.specifier)
            return self._member_of(module, binding.member)
        if binding.kind == "value":
            return self.resolve(binding.node)
        if binding.kind == "member_of":
            return self._member_of(self.resolve(binding.node), binding.member)
        if binding.kind == "local":
            return Resolution(ResolutionStatus.TYPED, value=ValueType(path=name, local=True))
        return Resolution(ResolutionStatus.ANY, reason=f"'{name}' has no static type")

    def _resolve_module(self, specifier: str) -> Resolution:
        entry = self.catalog.module_entry(specifier)
        if entry is not None:
            declaration = self.catalog.lookup(entry.export)
            value = ValueType(path=entry.export, instance=entry.instance, module=specifier)
            return Resolution(
                ResolutionStatus.TYPED,
                declaration=None if entry.instance else declaration,
                value=value,
            )
        if specifier.startswith("./") or specifier.startswith("../"):
            return Resolution(ResolutionStatus.ANY, reason=f"project module '{specifier}'")
        return Resolution(ResolutionStatus.UNKNOWN, reason=f"no declarations for module '{specifier}'")

    def _member_of(self, owner: Resolution, member: str) -> Resolution:
        if not owner.is_typed:
            return owner
        value = owner.value
        if value is None:
            return Resolution(ResolutionStatus.ANY, reason="member of untyped value")
        if value.builtin:
            return Resolution(ResolutionStatus.TYPED, value=ValueType(path=f"{value.path}.{member}", builtin=True))
        if value.local:
            return Resolution(ResolutionStatus.ANY, reason=f"member of local '{value.path}'")

        declaration = self.catalog.lookup_member(value, member)
        if declaration is None:
            if owner.declaration is not None and owner.declaration.kind in _CALLABLE_KINDS and not value.instance:
                if member in ("call", "apply", "bind", "name", "length"):
                    return Resolution(ResolutionStatus.TYPED, value=ValueType(path=f"Function.{member}", builtin=True))
            sep = "#" if value.instance else "."
            return Resolution(ResolutionStatus.UNKNOWN, reason=f"'{value.path}{sep}{member}' is not declared")
        return Resolution(ResolutionStatus.TYPED, declaration=declaration, value=self._value_of(declaration))

    @staticmethod
    def _value_of(declaration: ApiDeclaration) -> Optional[ValueType]:
        if declaration.kind == "property":
            return ValueType(path=declaration.type, instance=True) if declaration.type else None
        return ValueType(path=declaration.name)

    def _resolve_member(self, node: Node) -> Resolution:
        obj = node.child_by_field_name("object")
        prop = node.child_by_field_name("property")
        if obj is None or prop is None or prop.type != "property_identifier":
            return Resolution(ResolutionStatus.ANY, reason="computed member access")
        return self._member_of(self.resolve(obj), self._text(prop))

    def _resolve_call(self, node: Node) -> Resolution:
        callee = node.child_by_field_name("function")
        if callee is None:
            return ANY
        target = self.resolve(callee)
        if not target.is_typed:
            return target
        if target.value is not None and target.value.builtin:
            return self._builtin(f"{target.value.path}()")
        declaration = target.declaration
        if declaration is not None and declaration.is_callable:
            if declaration.returns:
                return Resolution(ResolutionStatus.TYPED, value=ValueType(path=declaration.returns, instance=True))
            return Resolution(ResolutionStatus.ANY, reason=f"'{declaration.name}' has no declared return type")
        return Resolution(ResolutionStatus.ANY, reason="call of a non-function value")

    def _resolve_new(self, node: Node) -> Resolution:
        constructor = node.child_by_field_name("constructor")
        if constructor is None:
            return ANY
        target = self.resolve(constructor)
        if not target.is_typed:
            return target
        value = target.value
        if value is not None and (value.builtin or value.local):
            instance = ValueType(path=value.path, instance=True, builtin=value.builtin, local=value.local)
            return Resolution(ResolutionStatus.TYPED, value=instance)
        declaration = target.declaration
        if declaration is not None and declaration.kind == "class":
            return Resolution(ResolutionStatus.TYPED, value=ValueType(path=declaration.name, instance=True))
        return Resolution(ResolutionStatus.ANY, reason="constructor of unknown class")
