"""
Rewrites a legacy module definition into an ES module.

    sap.ui.define(["sap/m/Button", "./util"], function(Button, util) {
        ...
        return Controller;
    });

becomes

    import Button from "sap/m/Button";
    import util from "./util";
        ...
        export default Controller;

The factory body is kept byte for byte; only the definition call around it
and the top-level return are replaced. The rewrite is expressed as
transformations over the original bytes, so the resulting SourceMap maps every
generated offset back to the original source. Anything that cannot be rewritten
losslessly leaves the source untouched and produces exactly one diagnostic.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Set, Tuple

from tree_sitter import Node
from ui5lint_tree_sitter import ASTWalker, JSParser, JSPatterns, ParseResult

from .models import Position
from .rules import UNSUPPORTED_MODULE_DEFINITION
from .source_map import LineIndex, SourceMap, Transformation, apply_transformations

logger = logging.getLogger(__name__)

# Dependencies injected by the loader that have no import equivalent
SPECIAL_DEPENDENCIES = ("require", "exports", "module")
GENERATED_PREFIX = "__ui5lint_dep"

# Statements that may follow the factory's return (hoisted, never executed in order)
_ALLOWED_AFTER_RETURN = frozenset({"function_declaration", "generator_function_declaration", "empty_statement"})
_FACTORY_TYPES = frozenset({"function_expression", "function", "arrow_function"})
_DECLARATION_TYPES = frozenset({"lexical_declaration", "variable_declaration"})
_BLOCK_SCOPED_TYPES = frozenset(
    {"lexical_declaration", "class_declaration", "function_declaration", "generator_function_declaration"}
)


class _Unsupported(Exception):
    def __init__(self, reason: str, node: Node):
        super().__init__(reason)
        self.reason = reason
        self.node = node


@dataclass
class DependencyBinding:
    """How one declared dependency is bound in the rewritten module"""

    specifier: str
    local_name: Optional[str]  # None for side-effect imports
    position: Position
    side_effect: bool = False
    special: Optional[str] = None  # 'require', 'exports' or 'module'
    generated: bool = False  # local_name was generated for a destructuring parameter


@dataclass
class UnboundParameter:
    name: str
    position: Position


@dataclass
class ModuleDescriptor:
    """Reconstructed view of a legacy module definition"""

    name: Optional[str]
    dependencies: List[str]
    parameters: List[str]
    bindings: List[DependencyBinding]
    unbound_parameters: List[UnboundParameter]
    factory: Node
    export_expression: Optional[str] = None
    export_global: bool = False


@dataclass
class NormalizationDiagnostic:
    rule_id: str
    message: str
    position: Optional[Position] = None


@dataclass
class NormalizationResult:
    source: bytes
    source_map: SourceMap
    modified: bool = False
    descriptor: Optional[ModuleDescriptor] = None
    diagnostics: List[NormalizationDiagnostic] = field(default_factory=list)
    parse_result: Optional[ParseResult] = None  # parse of the rewritten source


def _bound_identifiers(pattern: Node) -> List[Node]:
    """Name nodes a parameter or declarator pattern introduces"""
    if pattern.type in ("identifier", "shorthand_property_identifier_pattern"):
        return [pattern]
    if pattern.type in ("assignment_pattern", "object_assignment_pattern"):
        left = pattern.child_by_field_name("left")
        return _bound_identifiers(left) if left is not None else []
    if pattern.type == "pair_pattern":
        value = pattern.child_by_field_name("value")
        return _bound_identifiers(value) if value is not None else []
    if pattern.type in ("object_pattern", "array_pattern", "rest_pattern"):
        names = []
        for child in ASTWalker.named_children(pattern):
            names.extend(_bound_identifiers(child))
        return names
    return []


def _quoted(element: Node, value: str, source: bytes) -> str:
    if element.type == "string":
        return ASTWalker.get_text(element, source)
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


class _ModuleRewriter:
    """Builds the descriptor and the transformations for one definition call"""

    def __init__(self, statement: Node, call: Node, source: bytes, index: LineIndex):
        self.statement = statement
        self.call = call
        self.source = source
        self.index = index
        self.transforms: List[Transformation] = []
        self._header_count = 0

    def _text(self, node: Node) -> str:
        return ASTWalker.get_text(node, self.source)

    def _position(self, node: Node) -> Position:
        return self.index.position(node.start_byte)

    def _header(self, line: str, origin: Node):
        """Insert a generated line in front of the definition"""
        self.transforms.append(
            Transformation(
                self.statement.start_byte,
                self.statement.start_byte,
                line + "\n",
                priority=self._header_count,
                origin=origin.start_byte,
            )
        )
        self._header_count += 1

    def run(self) -> Tuple[ModuleDescriptor, List[Transformation]]:
        args = JSPatterns.call_arguments(self.call)
        for arg in args:
            if arg.type == "spread_element":
                raise _Unsupported("spread arguments in the module definition call", arg)

        export_global = False
        if len(args) > 1 and JSPatterns.is_boolean_literal(args[-1]):
            export_global = args[-1].type == "true"
            args = args[:-1]

        name, dependency_nodes, factory = self._split_arguments(args)
        dependencies = self._dependencies(dependency_nodes)

        if factory.type == "object":
            descriptor = self._rewrite_object_factory(name, dependencies, factory)
        elif factory.type in _FACTORY_TYPES:
            if JSPatterns.is_async_or_generator(factory):
                raise _Unsupported("the factory is an async or generator function", factory)
            descriptor = self._rewrite_function_factory(name, dependencies, factory)
        else:
            raise _Unsupported("the factory is not a function or object literal", factory)

        descriptor.export_global = export_global
        return descriptor, self.transforms

    def _split_arguments(self, args: List[Node]) -> Tuple[Optional[str], Optional[Node], Node]:
        if not args:
            raise _Unsupported("the module definition has no factory", self.call)
        if len(args) > 3:
            raise _Unsupported("unexpected extra arguments in the module definition call", args[3])

        name = None
        if len(args) == 3 or (len(args) == 2 and (args[0].type in ("string", "template_string") or args[1].type == "array")):
            name = JSPatterns.string_value(args[0], self.source)
            if name is None:
                raise _Unsupported("the module name is not a string literal", args[0])
            args = args[1:]

        if len(args) == 2:
            dependency_array, factory = args
            if dependency_array.type != "array":
                raise _Unsupported("the dependency array is not a literal array", dependency_array)
            return name, dependency_array, factory
        return name, None, args[0]

    def _dependencies(self, dependency_array: Optional[Node]) -> List[Tuple[Node, str]]:
        if dependency_array is None:
            return []
        dependencies = []
        for position, element in enumerate(ASTWalker.named_children(dependency_array), start=1):
            if element.type == "spread_element":
                raise _Unsupported("spread in the dependency array", element)
            value = JSPatterns.string_value(element, self.source)
            if value is None:
                raise _Unsupported(f"dependency {position} is not a string literal", element)
            dependencies.append((element, value))
        return dependencies

    def _parameters(self, factory: Node) -> List[Node]:
        single = factory.child_by_field_name("parameter")
        if single is not None:
            return [single]
        params_node = factory.child_by_field_name("parameters")
        params = ASTWalker.named_children(params_node) if params_node is not None else []
        for param in params:
            if param.type == "rest_pattern":
                raise _Unsupported("the factory has a rest parameter", param)
            if param.type == "assignment_pattern":
                raise _Unsupported("a factory parameter has a default value", param)
            if param.type not in ("identifier", "object_pattern", "array_pattern"):
                raise _Unsupported(f"unsupported factory parameter '{self._text(param)}'", param)

        seen = set()
        for param in params:
            for name_node in _bound_identifiers(param):
                name = self._text(name_node)
                if name in seen:
                    raise _Unsupported(f"factory parameter '{name}' is declared more than once", name_node)
                seen.add(name)
        return params

    def _declared_names(self, node: Node, body: Node, in_arrow: bool) -> List[Node]:
        """Names ``node`` declares in the factory's own scope"""
        if node.type == "variable_declaration":
            if in_arrow:
                return []
        elif node.type in _BLOCK_SCOPED_TYPES:
            if not ASTWalker.same_node(node.parent, body):
                return []
        else:
            return []

        if node.type in _DECLARATION_TYPES:
            names = []
            for declarator in ASTWalker.named_children(node):
                name = declarator.child_by_field_name("name")
                if name is not None:
                    names.extend(_bound_identifiers(name))
            return names
        name = node.child_by_field_name("name")
        return [name] if name is not None else []

    def _check_body(self, body: Node, module_names: Set[str]):
        """Reject bodies whose meaning changes once they run at module level.

        Arrow functions share the factory's 'this' and 'arguments', so they are
        searched too; other nested functions and classes are not.
        """
        stack = [(body, False)]
        while stack:
            node, in_arrow = stack.pop()
            if node.type == "this":
                raise _Unsupported("the factory uses 'this'", node)
            if node.type == "identifier" and self._text(node) == "arguments" and JSPatterns.is_reference_identifier(node):
                raise _Unsupported("the factory uses 'arguments'", node)
            for name_node in self._declared_names(node, body, in_arrow):
                name = self._text(name_node)
                if name in module_names:
                    raise _Unsupported(f"'{name}' is declared again in the factory body", name_node)

            if node.type == "class_body" or (JSPatterns.is_function_like(node) and node.type != "arrow_function"):
                continue
            nested = in_arrow or node.type == "arrow_function"
            stack.extend((child, nested) for child in reversed(node.children))

    def _rewrite_object_factory(self, name, dependencies, factory: Node) -> ModuleDescriptor:
        bindings = []
        for element, specifier in dependencies:
            if specifier not in SPECIAL_DEPENDENCIES:
                self._header(f"import {_quoted(element, specifier, self.source)};", element)
            bindings.append(
                DependencyBinding(
                    specifier=specifier,
                    local_name=None,
                    position=self._position(element),
                    side_effect=specifier not in SPECIAL_DEPENDENCIES,
                    special=specifier if specifier in SPECIAL_DEPENDENCIES else None,
                )
            )
        self.transforms.append(
            Transformation(self.statement.start_byte, factory.start_byte, "export default ", origin=factory.start_byte)
        )
        self.transforms.append(Transformation(factory.end_byte, self.statement.end_byte, ";"))
        return ModuleDescriptor(
            name=name,
            dependencies=[s for _, s in dependencies],
            parameters=[],
            bindings=bindings,
            unbound_parameters=[],
            factory=factory,
            export_expression=self._text(factory),
        )

    def _rewrite_function_factory(self, name, dependencies, factory: Node) -> ModuleDescriptor:
        params = self._parameters(factory)
        bindings: List[DependencyBinding] = []
        declarations: List[Tuple[str, Node]] = []
        exports_name = module_name = None
        exports_node = module_node = None

        for i, (element, specifier) in enumerate(dependencies):
            param = params[i] if i < len(params) else None
            local = self._text(param) if param is not None else None
            position = self._position(element)

            if specifier in SPECIAL_DEPENDENCIES:
                bindings.append(DependencyBinding(specifier, local, position, special=specifier))
                if param is None:
                    continue
                if specifier == "require" and local != "require":
                    declarations.append((f"const {local} = require;", param))
                elif specifier == "exports":
                    if param.type != "identifier":
                        raise _Unsupported("the 'exports' handle is destructured", param)
                    exports_name, exports_node = local, param
                elif specifier == "module":
                    if param.type != "identifier":
                        raise _Unsupported("the 'module' handle is destructured", param)
                    module_name, module_node = local, param
                continue

            quoted = _quoted(element, specifier, self.source)
            if param is None:
                self._header(f"import {quoted};", element)
                bindings.append(DependencyBinding(specifier, None, position, side_effect=True))
            elif param.type == "identifier":
                self._header(f"import {local} from {quoted};", element)
                bindings.append(DependencyBinding(specifier, local, position))
            else:
                generated = f"{GENERATED_PREFIX}{i}"
                self._header(f"import {generated} from {quoted};", element)
                declarations.append((f"const {local} = {generated};", param))
                bindings.append(DependencyBinding(specifier, generated, position, generated=True))

        if exports_name is not None:
            self._header(f"const {exports_name} = {{}};", exports_node)
        if module_name is not None:
            initial = exports_name if exports_name is not None else "{}"
            self._header(f"const {module_name} = {{ exports: {initial} }};", module_node)
        for line, origin in declarations:
            self._header(line, origin)

        unbound = []
        for param in params[len(dependencies) :]:
            if param.type != "identifier":
                raise _Unsupported("a destructured factory parameter has no dependency", param)
            self._header(f"let {self._text(param)};", param)
            unbound.append(UnboundParameter(self._text(param), self._position(param)))

        body = factory.child_by_field_name("body")
        if body is None:
            raise _Unsupported("the factory has no body", factory)

        module_names = {self._text(n) for param in params for n in _bound_identifiers(param)}
        module_names.update(b.local_name for b in bindings if b.generated)
        self._check_body(body, module_names)

        if body.type == "statement_block":
            export_expression = self._rewrite_block_body(factory, body, exports_name, module_name)
        else:
            self.transforms.append(
                Transformation(self.statement.start_byte, body.start_byte, "export default ", origin=body.start_byte)
            )
            self.transforms.append(Transformation(body.end_byte, self.statement.end_byte, ";"))
            export_expression = self._text(body)

        return ModuleDescriptor(
            name=name,
            dependencies=[s for _, s in dependencies],
            parameters=[self._text(p) for p in params],
            bindings=bindings,
            unbound_parameters=unbound,
            factory=factory,
            export_expression=export_expression,
        )

    def _rewrite_block_body(self, factory: Node, body: Node, exports_name, module_name) -> Optional[str]:
        return_statement = None
        for statement in ASTWalker.named_children(body):
            if return_statement is not None and statement.type not in _ALLOWED_AFTER_RETURN:
                raise _Unsupported("statements follow the factory's return statement", statement)
            if statement.type == "return_statement":
                return_statement = statement
        self._check_nested_returns(body, return_statement)

        # Drop everything from the definition call up to and including the body's brace
        self.transforms.append(Transformation(self.statement.start_byte, body.start_byte + 1, ""))

        export_expression = None
        if return_statement is not None:
            value = ASTWalker.named_children(return_statement)
            if value:
                expression = value[0]
                export_expression = self._text(expression)
                if expression.type == "sequence_expression":
                    # 'export default a, b' is not valid, the comma needs parentheses
                    export_expression = f"({export_expression})"
                    self.transforms.append(
                        Transformation(return_statement.start_byte, expression.start_byte, "export default (")
                    )
                    self.transforms.append(Transformation(expression.end_byte, expression.end_byte, ")"))
                else:
                    self.transforms.append(
                        Transformation(return_statement.start_byte, expression.start_byte, "export default ")
                    )
            else:
                self.transforms.append(Transformation(return_statement.start_byte, return_statement.end_byte, ""))

        tail = ""
        if export_expression is None:
            if module_name is not None:
                export_expression = f"{module_name}.exports"
            elif exports_name is not None:
                export_expression = exports_name
            if export_expression is not None:
                tail = f"export default {export_expression};"
        self.transforms.append(Transformation(body.end_byte - 1, self.statement.end_byte, tail))
        return export_expression

    def _check_nested_returns(self, body: Node, top_level_return: Optional[Node]):
        stack = list(reversed(body.children))
        while stack:
            node = stack.pop()
            if node.type == "return_statement" and not ASTWalker.same_node(node, top_level_return):
                raise _Unsupported("the factory returns from inside control flow", node)
            if JSPatterns.is_function_like(node) or node.type == "class_body":
                continue
            stack.extend(reversed(node.children))


class ModuleNormalizer:
    """Converts a single top-level sap.ui.define/define call into an ES module.

    Files without a definition are returned unchanged without diagnostics.
    Definitions nested in functions or conditions are never recognized. The
    rewritten source is parsed again and discarded with a diagnostic when it
    is not valid JavaScript.
    """

    def normalize(self, parse_result: ParseResult) -> NormalizationResult:
        source = parse_result.source
        unchanged = NormalizationResult(source=source, source_map=SourceMap.identity(source))
        if parse_result.errors:
            return unchanged

        definitions = []
        for statement in ASTWalker.named_children(parse_result.root):
            call = self._definition_call(statement, source)
            if call is not None:
                definitions.append((statement, call))
        if not definitions:
            return unchanged

        index = LineIndex(source)
        if len(definitions) > 1:
            statement, _ = definitions[1]
            reason = f"found {len(definitions)} top-level module definitions"
            unchanged.diagnostics.append(self._diagnostic(reason, statement, index))
            return unchanged

        statement, call = definitions[0]
        try:
            descriptor, transforms = _ModuleRewriter(statement, call, source, index).run()
        except _Unsupported as e:
            logger.debug("Module definition not normalized: %s", e.reason)
            unchanged.diagnostics.append(self._diagnostic(e.reason, e.node, index))
            return unchanged

        output, source_map = apply_transformations(source, transforms)
        rewritten = JSParser().parse_bytes(output)
        if rewritten.errors:
            problem = rewritten.first_error
            logger.warning("Rewritten module does not parse (%d:%d): %s", problem.line, problem.column, problem.message)
            reason = "the rewritten module is not valid JavaScript"
            unchanged.diagnostics.append(self._diagnostic(reason, descriptor.factory, index))
            return unchanged

        return NormalizationResult(
            source=output,
            source_map=source_map,
            modified=True,
            descriptor=descriptor,
            parse_result=rewritten,
        )

    @staticmethod
    def _definition_call(statement: Node, source: bytes) -> Optional[Node]:
        if statement.type != "expression_statement":
            return None
        expressions = ASTWalker.named_children(statement)
        if not expressions or expressions[0].type != "call_expression":
            return None
        call = expressions[0]
        return call if JSPatterns.is_module_definition_call(call, source) else None

    @staticmethod
    def _diagnostic(reason: str, node: Node, index: LineIndex) -> NormalizationDiagnostic:
        return NormalizationDiagnostic(
            rule_id=UNSUPPORTED_MODULE_DEFINITION.rule_id,
            message=UNSUPPORTED_MODULE_DEFINITION.message_template.format(reason=reason),
            position=index.position(node.start_byte),
        )
