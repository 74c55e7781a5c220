import textwrap

import pytest
from ui5lint_linter import ModuleNormalizer
from ui5lint_linter.source_map import SourceMap
from ui5lint_tree_sitter import ASTWalker, JSParser


def normalize(code: str):
    parse_result = JSParser().parse_string(textwrap.dedent(code))
    return ModuleNormalizer().normalize(parse_result)


def imports_of(source: bytes):
    """(local name or None, specifier) for every import statement of an ES module"""
    result = JSParser().parse_bytes(source)
    assert result.errors == [], source.decode()
    imports = []
    for statement in ASTWalker.find_all_by_type(result.root, "import_statement"):
        specifier = ASTWalker.get_text(statement.child_by_field_name("source"), result.source)[1:-1]
        clause = ASTWalker.get_child_of_type(statement, "import_clause")
        name = ASTWalker.get_text(clause, result.source) if clause is not None else None
        imports.append((name, specifier))
    return imports


def test_dependencies_become_imports_named_after_parameters():
    result = normalize('define(["x", "y"], function(X, Y) { return {}; })')

    assert result.modified
    assert result.diagnostics == []
    assert imports_of(result.source) == [("X", "x"), ("Y", "y")]
    assert b"export default {};" in result.source
    assert result.descriptor.dependencies == ["x", "y"]
    assert result.descriptor.parameters == ["X", "Y"]
    assert result.descriptor.export_expression == "{}"


def test_factory_body_is_promoted_to_module_level():
    result = normalize(
        """
        sap.ui.define([
            "sap/m/Button"
        ], function(Button) {
            "use strict";
            var button = new Button();
            return button;
        });
        """
    )

    text = result.source.decode()
    assert 'import Button from "sap/m/Button";' in text
    assert "var button = new Button();" in text
    assert "export default button;" in text
    assert "sap.ui.define" not in text
    assert "return" not in text


def test_surplus_dependencies_are_side_effect_imports():
    result = normalize('sap.ui.define(["a", "b", "c"], function(A) { return A; });')

    assert imports_of(result.source) == [("A", "a"), (None, "b"), (None, "c")]
    bindings = result.descriptor.bindings
    assert [b.side_effect for b in bindings] == [False, True, True]


def test_surplus_parameters_stay_unbound_locals():
    result = normalize('sap.ui.define(["a"], function(A, B, C) { return A; });')

    assert result.modified
    assert b"let B;" in result.source
    assert b"let C;" in result.source
    assert [p.name for p in result.descriptor.unbound_parameters] == ["B", "C"]
    assert result.descriptor.unbound_parameters[0].position.line == 1


def test_named_module_definition():
    result = normalize('sap.ui.define("my/app/Module", ["x"], function(X) { return X; });')

    assert result.descriptor.name == "my/app/Module"
    assert imports_of(result.source) == [("X", "x")]


def test_object_literal_factory():
    result = normalize('sap.ui.define({ answer: 42 });')

    assert result.modified
    assert result.source.decode().strip() == "export default { answer: 42 };"


def test_arrow_expression_body_is_default_exported():
    result = normalize('sap.ui.define(["x"], (X) => X.create());')

    assert imports_of(result.source) == [("X", "x")]
    assert b"export default X.create();" in result.source


def test_destructured_parameter_gets_generated_import():
    result = normalize('sap.ui.define(["sap/base/util"], function({ merge }) { return merge; });')

    text = result.source.decode()
    assert 'import __ui5lint_dep0 from "sap/base/util";' in text
    assert "const { merge } = __ui5lint_dep0;" in text
    assert result.descriptor.bindings[0].generated


def test_exports_and_module_handles_are_rewritten():
    result = normalize(
        """
        sap.ui.define(["require", "exports", "module", "x"], function(req, exports, module, X) {
            exports.value = X;
        });
        """
    )

    text = result.source.decode()
    assert imports_of(result.source) == [("X", "x")]
    assert "const req = require;" in text
    assert "const exports = {};" in text
    assert "const module = { exports: exports };" in text
    assert "export default module.exports;" in text
    assert [b.special for b in result.descriptor.bindings[:3]] == ["require", "exports", "module"]


def test_non_literal_dependency_array_is_a_no_op_with_one_diagnostic():
    code = "sap.ui.define(deps, function(a) { return a; });"
    result = normalize(code)

    assert not result.modified
    assert result.source == code.encode()
    assert len(result.diagnostics) == 1
    assert result.diagnostics[0].rule_id == "unsupported-module-definition"
    assert "literal array" in result.diagnostics[0].message


def test_computed_dependency_is_a_no_op():
    result = normalize('sap.ui.define(["a", prefix + "/b"], function(A, B) { return A; });')

    assert not result.modified
    assert len(result.diagnostics) == 1
    assert "dependency 2" in result.diagnostics[0].message
    assert result.diagnostics[0].position.column == 21


def test_return_inside_control_flow_is_a_no_op():
    result = normalize(
        """
        sap.ui.define(["a"], function(A) {
            if (A) {
                return A;
            }
            return null;
        });
        """
    )

    assert not result.modified
    assert len(result.diagnostics) == 1


def test_nested_functions_may_return():
    result = normalize(
        """
        sap.ui.define(["a"], function(A) {
            function helper() {
                return A;
            }
            return helper;
        });
        """
    )

    assert result.modified
    assert b"return A;" in result.source
    assert b"export default helper;" in result.source


def test_non_function_factory_is_a_no_op():
    result = normalize('sap.ui.define(["a"], createFactory());')

    assert not result.modified
    assert "not a function or object literal" in result.diagnostics[0].message


def test_multiple_definitions_are_not_normalized():
    result = normalize('define(["a"], function(A) {});\ndefine(["b"], function(B) {});')

    assert not result.modified
    assert len(result.diagnostics) == 1
    assert result.diagnostics[0].position.line == 2


def test_nested_definitions_are_ignored():
    code = 'if (window.sap) { sap.ui.define(["a"], function(A) {}); }'
    result = normalize(code)

    assert not result.modified
    assert result.diagnostics == []


def test_modern_module_is_left_alone():
    code = 'import X from "x";\nexport default X;\n'
    result = normalize(code)

    assert not result.modified
    assert result.diagnostics == []
    assert result.source == code.encode()
    assert result.source_map.is_identity


def test_normalizing_twice_is_a_no_op():
    first = normalize('define(["x"], function(X) { return X; });')
    second = ModuleNormalizer().normalize(JSParser().parse_bytes(first.source))

    assert not second.modified
    assert second.diagnostics == []
    assert second.source == first.source


def test_source_map_points_body_back_to_original_lines():
    result = normalize(
        """
        sap.ui.define(["sap/m/Button"], function(Button) {
            var b = new Button();
            return b;
        });
        """
    )

    offset = result.source.index(b"new Button")
    position = result.source_map.locate(offset)
    assert (position.line, position.column) == (3, 13)


def test_source_map_points_generated_imports_at_dependencies():
    result = normalize('sap.ui.define(["x", "y"], function(X, Y) { return X; });')

    offset = result.source.index(b'import Y from "y";')
    position = result.source_map.locate(offset)
    assert (position.line, position.column) == (1, 21)


def assert_aborted(result, code: str, reason: str, line: int, column: int):
    assert not result.modified
    assert result.source == code.encode()
    assert len(result.diagnostics) == 1
    diagnostic = result.diagnostics[0]
    assert diagnostic.rule_id == "unsupported-module-definition"
    assert reason in diagnostic.message
    assert (diagnostic.position.line, diagnostic.position.column) == (line, column)


@pytest.mark.parametrize(
    "code, reason, column",
    [
        ("sap.ui.define(...args);", "spread arguments", 15),
        ('define(["a", ...more], function(A) {});', "spread in the dependency array", 14),
        ('define(["a"], async function(A) { return A; });', "async or generator", 15),
        ('define(["a"], function*(A) { return A; });', "async or generator", 15),
        ('define(["a"], function(...rest) {});', "rest parameter", 24),
        ('define(["a"], function(A = 1) {});', "default value", 24),
        ('define("n", ["a"], function(A) {}, extra);', "extra arguments", 36),
        ('define(["exports"], function({ value }) {});', "'exports' handle is destructured", 30),
        ('define(["module"], function({ exports }) {});', "'module' handle is destructured", 29),
    ],
)
def test_unsupported_definitions_are_left_alone(code, reason, column):
    assert_aborted(normalize(code), code, reason, 1, column)


def test_statements_after_return_are_a_no_op():
    code = 'define(["a"], function(A) {\n    return A;\n    A.init();\n});'

    assert_aborted(normalize(code), code, "statements follow", 3, 5)


def test_trailing_export_flag_is_recorded():
    exported = normalize('sap.ui.define(["x"], function(X) { return X; }, true);')
    kept_local = normalize('sap.ui.define(["x"], function(X) { return X; }, false);')

    assert exported.modified and kept_local.modified
    assert exported.descriptor.export_global is True
    assert kept_local.descriptor.export_global is False
    assert b"true" not in exported.source
    assert imports_of(exported.source) == [("X", "x")]


def test_returned_sequence_is_parenthesized():
    result = normalize('define(["x"], function(X) { return a, b; });')

    assert result.modified
    assert result.diagnostics == []
    assert b"export default (a, b);" in result.source
    assert result.descriptor.export_expression == "(a, b)"
    assert result.parse_result.errors == []


def test_redeclared_dependency_name_is_a_no_op():
    code = 'define(["a"], function(A) { var A = 1; return A; });'

    assert_aborted(normalize(code), code, "'A' is declared again", 1, 33)


def test_duplicate_parameters_are_a_no_op():
    code = 'define(["a", "b"], function(A, A) {});'

    assert_aborted(normalize(code), code, "'A' is declared more than once", 1, 32)


def test_factory_this_is_a_no_op():
    code = 'define(["a"], function(A) { this.x = A; });'

    assert_aborted(normalize(code), code, "uses 'this'", 1, 29)


def test_factory_arguments_is_a_no_op():
    code = 'define(["a"], function(A) { return arguments[0]; });'

    assert_aborted(normalize(code), code, "uses 'arguments'", 1, 36)


def test_this_inside_arrow_function_is_a_no_op():
    code = "define([], function() { var f = () => this; });"

    assert_aborted(normalize(code), code, "uses 'this'", 1, 39)


def test_nested_scopes_may_use_this_and_shadow_imports():
    result = normalize(
        """
        define(["a"], function(A) {
            function F() { this.x = arguments.length; }
            var f = () => { var A = 2; return A; };
            return F;
        });
        """
    )

    assert result.modified
    assert result.diagnostics == []


def test_output_that_does_not_parse_is_discarded(monkeypatch):
    garbage = b"import from ;"
    monkeypatch.setattr(
        "ui5lint_linter.normalizer.apply_transformations",
        lambda source, transforms: (garbage, SourceMap.identity(garbage)),
    )
    code = 'define(["x"], function(X) { return X; });'

    assert_aborted(normalize(code), code, "not valid JavaScript", 1, 15)
