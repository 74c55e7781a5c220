import textwrap

import pytest
from ui5lint_linter import LinterEngine, LinterOptions
from ui5lint_symbols import ScopeResolver, default_catalog
from ui5lint_tree_sitter import JSParser


@pytest.fixture
def parser():
    return JSParser()


@pytest.fixture
def resolve_in():
    """Parse code and return (parse_result, resolver)"""

    def _resolve_in(code: str):
        result = JSParser().parse_string(textwrap.dedent(code))
        return result, ScopeResolver(result.root, result.source, default_catalog())

    return _resolve_in


@pytest.fixture
def lint_js():
    """Lint a source string and return its LintResult"""

    def _lint_js(code: str, file_path: str = "test.js", **options):
        engine = LinterEngine(LinterOptions(**options))
        context = engine.create_context()
        engine.lint_source(context, file_path, textwrap.dedent(code).encode("utf-8"))
        return context.get_result(file_path)

    return _lint_js


@pytest.fixture
def lint_document():
    """Lint an XML view, HTML page or manifest given as text"""

    def _lint_document(text: str, file_path: str, **options):
        engine = LinterEngine(LinterOptions(**options))
        context = engine.create_context()
        engine.lint_source(context, file_path, textwrap.dedent(text).encode("utf-8"))
        return context.get_result(file_path)

    return _lint_document
