"""Tree-sitter JavaScript parser wrapper."""

from typing import List

import tree_sitter_javascript as tsjs
from tree_sitter import Language, Node, Parser

from .ast_walker import ASTWalker
from .node_types import ParseResult, SyntaxProblem

JS_LANGUAGE = Language(tsjs.language())


class JSParser:
    """Parses JavaScript sources and collects the syntax errors tree-sitter recovered from.

    tree-sitter never rejects input, it inserts ERROR and MISSING nodes instead.
    Callers decide whether a non-empty ``errors`` list is fatal.
    """

    def __init__(self):
        self.language = JS_LANGUAGE
        self.parser = Parser(self.language)

    def parse_bytes(self, source: bytes) -> ParseResult:
        tree = self.parser.parse(source)
        errors = self._collect_errors(tree.root_node, source) if tree.root_node.has_error else []
        return ParseResult(tree=tree, source=source, errors=errors)

    def parse_string(self, source: str) -> ParseResult:
        return self.parse_bytes(source.encode("utf-8"))

    def _collect_errors(self, root: Node, source: bytes) -> List[SyntaxProblem]:
        problems = []
        for node in ASTWalker.iter_preorder(root):
            if node.type == "ERROR":
                snippet = ASTWalker.get_text(node, source).strip().splitlines()
                near = f" near '{snippet[0][:40]}'" if snippet else ""
                problems.append(self._problem(node, source, f"Unexpected syntax{near}"))
            elif node.is_missing:
                problems.append(self._problem(node, source, f"Missing '{node.type}'"))
        return problems

    @staticmethod
    def _problem(node: Node, source: bytes, message: str) -> SyntaxProblem:
        row, col_bytes = node.start_point
        line_start = node.start_byte - col_bytes
        column = len(source[line_start : node.start_byte].decode("utf-8", errors="replace"))
        return SyntaxProblem(line=row + 1, column=column + 1, message=message)
