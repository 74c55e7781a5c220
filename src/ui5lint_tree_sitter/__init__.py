from .ast_walker import ASTWalker
from .js_patterns import JSPatterns
from .node_types import ParseResult, SyntaxProblem
from .parser import JSParser

__all__ = ["ASTWalker", "JSParser", "JSPatterns", "ParseResult", "SyntaxProblem"]
