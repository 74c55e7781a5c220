from dataclasses import dataclass, field
from typing import List, Optional

from tree_sitter import Node, Tree


@dataclass
class SyntaxProblem:
    """A location where tree-sitter had to recover from invalid input"""

    line: int
    column: int
    message: str


@dataclass
class ParseResult:
    """Result of a tree-sitter parse operation"""

    tree: Tree
    source: bytes
    errors: List[SyntaxProblem] = field(default_factory=list)

    @property
    def root(self) -> Node:
        return self.tree.root_node

    @property
    def first_error(self) -> Optional[SyntaxProblem]:
        return self.errors[0] if self.errors else None
