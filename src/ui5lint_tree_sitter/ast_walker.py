from typing import Iterator, List, Optional

from tree_sitter import Node


class ASTWalker:
    """Utilities for traversing and searching the JavaScript AST"""

    @staticmethod
    def iter_preorder(node: Node) -> Iterator[Node]:
        """Yield nodes depth-first, parents before children, in source order.

        Uses an explicit stack so deeply nested sources do not hit the recursion limit.
        """
        stack = [node]
        while stack:
            current = stack.pop()
            yield current
            stack.extend(reversed(current.children))

    @staticmethod
    def get_text(node: Node, source: bytes | str) -> str:
        """Source text covered by a node"""
        if isinstance(source, str):
            source = source.encode("utf-8")
        return source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")

    @staticmethod
    def get_child_of_type(node: Node, type_name: str) -> Optional[Node]:
        """Find the first direct child of a specific type"""
        for child in node.children:
            if child.type == type_name:
                return child
        return None

    @staticmethod
    def find_all_by_type(node: Node, type_name: str) -> List[Node]:
        """Find all descendant nodes of a specific type"""
        return [n for n in ASTWalker.iter_preorder(node) if n.type == type_name]

    @staticmethod
    def same_node(a: Optional[Node], b: Optional[Node]) -> bool:
        if a is None or b is None:
            return False
        return a.type == b.type and a.start_byte == b.start_byte and a.end_byte == b.end_byte

    @staticmethod
    def named_children(node: Node) -> List[Node]:
        """Named children without comments"""
        return [c for c in node.named_children if c.type != "comment"]
