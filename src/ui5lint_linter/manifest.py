"""
Application descriptor (manifest.json) reader.

The descriptor is validated with the json module, which also supplies the
decoded values. Key positions come from a tree-sitter parse of the same text
as a parenthesized JavaScript expression.
"""

import json
from dataclasses import dataclass
from typing import Any, Iterator, List

from tree_sitter import Node
from ui5lint_tree_sitter import ASTWalker, JSParser, JSPatterns

from .exceptions import DocumentSyntaxError

MANIFEST_FILE_NAME = "manifest.json"


@dataclass
class ManifestEntry:
    """One property of the descriptor, at any depth"""

    path: str  # keys from the root joined by '/', e.g. 'sap.ui5/rootView/async'
    key: str
    value: Any  # decoded JSON value
    start_byte: int  # offset of the key's opening quote
    value_start: int

    @property
    def segments(self) -> List[str]:
        return self.path.split("/")


def _entries(node: Node, value: Any, prefix: str, source: bytes) -> Iterator[ManifestEntry]:
    for pair in ASTWalker.named_children(node):
        if pair.type != "pair":
            continue
        key_node = pair.child_by_field_name("key")
        value_node = pair.child_by_field_name("value")
        key = JSPatterns.string_value(key_node, source) if key_node is not None else None
        if key is None or value_node is None:
            continue
        child = value.get(key) if isinstance(value, dict) else None
        path = f"{prefix}/{key}" if prefix else key
        # The parsed text starts with '(', offsets are shifted back by one
        yield ManifestEntry(path, key, child, key_node.start_byte - 1, value_node.start_byte - 1)

        if value_node.type == "object":
            yield from _entries(value_node, child, path, source)
        elif value_node.type == "array":
            for i, element in enumerate(ASTWalker.named_children(value_node)):
                if element.type == "object":
                    item = child[i] if isinstance(child, list) and i < len(child) else None
                    yield from _entries(element, item, f"{path}/{i}", source)


def parse_manifest(source: bytes, parser: JSParser) -> List[ManifestEntry]:
    """All properties of a descriptor in document order.

    Raises DocumentSyntaxError when the text is not valid JSON. A descriptor
    whose root is not an object has no entries.
    """
    try:
        data = json.loads(source)
    except json.JSONDecodeError as e:
        raise DocumentSyntaxError(f"Invalid JSON: {e.msg}", e.lineno, e.colno) from e
    except UnicodeDecodeError as e:
        raise DocumentSyntaxError("Invalid JSON: the file is not UTF-8 encoded", 1, 1) from e
    if not isinstance(data, dict):
        return []

    wrapped = b"(" + source + b")"
    parse_result = parser.parse_bytes(wrapped)
    root = parse_result.root
    obj = next((n for n in ASTWalker.iter_preorder(root) if n.type == "object"), None)
    if obj is None:
        return []
    return list(_entries(obj, data, "", wrapped))
