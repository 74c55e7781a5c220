"""
Markup documents: XML views and fragments, and HTML bootstrap pages.

Both readers produce the start tags of a document as ``MarkupElement`` records
in document order. All offsets are byte offsets into the original text, so
findings are located with the same line index as JavaScript findings.
"""

import logging
import re
from dataclasses import dataclass, field
from html.parser import HTMLParser
from typing import Dict, List, Optional, Tuple
from xml.parsers import expat

from tree_sitter import Node
from ui5lint_tree_sitter import JSParser, ParseResult

from .exceptions import DocumentSyntaxError
from .source_map import LineIndex, Segment, SourceMap

logger = logging.getLogger(__name__)

CORE_NAMESPACE = "sap.ui.core"

_TAG_NAME = re.compile(rb"<([^\s/>]+)")
_ATTRIBUTE = re.compile(rb"""\s+([^\s=/>"']+)(?:\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'=<>`]+)))?""")
_PLACEHOLDER = re.compile(r"\$\{[^}]*\}")


@dataclass(frozen=True)
class Anchor:
    """Position inside a document that has no node of its own"""

    start_byte: int


@dataclass
class MarkupAttribute:
    name: str  # as written, e.g. 'core:require'
    local_name: str
    namespace: Optional[str]  # resolved namespace URI; unprefixed attributes have none
    value: str  # entity-decoded value
    start_byte: int  # offset of the attribute name
    value_start: int  # offset of the first byte inside the quotes
    raw_value: bytes = b""

    @property
    def is_module_map(self) -> bool:
        """``core:require`` maps aliases to module names"""
        return self.local_name == "require" and self.namespace == CORE_NAMESPACE


@dataclass
class MarkupElement:
    name: str  # as written, e.g. 'mvc:View'
    local_name: str
    namespace: Optional[str]
    start_byte: int  # offset of the tag name
    attributes: List[MarkupAttribute] = field(default_factory=list)

    def attribute(self, local_name: str, namespace: Optional[str] = None) -> Optional[MarkupAttribute]:
        for attribute in self.attributes:
            if attribute.local_name == local_name and attribute.namespace == namespace:
                return attribute
        return None

    @property
    def class_name(self) -> Optional[str]:
        """Control class the element instantiates: 'sap.m' + 'Button' -> 'sap.m.Button'.

        Lower-case elements are aggregations and name no class.
        """
        if not self.namespace or not self.local_name[:1].isupper():
            return None
        return f"{self.namespace}.{self.local_name}"


@dataclass
class EmbeddedExpression:
    """JavaScript embedded in an attribute value: a binding info object or an expression binding"""

    attribute: MarkupAttribute
    parse_result: ParseResult
    expression: Node
    source_map: SourceMap  # maps offsets of ``parse_result.source`` into the document
    is_expression_binding: bool = False


def _split_name(name: str) -> Tuple[str, str]:
    prefix, _, local = name.rpartition(":")
    return prefix, local


def _scan_attributes(source: bytes, tag_start: int) -> List[Tuple[str, int, bytes, int]]:
    """Attributes of the start tag whose '<' is at ``tag_start``.

    Returns (name, name offset, raw value, value offset) tuples. Quoted values
    may contain '>', as binding paths like '{i18n>title}' do.
    """
    match = _TAG_NAME.match(source, tag_start)
    if match is None:
        return []
    found = []
    pos = match.end()
    while True:
        match = _ATTRIBUTE.match(source, pos)
        if match is None:
            return found
        raw, value_start = b"", match.end(1)
        for group in (2, 3, 4):
            if match.group(group) is not None:
                raw, value_start = match.group(group), match.start(group)
                break
        found.append((match.group(1).decode("utf-8", errors="replace"), match.start(1), raw, value_start))
        pos = match.end()


class _XmlReader:
    def __init__(self, source: bytes):
        self.source = source
        self.elements: List[MarkupElement] = []
        self._scopes: List[Dict[str, str]] = [{}]
        self._parser = expat.ParserCreate()
        self._parser.StartElementHandler = self._start
        self._parser.EndElementHandler = self._end

    def read(self) -> List[MarkupElement]:
        try:
            self._parser.Parse(self.source, True)
        except expat.ExpatError as e:
            raise DocumentSyntaxError(f"Invalid XML: {expat.ErrorString(e.code)}", e.lineno, e.offset + 1) from e
        return self.elements

    def _start(self, name: str, attributes: Dict[str, str]):
        offset = self._parser.CurrentByteIndex
        scope = dict(self._scopes[-1])
        for attribute_name, value in attributes.items():
            if attribute_name == "xmlns":
                scope[""] = value
            elif attribute_name.startswith("xmlns:"):
                scope[attribute_name[6:]] = value
        self._scopes.append(scope)

        prefix, local_name = _split_name(name)
        element = MarkupElement(name, local_name, scope.get(prefix), offset + 1)
        for attribute_name, name_offset, raw, value_start in _scan_attributes(self.source, offset):
            if attribute_name == "xmlns" or attribute_name.startswith("xmlns:"):
                continue
            prefix, local_name = _split_name(attribute_name)
            element.attributes.append(
                MarkupAttribute(
                    name=attribute_name,
                    local_name=local_name,
                    namespace=scope.get(prefix) if prefix else None,
                    value=attributes.get(attribute_name, ""),
                    start_byte=name_offset,
                    value_start=value_start,
                    raw_value=raw,
                )
            )
        self.elements.append(element)

    def _end(self, name: str):
        self._scopes.pop()


def parse_xml(source: bytes) -> List[MarkupElement]:
    """Start tags of an XML view or fragment with resolved namespaces.

    Raises DocumentSyntaxError when the document is not well-formed.
    """
    return _XmlReader(source).read()


class _HtmlReader(HTMLParser):
    def __init__(self, text: str):
        super().__init__(convert_charrefs=True)
        self.text = text
        self.elements: List[MarkupElement] = []
        self._line_starts = [0] + [i + 1 for i, c in enumerate(text) if c == "\n"]

    def handle_starttag(self, tag, attrs):
        line, column = self.getpos()
        offset = len(self.text[: self._line_starts[line - 1] + column].encode("utf-8"))
        decoded = {name: value or "" for name, value in attrs}

        element = MarkupElement(tag, tag, None, offset + 1)
        raw_tag = (self.get_starttag_text() or "").encode("utf-8")
        for attribute_name, name_offset, raw, value_start in _scan_attributes(raw_tag, 0):
            name = attribute_name.lower()
            element.attributes.append(
                MarkupAttribute(
                    name=name,
                    local_name=name,
                    namespace=None,
                    value=decoded.get(name, ""),
                    start_byte=offset + name_offset,
                    value_start=offset + value_start,
                    raw_value=raw,
                )
            )
        self.elements.append(element)


def parse_html(source: bytes) -> List[MarkupElement]:
    """Start tags of an HTML page. HTML parsing recovers from any input and never raises."""
    reader = _HtmlReader(source.decode("utf-8", errors="replace"))
    reader.feed(reader.text)
    reader.close()
    return reader.elements


def parse_embedded(
    attribute: MarkupAttribute,
    source: bytes,
    parser: JSParser,
    index: Optional[LineIndex] = None,
) -> Optional[EmbeddedExpression]:
    """Parse the attribute value as a binding, if it is one.

    Binding info objects ('{path: ..., formatter: ...}') and expression bindings
    ('{= ...}') are parsed as a parenthesized JavaScript expression. Model
    placeholders '${...}' become the identifier '_'. Simple binding paths
    ('{/name}', '{i18n>title}') are not JavaScript and yield None.

    Offsets map back into the value when it was written without entity
    references; otherwise every offset maps to the start of the value.
    """
    exact = b"&" not in attribute.raw_value
    text = attribute.raw_value.decode("utf-8", errors="replace") if exact else attribute.value
    stripped = text.strip()
    if len(stripped) < 2 or not (stripped.startswith("{") and stripped.endswith("}")):
        return None

    lead = len(text) - len(text.lstrip())
    is_expression_binding = stripped.startswith("{=") or stripped.startswith("{:=")
    if is_expression_binding:
        start = lead + stripped.index("=") + 1
        end = lead + len(stripped) - 1
        body = _PLACEHOLDER.sub(lambda m: "_" + " " * (len(m.group(0).encode("utf-8")) - 1), text[start:end])
    else:
        start, end = lead, lead + len(stripped)
        body = text[start:end]

    body_bytes = body.encode("utf-8")
    generated = b"(" + body_bytes + b")"
    if exact:
        body_start = attribute.value_start + len(text[:start].encode("utf-8"))
        body_end = body_start + len(body_bytes)
        segments = [
            Segment(0, 1, body_start, copied=False),
            Segment(1, 1 + len(body_bytes), body_start, copied=True),
            Segment(1 + len(body_bytes), len(generated), body_end, copied=False),
        ]
    else:
        segments = [Segment(0, len(generated), attribute.value_start, copied=False)]

    parse_result = parser.parse_bytes(generated)
    if parse_result.errors:
        return None
    statements = parse_result.root.named_children
    if len(statements) != 1 or statements[0].type != "expression_statement":
        return None
    wrapped = statements[0].named_children[0]
    if wrapped.type != "parenthesized_expression" or not wrapped.named_children:
        return None
    expression = wrapped.named_children[0]
    if not is_expression_binding and expression.type != "object":
        return None

    logger.debug("Embedded %s in attribute '%s'", expression.type, attribute.name)
    return EmbeddedExpression(
        attribute=attribute,
        parse_result=parse_result,
        expression=expression,
        source_map=SourceMap(source, segments, index),
        is_expression_binding=is_expression_binding,
    )
