"""
Byte-range rewriting with a positional translation table.

Rewrites are expressed as non-overlapping ``Transformation`` records applied in
a single pass. Every byte of the output belongs to exactly one segment: either
copied from the original (mapped offset by offset) or generated (mapped to the
transformation's origin offset in the original).
"""

from bisect import bisect_right
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from tree_sitter import Node

from .models import Position


@dataclass
class Transformation:
    """Replace ``source[start_byte:end_byte]`` with ``new_content``"""

    start_byte: int
    end_byte: int
    new_content: str
    priority: int = 0  # orders insertions at the same offset
    origin: Optional[int] = None  # original offset generated text points to; start_byte if None


@dataclass(frozen=True)
class Segment:
    generated_start: int
    generated_end: int
    original_start: int
    copied: bool

    def original_offset(self, generated_offset: int) -> int:
        if self.copied:
            return self.original_start + (generated_offset - self.generated_start)
        return self.original_start


class LineIndex:
    """Byte offset to 1-based line / character column for one source text"""

    def __init__(self, source: bytes):
        self.source = source
        self.line_starts = [0]
        for i, byte in enumerate(source):
            if byte == 0x0A:
                self.line_starts.append(i + 1)

    def position(self, offset: int) -> Position:
        offset = max(0, min(offset, len(self.source)))
        line = bisect_right(self.line_starts, offset) - 1
        line_start = self.line_starts[line]
        column = len(self.source[line_start:offset].decode("utf-8", errors="replace"))
        return Position(line=line + 1, column=column + 1)


class SourceMap:
    """Maps offsets of a rewritten text back to the original source"""

    def __init__(self, original: bytes, segments: List[Segment], index: Optional[LineIndex] = None):
        self.original_index = index or LineIndex(original)
        self.segments = segments
        self._starts = [s.generated_start for s in segments]

    @classmethod
    def identity(cls, source: bytes) -> "SourceMap":
        return cls(source, [Segment(0, len(source), 0, copied=True)])

    @property
    def is_identity(self) -> bool:
        return len(self.segments) == 1 and self.segments[0].copied and self.segments[0].original_start == 0

    def original_offset(self, generated_offset: int) -> int:
        if not self.segments:
            return 0
        i = bisect_right(self._starts, generated_offset) - 1
        if i < 0:
            return self.segments[0].original_start
        segment = self.segments[i]
        if generated_offset >= segment.generated_end:
            # Past the end of the output
            if segment.copied:
                return segment.original_start + (segment.generated_end - segment.generated_start)
            return segment.original_start
        return segment.original_offset(generated_offset)

    def locate(self, generated_offset: int) -> Position:
        return self.original_index.position(self.original_offset(generated_offset))

    def locate_node(self, node: Node) -> Position:
        return self.locate(node.start_byte)

    def original_position(self, original_offset: int) -> Position:
        return self.original_index.position(original_offset)


def apply_transformations(source: bytes, transforms: Iterable[Transformation]) -> Tuple[bytes, SourceMap]:
    """Apply non-overlapping byte-range transformations in a single pass.

    Overlapping transformations after the first are skipped.
    """
    sorted_transforms = sorted(transforms, key=lambda t: (t.start_byte, t.end_byte, t.priority))
    result: List[bytes] = []
    segments: List[Segment] = []
    last_offset = 0
    generated = 0

    def emit(chunk: bytes, original_start: int, copied: bool):
        nonlocal generated
        if not chunk:
            return
        segments.append(Segment(generated, generated + len(chunk), original_start, copied))
        result.append(chunk)
        generated += len(chunk)

    for t in sorted_transforms:
        if t.start_byte < last_offset:
            continue
        emit(source[last_offset : t.start_byte], last_offset, copied=True)
        emit(t.new_content.encode("utf-8"), t.start_byte if t.origin is None else t.origin, copied=False)
        last_offset = t.end_byte
    emit(source[last_offset:], last_offset, copied=True)

    if not segments:
        segments.append(Segment(0, 0, 0, copied=True))
    return b"".join(result), SourceMap(source, segments)
