from ui5lint_linter import SourceMap, Transformation, apply_transformations
from ui5lint_linter.source_map import LineIndex


def test_line_index_counts_characters_not_bytes():
    index = LineIndex("a\nüb = 1;\n".encode("utf-8"))

    position = index.position("a\nüb".encode("utf-8").index(b"b"))
    assert (position.line, position.column) == (2, 2)


def test_identity_map():
    source = b"line one\nline two\n"
    source_map = SourceMap.identity(source)

    assert source_map.is_identity
    assert source_map.original_offset(12) == 12
    position = source_map.locate(9)
    assert (position.line, position.column) == (2, 1)


def test_replacement_maps_copied_and_generated_text():
    source = b"aaa BBB ccc"
    output, source_map = apply_transformations(source, [Transformation(4, 7, "XXXXX")])

    assert output == b"aaa XXXXX ccc"
    assert source_map.original_offset(1) == 1
    # Every generated byte maps to the start of the replaced range
    assert source_map.original_offset(6) == 4
    # Text after the replacement shifts back by the length difference
    assert source_map.original_offset(output.index(b"ccc")) == source.index(b"ccc")


def test_insertions_at_same_offset_keep_priority_order():
    source = b"body"
    transforms = [
        Transformation(0, 0, "second;", priority=1, origin=2),
        Transformation(0, 0, "first;", priority=0, origin=1),
    ]
    output, source_map = apply_transformations(source, transforms)

    assert output == b"first;second;body"
    assert source_map.original_offset(0) == 1
    assert source_map.original_offset(len(b"first;")) == 2
    assert source_map.original_offset(output.index(b"body")) == 0


def test_overlapping_transformations_are_skipped():
    output, _ = apply_transformations(b"abcdef", [Transformation(1, 4, "X"), Transformation(2, 5, "Y")])

    assert output == b"aXef"


def test_offsets_past_the_end_map_to_the_end_of_the_original():
    source = b"abc"
    output, source_map = apply_transformations(source, [Transformation(0, 1, "")])

    assert output == b"bc"
    assert source_map.original_offset(len(output)) == len(source)
