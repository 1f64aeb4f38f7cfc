from __future__ import annotations

from services.hunk_parser import HunkParser


def test_parse_range_fence_keeps_indentation() -> None:
    text = "Update the body:\n```python:3-4\n    x = 1\n    y = 2\n```\nDone."

    edit = HunkParser().parse(text, "src/mod.py")

    assert edit is not None
    assert edit.file_path == "src/mod.py"
    assert edit.description == "Parsed edit"
    [hunk] = edit.hunks
    assert (hunk.start_line, hunk.end_line) == (3, 4)
    assert hunk.new_content == "    x = 1\n    y = 2"
    assert hunk.original_content == ""


def test_parse_range_fence_without_language() -> None:
    edit = HunkParser().parse("```12-20\nbody\n```", "f.txt")

    assert edit is not None
    assert (edit.hunks[0].start_line, edit.hunks[0].end_line) == (12, 20)


def test_parse_replace_marker() -> None:
    text = "// REPLACE LINES 2-2:\n```js\nconst a = 1;\n```\n"

    edit = HunkParser().parse(text, "app.js")

    assert edit is not None
    [hunk] = edit.hunks
    assert (hunk.start_line, hunk.end_line) == (2, 2)
    assert hunk.new_content == "const a = 1;"


def test_parse_replace_marker_hash_comment_without_colon() -> None:
    text = "# replace lines 5-7\n```\nfirst\nsecond\n```"

    edit = HunkParser().parse(text, "script.py")

    assert edit is not None
    assert [(h.start_line, h.end_line, h.new_content) for h in edit.hunks] == [(5, 7, "first\nsecond")]


def test_parse_unified_hunk_with_context() -> None:
    text = "--- a/f.txt\n+++ b/f.txt\n@@ -1,3 +1,3 @@\n a\n-b\n+x\n c\n"

    edit = HunkParser().parse(text, "f.txt")

    assert edit is not None
    [hunk] = edit.hunks
    assert (hunk.start_line, hunk.end_line) == (1, 3)
    assert hunk.original_content == "a\nb\nc"
    assert hunk.new_content == "a\nx\nc"


def test_parse_unified_hunk_counts_default_to_one() -> None:
    edit = HunkParser().parse("@@ -3 +3 @@\n-old\n+new\nnot part of the diff", "f.txt")

    assert edit is not None
    [hunk] = edit.hunks
    assert (hunk.start_line, hunk.end_line) == (3, 3)
    assert (hunk.original_content, hunk.new_content) == ("old", "new")


def test_parse_unified_hunk_blank_context_and_no_newline_marker() -> None:
    text = "@@ -4,3 +4,3 @@\n x\n\n-y\n\\ No newline at end of file\n+z\n"

    edit = HunkParser().parse(text, "f.txt")

    assert edit is not None
    [hunk] = edit.hunks
    assert hunk.original_content == "x\n\ny"
    assert hunk.new_content == "x\n\nz"
    assert (hunk.start_line, hunk.end_line) == (4, 6)


def test_pure_insertion_without_file_content_is_kept_as_empty_range() -> None:
    edit = HunkParser().parse("@@ -3,0 +4,2 @@\n+x\n+y\n", "f.txt")

    assert edit is not None
    [hunk] = edit.hunks
    assert (hunk.start_line, hunk.end_line) == (4, 3)
    assert hunk.new_content == "x\ny"


def test_pure_insertion_is_anchored_on_the_line_above() -> None:
    original = "one\ntwo\nthree\nfour"

    edit = HunkParser().parse("@@ -3,0 +4,2 @@\n+x\n+y\n", "f.txt", original=original)

    [hunk] = edit.hunks
    assert (hunk.start_line, hunk.end_line) == (3, 3)
    assert (hunk.original_content, hunk.new_content) == ("three", "three\nx\ny")


def test_insertion_at_top_is_anchored_on_the_first_line() -> None:
    edit = HunkParser().parse("@@ -0,0 +1 @@\n+header\n", "f.txt", original="one\ntwo")

    [hunk] = edit.hunks
    assert (hunk.start_line, hunk.end_line) == (1, 1)
    assert hunk.new_content == "header\none"


def test_pure_deletion_is_anchored() -> None:
    original = "one\ntwo\nthree\nfour"
    parser = HunkParser()

    middle = parser.parse("@@ -2,2 +1,0 @@\n-two\n-three\n", "f.txt", original=original).hunks[0]
    top = parser.parse("@@ -1,2 +0,0 @@\n-one\n-two\n", "f.txt", original=original).hunks[0]

    assert (middle.start_line, middle.end_line, middle.new_content) == (1, 3, "one")
    assert middle.original_content == "one\ntwo\nthree"
    assert (top.start_line, top.end_line, top.new_content) == (1, 3, "three")


def test_parse_returns_none_without_notation() -> None:
    assert HunkParser().parse("Just some prose with ``` a fence ```", "f.txt") is None


def test_parse_merges_notations_in_text_order() -> None:
    text = (
        "@@ -10,1 +10,1 @@\n-ten\n+TEN\n"
        "then\n"
        "```python:1-1\nONE\n```\n"
        "and\n"
        "REPLACE LINES 5-6:\n```\nFIVE\n```\n"
    )

    edit = HunkParser().parse(text, "f.txt", description="mixed")

    assert edit is not None
    assert edit.description == "mixed"
    assert [(h.start_line, h.new_content) for h in edit.hunks] == [(10, "TEN"), (1, "ONE"), (5, "FIVE")]


def test_parse_generates_distinct_ids() -> None:
    parser = HunkParser()

    first = parser.parse("```1-1\na\n```", "f.txt")
    second = parser.parse("```1-1\na\n```", "f.txt")

    assert first.id != second.id
