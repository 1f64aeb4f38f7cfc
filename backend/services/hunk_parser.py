"""
Hunk Parser - Extract line-range hunks from free-form text

Recognised notations:
  1. fenced block with a range in its info string:   ```python:12-20
  2. unified diff hunks:                              @@ -12,3 +12,4 @@
  3. a replace marker followed by a fenced block:     // REPLACE LINES 12-20:
"""

from __future__ import annotations

import logging
import re

from models.diff import DiffEdit, DiffHunk, new_id

from .diff_generator import split_lines

logger = logging.getLogger(__name__)

_REPLACE_MARKER_RE = re.compile(
    r"^[ \t]*(?:(?://|#|--)[ \t]*)?replace lines[ \t]+(\d+)[ \t]*-[ \t]*(\d+)[ \t]*:?[ \t]*\n"
    r"[ \t]*```[^\n]*\n(.*?)```",
    re.IGNORECASE | re.MULTILINE | re.DOTALL,
)
_RANGE_FENCE_RE = re.compile(r"```[\w+#.]*?:?(\d+)-(\d+)[ \t]*\n(.*?)```", re.DOTALL)
_UNIFIED_HEADER_RE = re.compile(
    r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@[^\n]*$", re.MULTILINE
)


def _fenced_content(content: str) -> str:
    """Drop the newline before the closing fence, keep indentation"""
    return content[:-1] if content.endswith("\n") else content


class HunkParser:
    """Parse hunk notations out of text produced upstream"""

    def parse(
        self,
        text: str,
        target_file: str,
        description: str | None = None,
        original: str | None = None,
    ) -> DiffEdit | None:
        """Return an edit with every hunk found, or None when no notation is present.

        `original` is the current file text; it lets unified hunks that only
        insert or only delete lines be widened into range replacements.
        """
        consumed: list[tuple[int, int]] = []
        found: list[tuple[int, DiffHunk]] = []

        for match in _REPLACE_MARKER_RE.finditer(text):
            found.append((match.start(), self._range_hunk(match)))
            consumed.append(match.span())

        for match in _RANGE_FENCE_RE.finditer(text):
            if self._inside(match.start(), consumed):
                continue
            found.append((match.start(), self._range_hunk(match)))
            consumed.append(match.span())

        lines = split_lines(original) if original is not None else None
        for position, hunk in self._parse_unified(text, consumed, lines):
            found.append((position, hunk))

        if not found:
            return None

        found.sort(key=lambda item: item[0])
        return DiffEdit(
            id=new_id(),
            file_path=target_file,
            hunks=[hunk for _, hunk in found],
            description=description or "Parsed edit",
        )

    def _inside(self, position: int, regions: list[tuple[int, int]]) -> bool:
        return any(start <= position < end for start, end in regions)

    def _range_hunk(self, match: re.Match) -> DiffHunk:
        return DiffHunk(
            start_line=int(match.group(1)),
            end_line=int(match.group(2)),
            original_content="",
            new_content=_fenced_content(match.group(3)),
        )

    def _parse_unified(self, text: str, consumed: list[tuple[int, int]], original: list[str] | None):
        for match in _UNIFIED_HEADER_RE.finditer(text):
            if self._inside(match.start(), consumed):
                continue

            old_start = int(match.group(1))
            old_count = int(match.group(2)) if match.group(2) is not None else 1
            new_count = int(match.group(4)) if match.group(4) is not None else 1
            body = text[match.end() + 1 :].split("\n") if match.end() < len(text) else []
            original_lines, new_lines = self._read_body(body, old_count, new_count)

            if original_lines and new_lines:
                hunk = DiffHunk(
                    start_line=old_start,
                    end_line=old_start + len(original_lines) - 1,
                    original_content="\n".join(original_lines),
                    new_content="\n".join(new_lines),
                )
            elif original_lines or new_lines:
                hunk = self._anchor(old_start, original_lines, new_lines, original)
            else:
                continue
            yield match.start(), hunk

    def _anchor(
        self,
        old_start: int,
        original_lines: list[str],
        new_lines: list[str],
        original: list[str] | None,
    ) -> DiffHunk:
        """Widen a pure insertion or deletion by one neighbouring line of the file.

        An insertion header names the line it follows (0 for the top of the
        file). Without file content, or with nothing to widen onto, the hunk
        is kept as an empty range so validation reports it.
        """
        first = old_start if original_lines else old_start + 1
        last = first + len(original_lines) - 1

        if original is not None:
            if first > 1 and first - 1 <= len(original):
                above = original[first - 2]
                return DiffHunk(
                    start_line=first - 1,
                    end_line=last,
                    original_content="\n".join([above, *original_lines]),
                    new_content="\n".join([above, *new_lines]),
                )
            if last < len(original):
                below = original[last]
                return DiffHunk(
                    start_line=first,
                    end_line=last + 1,
                    original_content="\n".join([*original_lines, below]),
                    new_content="\n".join([*new_lines, below]),
                )

        logger.warning(
            "Unified hunk at -%d,%d has no line to anchor on; keeping it as an empty range",
            old_start,
            len(original_lines),
        )
        return DiffHunk(
            start_line=first,
            end_line=first - 1,
            original_content="\n".join(original_lines),
            new_content="\n".join(new_lines),
        )

    def _read_body(
        self, body: list[str], old_count: int, new_count: int
    ) -> tuple[list[str], list[str]]:
        original_lines: list[str] = []
        new_lines: list[str] = []

        for line in body:
            if len(original_lines) >= old_count and len(new_lines) >= new_count:
                break
            if line.startswith(("@@", "```", "diff ")):
                break
            if line.startswith("\\"):
                continue
            if line.startswith("-"):
                original_lines.append(line[1:])
            elif line.startswith("+"):
                new_lines.append(line[1:])
            elif line.startswith(" ") or line == "":
                # Editors often strip the space of blank context lines
                original_lines.append(line[1:])
                new_lines.append(line[1:])
            else:
                break

        return original_lines, new_lines
