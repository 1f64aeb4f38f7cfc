"""
Diff Generator Service - Line-level LCS diffs for code modifications
"""

from __future__ import annotations

import logging
from collections import deque
from difflib import SequenceMatcher
from typing import Iterable

from models.changeset import DiffLine, UnifiedHunk
from models.diff import DiffHunk, DiffResult

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT_LINES = 3
DEFAULT_MAX_DIFF_CELLS = 4_000_000

# (tag, old lines consumed before this op, new lines consumed before this op)
_Op = tuple[str, int, int]


def split_lines(text: str) -> list[str]:
    """Split on newlines so that joining with "\\n" restores the text exactly"""
    return text.split("\n")


def _degenerate(lo: int, hi: int, new: list[str]) -> bool:
    return lo == hi or not new


def splice_hunks(content: str, hunks: Iterable[DiffHunk]) -> tuple[str, int]:
    """Apply replace-range hunks to content, bottom of the file first.

    Returns the new content and the number of lines changed (replaced span
    plus inserted lines, summed over hunks).
    """
    lines = split_lines(content)
    lines_changed = 0

    # Descending start line keeps earlier line numbers valid while splicing
    for hunk in sorted(hunks, key=lambda h: h.start_line, reverse=True):
        new_lines = hunk.new_lines()
        lines[hunk.start_line - 1 : hunk.end_line] = new_lines
        lines_changed += hunk.span + len(new_lines)

    return "\n".join(lines), lines_changed


class DiffGenerator:
    """Generate line diffs, display hunks and replace-range hunks"""

    def __init__(
        self,
        context_lines: int = DEFAULT_CONTEXT_LINES,
        max_diff_cells: int = DEFAULT_MAX_DIFF_CELLS,
    ):
        self.context_lines = max(0, context_lines)
        self.max_diff_cells = max_diff_cells

    # ========== Matching ==========

    def match_lines(self, a: list[str], b: list[str]) -> list[tuple[int, int]]:
        """Index pairs (i, j) of a longest common subsequence of a and b"""
        limit = min(len(a), len(b))
        prefix = 0
        while prefix < limit and a[prefix] == b[prefix]:
            prefix += 1
        suffix = 0
        while suffix < limit - prefix and a[len(a) - 1 - suffix] == b[len(b) - 1 - suffix]:
            suffix += 1

        a_mid = a[prefix : len(a) - suffix]
        b_mid = b[prefix : len(b) - suffix]

        if len(a_mid) * len(b_mid) > self.max_diff_cells:
            logger.info(
                "Diff table of %dx%d lines exceeds %d cells, using block matching",
                len(a_mid),
                len(b_mid),
                self.max_diff_cells,
            )
            middle = self._match_blocks(a_mid, b_mid)
        else:
            middle = self._lcs(a_mid, b_mid)

        pairs = [(k, k) for k in range(prefix)]
        pairs.extend((i + prefix, j + prefix) for i, j in middle)
        a_tail, b_tail = len(a) - suffix, len(b) - suffix
        pairs.extend((a_tail + k, b_tail + k) for k in range(suffix))
        return pairs

    def _lcs(self, a: list[str], b: list[str]) -> list[tuple[int, int]]:
        """Dynamic-programming LCS, backtracked into index pairs"""
        m, n = len(a), len(b)
        if m == 0 or n == 0:
            return []

        dp = [[0] * (n + 1) for _ in range(m + 1)]
        for i in range(1, m + 1):
            row, prev_row, line = dp[i], dp[i - 1], a[i - 1]
            for j in range(1, n + 1):
                if line == b[j - 1]:
                    row[j] = prev_row[j - 1] + 1
                elif prev_row[j] >= row[j - 1]:
                    row[j] = prev_row[j]
                else:
                    row[j] = row[j - 1]

        pairs: list[tuple[int, int]] = []
        i, j = m, n
        while i > 0 and j > 0:
            if a[i - 1] == b[j - 1]:
                pairs.append((i - 1, j - 1))
                i -= 1
                j -= 1
            elif dp[i - 1][j] > dp[i][j - 1]:
                i -= 1
            else:
                j -= 1
        pairs.reverse()
        return pairs

    def _match_blocks(self, a: list[str], b: list[str]) -> list[tuple[int, int]]:
        matcher = SequenceMatcher(None, a, b, autojunk=False)
        pairs: list[tuple[int, int]] = []
        for block in matcher.get_matching_blocks():
            pairs.extend((block.a + k, block.b + k) for k in range(block.size))
        return pairs

    def _edit_script(self, a: list[str], b: list[str]) -> list[_Op]:
        """Walk both sequences against the matches; removals precede additions"""
        ops: list[_Op] = []
        oi = mi = 0
        for i, j in [*self.match_lines(a, b), (len(a), len(b))]:
            while oi < i:
                ops.append(("remove", oi, mi))
                oi += 1
            while mi < j:
                ops.append(("add", oi, mi))
                mi += 1
            if i < len(a):
                ops.append(("context", oi, mi))
                oi += 1
                mi += 1
        return ops

    # ========== Display Hunks ==========

    def compute_diff(self, original: str, modified: str) -> list[UnifiedHunk]:
        """Group the edit script into display hunks with surrounding context.

        An empty text has no lines here, so creations and deletions render as
        pure additions or removals.
        """
        return self._group(
            split_lines(original) if original else [],
            split_lines(modified) if modified else [],
        )

    def _group(self, a: list[str], b: list[str]) -> list[UnifiedHunk]:
        hunks: list[UnifiedHunk] = []
        leading: deque[_Op] = deque(maxlen=self.context_lines or None)
        current: UnifiedHunk | None = None
        trailing = 0

        for op in self._edit_script(a, b):
            tag, oi, mi = op
            if tag == "context":
                if current is None:
                    if self.context_lines:
                        leading.append(op)
                    continue
                if trailing < self.context_lines:
                    self._push(current, op, a, b)
                    trailing += 1
                if trailing >= self.context_lines:
                    hunks.append(self._close(current))
                    current = None
                continue

            if current is None:
                first = leading[0] if leading else op
                current = UnifiedHunk(old_start=first[1] + 1, new_start=first[2] + 1)
                for ctx in leading:
                    self._push(current, ctx, a, b)
                leading.clear()
            self._push(current, op, a, b)
            trailing = 0

        if current is not None and current.has_changes():
            hunks.append(self._close(current))
        return hunks

    def _push(self, hunk: UnifiedHunk, op: _Op, a: list[str], b: list[str]) -> None:
        tag, oi, mi = op
        if tag == "context":
            hunk.lines.append(
                DiffLine(type="context", content=a[oi], old_line_number=oi + 1, new_line_number=mi + 1)
            )
            hunk.old_lines += 1
            hunk.new_lines += 1
        elif tag == "remove":
            hunk.lines.append(DiffLine(type="remove", content=a[oi], old_line_number=oi + 1))
            hunk.old_lines += 1
        else:
            hunk.lines.append(DiffLine(type="add", content=b[mi], new_line_number=mi + 1))
            hunk.new_lines += 1

    def _close(self, hunk: UnifiedHunk) -> UnifiedHunk:
        # Unified diff convention: an empty side points at the line before it
        if hunk.old_lines == 0:
            hunk.old_start -= 1
        if hunk.new_lines == 0:
            hunk.new_start -= 1
        return hunk

    def count_changes(self, hunks: Iterable[UnifiedHunk]) -> tuple[int, int]:
        """Return (additions, deletions) across all hunks"""
        additions = deletions = 0
        for hunk in hunks:
            for line in hunk.lines:
                if line.type == "add":
                    additions += 1
                elif line.type == "remove":
                    deletions += 1
        return additions, deletions

    # ========== Replace-Range Hunks ==========

    def build_edit_hunks(self, original: str, modified: str) -> list[DiffHunk]:
        """Turn display hunks into replace-range hunks that reproduce `modified`"""
        a = split_lines(original)
        spans: list[list] = []  # [lo, hi) over old lines, new lines

        for hunk in self._group(a, split_lines(modified)):
            lo = hunk.old_start if hunk.old_lines == 0 else hunk.old_start - 1
            hi = lo + hunk.old_lines
            new = [line.content for line in hunk.lines if line.type != "remove"]
            if spans and spans[-1][1] == lo and (
                _degenerate(lo, hi, new) or _degenerate(*spans[-1])
            ):
                spans[-1][1] = hi
                spans[-1][2].extend(new)
            else:
                spans.append([lo, hi, new])

        # A range replacement needs at least one old line and one new line
        final: list[list] = []
        for lo, hi, new in spans:
            if _degenerate(lo, hi, new):
                if final and final[-1][1] == lo:
                    final[-1][1] = hi
                    final[-1][2].extend(new)
                    continue
                if lo > 0:
                    lo, new = lo - 1, [a[lo - 1], *new]
                elif hi < len(a):
                    hi, new = hi + 1, [*new, a[hi]]
            final.append([lo, hi, new])

        return [
            DiffHunk(
                start_line=lo + 1,
                end_line=hi,
                original_content="\n".join(a[lo:hi]),
                new_content="\n".join(new),
            )
            for lo, hi, new in final
        ]

    # ========== Rendering ==========

    def format_hunks(self, file_path: str, hunks: Iterable[UnifiedHunk]) -> str:
        """Render one file's hunks as unified diff text"""
        output = [f"--- a/{file_path}\n", f"+++ b/{file_path}\n"]
        for hunk in hunks:
            output.append(
                f"@@ -{hunk.old_start},{hunk.old_lines} +{hunk.new_start},{hunk.new_lines} @@\n"
            )
            for line in hunk.lines:
                prefix = "+" if line.type == "add" else "-" if line.type == "remove" else " "
                output.append(f"{prefix}{line.content}\n")
        return "".join(output)

    def generate_diff(
        self,
        original_content: str,
        new_content: str,
        file_path: str,
    ) -> DiffResult:
        """Generate structured diff from original and new content"""
        display_hunks = self.compute_diff(original_content, new_content)
        additions, deletions = self.count_changes(display_hunks)

        return DiffResult(
            file_path=file_path,
            hunks=self.build_edit_hunks(original_content, new_content),
            unified_diff=self.format_hunks(file_path, display_hunks),
            preview_content=new_content,
            additions=additions,
            deletions=deletions,
        )
