"""
Diff Engine - Line and character diffs between two asset bodies
"""

from __future__ import annotations

import re
from difflib import SequenceMatcher, unified_diff

from diff_match_patch import diff_match_patch

from models.diff import DiffKind, DiffMode, DiffOutcome, DiffReport, DiffSpan, DiffStats

_LINE_RE = re.compile(r"[^\n]*\n|[^\n]+")
_TRAILING_WS_RE = re.compile(r"[ \t]+$", re.MULTILINE)

_DMP_KINDS = {
    diff_match_patch.DIFF_EQUAL: DiffKind.EQUAL,
    diff_match_patch.DIFF_INSERT: DiffKind.INSERT,
    diff_match_patch.DIFF_DELETE: DiffKind.DELETE,
}


def split_lines(text: str) -> list[str]:
    """Split on \\n only, keeping line endings; the last line may lack one"""
    return _LINE_RE.findall(text)


def normalize_text(text: str, strip_trailing_whitespace: bool = False) -> str:
    """Convert CRLF and lone CR to LF, optionally dropping trailing blanks per line"""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    if strip_trailing_whitespace:
        text = _TRAILING_WS_RE.sub("", text)
    return text


def count_stats(spans: list[DiffSpan]) -> DiffStats:
    """Count newlines contributed by insert and delete spans.

    A span without a newline contributes nothing, even if it holds text.
    """
    additions = sum(span.text.count("\n") for span in spans if span.kind == DiffKind.INSERT)
    deletions = sum(span.text.count("\n") for span in spans if span.kind == DiffKind.DELETE)
    return DiffStats(additions=additions, deletions=deletions, lines_changed=additions + deletions)


class DiffEngine:
    """Pure diff computation; identical input always yields identical output"""

    def _line_spans(self, source: str, target: str) -> list[DiffSpan]:
        source_lines = split_lines(source)
        target_lines = split_lines(target)
        matcher = SequenceMatcher(None, source_lines, target_lines, autojunk=False)
        spans = []

        for tag, i1, i2, j1, j2 in matcher.get_opcodes():
            if tag == "equal":
                spans.append(DiffSpan(kind=DiffKind.EQUAL, text="".join(source_lines[i1:i2])))
                continue
            # A replace is reported as its removed lines followed by its added lines
            if tag in ("delete", "replace"):
                spans.append(DiffSpan(kind=DiffKind.DELETE, text="".join(source_lines[i1:i2])))
            if tag in ("insert", "replace"):
                spans.append(DiffSpan(kind=DiffKind.INSERT, text="".join(target_lines[j1:j2])))

        return spans

    def _char_spans(self, source: str, target: str) -> list[DiffSpan]:
        dmp = diff_match_patch()
        dmp.Diff_Timeout = 0  # no deadline: output must not depend on machine speed
        diffs = dmp.diff_main(source, target)
        dmp.diff_cleanupSemantic(diffs)
        return [DiffSpan(kind=_DMP_KINDS[op], text=text) for op, text in diffs if text]

    def diff(self, source: str, target: str, mode: DiffMode = DiffMode.LINE) -> DiffOutcome:
        """Compute spans and statistics for source -> target"""
        if mode == DiffMode.CHAR:
            spans = self._char_spans(source, target)
        else:
            spans = self._line_spans(source, target)
        return DiffOutcome(spans=spans, stats=count_stats(spans))

    def build_report(
        self,
        key: str,
        source: str,
        target: str,
        mode: DiffMode = DiffMode.LINE,
        normalize: bool = True,
        strip_trailing_whitespace: bool = False,
    ) -> DiffReport:
        """Diff two bodies and wrap the result as a per-file report.

        The report keeps the bodies as given; normalization only affects
        what is compared.
        """
        compared_source, compared_target = source, target
        if normalize:
            compared_source = normalize_text(source, strip_trailing_whitespace)
            compared_target = normalize_text(target, strip_trailing_whitespace)

        outcome = self.diff(compared_source, compared_target, mode)
        differs = any(span.kind != DiffKind.EQUAL for span in outcome.spans)

        return DiffReport(
            key=key,
            source_body=source,
            target_body=target,
            mode=mode,
            spans=outcome.spans,
            stats=outcome.stats,
            differs=differs,
        )

    def unified_diff(self, source: str, target: str, key: str, context_lines: int = 3) -> str:
        """Standard unified diff text for source -> target"""
        source_lines = split_lines(normalize_text(source))
        target_lines = split_lines(normalize_text(target))

        # unified_diff output is only well formed when every line ends in a newline
        if source_lines and not source_lines[-1].endswith("\n"):
            source_lines[-1] += "\n"
        if target_lines and not target_lines[-1].endswith("\n"):
            target_lines[-1] += "\n"

        return "".join(
            unified_diff(
                source_lines,
                target_lines,
                fromfile=f"a/{key}",
                tofile=f"b/{key}",
                n=context_lines,
            )
        )

    def prefixed_lines(self, spans: list[DiffSpan]) -> list[str]:
        """Render spans as "+ ", "- " or "  " followed by the span text"""
        prefixes = {DiffKind.INSERT: "+ ", DiffKind.DELETE: "- ", DiffKind.EQUAL: "  "}
        return [f"{prefixes[span.kind]}{span.text}" for span in spans]
