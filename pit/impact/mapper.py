"""Diff-impact mapper — project a commit range's patch onto function ranges.

For every file of the patch a post-image line cursor starts at 1 and is
walked through the file's hunks:

    context   → cursor advances, no query
    addition  → query ``[cursor, cursor + n - 1]`` into *added*, cursor advances
    deletion  → query ``[cursor, cursor + n - 1]`` into *removed*, cursor stays

Deleted lines do not exist in the post-image, so they must contribute zero
lines to post-image addressing of everything after them.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator
from itertools import groupby

from git import Repo
from git.exc import GitCommandError
from git.objects import Commit
from unidiff import PatchSet
from unidiff.errors import UnidiffParseError

from ..errors import PitError
from .catalog import FunctionCatalog
from .models import DiffHunk, HunkKind, HunkSpan, ImpactSets, MatchPolicy

logger = logging.getLogger(__name__)

_DEV_NULL = "/dev/null"


_QUOTED_ESCAPE = re.compile(rb'\\([0-7]{3}|[abtnvfr"\\])')
_C_ESCAPES = {
    b"a": b"\a", b"b": b"\b", b"t": b"\t", b"n": b"\n", b"v": b"\v",
    b"f": b"\f", b"r": b"\r", b'"': b'"', b"\\": b"\\",
}


def _unescape(match: re.Match) -> bytes:
    token = match.group(1)
    if len(token) == 3:
        return bytes([int(token, 8)])
    return _C_ESCAPES[token]


def unquote_git_path(path: str) -> str:
    """Undo git's C-style quoting, e.g. ``"b/caf\\303\\251.ts"`` → ``b/café.ts``.

    Unquoted paths are returned unchanged.
    """
    if len(path) < 2 or not (path.startswith('"') and path.endswith('"')):
        return path
    raw = _QUOTED_ESCAPE.sub(_unescape, path[1:-1].encode("utf-8"))
    return raw.decode("utf-8", errors="replace")


def _strip_prefix(path: str, prefix: str) -> str:
    return path[len(prefix):] if path.startswith(prefix) else path


def patched_file_path(patched_file) -> str:
    """Post-image path of *patched_file*, or the pre-image path if the file was deleted."""
    target = unquote_git_path(patched_file.target_file or _DEV_NULL)
    if target != _DEV_NULL:
        return _strip_prefix(target, "b/")
    return _strip_prefix(unquote_git_path(patched_file.source_file or ""), "a/")


def _line_kind(line) -> HunkKind | None:
    if line.is_added:
        return HunkKind.ADDITION
    if line.is_removed:
        return HunkKind.DELETION
    if line.is_context:
        return HunkKind.CONTEXT
    return None  # "\ No newline at end of file" markers


def _line_text(line) -> str:
    value = line.value
    return value if value.endswith("\n") else value + "\n"


def hunks_from_patched_file(patched_file) -> list[DiffHunk]:
    """Split one file of a ``unidiff`` patch into runs of same-kind lines.

    Unchanged lines that fall outside the diff's context window (before the
    first hunk and between hunks) are emitted as context runs of blank lines
    so the post-image cursor stays aligned with the hunk headers.
    """
    path = patched_file_path(patched_file)
    runs: list[DiffHunk] = []
    cursor = 1

    for hunk in patched_file:
        # Zero-length post-image hunks point at the line *before* the change.
        hunk_start = hunk.target_start if hunk.target_length else hunk.target_start + 1
        gap = hunk_start - cursor
        if gap > 0:
            runs.append(DiffHunk(file_path=path, kind=HunkKind.CONTEXT, content="\n" * gap))
            cursor += gap

        typed = [(_line_kind(line), line) for line in hunk]
        typed = [(kind, line) for kind, line in typed if kind is not None]
        for kind, group in groupby(typed, key=lambda pair: pair[0]):
            content = "".join(_line_text(line) for _, line in group)
            run = DiffHunk(file_path=path, kind=kind, content=content)
            runs.append(run)
            if kind is not HunkKind.DELETION:
                cursor += run.line_count

    return runs


def iter_hunk_spans(hunks: Iterable[DiffHunk]) -> Iterator[HunkSpan]:
    """Locate each hunk of ONE file at its ``[start, end]`` span.

    Spans use post-image numbering; a deletion is anchored at the current
    post-image cursor and does not move it.
    """
    cursor = 1
    for hunk in hunks:
        count = hunk.line_count
        yield HunkSpan(hunk=hunk, start=cursor, end=cursor + count - 1)
        if hunk.kind is HunkKind.ADDITION:
            cursor += count
        elif hunk.kind is HunkKind.DELETION:
            pass
        elif hunk.kind is HunkKind.CONTEXT:
            cursor += count
        else:  # pragma: no cover
            raise ValueError(f"unknown hunk kind: {hunk.kind!r}")


def impact_from_hunks(
    hunks: Iterable[DiffHunk],
    catalog: FunctionCatalog,
    policy: MatchPolicy = MatchPolicy.SUBSTRING,
) -> ImpactSets:
    """Collect impacted function labels for the hunks of a single file."""
    impact = ImpactSets()
    for span in iter_hunk_spans(hunks):
        kind = span.hunk.kind
        if kind is HunkKind.CONTEXT:
            continue
        matches = catalog.overlapping(span.hunk.file_path, span.start, span.end, policy)
        logger.debug(
            "%s %s lines %d-%d → %d function(s)",
            kind.value, span.hunk.file_path, span.start, span.end, len(matches),
        )
        target = impact.added if kind is HunkKind.ADDITION else impact.removed
        target.update(fn.label for fn in matches)
    return impact


def impact_from_patch(
    patch: PatchSet | str,
    catalog: FunctionCatalog,
    policy: MatchPolicy = MatchPolicy.SUBSTRING,
) -> ImpactSets:
    """Compute impact sets for a whole unified diff (text or parsed)."""
    if isinstance(patch, str):
        try:
            patch = PatchSet.from_string(patch)
        except UnidiffParseError as exc:
            raise PitError(f"could not parse diff: {exc}") from exc

    impact = ImpactSets()
    for patched_file in patch:
        if patched_file.is_binary_file:
            continue
        file_impact = impact_from_hunks(hunks_from_patched_file(patched_file), catalog, policy)
        impact.added |= file_impact.added
        impact.removed |= file_impact.removed
    return impact


class DiffImpactMapper:
    """Computes which cataloged functions a commit range touches.

    Parameters
    ----------
    repo:
        GitPython ``Repo`` both commits belong to.
    policy:
        Path matching policy between analyzer paths and diff paths.
    context_lines:
        Context width requested from ``git diff``.  Any width gives the
        same result; a small one keeps the patch small.
    """

    def __init__(
        self,
        repo: Repo,
        policy: MatchPolicy = MatchPolicy.SUBSTRING,
        context_lines: int = 3,
    ) -> None:
        self._repo = repo
        self._policy = policy
        self._context_lines = context_lines

    def diff_text(self, head: Commit, base: Commit) -> str:
        """Return the unified diff from *base* to *head*.

        Paths are emitted raw (``core.quotepath=false``) so non-ASCII file
        names match the analyzer's paths; names git still quotes are
        unquoted by ``patched_file_path``.
        """
        try:
            raw = self._repo.git(c="core.quotepath=false").diff(
                base.hexsha,
                head.hexsha,
                f"--unified={self._context_lines}",
                no_color=True,
                no_ext_diff=True,
                find_renames=True,
                stdout_as_string=False,
            )
        except GitCommandError as exc:
            raise PitError(f"error getting patch {base.hexsha[:12]}..{head.hexsha[:12]}: {exc}") from exc
        text = raw.decode("utf-8", errors="replace")
        return text if not text or text.endswith("\n") else text + "\n"

    def compute_impact(self, head: Commit, base: Commit, catalog: FunctionCatalog) -> ImpactSets:
        """Return the functions overlapped by additions and deletions between *base* and *head*."""
        impact = impact_from_patch(self.diff_text(head, base), catalog, self._policy)
        logger.info(
            "%s..%s: %d function(s) with additions, %d with deletions",
            base.hexsha[:12], head.hexsha[:12], len(impact.added), len(impact.removed),
        )
        return impact
