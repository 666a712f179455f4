"""In-memory catalog of function ranges and the overlap query over it."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from .models import FunctionRange, MatchPolicy

logger = logging.getLogger(__name__)


def overlaps(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Return True if two inclusive line intervals share at least one line.

    Covers every boundary-inside and containment case: ``[10, 20]`` overlaps
    ``[5, 10]``, ``[15, 16]``, ``[20, 25]`` and ``[1, 30]``.
    """
    return start_a <= end_b and start_b <= end_a


def path_matches(function_file: str, diff_path: str, policy: MatchPolicy = MatchPolicy.SUBSTRING) -> bool:
    """Decide whether an analyzer path and a diff path name the same file.

    The analyzer reports native (usually absolute) paths while git reports
    repo-relative ones, so exact equality never holds.

    ``SUBSTRING``
        the diff path occurs anywhere in the analyzer path.
    ``SUFFIX``
        the diff path's components equal the trailing components of the
        analyzer path (``src/a.ts`` matches ``/repo/src/a.ts`` but not
        ``/repo/lib/src/a.tsx`` or ``/repo/xsrc/a.ts``).
    """
    if not diff_path:
        return False
    if policy is MatchPolicy.SUBSTRING:
        return diff_path in function_file

    wanted = [part for part in diff_path.replace("\\", "/").split("/") if part]
    have = [part for part in function_file.replace("\\", "/").split("/") if part]
    if not wanted or len(wanted) > len(have):
        return False
    return have[-len(wanted):] == wanted


class FunctionCatalog:
    """Append-only collection of ``FunctionRange`` records.

    Batches arrive from the analyzer channel and are appended whole, so a
    reader never observes half of a batch.
    """

    def __init__(self, functions: Iterable[FunctionRange] | None = None) -> None:
        self._functions: list[FunctionRange] = list(functions or [])
        self._batches = 1 if self._functions else 0

    def extend(self, batch: Iterable[FunctionRange]) -> None:
        records = list(batch)
        self._functions.extend(records)
        self._batches += 1
        logger.debug("catalog batch %d: %d records (%d total)", self._batches, len(records), len(self._functions))

    @property
    def batch_count(self) -> int:
        return self._batches

    def __len__(self) -> int:
        return len(self._functions)

    def __iter__(self) -> Iterator[FunctionRange]:
        return iter(self._functions)

    def overlapping(
        self,
        diff_path: str,
        start: int,
        end: int,
        policy: MatchPolicy = MatchPolicy.SUBSTRING,
    ) -> list[FunctionRange]:
        """Return every function in *diff_path* whose range overlaps ``[start, end]``."""
        return [
            fn for fn in self._functions
            if path_matches(fn.file, diff_path, policy)
            and overlaps(start, end, fn.start_line, fn.end_line)
        ]
