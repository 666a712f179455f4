"""Diff-impact engine: revision resolution, function catalog, hunk mapping, reporting."""

from .catalog import FunctionCatalog, overlaps, path_matches
from .mapper import DiffImpactMapper, impact_from_hunks, impact_from_patch, iter_hunk_spans
from .models import DiffHunk, FunctionRange, HunkKind, HunkSpan, ImpactSets, MatchPolicy, RevisionSpec
from .report import print_report, render_report, split_kind
from .revisions import RevisionResolver, open_repository

__all__ = [
    "DiffHunk",
    "DiffImpactMapper",
    "FunctionCatalog",
    "FunctionRange",
    "HunkKind",
    "HunkSpan",
    "ImpactSets",
    "MatchPolicy",
    "RevisionResolver",
    "RevisionSpec",
    "impact_from_hunks",
    "impact_from_patch",
    "iter_hunk_spans",
    "open_repository",
    "overlaps",
    "path_matches",
    "print_report",
    "render_report",
    "split_kind",
]
