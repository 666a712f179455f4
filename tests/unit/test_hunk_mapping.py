"""Unit tests for hunk mapping — unified diff → same-kind runs → line spans → impact sets."""

from __future__ import annotations

import pytest
from unidiff import PatchSet

from pit.errors import PitError
from pit.impact.catalog import FunctionCatalog
from pit.impact.mapper import (
    hunks_from_patched_file,
    impact_from_hunks,
    impact_from_patch,
    iter_hunk_spans,
    patched_file_path,
    unquote_git_path,
)
from pit.impact.models import DiffHunk, FunctionRange, HunkKind, MatchPolicy

# ---------------------------------------------------------------------------
# Fixture diffs
# ---------------------------------------------------------------------------

MODIFY_DIFF = """\
--- a/src/users.controller.ts
+++ b/src/users.controller.ts
@@ -1,5 +1,5 @@
 line1
 line2
-line3
+line3 changed
 line4
 line5
"""

TWO_HUNK_DIFF = """\
--- a/src/svc.ts
+++ b/src/svc.ts
@@ -10,3 +10,4 @@
 ctx10
+new11
 ctx11
 ctx12
@@ -30,2 +31,3 @@
 ctx31
+new32
 ctx33
"""

DELETE_BLOCK_DIFF = """\
--- a/src/svc.ts
+++ b/src/svc.ts
@@ -6,10 +6,5 @@
 l6
 l7
-l8
-l9
-l10
-l11
-l12
 l13
 l14
 l15
"""

ADD_FILE_DIFF = """\
--- /dev/null
+++ b/src/new.service.ts
@@ -0,0 +1,4 @@
+export class NewService {
+  run() {}
+}
+
"""

DELETE_FILE_DIFF = """\
--- a/src/legacy.ts
+++ /dev/null
@@ -1,3 +0,0 @@
-export function legacy() {
-  return 1;
-}
"""

RENAME_DIFF = """\
diff --git a/src/old_name.ts b/src/new_name.ts
similarity index 80%
rename from src/old_name.ts
rename to src/new_name.ts
index 1111111..2222222 100644
--- a/src/old_name.ts
+++ b/src/new_name.ts
@@ -1,3 +1,3 @@
 export function greet() {
-  return "hi";
+  return "hello";
 }
"""

QUOTED_DIFF = r'''--- "a/src/caf\303\251 \"v2\".ts"
+++ "b/src/caf\303\251 \"v2\".ts"
@@ -1,3 +1,3 @@
 export function brew() {
-  return "espresso";
+  return "latte";
 }
'''

BINARY_DIFF = """\
diff --git a/assets/logo.png b/assets/logo.png
index 1111111..2222222 100644
Binary files a/assets/logo.png and b/assets/logo.png differ
"""


def fn(label: str, file: str, start: int, end: int) -> FunctionRange:
    return FunctionRange(qualified_name=label, file=file, start_line=start, end_line=end)


def hunk(kind: HunkKind, lines: int, path: str = "src/a.ts") -> DiffHunk:
    return DiffHunk(file_path=path, kind=kind, content="x\n" * lines)


# ---------------------------------------------------------------------------
# Span walking
# ---------------------------------------------------------------------------

class TestIterHunkSpans:
    def test_context_and_additions_advance(self):
        spans = list(iter_hunk_spans([
            hunk(HunkKind.CONTEXT, 2),
            hunk(HunkKind.ADDITION, 3),
            hunk(HunkKind.CONTEXT, 1),
        ]))
        assert [(s.start, s.end) for s in spans] == [(1, 2), (3, 5), (6, 6)]

    def test_deletion_does_not_advance_cursor(self):
        # a 5-line deletion at [8, 12] followed by context: the context
        # starts at 8 because the deleted lines are gone from the post-image
        spans = list(iter_hunk_spans([
            hunk(HunkKind.CONTEXT, 7),
            hunk(HunkKind.DELETION, 5),
            hunk(HunkKind.CONTEXT, 3),
        ]))
        assert [(s.start, s.end) for s in spans] == [(1, 7), (8, 12), (8, 10)]

    def test_replacement_shares_anchor(self):
        spans = list(iter_hunk_spans([
            hunk(HunkKind.CONTEXT, 2),
            hunk(HunkKind.DELETION, 1),
            hunk(HunkKind.ADDITION, 1),
        ]))
        assert (spans[1].start, spans[1].end) == (3, 3)
        assert (spans[2].start, spans[2].end) == (3, 3)

    def test_empty_input(self):
        assert list(iter_hunk_spans([])) == []


# ---------------------------------------------------------------------------
# unidiff → runs
# ---------------------------------------------------------------------------

class TestHunksFromPatchedFile:
    def test_runs_are_grouped_by_kind(self):
        patched = PatchSet.from_string(MODIFY_DIFF)[0]
        runs = hunks_from_patched_file(patched)
        assert [r.kind for r in runs] == [
            HunkKind.CONTEXT, HunkKind.DELETION, HunkKind.ADDITION, HunkKind.CONTEXT,
        ]
        assert [r.line_count for r in runs] == [2, 1, 1, 2]
        assert runs[2].lines == ["line3 changed"]

    def test_gap_before_hunk_becomes_context(self):
        patched = PatchSet.from_string(TWO_HUNK_DIFF)[0]
        runs = hunks_from_patched_file(patched)
        assert runs[0].kind is HunkKind.CONTEXT
        assert runs[0].line_count == 9

    def test_spans_follow_hunk_headers(self):
        patched = PatchSet.from_string(TWO_HUNK_DIFF)[0]
        additions = [
            (s.start, s.end)
            for s in iter_hunk_spans(hunks_from_patched_file(patched))
            if s.hunk.kind is HunkKind.ADDITION
        ]
        assert additions == [(11, 11), (32, 32)]

    def test_deleted_block_spans(self):
        patched = PatchSet.from_string(DELETE_BLOCK_DIFF)[0]
        spans = list(iter_hunk_spans(hunks_from_patched_file(patched)))
        deletion = next(s for s in spans if s.hunk.kind is HunkKind.DELETION)
        trailing = spans[-1]
        assert (deletion.start, deletion.end) == (8, 12)
        assert (trailing.start, trailing.end) == (8, 10)

    def test_paths(self):
        assert patched_file_path(PatchSet.from_string(MODIFY_DIFF)[0]) == "src/users.controller.ts"
        assert patched_file_path(PatchSet.from_string(ADD_FILE_DIFF)[0]) == "src/new.service.ts"
        assert patched_file_path(PatchSet.from_string(DELETE_FILE_DIFF)[0]) == "src/legacy.ts"
        assert patched_file_path(PatchSet.from_string(RENAME_DIFF)[0]) == "src/new_name.ts"

    def test_quoted_path_is_unquoted(self):
        assert patched_file_path(PatchSet.from_string(QUOTED_DIFF)[0]) == 'src/café "v2".ts'


class TestUnquoteGitPath:
    def test_plain_path_unchanged(self):
        assert unquote_git_path("b/src/a.ts") == "b/src/a.ts"

    def test_octal_utf8_bytes(self):
        assert unquote_git_path(r'"b/src/caf\303\251.ts"') == "b/src/café.ts"

    def test_c_escapes(self):
        assert unquote_git_path(r'"a/x\"y\\z\tw.ts"') == 'a/x"y\\z\tw.ts'

    def test_lone_quote_unchanged(self):
        assert unquote_git_path('"') == '"'


# ---------------------------------------------------------------------------
# Impact
# ---------------------------------------------------------------------------

class TestImpactFromPatch:
    def test_modified_line_hits_enclosing_function(self):
        catalog = FunctionCatalog([
            fn("Ctrl.handler", "/srv/app/src/users.controller.ts", 1, 5),
            fn("Ctrl.other", "/srv/app/src/users.controller.ts", 6, 10),
        ])
        impact = impact_from_patch(MODIFY_DIFF, catalog)
        assert impact.added == {"Ctrl.handler"}
        assert impact.removed == {"Ctrl.handler"}

    def test_functions_outside_changed_lines_are_untouched(self):
        catalog = FunctionCatalog([
            fn("Svc.early", "/r/src/svc.ts", 1, 10),
            fn("Svc.mid", "/r/src/svc.ts", 11, 11),
            fn("Svc.between", "/r/src/svc.ts", 14, 30),
            fn("Svc.late", "/r/src/svc.ts", 32, 40),
        ])
        impact = impact_from_patch(TWO_HUNK_DIFF, catalog)
        assert impact.added == {"Svc.mid", "Svc.late"}
        assert impact.removed == set()

    def test_deletion_lands_in_removed(self):
        catalog = FunctionCatalog([
            fn("Svc.gone", "/r/src/svc.ts", 8, 9),
            fn("Svc.head", "/r/src/svc.ts", 1, 5),
        ])
        impact = impact_from_patch(DELETE_BLOCK_DIFF, catalog)
        assert impact.removed == {"Svc.gone"}
        assert impact.added == set()

    def test_new_file(self):
        catalog = FunctionCatalog([fn("NewService.run", "/r/src/new.service.ts", 2, 2)])
        impact = impact_from_patch(ADD_FILE_DIFF, catalog)
        assert impact.added == {"NewService.run"}

    def test_deleted_file_uses_pre_image_path(self):
        catalog = FunctionCatalog([fn("legacy", "/r/src/legacy.ts", 1, 3)])
        impact = impact_from_patch(DELETE_FILE_DIFF, catalog)
        assert impact.removed == {"legacy"}
        assert impact.added == set()

    def test_rename_matches_new_path_only(self):
        catalog = FunctionCatalog([
            fn("greet@new", "/r/src/new_name.ts", 1, 3),
            fn("greet@old", "/r/src/old_name.ts", 1, 3),
        ])
        impact = impact_from_patch(RENAME_DIFF, catalog)
        assert impact.added == {"greet@new"}
        assert impact.removed == {"greet@new"}

    def test_quoted_path_matches_analyzer_path(self):
        catalog = FunctionCatalog([fn("brew", '/r/src/café "v2".ts', 1, 3)])
        impact = impact_from_patch(QUOTED_DIFF, catalog)
        assert impact.added == impact.removed == {"brew"}

    def test_binary_files_are_skipped(self):
        catalog = FunctionCatalog([fn("logo", "/r/assets/logo.png", 1, 1)])
        assert impact_from_patch(BINARY_DIFF, catalog).is_empty

    def test_empty_diff(self):
        catalog = FunctionCatalog([fn("A.a", "/r/a.ts", 1, 1)])
        assert impact_from_patch("", catalog).is_empty

    def test_empty_catalog(self):
        assert impact_from_patch(MODIFY_DIFF, FunctionCatalog()).is_empty

    def test_parsed_patch_accepted(self):
        catalog = FunctionCatalog([fn("Ctrl.handler", "/r/src/users.controller.ts", 1, 5)])
        impact = impact_from_patch(PatchSet.from_string(MODIFY_DIFF), catalog)
        assert impact.added == {"Ctrl.handler"}

    def test_suffix_policy(self):
        catalog = FunctionCatalog([fn("Ctrl.handler", "/r/src/users.controller.tsx", 1, 5)])
        assert impact_from_patch(MODIFY_DIFF, catalog, MatchPolicy.SUBSTRING).added == {"Ctrl.handler"}
        assert impact_from_patch(MODIFY_DIFF, catalog, MatchPolicy.SUFFIX).is_empty

    def test_truncated_hunk_raises(self):
        broken = MODIFY_DIFF.replace("@@ -1,5 +1,5 @@", "@@ -1,50 +1,50 @@")
        with pytest.raises(PitError):
            impact_from_patch(broken, FunctionCatalog())


class TestImpactFromHunks:
    def test_context_never_queries(self):
        catalog = FunctionCatalog([fn("A.a", "/r/src/a.ts", 1, 100)])
        impact = impact_from_hunks([hunk(HunkKind.CONTEXT, 50)], catalog)
        assert impact.is_empty

    def test_one_function_can_be_in_both_sets(self):
        catalog = FunctionCatalog([fn("A.a", "/r/src/a.ts", 1, 100)])
        impact = impact_from_hunks(
            [hunk(HunkKind.DELETION, 2), hunk(HunkKind.ADDITION, 2)], catalog
        )
        assert impact.added == impact.removed == {"A.a"}
