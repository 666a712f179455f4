"""Revision resolver — human-written git references → commit objects.

Resolution order (first match wins):

    1. ``HEAD``
    2. ``HEAD^``                      first parent of HEAD
    3. hex hash (4–40 chars)          only if it names exactly one commit object
    4. exact reference name           ``refs/heads/main``, ``ORIG_HEAD`` ...
    5. ``refs/heads/<name>``, then ``refs/tags/<name>``
    6. ``<base>^N~M``                 N-th parent of base, then M first-parent steps
                                      (after a caret an empty M counts as 0)
    7. ``git rev-parse``              anything else git understands

A string that is both a valid short hash and a branch name resolves as a hash.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from git import Repo
from git.exc import BadName, BadObject, GitCommandError, InvalidGitRepositoryError, NoSuchPathError
from git.objects import Commit
from git.refs.symbolic import SymbolicReference

from ..errors import NoParentCommit, RefResolutionError, RepositoryOpenError
from .models import RevisionSpec

logger = logging.getLogger(__name__)

_HEX_RE = re.compile(r"^[0-9a-fA-F]{4,40}$")
_COMPOUND_RE = re.compile(
    r"^(?P<base>[^~^]+)(?P<caret>\^(?P<parent>\d*))?(?:~(?P<depth>[^~^]*))?$"
)
_REF_FORBIDDEN = re.compile(r"(\.\.|[\s~^:?*\[\\]|@\{)")

_LOOKUP_ERRORS = (ValueError, TypeError, BadName, BadObject, OSError)


def open_repository(path: str | Path) -> Repo:
    """Open the git repository containing *path* (parent directories are searched).

    Raises
    ------
    RepositoryOpenError
        If *path* does not exist or is not inside a git work tree.
    """
    try:
        return Repo(path, search_parent_directories=True)
    except NoSuchPathError as exc:
        raise RepositoryOpenError(str(path), "path does not exist") from exc
    except InvalidGitRepositoryError as exc:
        raise RepositoryOpenError(str(path)) from exc


def _is_plain_ref_name(name: str) -> bool:
    return bool(name) and not name.startswith(("/", "-")) and not _REF_FORBIDDEN.search(name)


class RevisionResolver:
    """Resolves revision expressions against one repository.

    Resolution is deterministic for a fixed repository state; the resolver
    holds no cache, so it reflects the repository as it is at call time.
    """

    def __init__(self, repo: Repo) -> None:
        self._repo = repo

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve(self, ref: str) -> Commit:
        """Return the commit *ref* names.

        Raises
        ------
        NoParentCommit
            If a parent-relative step asks for a parent that does not exist.
        RefResolutionError
            If no resolution step recognises *ref*.
        """
        steps = (
            ("head", self._resolve_head),
            ("head-parent", self._resolve_head_parent),
            ("hash", self._resolve_hash),
            ("exact-ref", self._resolve_exact_ref),
            ("short-ref", self._resolve_short_ref),
            ("compound", self._resolve_compound),
            ("rev-parse", self._resolve_rev_parse),
        )
        for step_name, step in steps:
            commit = step(ref)
            if commit is not None:
                logger.debug("resolved %r via %s → %s", ref, step_name, commit.hexsha)
                return commit
        raise RefResolutionError(ref)

    def resolve_spec(self, spec: RevisionSpec) -> Commit:
        return self.resolve(spec.ref)

    # ------------------------------------------------------------------
    # Resolution steps; each returns None when it does not apply
    # ------------------------------------------------------------------

    def _resolve_head(self, ref: str) -> Commit | None:
        if ref != "HEAD":
            return None
        try:
            return self._repo.head.commit
        except ValueError as exc:
            raise RefResolutionError(ref, "HEAD does not point at a commit") from exc

    def _resolve_head_parent(self, ref: str) -> Commit | None:
        if ref != "HEAD^":
            return None
        head = self._resolve_head("HEAD")
        return self._parent(head, 1, ref)

    def _resolve_hash(self, ref: str) -> Commit | None:
        if not _HEX_RE.match(ref):
            return None
        try:
            candidates = self._repo.git.rev_parse(f"--disambiguate={ref.lower()}").split()
        except GitCommandError:
            return None

        commits = []
        for sha in candidates:
            try:
                obj = self._repo.rev_parse(sha)
            except _LOOKUP_ERRORS:
                continue
            if isinstance(obj, Commit):
                commits.append(obj)

        if len(commits) == 1:
            return commits[0]
        if len(commits) > 1:
            logger.debug("%r is an ambiguous commit prefix (%d candidates)", ref, len(commits))
        return None

    def _resolve_exact_ref(self, ref: str) -> Commit | None:
        return self._ref_commit(ref)

    def _resolve_short_ref(self, ref: str) -> Commit | None:
        for prefix in ("refs/heads/", "refs/tags/"):
            commit = self._ref_commit(prefix + ref)
            if commit is not None:
                return commit
        return None

    def _resolve_compound(self, ref: str) -> Commit | None:
        match = _COMPOUND_RE.match(ref)
        if match is None:
            return None
        caret, depth_text = match.group("caret"), match.group("depth")
        depth_ok = bool(depth_text) and depth_text.isdecimal()
        # without a caret only "~<digits>" is ours; "HEAD~" and friends go to rev-parse
        if caret is None and not depth_ok:
            return None

        commit = self.resolve(match.group("base"))
        if caret is not None:
            parent = match.group("parent")
            commit = self._parent(commit, int(parent) if parent else 1, ref)

        # an empty or non-numeric depth after a caret counts as 0
        depth = int(depth_text) if depth_ok else 0
        for _ in range(depth):
            commit = self._parent(commit, 1, ref)
        return commit

    def _resolve_rev_parse(self, ref: str) -> Commit | None:
        if ref.startswith("-"):
            return None
        try:
            sha = self._repo.git.rev_parse("--verify", "--quiet", f"{ref}^{{commit}}")
        except GitCommandError:
            return None
        try:
            return self._repo.commit(sha.strip())
        except _LOOKUP_ERRORS:
            return None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _ref_commit(self, name: str) -> Commit | None:
        if not _is_plain_ref_name(name):
            return None
        try:
            return SymbolicReference(self._repo, name).commit
        except _LOOKUP_ERRORS:
            return None

    @staticmethod
    def _parent(commit: Commit, number: int, ref: str) -> Commit:
        """Return the *number*-th parent (1-indexed); ``0`` is the commit itself."""
        if number == 0:
            return commit
        parents = commit.parents
        if number > len(parents):
            raise NoParentCommit(ref, commit.hexsha, number)
        return parents[number - 1]
