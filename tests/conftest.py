"""Shared fixtures — throw-away git repositories built with GitPython."""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest
from git import Actor, Repo

ACTOR = Actor("Pit Tests", "pit-tests@example.com")


def init_repo(path: Path) -> Repo:
    repo = Repo.init(path)
    repo.git.symbolic_ref("HEAD", "refs/heads/main")
    with repo.config_writer() as cfg:
        cfg.set_value("user", "name", ACTOR.name)
        cfg.set_value("user", "email", ACTOR.email)
    return repo


def commit_files(repo: Repo, files: dict[str, str], message: str, parents=None, head: bool = True):
    """Write *files* into the work tree, stage them and commit."""
    root = Path(repo.working_tree_dir)
    for rel_path, content in files.items():
        target = root / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    repo.index.add(list(files))
    return repo.index.commit(
        message,
        parent_commits=parents,
        head=head,
        author=ACTOR,
        committer=ACTOR,
    )


@pytest.fixture
def history_repo(tmp_path: Path) -> SimpleNamespace:
    """Repository with linear history, a side branch, tags and a merge commit.

        c1 ── c2 ── c3 ── merge   (main, HEAD)
               │          /
               └── c4 ───┘        (feature)

        v1.0 → c2 (lightweight)    v2.0 → c3 (annotated)
    """
    repo = init_repo(tmp_path / "history")
    c1 = commit_files(repo, {"a.txt": "one\n"}, "c1")
    c2 = commit_files(repo, {"a.txt": "two\n"}, "c2")
    c3 = commit_files(repo, {"a.txt": "three\n"}, "c3")

    c4 = commit_files(repo, {"b.txt": "side\n"}, "c4", parents=[c2], head=False)
    feature = repo.create_head("feature", c4)

    merge = commit_files(repo, {"b.txt": "side\n"}, "merge feature", parents=[c3, c4])

    repo.create_tag("v1.0", ref=c2)
    repo.create_tag("v2.0", ref=c3, message="release 2.0")

    return SimpleNamespace(repo=repo, c1=c1, c2=c2, c3=c3, c4=c4, merge=merge, feature=feature)


@pytest.fixture
def single_commit_repo(tmp_path: Path) -> Repo:
    repo = init_repo(tmp_path / "single")
    commit_files(repo, {"only.txt": "root\n"}, "root")
    return repo


CONTROLLER_V1 = "".join(f"line {n}\n" for n in range(1, 20))
CONTROLLER_V2 = (
    CONTROLLER_V1.replace("line 3\n", "line 3 edited\n")
    + "".join(f"block {n}\n" for n in range(20, 26))
)


@pytest.fixture
def express_repo(tmp_path: Path) -> SimpleNamespace:
    """Express project where commit *b* edits line 3 of src/ctrl.ts and appends lines 20-25."""
    repo = init_repo(tmp_path / "express-app")
    a = commit_files(
        repo,
        {
            "package.json": '{"name": "demo", "dependencies": {"express": "^4.18.2"}}\n',
            "app.js": "const express = require('express');\n",
            "src/ctrl.ts": CONTROLLER_V1,
        },
        "A",
    )
    b = commit_files(repo, {"src/ctrl.ts": CONTROLLER_V2}, "B")
    return SimpleNamespace(repo=repo, root=Path(repo.working_tree_dir), a=a, b=b)
