"""Framework detector — ``package.json`` heuristics that locate the analysis entry file."""

from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path

from ..errors import FrameworkNotFoundError

logger = logging.getLogger(__name__)


class Framework(str, Enum):
    """Node.js server frameworks the analyzer knows how to start from."""

    EXPRESS = "Express"
    NESTJS = "NestJS"
    FASTIFY = "Fastify"
    KOA = "Koa"
    HAPI = "Hapi"
    SAILS = "Sails"
    METEOR = "Meteor"
    LOOPBACK = "Loopback"
    ADONIS = "Adonis"
    FEATHERS = "Feathers"

    def __str__(self) -> str:
        return self.value


_SERVER_CANDIDATES = ("app.js", "server.js", "index.js")

# (dependency, framework, candidate entry files), most specific first.
_DEPENDENCY_RULES: list[tuple[str, Framework, tuple[str, ...]]] = [
    ("@nestjs/core", Framework.NESTJS, ("src/main.ts",)),
    ("@adonisjs/core", Framework.ADONIS, ("start/app.ts",)),
    ("@loopback/core", Framework.LOOPBACK, ("src/index.ts",)),
]
_LATE_DEPENDENCY_RULES: list[tuple[str, Framework, tuple[str, ...]]] = [
    ("sails", Framework.SAILS, ("app.js",)),
    ("@feathersjs/feathers", Framework.FEATHERS, ("src/app.js",)),
    ("@hapi/hapi", Framework.HAPI, ("server.js",)),
    ("koa", Framework.KOA, ("app.js",)),
    ("fastify", Framework.FASTIFY, _SERVER_CANDIDATES),
    ("express", Framework.EXPRESS, _SERVER_CANDIDATES),
]


def _load_dependencies(root: Path) -> set[str]:
    manifest = root / "package.json"
    try:
        data = json.loads(manifest.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise FrameworkNotFoundError(str(root), "package.json not found") from exc
    except (OSError, ValueError) as exc:
        logger.warning("could not read %s: %s", manifest, exc)
        raise FrameworkNotFoundError(str(root), f"unreadable package.json: {exc}") from exc

    if not isinstance(data, dict):
        raise FrameworkNotFoundError(str(root), "package.json is not a JSON object")

    names: set[str] = set()
    for section in ("dependencies", "devDependencies"):
        deps = data.get(section) or {}
        if isinstance(deps, dict):
            names.update(deps)
    return names


def _first_existing(root: Path, candidates: tuple[str, ...]) -> Path | None:
    for candidate in candidates:
        path = root / candidate
        if path.exists():
            return path
    return None


def _match(root: Path, deps: set[str], rules) -> tuple[Path, Framework] | None:
    for dependency, framework, candidates in rules:
        if dependency not in deps:
            continue
        entry = _first_existing(root, candidates)
        if entry is not None:
            return entry, framework
    return None


def detect_framework(root: str | Path) -> tuple[Path, Framework]:
    """Return ``(entry_file, framework)`` for the project at *root*.

    A dependency whose entry file is missing does not match; detection moves
    on to the next rule.  Meteor is recognised by its ``.meteor`` directory
    and its entry file is not checked.

    Raises
    ------
    FrameworkNotFoundError
        If the manifest is missing/unreadable or no rule matches.
    """
    root = Path(root).resolve()
    deps = _load_dependencies(root)

    found = _match(root, deps, _DEPENDENCY_RULES)
    if found is None and (root / ".meteor").exists():
        found = root / "client" / "main.js", Framework.METEOR
    if found is None:
        found = _match(root, deps, _LATE_DEPENDENCY_RULES)
    if found is None:
        raise FrameworkNotFoundError(str(root))

    logger.debug("detected %s with entry file %s", found[1], found[0])
    return found
