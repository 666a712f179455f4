"""Command-line surface: ``pit [path] [base-ref] [head-ref]``.

The number of positional arguments selects the mode:

    (none)                 current directory, HEAD^..HEAD
    path                   given repository, HEAD^..HEAD
    path base              base..HEAD
    path base head         base..head

Every fatal error prints one line and exits 1.  An interrupt exits 0 silently
after the named pipe has been removed.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Sequence

from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError
from rich.console import Console

from .analyzer import AnalyzerChannel, detect_framework
from .config import PitConfig
from .errors import ChannelInterrupted, PitError, RepositoryOpenError
from .impact import DiffImpactMapper, RevisionResolver, RevisionSpec, open_repository, print_report

logger = logging.getLogger(__name__)

USAGE = """\
Usage: pit [path] [base-ref] [head-ref]
Examples:
  pit                          # Compare HEAD^ and HEAD in current directory
  pit /path/to/repo            # Compare HEAD^ and HEAD in specified directory
  pit /path/to/repo main       # Compare main and HEAD
  pit /path/to/repo v1.0 v2.0  # Compare tag v1.0 with tag v2.0"""


class RunTarget(BaseModel):
    """Repository path plus the two ends of the compared range."""

    path: str
    base: RevisionSpec
    head: RevisionSpec

    @property
    def range_label(self) -> str:
        return f"{self.base.ref}..{self.head.ref}"


def target_from_positionals(positionals: Sequence[str], cwd: str | None = None) -> RunTarget | None:
    """Map 0–3 positional arguments to a ``RunTarget``; any other count gives ``None``."""
    if len(positionals) > 3:
        return None
    path = positionals[0] if positionals else (cwd or os.getcwd())
    base = positionals[1] if len(positionals) > 1 else "HEAD^"
    head = positionals[2] if len(positionals) > 2 else "HEAD"
    return RunTarget(
        path=path,
        base=RevisionSpec(ref=base, role="base"),
        head=RevisionSpec(ref=head, role="head"),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pit",
        usage=USAGE.splitlines()[0].removeprefix("Usage: "),
        description="List the functions touched between two git revisions.",
    )
    parser.add_argument("positionals", nargs="*", metavar="ARG", help="[path] [base-ref] [head-ref]")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging on stderr")
    return parser


def _print_header(console: Console, root: str, framework: str, entry: str, target: RunTarget) -> None:
    rows = (
        ("Git root: ", root, "cyan"),
        ("Framework: ", framework, "blue"),
        ("TypeScript entrypoint: ", entry, "cyan"),
        ("Comparing Git refs: ", target.range_label, "cyan"),
    )
    for label, value, style in rows:
        console.print(f"[bold white]{label}[/][{style}]{value}[/]", highlight=False)


def run(target: RunTarget, config: PitConfig, console: Console | None = None) -> int:
    """Resolve the range, drain the analyzer, map the diff and print the report."""
    console = console or Console()

    repo = open_repository(target.path)
    root = repo.working_tree_dir
    if root is None:
        raise RepositoryOpenError(target.path, "bare repository has no work tree")

    entry, framework = detect_framework(root)
    _print_header(console, str(root), str(framework), str(entry), target)

    resolver = RevisionResolver(repo)
    head = resolver.resolve_spec(target.head)
    base = resolver.resolve_spec(target.base)

    with console.status("[yellow]Waiting for TypeScript parser[/]"):
        with AnalyzerChannel(config.analyzer_command, config.pipe_path, config.poll_interval) as channel:
            catalog = channel.collect(entry)

    mapper = DiffImpactMapper(repo, policy=config.match_policy, context_lines=config.context_lines)
    impact = mapper.compute_impact(head, base, catalog)
    print_report(impact, target.range_label, console)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        target = target_from_positionals(args.positionals)
    except ValidationError as exc:
        error = exc.errors()[0]
        field = ".".join(str(part) for part in error["loc"]) or "argument"
        print(f"Error: invalid {field}: {error['msg']}")
        return 1
    if target is None:
        print(USAGE)
        return 1

    try:
        config = PitConfig.from_env()
    except ValueError as exc:
        print(f"Invalid configuration: {exc}".splitlines()[0])
        return 1

    try:
        return run(target, config)
    except (ChannelInterrupted, KeyboardInterrupt):
        return 0
    except PitError as exc:
        print(f"Error: {exc}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
