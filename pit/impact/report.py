"""Result rendering — additions section, deletions section, or a no-changes line."""

from __future__ import annotations

from rich.console import Console
from rich.text import Text

from .models import ImpactSets

ADDED_STYLE = "green"
REMOVED_STYLE = "red"
NAME_STYLE = "blue"


def split_kind(label: str) -> tuple[str, str | None]:
    """Split ``"GET /users/:id"`` into its kind token and the rest.

    Labels without a space have no separate kind.
    """
    parts = label.split(" ", 1)
    if len(parts) == 1:
        return parts[0], None
    return parts[0], parts[1]


def _section_title(verb: str, range_label: str) -> str:
    return f"Functions with {verb} in {range_label}:"


def render_report(impact: ImpactSets, range_label: str) -> str:
    """Return the plain-text report for *impact*.

    Entries are sorted so the output is deterministic.
    """
    lines: list[str] = []
    if impact.added:
        lines.append(_section_title("additions", range_label))
        lines.extend(f"\t{name}" for name in sorted(impact.added))
    if impact.added and impact.removed:
        lines.append("")
    if impact.removed:
        lines.append(_section_title("deletions", range_label))
        lines.extend(f"\t{name}" for name in sorted(impact.removed))
    if impact.is_empty:
        lines.append(f"No functions changed in {range_label}")
    return "\n".join(lines) + "\n"


def _entry(label: str, style: str) -> Text:
    kind, rest = split_kind(label)
    text = Text("\t")
    text.append(kind, style=style)
    if rest is not None:
        text.append(" " + rest, style=NAME_STYLE)
    return text


def print_report(impact: ImpactSets, range_label: str, console: Console | None = None) -> None:
    """Print the report with the kind token and the remaining name in two colors."""
    console = console or Console()
    if impact.added:
        console.print(_section_title("additions", range_label), highlight=False)
        for name in sorted(impact.added):
            console.print(_entry(name, ADDED_STYLE))
    if impact.added and impact.removed:
        console.print()
    if impact.removed:
        console.print(_section_title("deletions", range_label), highlight=False)
        for name in sorted(impact.removed):
            console.print(_entry(name, REMOVED_STYLE))
    if impact.is_empty:
        console.print(f"No functions changed in {range_label}", highlight=False)
