"""Typed records shared by the revision resolver, the catalog and the mapper."""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictInt, model_validator


class HunkKind(str, Enum):
    """Kind of a contiguous run of lines inside one file's patch."""

    CONTEXT = "context"
    ADDITION = "addition"
    DELETION = "deletion"


class MatchPolicy(str, Enum):
    """How an analyzer file path is compared with a diff path."""

    SUBSTRING = "substring"
    SUFFIX = "suffix"


# ---------------------------------------------------------------------------
# Analyzer records
# ---------------------------------------------------------------------------

class FunctionRange(BaseModel):
    """One function/method definition as reported by the external analyzer.

    The wire format uses the analyzer's PascalCase keys; Python code may
    use either the aliases or the field names.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    qualified_name: str | None = Field(default=None, alias="ControllerName")
    name: str = Field(default="", alias="FunctionName")
    file: str = Field(min_length=1, alias="Filename")
    start_line: StrictInt = Field(ge=1, alias="StartLine")
    end_line: StrictInt = Field(ge=1, alias="EndLine")

    @model_validator(mode="after")
    def _check_range(self) -> "FunctionRange":
        if self.start_line > self.end_line:
            raise ValueError(
                f"start_line ({self.start_line}) is after end_line ({self.end_line})"
            )
        return self

    @property
    def label(self) -> str:
        """Name recorded in impact sets: the qualifying name when the analyzer sent one."""
        return self.qualified_name or self.name


# ---------------------------------------------------------------------------
# Diff records
# ---------------------------------------------------------------------------

def split_chunk_lines(content: str) -> list[str]:
    """Split hunk content into physical lines.

    Diff bodies end with a line terminator, so splitting on ``\\n`` leaves a
    trailing empty element that is not a line of the file; it is dropped.
    """
    lines = content.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return lines


class DiffHunk(BaseModel):
    """A run of same-kind lines from one file of a patch."""

    model_config = ConfigDict(frozen=True)

    file_path: str
    kind: HunkKind
    content: str = ""

    @property
    def lines(self) -> list[str]:
        return split_chunk_lines(self.content)

    @property
    def line_count(self) -> int:
        return len(self.lines)


class HunkSpan(BaseModel):
    """A hunk located at an inclusive ``[start, end]`` line span."""

    model_config = ConfigDict(frozen=True)

    hunk: DiffHunk
    start: int
    end: int


class ImpactSets(BaseModel):
    """Function labels touched by additions and by deletions."""

    added: set[str] = Field(default_factory=set)
    removed: set[str] = Field(default_factory=set)

    @property
    def is_empty(self) -> bool:
        return not self.added and not self.removed


# ---------------------------------------------------------------------------
# Revisions
# ---------------------------------------------------------------------------

class RevisionSpec(BaseModel):
    """A raw, user-supplied revision expression and the end of the range it names."""

    ref: str = Field(min_length=1)
    role: Literal["base", "head"]
