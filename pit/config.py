"""Runtime configuration — environment variables (``.env`` supported via python-dotenv)."""

from __future__ import annotations

import os
import shlex

from pydantic import BaseModel, Field

from .impact.models import MatchPolicy

DEFAULT_ANALYZER_CMD = "npx ts-node ts_src/ffi/called.ts"
DEFAULT_PIPE_PATH = "/tmp/pip_pipe"


class PitConfig(BaseModel):
    analyzer_command: list[str] = Field(
        default_factory=lambda: shlex.split(DEFAULT_ANALYZER_CMD), min_length=1
    )
    pipe_path: str = Field(default=DEFAULT_PIPE_PATH, min_length=1)
    match_policy: MatchPolicy = MatchPolicy.SUBSTRING
    poll_interval: float = Field(default=0.05, gt=0.0)
    context_lines: int = Field(default=3, ge=0)

    @classmethod
    def from_env(cls) -> "PitConfig":
        """Build a config from ``PIT_*`` variables; unset ones keep their defaults.

        Call ``dotenv.load_dotenv()`` first to pick up a ``.env`` file.
        """
        return cls(
            analyzer_command=shlex.split(os.environ.get("PIT_ANALYZER_CMD", DEFAULT_ANALYZER_CMD)),
            pipe_path=os.environ.get("PIT_PIPE_PATH", DEFAULT_PIPE_PATH),
            match_policy=os.environ.get("PIT_MATCH_POLICY", MatchPolicy.SUBSTRING.value).lower(),
            poll_interval=float(os.environ.get("PIT_POLL_INTERVAL", "0.05")),
            context_lines=int(os.environ.get("PIT_CONTEXT_LINES", "3")),
        )
