"""Error taxonomy for the diff-impact tool.

Every error is terminal for an invocation.  ``pit.cli`` turns any
``PitError`` into a single human-readable line and a non-zero exit status.
"""

from __future__ import annotations


class PitError(Exception):
    """Base class for every fatal condition raised by ``pit``."""


class RefResolutionError(PitError):
    """A revision expression could not be mapped to a commit."""

    def __init__(self, ref: str, reason: str | None = None) -> None:
        self.ref = ref
        self.reason = reason
        message = f"could not resolve git reference: {ref}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class NoParentCommit(PitError):
    """A parent-relative ref asked for a parent the commit does not have."""

    def __init__(self, ref: str, commit_sha: str, parent_number: int = 1) -> None:
        self.ref = ref
        self.commit_sha = commit_sha
        self.parent_number = parent_number
        super().__init__(
            f"commit {commit_sha[:12]} has no parent #{parent_number} (while resolving '{ref}')"
        )


class RepositoryOpenError(PitError):
    """The target path is not inside a usable git work tree."""

    def __init__(self, path: str, reason: str = "not a git repository (or any parent up to root)") -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"cannot open repository at {path}: {reason}")


class ChannelSetupError(PitError):
    """The named pipe used to talk to the analyzer could not be created or opened."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"named pipe {path}: {reason}")


class AnalyzerProcessError(PitError):
    """The analyzer failed to run, exited non-zero, or sent undecodable data."""

    def __init__(self, message: str, returncode: int | None = None, stderr_tail: str = "") -> None:
        self.returncode = returncode
        self.stderr_tail = stderr_tail
        super().__init__(message)


class FrameworkNotFoundError(PitError):
    """No supported framework could be detected under the project root."""

    def __init__(self, root: str, reason: str = "unable to determine framework type") -> None:
        self.root = root
        self.reason = reason
        super().__init__(f"no supported framework found in {root}: {reason}")


class ChannelInterrupted(Exception):
    """Raised inside an ``AnalyzerChannel`` scope when SIGINT/SIGTERM arrives.

    Not a ``PitError``: an interrupted run is silent and exits 0.
    """

    def __init__(self, signum: int) -> None:
        self.signum = signum
        super().__init__(f"interrupted by signal {signum}")
