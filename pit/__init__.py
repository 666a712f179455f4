"""pit — which functions did a range of commits touch?"""

from .config import PitConfig
from .errors import (
    AnalyzerProcessError,
    ChannelInterrupted,
    ChannelSetupError,
    FrameworkNotFoundError,
    NoParentCommit,
    PitError,
    RefResolutionError,
    RepositoryOpenError,
)

__all__ = [
    "AnalyzerProcessError",
    "ChannelInterrupted",
    "ChannelSetupError",
    "FrameworkNotFoundError",
    "NoParentCommit",
    "PitConfig",
    "PitError",
    "RefResolutionError",
    "RepositoryOpenError",
]
