"""External analyzer boundary: named-pipe channel, wire decoding, framework detection."""

from .channel import AnalyzerChannel
from .framework_detector import Framework, detect_framework
from .stream import JsonArrayStream, iter_function_batches, parse_batch

__all__ = [
    "AnalyzerChannel",
    "Framework",
    "JsonArrayStream",
    "detect_framework",
    "iter_function_batches",
    "parse_batch",
]
