"""Decoder for the analyzer's wire format.

The analyzer writes a concatenation of independent JSON arrays (not one
top-level array), e.g.::

    [{"ControllerName": "GET /a", ...}][{"ControllerName": "POST /b", ...}]

Bytes arrive in arbitrary slices, so a value may be split anywhere (inside a
string, inside a multi-byte UTF-8 sequence).  ``JsonArrayStream`` tracks
nesting depth and string state to find each value's end without re-parsing
the prefix on every read.
"""

from __future__ import annotations

import codecs
import json
import re
from collections.abc import Iterable, Iterator
from typing import Any

from pydantic import TypeAdapter, ValidationError

from ..errors import AnalyzerProcessError
from ..impact.models import FunctionRange

_WHITESPACE = re.compile(r"[ \t\r\n]*")
_STRUCTURAL = re.compile(r'["\[\]{}]')
_STRING_SPECIAL = re.compile(r'["\\]')

_BATCH = TypeAdapter(list[FunctionRange])


class JsonArrayStream:
    """Incremental splitter for back-to-back top-level JSON arrays."""

    def __init__(self) -> None:
        self._utf8 = codecs.getincrementaldecoder("utf-8")()
        self._buffer = ""
        self._scan = 0
        self._depth = 0
        self._in_string = False
        self._escaped = False

    def feed(self, data: bytes) -> list[Any]:
        """Add *data* and return every value it completed."""
        try:
            self._buffer += self._utf8.decode(data)
        except UnicodeDecodeError as exc:
            raise AnalyzerProcessError(f"analyzer output is not valid UTF-8: {exc}") from exc
        return self._drain()

    def close(self) -> list[Any]:
        """Signal end-of-stream; fails if a value was left unfinished."""
        values = self.feed(b"")
        try:
            self._utf8.decode(b"", final=True)
        except UnicodeDecodeError as exc:
            raise AnalyzerProcessError(f"analyzer output is not valid UTF-8: {exc}") from exc
        if self._buffer.strip():
            raise AnalyzerProcessError(
                f"analyzer output ended inside a JSON value ({len(self._buffer)} bytes pending)"
            )
        return values

    def _drain(self) -> list[Any]:
        values: list[Any] = []
        buf = self._buffer
        pos = self._scan
        start = 0  # an unfinished value always begins at the head of the buffer

        while pos < len(buf):
            if self._depth == 0:
                pos = _WHITESPACE.match(buf, pos).end()
                start = pos
                if pos == len(buf):
                    break
                if buf[pos] != "[":
                    raise AnalyzerProcessError(
                        f"expected a JSON array from the analyzer, found {buf[pos:pos + 20]!r}"
                    )
                self._depth = 1
                pos += 1
                continue

            if self._in_string:
                if self._escaped:
                    self._escaped = False
                    pos += 1
                    continue
                match = _STRING_SPECIAL.search(buf, pos)
                if match is None:
                    pos = len(buf)
                    break
                pos = match.end()
                if match.group() == "\\":
                    self._escaped = True
                else:
                    self._in_string = False
                continue

            match = _STRUCTURAL.search(buf, pos)
            if match is None:
                pos = len(buf)
                break
            char = match.group()
            pos = match.end()
            if char == '"':
                self._in_string = True
            elif char in "[{":
                self._depth += 1
            else:
                self._depth -= 1
                if self._depth == 0:
                    values.append(self._load(buf[start:pos]))
                    start = pos

        self._buffer = buf[start:]
        self._scan = max(pos - start, 0)
        return values

    @staticmethod
    def _load(text: str) -> Any:
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise AnalyzerProcessError(f"error decoding analyzer output: {exc}") from exc


def parse_batch(value: Any) -> list[FunctionRange]:
    """Validate one decoded JSON array into ``FunctionRange`` records."""
    try:
        return _BATCH.validate_python(value)
    except ValidationError as exc:
        raise AnalyzerProcessError(
            f"analyzer sent an invalid function record: {exc.errors()[0]['msg']}"
        ) from exc


def iter_function_batches(chunks: Iterable[bytes]) -> Iterator[list[FunctionRange]]:
    """Yield one validated batch per JSON array found in the byte *chunks*."""
    stream = JsonArrayStream()
    for chunk in chunks:
        for value in stream.feed(chunk):
            yield parse_batch(value)
    for value in stream.close():
        yield parse_batch(value)
