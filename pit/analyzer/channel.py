"""Analyzer channel — named pipe + analyzer subprocess, scoped by ``with``.

Lifecycle::

    with AnalyzerChannel(command, "/tmp/pip_pipe") as channel:   # pipe created, signals trapped
        catalog = channel.collect(entry_file)                     # spawn → drain → wait
    # pipe removed, analyzer stopped, signal handlers restored

Cleanup runs on exactly one path (``__exit__``) for normal completion,
analyzer failure and SIGINT/SIGTERM.  The signal handler only raises
``ChannelInterrupted``; it never touches the pipe itself.

Only one invocation can use a given pipe path at a time: a stale pipe is
removed before creation, and a concurrent run would lose its pipe.
"""

from __future__ import annotations

import logging
import os
import selectors
import signal
import subprocess
import tempfile
import threading
import time
from collections.abc import Iterator, Sequence
from pathlib import Path

from ..errors import AnalyzerProcessError, ChannelInterrupted, ChannelSetupError
from ..impact.catalog import FunctionCatalog
from .stream import iter_function_batches

logger = logging.getLogger(__name__)

READ_SIZE = 64 * 1024
STDERR_TAIL_LINES = 5
_TRAPPED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class AnalyzerChannel:
    """Runs the external analyzer and receives its function ranges over a named pipe.

    Parameters
    ----------
    command:
        Analyzer launcher, e.g. ``["npx", "ts-node", "ts_src/ffi/called.ts"]``.
        The entry file and the pipe path are appended as two positional
        arguments.
    pipe_path:
        Filesystem path of the named pipe.
    poll_interval:
        Seconds to wait between checks while the analyzer is alive but has
        no writer attached to the pipe.
    """

    def __init__(
        self,
        command: Sequence[str],
        pipe_path: str | Path,
        poll_interval: float = 0.05,
    ) -> None:
        if not command:
            raise ValueError("analyzer command must not be empty")
        self.command = list(command)
        self.pipe_path = Path(pipe_path)
        self.poll_interval = poll_interval
        self._process: subprocess.Popen | None = None
        self._stderr = None
        self._previous_handlers: dict[int, object] = {}
        self._interrupted = False

    # ------------------------------------------------------------------
    # Scope
    # ------------------------------------------------------------------

    def __enter__(self) -> "AnalyzerChannel":
        self._create_pipe()
        try:
            self._trap_signals()
        except BaseException:
            self._remove_pipe()
            raise
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            self._stop_process()
        finally:
            self._remove_pipe()
            self._restore_signals()
        return False

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def collect(self, entry_file: str | Path) -> FunctionCatalog:
        """Run the analyzer on *entry_file* and return the fully drained catalog.

        Raises
        ------
        ChannelSetupError
            If the pipe cannot be opened for reading.
        AnalyzerProcessError
            If the analyzer cannot start, exits non-zero, or sends data
            that does not decode into function ranges.
        """
        catalog = FunctionCatalog()
        process = self._spawn(entry_file)

        chunks = self._read_chunks(process)
        try:
            for batch in iter_function_batches(chunks):
                catalog.extend(batch)
        finally:
            chunks.close()

        returncode = process.wait()
        if returncode != 0:
            tail = self._stderr_tail()
            if tail:
                logger.warning("analyzer stderr:\n%s", tail)
            raise AnalyzerProcessError(
                f"analyzer process failed: exit status {returncode}",
                returncode=returncode,
                stderr_tail=tail,
            )

        logger.info("analyzer finished: %d function(s) in %d batch(es)", len(catalog), catalog.batch_count)
        return catalog

    # ------------------------------------------------------------------
    # Pipe
    # ------------------------------------------------------------------

    def _create_pipe(self) -> None:
        try:
            self.pipe_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise ChannelSetupError(str(self.pipe_path), f"failed to remove existing pipe: {exc}") from exc

        mkfifo = getattr(os, "mkfifo", None)
        if mkfifo is None:
            raise ChannelSetupError(str(self.pipe_path), "named pipes are not supported on this platform")
        try:
            mkfifo(self.pipe_path, 0o666)
        except OSError as exc:
            raise ChannelSetupError(str(self.pipe_path), f"failed to create pipe: {exc}") from exc
        logger.debug("created named pipe %s", self.pipe_path)

    def _remove_pipe(self) -> None:
        try:
            self.pipe_path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("could not remove named pipe %s: %s", self.pipe_path, exc)
        else:
            logger.debug("removed named pipe %s", self.pipe_path)

    def _read_chunks(self, process: subprocess.Popen) -> Iterator[bytes]:
        """Yield bytes from the pipe until the analyzer has exited and the pipe is drained.

        The analyzer may open and close its writer end several times, so a
        closed writer only ends the stream once the process is gone too.
        """
        try:
            fd = os.open(self.pipe_path, os.O_RDONLY | os.O_NONBLOCK)
        except OSError as exc:
            raise ChannelSetupError(str(self.pipe_path), f"error opening named pipe: {exc}") from exc

        try:
            with selectors.DefaultSelector() as selector:
                selector.register(fd, selectors.EVENT_READ)
                while True:
                    ready = selector.select(timeout=self.poll_interval)
                    data = _read_available(fd) if ready else b""
                    if data:
                        yield data
                        continue
                    if process.poll() is not None:
                        yield from _drain(fd)
                        return
                    if ready:
                        # writer closed between batches; wait for the next one
                        time.sleep(self.poll_interval)
        finally:
            os.close(fd)

    # ------------------------------------------------------------------
    # Process
    # ------------------------------------------------------------------

    def _spawn(self, entry_file: str | Path) -> subprocess.Popen:
        argv = [*self.command, str(entry_file), str(self.pipe_path)]
        self._stderr = tempfile.TemporaryFile()
        try:
            self._process = subprocess.Popen(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=self._stderr,
            )
        except OSError as exc:
            raise AnalyzerProcessError(f"error starting analyzer process: {exc}") from exc
        logger.info("analyzer started (pid %d): %s", self._process.pid, " ".join(argv))
        return self._process

    def _stop_process(self) -> None:
        process, self._process = self._process, None
        try:
            if process is not None and process.poll() is None:
                logger.debug("terminating analyzer (pid %d)", process.pid)
                process.terminate()
                try:
                    process.wait(timeout=2)
                except subprocess.TimeoutExpired:
                    process.kill()
                    process.wait()
        finally:
            if self._stderr is not None:
                self._stderr.close()
                self._stderr = None

    def _stderr_tail(self) -> str:
        if self._stderr is None:
            return ""
        self._stderr.seek(0)
        text = self._stderr.read().decode("utf-8", errors="replace")
        return "\n".join(text.strip().splitlines()[-STDERR_TAIL_LINES:])

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------

    def _trap_signals(self) -> None:
        if threading.current_thread() is not threading.main_thread():
            logger.debug("not on the main thread; signal cleanup relies on the with-block only")
            return
        for signum in _TRAPPED_SIGNALS:
            self._previous_handlers[signum] = signal.signal(signum, self._on_signal)

    def _restore_signals(self) -> None:
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers.clear()

    def _on_signal(self, signum, frame) -> None:
        # Only the first signal unwinds; later ones must not interrupt cleanup.
        if self._interrupted:
            return
        self._interrupted = True
        raise ChannelInterrupted(signum)


def _read_available(fd: int) -> bytes:
    try:
        return os.read(fd, READ_SIZE)
    except BlockingIOError:
        return b""


def _drain(fd: int) -> Iterator[bytes]:
    while True:
        data = _read_available(fd)
        if not data:
            return
        yield data
