"""Background document parsing.

A worker thread reads and scans the document and queues tree deltas.  The UI
thread pulls them with :meth:`DocumentLoader.drain` at the start of a redraw
and grafts them, so the tree only ever has one writer.

Sources are raw bytes, a file path, or an open binary stream such as a pipe
on standard input.  Streams are read by the worker in chunks, so a slow
producer never blocks the UI.
"""

from __future__ import annotations

import logging
import os
import stat
import threading
from pathlib import Path
from queue import Empty, Queue
from typing import BinaryIO, Union

from jpager.errors import ParseCancelled, ParseError
from jpager.parser import JsonParser, decode
from jpager.tree import ValueTree

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1 << 20

Source = Union[bytes, str, Path, BinaryIO]


class CancelToken:
    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def _stream_size(stream) -> int | None:
    """Size of a stream backed by a regular file, else None."""
    try:
        info = os.fstat(stream.fileno())
    except (AttributeError, OSError, ValueError):
        return None
    return info.st_size if stat.S_ISREG(info.st_mode) else None


class DocumentLoader:
    """One in-flight parse of one document.

    The loader owns a stream source and closes it once the worker is done
    with it.
    """

    def __init__(
        self,
        source: Source,
        *,
        line_delimited: bool = False,
        collapse_depth: int | None = None,
    ) -> None:
        self.source = Path(source) if isinstance(source, str) else source
        self.tree = ValueTree(line_delimited=line_delimited, collapse_depth=collapse_depth)
        self.token = CancelToken()
        self.error: Exception | None = None
        self.done = False
        self.bytes_read = 0
        self.total_bytes: int | None = None
        self._results: Queue[tuple[str, object]] = Queue()
        self._parser: JsonParser | None = None
        self._thread: threading.Thread | None = None

    @property
    def name(self) -> str:
        if isinstance(self.source, Path):
            return str(self.source)
        return "[stdin]"

    def start(self) -> DocumentLoader:
        self._thread = threading.Thread(
            target=self._worker, name="jpager-parse", daemon=True
        )
        self._thread.start()
        return self

    def cancel(self) -> None:
        self.token.cancel()

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    def wait(self, timeout: float | None = None) -> bool:
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    @property
    def reading(self) -> bool:
        """True until the whole input has been read."""
        return not self.done and self._parser is None

    def progress(self) -> float:
        """Fraction done: the first half covers reading, the second scanning."""
        if self.done:
            return 1.0
        parser = self._parser
        if parser is not None:
            if not parser.length:
                return 0.5
            return 0.5 + parser.position / parser.length / 2
        if self.total_bytes:
            return min(self.bytes_read / self.total_bytes, 1.0) / 2
        return 0.0

    # -- Worker thread -----------------------------------------------------

    def _read(self) -> bytes:
        source = self.source
        if isinstance(source, bytes):
            self.total_bytes = self.bytes_read = len(source)
            return source
        if isinstance(source, Path):
            with source.open("rb") as f:
                return self._read_stream(f)
        with source:
            return self._read_stream(source)

    def _read_stream(self, stream: BinaryIO) -> bytes:
        self.total_bytes = _stream_size(stream)
        # read1 returns what a pipe has buffered instead of waiting for a full chunk
        read = getattr(stream, "read1", stream.read)
        chunks = []
        while True:
            if self.token.cancelled:
                raise ParseCancelled()
            chunk = read(CHUNK_SIZE)
            if not chunk:
                break
            chunks.append(chunk)
            self.bytes_read += len(chunk)
        logger.debug("read %d bytes from %s", self.bytes_read, self.name)
        return b"".join(chunks)

    def _worker(self) -> None:
        try:
            text = decode(self._read())
            parser = JsonParser(
                text, line_delimited=self.tree.line_delimited, cancel=self.token
            )
            self._parser = parser
            for delta in parser.deltas():
                if self.token.cancelled:
                    raise ParseCancelled()
                self._results.put(("delta", delta))
        except ParseCancelled:
            logger.debug("parse of %s cancelled", self.name)
            return
        except (ParseError, OSError) as e:
            logger.warning("failed to load %s: %s", self.name, e)
            self._results.put(("error", e))
        except Exception as e:
            logger.exception("unexpected error while parsing %s", self.name)
            self._results.put(("error", e))
        self._results.put(("done", None))

    # -- UI thread ---------------------------------------------------------

    def drain(self, max_items: int | None = None) -> int:
        """Graft queued deltas into the tree.  Returns the number grafted."""
        if self.token.cancelled:
            return 0
        grafted = 0
        handled = 0
        while max_items is None or handled < max_items:
            try:
                kind, payload = self._results.get_nowait()
            except Empty:
                break
            handled += 1
            if kind == "delta":
                self.tree.graft(payload)
                grafted += 1
            elif kind == "error":
                self.error = payload
            else:
                self.tree.finish()
                self.done = True
                break
        return grafted
