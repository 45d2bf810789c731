from __future__ import annotations

import logging
import socket
from typing import Any

from ioloop.config import ReactorConfig
from ioloop.core.events import EventEmitter
from ioloop.fsm import HandleLifecycle, HandleState

logger = logging.getLogger(__name__)

# Raised by non-blocking calls that would otherwise have waited.
TRANSIENT_ERRORS: tuple[type[OSError], ...] = (BlockingIOError, InterruptedError)


class Stream(EventEmitter):
    """Duplex byte pipe around one non-blocking handle (socket or raw binary file).

    Events:
      - `data` (bytes): some bytes arrived; may be any slice of what the peer sent.
      - `drain`: the outbound buffer just became empty.
      - `close`: EOF, I/O error or explicit close. Fires once; the stream is inert after.

    `enqueue_write` only buffers. Bytes leave when the reactor reports the handle
    writable and calls `handle_writable`.
    """

    def __init__(self, handle: Any, *, config: ReactorConfig | None = None) -> None:
        super().__init__()
        self._handle = handle
        self.config = config or ReactorConfig()
        self._fd = handle.fileno()
        self._buffer = bytearray()
        self._lifecycle = HandleLifecycle()
        self._ending = False
        self.error: OSError | None = None

        # Write-only files must never be polled for reads.
        if isinstance(handle, socket.socket):
            self._readable = True
        else:
            self._readable = bool(handle.readable())

    def __repr__(self) -> str:
        return f"<Stream fd={self._fd} {self.state.value} buffered={len(self._buffer)}>"

    @property
    def handle(self) -> Any:
        return self._handle

    def fileno(self) -> int:
        return self._fd

    @property
    def state(self) -> HandleState:
        return self._lifecycle.handle_state

    @property
    def closed(self) -> bool:
        return self.state == HandleState.closed

    @property
    def buffered(self) -> bytes:
        return bytes(self._buffer)

    @property
    def wants_read(self) -> bool:
        return self._readable and not self.closed

    @property
    def wants_write(self) -> bool:
        return bool(self._buffer) and not self.closed

    def enqueue_write(self, data: bytes | bytearray | memoryview) -> bool:
        """Append `data` to the outbound buffer.

        Returns False when the caller should hold off: the stream is closed or ending,
        or the buffer has reached `high_water_mark`.
        """

        if isinstance(data, str):
            raise TypeError("Stream payloads must be bytes, not str")
        if self.closed or self._ending:
            return False

        if data:
            self._buffer += data
        return self._below_high_water_mark()

    def end(self, data: bytes | bytearray | memoryview = b"") -> None:
        """Queue final bytes, then close once everything has been written."""

        if self.closed or self._ending:
            return
        self.enqueue_write(data)
        self._ending = True
        if not self._buffer:
            self.close()

    def close(self) -> None:
        self._terminate(None)

    def handle_readable(self) -> None:
        if self.closed:
            return

        try:
            data = self._read_some(self.config.read_size)
        except TRANSIENT_ERRORS:
            return
        except OSError as e:
            self._terminate(e)
            return

        if data is None:
            # Raw file in non-blocking mode signals EAGAIN with None.
            return
        if not data:
            self._terminate(None)
            return

        self.publish("data", data)

    def handle_writable(self) -> None:
        if self.closed or not self._buffer:
            return

        try:
            written = self._write_some(bytes(self._buffer[: self.config.write_size]))
        except TRANSIENT_ERRORS:
            return
        except OSError as e:
            self._terminate(e)
            return

        if not written:
            return

        del self._buffer[:written]
        if self._buffer:
            return

        self.publish("drain")
        if self._ending:
            self.close()

    def _read_some(self, size: int) -> bytes | None:
        if isinstance(self._handle, socket.socket):
            return self._handle.recv(size)
        return self._handle.read(size)

    def _write_some(self, chunk: bytes) -> int | None:
        if isinstance(self._handle, socket.socket):
            return self._handle.send(chunk)
        return self._handle.write(chunk)

    def _below_high_water_mark(self) -> bool:
        mark = self.config.high_water_mark
        return mark is None or len(self._buffer) < mark

    def _terminate(self, error: OSError | None) -> None:
        if self.closed:
            return

        self._lifecycle.close()
        self.error = error
        self._buffer.clear()
        if error is not None:
            logger.debug("Stream fd=%s closed on error: %s", self._fd, error)
        else:
            logger.debug("Stream fd=%s closed", self._fd)

        try:
            self._handle.close()
        except OSError as e:
            logger.debug("Stream fd=%s close() failed: %s", self._fd, e)

        self.publish("close")
