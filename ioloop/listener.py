from __future__ import annotations

import logging
import socket

from ioloop.config import ReactorConfig
from ioloop.core.events import EventEmitter
from ioloop.fsm import HandleLifecycle, HandleState
from ioloop.streams import TRANSIENT_ERRORS, Stream

logger = logging.getLogger(__name__)

# Peer gave up between readiness and accept(); another connection may still be queued.
ACCEPT_TRANSIENT_ERRORS: tuple[type[OSError], ...] = (*TRANSIENT_ERRORS, ConnectionAbortedError)


class Listener(EventEmitter):
    """Passive socket that turns incoming connections into `Stream`s.

    Events:
      - `accept` (Stream): a new open stream. It is NOT registered with any reactor;
        `Reactor.listen` wires that up.
      - `close`: accept failed hard or `close()` was called. The listener is inert after.
    """

    def __init__(self, sock: socket.socket, *, config: ReactorConfig | None = None) -> None:
        super().__init__()
        self._sock = sock
        self.config = config or ReactorConfig()
        self._fd = sock.fileno()
        self._lifecycle = HandleLifecycle()
        self.error: OSError | None = None

    def __repr__(self) -> str:
        return f"<Listener fd={self._fd} {self.state.value}>"

    @property
    def handle(self) -> socket.socket:
        return self._sock

    def fileno(self) -> int:
        return self._fd

    @property
    def address(self) -> tuple[str, int]:
        host, port = self._sock.getsockname()[:2]
        return host, port

    @property
    def state(self) -> HandleState:
        return self._lifecycle.handle_state

    @property
    def closed(self) -> bool:
        return self.state == HandleState.closed

    @property
    def wants_read(self) -> bool:
        return not self.closed

    @property
    def wants_write(self) -> bool:
        return False

    def handle_readable(self) -> None:
        if self.closed:
            return

        try:
            conn, peer = self._sock.accept()
        except ACCEPT_TRANSIENT_ERRORS:
            return
        except OSError as e:
            self._terminate(e)
            return

        conn.setblocking(False)
        stream = Stream(conn, config=self.config)
        logger.debug("Listener fd=%s accepted %s as fd=%s", self._fd, peer, stream.fileno())
        self.publish("accept", stream)

    def handle_writable(self) -> None:
        # Listening sockets have nothing to write.
        return

    def close(self) -> None:
        self._terminate(None)

    def _terminate(self, error: OSError | None) -> None:
        if self.closed:
            return

        self._lifecycle.close()
        self.error = error
        if error is not None:
            logger.debug("Listener fd=%s closed on error: %s", self._fd, error)
        else:
            logger.debug("Listener fd=%s closed", self._fd)

        try:
            self._sock.close()
        except OSError as e:
            logger.debug("Listener fd=%s close() failed: %s", self._fd, e)

        self.publish("close")
