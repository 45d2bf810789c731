from __future__ import annotations

import errno
import logging
import os
import select
import socket
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol, TypeVar

from ioloop.config import ReactorConfig
from ioloop.core.events import EventEmitter
from ioloop.listener import Listener
from ioloop.streams import Stream

logger = logging.getLogger(__name__)

# connect_ex() results meaning "handshake still in flight".
_CONNECT_PENDING = {0, errno.EINPROGRESS, errno.EWOULDBLOCK, errno.EAGAIN}


class Participant(Protocol):
    """Anything the reactor can watch: a raw handle plus readiness handlers."""

    @property
    def handle(self) -> Any: ...

    @property
    def closed(self) -> bool: ...

    @property
    def wants_read(self) -> bool: ...

    @property
    def wants_write(self) -> bool: ...

    def handle_readable(self) -> None: ...

    def handle_writable(self) -> None: ...

    def close(self) -> None: ...

    def subscribe(self, event_type: str, callback: Callable[..., object]) -> Any: ...


P = TypeVar("P", bound=Participant)


class Reactor(EventEmitter):
    """Single-threaded select() loop over registered streams and listeners.

    One `tick()`:
      1. select() over every participant that wants reads, and every participant with
         buffered output for writes;
      2. `handle_readable()` for each readable participant, in registration order;
      3. `handle_writable()` for each writable participant, in registration order.

    Callbacks run on this loop's stack. A callback that blocks stalls every
    participant; a callback that raises aborts `tick()` unless
    `isolate_callback_faults` is set, in which case the reactor publishes
    `error` (participant, exception) and closes that participant.
    """

    def __init__(self, config: ReactorConfig | None = None) -> None:
        super().__init__()
        self.config = config or ReactorConfig()
        # dict keeps registration order and gives O(1) membership.
        self._participants: dict[Participant, None] = {}
        self._running = False
        self._stop_requested = False

    def __enter__(self) -> "Reactor":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def participants(self) -> tuple[Participant, ...]:
        return tuple(self._participants)

    @property
    def running(self) -> bool:
        return self._running

    def register(self, participant: P) -> P:
        if participant in self._participants:
            raise ValueError(f"{participant!r} is already registered")

        self._participants[participant] = None
        participant.subscribe("close", lambda *_: self._deregister(participant))
        logger.debug("Registered %r (%d participants)", participant, len(self._participants))
        return participant

    def _deregister(self, participant: Participant) -> None:
        if participant in self._participants:
            del self._participants[participant]
            logger.debug("Deregistered %r (%d participants)", participant, len(self._participants))

    def open_file(self, path: str | os.PathLike[str], mode: str = "rb") -> Stream:
        """Wrap a file (or FIFO/device) in a registered non-blocking stream."""

        if "b" not in mode:
            mode += "b"
        handle = open(Path(path), mode, buffering=0)
        try:
            os.set_blocking(handle.fileno(), False)
        except OSError:
            handle.close()
            raise
        return self.register(Stream(handle, config=self.config))

    def connect(self, host: str, port: int) -> Stream:
        """Start a non-blocking TCP connect and return its registered stream.

        Writes queue up until the handshake finishes. A connection that fails later
        surfaces as `close` on the stream; immediate failures raise OSError here.
        """

        family, type_, proto, _, addr = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)[0]
        sock = socket.socket(family, type_, proto)
        sock.setblocking(False)
        err = sock.connect_ex(addr)
        if err not in _CONNECT_PENDING:
            sock.close()
            raise OSError(err, os.strerror(err))
        return self.register(Stream(sock, config=self.config))

    def listen(self, host: str, port: int) -> Listener:
        """Bind a listening socket; every accepted stream is registered automatically."""

        family, type_, proto, _, addr = socket.getaddrinfo(
            host, port, type=socket.SOCK_STREAM, flags=socket.AI_PASSIVE
        )[0]
        sock = socket.socket(family, type_, proto)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind(addr)
            sock.listen(self.config.backlog)
            sock.setblocking(False)
        except OSError:
            sock.close()
            raise

        listener = Listener(sock, config=self.config)
        listener.subscribe("accept", self.register)
        logger.info("Listening on %s:%s", *listener.address)
        return self.register(listener)

    @property
    def has_interest(self) -> bool:
        """True if any participant currently wants reads or writes."""

        return any(p.wants_read or p.wants_write for p in self._participants)

    def tick(self) -> None:
        participants = list(self._participants)
        readers = [p.handle for p in participants if p.wants_read]
        writers = [p.handle for p in participants if p.wants_write]
        if not readers and not writers:
            # Nothing to watch: still honour the timeout, but never block forever.
            if self.config.select_timeout:
                time.sleep(self.config.select_timeout)
            return

        readable, writable, _ = select.select(readers, writers, [], self.config.select_timeout)
        ready_r = {id(h) for h in readable}
        ready_w = {id(h) for h in writable}

        for p in participants:
            if id(p.handle) in ready_r and p in self._participants:
                self._dispatch(p, p.handle_readable)

        for p in participants:
            if id(p.handle) in ready_w and p in self._participants:
                self._dispatch(p, p.handle_writable)

    def _dispatch(self, participant: Participant, handler: Callable[[], None]) -> None:
        if not self.config.isolate_callback_faults:
            handler()
            return

        try:
            handler()
        except Exception as e:
            logger.exception("Callback fault while servicing %r; closing it", participant)
            self.publish("error", participant, e)
            participant.close()

    def start(self) -> None:
        """Tick until `stop()` is requested or no participant wants reads or writes.

        Interest only changes from callbacks, so a loop with nothing to watch can never
        wake up again; it returns instead of spinning or hanging.
        """

        if self._running:
            raise RuntimeError("Reactor is already running")

        self._running = True
        logger.info("Reactor started with %d participants", len(self._participants))
        try:
            while not self._stop_requested and self.has_interest:
                self.tick()
        finally:
            self._running = False
            self._stop_requested = False
            logger.info("Reactor stopped with %d participants", len(self._participants))

    def stop(self) -> None:
        # Takes effect between ticks, never mid-dispatch.
        self._stop_requested = True

    def close(self) -> None:
        """Close every registered participant (each fires its own `close`)."""

        for p in list(self._participants):
            p.close()
