from __future__ import annotations

from collections.abc import Callable, Generator

import pytest

from ioloop.config import ReactorConfig
from ioloop.loop import Reactor


@pytest.fixture()
def config() -> ReactorConfig:
    """Short select timeout so a tick never hangs a test run."""

    return ReactorConfig(select_timeout=0.05)


@pytest.fixture()
def reactor(config: ReactorConfig) -> Generator[Reactor, None, None]:
    with Reactor(config) as r:
        yield r


@pytest.fixture()
def run_until(reactor: Reactor) -> Callable[..., None]:
    """Tick the shared reactor until `predicate()` holds (or fail after `max_ticks`)."""

    def _run(predicate: Callable[[], bool], *, max_ticks: int = 200) -> None:
        for _ in range(max_ticks):
            if predicate():
                return
            reactor.tick()
        assert predicate(), f"condition not reached after {max_ticks} ticks"

    return _run


class FakeHandle:
    """Scriptable stand-in for a raw file handle.

    `reads` is consumed left to right: bytes are returned, exceptions are raised.
    `write_limit` caps how many bytes a single write accepts.
    """

    def __init__(
        self,
        *,
        reads: list[bytes | None | BaseException] | None = None,
        write_limit: int | None = None,
        write_error: BaseException | None = None,
        readable: bool = True,
    ) -> None:
        self.reads = list(reads or [])
        self.write_limit = write_limit
        self.write_error = write_error
        self.written = bytearray()
        self.write_calls = 0
        self.closed = False
        self._readable = readable

    def fileno(self) -> int:
        return 99

    def readable(self) -> bool:
        return self._readable

    def read(self, size: int) -> bytes | None:
        if not self.reads:
            raise BlockingIOError()
        item = self.reads.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item if item is None else item[:size]

    def write(self, chunk: bytes) -> int:
        self.write_calls += 1
        if self.write_error is not None:
            raise self.write_error
        n = len(chunk) if self.write_limit is None else min(self.write_limit, len(chunk))
        self.written += chunk[:n]
        return n

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def fake_handle_factory() -> Callable[..., FakeHandle]:
    return FakeHandle
