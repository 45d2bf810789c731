from __future__ import annotations

import logging
import os
import sys
from typing import TextIO

LOG_LEVEL_ENV = "IOLOOP_LOG_LEVEL"

LOOP_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
# Per-handle DEBUG output (accept/close/deregister) is easier to follow with call sites.
HANDLE_TRACE_FORMAT = "%(asctime)s %(levelname)s [%(name)s:%(funcName)s:%(lineno)d] %(message)s"


def configure_logging(level: str | int | None = None, *, stream: TextIO | None = None) -> int:
    """Public helper for programs that drive a `Reactor`.

    The library itself only calls `logging.getLogger(__name__)`; wiring handlers is left to
    the embedding program. This does it in one call: `level` (name or number) wins over
    IOLOOP_LOG_LEVEL, unknown names fall back to INFO. Returns the level applied.
    """

    if isinstance(level, int):
        resolved = level
    else:
        name = (level or os.environ.get(LOG_LEVEL_ENV) or "INFO").upper()
        resolved = logging.getLevelNamesMapping().get(name, logging.INFO)

    logging.basicConfig(
        level=resolved,
        format=HANDLE_TRACE_FORMAT if resolved <= logging.DEBUG else LOOP_FORMAT,
        stream=stream or sys.stderr,
        force=True,
    )
    return resolved
