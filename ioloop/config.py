from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

ENV_PREFIX = "IOLOOP_"


class ReactorConfig(BaseModel):
    """Tunables shared by a reactor and every stream/listener it creates."""

    # Upper bound for a single non-blocking read.
    read_size: int = Field(4096, gt=0)
    # Upper bound for a single non-blocking write.
    write_size: int = Field(65536, gt=0)

    # Seconds `tick()` may block in select(); None blocks until something is ready.
    select_timeout: float | None = Field(None, ge=0)

    backlog: int = Field(128, gt=0)

    # Backpressure signal only: `enqueue_write` returns False at or above this many
    # buffered bytes. The buffer itself is never capped.
    high_water_mark: int | None = Field(None, gt=0)

    # When set, a raising callback closes its own participant instead of aborting the loop.
    isolate_callback_faults: bool = False


def config_from_env(*, dotenv_path: Path | None = None) -> ReactorConfig:
    """Build a config from `IOLOOP_<FIELD>` environment variables.

    If `dotenv_path` exists it is loaded first; values already in the environment win.
    """

    if dotenv_path is not None and dotenv_path.exists():
        load_dotenv(dotenv_path=dotenv_path, override=False)

    values: dict[str, str] = {}
    for name in ReactorConfig.model_fields:
        raw = os.environ.get(f"{ENV_PREFIX}{name.upper()}")
        if raw:
            values[name] = raw

    return ReactorConfig.model_validate(values)
