from __future__ import annotations

from enum import StrEnum

from statemachine import State, StateMachine


class HandleState(StrEnum):
    open = "open"
    closed = "closed"


class HandleLifecycle(StateMachine):
    """Lifecycle of a wrapped I/O handle (streams and listeners).

    - phases: open -> closed
    - `closed` is final; the handle owner decides when to fire `close`.
    """

    opened = State(HandleState.open.value, value=HandleState.open.value, initial=True)
    closed = State(HandleState.closed.value, value=HandleState.closed.value, final=True)

    close = opened.to(closed)

    @property
    def handle_state(self) -> HandleState:
        return HandleState(str(self.current_state.value))
