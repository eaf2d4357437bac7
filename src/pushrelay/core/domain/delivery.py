"""Per-target delivery state machine.

Each target of a push runs its own attempt sequence::

    pending -> attempting -> succeeded
                          -> failed_retryable -> attempting -> ...
                          -> failed_exhausted

``succeeded`` and ``failed_exhausted`` are terminal. A push is complete once
every target is terminal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pushrelay.core.domain.errors import DeliveryStateError, TransportError


class TargetState(str, Enum):
    """Lifecycle state of one target inside a push."""

    PENDING = "pending"
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    FAILED_RETRYABLE = "failed_retryable"
    FAILED_EXHAUSTED = "failed_exhausted"

    @property
    def is_terminal(self) -> bool:
        return self in (TargetState.SUCCEEDED, TargetState.FAILED_EXHAUSTED)


_TRANSITIONS: dict[TargetState, frozenset[TargetState]] = {
    TargetState.PENDING: frozenset({TargetState.ATTEMPTING}),
    TargetState.ATTEMPTING: frozenset(
        {
            TargetState.SUCCEEDED,
            TargetState.FAILED_RETRYABLE,
            TargetState.FAILED_EXHAUSTED,
        }
    ),
    TargetState.FAILED_RETRYABLE: frozenset({TargetState.ATTEMPTING}),
    TargetState.SUCCEEDED: frozenset(),
    TargetState.FAILED_EXHAUSTED: frozenset(),
}


@dataclass
class TargetDelivery:
    """Mutable progress record for one target of one push."""

    target: str
    state: TargetState = TargetState.PENDING
    attempts: int = 0
    last_error: TransportError | None = None

    def transition(self, new_state: TargetState) -> None:
        """Move to ``new_state``.

        Raises:
            DeliveryStateError: If the transition is not allowed.
        """
        if new_state not in _TRANSITIONS[self.state]:
            raise DeliveryStateError(
                f"Illegal delivery transition {self.state.value} -> {new_state.value}",
                details={"target": self.target},
            )
        if new_state == TargetState.ATTEMPTING:
            self.attempts += 1
        self.state = new_state

    def succeed(self) -> None:
        self.transition(TargetState.SUCCEEDED)

    def fail(self, error: TransportError, *, exhausted: bool) -> None:
        self.last_error = error
        self.transition(
            TargetState.FAILED_EXHAUSTED if exhausted else TargetState.FAILED_RETRYABLE
        )


@dataclass
class DispatchReport:
    """Outcome of one push across all of its targets."""

    message_id: str
    deliveries: list[TargetDelivery] = field(default_factory=list)

    @property
    def succeeded(self) -> list[str]:
        return [d.target for d in self.deliveries if d.state == TargetState.SUCCEEDED]

    @property
    def failed(self) -> list[str]:
        return [d.target for d in self.deliveries if d.state == TargetState.FAILED_EXHAUSTED]

    @property
    def all_terminal(self) -> bool:
        return all(d.state.is_terminal for d in self.deliveries)

    @property
    def total_attempts(self) -> int:
        return sum(d.attempts for d in self.deliveries)
