"""Cancellation and deadline handling for one reconciliation pass."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from clusterapply.domain.errors import PassCancelledError

if TYPE_CHECKING:
    from collections.abc import Callable


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True, kw_only=True)
class PassContext:
    """Signal shared between the dispatch layer and a running pass.

    The core only checks it between units of work (targets and artifact
    refs), so a cancelled pass never leaves a binding half written.
    """

    cancelled: threading.Event = field(default_factory=threading.Event)
    deadline: datetime | None = None
    clock: Callable[[], datetime] = field(default=_utcnow, repr=False)

    def cancel(self) -> None:
        self.cancelled.set()

    def is_done(self) -> bool:
        if self.cancelled.is_set():
            return True
        return self.deadline is not None and self.clock() >= self.deadline

    def raise_if_done(self) -> None:
        if self.cancelled.is_set():
            raise PassCancelledError("reconciliation pass cancelled")
        if self.deadline is not None and self.clock() >= self.deadline:
            raise PassCancelledError(f"reconciliation pass exceeded deadline {self.deadline}")
