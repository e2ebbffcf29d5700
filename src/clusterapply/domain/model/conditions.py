"""Status conditions reported on a resource set."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from .enums import ConditionReason, ConditionSeverity, ConditionStatus, ConditionType

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True, kw_only=True)
class Condition:
    type: ConditionType
    status: ConditionStatus
    severity: ConditionSeverity = ConditionSeverity.NONE
    reason: ConditionReason | None = None
    message: str = ""
    last_transition_time: datetime | None = None


@dataclass(slots=True)
class Conditions:
    """Mutable condition set; at most one condition per type.

    The transition time only moves when the status of a condition flips, so
    repeated failures with different reasons keep the original timestamp.
    """

    _items: dict[ConditionType, Condition] = field(default_factory=dict)
    clock: Callable[[], datetime] = field(default=_utcnow, repr=False, compare=False)

    def __iter__(self) -> Iterator[Condition]:
        return iter(sorted(self._items.values(), key=lambda condition: condition.type))

    def __len__(self) -> int:
        return len(self._items)

    def get(self, condition_type: ConditionType) -> Condition | None:
        return self._items.get(condition_type)

    def is_true(self, condition_type: ConditionType) -> bool:
        condition = self._items.get(condition_type)
        return condition is not None and condition.status is ConditionStatus.TRUE

    def set(self, condition: Condition) -> None:
        previous = self._items.get(condition.type)
        if previous is not None and previous.status == condition.status:
            condition = replace(condition, last_transition_time=previous.last_transition_time)
        elif condition.last_transition_time is None:
            condition = replace(condition, last_transition_time=self.clock())
        self._items[condition.type] = condition

    def mark_true(self, condition_type: ConditionType) -> None:
        self.set(Condition(type=condition_type, status=ConditionStatus.TRUE))

    def mark_false(
        self,
        condition_type: ConditionType,
        reason: ConditionReason,
        severity: ConditionSeverity,
        message: str,
    ) -> None:
        self.set(
            Condition(
                type=condition_type,
                status=ConditionStatus.FALSE,
                severity=severity,
                reason=reason,
                message=message,
            )
        )
