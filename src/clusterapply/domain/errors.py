"""Error taxonomy for reconciliation passes.

Pass-level errors (selector, listing, client acquisition) stop work on the
resource set or target they concern. Artifact- and blob-level errors are
collected and reported together through :class:`AggregateReconcileError`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


class ReconcileError(RuntimeError):
    """Base class for every failure raised by the reconciliation core."""


class ObjectNotFoundError(LookupError):
    """Raised by object stores when a requested object does not exist."""

    def __init__(self, kind: str, key: object) -> None:
        super().__init__(f"{kind} {key} not found")
        self.kind = kind
        self.key = key


class SelectorInvalidError(ReconcileError):
    """A label predicate could not be parsed."""


class ListFailedError(ReconcileError):
    """Enumerating targets or resource sets failed."""


class ClientAcquisitionError(ReconcileError):
    """No remote client could be obtained for a target."""


class ArtifactRetrievalError(ReconcileError):
    """An artifact is missing, has no data, or carries a malformed value."""


class UnsupportedArtifactSubtypeError(ArtifactRetrievalError):
    """A secret artifact does not carry the recognised subtype."""


class ApplyFailedError(ReconcileError):
    """The remote apply operation rejected a blob."""


class OwnerTagError(ReconcileError):
    """The owner back-reference could not be written to an artifact source."""


class BindingPersistError(ReconcileError):
    """The binding record could not be flushed to the binding store."""


class PassCancelledError(ReconcileError):
    """The pass was cancelled or ran past its deadline."""


class AggregateReconcileError(ReconcileError):
    """Every error collected during one unit of work, in the order observed."""

    def __init__(self, errors: Iterable[BaseException]) -> None:
        self.errors: tuple[BaseException, ...] = tuple(errors)
        if not self.errors:
            raise ValueError("AggregateReconcileError requires at least one error")
        super().__init__(self._format(self.errors))

    def __len__(self) -> int:
        return len(self.errors)

    @property
    def cancelled(self) -> bool:
        return any(isinstance(error, PassCancelledError) for error in self.errors)

    @staticmethod
    def _format(errors: tuple[BaseException, ...]) -> str:
        messages = [str(error) for error in errors]
        if len(messages) == 1:
            return messages[0]
        return "[" + ", ".join(messages) + "]"
