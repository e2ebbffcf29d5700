"""Reconciliation behaviour toggles."""

from __future__ import annotations

from clusterapply.domain.reconciliation import ReconcilerOptions

from .env import env_flag


def get_reconciler_options() -> ReconcilerOptions:
    return ReconcilerOptions(
        requeue_on_apply_failure=env_flag("CLUSTERAPPLY_REQUEUE_ON_APPLY_FAILURE", default=False),
    )
