from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from clusterapply.adapters.manifests import ManifestObjectStore
from clusterapply.app import (
    build_reconciler,
    list_bindings,
    reconcile_resource_sets,
    resource_sets_for_target,
)
from clusterapply.config import configure_logging
from clusterapply.domain.model import ObjectKey

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from clusterapply.domain.model import TargetBinding

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Apply resource sets to the targets they select")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    reconcile = subparsers.add_parser("reconcile", help="Run reconciliation passes")
    reconcile.add_argument(
        "--manifests",
        type=Path,
        nargs="+",
        required=True,
        help="Manifest files or directories holding resource sets, targets, and artifacts",
    )
    reconcile.add_argument(
        "--resource-set",
        dest="resource_sets",
        action="append",
        type=ObjectKey.parse,
        default=None,
        help="Resource set to reconcile as [namespace/]name (repeatable, defaults to all)",
    )
    reconcile.add_argument(
        "--namespace",
        default="default",
        help="Namespace to reconcile when no resource set is given (default: %(default)s)",
    )
    reconcile.add_argument(
        "--timeout",
        type=float,
        help="Seconds after which remaining work is cancelled",
    )
    reconcile.add_argument(
        "--require-token",
        action="store_true",
        help="Fail unless CLUSTERAPPLY_TARGET_TOKEN is set",
    )
    reconcile.add_argument(
        "--write-back",
        type=Path,
        help="Write the updated manifests (status, owner references) to this file",
    )

    map_target = subparsers.add_parser(
        "map-target", help="List resource sets selecting a target"
    )
    map_target.add_argument(
        "--manifests",
        type=Path,
        nargs="+",
        required=True,
        help="Manifest files or directories",
    )
    map_target.add_argument("target", type=ObjectKey.parse, help="Target as [namespace/]name")

    bindings = subparsers.add_parser("bindings", help="Show recorded bindings")
    bindings.add_argument(
        "--target",
        type=ObjectKey.parse,
        help="Only show bindings of this target, as [namespace/]name",
    )

    return parser.parse_args(list(argv))


def _validate_args(args: argparse.Namespace) -> None:
    if args.command == "reconcile" and args.timeout is not None and args.timeout <= 0:
        raise ValueError("Timeout must be positive")
    if args.command in {"reconcile", "map-target"}:
        missing = [str(path) for path in args.manifests if not path.exists()]
        if missing:
            raise ValueError(f"Manifest path(s) not found: {', '.join(missing)}")


def _log_bindings(bindings: Sequence[TargetBinding]) -> None:
    if not bindings:
        log.info("No bindings recorded")
    for target_binding in bindings:
        for set_binding in target_binding.bindings:
            for resource in set_binding.resources:
                log.info(
                    "%s %s %s applied=%s hash=%s at=%s",
                    target_binding.target,
                    set_binding.resource_set_name,
                    resource.ref,
                    resource.applied,
                    resource.hash or "-",
                    resource.last_applied_time.isoformat() if resource.last_applied_time else "-",
                )


def _run_reconcile(args: argparse.Namespace) -> bool:
    store = ManifestObjectStore.from_paths(args.manifests)
    run = reconcile_resource_sets(
        store,
        args.resource_sets,
        namespace=args.namespace,
        reconciler=build_reconciler(store, require_token=args.require_token),
        timeout_seconds=args.timeout,
    )
    for result in run.results:
        if result.skipped is not None:
            log.info("Resource set %s skipped: %s", result.key, result.skipped)
        else:
            log.info(
                "Resource set %s: targets=%d, failed=%d",
                result.key,
                len(result.targets),
                len(result.failed_targets),
            )
    if args.write_back is not None:
        store.dump(args.write_back)
        log.info("Wrote updated manifests to %s", args.write_back)
    return run.succeeded


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        _validate_args(parsed_args)
    except ValueError:
        configure_logging()
        log.exception("CLI validation error")
        sys.exit(2)

    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        if parsed_args.command == "reconcile":
            if not _run_reconcile(parsed_args):
                sys.exit(1)
        elif parsed_args.command == "map-target":
            store = ManifestObjectStore.from_paths(parsed_args.manifests)
            for key in resource_sets_for_target(store, parsed_args.target):
                log.info("%s", key)
        elif parsed_args.command == "bindings":
            _log_bindings(list_bindings(target=parsed_args.target))
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
