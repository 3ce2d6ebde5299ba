from __future__ import annotations

import argparse
import json
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING, Any

from dotenv import load_dotenv

from accountsync.app import lookup_account, reconcile_accounts
from accountsync.config import configure_logging
from accountsync.domain.reconciliation import (
    BatchValidationError,
    ConflictResolution,
    Err,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import FrameType

    from accountsync.domain.model import Account

log = logging.getLogger(__name__)

CONFLICT_RESOLUTIONS: dict[str, Callable[[], ConflictResolution]] = {
    "default": ConflictResolution.default,
    "balances-only": ConflictResolution.balances_only,
    "nothing": ConflictResolution.nothing,
}


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile stored accounts")
    parser.add_argument(
        "--database-uri",
        type=str,
        default=None,
        help="SQLAlchemy database URI (defaults to DATABASE_URI or the local data dir)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging level (default: %(default)s)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    reconcile = subparsers.add_parser("reconcile", help="Apply an observed batch of accounts")
    reconcile.add_argument(
        "batch",
        type=str,
        help="Path to a JSON array of account objects, or '-' for stdin",
    )
    reconcile.add_argument(
        "--timeout-ms",
        type=int,
        default=None,
        help="Wall-clock budget for the whole transaction (defaults to config)",
    )
    reconcile.add_argument(
        "--conflict",
        type=str,
        default="default",
        choices=tuple(CONFLICT_RESOLUTIONS),
        help="Merge policy for addresses that already exist (default: %(default)s)",
    )

    show = subparsers.add_parser("show", help="Print one stored account")
    show.add_argument("address", type=str)

    return parser.parse_args(list(argv))


def _load_batch(source: str) -> list[dict[str, Any]]:
    try:
        if source == "-":
            payload = json.load(sys.stdin)
        else:
            with open(source, encoding="utf-8") as handle:  # noqa: PTH123
                payload = json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        raise ValueError(f"Could not read batch from {source}: {exc}") from exc
    if not isinstance(payload, list):
        raise ValueError("Batch must be a JSON array of account objects")  # noqa: TRY004
    return payload  # pyright: ignore[reportUnknownVariableType]


def _format_account(account: Account) -> str:
    return json.dumps(
        {
            "address": account.address,
            "account_type": str(account.account_type),
            "gold": str(account.gold),
            "usd": str(account.usd),
            "locked_gold": str(account.locked_gold),
            "notice_period": account.notice_period,
            "rewards": str(account.rewards),
            "is_active": account.is_active,
            "is_deleted": account.is_deleted,
            "inserted_at": account.inserted_at.isoformat() if account.inserted_at else None,
            "updated_at": account.updated_at.isoformat() if account.updated_at else None,
        }
    )


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=getattr(logging, parsed_args.log_level), force=True)

    if parsed_args.command == "show":
        try:
            account = lookup_account(parsed_args.address, database_uri=parsed_args.database_uri)
        except Exception:
            log.exception("Fatal error while reading account")
            sys.exit(1)
        if account is None:
            log.error("No account stored for %s", parsed_args.address)
            sys.exit(1)
        print(_format_account(account))  # noqa: T201
        return

    try:
        batch = _load_batch(parsed_args.batch)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        result = reconcile_accounts(
            batch,
            conflict_resolution=CONFLICT_RESOLUTIONS[parsed_args.conflict](),
            timeout_ms=parsed_args.timeout_ms,
            database_uri=parsed_args.database_uri,
        )
    except Exception:
        log.exception("Fatal error during reconciliation")
        sys.exit(1)

    if isinstance(result, Err):
        log.error("Reconciliation failed: %s", result.error)
        sys.exit(2 if isinstance(result.error, BatchValidationError) else 1)

    summary = result.value
    print(  # noqa: T201
        json.dumps(
            {
                "locked": len(summary.locked),
                "marked_stale": summary.marked_stale,
                "inserted": list(summary.inserted),
                "updated": list(summary.updated),
                "skipped": list(summary.skipped),
            }
        )
    )


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    signal(SIGINT, sigint_handler)
    main()
