"""Reclaim sync locks left behind by crashed requests.

The sweep also runs before every lock acquisition; this script is for
clearing a stuck subject by hand without waiting for its next request.
"""
from __future__ import annotations

import argparse
import sys

from sqlalchemy.exc import SQLAlchemyError

from workpunch_relay.services.locks import LockManager


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Delete stale per-subject sync locks")
    parser.add_argument(
        "--older-than",
        type=int,
        default=None,
        metavar="SECONDS",
        help="Staleness threshold (defaults to LOCK_STALE_AFTER_SECONDS)",
    )
    parser.add_argument(
        "--subject",
        default=None,
        help="Release the lock of one subject unconditionally instead of sweeping",
    )
    args = parser.parse_args(argv)

    manager = LockManager(stale_after_seconds=args.older_than)
    try:
        if args.subject:
            manager.release(args.subject)
            print(f"[sweep_locks] released lock for {args.subject}")
        else:
            reclaimed = manager.sweep_stale()
            print(f"[sweep_locks] reclaimed {reclaimed} stale lock(s)")
    except SQLAlchemyError as exc:
        print(f"[sweep_locks] ERROR: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
