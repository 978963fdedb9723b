#!/usr/bin/env python3
"""Run one soft vote reconciliation batch from cron.

Claims queued and failed soft votes, broadcasts each as a vote from the
system Hive account, settles the rows and dead-letters failures older than
the cleanup horizon. Same worker as POST /soft-votes/retry, without the HTTP
hop or the internal token.

Usage:
    python scripts/run_soft_vote_retry.py
    python scripts/run_soft_vote_retry.py --limit 50 --max-age-minutes 5
    python scripts/run_soft_vote_retry.py --cleanup-days -1   # skip cleanup

Exit codes:
    0: Batch ran (individual rows may still have failed)
    1: Configuration or store failure stopped the batch
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from dotenv import load_dotenv
from structlog import get_logger

from src.application.services.soft_vote_reconciliation_service import (
    DEFAULT_CLEANUP_DAYS,
    DEFAULT_RETRY_LIMIT,
    RetryOptions,
    SoftVoteReconciliationService,
)
from src.bootstrap.userbase import (
    get_alert_delivery,
    get_identity_store,
    get_ledger_broadcaster,
    get_time_authority,
    get_userbase_config,
)
from src.domain.exceptions import UserbaseError
from src.infrastructure.observability import (
    configure_structlog,
    reset_correlation_id,
    set_correlation_id,
)

logger = get_logger()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--limit",
        default=DEFAULT_RETRY_LIMIT,
        help=f"Maximum rows to claim, 1-100 (default {DEFAULT_RETRY_LIMIT})",
    )
    parser.add_argument(
        "--max-age-minutes",
        default=0,
        help="Only claim rows created at least this many minutes ago (default 0)",
    )
    parser.add_argument(
        "--cleanup-days",
        default=DEFAULT_CLEANUP_DAYS,
        help=(
            "Delete failed rows older than this many days; "
            f"negative disables cleanup (default {DEFAULT_CLEANUP_DAYS})"
        ),
    )
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    config = get_userbase_config()
    service = SoftVoteReconciliationService(
        store=get_identity_store(),
        time_authority=get_time_authority(),
        broadcaster=get_ledger_broadcaster(),
        alerts=get_alert_delivery(),
        lease_seconds=config.soft_vote_lease_seconds,
    )
    options = RetryOptions.from_raw(
        limit=args.limit,
        max_age_minutes=args.max_age_minutes,
        cleanup_days=args.cleanup_days,
    )
    report = await service.run(options)
    print(json.dumps(report.to_dict()))
    return 0


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = parse_args(argv)

    config = get_userbase_config()
    configure_structlog(environment=config.environment, log_level=config.log_level)
    token = set_correlation_id(None)

    try:
        return asyncio.run(run(args))
    except UserbaseError as exc:
        logger.error("soft_vote_retry_aborted", error=exc.message)
        print(json.dumps(exc.to_dict()), file=sys.stderr)
        return 1
    finally:
        reset_correlation_id(token)


if __name__ == "__main__":
    sys.exit(main())
