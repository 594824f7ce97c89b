#!/usr/bin/env python3
"""
Grant credits for payment sessions that the webhook marked completed but
never credited (crash between the status flip and the ledger write).

Run from cron, e.g. every 15 minutes:
    python scripts/reconcile_payments.py --grace-minutes 10
"""
import argparse
import asyncio
import logging
import sys
from datetime import timedelta

from artforge.core.config import load_settings
from artforge.core.database import build_engine, build_session_factory
from artforge.core.logging_config import configure_logging
from artforge.services.webhook_service import find_unfunded_sessions, reconcile_unfunded_sessions

logger = logging.getLogger("artforge.reconcile")


async def run(grace_minutes: int, dry_run: bool) -> int:
    settings = load_settings()
    configure_logging(settings.log_level, settings.log_dir)
    engine = build_engine(settings.database_url)
    session_factory = build_session_factory(engine)
    grace = timedelta(minutes=grace_minutes)
    try:
        async with session_factory() as db:
            if dry_run:
                pending = await find_unfunded_sessions(db, grace)
                for s in pending:
                    print(f"{s.external_session_id}\taccount={s.account_id}\tcredits={s.credits}")
                return len(pending)
            repaired = await reconcile_unfunded_sessions(db, grace)
            logger.info(f"Reconciled {len(repaired)} payment session(s)")
            return len(repaired)
    finally:
        await engine.dispose()


def main() -> int:
    parser = argparse.ArgumentParser(description="Repair completed-but-uncredited payment sessions")
    parser.add_argument("--grace-minutes", type=int, default=10,
                        help="skip sessions completed more recently than this")
    parser.add_argument("--dry-run", action="store_true", help="list sessions without crediting")
    args = parser.parse_args()

    count = asyncio.run(run(args.grace_minutes, args.dry_run))
    print(f"{'Found' if args.dry_run else 'Repaired'} {count} session(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
