#!/usr/bin/env python3
"""Check the connected mailbox now and print the updates found.

Usage:
    python -m scripts.check_emails [--owner USER_ID] [--status]
"""
import argparse
import asyncio
import logging
import sys

from scripts.bootstrap import configure
from jobtrack.gmail.exceptions import ProviderFailure, SessionExpired, Unauthenticated
from jobtrack.tracking.email_sync import EmailSync
from jobtrack.tracking.exceptions import TrackingError

logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--owner", default=None, help="User id owning the mailbox")
    parser.add_argument("--status", action="store_true", help="Only report whether a mailbox is connected")
    args = parser.parse_args()

    configure()

    sync = EmailSync()

    if args.status:
        connected = sync.connection_status(args.owner)
        print("connected" if connected else "not connected")
        return 0 if connected else 1

    try:
        report = asyncio.run(sync.trigger_scan(args.owner))
    except Unauthenticated:
        print("Not connected. Run scripts/setup_gmail.py first.")
        return 1
    except SessionExpired:
        print("Reconnect required. Run scripts/setup_gmail.py again.")
        return 1
    except (ProviderFailure, TrackingError) as e:
        logger.error("Check failed: %s", e)
        return 1

    if not report.updates:
        print("No recruiter responses found.")
        return 0

    for update in report.updates:
        status = update.suggested_status or "-"
        print(f"[{update.verdict.value:8}] {update.company_key:20} {status:13} {update.subject}")
    print()
    print(f"{report.applied_count} tracked job(s) updated.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
