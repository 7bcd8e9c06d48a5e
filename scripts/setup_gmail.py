#!/usr/bin/env python3
"""Connect a Gmail mailbox via OAuth and run a first check.

Usage:
    python -m scripts.setup_gmail [--owner USER_ID]

Prints the consent URL; paste back the ``code`` parameter from the
redirect to finish connecting.
"""
import argparse
import asyncio
import logging
import sys

from scripts.bootstrap import configure, settings
from jobtrack.gmail.auth import GmailAuthorizer
from jobtrack.gmail.exceptions import MailboxError
from jobtrack.scheduler import MailboxScheduler
from jobtrack.tracking.email_sync import EmailSync

logger = logging.getLogger(__name__)


def main():
    """Run Gmail OAuth setup."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--owner", default=None, help="User id owning the mailbox")
    args = parser.parse_args()

    configure(with_db=False)

    print("Gmail OAuth Setup")
    print("=" * 50)
    print()

    if not settings.google_client_id or not settings.google_client_secret:
        logger.error("GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET not set!")
        print()
        print("To set up Gmail integration:")
        print("1. Go to https://console.cloud.google.com")
        print("2. Enable the Gmail API")
        print("3. Create an OAuth 2.0 Client ID of type 'Web application'")
        print("4. Add %s as an authorized redirect URI" % settings.oauth_redirect_uri)
        print("5. Put the client id and secret in .env")
        return 1

    configure()

    authorizer = GmailAuthorizer(
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        redirect_uri=settings.oauth_redirect_uri,
    )

    print("Open this URL and approve access:")
    print()
    print(authorizer.authorization_url())
    print()
    code = input("Paste the 'code' parameter from the redirect URL: ").strip()
    if not code:
        logger.error("No code entered.")
        return 1

    scheduler = MailboxScheduler(EmailSync())
    try:
        scheduler.connect(authorizer, code, owner_id=args.owner)
    except MailboxError as e:
        logger.error("Error connecting Gmail: %s", e)
        return 1
    logger.info("Gmail connected. A running tracker service picks this mailbox up on its next connection poll.")

    try:
        report = asyncio.run(scheduler.check_now(args.owner))
    except MailboxError as e:
        logger.error("First mailbox check failed: %s", e)
        return 1

    logger.info("First check: %d updates, %d status changes", len(report.updates), report.applied_count)
    return 0


if __name__ == "__main__":
    sys.exit(main())
