"""Main entry point for the Job Tracker mailbox scheduler."""
import asyncio
import logging

from config.settings import settings
from jobtrack.logging_config import setup_logging
from jobtrack.persistence.database import init_db
from jobtrack.scheduler import MailboxScheduler
from jobtrack.tracking.email_sync import EmailSync

logger = logging.getLogger(__name__)


async def async_main():
    """Async main entry point."""
    setup_logging(level=settings.log_level, log_file=settings.log_file)
    logger.info("Job Tracker starting...")
    logger.info("Database: %s", settings.database_url)

    init_db()
    logger.info("Database initialized")

    scheduler = MailboxScheduler(EmailSync())
    scheduler.start()

    connected = scheduler.resume_all()
    if connected:
        logger.info("Scheduled mailbox checks for %d connected mailbox(es)", connected)
    else:
        logger.info("No connected mailboxes. Run scripts/setup_gmail.py to connect one.")

    # Mailboxes connected later are picked up without a restart
    scheduler.watch_connections()

    try:
        logger.info("Job Tracker running. Press Ctrl+C to stop.")
        while True:
            await asyncio.sleep(60)

    except asyncio.CancelledError:
        logger.info("Shutting down...")
    finally:
        scheduler.shutdown()


def main():
    """Main entry point."""
    try:
        asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown complete.")


if __name__ == "__main__":
    main()
