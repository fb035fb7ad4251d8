#!/usr/bin/env python3
"""Entrypoint for running the retry sweep outside the API process.

Usage:
    # Single sweep (resubmit due failures once)
    python scripts/run_retry_scheduler.py --once

    # Continuous loop (Ctrl+C to stop)
    python scripts/run_retry_scheduler.py --loop

    # Loop with custom interval
    python scripts/run_retry_scheduler.py --loop --interval 60

    # Limit iterations (for testing)
    python scripts/run_retry_scheduler.py --loop --max-iterations 5

Environment variables:
    DATABASE_URL: Delivery log database
    NOTIFICATION_BATCH_SIZE: Records per sweep (default: 100)
    NOTIFICATION_MAX_RETRY_ATTEMPTS: Attempts per record (default: 3)
    NOTIFICATION_RETRY_INTERVAL_SECONDS: Seconds between sweeps (default: 300)
"""

import argparse
import logging
import sys

from notification_service.config import get_settings
from notification_service.engine import build_engine
from notification_service.workers.scheduler import configure_logging


def main(argv: list[str] | None = None) -> int:
    """Main entrypoint for the retry sweep."""
    parser = argparse.ArgumentParser(
        description="Resubmit failed notifications whose backoff has elapsed",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("--once", action="store_true", help="Run one sweep and exit")
    mode.add_argument("--loop", action="store_true", help="Sweep continuously")

    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between sweeps (loop mode only)",
    )
    parser.add_argument(
        "--max-iterations",
        type=int,
        default=None,
        help="Maximum sweeps before stopping (loop mode only)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Reduce logging to warnings only",
    )

    args = parser.parse_args(argv)

    if args.verbose:
        configure_logging(logging.DEBUG)
    elif args.quiet:
        configure_logging(logging.WARNING)
    else:
        configure_logging(logging.INFO)

    logger = logging.getLogger(__name__)

    engine = build_engine(get_settings())
    if args.interval is not None:
        engine.scheduler.interval_seconds = args.interval

    try:
        if args.once:
            result = engine.scheduler.run_once()

            print("\n--- Retry Sweep Summary ---")
            print(f"Status: {result.status.value}")
            print(f"Resubmitted: {result.processed_count}")
            print(f"Skipped: {result.skipped_count}")
            print(f"Failed: {result.failed_count}")
            for err in result.errors:
                print(f"  - {err}")

            return 0 if not result.errors else 1

        logger.info("Starting retry loop (Ctrl+C to stop)...")
        engine.scheduler.run_forever(max_iterations=args.max_iterations)
        return 0

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0
    except Exception as e:
        logger.error(f"Retry sweep failed: {e}", exc_info=True)
        return 1
    finally:
        engine.shutdown()


if __name__ == "__main__":
    sys.exit(main())
