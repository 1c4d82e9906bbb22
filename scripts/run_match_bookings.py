import argparse
import json
import logging

from pixiedvc.config import APP_ORIGIN, DRY_RUN
from pixiedvc.db.engine import engine
from pixiedvc.logging_config import setup_logging
from pixiedvc.services.matching import DEFAULT_LIMIT, run_match_bookings

setup_logging()
logger = logging.getLogger(__name__)


def main() -> None:
    """
    Run one matching pass from the command line and print the result as JSON.

    Defaults to DRY_RUN from the environment; pass --live to persist matches.
    """
    parser = argparse.ArgumentParser(description="Match submitted bookings to owner memberships")
    parser.add_argument("--booking-id", help="Evaluate a single booking request")
    parser.add_argument("--limit", type=int, default=DEFAULT_LIMIT, help="Max bookings (1-50)")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--dry-run", dest="dry_run", action="store_true", default=None)
    mode.add_argument("--live", dest="dry_run", action="store_false")
    parser.add_argument("--no-emails", dest="send_emails", action="store_false")
    args = parser.parse_args()

    dry_run = DRY_RUN if args.dry_run is None else args.dry_run
    logger.info("Starting match run (dry_run=%s, booking_id=%s)", dry_run, args.booking_id)

    result = run_match_bookings(
        engine,
        origin=APP_ORIGIN,
        dry_run=dry_run,
        booking_id=args.booking_id,
        limit=args.limit,
        send_emails=args.send_emails,
    )
    print(json.dumps(result.model_dump(mode="json"), indent=2))

    if not result.ok:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
