"""PlantOps notification maintenance CLI.

Runs the periodic sweeps (retry, expiry, retention, scheduled delivery)
for one or more tenants, once or on an interval.

Usage:
    python src/maintenance.py retry --tenant t-1 --tenant t-2
    python src/maintenance.py expire --tenant t-1
    python src/maintenance.py clear-old --tenant t-1 --days 30
    python src/maintenance.py scheduled                       # all tenants
    python src/maintenance.py all --tenant t-1 --interval 60  # loop every minute
"""

import argparse
import sys
import time

import structlog

logger = structlog.get_logger("maintenance")

SWEEPS = ("retry", "expire", "clear-old", "scheduled", "all")


def run_sweeps(sweep, tenants, days_to_keep=None):
    """Run ``sweep`` for each tenant inside the notifications domain context."""
    from notifications.domain import notifications
    from notifications.notification.maintenance import (
        cleanup_expired,
        clear_old,
        process_scheduled,
        retry_failed,
    )

    with notifications.domain_context():
        if sweep in ("scheduled", "all") and not tenants:
            process_scheduled()

        for tenant_id in tenants:
            if sweep in ("retry", "all"):
                retry_failed(tenant_id)
            if sweep in ("expire", "all"):
                cleanup_expired(tenant_id)
            if sweep in ("clear-old", "all"):
                clear_old(tenant_id, days_to_keep=days_to_keep)
            if sweep in ("scheduled", "all"):
                process_scheduled(tenant_id)


def main(argv=None):
    parser = argparse.ArgumentParser(description="PlantOps notification maintenance")
    parser.add_argument("sweep", choices=SWEEPS, help="Sweep to run")
    parser.add_argument(
        "--tenant",
        dest="tenants",
        action="append",
        default=[],
        help="Tenant to sweep (repeatable). 'scheduled' and 'all' cover every tenant when omitted",
    )
    parser.add_argument("--days", type=int, default=None, help="Retention for clear-old (default: settings)")
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Repeat every N seconds instead of running once",
    )
    args = parser.parse_args(argv)

    if args.sweep in ("retry", "expire", "clear-old") and not args.tenants:
        parser.error(f"{args.sweep} needs at least one --tenant")

    from notifications.domain import notifications
    from notifications.utils.logging import configure_logging

    configure_logging()
    notifications.init()

    if args.interval is None:
        run_sweeps(args.sweep, args.tenants, days_to_keep=args.days)
        return 0

    logger.info("Maintenance loop started", sweep=args.sweep, tenants=args.tenants, interval=args.interval)
    try:
        while True:
            run_sweeps(args.sweep, args.tenants, days_to_keep=args.days)
            time.sleep(args.interval)
    except KeyboardInterrupt:
        logger.info("Maintenance loop stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
