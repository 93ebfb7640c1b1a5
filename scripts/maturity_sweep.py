#!/usr/bin/env python3
"""
Daily maturity sweep: mark every account past its maturity date as Matured.

Reads settings the same way the services do (SAVINGS_CONFIG_FILE, then
DATABASE_URL / USE_TRANSACTIONS / SAVINGS_LOG_LEVEL overrides).  Meant to be
run from cron or any other scheduler once a day; running it twice is
harmless.

Usage:
  python3 scripts/maturity_sweep.py
  python3 scripts/maturity_sweep.py --as-of 2026-01-31T18:30:00+00:00
  python3 scripts/maturity_sweep.py --db-url sqlite:///savings.db
"""

import argparse
import sys
from datetime import UTC, datetime
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Mark accounts past maturity as Matured")
    p.add_argument(
        "--as-of",
        default=None,
        help="ISO-8601 instant to sweep at (default: now, UTC)",
    )
    p.add_argument(
        "--db-url",
        default=None,
        help="Database URL (default: from settings)",
    )
    return p.parse_args()


def _as_of(value: str | None) -> datetime | None:
    if value is None:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def main() -> int:
    args = _parse_args()

    from savings_config import get_settings
    from savings_kernel.db.engine import get_session_factory, init_engine_from_url
    from savings_kernel.logging_config import configure_logging
    from savings_services.container import SavingsServices

    settings = get_settings()
    configure_logging(level=settings.log_level)

    try:
        as_of = _as_of(args.as_of)
    except ValueError:
        print(f"ERROR: --as-of is not an ISO-8601 datetime: {args.as_of!r}", file=sys.stderr)
        return 2

    init_engine_from_url(args.db_url or settings.database_url)
    services = SavingsServices(settings, get_session_factory())
    result = services.maturity.run(as_of)

    print(f"  Matured {result.matured} account(s) as of {result.as_of.isoformat()}")
    for company_id, count in sorted(result.by_company.items(), key=lambda item: str(item[0])):
        print(f"    company {company_id}: {count}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
