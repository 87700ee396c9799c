import argparse
import logging
import sys
from datetime import date
from pathlib import Path

# Ensure repo root is on sys.path when running this script directly.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from stockledger.core.dates import previous_month
from stockledger.core.logging import setup_logging
from stockledger.database import init_db
from stockledger.services.profitability import ProfitabilityAggregator

logger = logging.getLogger(__name__)


def parse_args():
    default_year, default_month = previous_month(date.today())
    parser = argparse.ArgumentParser(description="Recompute monthly store profitability.")
    parser.add_argument("--year", type=int, default=default_year, help="Year to recompute.")
    parser.add_argument(
        "--month",
        type=int,
        default=default_month,
        choices=range(1, 13),
        metavar="1-12",
        help="Month to recompute (defaults to the previous month).",
    )
    return parser.parse_args()


def main():
    setup_logging()
    args = parse_args()
    init_db()

    results = ProfitabilityAggregator().recompute(args.year, args.month)
    for result in results:
        if result.ok:
            logger.info(
                "Store %s %s: revenue=%s expense=%s net=%s",
                result.store_id,
                result.profit_month,
                result.total_revenue,
                result.total_expense,
                result.net_profit,
            )
        else:
            logger.error("Store %s %s failed: %s", result.store_id, result.profit_month, result.error)

    if not all(result.ok for result in results):
        raise SystemExit(1)


if __name__ == "__main__":
    main()
