import logging
import sys
from pathlib import Path

# Ensure repo root is on sys.path when running this script directly.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from stockledger.core.logging import setup_logging
from stockledger.database import init_db
from stockledger.services.restock_alerts import RestockAlertManager

logger = logging.getLogger(__name__)


def main():
    setup_logging()
    init_db()
    closed = RestockAlertManager().reconcile_all()
    logger.info("Closed %d recovered restock alert(s).", closed)


if __name__ == "__main__":
    main()
