"""
Repair entitlements for verified payments and expire finished subscriptions.
Run: python -m scripts.reconcile_payments
"""
import logging
import sys

from app.core import config
from app.core.logging_config import setup_logging
from app.db.session import SessionLocal
from app.services.reconciliation_service import expire_subscriptions, reconcile_successful_payments

logger = logging.getLogger(__name__)


def main() -> int:
    setup_logging(config.LOG_LEVEL)
    db = SessionLocal()
    try:
        result = reconcile_successful_payments(db)
        expired = expire_subscriptions(db)
    except Exception:
        db.rollback()
        logger.exception("Reconciliation failed")
        return 1
    finally:
        db.close()

    print(
        f"payments_scanned={result['payments_scanned']} "
        f"subscriptions_created={result['subscriptions_created']} "
        f"users_promoted={result['users_promoted']} "
        f"subscriptions_expired={expired}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
