from datetime import datetime, timezone
from fastapi import APIRouter
from sqlalchemy import text
from app.db.session import SessionLocal
from app.core import config

router = APIRouter(prefix="/system", tags=["System"])


@router.get("/health")
def system_health():
    """Liveness plus database and gateway configuration status."""
    db_ok = True
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
    except Exception:
        db_ok = False
    finally:
        db.close()

    return {
        "status": "ok" if db_ok else "degraded",
        "database": "connected" if db_ok else "error",
        "razorpay": "configured" if config.RAZORPAY_KEY_ID and config.RAZORPAY_KEY_SECRET else "missing",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "api_version": "1.0.0",
        "service": "Chef Dhundo API"
    }
