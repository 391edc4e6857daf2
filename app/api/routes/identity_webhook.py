import logging
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.core.auth_dependency import get_db, require_identity_webhook
from app.schemas.identity import IdentityEvent
from app.services.user_sync_service import UserSyncConflict, handle_identity_event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Identity Webhook"])


# ✅ IDENTITY PROVIDER USER SYNC
@router.post("/identity", dependencies=[Depends(require_identity_webhook)])
def identity_webhook(event: IdentityEvent, db: Session = Depends(get_db)):
    logger.info(f"Identity webhook received: type={event.type}, external_id={event.data.get('id')}")

    try:
        user = handle_identity_event(db, event)
    except ValidationError as e:
        logger.warning(f"Malformed identity event: type={event.type}, errors={e.error_count()}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Malformed user payload")
    except UserSyncConflict:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User data conflicts with an existing user")

    return {
        "success": True,
        "message": "Success",
        "user_id": user.id if user else None,
    }
