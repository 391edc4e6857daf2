import hmac
import logging
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlalchemy.orm import Session
from app.core import config
from app.db.session import SessionLocal
from app.db.models.user import User

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer()


def get_db():
    """Database session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_external_id(credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme)) -> str:
    """Identity provider user id (the token's `sub` claim) from a session JWT."""
    if not config.IDENTITY_JWT_KEY:
        logger.error("IDENTITY_JWT_KEY not configured - cannot authenticate requests")
        raise HTTPException(status_code=500, detail="Authentication is not configured")

    try:
        payload = jwt.decode(
            credentials.credentials,
            config.IDENTITY_JWT_KEY,
            algorithms=[config.IDENTITY_JWT_ALGORITHM],
            options={"verify_aud": False},
        )
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")

    external_id = payload.get("sub")
    if not external_id:
        raise HTTPException(status_code=401, detail="Invalid token")

    return external_id


def get_current_user_obj(
    external_id: str = Depends(get_current_external_id),
    db: Session = Depends(get_db)
) -> User:
    """Internal User row for the authenticated identity."""
    user = db.query(User).filter(User.external_id == external_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user


def require_identity_webhook(authorization: str = Header(None)) -> None:
    """Shared-secret check for identity provider webhooks."""
    if not config.IDENTITY_WEBHOOK_SECRET:
        logger.error("IDENTITY_WEBHOOK_SECRET not configured - rejecting identity webhook")
        raise HTTPException(status_code=500, detail="Identity webhook is not configured")

    expected = f"Bearer {config.IDENTITY_WEBHOOK_SECRET}"
    if not authorization or not hmac.compare_digest(authorization.encode("utf-8"), expected.encode("utf-8")):
        logger.warning("Identity webhook rejected: invalid authorization header")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing authorization header"
        )
