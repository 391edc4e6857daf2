"""
Keeps internal user rows in sync with the identity provider.

Exactly one users row exists per identity provider user id; payments and
subscriptions hang off that row.
"""
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db.models.user import User, UserRole
from app.schemas.identity import IdentityEvent, IdentityUserData

logger = logging.getLogger(__name__)

SYNCED_EVENT_TYPES = ("user.created", "user.updated")


class UserSyncConflict(Exception):
    """The identity provider's data collides with another user row (e.g. a taken email)."""
    pass


def _commit_user(db: Session, user: User, external_id: str) -> None:
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"User sync conflict, unique field already taken: external_id={external_id}, error={e.orig}")
        raise UserSyncConflict(f"User data conflicts with an existing user: external_id={external_id}") from e
    db.refresh(user)


def upsert_user(db: Session, data: IdentityUserData) -> User:
    """
    Create or update the internal user for an identity provider user.

    Role and chef flag are only set on creation, so a profile update from the
    identity provider never resets a paid or admin role.

    Raises:
        UserSyncConflict: the email (or external id) belongs to another row
    """
    user = db.query(User).filter(User.external_id == data.id).first()
    email = data.primary_email()

    # Same person re-registered with the identity provider: rebind the existing row
    if not user and email:
        user = db.query(User).filter(User.email == email).first()
        if user:
            logger.info(f"Rebinding user to new external id: user_id={user.id}, external_id={data.id}")
            user.external_id = data.id

    if not user:
        user = User(
            external_id=data.id,
            name=data.display_name(),
            email=email,
            photo=data.image_url,
            role=UserRole.BASIC.value,
            chef="no",
        )
        db.add(user)
        _commit_user(db, user, data.id)
        logger.info(f"User created from identity provider: user_id={user.id}, external_id={data.id}")
        return user

    user.name = data.display_name()
    user.photo = data.image_url
    # Keep the stored email when the event carries none
    if email:
        user.email = email
    _commit_user(db, user, data.id)
    logger.info(f"User updated from identity provider: user_id={user.id}, external_id={data.id}")
    return user


def handle_identity_event(db: Session, event: IdentityEvent) -> Optional[User]:
    """
    Apply an identity provider webhook event.

    Returns:
        The synced user, or None for event types that are ignored
    """
    if event.type not in SYNCED_EVENT_TYPES:
        logger.info(f"Identity event ignored: type={event.type}")
        return None

    data = IdentityUserData.model_validate(event.data)
    return upsert_user(db, data)
