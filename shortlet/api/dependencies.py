# shortlet/api/dependencies.py
import logging
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from shortlet.core.config import Settings, get_settings
from shortlet.core.errors import AuthError, Forbidden
from shortlet.core.security import Identity, authenticate, ROLE_ADMIN
from shortlet.db import crud_users
from shortlet.db.crud_bookings import SqlBookingRepository
from shortlet.db.crud_properties import SqlPropertyStore
from shortlet.db.models import User
from shortlet.db.session import get_db
from shortlet.services.booking_lifecycle import BookingLifecycleManager
from shortlet.services.notifier import EmailNotifier, LoggingNotifier, Notifier

logger = logging.getLogger(__name__)
security = HTTPBearer(auto_error=False)

DbSession = Annotated[AsyncSession, Depends(get_db)]


async def get_current_user(
    db: DbSession,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> User:
    identity = authenticate(credentials.credentials if credentials else None)

    user = await crud_users.get_user(db, identity.subject_id)
    if user is None or not user.is_active:
        logger.info("token for unknown or inactive user %s", identity.subject_id)
        raise AuthError("User not found")
    return user


async def get_current_identity(user: User = Depends(get_current_user)) -> Identity:
    # role from the DB, so an admin role change applies without a new token
    return Identity(subject_id=user.id, role=user.role)


def require_role(role: str):
    async def dep(user: User = Depends(get_current_user)) -> User:
        # allow role OR admin to pass
        if user.role != role and user.role != ROLE_ADMIN:
            raise Forbidden("Insufficient permissions")
        return user

    return dep


def get_notifier(db: DbSession, settings: Settings = Depends(get_settings)) -> Notifier:
    if settings.SMTP_HOST:
        return EmailNotifier(db, settings)
    return LoggingNotifier()


def get_lifecycle_manager(
    db: DbSession,
    notifier: Notifier = Depends(get_notifier),
) -> BookingLifecycleManager:
    return BookingLifecycleManager(
        properties=SqlPropertyStore(db),
        bookings=SqlBookingRepository(db),
        notifier=notifier,
    )


CurrentUser = Annotated[User, Depends(get_current_user)]
CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]
LifecycleManager = Annotated[BookingLifecycleManager, Depends(get_lifecycle_manager)]
