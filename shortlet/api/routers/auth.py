# shortlet/api/routers/auth.py
import logging
from typing import Dict, Any

from fastapi import APIRouter, status

from shortlet.api.dependencies import DbSession
from shortlet.core.errors import AuthError, Conflict
from shortlet.core.security import Identity, authenticate_refresh, issue_tokens, verify_password
from shortlet.db import crud_users
from shortlet.db.models import User
from shortlet.schemas.auth import RefreshRequest, Token
from shortlet.schemas.user import UserCreate, UserLogin, UserOut

logger = logging.getLogger(__name__)
router = APIRouter()


def _token_response(user: User) -> Dict[str, Any]:
    """
    { access_token, refresh_token, token_type, user }
    """
    tokens = issue_tokens(Identity(subject_id=user.id, role=user.role))
    return {**tokens, "user": UserOut.model_validate(user)}


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
async def register(payload: UserCreate, db: DbSession):
    existing = await crud_users.get_user_by_email(db, payload.email)
    if existing:
        raise Conflict("Email already registered")

    user = await crud_users.create_user(
        db=db,
        name=payload.name,
        email=payload.email,
        password=payload.password,
        phone=payload.phone,
        role=payload.role,
    )
    logger.info("registered user %s as %s", user.id, user.role)
    return _token_response(user)


@router.post("/login", response_model=Token)
async def login(payload: UserLogin, db: DbSession):
    user = await crud_users.get_user_by_email(db, payload.email)
    if not user or not verify_password(payload.password, user.hashed_password):
        raise AuthError("Invalid credentials")
    if not user.is_active:
        raise AuthError("Account is deactivated")
    return _token_response(user)


@router.post("/refresh", response_model=Token)
async def refresh(body: RefreshRequest, db: DbSession):
    identity = authenticate_refresh(body.refresh_token)

    # role may have changed since the refresh token was issued
    user = await crud_users.get_user(db, identity.subject_id)
    if not user or not user.is_active:
        raise AuthError("User not found")
    return _token_response(user)
