# shortlet/core/security.py

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict

from jose import jwt, JWTError
from passlib.context import CryptContext

from shortlet.core.config import settings
from shortlet.core.errors import AuthError

ROLE_USER = "user"
ROLE_AGENT = "agent"
ROLE_ADMIN = "admin"
ROLES = (ROLE_USER, ROLE_AGENT, ROLE_ADMIN)

# --------------------------------------
# Password hashing config
# --------------------------------------
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


# --------------------------------------
# Caller identity
# --------------------------------------

@dataclass(frozen=True)
class Identity:
    """Who is calling: the token subject and the role it was issued with."""

    subject_id: int
    role: str

    @property
    def is_guest(self) -> bool:
        return self.role == ROLE_USER


# --------------------------------------
# Tokens
# --------------------------------------
ACCESS = "access"
REFRESH = "refresh"


def _secret(token_type: str) -> str:
    return settings.JWT_SECRET_KEY if token_type == ACCESS else settings.JWT_REFRESH_SECRET_KEY


def _encode(identity: Identity, token_type: str, lifetime: timedelta) -> str:
    now = datetime.utcnow()
    claims = {
        "user_id": identity.subject_id,
        "role": identity.role,
        "type": token_type,
        "iat": now,
        "exp": now + lifetime,
    }
    return jwt.encode(claims, _secret(token_type), algorithm=settings.JWT_ALGORITHM)


def issue_tokens(identity: Identity) -> Dict[str, str]:
    """
    Fresh access/refresh pair for a signed-in user.
    """
    return {
        "access_token": _encode(
            identity, ACCESS, timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        ),
        "refresh_token": _encode(
            identity, REFRESH, timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
        ),
        "token_type": "bearer",
    }


def _decode(token: str, token_type: str) -> Identity:
    try:
        payload = jwt.decode(token, _secret(token_type), algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        raise AuthError("Invalid or expired token") from e

    if payload.get("type") != token_type:
        raise AuthError("Invalid token type")
    if payload.get("role") not in ROLES:
        raise AuthError("Invalid token role")
    try:
        subject_id = int(payload["user_id"])
    except (KeyError, TypeError, ValueError) as e:
        raise AuthError("Invalid token user id") from e
    return Identity(subject_id=subject_id, role=payload["role"])


def authenticate(token: str | None) -> Identity:
    """
    Resolve a bearer access token into an Identity, or raise AuthError.
    """
    if not token:
        raise AuthError("Authentication required")
    return _decode(token, ACCESS)


def authenticate_refresh(token: str) -> Identity:
    return _decode(token, REFRESH)
