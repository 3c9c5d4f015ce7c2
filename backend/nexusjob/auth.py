"""Bearer tokens issued by the identity provider.

A token is ``base64url("<user_id>:<expires_at>:<nonce>:<signature>")`` where the
signature is an HMAC-SHA256 of the first three fields under
``settings.auth_secret``. The backend only verifies tokens and resolves the
profile row; sign-up and sign-in live with the provider.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets
import time

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from nexusjob.config import settings
from nexusjob.database import get_db
from nexusjob.models.user import User, UserRole


security = HTTPBearer(auto_error=False)


def _sign(claims: str) -> str:
    return hmac.new(settings.auth_secret.encode("utf-8"), claims.encode("utf-8"), hashlib.sha256).hexdigest()


def create_access_token(user_id: int, ttl_seconds: int | None = None) -> str:
    ttl = settings.token_ttl_seconds if ttl_seconds is None else ttl_seconds
    claims = f"{user_id}:{int(time.time()) + ttl}:{secrets.token_hex(6)}"
    raw = f"{claims}:{_sign(claims)}"
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("utf-8").rstrip("=")


def decode_access_token(token: str) -> int | None:
    """Return the user id of a valid, unexpired token, otherwise ``None``."""
    if not token:
        return None
    try:
        raw = base64.urlsafe_b64decode(token + "=" * (-len(token) % 4)).decode("utf-8")
        claims, signature = raw.rsplit(":", 1)
        user_id_str, expires_str, _nonce = claims.split(":")
        user_id, expires_at = int(user_id_str), int(expires_str)
    except (ValueError, UnicodeDecodeError):
        return None

    if not hmac.compare_digest(_sign(claims), signature):
        return None
    if expires_at < int(time.time()):
        return None
    return user_id


def resolve_token_user(db: Session, token: str | None) -> User | None:
    user_id = decode_access_token(token or "")
    if user_id is None:
        return None
    return db.query(User).filter(User.id == user_id, User.is_active == True).first()  # noqa: E712


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")

    user = resolve_token_user(db, credentials.credentials)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")
    return user


def _require_role(user: User, role: UserRole, detail: str) -> User:
    if user.role != role.value:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
    return user


def get_current_employer(current_user: User = Depends(get_current_user)) -> User:
    return _require_role(current_user, UserRole.EMPLOYER, "Employer account required")


def get_current_seeker(current_user: User = Depends(get_current_user)) -> User:
    return _require_role(current_user, UserRole.SEEKER, "Job seeker account required")
