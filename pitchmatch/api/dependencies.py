import logging
from typing import Any, Dict

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from pitchmatch.database import crud
from pitchmatch.database.database import get_db
from pitchmatch.database.models import User
from pitchmatch.storage.client import get_supabase

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")

_UNAUTHORIZED = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or missing token",
    headers={"WWW-Authenticate": "Bearer"},
)


def verify_token(token: str = Depends(oauth2_scheme)) -> Dict[str, Any]:
    """
    Validate the bearer token against Supabase Auth and return the identity
    claims used to upsert the local user row.
    """
    client = get_supabase()
    if client is None:
        logger.error("Token verification requested but Supabase is not configured.")
        raise _UNAUTHORIZED

    try:
        response = client.auth.get_user(token)
    except Exception as e:
        logger.warning("Unauthorized access attempt: %s", str(e))
        raise _UNAUTHORIZED

    auth_user = getattr(response, "user", None)
    if auth_user is None:
        logger.warning("Unauthorized access attempt: token resolved to no user")
        raise _UNAUTHORIZED

    metadata = auth_user.user_metadata or {}
    return {
        "id": str(auth_user.id),
        "email": auth_user.email,
        "first_name": metadata.get("first_name"),
        "last_name": metadata.get("last_name"),
        "profile_image_url": metadata.get("avatar_url"),
    }


def get_current_user(
    claims: Dict[str, Any] = Depends(verify_token),
    db: Session = Depends(get_db),
) -> User:
    """Upsert the caller from their token claims; soft-deleted accounts are refused."""
    existing = crud.get_user(db, claims["id"])
    if existing is not None and existing.deleted_at is not None:
        logger.warning("Deleted user %s attempted to authenticate", existing.id)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account has been deleted")
    return crud.upsert_user(db, claims)


def require_role(*roles: str):
    """Dependency factory: the caller must hold one of `roles`."""

    def _checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized")
        return user

    return _checker
