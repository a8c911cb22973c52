"""Authentication helpers and FastAPI security dependencies.

This module provides utilities to decode JWT tokens, a dependency
`get_current_user` that validates the bearer token and returns the
corresponding `Profile`, and role gates built on top of it:
`require_editor` (admin or BCS), `require_admin` and `require_student`.

Token verification raises HTTPExceptions on failure so the helpers can
be used directly inside route dependencies.
"""

from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt
from sqlmodel import Session

from . import models, repositories
from .config import settings
from .database import engine
from .messages import t

bearer_scheme = HTTPBearer()


def decode_token(token: str) -> dict:
    """Decode and verify a JWT token.

    Returns the decoded payload on success or raises an HTTPException
    with status 401 on failure.
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail='token expired')
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail='invalid token')
    if not payload.get('user_id') or not payload.get('jti'):
        raise HTTPException(status_code=401, detail='invalid token payload')
    return payload


def get_token_payload(credentials: HTTPAuthorizationCredentials = Security(bearer_scheme)) -> dict:
    """Return the verified payload of a token that has not been signed out."""
    payload = decode_token(credentials.credentials)
    with Session(engine) as session:
        if repositories.TokenRepository(session).is_revoked(payload['jti']):
            raise HTTPException(status_code=401, detail='token revoked')
    return payload


def get_current_user(payload: dict = Depends(get_token_payload)) -> models.Profile:
    """FastAPI dependency that returns the authenticated profile.

    Raises HTTPException(401) when the token's profile no longer exists.
    """
    with Session(engine) as session:
        profile = repositories.ProfileRepository(session).get(payload['user_id'])
        if not profile:
            raise HTTPException(status_code=401, detail='user not found')
        return profile


def require_editor(user: models.Profile = Depends(get_current_user)) -> models.Profile:
    if user.role not in models.EDITOR_ROLES:
        raise HTTPException(status_code=403, detail=t("auth.editors_only"))
    return user


def require_admin(user: models.Profile = Depends(get_current_user)) -> models.Profile:
    if user.role != models.ROLE_ADMIN:
        raise HTTPException(status_code=403, detail=t("auth.admins_only"))
    return user


def require_student(user: models.Profile = Depends(get_current_user)) -> models.Profile:
    if user.role != models.ROLE_STUDENT:
        raise HTTPException(status_code=403, detail=t("auth.students_only"))
    return user
