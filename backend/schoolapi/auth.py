"""Authentication helpers and FastAPI security dependencies.

Requests carry a bearer JWT whose payload holds the caller's `userId` and
a `permissions` map (for example `{"timeTable": true}`). This module
decodes the token, exposes the payload as a dependency and builds
permission checks on top of it. Tokens are issued by the account service;
`create_access_token` exists for scripts and tests.
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt

from .config import settings

logger = logging.getLogger("schoolapi.auth")

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(user_id: int, permissions: Optional[dict] = None, expire_hours: Optional[int] = None) -> str:
    """Sign a token for `user_id` carrying the given permission flags."""
    hours = expire_hours if expire_hours is not None else settings.JWT_EXPIRE_HOURS
    expire = datetime.now(timezone.utc) + timedelta(hours=hours)
    payload = {"userId": user_id, "permissions": permissions or {}, "exp": int(expire.timestamp())}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and verify a JWT token.

    Returns the decoded payload on success or raises an HTTPException
    with status 401 on failure.
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail='token expired')
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail='invalid token')


def get_token_payload(credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme)) -> dict:
    """FastAPI dependency returning the decoded token of the request.

    Raises HTTPException(401) when the header is missing or the token
    does not carry a user id.
    """
    if credentials is None:
        raise HTTPException(status_code=401, detail='not authenticated')
    payload = decode_token(credentials.credentials)
    if payload.get('userId') is None:
        raise HTTPException(status_code=401, detail='invalid token payload')
    if not isinstance(payload.get('permissions'), dict):
        payload['permissions'] = {}
    return payload


def has_permission(payload: dict, permission: str) -> bool:
    return bool(payload.get('permissions', {}).get(permission))


def log_privilege_violation(request: Request, payload: dict) -> None:
    logger.warning(
        "privileges_violation %s",
        json.dumps(
            {
                "label": "Privileges violation",
                "message": f"Path: {request.url.path} By UserId {payload.get('userId')}",
            },
            ensure_ascii=True,
        ),
    )


def require_permission(permission: str):
    """Build a dependency that rejects callers lacking `permission`.

    The rejection is a bare 401 and a logged privilege violation naming
    the path and the user id.
    """
    def _check(request: Request, payload: dict = Depends(get_token_payload)) -> dict:
        if not has_permission(payload, permission):
            log_privilege_violation(request, payload)
            raise HTTPException(status_code=401)
        return payload
    return _check
