"""
Session tokens for marketplace accounts.

A session is a signed JWT whose ``sub`` is the user id and whose
``user_type`` mirrors the account's active role at login time. Browser
clients receive it as the HttpOnly ``token`` cookie; API clients and the
chat socket send it as ``Authorization: Bearer`` or ``?token=``.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Response
from jose import JWTError, jwt

from marketplace.database.config.config import settings

logger = logging.getLogger("uvicorn")

SESSION_COOKIE = "token"


def issue_access_token(user_id: str, user_type: str) -> str:
    """Sign a session token for ``user_id`` valid for ``ACCESS_TOKEN_EXPIRE_MINUTES``."""
    expires_at = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {"sub": str(user_id), "user_type": user_type, "exp": int(expires_at.timestamp())}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: Optional[str]) -> Optional[str]:
    """Return the user id of a valid, unexpired session token, else None."""
    if not token:
        return None
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.info(f"Rejected token: {e}")
        return None
    return claims.get("sub")


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE,
        value=token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=False,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE)
