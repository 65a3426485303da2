"""
Authentication and authorization dependencies.

The bearer token is read from the ``Authorization: Bearer`` header or, for
browser clients, the ``token`` cookie. Each guard resolves the user through
:func:`load_principal` and returns the principal dict to the route.
"""

from typing import Callable, Optional

from fastapi import Cookie, Depends, Header, HTTPException

from marketplace.api.utils import verify_token
from marketplace.database.core.admin_funcs import SUPER_ADMIN_REQUIRED
from marketplace.database.core.auth_funcs import load_principal


def bearer_token(authorization: Optional[str] = Header(None), cookie_token: Optional[str] = Cookie(None, alias="token")) -> Optional[str]:
    if authorization and authorization.startswith("Bearer "):
        return authorization.split(" ", 1)[1].strip()
    return cookie_token


def get_user_id(raw_token: Optional[str] = Depends(bearer_token)) -> str:
    if not raw_token:
        raise HTTPException(status_code=401, detail="Not authorized, no token")
    user_id = verify_token(raw_token)
    if not user_id:
        raise HTTPException(status_code=401, detail="Not authorized, token failed")
    return user_id


def optional_user_id(raw_token: Optional[str] = Depends(bearer_token)) -> Optional[str]:
    """Caller's id when a valid token is present; anonymous callers get None."""
    return verify_token(raw_token)


def get_current_principal(user_id: str = Depends(get_user_id)) -> dict:
    return load_principal(user_id=user_id)


def _role_guard(user_type: str, label: str) -> Callable:
    def guard(principal: dict = Depends(get_current_principal)) -> dict:
        if principal["user_type"] != user_type:
            raise HTTPException(status_code=403, detail=f"Access denied. {label} access only.")
        return principal

    return guard


require_supplier = _role_guard("supplier", "Supplier")
require_client = _role_guard("client", "Client")


def require_admin(principal: dict = Depends(get_current_principal)) -> dict:
    if not principal["is_admin"]:
        raise HTTPException(status_code=403, detail="Access denied. Admin privileges required.")
    if principal["is_deactivated"]:
        raise HTTPException(status_code=403, detail="Account is deactivated. Contact super admin.")
    return principal


def require_super_admin(principal: dict = Depends(get_current_principal)) -> dict:
    if not principal["is_super_admin"]:
        raise HTTPException(status_code=403, detail=SUPER_ADMIN_REQUIRED)
    return principal


def require_permission(*permissions: str, require_all: bool = True) -> Callable:
    """
    Guard factory for admin routes.

    Super admins pass every check; deactivated admins fail every check.

    Example
    -------
    >>> @router.get("/get_roles")
    ... async def get_roles(admin: dict = Depends(require_permission("manage_admin_roles"))):
    ...     ...
    """

    def guard(user_id: str = Depends(get_user_id)) -> dict:
        return load_principal(user_id=user_id, permissions=permissions, require_all=require_all)

    return guard
