"""
Service-layer operations for accounts: signup, login, email verification,
password reset and role switching.

All functions are wrapped with the `@transactional` decorator, which manages
SQLAlchemy sessions and transactions automatically. Each function accepts (and
uses) an injected `session: Session` provided by the decorator; callers pass
every other argument by keyword.
"""

import logging
from functools import partial
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from marketplace.crypt.encrypt_decrypt import EncryptionDec
from marketplace.database.core import mailer
from marketplace.database.core.serializers import admin_to_dict, user_to_dict
from marketplace.database.daos.user_dao import UserDao
from marketplace.database.entities.user import User
from marketplace.database.helpers.ids import to_uuid
from marketplace.database.helpers.timeutils import ensure_aware, utcnow
from marketplace.database.helpers.transactionManagement import after_commit, transactional
from marketplace.errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError, UnauthorizedError

logger = logging.getLogger("uvicorn")

SIGNUP_USER_TYPES = ("supplier", "service_provider", "client")


def _send_verification(email: str, token: str) -> None:
    try:
        mailer.send_verification_email(email=email, token=token)
    except Exception as e:
        logger.error(f"Verification email to {email} failed: {e}")


@transactional
def signup_user(session: Session, username: str, email: str, password: str, user_type: str = "client", agree_terms: bool = False) -> dict:
    """
    Create an account and issue an email verification token.

    Returns
    -------
    dict
        ``{"message", "user"}``.

    Raises
    ------
    ConflictError
        If the email or the username is already registered.
    BadRequestError
        If the password is too short or the user type cannot self-register.
    """
    user_dao = UserDao()
    enc = EncryptionDec()
    if user_type not in SIGNUP_USER_TYPES:
        raise BadRequestError("Invalid user type")
    if user_dao.fetchUserByEmail(session=session, email=email) or user_dao.fetchUserByUsername(session=session, username=username):
        raise ConflictError("User already exists")
    if not enc.is_valid_password(password):
        raise BadRequestError("Password must be at least 6 characters")

    user = User(username=username, email=email, password=password, user_type=user_type, agree_terms=agree_terms)
    token = user.get_email_verification_token()
    user_dao.createUser(session=session, user_data=user)
    after_commit(partial(_send_verification, user.email, token))
    return {"message": "Registration successful!", "user": user_to_dict(user)}


@transactional
def login_user(session: Session, email: str, password: str) -> dict:
    """
    Authenticate by email and password.

    Returns
    -------
    dict
        ``{"user_id", "user_type", "user_data"}``; the router signs the JWT.

    Raises
    ------
    UnauthorizedError
        Unknown email, wrong password or a locked account.
    ForbiddenError
        The account is a deactivated admin.
    """
    user_dao = UserDao()
    enc = EncryptionDec()
    user = user_dao.fetchUserByEmail(session=session, email=email)
    if user is None:
        raise UnauthorizedError("Invalid credentials")
    if user.is_locked():
        raise UnauthorizedError("Account is temporarily locked due to too many failed login attempts")
    if not enc.check_passwords(password, user.password):
        user.track_login_attempt(success=False)
        # the failed attempt persists even though the call raises
        session.commit()
        raise UnauthorizedError("Invalid credentials")
    if user.is_admin and user.is_deactivated:
        raise ForbiddenError("Account has been deactivated")

    user.track_login_attempt(success=True)
    is_first_login = not user.first_login
    if is_first_login:
        user.first_login = True
    user.update_last_login()
    return {
        "user_id": str(user.id),
        "user_type": user.user_type,
        "user_data": {
            "id": str(user.id),
            "email": user.email,
            "username": user.username,
            "first_login": is_first_login,
            "access_roles": list(user.access_roles or []),
            "is_company": bool(user.company),
            "is_verified": True if user.user_type == "admin" else user.is_email_verified,
            "is_admin": user.is_admin,
            "is_super_admin": user.is_super_admin,
        },
    }


@transactional
def verify_email(session: Session, token: str) -> dict:
    user_dao = UserDao()
    if not token:
        raise BadRequestError("Invalid verification link")
    user = user_dao.fetchUserByVerificationToken(session=session, token_hash=EncryptionDec().hash_token(token))
    expire = ensure_aware(user.email_verification_expire) if user else None
    if user is None or expire is None or expire < utcnow():
        raise BadRequestError("Invalid or expired verification link")
    user.is_email_verified = True
    user.email_verification_token = None
    user.email_verification_expire = None
    return {"message": "Email verified successfully"}


@transactional
def resend_verification_email(session: Session, email: str) -> dict:
    user_dao = UserDao()
    if not email:
        raise BadRequestError("Email is required")
    user = user_dao.fetchUserByEmail(session=session, email=email)
    if user is None:
        raise NotFoundError("User not found")
    if user.is_email_verified:
        return {"message": "Email is already verified"}
    token = user.get_email_verification_token()
    mailer.send_verification_email(email=user.email, token=token)
    return {"message": "Verification email sent"}


@transactional
def forgot_password(session: Session, email: str) -> dict:
    user_dao = UserDao()
    user = user_dao.fetchUserByEmail(session=session, email=email)
    if user is None:
        raise NotFoundError("User not found")
    token = user.get_reset_password_token()
    mailer.send_password_reset_email(email=user.email, token=token)
    return {"message": "Password reset email sent"}


@transactional
def reset_password(session: Session, token: str, password: str) -> dict:
    user_dao = UserDao()
    enc = EncryptionDec()
    if not token:
        raise BadRequestError("Invalid reset token")
    user = user_dao.fetchUserByResetToken(session=session, token_hash=enc.hash_token(token))
    expire = ensure_aware(user.reset_password_expire) if user else None
    if user is None or expire is None or expire < utcnow():
        raise BadRequestError("Invalid or expired reset token")
    if not enc.is_valid_password(password):
        raise BadRequestError("Password must be at least 6 characters")
    user.password = enc.hash_password(text=password)
    user.reset_password_token = None
    user.reset_password_expire = None
    user.login_attempts = 0
    user.locked_until = None
    return {"message": "Password reset successful"}


@transactional
def update_password(session: Session, user_id: str, current_password: str, new_password: str) -> dict:
    user_dao = UserDao()
    enc = EncryptionDec()
    user = user_dao.fetchUserById(session=session, user_id=to_uuid(user_id))
    if user is None:
        raise NotFoundError("User not found")
    if not enc.check_passwords(current_password, user.password):
        raise BadRequestError("Current password is incorrect")
    if not enc.is_valid_password(new_password):
        raise BadRequestError("Password must be at least 6 characters")
    user.password = enc.hash_password(text=new_password)
    return {"message": "Password updated successfully"}


@transactional
def get_current_user(session: Session, user_id: str) -> dict:
    user = UserDao().fetchUserById(session=session, user_id=to_uuid(user_id))
    if user is None:
        raise NotFoundError("User not found")
    return admin_to_dict(user) if user.is_admin else user_to_dict(user)


@transactional
def become_role(session: Session, user_id: str, role: str) -> dict:
    """Grant ``supplier`` or ``service_provider`` access to an existing account."""
    user = UserDao().fetchUserById(session=session, user_id=to_uuid(user_id))
    if user is None:
        raise NotFoundError("User not found")
    if role not in ("supplier", "service_provider"):
        raise BadRequestError("Invalid role")
    if role in (user.access_roles or []):
        raise BadRequestError(f"User already has {role} access")
    user.access_roles.append(role)
    return {"message": f"Successfully became a {role.replace('_', ' ')}", "user": {"access_roles": list(user.access_roles)}}


@transactional
def switch_role(session: Session, user_id: str, role: str) -> dict:
    user = UserDao().fetchUserById(session=session, user_id=to_uuid(user_id))
    if user is None:
        raise NotFoundError("User not found")
    if role not in (user.access_roles or []):
        raise ForbiddenError(f"You don't have access to {role} role. Please register for this role first.")
    user.user_type = role
    logger.info(f"User {user.username} switched to role: {role}")
    return {"message": f"Successfully switched to {role} role", "user": user_to_dict(user)}


@transactional
def load_principal(session: Session, user_id: str, permissions: Optional[Iterable[str]] = None, require_all: bool = True) -> dict:
    """
    Resolve the authenticated user for a request.

    Parameters
    ----------
    user_id : str
        The ``sub`` claim of a verified JWT.
    permissions : Iterable[str] | None
        Admin permissions the route requires.
    require_all : bool
        Whether every listed permission is needed or just one of them.

    Raises
    ------
    UnauthorizedError
        The user no longer exists.
    ForbiddenError
        Deactivated admin, or a required permission is missing.
    """
    user = UserDao().fetchUserById(session=session, user_id=to_uuid(user_id))
    if user is None:
        raise UnauthorizedError("User not found")
    if permissions is not None:
        permissions = list(permissions)
        if not user.is_admin:
            raise ForbiddenError("Access denied. Admin privileges required.")
        if user.is_deactivated:
            raise ForbiddenError("Account is deactivated. Contact super admin.")
        if require_all:
            missing = [p for p in permissions if not user.has_permission(p)]
            if missing:
                label = "Required permission" if len(permissions) == 1 else "Missing permissions"
                raise ForbiddenError(f"Access denied. {label}: {', '.join(missing)}")
        elif not user.has_any_permission(permissions):
            raise ForbiddenError(f"Access denied. Requires any of: {', '.join(permissions)}")
    return {
        "id": str(user.id),
        "username": user.username,
        "email": user.email,
        "user_type": user.user_type,
        "access_roles": list(user.access_roles or []),
        "is_admin": user.is_admin,
        "is_super_admin": user.is_super_admin,
        "is_deactivated": user.is_deactivated,
        "admin_permissions": list(user.admin_permissions or []),
    }
