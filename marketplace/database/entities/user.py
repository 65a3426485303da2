"""
User ORM Model
==============

The ``User`` ORM model represents a marketplace account. It maps to the
``app_user`` table and carries authentication, verification, lockout and
admin RBAC state.

Key features
~~~~~~~~~~~~
- UUID primary key (``id``)
- Unique ``username`` (max 50) and ``email``
- ``user_type``: ``supplier``, ``service_provider``, ``client`` or ``admin``
- ``access_roles``: the roles the account may switch between (default ``["client"]``)
- Admin flags (``is_admin``, ``is_super_admin``, ``admin_role``,
  ``admin_permissions``, ``is_deactivated``)
- Login lockout after five failed attempts (30 minutes)
- Email verification (24h) and password reset (1h) tokens stored as SHA-256 hashes

Save hook
~~~~~~~~~
Before every insert/update :meth:`User.normalize_admin_fields` runs:
non-admins lose all admin fields, an admin without a role gets ``"admin"``,
and a super admin can never be deactivated.
"""

import uuid
from datetime import datetime, timedelta
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import JSON, TEXT, VARCHAR, Boolean, DateTime, Integer, Uuid, event
from sqlalchemy.ext.mutable import MutableList
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.database.config.connection_engine import declarativeBase
from marketplace.crypt.encrypt_decrypt import EncryptionDec
from marketplace.database.helpers.timeutils import ensure_aware, utcnow

USER_TYPES = ("supplier", "service_provider", "client", "admin")
MAX_LOGIN_ATTEMPTS = 5
LOCK_DURATION = timedelta(minutes=30)
EMAIL_VERIFICATION_TTL = timedelta(hours=24)
RESET_PASSWORD_TTL = timedelta(hours=1)


class User(declarativeBase):
    """
    ORM model for the `app_user` table.

    Attributes
    ----------
    id : UUID
        Primary key.
    username : str
        Unique display name (max 50 chars).
    email : str
        Unique, lower-cased email address.
    password : str
        bcrypt hash of the password.
    user_type : str
        Active role of the account.
    is_admin, is_super_admin : bool
        Admin flags. A super admin passes every permission check.
    admin_role : str | None
        Name of the assigned :class:`AdminRole`.
    admin_permissions : list[str]
        Permission keys granted to the admin.
    is_deactivated : bool
        Deactivated admins fail every permission check and cannot log in.
    """

    __tablename__ = "app_user"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)
    """Primary key. UUID of the user."""

    username: Mapped[str] = mapped_column(VARCHAR(50), nullable=False, unique=True)
    """Unique username (max length 50)."""

    email: Mapped[str] = mapped_column(VARCHAR(255), nullable=False, unique=True)
    """Unique email address."""

    password: Mapped[str] = mapped_column(TEXT, nullable=False)
    """bcrypt-hashed password."""

    user_type: Mapped[str] = mapped_column(VARCHAR(32), nullable=False)
    """One of ``USER_TYPES``."""

    agree_terms: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    company: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)

    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_super_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    admin_role: Mapped[Optional[str]] = mapped_column(VARCHAR(50), nullable=True)
    admin_permissions: Mapped[list] = mapped_column(MutableList.as_mutable(JSON), nullable=False, default=list)
    is_deactivated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deactivated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    deactivated_by: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)
    created_by: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)

    last_login: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    login_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    locked_until: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    first_login: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    """True until the first successful login has been reported to the client."""

    access_roles: Mapped[list] = mapped_column(MutableList.as_mutable(JSON), nullable=False, default=list)
    """Roles the account may switch between."""

    email_verification_token: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    email_verification_expire: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    reset_password_token: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    reset_password_expire: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __init__(
        self,
        username: str,
        email: str,
        password: str,
        user_type: str = "client",
        agree_terms: bool = False,
        company: Optional[str] = None,
        is_admin: bool = False,
        is_super_admin: bool = False,
        admin_role: Optional[str] = None,
        admin_permissions: Optional[list] = None,
        access_roles: Optional[list] = None,
        created_by: Optional[UUID] = None,
    ):
        """
        Initialize a new User object.

        Parameters
        ----------
        username : str
            Unique username.
        email : str
            Email address (stored lower-cased).
        password : str
            Password hash. Hashing happens in the DAO.
        user_type : str, optional
            Initial role; defaults to ``"client"``.
        access_roles : list[str] | None, optional
            Switchable roles; defaults to ``[user_type]``.
        """
        now = utcnow()
        self.id = uuid.uuid4()
        self.username = username.strip()
        self.email = email.strip().lower()
        self.password = password
        self.user_type = user_type
        self.agree_terms = agree_terms
        self.is_email_verified = False
        self.company = company
        self.is_admin = is_admin or is_super_admin or user_type == "admin"
        self.is_super_admin = is_super_admin
        self.admin_role = admin_role
        self.admin_permissions = list(admin_permissions or [])
        self.is_deactivated = False
        self.created_by = created_by
        self.login_attempts = 0
        self.first_login = True
        self.access_roles = list(access_roles or [user_type])
        self.created_at = now
        self.updated_at = now
        self.normalize_admin_fields()

    def normalize_admin_fields(self) -> None:
        """Apply the admin-field rules enforced on every save."""
        if self.is_super_admin:
            self.is_admin = True
            self.is_deactivated = False
            self.deactivated_at = None
            self.deactivated_by = None
        if self.is_admin:
            if not self.admin_role and not self.is_super_admin:
                self.admin_role = "admin"
        else:
            self.admin_role = None
            self.admin_permissions = []
            self.is_deactivated = False
            self.deactivated_at = None
            self.deactivated_by = None

    def is_active_admin(self) -> bool:
        return bool(self.is_admin and not self.is_deactivated)

    def has_permission(self, permission: str) -> bool:
        """
        Check a single permission.

        Super admins hold every permission; deactivated accounts hold none.
        """
        if self.is_deactivated:
            return False
        if self.is_super_admin:
            return True
        return permission in (self.admin_permissions or [])

    def has_all_permissions(self, permissions: Iterable[str]) -> bool:
        return all(self.has_permission(p) for p in permissions)

    def has_any_permission(self, permissions: Iterable[str]) -> bool:
        return any(self.has_permission(p) for p in permissions)

    def is_locked(self) -> bool:
        locked_until = ensure_aware(self.locked_until)
        return bool(locked_until and locked_until > utcnow())

    def track_login_attempt(self, success: bool) -> None:
        """
        Record a login attempt.

        A success clears the counter and lock. The fifth consecutive failure
        locks the account for 30 minutes.
        """
        if success:
            self.login_attempts = 0
            self.locked_until = None
            return
        self.login_attempts = (self.login_attempts or 0) + 1
        if self.login_attempts >= MAX_LOGIN_ATTEMPTS:
            self.locked_until = utcnow() + LOCK_DURATION

    def update_last_login(self) -> None:
        self.last_login = utcnow()

    def get_email_verification_token(self) -> str:
        """Create a verification token, store its hash and return the raw token."""
        enc = EncryptionDec()
        raw = enc.generate_token()
        self.email_verification_token = enc.hash_token(raw)
        self.email_verification_expire = utcnow() + EMAIL_VERIFICATION_TTL
        return raw

    def get_reset_password_token(self) -> str:
        """Create a password reset token, store its hash and return the raw token."""
        enc = EncryptionDec()
        raw = enc.generate_token()
        self.reset_password_token = enc.hash_token(raw)
        self.reset_password_expire = utcnow() + RESET_PASSWORD_TTL
        return raw

    def __str__(self) -> str:
        return f"User: id:{self.id}, username: {self.username}, type: {self.user_type}"


@event.listens_for(User, "before_insert")
@event.listens_for(User, "before_update")
def _user_before_save(mapper, connection, target: User) -> None:
    target.normalize_admin_fields()
    target.updated_at = utcnow()
