"""
AdminRole ORM Model
===================

Named bundles of admin permissions (``admin_role`` table) plus the static
permission catalog every role and admin draws from.

Key features
~~~~~~~~~~~~
- Unique ``name`` (max 50) with a human-readable ``display_name``
- ``default_permissions`` copied onto admins assigned to the role
- ``is_system_role`` roles cannot be deleted
- ``PERMISSION_CATALOG``: permission keys grouped by category
"""

import uuid
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import JSON, TEXT, VARCHAR, Boolean, DateTime, Uuid, event
from sqlalchemy.ext.mutable import MutableList
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.database.config.connection_engine import declarativeBase
from marketplace.database.helpers.timeutils import utcnow

PERMISSION_CATALOG: Dict[str, List[str]] = {
    "User Management": ["view_users", "create_users", "edit_users", "delete_users", "manage_user_roles"],
    "Admin Management": ["view_admins", "create_admins", "edit_admins", "delete_admins", "manage_admin_roles"],
    "Product Management": ["view_products", "create_products", "edit_products", "delete_products", "manage_product_categories"],
    "Service Management": ["view_services", "create_services", "edit_services", "delete_services", "approve_services"],
    "Order Management": ["view_orders", "create_orders", "edit_orders", "delete_orders", "refund_orders", "manage_order_status"],
    "Project Management": ["view_projects", "create_projects", "edit_projects", "delete_projects", "approve_projects"],
    "Financial Management": ["view_financials", "manage_payments", "view_reports", "export_data"],
    "System Management": ["system_settings", "backup_restore", "view_logs", "manage_notifications"],
    "Content Management": ["manage_content", "manage_policies", "manage_support_tickets"],
    "Analytics": ["view_analytics", "view_advanced_reports", "export_analytics"],
    "Communication": ["send_notifications", "manage_announcements", "view_messages"],
    "Security": ["view_security_logs", "manage_security_settings", "audit_system"],
}
"""Every grantable admin permission, grouped by category."""


def all_permission_keys() -> List[str]:
    return [key for keys in PERMISSION_CATALOG.values() for key in keys]


def permission_label(key: str) -> str:
    """``"view_users"`` -> ``"View Users"``."""
    return key.replace("_", " ").title()


class AdminRole(declarativeBase):
    """
    ORM model for the `admin_role` table.

    Attributes
    ----------
    name : str
        Unique machine name, stored lower-cased.
    default_permissions : list[str]
        Permission keys granted to admins assigned to this role.
    is_system_role : bool
        Protected from deletion.
    created_by : UUID | None
        Admin that created the role.
    """

    __tablename__ = "admin_role"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)
    name: Mapped[str] = mapped_column(VARCHAR(50), nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(VARCHAR(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    default_permissions: Mapped[list] = mapped_column(MutableList.as_mutable(JSON), nullable=False, default=list)
    is_system_role: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_by: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __init__(
        self,
        name: str,
        display_name: str,
        description: Optional[str] = None,
        default_permissions: Optional[list] = None,
        is_system_role: bool = False,
        created_by: Optional[UUID] = None,
    ):
        now = utcnow()
        self.id = uuid.uuid4()
        self.name = name.strip().lower()
        self.display_name = display_name.strip()
        self.description = description
        self.default_permissions = list(default_permissions or [])
        self.is_system_role = is_system_role
        self.is_active = True
        self.created_by = created_by
        self.created_at = now
        self.updated_at = now

    def has_permission(self, permission: str) -> bool:
        return permission in (self.default_permissions or [])

    def add_permission(self, permission: str) -> None:
        if permission not in self.default_permissions:
            self.default_permissions.append(permission)

    def remove_permission(self, permission: str) -> None:
        if permission in self.default_permissions:
            self.default_permissions.remove(permission)


@event.listens_for(AdminRole, "before_update")
def _role_before_update(mapper, connection, target: AdminRole) -> None:
    target.updated_at = utcnow()
