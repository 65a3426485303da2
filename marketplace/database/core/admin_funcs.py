"""
Service-layer operations for the admin area: platform dashboard, unified
order and product views, user and admin management, and RBAC roles.

Super-admin checks take the acting admin's id (``actor_id``); permission
checks for the other routes happen in the API layer through
:func:`marketplace.database.core.auth_funcs.load_principal`.
"""

import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session

from marketplace.crypt.encrypt_decrypt import EncryptionDec
from marketplace.database.core.report_funcs import month_start
from marketplace.database.core.serializers import admin_to_dict, order_created_at, order_to_dict, order_total, product_to_dict, user_to_dict
from marketplace.database.daos.admin_role_dao import AdminRoleDao
from marketplace.database.daos.contact_dao import CustomerDao
from marketplace.database.daos.order_dao import ClientOrderDao, OrderDao
from marketplace.database.daos.product_dao import ProductDao
from marketplace.database.daos.user_dao import UserDao
from marketplace.database.entities.admin_role import PERMISSION_CATALOG, AdminRole, all_permission_keys, permission_label
from marketplace.database.entities.client_order import ClientOrder
from marketplace.database.entities.user import USER_TYPES, User
from marketplace.database.helpers.ids import to_uuid
from marketplace.database.helpers.timeutils import ensure_aware, isoformat, utcnow
from marketplace.database.helpers.transactionManagement import transactional
from marketplace.errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError

logger = logging.getLogger("uvicorn")

SUPER_ADMIN_REQUIRED = "Access denied. Super admin privileges required."
SYSTEM_ROLES = {
    "admin": {
        "display_name": "Administrator",
        "description": "Default role for platform administrators.",
        "default_permissions": ["view_users", "view_products", "view_orders", "view_reports", "view_analytics"],
    },
}


def trending(current: float, previous: float) -> float:
    """Percentage change from ``previous`` to ``current``, one decimal."""
    if previous == 0:
        return 100 if current > 0 else 0
    return round((current - previous) / previous * 100, 1)


def _stat(value, current, previous) -> dict:
    trend = trending(current, previous)
    return {"value": value, "trending_value": trend, "is_trending": trend > 0}


def _require_super_admin(session: Session, actor_id) -> User:
    actor = UserDao().fetchUserById(session=session, user_id=to_uuid(actor_id))
    if actor is None or not actor.is_super_admin:
        raise ForbiddenError(SUPER_ADMIN_REQUIRED)
    return actor


def _all_orders(session: Session, created_from=None, created_to=None) -> list:
    orders = OrderDao().fetchOrders(session=session, created_from=created_from, created_to=created_to)
    client_orders = ClientOrderDao().fetchClientOrders(session=session, created_from=created_from, created_to=created_to)
    return sorted(orders + client_orders, key=lambda o: ensure_aware(order_created_at(o)), reverse=True)


# ---------------------------------------------------------------------------
# Dashboard and platform views
# ---------------------------------------------------------------------------


@transactional
def admin_dashboard(session: Session) -> dict:
    """
    Platform totals with month-over-month trends, a 30-day order chart and
    the 20 most recent activities.
    """
    user_dao = UserDao()
    now = utcnow()
    this_month = month_start(now)
    last_month = month_start(now, 1)

    def users(user_type=None, start=None, end=None):
        return user_dao.countUsers(session=session, user_type=user_type, created_from=start, created_to=end)

    current_orders = _all_orders(session, this_month)
    previous_orders = _all_orders(session, last_month, this_month)
    all_orders = _all_orders(session)
    pending = [o for o in all_orders if o.status == "pending"]

    stats = {
        "total_clients": _stat(users("client"), users("client", this_month), users("client", last_month, this_month)),
        "total_suppliers": _stat(users("supplier"), users("supplier", this_month), users("supplier", last_month, this_month)),
        "total_revenue": _stat(
            round(sum(order_total(o) for o in current_orders), 2),
            sum(order_total(o) for o in current_orders),
            sum(order_total(o) for o in previous_orders),
        ),
        "pending_orders": _stat(
            len(pending),
            len([o for o in current_orders if o.status == "pending"]),
            len([o for o in previous_orders if o.status == "pending"]),
        ),
        "platform_growth": _stat(users(), users(None, this_month), users(None, last_month, this_month)),
    }

    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    chart_from = today - timedelta(days=29)
    per_day = {}
    for order in all_orders:
        created = ensure_aware(order_created_at(order))
        if created >= chart_from:
            day = created.date().isoformat()
            per_day[day] = per_day.get(day, 0) + 1
    sales_chart_data = []
    for offset in range(30):
        day = (chart_from + timedelta(days=offset)).date().isoformat()
        sales_chart_data.append({"date": day, "orders": per_day.get(day, 0)})

    activities = [
        {"label": f"New {u.user_type} registered", "detail": f"{u.username} joined the platform", "time": u.created_at, "type": "user_registration"}
        for u in user_dao.fetchUsers(session=session, limit=5)
    ]
    for order in all_orders[:10]:
        is_client = isinstance(order, ClientOrder)
        activities.append(
            {
                "label": "New client order placed" if is_client else "New order placed",
                "detail": f"Order {order.order_no} - Status: {order.status}",
                "time": order_created_at(order),
                "type": "client_order" if is_client else "order",
            }
        )
    activities.sort(key=lambda a: ensure_aware(a["time"]), reverse=True)
    for activity in activities:
        activity["time"] = isoformat(activity["time"])

    return {
        "message": "Admin dashboard data retrieved successfully",
        "stats": stats,
        "sales_chart_data": sales_chart_data,
        "activities": activities[:20],
    }


def _customer_names(session: Session, orders) -> dict:
    ids = list({o.customer_id for o in orders if hasattr(o, "customer_id")})
    return {c.id: c.customer_name for c in CustomerDao().fetchCustomersByIds(session=session, customer_ids=ids)}


def _supplier_names(session: Session, orders) -> dict:
    ids = list({o.supplier_id for o in orders})
    return {u.id: u.username for u in UserDao().fetchUsersByIds(session=session, user_ids=ids)}


@transactional
def platform_orders(session: Session, status: Optional[str] = None, limit: int = 100) -> dict:
    """Both order models newest first, through the shared order formatter."""
    now = utcnow()
    this_month = month_start(now)
    last_month = month_start(now, 1)
    orders = _all_orders(session)
    current = [o for o in orders if ensure_aware(order_created_at(o)) >= this_month]
    previous = [o for o in orders if last_month <= ensure_aware(order_created_at(o)) < this_month]
    listed = [o for o in orders if not status or o.status == status][:limit]
    customers = _customer_names(session, listed)
    suppliers = _supplier_names(session, listed)

    rows = []
    for order in listed:
        data = order_to_dict(order, customers.get(getattr(order, "customer_id", None)))
        data["supplier_name"] = suppliers.get(order.supplier_id, "Unknown Supplier")
        rows.append(data)

    stats = {
        "total_sales": _stat(
            round(sum(order_total(o) for o in orders), 2),
            sum(order_total(o) for o in current),
            sum(order_total(o) for o in previous),
        ),
        "orders": _stat(len(orders), len(current), len(previous)),
    }
    return {"message": "Admin orders data retrieved successfully", "stats": stats, "orders": rows}


@transactional
def platform_order_details(session: Session, order_no: str) -> dict:
    if not order_no:
        raise BadRequestError("Order number is required")
    match = next((o for o in _all_orders(session) if o.order_no == order_no), None)
    if match is None:
        raise NotFoundError("Order not found")
    data = order_to_dict(match, _customer_names(session, [match]).get(getattr(match, "customer_id", None)))
    supplier = UserDao().fetchUserById(session=session, user_id=match.supplier_id)
    data["supplier"] = {"id": str(match.supplier_id), "username": supplier.username if supplier else "", "email": supplier.email if supplier else ""}
    return {"message": "Order details retrieved successfully", "order": data}


@transactional
def platform_products(session: Session, status: Optional[str] = None) -> dict:
    product_dao = ProductDao()
    products = product_dao.fetchAllProducts(session=session)
    listed = [p for p in products if not status or p.status == status]
    suppliers = _supplier_names(session, listed)
    rows = []
    for product in listed[:100]:
        data = product_to_dict(product)
        data["supplier_name"] = suppliers.get(product.supplier_id, "Unknown Supplier")
        rows.append(data)
    stats = {
        "total_products": len(products),
        "active_products": len([p for p in products if p.status == "active"]),
        "draft_products": len([p for p in products if p.status == "draft"]),
        "out_of_stock": len([p for p in products if p.track_quantity and (p.quantity or 0) <= (p.min_qty or 0)]),
    }
    return {"message": "Admin products data retrieved successfully", "stats": stats, "products": rows}


@transactional
def platform_product_details(session: Session, product_id: str) -> dict:
    product = ProductDao().fetchProductById(session=session, product_id=to_uuid(product_id))
    if product is None:
        raise NotFoundError("Product not found")
    supplier = UserDao().fetchUserById(session=session, user_id=product.supplier_id)
    data = product_to_dict(product)
    data["supplier"] = {"id": str(product.supplier_id), "username": supplier.username if supplier else "", "email": supplier.email if supplier else ""}
    return {"message": "Product details retrieved successfully", "product": data}


@transactional
def list_users(session: Session, user_type: Optional[str] = None, search: Optional[str] = None, page: int = 1, limit: int = 20) -> dict:
    user_dao = UserDao()
    if user_type and user_type not in USER_TYPES:
        raise BadRequestError(f"Invalid user type: {user_type}")
    page = max(1, int(page or 1))
    limit = min(100, max(1, int(limit or 20)))
    users = user_dao.fetchUsers(session=session, user_type=user_type, search=search, limit=limit, offset=(page - 1) * limit)
    total = user_dao.countUsers(session=session, user_type=user_type, search=search)
    return {
        "message": "Users retrieved successfully",
        "users": [user_to_dict(u) for u in users],
        "pagination": {"page": page, "limit": limit, "total": total, "pages": (total + limit - 1) // limit},
    }


# ---------------------------------------------------------------------------
# Admin accounts
# ---------------------------------------------------------------------------


def _admin(session: Session, admin_id) -> User:
    if not admin_id:
        raise BadRequestError("Admin ID is required")
    admin = UserDao().fetchUserById(session=session, user_id=to_uuid(admin_id))
    if admin is None or not admin.is_admin:
        raise NotFoundError("Admin not found")
    return admin


def _check_permissions(permissions) -> list:
    permissions = list(permissions or [])
    unknown = sorted(set(permissions) - set(all_permission_keys()))
    if unknown:
        raise BadRequestError(f"Invalid permissions: {', '.join(unknown)}")
    return permissions


@transactional
def create_admin(session: Session, actor_id: str, fields: dict) -> dict:
    """
    Create a verified admin account. Super admin only.

    Without explicit ``permissions`` the admin gets the role's defaults.
    """
    user_dao = UserDao()
    actor = _require_super_admin(session, actor_id)
    for key in ("username", "email", "password"):
        if not fields.get(key):
            raise BadRequestError("Username, email and password are required")
    if user_dao.fetchUserByUsername(session=session, username=fields["username"]):
        raise ConflictError("Username already exists")
    if user_dao.fetchUserByEmail(session=session, email=fields["email"]):
        raise ConflictError("Email already exists")
    if not EncryptionDec().is_valid_password(fields["password"]):
        raise BadRequestError("Password must be at least 6 characters")

    role_name = (fields.get("role") or "admin").strip().lower()
    role = AdminRoleDao().fetchRoleByName(session=session, name=role_name)
    if role is None:
        raise BadRequestError(f"Role not found: {role_name}")
    permissions = _check_permissions(fields.get("permissions")) or list(role.default_permissions)

    admin = User(
        username=fields["username"],
        email=fields["email"],
        password=fields["password"],
        user_type="admin",
        agree_terms=True,
        is_admin=True,
        admin_role=role.name,
        admin_permissions=permissions,
        access_roles=["admin"],
        created_by=actor.id,
    )
    admin.is_email_verified = True
    admin.first_login = False
    if fields.get("is_active") is False:
        admin.is_deactivated = True
        admin.deactivated_at = utcnow()
        admin.deactivated_by = actor.id
    user_dao.createUser(session=session, user_data=admin)
    logger.info(f"Admin {admin.username} created by {actor.username}")
    return {"message": "Admin created successfully", "admin": admin_to_dict(admin)}


@transactional
def list_admins(session: Session) -> dict:
    admins = UserDao().fetchUsers(session=session, admins_only=True)
    return {"message": "Admins retrieved successfully", "admins": [admin_to_dict(a) for a in admins], "total": len(admins)}


@transactional
def get_admin(session: Session, admin_id: str) -> dict:
    return {"message": "Admin retrieved successfully", "admin": admin_to_dict(_admin(session, admin_id))}


@transactional
def update_admin(session: Session, actor_id: str, admin_id: str, fields: dict) -> dict:
    user_dao = UserDao()
    actor = _require_super_admin(session, actor_id)
    admin = _admin(session, admin_id)
    if admin.is_super_admin and admin.id != actor.id:
        raise ForbiddenError("Cannot modify another super admin")
    if fields.get("username") and fields["username"] != admin.username:
        if user_dao.fetchUserByUsername(session=session, username=fields["username"]):
            raise ConflictError("Username already exists")
        admin.username = fields["username"].strip()
    if fields.get("email") and fields["email"].strip().lower() != admin.email:
        if user_dao.fetchUserByEmail(session=session, email=fields["email"]):
            raise ConflictError("Email already exists")
        admin.email = fields["email"].strip().lower()
    if fields.get("role"):
        role = AdminRoleDao().fetchRoleByName(session=session, name=fields["role"])
        if role is None:
            raise BadRequestError(f"Role not found: {fields['role']}")
        admin.admin_role = role.name
        if fields.get("permissions") is None:
            admin.admin_permissions = list(role.default_permissions)
    if fields.get("permissions") is not None:
        admin.admin_permissions = _check_permissions(fields["permissions"])
    if fields.get("is_active") is not None:
        _set_active(admin, actor, bool(fields["is_active"]))
    return {"message": "Admin updated successfully", "admin": admin_to_dict(admin)}


def _set_active(admin: User, actor: User, is_active: bool) -> None:
    if admin.is_super_admin:
        raise ForbiddenError("Cannot modify super admin status")
    admin.is_deactivated = not is_active
    admin.deactivated_at = None if is_active else utcnow()
    admin.deactivated_by = None if is_active else actor.id


@transactional
def toggle_admin_status(session: Session, actor_id: str, admin_id: str, is_active: bool) -> dict:
    actor = _require_super_admin(session, actor_id)
    admin = _admin(session, admin_id)
    _set_active(admin, actor, bool(is_active))
    logger.info(f"Admin {admin.username} {'activated' if is_active else 'deactivated'} by {actor.username}")
    return {"message": f"Admin {'activated' if is_active else 'deactivated'} successfully", "admin_id": str(admin.id), "is_active": bool(is_active)}


@transactional
def delete_admin(session: Session, actor_id: str, admin_id: str) -> dict:
    """Remove admin rights from an account; the user itself stays."""
    actor = _require_super_admin(session, actor_id)
    admin = _admin(session, admin_id)
    if admin.is_super_admin:
        raise ForbiddenError("Cannot delete super admin")
    if admin.id == actor.id:
        raise ForbiddenError("Cannot delete your own account")
    admin.is_admin = False
    admin.user_type = "client"
    admin.access_roles = ["client"]
    return {"message": "Admin deleted successfully", "deleted_admin_id": str(admin.id)}


# ---------------------------------------------------------------------------
# Roles and permissions
# ---------------------------------------------------------------------------


def role_to_dict(role: AdminRole, users_count: Optional[int] = None) -> dict:
    data = {
        "id": str(role.id),
        "name": role.name,
        "display_name": role.display_name,
        "description": role.description,
        "default_permissions": list(role.default_permissions or []),
        "permissions_count": len(role.default_permissions or []),
        "is_system_role": role.is_system_role,
        "is_active": role.is_active,
        "created_by": str(role.created_by) if role.created_by else None,
        "created_at": isoformat(role.created_at),
        "updated_at": isoformat(role.updated_at),
    }
    if users_count is not None:
        data["users_count"] = users_count
    return data


def _role(session: Session, role_id) -> AdminRole:
    if not role_id:
        raise BadRequestError("Role ID is required")
    role = AdminRoleDao().fetchRoleById(session=session, role_id=to_uuid(role_id))
    if role is None:
        raise NotFoundError("Role not found")
    return role


@transactional
def create_role(session: Session, actor_id: str, fields: dict) -> dict:
    role_dao = AdminRoleDao()
    if not fields.get("name") or not fields.get("display_name"):
        raise BadRequestError("Role name and display name are required")
    if role_dao.fetchRoleByName(session=session, name=fields["name"]):
        raise ConflictError("Role name already exists")
    role = AdminRole(
        name=fields["name"],
        display_name=fields["display_name"],
        description=fields.get("description", ""),
        default_permissions=_check_permissions(fields.get("default_permissions")),
        created_by=to_uuid(actor_id),
    )
    if fields.get("is_active") is not None:
        role.is_active = bool(fields["is_active"])
    role_dao.createRole(session=session, role=role)
    return {"message": "Admin role created successfully", "role": role_to_dict(role)}


@transactional
def list_roles(session: Session) -> dict:
    roles = AdminRoleDao().fetchRoles(session=session)
    return {"message": "Roles retrieved successfully", "roles": [role_to_dict(r) for r in roles], "total": len(roles)}


@transactional
def get_role(session: Session, role_id: str) -> dict:
    role = _role(session, role_id)
    users_count = UserDao().countAdminsWithRole(session=session, role_name=role.name)
    return {"message": "Role details retrieved successfully", "role": role_to_dict(role, users_count)}


@transactional
def update_role(session: Session, role_id: str, fields: dict) -> dict:
    """Update a custom role; renaming it renames it on every assigned admin."""
    role_dao = AdminRoleDao()
    role = _role(session, role_id)
    if role.is_system_role:
        raise ForbiddenError("Cannot modify system role")
    new_name = (fields.get("name") or "").strip().lower()
    if new_name and new_name != role.name:
        if role_dao.fetchRoleByName(session=session, name=new_name):
            raise ConflictError("Role name already exists")
        for admin in UserDao().fetchUsers(session=session, admins_only=True):
            if admin.admin_role == role.name:
                admin.admin_role = new_name
        role.name = new_name
    if fields.get("display_name"):
        role.display_name = fields["display_name"].strip()
    if fields.get("description") is not None:
        role.description = fields["description"]
    if fields.get("default_permissions") is not None:
        role.default_permissions = _check_permissions(fields["default_permissions"])
    if fields.get("is_active") is not None:
        role.is_active = bool(fields["is_active"])
    return {"message": "Role updated successfully", "role": role_to_dict(role)}


@transactional
def delete_role(session: Session, role_id: str) -> dict:
    role = _role(session, role_id)
    if role.is_system_role:
        raise ForbiddenError("Cannot delete system role")
    assigned = UserDao().countAdminsWithRole(session=session, role_name=role.name)
    if assigned > 0:
        raise BadRequestError(f"Cannot delete role. {assigned} admin(s) are assigned to this role.")
    AdminRoleDao().deleteRole(session=session, role=role)
    return {"message": "Role deleted successfully", "deleted_role_id": str(role_id)}


def permission_catalog() -> list:
    return [
        {"category": category, "permissions": [{"key": key, "label": permission_label(key)} for key in keys]}
        for category, keys in PERMISSION_CATALOG.items()
    ]


def available_permissions() -> dict:
    catalog = permission_catalog()
    return {
        "message": "Available permissions retrieved successfully",
        "permissions": catalog,
        "total_categories": len(catalog),
        "total_permissions": sum(len(c["permissions"]) for c in catalog),
    }


@transactional
def role_permissions(session: Session, role_name: str) -> dict:
    if not role_name:
        raise BadRequestError("Role name is required")
    role = AdminRoleDao().fetchRoleByName(session=session, name=role_name)
    if role is None:
        raise NotFoundError("Role not found")
    catalog = permission_catalog()
    for category in catalog:
        for permission in category["permissions"]:
            permission["assigned"] = role.has_permission(permission["key"])
    return {
        "message": "Role permissions retrieved successfully",
        "role": {"id": str(role.id), "name": role.name, "display_name": role.display_name},
        "permissions": catalog,
        "assigned_permissions": list(role.default_permissions or []),
        "assigned_count": len(role.default_permissions or []),
    }


# ---------------------------------------------------------------------------
# Startup bootstrap
# ---------------------------------------------------------------------------


@transactional
def seed_system_roles(session: Session) -> None:
    role_dao = AdminRoleDao()
    for name, values in SYSTEM_ROLES.items():
        if role_dao.fetchRoleByName(session=session, name=name) is None:
            role_dao.createRole(session=session, role=AdminRole(name=name, is_system_role=True, **values))
            logger.info(f"Seeded system role {name}")


@transactional
def ensure_super_admin(session: Session, username: str, email: str, password: str) -> dict:
    """Create the super admin account unless the email is already registered."""
    user_dao = UserDao()
    existing = user_dao.fetchUserByEmail(session=session, email=email)
    if existing is not None:
        return admin_to_dict(existing)
    admin = User(
        username=username,
        email=email,
        password=password,
        user_type="admin",
        agree_terms=True,
        is_super_admin=True,
        admin_role="admin",
        admin_permissions=all_permission_keys(),
        access_roles=["admin"],
    )
    admin.is_email_verified = True
    user_dao.createUser(session=session, user_data=admin)
    logger.info(f"Super admin {admin.username} created")
    return admin_to_dict(admin)
