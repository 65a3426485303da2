"""
Admin routes (``/admin``): platform oversight, admin accounts and RBAC roles.

Oversight routes need an active admin; admin-account management and role
writes need the super admin; role reads need ``manage_admin_roles``.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from marketplace.api.auth import require_admin, require_permission, require_super_admin
from marketplace.api.encryption import decrypted_body, encrypted_response
from marketplace.api.models import AdminCreate, AdminStatusToggle, EntityRef, OrderNumberRef, RoleCreate, RoleName
from marketplace.database.core import admin_funcs

router = APIRouter(prefix="/admin", tags=["admin"])

manage_roles = require_permission("manage_admin_roles")


def _id_from(body: dict, *keys: str) -> str:
    for key in keys:
        if body.get(key):
            return body[key]
    return EntityRef.model_validate(body).id


# ----------------------------------------------------------------------------
# Platform oversight
# ----------------------------------------------------------------------------


@router.get("/dashboard")
async def dashboard(admin: dict = Depends(require_admin)):
    return encrypted_response(admin_funcs.admin_dashboard())


@router.get("/get_orders")
async def get_orders(status: Optional[str] = None, limit: int = 100, admin: dict = Depends(require_admin)):
    return encrypted_response(admin_funcs.platform_orders(status=status, limit=limit))


@router.post("/get_order_details")
async def get_order_details(body: dict = Depends(decrypted_body), admin: dict = Depends(require_admin)):
    data = OrderNumberRef.model_validate(body)
    return encrypted_response(admin_funcs.platform_order_details(order_no=data.order_no))


@router.get("/get_products")
async def get_products(status: Optional[str] = None, admin: dict = Depends(require_admin)):
    return encrypted_response(admin_funcs.platform_products(status=status))


@router.post("/get_product_details")
async def get_product_details(body: dict = Depends(decrypted_body), admin: dict = Depends(require_admin)):
    return encrypted_response(admin_funcs.platform_product_details(product_id=_id_from(body, "product_id")))


@router.get("/get_users")
async def get_users(
    user_type: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    admin: dict = Depends(require_permission("view_users")),
):
    return encrypted_response(admin_funcs.list_users(user_type=user_type, search=search, page=page, limit=limit))


# ----------------------------------------------------------------------------
# Admin accounts (super admin only)
# ----------------------------------------------------------------------------


@router.post("/create_admin")
async def create_admin(body: dict = Depends(decrypted_body), actor: dict = Depends(require_super_admin)):
    data = AdminCreate.model_validate(body)
    return encrypted_response(admin_funcs.create_admin(actor_id=actor["id"], fields=data.model_dump()), status_code=201)


@router.get("/get_admins")
async def get_admins(actor: dict = Depends(require_super_admin)):
    return encrypted_response(admin_funcs.list_admins())


@router.post("/get_admin")
async def get_admin(body: dict = Depends(decrypted_body), actor: dict = Depends(require_super_admin)):
    return encrypted_response(admin_funcs.get_admin(admin_id=_id_from(body, "admin_id")))


@router.post("/update_admin")
async def update_admin(body: dict = Depends(decrypted_body), actor: dict = Depends(require_super_admin)):
    fields = dict(body)
    admin_id = fields.pop("admin_id", None) or fields.pop("id", None)
    if not admin_id:
        raise HTTPException(status_code=400, detail="Admin ID is required")
    return encrypted_response(admin_funcs.update_admin(actor_id=actor["id"], admin_id=admin_id, fields=fields))


@router.post("/toggle_admin_status")
async def toggle_admin_status(body: dict = Depends(decrypted_body), actor: dict = Depends(require_super_admin)):
    data = AdminStatusToggle.model_validate(body)
    return encrypted_response(admin_funcs.toggle_admin_status(actor_id=actor["id"], admin_id=data.admin_id, is_active=data.is_active))


@router.post("/delete_admin")
async def delete_admin(body: dict = Depends(decrypted_body), actor: dict = Depends(require_super_admin)):
    return encrypted_response(admin_funcs.delete_admin(actor_id=actor["id"], admin_id=_id_from(body, "admin_id")))


# ----------------------------------------------------------------------------
# Roles & permissions
# ----------------------------------------------------------------------------


@router.post("/create_role")
async def create_role(body: dict = Depends(decrypted_body), actor: dict = Depends(require_super_admin)):
    data = RoleCreate.model_validate(body)
    return encrypted_response(admin_funcs.create_role(actor_id=actor["id"], fields=data.model_dump()), status_code=201)


@router.get("/get_roles")
async def get_roles(admin: dict = Depends(manage_roles)):
    return encrypted_response(admin_funcs.list_roles())


@router.post("/get_role")
async def get_role(body: dict = Depends(decrypted_body), admin: dict = Depends(manage_roles)):
    return encrypted_response(admin_funcs.get_role(role_id=_id_from(body, "role_id")))


@router.post("/update_role")
async def update_role(body: dict = Depends(decrypted_body), actor: dict = Depends(require_super_admin)):
    fields = dict(body)
    role_id = fields.pop("role_id", None) or fields.pop("id", None)
    return encrypted_response(admin_funcs.update_role(role_id=role_id, fields=fields))


@router.post("/delete_role")
async def delete_role(body: dict = Depends(decrypted_body), actor: dict = Depends(require_super_admin)):
    return encrypted_response(admin_funcs.delete_role(role_id=_id_from(body, "role_id")))


@router.get("/get_permissions")
async def get_permissions(admin: dict = Depends(manage_roles)):
    return encrypted_response(admin_funcs.available_permissions())


@router.post("/get_role_permissions")
async def get_role_permissions(body: dict = Depends(decrypted_body), admin: dict = Depends(manage_roles)):
    data = RoleName.model_validate(body)
    return encrypted_response(admin_funcs.role_permissions(role_name=data.role_name))
