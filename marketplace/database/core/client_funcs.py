"""
Client account area: dashboard figures, profile and security preferences.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from marketplace.database.daos.order_dao import ClientOrderDao
from marketplace.database.daos.settings_dao import ClientProfileDao
from marketplace.database.daos.user_dao import UserDao
from marketplace.database.entities.client_profile import PROFILE_FIELDS, SECURITY_FIELDS, ClientProfile
from marketplace.database.helpers.ids import to_uuid
from marketplace.database.helpers.timeutils import isoformat
from marketplace.database.helpers.transactionManagement import transactional
from marketplace.errors import BadRequestError, NotFoundError

logger = logging.getLogger("uvicorn")

OPEN_ORDER_STATUSES = ("pending", "processing", "shipped")
RECENT_PURCHASES = 10


@transactional
def get_client_dashboard(session: Session, client_id: str) -> dict:
    """
    Order figures for the client's home page.

    ``total_spent`` sums delivered orders; ``recent_purchases`` lists the
    latest orders that were not cancelled.
    """
    orders = ClientOrderDao().fetchClientOrders(session=session, client_id=to_uuid(client_id))
    delivered = [o for o in orders if o.status == "delivered"]
    recent = [o for o in orders if o.status != "cancelled"][:RECENT_PURCHASES]
    suppliers = {u.id: u for u in UserDao().fetchUsersByIds(session=session, user_ids=list({o.supplier_id for o in recent}))}
    return {
        "message": "Client dashboard data retrieved successfully",
        "current_orders": sum(1 for o in orders if o.status in OPEN_ORDER_STATUSES),
        "total_spent": round(sum(o.total for o in delivered), 2),
        "pending_orders": sum(1 for o in orders if o.status == "pending"),
        "completed_orders": len(delivered),
        "recent_purchases": [
            {
                "order_id": str(o.id),
                "order_no": o.order_no,
                "supplier_name": suppliers[o.supplier_id].username if o.supplier_id in suppliers else "Unknown Supplier",
                "purchase_date": isoformat(o.placed_at),
                "items_count": len(o.items or []),
                "total": o.total,
                "status": o.status,
            }
            for o in recent
        ],
    }


def _profile_data(profile: ClientProfile, email: str) -> dict:
    data = {field: getattr(profile, field) or "" for field in PROFILE_FIELDS}
    data["email"] = email
    return data


@transactional
def get_client_profile(session: Session, client_id: str) -> dict:
    user = UserDao().fetchUserById(session=session, user_id=to_uuid(client_id))
    if user is None:
        raise NotFoundError("User not found")
    profile = ClientProfileDao().fetchOrCreateProfile(session=session, user_id=user.id)
    return dict(message="Client profile retrieved successfully", **_profile_data(profile, user.email))


@transactional
def update_client_profile(session: Session, client_id: str, fields: dict, profile_img: Optional[str] = None) -> dict:
    """
    Update profile fields; ``email`` changes the account email.

    Raises
    ------
    BadRequestError
        If the new email belongs to another account.
    """
    user_dao = UserDao()
    user = user_dao.fetchUserById(session=session, user_id=to_uuid(client_id))
    if user is None:
        raise NotFoundError("User not found")
    email = (fields.get("email") or "").strip().lower()
    if email and email != user.email:
        existing = user_dao.fetchUserByEmail(session=session, email=email)
        if existing is not None and existing.id != user.id:
            raise BadRequestError("Email is already in use")
        user.email = email
    profile = ClientProfileDao().fetchOrCreateProfile(session=session, user_id=user.id)
    for field in PROFILE_FIELDS:
        if fields.get(field) is not None:
            setattr(profile, field, fields[field].strip())
    if profile_img:
        profile.profile_img = profile_img
    logger.info(f"Client {user.id} updated their profile")
    return dict(message="Profile updated successfully", profile=_profile_data(profile, user.email))


@transactional
def get_additional_settings(session: Session, client_id: str) -> dict:
    profile = ClientProfileDao().fetchOrCreateProfile(session=session, user_id=to_uuid(client_id))
    return dict(
        message="Additional security settings retrieved successfully", **{field: getattr(profile, field) for field in SECURITY_FIELDS}
    )


@transactional
def update_additional_settings(session: Session, client_id: str, fields: dict) -> dict:
    profile = ClientProfileDao().fetchOrCreateProfile(session=session, user_id=to_uuid(client_id))
    for field in SECURITY_FIELDS:
        if fields.get(field) is not None:
            setattr(profile, field, bool(fields[field]))
    return {"message": "Additional security settings updated successfully"}
