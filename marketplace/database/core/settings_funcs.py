"""
Supplier store settings: store details, taxes, return rules, policies,
checkout and contact pages, the supplier profile and account recovery
contacts.

Every page is read with its defaults filled in and updated by merging only
the keys the client sent. The settings record is created on first access.
"""

import logging
import uuid
from functools import partial
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from marketplace.crypt.encrypt_decrypt import EncryptionDec
from marketplace.database.core import mailer
from marketplace.database.daos.product_dao import ProductDao
from marketplace.database.daos.settings_dao import SupplierSettingsDao
from marketplace.database.daos.site_builder_dao import SiteBuilderDao
from marketplace.database.daos.user_dao import UserDao
from marketplace.database.entities.supplier_settings import (
    FINAL_SALE_ITEMS,
    POLICY_KINDS,
    RETURN_SHIPPING_COSTS,
    UNIT_SYSTEMS,
    WEIGHT_UNITS,
    SupplierSettings,
    default_checkout_settings,
    default_contact_info,
    default_profile,
    default_return_rules,
    default_store_details,
    default_tax_details,
)
from marketplace.database.helpers.ids import to_uuid
from marketplace.database.helpers.timeutils import ensure_aware, utcnow
from marketplace.database.helpers.transactionManagement import after_commit, transactional
from marketplace.errors import BadRequestError, NotFoundError

logger = logging.getLogger("uvicorn")

POLICY_TITLES = {
    "return_and_refund": "Return and refund policy",
    "privacy_policy": "Privacy policy",
    "terms_of_services": "Terms of service",
    "shipping_policy": "Shipping policy",
}
# global_data key -> store_details key
GLOBAL_STORE_KEYS = {"store_logo": "logo", "store_name": "store_name", "email": "email", "currency": "display_currency", "time_zone": "time_zone"}
GLOBAL_TAX_KEYS = ("is_auto_apply_tax", "default_tax_rate", "reg_number")


def _settings(session: Session, supplier_id: str) -> SupplierSettings:
    return SupplierSettingsDao().fetchOrCreateSettings(session=session, supplier_id=to_uuid(supplier_id))


def _page(stored: Optional[dict], defaults: dict) -> dict:
    page = dict(defaults)
    page.update(stored or {})
    return page


def _merge(stored: dict, fields: dict, keys: Iterable[str]) -> None:
    stored.update({key: value for key, value in fields.items() if key in keys and value is not None})


def _check_choice(value, choices, label: str) -> None:
    if value is not None and value not in choices:
        raise BadRequestError(f"Invalid {label}: {value}")


def _sale_item_ids(sale_items: list) -> List[str]:
    """Accept bare ids or product objects carrying ``id``/``_id``."""
    ids = []
    for item in sale_items:
        if isinstance(item, dict):
            item = item.get("id") or item.get("_id")
        if item:
            ids.append(str(item))
    return ids


def _send_recovery_verification(email: str, token: str) -> None:
    try:
        mailer.send_recovery_email_verification(email=email, token=token)
    except Exception as e:
        logger.error(f"Recovery email verification to {email} failed: {e}")


# ----------------------------------------------------------------------------
# Store details & global data
# ----------------------------------------------------------------------------


@transactional
def get_store_details(session: Session, supplier_id: str) -> dict:
    settings = _settings(session, supplier_id)
    return {"message": "Store details retrieved successfully", "store_data": _page(settings.store_details, default_store_details())}


@transactional
def update_store_details(session: Session, supplier_id: str, fields: dict) -> dict:
    _check_choice(fields.get("unit_system"), UNIT_SYSTEMS, "unit system")
    _check_choice(fields.get("weight_unit"), WEIGHT_UNITS, "weight unit")
    settings = _settings(session, supplier_id)
    _merge(settings.store_details, fields, default_store_details())
    return {"message": "Store details updated successfully"}


def _global_data(session: Session, settings: SupplierSettings) -> dict:
    store = _page(settings.store_details, default_store_details())
    tax = _page(settings.tax_details, default_tax_details())
    user = UserDao().fetchUserById(session=session, user_id=settings.supplier_id)
    return {
        "store_data": {
            "store_logo": store["logo"],
            "store_name": store["store_name"],
            "email": store["email"] or (user.email if user else ""),
            "currency": store["display_currency"],
            "time_zone": store["time_zone"],
        },
        "tax_data": {key: tax[key] for key in GLOBAL_TAX_KEYS},
        "user_data": {"recovery_phone": settings.recovery_phone or ""},
    }


@transactional
def get_global_data(session: Session, supplier_id: str) -> dict:
    """Header data the supplier dashboard loads once: store identity, tax defaults and recovery phone."""
    data = _global_data(session, _settings(session, supplier_id))
    return dict(message="Supplier data retrieved successfully", **data)


@transactional
def update_global_data(session: Session, supplier_id: str, fields: dict) -> dict:
    settings = _settings(session, supplier_id)
    settings.store_details.update(
        {store_key: fields[key] for key, store_key in GLOBAL_STORE_KEYS.items() if fields.get(key) is not None}
    )
    _merge(settings.tax_details, fields, GLOBAL_TAX_KEYS)
    if fields.get("recovery_phone") is not None:
        settings.recovery_phone = fields["recovery_phone"]
    session.flush()
    data = _global_data(session, settings)
    return dict(message="Supplier data updated successfully", **data)


# ----------------------------------------------------------------------------
# Taxes
# ----------------------------------------------------------------------------


@transactional
def get_tax_details(session: Session, supplier_id: str) -> dict:
    """
    Tax defaults plus every product that ends up with a rate.

    A product's rate is its override when one is set, otherwise the default
    rate while auto-apply is on; products without either are left out.
    """
    settings = _settings(session, supplier_id)
    tax = _page(settings.tax_details, default_tax_details())
    overrides = dict(settings.product_taxes or {})
    default_rate = tax["default_tax_rate"] if tax["is_auto_apply_tax"] else ""
    tax_products = []
    for product in ProductDao().fetchProducts(session=session, supplier_id=settings.supplier_id):
        custom = overrides.get(str(product.id))
        rate = custom or default_rate
        if rate:
            tax_products.append(
                {"product_id": str(product.id), "title": product.title, "tax_rate": rate, "category": product.category, "is_custom": bool(custom)}
            )
    return {"message": "Tax details retrieved successfully", "tax_data": tax, "tax_products": tax_products}


@transactional
def update_tax_details(session: Session, supplier_id: str, fields: dict) -> dict:
    """
    Update the tax defaults.

    Turning auto-apply on together with a default rate resets every product
    override, so the whole catalog is taxed at the new default.
    """
    settings = _settings(session, supplier_id)
    _merge(settings.tax_details, fields, default_tax_details())
    if fields.get("is_auto_apply_tax") and fields.get("default_tax_rate"):
        settings.product_taxes.clear()
    return {"message": "Tax details updated successfully"}


@transactional
def apply_custom_tax(session: Session, supplier_id: str, product_id: str, custom_tax: str) -> dict:
    settings = _settings(session, supplier_id)
    product = ProductDao().fetchSupplierProduct(session=session, supplier_id=settings.supplier_id, product_id=to_uuid(product_id))
    if product is None:
        raise NotFoundError("Product not found")
    settings.product_taxes[str(product.id)] = custom_tax
    return {"message": "Custom tax applied successfully"}


# ----------------------------------------------------------------------------
# Return rules & policies
# ----------------------------------------------------------------------------


@transactional
def update_return_rules(session: Session, supplier_id: str, fields: dict) -> dict:
    _check_choice(fields.get("return_shipping_cost"), RETURN_SHIPPING_COSTS, "return shipping cost")
    _check_choice(fields.get("final_sale_items"), FINAL_SALE_ITEMS, "final sale items")
    settings = _settings(session, supplier_id)
    rules = dict(fields)
    if rules.get("sale_items") is not None:
        rules["sale_items"] = _sale_item_ids(rules["sale_items"])
    _merge(settings.return_rules, rules, [k for k in default_return_rules() if k != "is_enabled"])
    return {"message": "Return rules updated successfully"}


@transactional
def set_return_rules_status(session: Session, supplier_id: str, status: bool) -> dict:
    settings = _settings(session, supplier_id)
    settings.return_rules["is_enabled"] = bool(status)
    return {"message": f"Return rules {'enabled' if status else 'disabled'} successfully"}


def _check_policy_kind(kind: str) -> None:
    if kind not in POLICY_KINDS:
        raise BadRequestError(f"Invalid policy: {kind}")


@transactional
def get_policy(session: Session, supplier_id: str, kind: str) -> dict:
    _check_policy_kind(kind)
    settings = _settings(session, supplier_id)
    return {"message": f"{POLICY_TITLES[kind]} retrieved successfully", "content": (settings.policies or {}).get(kind) or ""}


@transactional
def update_policy(session: Session, supplier_id: str, kind: str, content: str) -> dict:
    _check_policy_kind(kind)
    if not content:
        raise BadRequestError("Content is required")
    settings = _settings(session, supplier_id)
    settings.policies[kind] = content
    return {"message": f"{POLICY_TITLES[kind]} updated successfully"}


@transactional
def get_policies(session: Session, supplier_id: str) -> dict:
    """Return rules with their sale items expanded, and which policy pages are filled in."""
    settings = _settings(session, supplier_id)
    rules = _page(settings.return_rules, default_return_rules())
    sale_ids = []
    for sale_id in rules["sale_items"]:
        try:
            sale_ids.append(uuid.UUID(str(sale_id)))
        except ValueError:
            continue
    products = {p.id: p for p in ProductDao().fetchProductsByIds(session=session, product_ids=sale_ids, supplier_id=settings.supplier_id)}
    rules["sale_items"] = [
        {
            "id": str(p.id),
            "title": p.title,
            "url_handle": p.url_handle,
            "description": p.description,
            "category": p.category,
            "media": list(p.media or []),
            "price": p.price,
            "compare_at_price": p.compare_at_price,
            "tax": p.tax,
            "status": p.status,
        }
        for p in (products.get(i) for i in sale_ids)
        if p is not None
    ]
    policies = {kind: bool((settings.policies or {}).get(kind)) for kind in POLICY_KINDS}
    policies["contact_info"] = settings.has_contact_info()
    return {"message": "Policy settings retrieved successfully", "rules": {"return_rules": rules, "policies": policies}}


@transactional
def get_public_policy(session: Session, store_name: str, kind: str) -> dict:
    """
    A published store's policy page, looked up by store name or supplier username.

    Raises
    ------
    NotFoundError
        No such store, or its storefront is not published.
    """
    _check_policy_kind(kind)
    settings_dao = SupplierSettingsDao()
    settings = settings_dao.fetchSettingsByStoreName(session=session, store_name=store_name)
    supplier_id = settings.supplier_id if settings else None
    if supplier_id is None:
        supplier = UserDao().fetchUserByUsername(session=session, username=store_name)
        if supplier is None or "supplier" not in (supplier.access_roles or []):
            raise NotFoundError("Store not found with the provided store name")
        supplier_id = supplier.id
        settings = settings_dao.fetchSettings(session=session, supplier_id=supplier_id)
    site = SiteBuilderDao().fetchSite(session=session, supplier_id=supplier_id)
    if site is None or not site.is_published:
        raise NotFoundError("Store not found or not published")
    content = ((settings.policies if settings else None) or {}).get(kind) or ""
    return {"message": f"{POLICY_TITLES[kind]} retrieved successfully", "content": content}


# ----------------------------------------------------------------------------
# Checkout, contact and profile pages
# ----------------------------------------------------------------------------


@transactional
def get_checkout_settings(session: Session, supplier_id: str) -> dict:
    settings = _settings(session, supplier_id)
    return {"message": "Checkout settings retrieved successfully", "data": _page(settings.checkout_settings, default_checkout_settings())}


@transactional
def update_checkout_settings(session: Session, supplier_id: str, fields: dict) -> dict:
    settings = _settings(session, supplier_id)
    _merge(settings.checkout_settings, fields, default_checkout_settings())
    return {"message": "Checkout settings updated successfully"}


@transactional
def get_contact_info(session: Session, supplier_id: str) -> dict:
    settings = _settings(session, supplier_id)
    return {"message": "Contact info retrieved successfully", "data": _page(settings.contact_info, default_contact_info())}


@transactional
def update_contact_info(session: Session, supplier_id: str, fields: dict) -> dict:
    settings = _settings(session, supplier_id)
    _merge(settings.contact_info, fields, default_contact_info())
    return {"message": "Contact info updated successfully"}


@transactional
def get_supplier_profile(session: Session, supplier_id: str) -> dict:
    settings = _settings(session, supplier_id)
    return {"message": "Supplier profile retrieved successfully", "data": _page(settings.profile, default_profile())}


@transactional
def update_supplier_profile(session: Session, supplier_id: str, fields: dict) -> dict:
    settings = _settings(session, supplier_id)
    _merge(settings.profile, fields, default_profile())
    return {"message": "Supplier profile updated successfully"}


# ----------------------------------------------------------------------------
# Recovery contacts
# ----------------------------------------------------------------------------


@transactional
def add_recovery_email(session: Session, supplier_id: str, recovery_email: str) -> dict:
    """Set an unverified recovery email; the verification link is mailed after commit."""
    settings = _settings(session, supplier_id)
    settings.recovery_email = recovery_email
    settings.is_recovery_email_verified = False
    token = settings.get_recovery_email_verification_token()
    after_commit(partial(_send_recovery_verification, recovery_email, token))
    return {"message": "Recovery email added and verification sent"}


@transactional
def get_recovery_email(session: Session, supplier_id: str) -> dict:
    settings = SupplierSettingsDao().fetchSettings(session=session, supplier_id=to_uuid(supplier_id))
    return {
        "message": "Recovery email retrieved successfully",
        "recovery_email": settings.recovery_email if settings else "",
        "is_verified": settings.is_recovery_email_verified if settings else False,
    }


@transactional
def verify_recovery_email(session: Session, token: str) -> dict:
    if not token:
        raise BadRequestError("Verification token is required")
    settings = SupplierSettingsDao().fetchSettingsByRecoveryToken(session=session, token_hash=EncryptionDec().hash_token(token))
    expire = ensure_aware(settings.recovery_email_verification_expire) if settings else None
    if settings is None or expire is None or expire < utcnow():
        raise BadRequestError("Invalid or expired verification token")
    settings.is_recovery_email_verified = True
    settings.clear_recovery_email_token()
    return {"message": "Recovery email verified successfully"}


@transactional
def resend_recovery_email(session: Session, supplier_id: str, recovery_email: str) -> dict:
    """
    Issue a fresh verification link for the recovery email on record.

    Raises
    ------
    NotFoundError
        No recovery email was ever added.
    BadRequestError
        The email differs from the one on record or is already verified.
    """
    settings = SupplierSettingsDao().fetchSettings(session=session, supplier_id=to_uuid(supplier_id))
    if settings is None or not settings.recovery_email:
        raise NotFoundError("Supplier profile not found")
    if settings.recovery_email != recovery_email:
        raise BadRequestError("Recovery email does not match the one on record")
    if settings.is_recovery_email_verified:
        raise BadRequestError("Recovery email is already verified")
    token = settings.get_recovery_email_verification_token()
    after_commit(partial(_send_recovery_verification, recovery_email, token))
    return {"message": "Recovery email verification resent"}


@transactional
def add_recovery_phone(session: Session, supplier_id: str, recovery_phone: str) -> dict:
    if not recovery_phone:
        raise BadRequestError("Recovery phone is required")
    settings = _settings(session, supplier_id)
    settings.recovery_phone = recovery_phone
    return {"message": "Recovery phone added successfully"}
