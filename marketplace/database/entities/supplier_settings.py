"""
SupplierSettings ORM Model
==========================

One settings record per supplier (``supplier_settings`` table). Each
settings page is stored as its own JSON document so a page update merges
only the keys it names:

- ``store_details``: ``{logo, store_name, phone_number, email, address,
  display_currency, unit_system, weight_unit, time_zone, prefix, suffix}``
- ``tax_details``: ``{is_auto_apply_tax, default_tax_rate, reg_number}``
- ``product_taxes``: product id → tax rate override
- ``return_rules``: ``{is_enabled, return_window, no_of_custom_days,
  return_shipping_cost, flat_rate, restocking_fee, final_sale_items, sale_items}``
- ``policies``: ``{return_and_refund, privacy_policy, terms_of_services, shipping_policy}``
- ``checkout_settings``, ``contact_info``, ``profile``

The recovery email lives in plain columns because its verification token is
looked up by hash.
"""

import uuid
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy import JSON, VARCHAR, Boolean, DateTime, ForeignKey, Uuid, event
from sqlalchemy.ext.mutable import MutableDict
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.crypt.encrypt_decrypt import EncryptionDec
from marketplace.database.config.connection_engine import declarativeBase
from marketplace.database.helpers.timeutils import utcnow

UNIT_SYSTEMS = ("metric", "imperial")
WEIGHT_UNITS = ("kg", "g", "lb", "oz")
RETURN_SHIPPING_COSTS = ("return_shipping_by_customer", "return_shipping_by_store", "flat_rate")
FINAL_SALE_ITEMS = ("collections", "none", "products")
POLICY_KINDS = ("return_and_refund", "privacy_policy", "terms_of_services", "shipping_policy")
RECOVERY_EMAIL_TTL = timedelta(hours=24)


def default_store_details() -> dict:
    return {
        "logo": "",
        "store_name": "",
        "phone_number": "",
        "email": "",
        "address": "",
        "display_currency": "USD",
        "unit_system": "metric",
        "weight_unit": "kg",
        "time_zone": "UTC",
        "prefix": "",
        "suffix": "",
    }


def default_tax_details() -> dict:
    return {"is_auto_apply_tax": False, "default_tax_rate": "", "reg_number": ""}


def default_return_rules() -> dict:
    return {
        "is_enabled": False,
        "return_window": "14",
        "no_of_custom_days": "",
        "return_shipping_cost": "return_shipping_by_customer",
        "flat_rate": "",
        "restocking_fee": False,
        "final_sale_items": "none",
        "sale_items": [],
    }


def default_policies() -> dict:
    return {kind: "" for kind in POLICY_KINDS}


def default_checkout_settings() -> dict:
    return {
        "address_line": "",
        "company_name": "",
        "fullname": "",
        "is_custom_tip": False,
        "is_tipping_checkout": False,
        "shipping_address_phone_number": "",
        "tip_fixed_amount": [],
        "tip_percentage": [],
        "tip_type": "percentage",
    }


def default_contact_info() -> dict:
    return {
        "trade_name": "",
        "phone_number": "",
        "email": "",
        "phyiscal_address": "",
        "vat_reg_number": "",
        "business_reg_number": "",
        "customer_support_hours": "",
        "response_time": "",
        "is_contact_form": False,
        "contact_page_intro": "",
        "fb_url": "",
        "insta_url": "",
        "x_url": "",
        "linkedin_url": "",
    }


def default_profile() -> dict:
    return {"profile_image": "", "first_name": "", "last_name": "", "email": "", "phone_number": ""}


class SupplierSettings(declarativeBase):
    """ORM model for the `supplier_settings` table."""

    __tablename__ = "supplier_settings"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)
    supplier_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("app_user.id"), nullable=False, unique=True)
    store_details: Mapped[dict] = mapped_column(MutableDict.as_mutable(JSON), nullable=False, default=default_store_details)
    tax_details: Mapped[dict] = mapped_column(MutableDict.as_mutable(JSON), nullable=False, default=default_tax_details)
    product_taxes: Mapped[dict] = mapped_column(MutableDict.as_mutable(JSON), nullable=False, default=dict)
    return_rules: Mapped[dict] = mapped_column(MutableDict.as_mutable(JSON), nullable=False, default=default_return_rules)
    policies: Mapped[dict] = mapped_column(MutableDict.as_mutable(JSON), nullable=False, default=default_policies)
    checkout_settings: Mapped[dict] = mapped_column(MutableDict.as_mutable(JSON), nullable=False, default=default_checkout_settings)
    contact_info: Mapped[dict] = mapped_column(MutableDict.as_mutable(JSON), nullable=False, default=default_contact_info)
    profile: Mapped[dict] = mapped_column(MutableDict.as_mutable(JSON), nullable=False, default=default_profile)
    recovery_email: Mapped[str] = mapped_column(VARCHAR(255), nullable=False, default="")
    is_recovery_email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    recovery_email_verification_token: Mapped[Optional[str]] = mapped_column(VARCHAR(128), nullable=True, index=True)
    recovery_email_verification_expire: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    recovery_phone: Mapped[str] = mapped_column(VARCHAR(32), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __init__(self, supplier_id: UUID):
        now = utcnow()
        self.id = uuid.uuid4()
        self.supplier_id = supplier_id
        self.store_details = default_store_details()
        self.tax_details = default_tax_details()
        self.product_taxes = {}
        self.return_rules = default_return_rules()
        self.policies = default_policies()
        self.checkout_settings = default_checkout_settings()
        self.contact_info = default_contact_info()
        self.profile = default_profile()
        self.recovery_email = ""
        self.is_recovery_email_verified = False
        self.recovery_email_verification_token = None
        self.recovery_email_verification_expire = None
        self.recovery_phone = ""
        self.created_at = now
        self.updated_at = now

    def get_recovery_email_verification_token(self) -> str:
        """Create a recovery email token, store its hash and return the raw token."""
        enc = EncryptionDec()
        raw = enc.generate_token()
        self.recovery_email_verification_token = enc.hash_token(raw)
        self.recovery_email_verification_expire = utcnow() + RECOVERY_EMAIL_TTL
        return raw

    def clear_recovery_email_token(self) -> None:
        self.recovery_email_verification_token = None
        self.recovery_email_verification_expire = None

    def has_contact_info(self) -> bool:
        return any(value for value in (self.contact_info or {}).values())

    def __repr__(self):
        return f"SupplierSettings: supplier {self.supplier_id}"


@event.listens_for(SupplierSettings, "before_update")
def _settings_before_update(mapper, connection, target: SupplierSettings) -> None:
    target.updated_at = utcnow()
