"""
Supplier settings routes (``/supplier``): store details, taxes, return rules,
policy pages, checkout and contact pages, the supplier profile and recovery
contacts.

Every route requires a supplier account. Updates merge the keys the client
sent into the stored page.
"""

from fastapi import APIRouter, Depends

from marketplace.api.auth import require_supplier
from marketplace.api.encryption import decrypted_body, encrypted_response
from marketplace.api.models import (
    CheckoutSettingsFields,
    ContactInfoFields,
    CustomTaxRequest,
    PolicyContentUpdate,
    RecoveryEmailRequest,
    RecoveryPhoneRequest,
    ReturnRulesFields,
    StatusToggle,
    StoreDetailsFields,
    SupplierProfileFields,
    TaxDetailsFields,
    sent_fields,
)
from marketplace.database.core import settings_funcs
from marketplace.database.entities.supplier_settings import POLICY_KINDS

router = APIRouter(prefix="/supplier", tags=["settings"])


@router.get("/store_details")
async def get_store_details(supplier: dict = Depends(require_supplier)):
    return encrypted_response(settings_funcs.get_store_details(supplier_id=supplier["id"]))


@router.post("/store_details")
async def update_store_details(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    fields = sent_fields(StoreDetailsFields, body)
    return encrypted_response(settings_funcs.update_store_details(supplier_id=supplier["id"], fields=fields))


# ----------------------------------------------------------------------------
# Taxes
# ----------------------------------------------------------------------------


@router.get("/tax_details")
async def get_tax_details(supplier: dict = Depends(require_supplier)):
    return encrypted_response(settings_funcs.get_tax_details(supplier_id=supplier["id"]))


@router.post("/tax_details")
async def update_tax_details(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    fields = sent_fields(TaxDetailsFields, body)
    return encrypted_response(settings_funcs.update_tax_details(supplier_id=supplier["id"], fields=fields))


@router.post("/apply_custom_tax")
async def apply_custom_tax(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    data = CustomTaxRequest.model_validate(body)
    return encrypted_response(
        settings_funcs.apply_custom_tax(supplier_id=supplier["id"], product_id=data.product_id, custom_tax=data.custom_tax)
    )


# ----------------------------------------------------------------------------
# Return rules & policies
# ----------------------------------------------------------------------------


@router.post("/return_rules")
async def update_return_rules(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    fields = sent_fields(ReturnRulesFields, body)
    return encrypted_response(settings_funcs.update_return_rules(supplier_id=supplier["id"], fields=fields))


@router.post("/return_rules_status")
async def return_rules_status(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    data = StatusToggle.model_validate(body)
    return encrypted_response(settings_funcs.set_return_rules_status(supplier_id=supplier["id"], status=data.status))


@router.get("/policies")
async def get_policies(supplier: dict = Depends(require_supplier)):
    return encrypted_response(settings_funcs.get_policies(supplier_id=supplier["id"]))


def _policy_routes(kind: str) -> None:
    """``GET``/``POST /supplier/<kind>`` for one policy page."""

    async def read_policy(supplier: dict = Depends(require_supplier)):
        return encrypted_response(settings_funcs.get_policy(supplier_id=supplier["id"], kind=kind))

    async def write_policy(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
        data = PolicyContentUpdate.model_validate(body)
        return encrypted_response(settings_funcs.update_policy(supplier_id=supplier["id"], kind=kind, content=data.content))

    router.add_api_route(f"/{kind}", read_policy, methods=["GET"], name=f"get_{kind}")
    router.add_api_route(f"/{kind}", write_policy, methods=["POST"], name=f"update_{kind}")


for policy_kind in POLICY_KINDS:
    _policy_routes(policy_kind)


# ----------------------------------------------------------------------------
# Checkout, contact & profile pages
# ----------------------------------------------------------------------------


@router.get("/checkout_settings")
async def get_checkout_settings(supplier: dict = Depends(require_supplier)):
    return encrypted_response(settings_funcs.get_checkout_settings(supplier_id=supplier["id"]))


@router.post("/checkout_settings")
async def update_checkout_settings(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    fields = sent_fields(CheckoutSettingsFields, body)
    return encrypted_response(settings_funcs.update_checkout_settings(supplier_id=supplier["id"], fields=fields))


@router.get("/contact_info")
async def get_contact_info(supplier: dict = Depends(require_supplier)):
    return encrypted_response(settings_funcs.get_contact_info(supplier_id=supplier["id"]))


@router.post("/contact_info")
async def update_contact_info(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    fields = sent_fields(ContactInfoFields, body)
    return encrypted_response(settings_funcs.update_contact_info(supplier_id=supplier["id"], fields=fields))


@router.get("/supplier_profile")
async def get_supplier_profile(supplier: dict = Depends(require_supplier)):
    return encrypted_response(settings_funcs.get_supplier_profile(supplier_id=supplier["id"]))


@router.post("/supplier_profile")
async def update_supplier_profile(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    fields = sent_fields(SupplierProfileFields, body)
    return encrypted_response(settings_funcs.update_supplier_profile(supplier_id=supplier["id"], fields=fields))


# ----------------------------------------------------------------------------
# Recovery contacts
# ----------------------------------------------------------------------------


@router.post("/add_recovery_email")
async def add_recovery_email(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    data = RecoveryEmailRequest.model_validate(body)
    return encrypted_response(settings_funcs.add_recovery_email(supplier_id=supplier["id"], recovery_email=data.recovery_email))


@router.get("/get_recovery_email")
async def get_recovery_email(supplier: dict = Depends(require_supplier)):
    return encrypted_response(settings_funcs.get_recovery_email(supplier_id=supplier["id"]))


@router.post("/verify_recovery_email/{token}")
async def verify_recovery_email(token: str, supplier: dict = Depends(require_supplier)):
    return encrypted_response(settings_funcs.verify_recovery_email(token=token))


@router.post("/resend_recovery_email")
async def resend_recovery_email(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    data = RecoveryEmailRequest.model_validate(body)
    return encrypted_response(settings_funcs.resend_recovery_email(supplier_id=supplier["id"], recovery_email=data.recovery_email))


@router.post("/add_recovery_phone")
async def add_recovery_phone(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    data = RecoveryPhoneRequest.model_validate(body)
    return encrypted_response(settings_funcs.add_recovery_phone(supplier_id=supplier["id"], recovery_phone=data.recovery_phone))
