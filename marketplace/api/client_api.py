"""
Client routes (``/client``): browsing, the self-service order flow and the
client account area (dashboard, profile, security preferences).
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from marketplace.api.auth import require_client
from marketplace.api.encryption import decrypt_form_field, decrypted_body, encrypted_response
from marketplace.api.models import CheckoutRequest, ClientOrderAction, ClientProfileFields, ClientSecurityFields, sent_fields
from marketplace.api.uploads import staged_uploads
from marketplace.database.core import catalog_funcs, client_funcs, client_order_funcs, discount_funcs

router = APIRouter(prefix="/client", tags=["client"])


@router.get("/products")
async def products(
    search: Optional[str] = None,
    category: Optional[str] = None,
    supplier_id: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    client: dict = Depends(require_client),
):
    return encrypted_response(
        catalog_funcs.browse_products(search=search, category=category, supplier_id=supplier_id, page=page, limit=limit)
    )


@router.post("/product")
async def product(body: dict = Depends(decrypted_body), client: dict = Depends(require_client)):
    if not body.get("url_handle"):
        raise HTTPException(status_code=400, detail="Product handle is required")
    return encrypted_response(catalog_funcs.get_public_product(url_handle=body["url_handle"]))


@router.post("/place_order")
async def place_order(body: dict = Depends(decrypted_body), client: dict = Depends(require_client)):
    """Check out the cart; one order is created per supplier in it."""
    checkout = CheckoutRequest.model_validate(body).model_dump(exclude_unset=True)
    return encrypted_response(client_order_funcs.place_order(client_id=client["id"], checkout=checkout), status_code=201)


@router.get("/orders")
async def orders(status: Optional[str] = None, client: dict = Depends(require_client)):
    return encrypted_response(client_order_funcs.list_client_orders(client_id=client["id"], status=status))


@router.post("/order_details")
async def order_details(body: dict = Depends(decrypted_body), client: dict = Depends(require_client)):
    data = ClientOrderAction.model_validate(body)
    return encrypted_response(client_order_funcs.get_client_order(client_id=client["id"], order_id=data.order_id))


@router.post("/cancel_order")
async def cancel_order(body: dict = Depends(decrypted_body), client: dict = Depends(require_client)):
    data = ClientOrderAction.model_validate(body)
    return encrypted_response(
        client_order_funcs.cancel_client_order(client_id=client["id"], order_id=data.order_id, reason=data.reason)
    )


@router.post("/request_return")
async def request_return(body: dict = Depends(decrypted_body), client: dict = Depends(require_client)):
    data = ClientOrderAction.model_validate(body)
    return encrypted_response(client_order_funcs.request_return(client_id=client["id"], order_id=data.order_id, reason=data.reason))


@router.post("/discount_by_code")
async def discount_by_code(body: dict = Depends(decrypted_body), client: dict = Depends(require_client)):
    if not body.get("supplier_id") or not body.get("code"):
        raise HTTPException(status_code=400, detail="Supplier ID and discount code are required")
    return encrypted_response(discount_funcs.public_discount_by_code(supplier_id=body["supplier_id"], code=body["code"]))


# ----------------------------------------------------------------------------
# Account area
# ----------------------------------------------------------------------------


@router.get("/dashboard")
async def dashboard(client: dict = Depends(require_client)):
    return encrypted_response(client_funcs.get_client_dashboard(client_id=client["id"]))


@router.get("/profile")
async def get_profile(client: dict = Depends(require_client)):
    return encrypted_response(client_funcs.get_client_profile(client_id=client["id"]))


@router.post("/profile")
async def update_profile(
    data: Optional[str] = Form(None),
    profile_img: Optional[UploadFile] = File(None),
    client: dict = Depends(require_client),
):
    """Multipart: encrypted profile fields in ``data`` and an optional ``profile_img`` image."""
    fields = sent_fields(ClientProfileFields, decrypt_form_field(data))
    with staged_uploads([profile_img] if profile_img else [], "profiles") as paths:
        result = client_funcs.update_client_profile(client_id=client["id"], fields=fields, profile_img=paths[0] if paths else None)
    return encrypted_response(result)


@router.get("/additional_settings")
async def get_additional_settings(client: dict = Depends(require_client)):
    return encrypted_response(client_funcs.get_additional_settings(client_id=client["id"]))


@router.post("/additional_settings")
async def update_additional_settings(body: dict = Depends(decrypted_body), client: dict = Depends(require_client)):
    fields = sent_fields(ClientSecurityFields, body)
    return encrypted_response(client_funcs.update_additional_settings(client_id=client["id"], fields=fields))
