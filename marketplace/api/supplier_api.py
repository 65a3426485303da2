"""
Supplier routes (``/supplier``).

Every route requires a supplier account. Entity ids travel in the decrypted
body (``{"id": ...}``); product and collection create/update take multipart
form data with the encrypted JSON in ``data`` plus ``media`` or
``collection_images`` files.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from marketplace.api.auth import require_supplier
from marketplace.api.encryption import decrypt_form_field, decrypted_body, encrypted_response
from marketplace.api.models import (
    ApplyDiscountRequest,
    ClientOrderStatusUpdate,
    CollectionFields,
    CustomerFields,
    DeleteFilesRequest,
    DiscountCodeCheck,
    DiscountFields,
    DiscountUsageRequest,
    EntityRef,
    GlobalDataFields,
    OrderFlag,
    OrderCreate,
    OrderNumberRef,
    ProductFields,
    PublishToggle,
    PurchaseOrderFields,
    ReportRequest,
    SiteBuilderFields,
    VendorFields,
    sent_fields,
)
from marketplace.api.uploads import persist_uploads, staged_uploads
from marketplace.database.core import (
    catalog_funcs,
    client_order_funcs,
    content_funcs,
    discount_funcs,
    order_funcs,
    purchasing_funcs,
    report_funcs,
    settings_funcs,
    site_builder_funcs,
)

router = APIRouter(prefix="/supplier", tags=["supplier"])


def _entity_id(body: dict) -> str:
    return EntityRef.model_validate(body).id


def _form_id(fields: dict, label: str) -> str:
    entity_id = fields.pop("id", None) or fields.pop(f"{label}_id", None)
    if not entity_id:
        raise HTTPException(status_code=400, detail=f"{label.replace('_', ' ').capitalize()} ID is required")
    return entity_id


# ----------------------------------------------------------------------------
# Dashboard, global data, inventory & reports
# ----------------------------------------------------------------------------


@router.get("/dashboard")
async def dashboard(supplier: dict = Depends(require_supplier)):
    return encrypted_response(report_funcs.supplier_dashboard(supplier_id=supplier["id"]))


@router.get("/global_data")
async def global_data(supplier: dict = Depends(require_supplier)):
    return encrypted_response(settings_funcs.get_global_data(supplier_id=supplier["id"]))


@router.post("/update_global_data")
async def update_global_data(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    fields = sent_fields(GlobalDataFields, body)
    return encrypted_response(settings_funcs.update_global_data(supplier_id=supplier["id"], fields=fields))


@router.get("/get_inventory")
async def get_inventory(supplier: dict = Depends(require_supplier)):
    return encrypted_response(purchasing_funcs.get_inventory(supplier_id=supplier["id"]))


@router.post("/generate_report")
async def generate_report(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    data = ReportRequest.model_validate(body)
    return encrypted_response(
        report_funcs.generate_report(
            supplier_id=supplier["id"], table_name=data.table_name, start_date=data.start_date, end_date=data.end_date
        )
    )


# ----------------------------------------------------------------------------
# Products
# ----------------------------------------------------------------------------


@router.get("/get_all_products")
async def get_all_products(supplier: dict = Depends(require_supplier)):
    return encrypted_response(catalog_funcs.list_products(supplier_id=supplier["id"]))


@router.post("/get_product")
async def get_product(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    return encrypted_response(catalog_funcs.get_product(supplier_id=supplier["id"], product_id=_entity_id(body)))


@router.post("/create_product")
async def create_product(
    data: Optional[str] = Form(None),
    media: Optional[List[UploadFile]] = File(None),
    supplier: dict = Depends(require_supplier),
):
    fields = sent_fields(ProductFields, decrypt_form_field(data))
    with staged_uploads(media, "products") as paths:
        result = catalog_funcs.create_product(supplier_id=supplier["id"], fields=fields, media=paths)
    return encrypted_response(result, status_code=201)


@router.post("/update_product")
async def update_product(
    data: Optional[str] = Form(None),
    media: Optional[List[UploadFile]] = File(None),
    supplier: dict = Depends(require_supplier),
):
    fields = decrypt_form_field(data)
    product_id = _form_id(fields, "product")
    fields = sent_fields(ProductFields, fields)
    with staged_uploads(media, "products") as paths:
        result = catalog_funcs.update_product(supplier_id=supplier["id"], product_id=product_id, fields=fields, media=paths)
    return encrypted_response(result)


@router.post("/delete_product")
async def delete_product(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    return encrypted_response(catalog_funcs.delete_product(supplier_id=supplier["id"], product_id=_entity_id(body)))


@router.post("/search_product")
async def search_product(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    return encrypted_response(catalog_funcs.search_products(supplier_id=supplier["id"], query=body.get("query", "")))


# ----------------------------------------------------------------------------
# Collections
# ----------------------------------------------------------------------------


@router.get("/get_all_collections")
async def get_all_collections(supplier: dict = Depends(require_supplier)):
    return encrypted_response(catalog_funcs.list_collections(supplier_id=supplier["id"]))


@router.post("/get_collection")
async def get_collection(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    return encrypted_response(catalog_funcs.get_collection(supplier_id=supplier["id"], collection_id=_entity_id(body)))


@router.post("/create_collection")
async def create_collection(
    data: Optional[str] = Form(None),
    collection_images: Optional[List[UploadFile]] = File(None),
    supplier: dict = Depends(require_supplier),
):
    fields = sent_fields(CollectionFields, decrypt_form_field(data))
    with staged_uploads(collection_images, "collections") as paths:
        result = catalog_funcs.create_collection(supplier_id=supplier["id"], fields=fields, images=paths)
    return encrypted_response(result, status_code=201)


@router.post("/update_collection")
async def update_collection(
    data: Optional[str] = Form(None),
    collection_images: Optional[List[UploadFile]] = File(None),
    supplier: dict = Depends(require_supplier),
):
    fields = decrypt_form_field(data)
    collection_id = _form_id(fields, "collection")
    fields = sent_fields(CollectionFields, fields)
    with staged_uploads(collection_images, "collections") as paths:
        result = catalog_funcs.update_collection(supplier_id=supplier["id"], collection_id=collection_id, fields=fields, images=paths)
    return encrypted_response(result)


@router.post("/delete_collection")
async def delete_collection(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    return encrypted_response(catalog_funcs.delete_collection(supplier_id=supplier["id"], collection_id=_entity_id(body)))


@router.post("/search_collection")
async def search_collection(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    return encrypted_response(catalog_funcs.search_collections(supplier_id=supplier["id"], query=body.get("query", "")))


# ----------------------------------------------------------------------------
# Legacy orders
# ----------------------------------------------------------------------------


@router.get("/get_all_orders")
async def get_all_orders(supplier: dict = Depends(require_supplier)):
    return encrypted_response(order_funcs.list_orders(supplier_id=supplier["id"]))


@router.post("/get_order")
async def get_order(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    return encrypted_response(order_funcs.get_order(supplier_id=supplier["id"], order_id=_entity_id(body)))


@router.post("/create_order")
async def create_order(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    fields = sent_fields(OrderCreate, body)
    return encrypted_response(order_funcs.create_order(supplier_id=supplier["id"], fields=fields), status_code=201)


@router.post("/update_order")
async def update_order(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    fields = dict(body)
    order_id = _form_id(fields, "order")
    fields = sent_fields(OrderCreate, fields)
    return encrypted_response(order_funcs.update_order(supplier_id=supplier["id"], order_id=order_id, fields=fields))


@router.post("/delete_order")
async def delete_order(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    return encrypted_response(order_funcs.cancel_order(supplier_id=supplier["id"], order_id=_entity_id(body)))


@router.post("/restock")
async def restock(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    data = OrderNumberRef.model_validate(body)
    return encrypted_response(order_funcs.restock_order(supplier_id=supplier["id"], order_no=data.order_no))


@router.post("/fullfillment_status")
async def fulfillment_status(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    data = OrderFlag.model_validate(body)
    return encrypted_response(
        order_funcs.set_fulfillment_status(
            supplier_id=supplier["id"], order_no=data.order_no, fulfillment_status=bool(body.get("fulfillment_status"))
        )
    )


@router.post("/mark_as_paid")
async def mark_as_paid(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    data = OrderFlag.model_validate(body)
    return encrypted_response(
        order_funcs.mark_as_paid(supplier_id=supplier["id"], order_no=data.order_no, payment_status=bool(body.get("payment_status", True)))
    )


@router.post("/mark_as_delivered")
async def mark_as_delivered(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    data = OrderFlag.model_validate(body)
    return encrypted_response(
        order_funcs.mark_as_delivered(
            supplier_id=supplier["id"], order_no=data.order_no, delivery_status=bool(body.get("delivery_status", True))
        )
    )


@router.post("/send_invoice")
async def send_invoice(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    data = OrderNumberRef.model_validate(body)
    return encrypted_response(order_funcs.send_invoice(supplier_id=supplier["id"], order_no=data.order_no))


# ----------------------------------------------------------------------------
# Client orders (self-service) received by the supplier
# ----------------------------------------------------------------------------


@router.get("/client_orders")
async def client_orders(status: Optional[str] = None, supplier: dict = Depends(require_supplier)):
    return encrypted_response(client_order_funcs.list_supplier_client_orders(supplier_id=supplier["id"], status=status))


@router.post("/update_client_order_status")
async def update_client_order_status(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    data = ClientOrderStatusUpdate.model_validate(body)
    return encrypted_response(
        client_order_funcs.update_client_order_status(
            supplier_id=supplier["id"], order_id=data.order_id, status=data.status, payment_status=data.payment_status
        )
    )


# ----------------------------------------------------------------------------
# Customers
# ----------------------------------------------------------------------------


@router.get("/get_all_customers")
async def get_all_customers(supplier: dict = Depends(require_supplier)):
    return encrypted_response(purchasing_funcs.list_customers(supplier_id=supplier["id"]))


@router.post("/get_customer")
async def get_customer(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    return encrypted_response(purchasing_funcs.get_customer(supplier_id=supplier["id"], customer_id=_entity_id(body)))


@router.post("/create_customer")
async def create_customer(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    fields = sent_fields(CustomerFields, body)
    return encrypted_response(purchasing_funcs.create_customer(supplier_id=supplier["id"], fields=fields), status_code=201)


@router.post("/update_customer")
async def update_customer(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    fields = dict(body)
    customer_id = _form_id(fields, "customer")
    fields = sent_fields(CustomerFields, fields)
    return encrypted_response(purchasing_funcs.update_customer(supplier_id=supplier["id"], customer_id=customer_id, fields=fields))


@router.post("/delete_customer")
async def delete_customer(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    return encrypted_response(purchasing_funcs.delete_customer(supplier_id=supplier["id"], customer_id=_entity_id(body)))


# ----------------------------------------------------------------------------
# Vendors
# ----------------------------------------------------------------------------


@router.get("/get_all_vendors")
async def get_all_vendors(supplier: dict = Depends(require_supplier)):
    return encrypted_response(purchasing_funcs.list_vendors(supplier_id=supplier["id"]))


@router.post("/get_vendor")
async def get_vendor(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    return encrypted_response(purchasing_funcs.get_vendor(supplier_id=supplier["id"], vendor_id=_entity_id(body)))


@router.post("/create_vendor")
async def create_vendor(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    fields = sent_fields(VendorFields, body)
    return encrypted_response(purchasing_funcs.create_vendor(supplier_id=supplier["id"], fields=fields), status_code=201)


@router.post("/update_vendor")
async def update_vendor(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    fields = dict(body)
    vendor_id = _form_id(fields, "vendor")
    fields = sent_fields(VendorFields, fields)
    return encrypted_response(purchasing_funcs.update_vendor(supplier_id=supplier["id"], vendor_id=vendor_id, fields=fields))


@router.post("/delete_vendor")
async def delete_vendor(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    return encrypted_response(purchasing_funcs.delete_vendor(supplier_id=supplier["id"], vendor_id=_entity_id(body)))


# ----------------------------------------------------------------------------
# Purchase orders
# ----------------------------------------------------------------------------


@router.get("/get_all_purchaseorders")
async def get_all_purchase_orders(supplier: dict = Depends(require_supplier)):
    return encrypted_response(purchasing_funcs.list_purchase_orders(supplier_id=supplier["id"]))


@router.post("/get_purchaseorder")
async def get_purchase_order(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    return encrypted_response(purchasing_funcs.get_purchase_order(supplier_id=supplier["id"], po_id=_entity_id(body)))


@router.post("/create_purchaseorder")
async def create_purchase_order(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    fields = sent_fields(PurchaseOrderFields, body)
    return encrypted_response(purchasing_funcs.create_purchase_order(supplier_id=supplier["id"], fields=fields), status_code=201)


@router.post("/update_purchaseorder")
async def update_purchase_order(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    fields = dict(body)
    po_id = _form_id(fields, "purchase_order")
    fields = sent_fields(PurchaseOrderFields, fields)
    return encrypted_response(purchasing_funcs.update_purchase_order(supplier_id=supplier["id"], po_id=po_id, fields=fields))


@router.post("/delete_purchaseorder")
async def delete_purchase_order(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    return encrypted_response(purchasing_funcs.delete_purchase_order(supplier_id=supplier["id"], po_id=_entity_id(body)))


@router.post("/mark_as_recieved")
async def mark_as_received(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    return encrypted_response(purchasing_funcs.mark_purchase_order_received(supplier_id=supplier["id"], po_no=body.get("po_no")))


# ----------------------------------------------------------------------------
# Discounts
# ----------------------------------------------------------------------------


@router.post("/add_discount")
async def add_discount(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    fields = sent_fields(DiscountFields, body)
    return encrypted_response(discount_funcs.add_discount(supplier_id=supplier["id"], fields=fields), status_code=201)


@router.get("/get_discounts")
async def get_discounts(status: Optional[str] = None, page: int = 1, limit: int = 10, supplier: dict = Depends(require_supplier)):
    return encrypted_response(discount_funcs.list_discounts(supplier_id=supplier["id"], status=status, page=page, limit=limit))


@router.post("/get_discount")
async def get_discount(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    return encrypted_response(discount_funcs.get_discount(supplier_id=supplier["id"], discount_id=_entity_id(body)))


@router.post("/update_discount")
async def update_discount(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    fields = dict(body)
    discount_id = _form_id(fields, "discount")
    fields = sent_fields(DiscountFields, fields)
    return encrypted_response(discount_funcs.update_discount(supplier_id=supplier["id"], discount_id=discount_id, fields=fields))


@router.post("/delete_discount")
async def delete_discount(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    return encrypted_response(discount_funcs.delete_discount(supplier_id=supplier["id"], discount_id=_entity_id(body)))


@router.post("/toggle_discount_status")
async def toggle_discount_status(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    return encrypted_response(discount_funcs.toggle_discount_status(supplier_id=supplier["id"], discount_id=_entity_id(body)))


@router.post("/validate_discount_code")
async def validate_discount_code(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    data = DiscountCodeCheck.model_validate(body)
    return encrypted_response(
        discount_funcs.validate_discount_code(supplier_id=supplier["id"], code=data.code, customer_id=data.customer_id)
    )


@router.post("/apply_discount")
async def apply_discount(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    data = ApplyDiscountRequest.model_validate(body)
    return encrypted_response(
        discount_funcs.apply_discount(
            supplier_id=supplier["id"],
            discount_id=data.discount_id,
            order_items=data.order_items,
            order_total=data.order_total,
            customer_id=data.customer_id,
        )
    )


@router.post("/discount_usage_report")
async def discount_usage_report(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    data = DiscountUsageRequest.model_validate(body)
    return encrypted_response(
        discount_funcs.discount_usage_report(supplier_id=supplier["id"], discount_id=data.discount_id, status=data.status)
    )


@router.get("/get_automatic_discounts")
async def get_automatic_discounts(supplier: dict = Depends(require_supplier)):
    return encrypted_response(discount_funcs.automatic_discounts(supplier_id=supplier["id"]))


# ----------------------------------------------------------------------------
# Site builder
# ----------------------------------------------------------------------------


@router.get("/site_builder")
async def get_site_builder(supplier: dict = Depends(require_supplier)):
    return encrypted_response(site_builder_funcs.get_site(supplier_id=supplier["id"]))


@router.post("/site_builder")
async def update_site_builder(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    fields = sent_fields(SiteBuilderFields, body)
    return encrypted_response(site_builder_funcs.update_site(supplier_id=supplier["id"], fields=fields))


@router.post("/site_builder/publish")
async def toggle_store_publish(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    data = PublishToggle.model_validate(body)
    return encrypted_response(site_builder_funcs.toggle_publish(supplier_id=supplier["id"], is_published=data.is_published))


@router.post("/site_builder/upload")
async def upload_site_images(images: Optional[List[UploadFile]] = File(None), supplier: dict = Depends(require_supplier)):
    paths = persist_uploads(images, "site-builder")
    if not paths:
        raise HTTPException(status_code=400, detail="No files uploaded")
    return encrypted_response({"message": "Files uploaded successfully", "files": paths}, status_code=201)


# ----------------------------------------------------------------------------
# Content library
# ----------------------------------------------------------------------------


@router.get("/get_files")
async def get_files(supplier: dict = Depends(require_supplier)):
    return encrypted_response(content_funcs.get_files(supplier_id=supplier["id"]))


@router.post("/delete_file")
async def delete_file(body: dict = Depends(decrypted_body), supplier: dict = Depends(require_supplier)):
    data = DeleteFilesRequest.model_validate(body)
    return encrypted_response(content_funcs.delete_files(supplier_id=supplier["id"], files=[f.model_dump() for f in data.data]))
