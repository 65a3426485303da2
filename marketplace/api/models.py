"""
Pydantic models used for request validation.

Bodies arrive encrypted; routes decrypt them first (see
:mod:`marketplace.api.encryption`) and then validate the plain dict with
``Model.model_validate``. Validation failures become 400 responses whose
message joins every pydantic error with ``", "``.

Entity payloads (products, collections, discounts, orders, ...) go through
the ``*Fields`` models below: numbers, flags and lists are typed, unknown
keys pass through, and ``model_dump(exclude_unset=True)`` hands the service
layer only what the client sent. Business rules stay in the services.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class SignupData(BaseModel):
    """Self-registration payload."""

    username: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=1)
    user_type: str = "client"
    agree_terms: bool = False


class UserCredentials(BaseModel):
    """
    Represents login credentials for a user.
    """

    email: EmailStr
    """The email the account was registered with."""
    password: str = Field(..., min_length=1)
    """The plaintext password provided for authentication."""


class EmailOnly(BaseModel):
    email: EmailStr


class PasswordReset(BaseModel):
    password: str = Field(..., min_length=1)


class PasswordUpdate(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)


class EntityRef(BaseModel):
    """Body of the ``get_*`` / ``delete_*`` routes: ``{"id": ...}``."""

    id: str = Field(..., min_length=1)


class OrderNumberRef(BaseModel):
    order_no: str = Field(..., min_length=1)


class OrderFlag(BaseModel):
    """Order number plus one boolean flag (fulfillment, payment or delivery)."""

    model_config = ConfigDict(extra="allow")

    order_no: str = Field(..., min_length=1)


class ReportRequest(BaseModel):
    table_name: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class PublishToggle(BaseModel):
    is_published: bool


class ClientOrderAction(BaseModel):
    order_id: str = Field(..., min_length=1)
    reason: str = ""


class ClientOrderStatusUpdate(BaseModel):
    order_id: str = Field(..., min_length=1)
    status: Optional[str] = None
    payment_status: Optional[str] = None


class DiscountCodeCheck(BaseModel):
    code: str = Field(..., min_length=1)
    customer_id: Optional[str] = None


class ApplyDiscountRequest(BaseModel):
    discount_id: str = Field(..., min_length=1)
    order_items: List[Dict[str, Any]] = Field(..., min_length=1)
    order_total: float = Field(..., ge=0)
    customer_id: Optional[str] = None


class DiscountUsageRequest(BaseModel):
    discount_id: Optional[str] = None
    status: Optional[str] = None


class AdminCreate(BaseModel):
    model_config = ConfigDict(extra="allow")

    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: str = "admin"
    permissions: Optional[List[str]] = None
    is_active: bool = True


class AdminStatusToggle(BaseModel):
    admin_id: str = Field(..., min_length=1)
    is_active: bool


class RoleCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=50)
    display_name: str = Field(..., min_length=1, max_length=100)
    description: str = Field("", max_length=500)
    default_permissions: List[str] = Field(default_factory=list)


class RoleName(BaseModel):
    role_name: str = Field(..., min_length=1)


class StartConversation(BaseModel):
    participant_id: Optional[str] = None


class ConversationRef(BaseModel):
    conversation_id: Optional[str] = None


class MessagePage(BaseModel):
    conversation_id: Optional[str] = None
    limit: int = Field(50, ge=1, le=100)
    page: int = Field(1, ge=1)


class SendMessage(BaseModel):
    conversation_id: Optional[str] = None
    text: Optional[str] = None
    attachments: List[str] = Field(default_factory=list)


class UserStatusRequest(BaseModel):
    user_ids: Optional[Any] = None


class TypingRequest(BaseModel):
    conversation_id: Optional[str] = None
    is_typing: bool = False


class NotificationIds(BaseModel):
    notification_ids: Optional[Any] = None


class UserSearch(BaseModel):
    query: Optional[str] = None


class EntityFields(BaseModel):
    """Base for entity payloads: extra keys are kept, numbers become strings where a string is expected."""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)


class ProductFields(EntityFields):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    url_handle: Optional[str] = None
    price: Optional[float] = None
    compare_at_price: Optional[float] = None
    tax: Optional[bool] = None
    cost_per_item: Optional[float] = None
    status: Optional[str] = None
    quantity: Optional[int] = None
    min_qty: Optional[int] = None
    variant_option: Optional[bool] = None
    variants: Optional[List[Any]] = None
    physical_product: Optional[bool] = None
    track_quantity: Optional[bool] = None
    continue_out_of_stock: Optional[bool] = None
    weight: Optional[float] = None
    units: Optional[str] = None
    region: Optional[str] = None
    hs_code: Optional[str] = None
    address: Optional[str] = None
    search_vendor: Optional[str] = None
    search_tags: Optional[List[str]] = None
    search_collection: Optional[List[str]] = None
    page_title: Optional[str] = None
    meta_description: Optional[str] = None
    media: Optional[List[str]] = None


class CollectionFields(EntityFields):
    title: Optional[str] = None
    description: Optional[str] = None
    url_handle: Optional[str] = None
    status: Optional[str] = None
    page_title: Optional[str] = None
    meta_description: Optional[str] = None
    collection_type: Optional[str] = None
    collection_images: Optional[List[str]] = None
    smart_operator: Optional[str] = None
    smart_conditions: Optional[List[Dict[str, Any]]] = None
    product_list: Optional[List[str]] = None


class OrderItem(EntityFields):
    """A legacy order line; ``qty`` and ``quantity`` are synonyms."""

    product_id: Optional[str] = None
    id: Optional[str] = None
    title: Optional[str] = None
    price: Optional[float] = None
    qty: Optional[int] = None
    quantity: Optional[int] = None
    track_quantity: Optional[bool] = None
    media: Optional[List[str]] = None


class OrderCalculations(EntityFields):
    discount_percentage: Optional[float] = None
    tax_percentage: Optional[float] = None
    shipping_address: Optional[Any] = None


class OrderCreate(EntityFields):
    """Body of ``create_order`` and ``update_order``."""

    customer_id: Optional[str] = None
    products: Optional[List[OrderItem]] = None
    calculations: Optional[OrderCalculations] = None
    notes: Optional[str] = None
    market_price: Optional[str] = None
    tags: Optional[List[str]] = None
    channel: Optional[str] = None
    payment_due_later: Optional[bool] = None
    shipping_address: Optional[str] = None
    bill_paid: Optional[float] = None
    status: Optional[str] = None


class CustomerFields(EntityFields):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    language: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    email_subscribe: Optional[bool] = None
    msg_subscribe: Optional[bool] = None
    default_address: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None
    tags: Optional[str] = None
    status: Optional[str] = None


class VendorFields(EntityFields):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    address: Optional[str] = None
    apartment: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    status: Optional[str] = None


class PurchaseOrderItem(EntityFields):
    product_id: Optional[str] = None
    id: Optional[str] = None
    title: Optional[str] = None
    price: Optional[float] = None
    qty: Optional[int] = None
    quantity: Optional[int] = None


class PurchaseOrderTotals(EntityFields):
    taxes: Optional[float] = None
    shipping: Optional[float] = None


class PurchaseOrderFields(EntityFields):
    vendor_id: Optional[str] = None
    vendor_name: Optional[str] = None
    products: Optional[List[PurchaseOrderItem]] = None
    calculations: Optional[PurchaseOrderTotals] = None
    supplier_name: Optional[str] = None
    payment_terms: Optional[str] = None
    destination: Optional[str] = None
    supplier_currency: Optional[str] = None
    estimated_arrival: Optional[str] = None
    shipping_carrier: Optional[str] = None
    tracking_number: Optional[str] = None
    reference_number: Optional[str] = None
    tags: Optional[List[str]] = None
    notes: Optional[str] = None
    status: Optional[str] = None


class DiscountFields(EntityFields):
    """
    Discount payload.

    The id lists (``sale_items``, ``customer_list``, ``buy_spend_sale_items``,
    ``gets_sale_items``) accept plain ids or ``{"id": ...}`` objects.
    """

    discount_type: Optional[str] = None
    code: Optional[str] = None
    title: Optional[str] = None
    discount_value_type: Optional[str] = None
    discount_value: Optional[float] = None
    applies_to: Optional[str] = None
    sale_items: Optional[List[Any]] = None
    start_datetime: Optional[str] = None
    is_end_date: Optional[bool] = None
    end_datetime: Optional[str] = None
    eligibility: Optional[str] = None
    customer_list: Optional[List[Any]] = None
    min_purchase_req: Optional[str] = None
    min_amount_value: Optional[float] = None
    min_items_value: Optional[int] = None
    is_max_limit: Optional[bool] = None
    max_total_uses: Optional[int] = None
    one_per_customer: Optional[bool] = None
    customer_buy_spend: Optional[str] = None
    buy_spend_quantity: Optional[int] = None
    buy_spend_amount: Optional[float] = None
    buy_spend_any_item_from: Optional[str] = None
    buy_spend_sale_items: Optional[List[Any]] = None
    gets_quantity: Optional[int] = None
    gets_any_item_from: Optional[str] = None
    gets_sale_items: Optional[List[Any]] = None
    discounted_value: Optional[str] = None
    percentage: Optional[float] = None
    amount_off_each: Optional[float] = None
    is_max_users_per_order: Optional[bool] = None
    max_users: Optional[int] = None
    status: Optional[str] = None


class SiteBuilderFields(EntityFields):
    sections: Optional[List[Dict[str, Any]]] = None
    hot_products: Optional[List[Any]] = None
    hero_banners: Optional[List[Dict[str, Any]]] = None
    about_us: Optional[str] = None
    theme: Optional[Dict[str, Any]] = None
    is_published: Optional[bool] = None


class CheckoutItem(EntityFields):
    product_id: Optional[str] = None
    quantity: Optional[int] = None


class CheckoutRequest(EntityFields):
    """Cart checkout: contact and address fields, ``items`` and the client-side totals."""

    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    address: Optional[str] = None
    apartment: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    phone: Optional[str] = None
    shipping_method: Optional[str] = None
    discount_code: Optional[str] = None
    items: Optional[List[CheckoutItem]] = None
    subtotal: Optional[float] = None
    shipping: Optional[float] = None
    tax: Optional[float] = None
    total: Optional[float] = None


class SettingsFields(BaseModel):
    """Settings pages: unknown keys are dropped and numbers may stand in for text."""

    model_config = ConfigDict(coerce_numbers_to_str=True)


class StoreDetailsFields(SettingsFields):
    logo: Optional[str] = None
    store_name: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    display_currency: Optional[str] = None
    unit_system: Optional[str] = None
    weight_unit: Optional[str] = None
    time_zone: Optional[str] = None
    prefix: Optional[str] = None
    suffix: Optional[str] = None


class GlobalDataFields(SettingsFields):
    store_logo: Optional[str] = None
    store_name: Optional[str] = None
    email: Optional[str] = None
    currency: Optional[str] = None
    time_zone: Optional[str] = None
    is_auto_apply_tax: Optional[bool] = None
    default_tax_rate: Optional[str] = None
    reg_number: Optional[str] = None
    recovery_phone: Optional[str] = None


class TaxDetailsFields(SettingsFields):
    is_auto_apply_tax: Optional[bool] = None
    default_tax_rate: Optional[str] = None
    reg_number: Optional[str] = None


class CustomTaxRequest(SettingsFields):
    product_id: str = Field(..., min_length=1)
    custom_tax: str = Field(..., min_length=1)


class ReturnRulesFields(SettingsFields):
    return_window: Optional[str] = None
    no_of_custom_days: Optional[str] = None
    return_shipping_cost: Optional[str] = None
    flat_rate: Optional[str] = None
    restocking_fee: Optional[bool] = None
    final_sale_items: Optional[str] = None
    sale_items: Optional[List[Any]] = None


class StatusToggle(BaseModel):
    status: bool


class PolicyContentUpdate(BaseModel):
    content: str = Field(..., min_length=1)


class CheckoutSettingsFields(SettingsFields):
    address_line: Optional[str] = None
    company_name: Optional[str] = None
    fullname: Optional[str] = None
    is_custom_tip: Optional[bool] = None
    is_tipping_checkout: Optional[bool] = None
    shipping_address_phone_number: Optional[str] = None
    tip_fixed_amount: Optional[List[str]] = None
    tip_percentage: Optional[List[str]] = None
    tip_type: Optional[str] = None


class ContactInfoFields(SettingsFields):
    trade_name: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None
    phyiscal_address: Optional[str] = None
    vat_reg_number: Optional[str] = None
    business_reg_number: Optional[str] = None
    customer_support_hours: Optional[str] = None
    response_time: Optional[str] = None
    is_contact_form: Optional[bool] = None
    contact_page_intro: Optional[str] = None
    fb_url: Optional[str] = None
    insta_url: Optional[str] = None
    x_url: Optional[str] = None
    linkedin_url: Optional[str] = None


class SupplierProfileFields(SettingsFields):
    profile_image: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None


class RecoveryEmailRequest(BaseModel):
    recovery_email: EmailStr


class RecoveryPhoneRequest(SettingsFields):
    recovery_phone: str = Field(..., min_length=1)


class FileRef(BaseModel):
    """One file of a ``delete_file`` request; incomplete entries are reported back as failed."""

    parent_id: Optional[str] = None
    parent_type: Optional[str] = None
    file_name: Optional[str] = None
    full_name: Optional[str] = None


class DeleteFilesRequest(BaseModel):
    data: List[FileRef] = Field(..., min_length=1)


class ClientProfileFields(SettingsFields):
    profile_img: Optional[str] = Field(None, max_length=500)
    full_name: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = Field(None, max_length=20)
    company_name: Optional[str] = Field(None, max_length=100)
    business_type: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = Field(None, max_length=500)
    city: Optional[str] = Field(None, max_length=100)
    about: Optional[str] = Field(None, max_length=2000)


class ClientSecurityFields(BaseModel):
    two_factor: Optional[bool] = None
    email_notify_for_logins: Optional[bool] = None
    remember_30days: Optional[bool] = None


class ContactMessageForm(SettingsFields):
    fullname: str = Field(..., min_length=1)
    email: EmailStr
    phone_number: str = ""
    subject: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)


class FeedbackForm(SettingsFields):
    fullname: str = Field(..., min_length=1)
    email: EmailStr
    feedback: str = Field(..., min_length=1)
    suggestions: str = ""
    feedback_type: str = "general"
    rating: int = Field(0, ge=0, le=5)


class SupportRequestForm(SettingsFields):
    fullname: str = Field(..., min_length=1)
    email: EmailStr
    phone_number: str = ""
    support_category: str = "other"
    subject: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)


def sent_fields(model, payload: dict) -> dict:
    """Validate a payload with ``model`` and keep only the keys the client sent."""
    return model.model_validate(payload).model_dump(exclude_unset=True)
