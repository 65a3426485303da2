"""
Discount ORM Model
==================

Supplier discounts (``discount`` table): redeemable ``code`` discounts and
``automatic`` discounts, percentage or fixed amount, scoped to all items,
specific products or specific collections.

Save hook
~~~~~~~~~
- ``code`` is upper-cased.
- ``end_datetime`` must be after ``start_datetime`` when an end date is set.
- Status auto-updates: past end date → ``expired``; usage limit reached →
  ``used_up``.

Usage counters (``total_uses`` and the per-customer ``customer_uses`` map)
only ever grow.
"""

import uuid
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import JSON, VARCHAR, Boolean, DateTime, Float, ForeignKey, Integer, UniqueConstraint, Uuid, event
from sqlalchemy.ext.mutable import MutableDict, MutableList
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.database.config.connection_engine import declarativeBase
from marketplace.database.helpers.timeutils import ensure_aware, utcnow
from marketplace.errors import BadRequestError

DISCOUNT_TYPES = ("code", "automatic")
DISCOUNT_VALUE_TYPES = ("percentage", "fixed_amount")
APPLIES_TO = ("collections", "products", "all")
ELIGIBILITY = ("all_customers", "specific_customers")
MIN_PURCHASE_REQUIREMENTS = ("no_req", "min_amount", "min_items")
DISCOUNT_STATUSES = ("active", "inactive", "expired", "used_up")


class Discount(declarativeBase):
    """
    ORM model for the `discount` table.

    Attributes
    ----------
    code : str | None
        Upper-cased redemption code, unique per supplier.
    discount_value_type : str
        ``percentage`` or ``fixed_amount``.
    applies_to : str
        ``all``, ``products`` or ``collections``; ``sale_items`` holds the ids.
    eligibility : str
        ``all_customers`` or ``specific_customers`` (``customer_list``).
    min_purchase_req : str
        ``no_req``, ``min_amount`` (``min_amount_value``) or ``min_items`` (``min_items_value``).
    is_max_limit, max_total_uses : bool, int
        Optional global usage cap.
    customer_uses : dict[str, int]
        Uses per customer id.
    """

    __tablename__ = "discount"
    __table_args__ = (UniqueConstraint("supplier_id", "code", name="uq_discount_supplier_code"),)

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)
    supplier_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("app_user.id"), nullable=False, index=True)
    discount_type: Mapped[str] = mapped_column(VARCHAR(16), nullable=False)
    code: Mapped[Optional[str]] = mapped_column(VARCHAR(64), nullable=True)
    title: Mapped[str] = mapped_column(VARCHAR(100), nullable=False)
    discount_value_type: Mapped[str] = mapped_column(VARCHAR(16), nullable=False)
    discount_value: Mapped[float] = mapped_column(Float, nullable=False)
    applies_to: Mapped[str] = mapped_column(VARCHAR(16), nullable=False)
    sale_items: Mapped[list] = mapped_column(MutableList.as_mutable(JSON), nullable=False, default=list)

    start_datetime: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    is_end_date: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    end_datetime: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    eligibility: Mapped[str] = mapped_column(VARCHAR(32), nullable=False, default="all_customers")
    customer_list: Mapped[list] = mapped_column(MutableList.as_mutable(JSON), nullable=False, default=list)
    min_purchase_req: Mapped[str] = mapped_column(VARCHAR(16), nullable=False, default="no_req")
    min_amount_value: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    min_items_value: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_max_limit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    max_total_uses: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    one_per_customer: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # buy X get Y
    customer_buy_spend: Mapped[str] = mapped_column(VARCHAR(16), nullable=False, default="min_item_qty")
    buy_spend_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    buy_spend_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    buy_spend_any_item_from: Mapped[str] = mapped_column(VARCHAR(16), nullable=False, default="products")
    buy_spend_sale_items: Mapped[list] = mapped_column(MutableList.as_mutable(JSON), nullable=False, default=list)
    gets_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    gets_any_item_from: Mapped[str] = mapped_column(VARCHAR(16), nullable=False, default="products")
    gets_sale_items: Mapped[list] = mapped_column(MutableList.as_mutable(JSON), nullable=False, default=list)
    discounted_value: Mapped[str] = mapped_column(VARCHAR(16), nullable=False, default="free")
    percentage: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    amount_off_each: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    is_max_users_per_order: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    max_users: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    total_uses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    customer_uses: Mapped[dict] = mapped_column(MutableDict.as_mutable(JSON), nullable=False, default=dict)
    status: Mapped[str] = mapped_column(VARCHAR(16), nullable=False, default="active")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __init__(
        self,
        supplier_id: UUID,
        discount_type: str,
        title: str,
        discount_value_type: str,
        discount_value: float,
        applies_to: str,
        **fields,
    ):
        now = utcnow()
        self.id = uuid.uuid4()
        self.supplier_id = supplier_id
        self.discount_type = discount_type
        self.code = None
        self.title = title.strip()
        self.discount_value_type = discount_value_type
        self.discount_value = discount_value
        self.applies_to = applies_to
        self.sale_items = []
        self.start_datetime = now
        self.is_end_date = False
        self.end_datetime = None
        self.eligibility = "all_customers"
        self.customer_list = []
        self.min_purchase_req = "no_req"
        self.min_amount_value = 0
        self.min_items_value = 1
        self.is_max_limit = False
        self.max_total_uses = 1
        self.one_per_customer = False
        self.customer_buy_spend = "min_item_qty"
        self.buy_spend_quantity = 1
        self.buy_spend_amount = 0
        self.buy_spend_any_item_from = "products"
        self.buy_spend_sale_items = []
        self.gets_quantity = 1
        self.gets_any_item_from = "products"
        self.gets_sale_items = []
        self.discounted_value = "free"
        self.percentage = 0
        self.amount_off_each = 0
        self.is_max_users_per_order = False
        self.max_users = 1
        self.total_uses = 0
        self.customer_uses = {}
        self.status = "active"
        self.created_at = now
        self.updated_at = now
        for key, value in fields.items():
            setattr(self, key, value)
        self.apply_save_rules()

    @property
    def is_currently_active(self) -> bool:
        """Active status, already started, not ended and not used up."""
        now = utcnow()
        start = ensure_aware(self.start_datetime)
        end = ensure_aware(self.end_datetime)
        started = start is None or start <= now
        not_ended = not self.is_end_date or end is None or end >= now
        not_used_up = not self.is_max_limit or self.total_uses < self.max_total_uses
        return self.status == "active" and started and not_ended and not_used_up

    def apply_save_rules(self) -> None:
        """
        Normalize the code, validate the date window and auto-update the status.

        Raises
        ------
        BadRequestError
            If an end date is set and is not after the start date.
        """
        if self.code:
            self.code = self.code.strip().upper()
        start = ensure_aware(self.start_datetime)
        end = ensure_aware(self.end_datetime)
        if self.is_end_date and end and start and end <= start:
            raise BadRequestError("End date must be after start date")
        if self.is_end_date and end and end < utcnow():
            self.status = "expired"
        elif self.is_max_limit and self.total_uses >= self.max_total_uses:
            self.status = "used_up"

    def can_be_used_by(self, customer_id) -> dict:
        """
        Check whether a customer may redeem this discount.

        Returns
        -------
        dict
            ``{"can_use": bool, "reason": str | None}``.
        """
        if not self.is_currently_active:
            return {"can_use": False, "reason": "Discount is not currently active"}
        key = str(customer_id)
        if self.eligibility == "specific_customers" and key not in [str(c) for c in self.customer_list]:
            return {"can_use": False, "reason": "Customer not eligible for this discount"}
        if self.one_per_customer and self.customer_uses.get(key, 0) > 0:
            return {"can_use": False, "reason": "Discount already used by this customer"}
        return {"can_use": True, "reason": None}

    def use_discount(self, customer_id=None) -> None:
        """Increment the global counter and, when given, the customer's counter."""
        self.total_uses = (self.total_uses or 0) + 1
        if customer_id is not None:
            key = str(customer_id)
            self.customer_uses[key] = self.customer_uses.get(key, 0) + 1
        self.apply_save_rules()

    def __str__(self) -> str:
        return f"Discount: id:{self.id}, title: {self.title}, code: {self.code}, status: {self.status}"


@event.listens_for(Discount, "before_insert")
@event.listens_for(Discount, "before_update")
def _discount_before_save(mapper, connection, target: Discount) -> None:
    target.apply_save_rules()
    target.updated_at = utcnow()
