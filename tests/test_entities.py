import re
import uuid
from datetime import timedelta

import pytest

from marketplace.database.entities.admin_role import AdminRole
from marketplace.database.entities.conversations import Conversation
from marketplace.database.entities.discount import Discount
from marketplace.database.entities.messages import Message
from marketplace.database.entities.product import Product
from marketplace.database.entities.user import User
from marketplace.database.helpers.text import generate_document_number, slugify, truncate
from marketplace.database.helpers.timeutils import utcnow
from marketplace.errors import BadRequestError


def _discount(**fields):
    return Discount(
        supplier_id=uuid.uuid4(),
        discount_type="code",
        title="Spring",
        discount_value_type="percentage",
        discount_value=10,
        applies_to="all",
        code=" spring10 ",
        **fields,
    )


def test_slugify():
    assert slugify("Summer Sale!  2025") == "summer-sale-2025"
    assert slugify("--Hello--World--") == "hello-world"
    assert re.fullmatch(r"item-[0-9a-f]{8}", slugify(""))
    assert re.fullmatch(r"product-[0-9a-f]{8}", slugify("!!!", "product"))


def test_document_numbers_and_truncate():
    number = generate_document_number("ORD")
    assert number.startswith("ORD-") and len(number) == 12
    assert truncate("x" * 60) == "x" * 47 + "..."
    assert truncate("short") == "short"


def test_product_slug_profit_and_margin():
    product = Product(supplier_id=uuid.uuid4(), title="Blue Mug", price=20, cost_per_item=5)
    assert product.url_handle == "blue-mug"
    assert product.profit == 15
    assert product.margin == 75
    assert product.status == "draft"


def test_product_without_cost_keeps_zero_margin():
    product = Product(supplier_id=uuid.uuid4(), title="Gift Card", price=20)
    assert product.profit == 0
    assert product.margin == 0


def test_product_low_stock():
    product = Product(supplier_id=uuid.uuid4(), title="Pen", quantity=3, min_qty=5)
    assert product.is_low_stock()
    product.quantity = 5
    assert not product.is_low_stock()


def test_discount_code_is_normalized_and_active():
    discount = _discount()
    assert discount.code == "SPRING10"
    assert discount.status == "active"
    assert discount.is_currently_active


def test_discount_end_must_follow_start():
    start = utcnow()
    with pytest.raises(BadRequestError, match="End date must be after start date"):
        _discount(start_datetime=start, is_end_date=True, end_datetime=start - timedelta(days=1))


def test_discount_in_the_past_is_expired():
    start = utcnow() - timedelta(days=10)
    discount = _discount(start_datetime=start, is_end_date=True, end_datetime=start + timedelta(days=1))
    assert discount.status == "expired"
    assert not discount.is_currently_active


def test_discount_in_the_future_is_not_active_yet():
    discount = _discount(start_datetime=utcnow() + timedelta(days=1))
    assert discount.status == "active"
    assert not discount.is_currently_active


def test_discount_use_limit_marks_used_up():
    discount = _discount(is_max_limit=True, max_total_uses=2)
    discount.use_discount("c1")
    assert discount.status == "active"
    discount.use_discount("c2")
    assert discount.total_uses == 2
    assert discount.status == "used_up"
    assert discount.customer_uses == {"c1": 1, "c2": 1}


def test_discount_customer_eligibility():
    discount = _discount(eligibility="specific_customers", customer_list=["c1"], one_per_customer=True)
    assert discount.can_be_used_by("c1") == {"can_use": True, "reason": None}
    assert discount.can_be_used_by("c2")["reason"] == "Customer not eligible for this discount"
    discount.use_discount("c1")
    assert discount.can_be_used_by("c1")["reason"] == "Discount already used by this customer"


def test_conversation_unread_counters():
    alice = User(username="alice", email="alice@example.com", password="x")
    bob = User(username="bob", email="bob@example.com", password="x")
    conversation = Conversation.create_with_participants([alice, bob])
    assert conversation.get_unread_count(alice.id) == 0
    conversation.increment_unread_count(bob.id)
    conversation.increment_unread_count(bob.id)
    assert conversation.get_unread_count(bob.id) == 2
    conversation.set_unread_count(bob.id, -4)
    assert conversation.get_unread_count(bob.id) == 0
    assert conversation.has_participant(str(alice.id))
    assert not conversation.has_participant(uuid.uuid4())


def test_message_read_by_starts_with_sender():
    sender = uuid.uuid4()
    reader = uuid.uuid4()
    message = Message(conversation_id=uuid.uuid4(), sender_id=sender, text="hi")
    assert message.read_by == [str(sender)]
    assert message.mark_read_by(reader)
    assert not message.mark_read_by(reader)


def test_user_defaults_and_admin_normalization():
    user = User(username=" Alice ", email="ALICE@Example.com", password="x", user_type="supplier")
    assert user.username == "Alice"
    assert user.email == "alice@example.com"
    assert user.access_roles == ["supplier"]
    assert not user.is_admin
    user.admin_permissions = ["view_users"]
    user.normalize_admin_fields()
    assert user.admin_permissions == []


def test_user_permissions():
    admin = User(username="ops", email="ops@example.com", password="x", user_type="admin", admin_permissions=["view_users"])
    assert admin.is_admin
    assert admin.admin_role == "admin"
    assert admin.has_permission("view_users")
    assert not admin.has_permission("manage_admin_roles")
    assert admin.has_any_permission(["manage_admin_roles", "view_users"])
    assert not admin.has_all_permissions(["manage_admin_roles", "view_users"])
    admin.is_deactivated = True
    assert not admin.has_permission("view_users")


def test_super_admin_holds_every_permission():
    root = User(username="root", email="root@example.com", password="x", is_super_admin=True)
    assert root.is_admin
    assert root.has_all_permissions(["manage_admin_roles", "view_users", "delete_orders"])


def test_login_lockout_after_five_failures():
    user = User(username="bob", email="bob@example.com", password="x")
    for _ in range(4):
        user.track_login_attempt(success=False)
    assert not user.is_locked()
    user.track_login_attempt(success=False)
    assert user.is_locked()
    user.track_login_attempt(success=True)
    assert not user.is_locked()
    assert user.login_attempts == 0


def test_deactivated_admin_is_not_active():
    admin = User(username="ops", email="ops@example.com", password="x", user_type="admin")
    assert admin.is_active_admin()
    admin.is_deactivated = True
    assert not admin.is_active_admin()
    assert not User(username="bob", email="bob@example.com", password="x").is_active_admin()


def test_role_permission_edits():
    role = AdminRole(name=" Support ", display_name="Support", default_permissions=["view_users"])
    assert role.name == "support"
    role.add_permission("view_orders")
    role.add_permission("view_orders")
    assert role.default_permissions == ["view_users", "view_orders"]
    role.remove_permission("view_users")
    role.remove_permission("missing")
    assert role.default_permissions == ["view_orders"]
    assert role.has_permission("view_orders")
