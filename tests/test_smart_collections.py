import uuid

import pytest

from marketplace.database.core.smart_collections import matching_products, product_matches, validate_conditions
from marketplace.database.entities.product import Product
from marketplace.errors import BadRequestError


def _product(title, **fields):
    fields.setdefault("status", "active")
    return Product(supplier_id=uuid.uuid4(), title=title, **fields)


@pytest.fixture
def catalog():
    return [
        _product("Red Shirt", price=25, category="Apparel", search_tags=["summer", "cotton"], search_vendor="v1", quantity=5),
        _product("Blue Jeans", price=60, category="Apparel", search_tags=["denim"], quantity=8),
        _product("Coffee Mug", price=12, category="Kitchen", quantity=0),
        _product("Old Hat", price=5, category="Apparel", status="archived"),
    ]


def titles(products):
    return sorted(p.title for p in products)


def test_validate_normalizes_fields_and_operators():
    conditions = validate_conditions("all", [{"field": "Title", "operator": "CONTAINS", "value": "shirt"}])
    assert conditions == [{"field": "title", "operator": "contains", "value": "shirt"}]


@pytest.mark.parametrize(
    "operator, conditions, message",
    [
        ("some", [], "Smart operator must be 'all' or 'any'"),
        ("all", [{"field": "color", "operator": "equals", "value": "red"}], "Unsupported smart condition field: color"),
        ("all", [{"field": "title", "operator": "matches", "value": "x"}], "Unsupported smart condition operator: matches"),
        ("all", ["title contains x"], "Each smart condition must be an object"),
    ],
)
def test_validate_rejects_bad_rules(operator, conditions, message):
    with pytest.raises(BadRequestError, match=message):
        validate_conditions(operator, conditions)


def test_all_requires_every_condition(catalog):
    rules = validate_conditions(
        "all",
        [
            {"field": "category", "operator": "equals", "value": "apparel"},
            {"field": "price", "operator": "less_than", "value": "50"},
        ],
    )
    assert titles(matching_products(catalog, "all", rules)) == ["Red Shirt"]


def test_any_accepts_one_condition(catalog):
    rules = validate_conditions(
        "any",
        [
            {"field": "title", "operator": "starts_with", "value": "coffee"},
            {"field": "tag", "operator": "equals", "value": "denim"},
        ],
    )
    assert titles(matching_products(catalog, "any", rules)) == ["Blue Jeans", "Coffee Mug"]


def test_archived_products_never_match(catalog):
    rules = validate_conditions("all", [{"field": "category", "operator": "equals", "value": "Apparel"}])
    assert "Old Hat" not in titles(matching_products(catalog, "all", rules))


def test_negative_operators_check_every_tag(catalog):
    rules = validate_conditions("all", [{"field": "tag", "operator": "not_equals", "value": "cotton"}])
    assert "Red Shirt" not in titles(matching_products(catalog, "all", rules))


def test_numeric_operators_ignore_non_numbers(catalog):
    rules = validate_conditions("all", [{"field": "price", "operator": "greater_than", "value": "cheap"}])
    assert matching_products(catalog, "all", rules) == []


def test_quantity_equals_zero(catalog):
    rules = validate_conditions("all", [{"field": "quantity", "operator": "equals", "value": 0}])
    assert titles(matching_products(catalog, "all", rules)) == ["Coffee Mug"]


def test_vendor_uses_resolved_name(catalog):
    rules = validate_conditions("all", [{"field": "vendor", "operator": "contains", "value": "acme"}])
    assert titles(matching_products(catalog, "all", rules, {"v1": "ACME Textiles"})) == ["Red Shirt"]


def test_empty_rule_set_matches_nothing(catalog):
    assert not product_matches(catalog[0], "all", [])
