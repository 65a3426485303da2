"""
Rule evaluation for smart collections.

A smart collection holds ``smart_conditions``, a list of
``{"field", "operator", "value"}`` dicts, combined by ``smart_operator``
(``all`` / ``any``). Text operators compare case-insensitively; numeric
operators never match a value that cannot be read as a number.
"""

from typing import Callable, Dict, Iterable, List, Optional

from marketplace.errors import BadRequestError

TEXT_FIELDS = ("title", "description", "category", "vendor", "tag", "status")
NUMERIC_FIELDS = ("price", "compare_at_price", "quantity", "weight")
CONDITION_FIELDS = TEXT_FIELDS + NUMERIC_FIELDS


def _as_number(value) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _text(value) -> str:
    return str(value if value is not None else "").strip().lower()


def _greater_than(actual, expected) -> bool:
    a, e = _as_number(actual), _as_number(expected)
    return a is not None and e is not None and a > e


def _less_than(actual, expected) -> bool:
    a, e = _as_number(actual), _as_number(expected)
    return a is not None and e is not None and a < e


def _equals(actual, expected) -> bool:
    a, e = _as_number(actual), _as_number(expected)
    if a is not None and e is not None:
        return a == e
    return _text(actual) == _text(expected)


OPERATORS: Dict[str, Callable[[object, object], bool]] = {
    "equals": _equals,
    "not_equals": lambda actual, expected: not _equals(actual, expected),
    "contains": lambda actual, expected: _text(expected) in _text(actual),
    "not_contains": lambda actual, expected: _text(expected) not in _text(actual),
    "starts_with": lambda actual, expected: _text(actual).startswith(_text(expected)),
    "ends_with": lambda actual, expected: _text(actual).endswith(_text(expected)),
    "greater_than": _greater_than,
    "less_than": _less_than,
}


def validate_conditions(smart_operator: str, conditions: Iterable[dict]) -> List[dict]:
    """
    Normalize a rule set and reject unknown fields or operators.

    Returns
    -------
    list[dict]
        Conditions as ``{"field", "operator", "value"}`` with the field and
        operator lower-cased.

    Raises
    ------
    BadRequestError
        On an unknown combinator, field or operator.
    """
    if smart_operator not in ("all", "any"):
        raise BadRequestError("Smart operator must be 'all' or 'any'")
    normalized = []
    for condition in conditions or []:
        if not isinstance(condition, dict):
            raise BadRequestError("Each smart condition must be an object")
        field = _text(condition.get("field"))
        operator = _text(condition.get("operator"))
        if field not in CONDITION_FIELDS:
            raise BadRequestError(f"Unsupported smart condition field: {condition.get('field')}")
        if operator not in OPERATORS:
            raise BadRequestError(f"Unsupported smart condition operator: {condition.get('operator')}")
        normalized.append({"field": field, "operator": operator, "value": condition.get("value", "")})
    return normalized


def product_field_values(product, field: str, vendor_name: Optional[str] = None) -> list:
    """Values of ``field`` on a product; ``tag`` yields one value per tag."""
    if field == "tag":
        return list(product.search_tags or [])
    if field == "vendor":
        return [vendor_name if vendor_name is not None else (product.search_vendor or "")]
    return [getattr(product, field)]


def condition_matches(product, condition: dict, vendor_name: Optional[str] = None) -> bool:
    compare = OPERATORS[condition["operator"]]
    values = product_field_values(product, condition["field"], vendor_name)
    if condition["operator"] in ("not_equals", "not_contains"):
        return all(compare(v, condition["value"]) for v in values)
    return any(compare(v, condition["value"]) for v in values)


def product_matches(product, smart_operator: str, conditions: List[dict], vendor_name: Optional[str] = None) -> bool:
    """
    Evaluate a rule set against one product.

    An empty rule set matches nothing.
    """
    if not conditions:
        return False
    results = (condition_matches(product, c, vendor_name) for c in conditions)
    if smart_operator == "any":
        return any(results)
    return all(results)


def matching_products(products: Iterable, smart_operator: str, conditions: List[dict], vendor_names: Optional[Dict[str, str]] = None) -> list:
    """Filter products by a rule set; archived products never belong to a collection."""
    vendor_names = vendor_names or {}
    return [
        p
        for p in products
        if p.status != "archived" and product_matches(p, smart_operator, conditions, vendor_names.get(p.search_vendor or ""))
    ]
