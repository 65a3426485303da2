"""Identifier parsing shared by DAOs and services."""

import uuid
from typing import Iterable, List, Optional

from marketplace.errors import InvalidIdError


def to_uuid(value) -> uuid.UUID:
    """
    Coerce a UUID or string into ``uuid.UUID``.

    Raises
    ------
    InvalidIdError
        If the value is empty or not a valid UUID.
    """
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError, AttributeError):
        raise InvalidIdError()


def to_uuid_or_none(value) -> Optional[uuid.UUID]:
    if value in (None, ""):
        return None
    return to_uuid(value)


def to_uuid_list(values: Optional[Iterable]) -> List[uuid.UUID]:
    return [to_uuid(v) for v in (values or [])]


def id_str(value) -> Optional[str]:
    return str(value) if value is not None else None
