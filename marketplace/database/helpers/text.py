"""Text helpers: URL slugs and human-readable document numbers."""

import re
import secrets
import string


def slugify(text: str, fallback_prefix: str = "item") -> str:
    """
    Build a URL handle from a title.

    Lowercases, turns every run of non-alphanumerics into a single hyphen and
    trims leading/trailing hyphens: ``"Summer Sale!  2025"`` -> ``"summer-sale-2025"``.
    A title with no letters or digits gets ``<fallback_prefix>-<8 hex chars>``.
    """
    slug = re.sub(r"[^a-z0-9]+", "-", (text or "").lower()).strip("-")
    return slug or f"{fallback_prefix}-{secrets.token_hex(4)}"


def generate_document_number(prefix: str, length: int = 8) -> str:
    """Return ``PREFIX-XXXXXXXX`` with uppercase alphanumerics (``ORD``, ``CLT``, ``PO``)."""
    alphabet = string.ascii_uppercase + string.digits
    return f"{prefix}-{''.join(secrets.choice(alphabet) for _ in range(length))}"


def truncate(text: str, limit: int = 50) -> str:
    """Shorten text longer than ``limit`` to ``limit - 3`` characters plus ``...``."""
    text = text or ""
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text
