"""Slug and SKU derivation.

Slug:
- Lowercase the product name
- Collapse every run of non-alphanumerics into one hyphen
- Trim leading/trailing hyphens

Variant SKU:
- {sku_prefix}-{color}-{size}-{material}, empty attributes skipped, uppercased
"""

import re

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_SKU_UNSAFE = re.compile(r"[^A-Z0-9]+")


def generate_slug(name: str) -> str:
    """Derive a URL-safe slug from a product name.

    Example:
        >>> generate_slug("Red T-Shirt!!")
        'red-t-shirt'
    """
    return _NON_ALNUM.sub("-", name.lower()).strip("-")


def compute_variant_sku(
    sku_prefix: str,
    color: str | None = None,
    size: str | None = None,
    material: str | None = None,
) -> str:
    """Compute a variant SKU from the product prefix and variant attributes.

    Example:
        >>> compute_variant_sku("tee", color="Navy Blue", size="M")
        'TEE-NAVY-BLUE-M'
    """
    parts = [_sku_part(p) for p in (sku_prefix, color, size, material)]
    return "-".join(p for p in parts if p)


def _sku_part(value: str | None) -> str:
    if not value:
        return ""
    return _SKU_UNSAFE.sub("-", value.upper()).strip("-")
