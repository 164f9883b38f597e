# pos/services/item_keys.py

"""
CART LINE IDENTITY

item_key = first 32 hex chars of sha256 over the canonical JSON encoding of

    [product_id, variation_id or "0", sorted(variation_data), sorted(item_data)]

- dict keys are sorted, list values in item_data are sorted
- all scalars are strings
- separators are fixed (",", ":") and output is ASCII

so the same configuration always yields the same key regardless of the
order the client sent its attributes in.
"""

from __future__ import annotations

import hashlib
import json

from pos.services.exceptions import ValidationFailed


def normalize_variation_data(data) -> dict[str, str]:
    if data in (None, ""):
        return {}
    if not isinstance(data, dict):
        raise ValidationFailed("variation_data must be an object", details={"field": "variation_data"})

    out = {}
    for key, value in data.items():
        if isinstance(value, (dict, list)):
            raise ValidationFailed(
                "variation_data values must be strings",
                details={"field": "variation_data", "key": str(key)},
            )
        out[str(key).strip()] = "" if value is None else str(value).strip()
    return out


def normalize_item_data(data) -> dict:
    if data in (None, ""):
        return {}
    if not isinstance(data, dict):
        raise ValidationFailed("item_data must be an object", details={"field": "item_data"})

    out = {}
    for key, value in data.items():
        if isinstance(value, (list, tuple)):
            out[str(key).strip()] = sorted(str(v) for v in value)
        elif isinstance(value, dict):
            raise ValidationFailed(
                "item_data values must be strings or lists of strings",
                details={"field": "item_data", "key": str(key)},
            )
        else:
            out[str(key).strip()] = "" if value is None else str(value)
    return out


def make_item_key(product_id, variation_id=None, variation_data=None, item_data=None) -> str:
    canonical = [
        str(product_id),
        str(variation_id) if variation_id else "0",
        sorted(normalize_variation_data(variation_data).items()),
        sorted(normalize_item_data(item_data).items()),
    ]
    raw = json.dumps(canonical, separators=(",", ":"), ensure_ascii=True)
    return hashlib.sha256(raw.encode("ascii")).hexdigest()[:32]
