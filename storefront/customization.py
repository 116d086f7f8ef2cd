"""
Canonical encoding of customization selections.

Two customized cart lines for the same product are the same line only when
their customization signatures match. The signature is independent of the
order parts were chosen in and of dict key order.
"""
import json
import hashlib
from decimal import Decimal
from typing import Iterable, Dict


def _price_text(price: Decimal) -> str:
    # "5", "5.0" and "5.00" must encode identically
    return format(Decimal(price).normalize(), "f")


def canonical_record(detail) -> Dict[str, str]:
    """Reduce one customization detail to a plain sorted-key record"""
    return {
        "color": detail.color.strip().lower(),
        "part_id": detail.part_id,
        "part_name": detail.part_name,
        "price": _price_text(detail.price),
    }


def customization_signature(details: Iterable) -> str:
    """SHA-256 hex digest over the sorted canonical records"""
    records = sorted(
        json.dumps(canonical_record(d), sort_keys=True, separators=(",", ":"))
        for d in details
    )
    payload = "[" + ",".join(records) + "]"
    return hashlib.sha256(payload.encode()).hexdigest()
