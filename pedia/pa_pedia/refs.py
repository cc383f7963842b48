"""
PA Pedia - Ref Strings
=======================
Cache keys and the URL form of faction / comparison refs.

    "MLA"                -> faction MLA, latest version
    "MLA@1.0.0"          -> faction MLA, version 1.0.0
    "MLA@1.0.0/tank:3"   -> 3x tank from MLA 1.0.0
"""

from typing import Optional, Tuple


def make_cache_key(faction_id: str, unit_id: str, version: Optional[str] = None) -> str:
    """Identity key of a unit record: factionId:unitId[@version]."""
    key = f"{faction_id}:{unit_id}"
    if version:
        key += f"@{version}"
    return key


def parse_faction_ref(ref: str) -> Tuple[str, Optional[str]]:
    """Split "faction@version" into (faction_id, version). Missing version is None."""
    if not ref:
        return "", None
    faction_id, sep, version = ref.partition("@")
    if not sep:
        return ref, None
    return faction_id, version or None


def build_faction_ref(faction_id: str, version: Optional[str] = None) -> str:
    if not version:
        return faction_id
    return f"{faction_id}@{version}"


def parse_quantity(value) -> int:
    """Positive int from text or a number; anything else falls back to 1."""
    try:
        quantity = int(value)
    except (TypeError, ValueError):
        return 1
    return quantity if quantity >= 1 else 1


def parse_comparison_ref(ref: str):
    """
    Parse "faction[@version]/unit[:quantity]" into a ComparisonRefWithQuantity.
    A ref without a slash names only a faction and yields a pending slot.
    Unparseable or non-positive quantities fall back to 1.
    """
    from pa_pedia.models import ComparisonRefWithQuantity

    ref_part, _, qty_part = ref.strip().partition(":")
    quantity = parse_quantity(qty_part) if qty_part else 1

    faction_part, sep, unit_id = ref_part.partition("/")
    faction_id, version = parse_faction_ref(faction_part)
    if not sep:
        unit_id = ""
    return ComparisonRefWithQuantity(
        faction_id=faction_id, unit_id=unit_id, version=version, quantity=quantity,
    )


def build_comparison_ref(ref) -> str:
    """Inverse of parse_comparison_ref. Quantity 1 is omitted."""
    base = f"{build_faction_ref(ref.faction_id, ref.version)}/{ref.unit_id}"
    quantity = getattr(ref, "quantity", 1)
    if quantity > 1:
        return f"{base}:{quantity}"
    return base
