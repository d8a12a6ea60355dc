from __future__ import annotations

from typing import Optional


# Sold by area rather than by fabric widths.
EXACT_AREA_CATEGORIES = {"awning", "panel_glide"}


def is_blind_category(category: Optional[str]) -> bool:
    """True for categories priced by square metre (blinds, awnings, panel glides, drapes)."""
    if not category:
        return False
    c = category.strip().lower()
    if "blind" in c:
        return True
    if c in EXACT_AREA_CATEGORIES:
        return True
    return "drape" in c
