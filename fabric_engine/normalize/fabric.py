from __future__ import annotations

from typing import Dict, Optional


PLAIN_KEYWORDS = ["plain", "solid", "textured", "linen", "cotton"]
PATTERN_KEYWORDS = ["stripe", "floral", "geometric", "pattern", "damask", "paisley"]


def classify_fabric_type(fabric_type: Optional[str]) -> Dict[str, bool]:
    """Classify a free-text fabric type.

    Returns flags: is_plain, requires_pattern_matching. A plain keyword wins
    over a pattern keyword ("plain stripe-free linen" is plain).
    """
    lower = (fabric_type or "").lower()
    is_plain = any(k in lower for k in PLAIN_KEYWORDS)
    requires_matching = (not is_plain) and any(k in lower for k in PATTERN_KEYWORDS)
    return {"is_plain": is_plain, "requires_pattern_matching": requires_matching}
