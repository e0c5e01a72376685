import re

from ..config import HOURS_PER_MONTH


def months(hours: float) -> float:
    """Hours expressed in canonical 720-hour months."""
    return max(float(hours), 0.0) / HOURS_PER_MONTH


def prorated_free_tier(per_month: float, hours: float) -> float:
    return max(float(per_month), 0.0) * months(hours)


def billable(quantity: float, free_allowance: float) -> float:
    """Quantity left after the free allowance, floored at zero."""
    return max(float(quantity) - float(free_allowance), 0.0)


def batch_size(unit: str) -> float:
    """
    How many raw units one rate applies to, parsed from the unit label.

    "per 1,000 requests" -> 1000, "per 1,000,000 requests" / "per million" /
    "1M requests" -> 1e6, "10K" -> 1e4. Plain units ("GB", "hour") -> 1.
    """
    uom = (unit or "").lower().strip()

    if "million" in uom or re.search(r"\b1\s*m\b", uom):
        return 1_000_000.0
    m = re.search(r"(\d+)\s*k\b", uom)
    if m:
        return float(m.group(1)) * 1_000.0
    m = re.search(r"per\s+([\d,]+)", uom)
    if m:
        try:
            pack = float(m.group(1).replace(",", ""))
            if pack > 0:
                return pack
        except ValueError:
            pass
    return 1.0


def per_unit(rate: float, unit: str) -> float:
    """Normalize a rate quoted per batch into a per-single-unit rate."""
    return float(rate) / batch_size(unit)
