"""Rate-table schema for the built-in pricing catalog.

A table prices one resource type for one provider. Each component carries
either a flat ``rate``, a ``rates`` map keyed by variant, and optionally
``regional_rates`` that replace the base rate in specific regions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..domain.models import PricingModel


@dataclass(frozen=True)
class ComponentRateDef:
    name: str
    pricing_model: PricingModel
    unit: str
    rate: Optional[float] = None
    rates: Dict[str, float] = field(default_factory=dict)
    regional_rates: Dict[str, float] = field(default_factory=dict)
    description: str = ""

    @property
    def variant_sensitive(self) -> bool:
        return bool(self.rates)


@dataclass(frozen=True)
class RateTableDef:
    resource_type: str
    provider: str
    currency: str = "USD"
    aliases: List[str] = field(default_factory=list)
    variant_key: Optional[str] = None
    default_variant: Optional[str] = None
    regional_multipliers: Dict[str, float] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)
    components: List[ComponentRateDef] = field(default_factory=list)
    rates_from: Optional[str] = None  # borrow components of another table
    source_file: str = ""

    @property
    def variant_sensitive(self) -> bool:
        return any(c.variant_sensitive for c in self.components)

    def known_variants(self) -> List[str]:
        seen: List[str] = []
        for c in self.components:
            for v in c.rates:
                if v not in seen:
                    seen.append(v)
        return seen
