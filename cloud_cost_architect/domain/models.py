"""
Domain models for cost estimation.

Rate cards (ResourcePricing / PriceComponent) describe what a resource type
costs; estimates (CostEstimate / CostComponent) describe what a concrete
resource costs over a duration. Hidden dependency types describe billable
children that are provisioned implicitly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from ..config import DEFAULT_CURRENCY, HOURS_PER_DAY, HOURS_PER_MONTH


class PricingModel(str, Enum):
    PER_HOUR = "per_hour"
    PER_UNIT_VOLUME = "per_unit_volume"
    PER_REQUEST_BATCH = "per_request_batch"
    ONE_TIME = "one_time"
    TIERED = "tiered"
    PERCENTAGE = "percentage"

    @classmethod
    def parse(cls, value: Any) -> "PricingModel":
        """Accept enum members, canonical values and the short store aliases."""
        if isinstance(value, PricingModel):
            return value
        key = str(value or "").strip().lower()
        aliases = {
            "per_gb": cls.PER_UNIT_VOLUME,
            "per_request": cls.PER_REQUEST_BATCH,
            "hourly": cls.PER_HOUR,
        }
        if key in aliases:
            return aliases[key]
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"Unknown pricing model: {value!r}") from None


class Period(str, Enum):
    HOURLY = "hourly"
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @classmethod
    def for_duration(cls, duration: timedelta) -> "Period":
        hours = duration_hours(duration)
        if hours <= HOURS_PER_DAY:
            return cls.HOURLY
        if hours <= HOURS_PER_MONTH:
            return cls.MONTHLY
        return cls.YEARLY


def duration_hours(duration: timedelta) -> float:
    return duration.total_seconds() / 3600.0


@dataclass(frozen=True)
class ResourceDescriptor:
    """A provisioned or proposed resource, as handed over by the domain graph."""

    id: str
    name: str
    resource_type: str
    provider: str = "aws"
    region: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)
    parent_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResourceDescriptor":
        rtype = data.get("resource_type") or data.get("resourceType") or data.get("type")
        if not rtype:
            raise ValueError(f"resource {data.get('id') or data.get('name')!r} has no resource_type")
        rid = str(data.get("id") or data.get("name") or rtype)
        return cls(
            id=rid,
            name=str(data.get("name") or rid),
            resource_type=str(rtype),
            provider=str(data.get("provider") or "aws").lower(),
            region=str(data.get("region") or ""),
            metadata=dict(data.get("metadata") or {}),
            parent_id=data.get("parent_id"),
        )


@dataclass(frozen=True)
class PriceComponent:
    name: str
    pricing_model: PricingModel
    unit: str
    rate: float
    currency: str = DEFAULT_CURRENCY
    region: Optional[str] = None
    description: str = ""


@dataclass(frozen=True)
class ResourcePricing:
    """Rate card for one resource type / provider / region lookup."""

    resource_type: str
    provider: str
    components: List[PriceComponent] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    source: str = "catalog"  # function | rate_store | catalog
    rate_defaulted: bool = False

    def component(self, name: str) -> Optional[PriceComponent]:
        for c in self.components:
            if c.name == name:
                return c
        return None

    def rate(self, name: str) -> float:
        c = self.component(name)
        return c.rate if c is not None else 0.0

    @property
    def currency(self) -> str:
        if self.components:
            return self.components[0].currency
        return DEFAULT_CURRENCY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resource_type": self.resource_type,
            "provider": self.provider,
            "source": self.source,
            "rate_defaulted": self.rate_defaulted,
            "components": [
                {
                    "name": c.name,
                    "model": c.pricing_model.value,
                    "unit": c.unit,
                    "rate": c.rate,
                    "currency": c.currency,
                    "region": c.region,
                    "description": c.description,
                }
                for c in self.components
            ],
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class CostComponent:
    component_name: str
    pricing_model: PricingModel
    quantity: float
    unit_rate: float
    subtotal: float
    currency: str = DEFAULT_CURRENCY

    @classmethod
    def of(
        cls,
        name: str,
        model: PricingModel,
        quantity: float,
        unit_rate: float,
        currency: str = DEFAULT_CURRENCY,
    ) -> "CostComponent":
        quantity = max(0.0, float(quantity))
        unit_rate = max(0.0, float(unit_rate))
        return cls(name, model, quantity, unit_rate, quantity * unit_rate, currency)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "component_name": self.component_name,
            "model": self.pricing_model.value,
            "quantity": self.quantity,
            "unit_rate": self.unit_rate,
            "subtotal": self.subtotal,
            "currency": self.currency,
        }


@dataclass(frozen=True)
class HiddenDependency:
    """Declarative rule: provisioning a parent implicitly provisions a child.

    ``quantity`` and ``condition`` are formula / predicate objects from
    ``hidden_deps.expressions``; a ``None`` condition always applies.
    """

    parent_resource_type: str
    child_resource_type: str
    quantity: Any
    condition: Any = None
    is_attached: bool = True
    description: str = ""
    provider: str = "aws"


@dataclass(frozen=True)
class HiddenDependencyResource:
    dependency: HiddenDependency
    resource: ResourceDescriptor
    quantity: float


@dataclass(frozen=True)
class HiddenDependencyCost:
    dependency_resource_type: str
    dependency_resource_name: str
    total_cost: float
    breakdown: List[CostComponent]
    currency: str
    is_attached: bool
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dependency_resource_type": self.dependency_resource_type,
            "dependency_resource_name": self.dependency_resource_name,
            "total_cost": self.total_cost,
            "breakdown": [c.to_dict() for c in self.breakdown],
            "currency": self.currency,
            "is_attached": self.is_attached,
            "description": self.description,
        }


@dataclass
class CostEstimate:
    """A calculated estimate for a resource or a whole architecture."""

    total_cost: float
    currency: str
    breakdown: List[CostComponent]
    period: Period
    duration: timedelta
    provider: str
    hidden_dependency_costs: List[HiddenDependencyCost] = field(default_factory=list)
    calculated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    resource_type: Optional[str] = None
    region: Optional[str] = None
    resource_id: Optional[str] = None
    resource_name: Optional[str] = None
    skipped: List[str] = field(default_factory=list)

    @property
    def base_cost(self) -> float:
        return sum(c.subtotal for c in self.breakdown)

    @property
    def hidden_cost(self) -> float:
        return sum(h.total_cost for h in self.hidden_dependency_costs)

    def recompute_total(self) -> float:
        self.total_cost = self.base_cost + self.hidden_cost
        return self.total_cost

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "total_cost": self.total_cost,
            "currency": self.currency,
            "period": self.period.value,
            "duration_hours": duration_hours(self.duration),
            "calculated_at": self.calculated_at.isoformat(),
            "provider": self.provider,
            "breakdown": [c.to_dict() for c in self.breakdown],
            "hidden_dependency_costs": [h.to_dict() for h in self.hidden_dependency_costs],
        }
        if self.resource_type is not None:
            out["resource_type"] = self.resource_type
        if self.region is not None:
            out["region"] = self.region
        if self.resource_id is not None:
            out["resource_id"] = self.resource_id
            out["resource_name"] = self.resource_name
        if self.skipped:
            out["skipped"] = list(self.skipped)
        return out
