from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict, List, Optional, Protocol

from ..domain import metadata as md
from ..domain.models import CostComponent, PricingModel, ResourceDescriptor, ResourcePricing, duration_hours
from ..errors import InvalidMetadataError, MissingRequiredMetadataError
from ..pricing import units
from .types import MetricIssue, MetricSpec


class ChargeModel(Protocol):
    """Pricing strategy for one resource type."""

    resource_type: str
    pricing_type: str

    def required_metrics(self) -> Dict[str, MetricSpec]: ...

    def validate_metrics(self, metadata: Dict[str, Any]) -> List[MetricIssue]: ...

    def variant(self, resource: ResourceDescriptor) -> Optional[str]: ...

    def variant_subtype(self, resource: ResourceDescriptor) -> Optional[str]: ...

    def calculate(
        self, resource: ResourceDescriptor, duration: timedelta, pricing: ResourcePricing
    ) -> List[CostComponent]: ...


class BaseChargeModel:
    """Default helpers shared by the built-in strategies.

    Subclasses declare ``resource_type``, their metadata parameters through
    ``required_metrics`` and, for variant-sensitive types, ``variant_key`` and
    ``default_variant``. ``pricing_type`` names the rate card to resolve when
    it differs from the resource type.
    """

    resource_type: str = "generic"
    pricing_type: Optional[str] = None
    variant_key: Optional[str] = None
    default_variant: Optional[str] = None

    def __init__(self) -> None:
        if self.pricing_type is None:
            self.pricing_type = self.resource_type

    def required_metrics(self) -> Dict[str, MetricSpec]:
        return {}

    def validate_metrics(self, metadata: Dict[str, Any]) -> List[MetricIssue]:
        issues: List[MetricIssue] = []
        for k, spec in (self.required_metrics() or {}).items():
            v = (metadata or {}).get(k)
            if v is None or v == "":
                if spec.required:
                    issues.append(MetricIssue(key=k, issue="missing", message=f"Missing required metric: {k}"))
                continue
            if spec.type in ("int", "float") and md.get_float(metadata, k) is None:
                issues.append(MetricIssue(key=k, issue="invalid", message=f"{k} must be numeric, got {v!r}"))
        return issues

    def ensure_required(self, resource: ResourceDescriptor) -> None:
        specs = self.required_metrics()
        for issue in self.validate_metrics(resource.metadata):
            if issue.issue == "missing":
                raise MissingRequiredMetadataError(resource.resource_type, issue.key)
            spec = specs.get(issue.key)
            if spec is not None and spec.required:
                raise InvalidMetadataError(resource.resource_type, issue.key, resource.metadata.get(issue.key))

    def metric(self, resource: ResourceDescriptor, key: str) -> Any:
        """Metadata value coerced per its MetricSpec, or the spec default."""
        spec = self.required_metrics().get(key) or MetricSpec(key)
        meta = resource.metadata
        if spec.type == "float":
            return md.get_float(meta, key, spec.default)
        if spec.type == "int":
            return md.get_int(meta, key, spec.default)
        if spec.type == "str":
            return md.get_str(meta, key, spec.default)
        if spec.type == "bool":
            return md.get_bool(meta, key, bool(spec.default))
        v = meta.get(key)
        return spec.default if v is None else v

    def variant(self, resource: ResourceDescriptor) -> Optional[str]:
        if not self.variant_key:
            return None
        return md.get_str(resource.metadata, self.variant_key, self.default_variant) or self.default_variant

    def variant_subtype(self, resource: ResourceDescriptor) -> Optional[str]:
        return None

    def calculate(
        self, resource: ResourceDescriptor, duration: timedelta, pricing: ResourcePricing
    ) -> List[CostComponent]:
        return []

    # ------------------------------------------------------------------
    # Line builders
    # ------------------------------------------------------------------
    @staticmethod
    def line(
        pricing: ResourcePricing,
        name: str,
        quantity: float,
        *,
        unit_rate: Optional[float] = None,
        model: Optional[PricingModel] = None,
    ) -> CostComponent:
        comp = pricing.component(name)
        if unit_rate is None:
            unit_rate = comp.rate if comp is not None else 0.0
        if model is None:
            model = comp.pricing_model if comp is not None else PricingModel.PER_HOUR
        currency = comp.currency if comp is not None else pricing.currency
        return CostComponent.of(name, model, quantity, unit_rate, currency)

    def hourly(
        self, pricing: ResourcePricing, name: str, duration: timedelta, count: float = 1.0
    ) -> CostComponent:
        return self.line(pricing, name, duration_hours(duration) * count, model=PricingModel.PER_HOUR)

    def per_month_volume(
        self, pricing: ResourcePricing, name: str, size: float, duration: timedelta
    ) -> CostComponent:
        """Per-unit-month charge: quantity = size x months."""
        return self.line(
            pricing, name, size * units.months(duration_hours(duration)), model=PricingModel.PER_UNIT_VOLUME
        )

    def with_free_tier(
        self,
        pricing: ResourcePricing,
        name: str,
        raw_quantity: float,
        free_per_month: float,
        duration: timedelta,
    ) -> CostComponent:
        """Usage less the prorated monthly allowance, rate normalized to one unit."""
        free = units.prorated_free_tier(free_per_month, duration_hours(duration))
        qty = units.billable(raw_quantity, free)
        comp = pricing.component(name)
        rate = units.per_unit(comp.rate, comp.unit) if comp is not None else 0.0
        return self.line(pricing, name, qty, unit_rate=rate)
