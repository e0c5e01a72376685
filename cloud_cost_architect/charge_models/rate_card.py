from __future__ import annotations

from datetime import timedelta
from typing import Dict, List

from ..domain.models import CostComponent, PricingModel, ResourceDescriptor, ResourcePricing, duration_hours
from ..pricing import units
from .base import BaseChargeModel
from .types import MetricSpec


class RateCardChargeModel(BaseChargeModel):
    """
    Generic model for resource types priced only by a rate store or a
    registered pricing function.

    Every component of the resolved rate card becomes one line:
    - per_hour: hours x ``count``
    - per_unit_volume: ``size_gb`` x months
    - per_request_batch: ``request_count``, rate normalized by its unit
    - one_time: 1
    - tiered / percentage: not derivable generically, emitted at zero
    """

    def __init__(self, resource_type: str = "generic") -> None:
        self.resource_type = resource_type
        super().__init__()

    def required_metrics(self) -> Dict[str, MetricSpec]:
        return {
            "count": MetricSpec("count", type="float", default=1.0),
            "size_gb": MetricSpec("size_gb", type="float", default=0.0),
            "request_count": MetricSpec("request_count", type="float", default=0.0),
        }

    def variant(self, resource: ResourceDescriptor):
        return resource.metadata.get("variant") or None

    def calculate(
        self, resource: ResourceDescriptor, duration: timedelta, pricing: ResourcePricing
    ) -> List[CostComponent]:
        hours = duration_hours(duration)
        out: List[CostComponent] = []
        for comp in pricing.components:
            model = comp.pricing_model
            rate = comp.rate
            if model == PricingModel.PER_HOUR:
                qty = hours * self.metric(resource, "count")
            elif model == PricingModel.PER_UNIT_VOLUME:
                qty = self.metric(resource, "size_gb") * units.months(hours)
            elif model == PricingModel.PER_REQUEST_BATCH:
                qty = self.metric(resource, "request_count")
                rate = units.per_unit(rate, comp.unit)
            elif model == PricingModel.ONE_TIME:
                qty = 1.0
            else:
                qty = 0.0
            out.append(CostComponent.of(comp.name, model, qty, rate, comp.currency))
        return out
