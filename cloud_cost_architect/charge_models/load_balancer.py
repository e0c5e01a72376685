from __future__ import annotations

from datetime import timedelta
from typing import Dict, List

from ..domain.models import CostComponent, ResourceDescriptor, ResourcePricing
from .base import BaseChargeModel
from .types import MetricSpec


class LoadBalancerChargeModel(BaseChargeModel):
    """Hourly charge by load balancer type (application / network / classic)."""

    resource_type = "load_balancer"
    variant_key = "load_balancer_type"
    default_variant = "application"

    def required_metrics(self) -> Dict[str, MetricSpec]:
        return {
            "load_balancer_type": MetricSpec("load_balancer_type", type="str", default="application"),
        }

    def calculate(
        self, resource: ResourceDescriptor, duration: timedelta, pricing: ResourcePricing
    ) -> List[CostComponent]:
        return [self.hourly(pricing, "Load Balancer Hourly", duration)]
