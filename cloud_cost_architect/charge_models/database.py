from __future__ import annotations

from datetime import timedelta
from typing import Dict, List

from ..domain.models import CostComponent, PricingModel, ResourceDescriptor, ResourcePricing, duration_hours
from .base import BaseChargeModel
from .types import MetricSpec

MULTI_AZ_MULTIPLIER = 2.0


class DatabaseInstanceChargeModel(BaseChargeModel):
    """RDS instance hours by instance class; Multi-AZ doubles the rate.

    Allocated storage and backups are priced as hidden dependencies.
    """

    resource_type = "rds_instance"
    variant_key = "instance_class"
    default_variant = "db.t3.micro"

    def required_metrics(self) -> Dict[str, MetricSpec]:
        return {
            "instance_class": MetricSpec("instance_class", type="str", default="db.t3.micro"),
            "engine": MetricSpec("engine", type="str", default="mysql"),
            "multi_az": MetricSpec("multi_az", type="bool", default=False),
            "allocated_storage": MetricSpec("allocated_storage", type="float", default=20.0),
        }

    def calculate(
        self, resource: ResourceDescriptor, duration: timedelta, pricing: ResourcePricing
    ) -> List[CostComponent]:
        name = "RDS Instance Hourly"
        rate = pricing.rate(name)
        if self.metric(resource, "multi_az"):
            rate *= float(pricing.metadata.get("multi_az_multiplier", MULTI_AZ_MULTIPLIER))
        return [self.line(pricing, name, duration_hours(duration), unit_rate=rate, model=PricingModel.PER_HOUR)]
