from __future__ import annotations

from datetime import timedelta
from typing import Dict, List, Optional

from ..domain.models import CostComponent, PricingModel, ResourceDescriptor, ResourcePricing, duration_hours
from ..pricing.importer import normalize_os
from .base import BaseChargeModel
from .types import MetricSpec

EC2_HOURLY = "EC2 Instance Hourly"


class ComputeInstanceChargeModel(BaseChargeModel):
    """EC2 on-demand instance: hourly rate by instance type and OS."""

    resource_type = "ec2_instance"
    variant_key = "instance_type"
    default_variant = "t3.micro"

    def required_metrics(self) -> Dict[str, MetricSpec]:
        return {
            "instance_type": MetricSpec("instance_type", type="str", default="t3.micro", description="Instance size"),
            "operating_system": MetricSpec("operating_system", type="str", default="linux", description="Platform"),
            "count": MetricSpec("count", type="float", default=1.0, description="Identical instances"),
        }

    def variant_subtype(self, resource: ResourceDescriptor) -> Optional[str]:
        # Same labels as imported store rows (windows -> mswin)
        return normalize_os(self.metric(resource, "operating_system"))

    def calculate(
        self, resource: ResourceDescriptor, duration: timedelta, pricing: ResourcePricing
    ) -> List[CostComponent]:
        count = self.metric(resource, "count")
        return [self.hourly(pricing, EC2_HOURLY, duration, count=count)]


class AutoScalingGroupChargeModel(BaseChargeModel):
    """Instances of an auto scaling group, billed at the EC2 rate.

    Without an explicit ``desired_capacity`` the group is assumed to run at
    the midpoint of ``min_size`` and ``max_size``.
    """

    resource_type = "auto_scaling_group"
    variant_key = "instance_type"
    default_variant = "t3.micro"

    def required_metrics(self) -> Dict[str, MetricSpec]:
        return {
            "instance_type": MetricSpec("instance_type", type="str", default="t3.micro"),
            "min_size": MetricSpec("min_size", type="float", default=1.0, description="Minimum capacity"),
            "max_size": MetricSpec("max_size", type="float", default=3.0, description="Maximum capacity"),
            "desired_capacity": MetricSpec("desired_capacity", type="float", default=None),
        }

    def average_capacity(self, resource: ResourceDescriptor) -> float:
        desired = self.metric(resource, "desired_capacity")
        if desired is not None:
            return max(desired, 0.0)
        lo = self.metric(resource, "min_size")
        hi = self.metric(resource, "max_size")
        if hi < lo:
            hi = lo
        return max((lo + hi) / 2.0, 0.0)

    def calculate(
        self, resource: ResourceDescriptor, duration: timedelta, pricing: ResourcePricing
    ) -> List[CostComponent]:
        capacity = self.average_capacity(resource)
        rate = pricing.rate(EC2_HOURLY)
        return [
            self.line(
                pricing,
                "Auto Scaling Group Instance Hours",
                capacity * duration_hours(duration),
                unit_rate=rate,
                model=PricingModel.PER_HOUR,
            )
        ]
