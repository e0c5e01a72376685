from __future__ import annotations

from datetime import timedelta
from typing import Dict, List

from ..domain import metadata as md
from ..domain.models import CostComponent, PricingModel, ResourceDescriptor, ResourcePricing, duration_hours
from .base import BaseChargeModel
from .types import MetricSpec

VCPU = "Fargate vCPU"
MEMORY = "Fargate Memory"

SPOT_DISCOUNT = 0.70

# ECS task size units -> vCPU / GB
CPU_UNITS = {
    "256": 0.25,
    "512": 0.5,
    "1024": 1.0,
    "2048": 2.0,
    "4096": 4.0,
    "8192": 8.0,
}
MEMORY_UNITS = {
    "512": 0.5,
    "1024": 1.0,
    "2048": 2.0,
    "3072": 3.0,
    "4096": 4.0,
    "5120": 5.0,
    "6144": 6.0,
    "7168": 7.0,
    "8192": 8.0,
    "16384": 16.0,
    "30720": 30.0,
}


def parse_cpu(value) -> float:
    """ECS CPU units to vCPU; unknown sizes fall back to the smallest task."""
    return CPU_UNITS.get(str(value or "").strip(), 0.25)


def parse_memory(value) -> float:
    return MEMORY_UNITS.get(str(value or "").strip(), 0.5)


class FargateChargeModel(BaseChargeModel):
    """Fargate tasks: vCPU-hours and GB-hours per running task.

    ``spot`` applies the Fargate Spot discount to both components.
    """

    resource_type = "ecs_fargate"

    def required_metrics(self) -> Dict[str, MetricSpec]:
        return {
            "cpu": MetricSpec("cpu", type="str", default="256", description="Task CPU units"),
            "memory": MetricSpec("memory", type="str", default="512", description="Task memory (MiB)"),
            "desired_count": MetricSpec("desired_count", type="float", default=1.0),
            "spot": MetricSpec("spot", type="bool", default=False),
        }

    def launch_type(self, resource: ResourceDescriptor) -> str:
        return (md.get_str(resource.metadata, "launch_type", "FARGATE") or "FARGATE").upper()

    def calculate(
        self, resource: ResourceDescriptor, duration: timedelta, pricing: ResourcePricing
    ) -> List[CostComponent]:
        if self.launch_type(resource) == "EC2":
            # Tasks run on the cluster's own instances; no ECS charge.
            return []
        vcpu = parse_cpu(self.metric(resource, "cpu"))
        memory_gb = parse_memory(self.metric(resource, "memory"))
        count = self.metric(resource, "desired_count")
        if count < 1:
            count = 1.0
        hours = duration_hours(duration)

        factor = 1.0
        if self.metric(resource, "spot"):
            factor = 1.0 - float(pricing.metadata.get("spot_discount", SPOT_DISCOUNT))
        return [
            self.line(
                pricing, VCPU, vcpu * count * hours, unit_rate=pricing.rate(VCPU) * factor, model=PricingModel.PER_HOUR
            ),
            self.line(
                pricing,
                MEMORY,
                memory_gb * count * hours,
                unit_rate=pricing.rate(MEMORY) * factor,
                model=PricingModel.PER_HOUR,
            ),
        ]


class EcsServiceChargeModel(FargateChargeModel):
    """ECS service; FARGATE launch type is priced per task, EC2 launch type is free."""

    resource_type = "ecs_service"


class EcsClusterChargeModel(BaseChargeModel):
    """Clusters have no direct charge."""

    resource_type = "ecs_cluster"
