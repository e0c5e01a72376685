from __future__ import annotations

from datetime import timedelta
from typing import Dict, List

from ..domain.models import CostComponent, PricingModel, ResourceDescriptor, ResourcePricing
from .base import BaseChargeModel
from .types import MetricSpec

COMPUTE = "Lambda Compute"
REQUESTS = "Lambda Requests"
EGRESS = "Lambda Data Transfer Out"

FREE_REQUESTS_PER_MONTH = 1_000_000.0
FREE_EGRESS_GB_PER_MONTH = 1.0


class ServerlessFunctionChargeModel(BaseChargeModel):
    """
    Lambda tiered pricing, three independent components:

    - compute: GB-seconds = memory (GB) x average duration (s) x invocations
    - requests: per million, first 1M per month free (prorated)
    - egress: per GB, first 1 GB per month free (prorated)

    Each component is emitted only when its billable quantity is non-zero.
    """

    resource_type = "lambda_function"

    def required_metrics(self) -> Dict[str, MetricSpec]:
        return {
            "memory_size_mb": MetricSpec("memory_size_mb", type="float", default=128.0),
            "average_duration_ms": MetricSpec("average_duration_ms", type="float", default=100.0),
            "request_count": MetricSpec("request_count", type="float", default=0.0),
            "data_transfer_gb": MetricSpec("data_transfer_gb", type="float", default=0.0),
        }

    def calculate(
        self, resource: ResourceDescriptor, duration: timedelta, pricing: ResourcePricing
    ) -> List[CostComponent]:
        memory_mb = self.metric(resource, "memory_size_mb")
        if memory_mb <= 0:
            memory_mb = 128.0
        duration_ms = self.metric(resource, "average_duration_ms")
        if duration_ms <= 0:
            duration_ms = 100.0
        requests = self.metric(resource, "request_count")
        egress_gb = self.metric(resource, "data_transfer_gb")

        free_requests = float(pricing.metadata.get("free_tier_requests", FREE_REQUESTS_PER_MONTH))
        free_egress = float(pricing.metadata.get("free_tier_egress_gb", FREE_EGRESS_GB_PER_MONTH))

        out: List[CostComponent] = []
        gb_seconds = (memory_mb / 1024.0) * (duration_ms / 1000.0) * max(requests, 0.0)
        if gb_seconds > 0:
            out.append(self.line(pricing, COMPUTE, gb_seconds, model=PricingModel.TIERED))

        req_line = self.with_free_tier(pricing, REQUESTS, requests, free_requests, duration)
        if req_line.quantity > 0:
            out.append(req_line)

        egress_line = self.with_free_tier(pricing, EGRESS, egress_gb, free_egress, duration)
        if egress_line.quantity > 0:
            out.append(egress_line)
        return out
