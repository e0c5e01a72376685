from __future__ import annotations

from datetime import timedelta
from typing import Dict, List

from ..domain.models import CostComponent, PricingModel, ResourceDescriptor, ResourcePricing
from ..pricing import units
from .base import BaseChargeModel
from .types import MetricSpec

FREE_EGRESS_GB_PER_MONTH = 1.0


class StorageVolumeChargeModel(BaseChargeModel):
    """EBS volume: provisioned GB x months, rate by volume type.

    ``size_gb`` has no sensible default and is the one hard-required field.
    """

    resource_type = "ebs_volume"
    variant_key = "volume_type"
    default_variant = "gp3"

    def required_metrics(self) -> Dict[str, MetricSpec]:
        return {
            "size_gb": MetricSpec("size_gb", type="float", required=True, description="Provisioned size"),
            "volume_type": MetricSpec("volume_type", type="str", default="gp3"),
        }

    def calculate(
        self, resource: ResourceDescriptor, duration: timedelta, pricing: ResourcePricing
    ) -> List[CostComponent]:
        self.ensure_required(resource)
        size = self.metric(resource, "size_gb")
        return [self.per_month_volume(pricing, "EBS Volume Storage", size, duration)]


class ObjectStorageChargeModel(BaseChargeModel):
    """S3 bucket: storage by class, PUT/GET per 1,000 requests, egress past the free tier."""

    resource_type = "s3_bucket"
    variant_key = "storage_class"
    default_variant = "standard"

    def required_metrics(self) -> Dict[str, MetricSpec]:
        return {
            "size_gb": MetricSpec("size_gb", type="float", default=0.0),
            "storage_class": MetricSpec("storage_class", type="str", default="standard"),
            "put_requests": MetricSpec("put_requests", type="float", default=0.0),
            "get_requests": MetricSpec("get_requests", type="float", default=0.0),
            "data_transfer_gb": MetricSpec("data_transfer_gb", type="float", default=0.0),
        }

    def _requests(self, pricing: ResourcePricing, name: str, count: float) -> CostComponent:
        comp = pricing.component(name)
        rate = units.per_unit(comp.rate, comp.unit) if comp is not None else 0.0
        return self.line(pricing, name, count, unit_rate=rate, model=PricingModel.PER_REQUEST_BATCH)

    def calculate(
        self, resource: ResourceDescriptor, duration: timedelta, pricing: ResourcePricing
    ) -> List[CostComponent]:
        out: List[CostComponent] = []
        size = self.metric(resource, "size_gb")
        if size > 0:
            out.append(self.per_month_volume(pricing, "S3 Storage", size, duration))
        puts = self.metric(resource, "put_requests")
        if puts > 0:
            out.append(self._requests(pricing, "S3 PUT Requests", puts))
        gets = self.metric(resource, "get_requests")
        if gets > 0:
            out.append(self._requests(pricing, "S3 GET Requests", gets))
        free = float(pricing.metadata.get("free_tier_egress_gb", FREE_EGRESS_GB_PER_MONTH))
        egress = self.with_free_tier(
            pricing, "S3 Data Transfer Out", self.metric(resource, "data_transfer_gb"), free, duration
        )
        if egress.quantity > 0:
            out.append(egress)
        return out
