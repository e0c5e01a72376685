from __future__ import annotations

from datetime import timedelta
from typing import Dict, List

from ..domain import metadata as md
from ..domain.models import CostComponent, PricingModel, ResourceDescriptor, ResourcePricing
from .base import BaseChargeModel
from .types import MetricSpec


class NatGatewayChargeModel(BaseChargeModel):
    """NAT gateway: hourly charge plus per-GB data processing."""

    resource_type = "nat_gateway"

    def required_metrics(self) -> Dict[str, MetricSpec]:
        return {
            "data_processed_gb": MetricSpec("data_processed_gb", type="float", default=0.0),
        }

    def calculate(
        self, resource: ResourceDescriptor, duration: timedelta, pricing: ResourcePricing
    ) -> List[CostComponent]:
        out = [self.hourly(pricing, "NAT Gateway Hourly", duration)]
        processed = self.metric(resource, "data_processed_gb")
        if processed > 0:
            out.append(
                self.line(pricing, "NAT Gateway Data Processing", processed, model=PricingModel.PER_UNIT_VOLUME)
            )
        return out


class AttachableChargeModel(BaseChargeModel):
    """Hourly charge that only applies while the resource is not attached.

    An attached resource still yields its component line, with a zero
    quantity, so the estimate shows it was considered.
    """

    component_name: str = ""

    def required_metrics(self) -> Dict[str, MetricSpec]:
        return {
            "is_attached": MetricSpec("is_attached", type="bool", default=False),
        }

    def is_attached(self, resource: ResourceDescriptor) -> bool:
        meta = resource.metadata
        key = md.first_present(meta, "is_attached", "isAttached", "attached")
        return md.get_bool(meta, key, False) if key else False

    def calculate(
        self, resource: ResourceDescriptor, duration: timedelta, pricing: ResourcePricing
    ) -> List[CostComponent]:
        if self.is_attached(resource):
            return [self.line(pricing, self.component_name, 0.0, unit_rate=0.0, model=PricingModel.PER_HOUR)]
        return [self.hourly(pricing, self.component_name, duration)]


class ElasticIpChargeModel(AttachableChargeModel):
    resource_type = "elastic_ip"
    component_name = "Elastic IP Hourly (Unattached)"


class NetworkInterfaceChargeModel(AttachableChargeModel):
    resource_type = "network_interface"
    component_name = "Network Interface Hourly (Unattached)"


_DIRECTION_COMPONENTS = {
    "inbound": "Data Transfer Inbound",
    "outbound": "Data Transfer Outbound",
    "inter_az": "Data Transfer Inter-AZ",
    "intra_region": "Data Transfer Intra-Region",
}


class DataTransferChargeModel(BaseChargeModel):
    """Per-GB transfer by direction; outbound carries a 1 GB/month free tier.

    Unknown directions are billed as outbound.
    """

    resource_type = "data_transfer"

    def required_metrics(self) -> Dict[str, MetricSpec]:
        return {
            "amount_gb": MetricSpec("amount_gb", type="float", default=0.0),
            "direction": MetricSpec("direction", type="str", default="outbound"),
        }

    def direction(self, resource: ResourceDescriptor) -> str:
        d = (self.metric(resource, "direction") or "outbound").strip().lower().replace("-", "_")
        return d if d in _DIRECTION_COMPONENTS else "outbound"

    def calculate(
        self, resource: ResourceDescriptor, duration: timedelta, pricing: ResourcePricing
    ) -> List[CostComponent]:
        direction = self.direction(resource)
        name = _DIRECTION_COMPONENTS[direction]
        amount = self.metric(resource, "amount_gb")
        if direction == "outbound":
            free = float(pricing.metadata.get("free_tier_gb", 1.0))
            return [self.with_free_tier(pricing, name, amount, free, duration)]
        return [self.line(pricing, name, amount, model=PricingModel.PER_UNIT_VOLUME)]


class VpcEndpointChargeModel(BaseChargeModel):
    """Interface endpoints: per ENI-hour plus per GB processed. Gateway endpoints are free."""

    resource_type = "vpc_endpoint"
    variant_key = "endpoint_type"
    default_variant = "Interface"

    def required_metrics(self) -> Dict[str, MetricSpec]:
        return {
            "endpoint_type": MetricSpec("endpoint_type", type="str", default="Interface"),
            "eni_count": MetricSpec("eni_count", type="float", default=1.0),
            "data_processed_gb": MetricSpec("data_processed_gb", type="float", default=0.0),
        }

    def calculate(
        self, resource: ResourceDescriptor, duration: timedelta, pricing: ResourcePricing
    ) -> List[CostComponent]:
        if (self.variant(resource) or "").lower() == "gateway":
            return [
                self.line(pricing, "Gateway Endpoint", 0.0, unit_rate=0.0, model=PricingModel.PER_HOUR)
            ]
        eni = self.metric(resource, "eni_count")
        if eni < 1:
            eni = 1.0
        out = [self.hourly(pricing, "Interface Endpoint Hourly (per ENI)", duration, count=eni)]
        processed = self.metric(resource, "data_processed_gb")
        if processed > 0:
            out.append(
                self.line(pricing, "Interface Endpoint Data Processing", processed, model=PricingModel.PER_UNIT_VOLUME)
            )
        return out
