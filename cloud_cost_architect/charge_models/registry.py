from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .base import ChargeModel
from .compute_instance import AutoScalingGroupChargeModel, ComputeInstanceChargeModel
from .containers import EcsClusterChargeModel, EcsServiceChargeModel, FargateChargeModel
from .database import DatabaseInstanceChargeModel
from .load_balancer import LoadBalancerChargeModel
from .networking import (
    DataTransferChargeModel,
    ElasticIpChargeModel,
    NatGatewayChargeModel,
    NetworkInterfaceChargeModel,
    VpcEndpointChargeModel,
)
from .rate_card import RateCardChargeModel
from .serverless_function import ServerlessFunctionChargeModel
from .storage import ObjectStorageChargeModel, StorageVolumeChargeModel


@dataclass
class ChargeModelRegistry:
    """Lookup table for charge models by canonical resource type.

    ``fallback`` (when enabled) prices types that only a rate store or a
    registered pricing function knows about.
    """

    models: Dict[str, ChargeModel] = field(default_factory=dict)
    use_rate_card_fallback: bool = True

    def register(self, resource_type: str, model: ChargeModel) -> None:
        self.models[resource_type] = model

    def get(self, resource_type: str) -> Optional[ChargeModel]:
        return self.models.get(resource_type)

    def fallback(self, resource_type: str) -> Optional[ChargeModel]:
        if not self.use_rate_card_fallback:
            return None
        return RateCardChargeModel(resource_type)

    def resource_types(self) -> List[str]:
        return sorted(self.models)


def build_default_registry() -> ChargeModelRegistry:
    reg = ChargeModelRegistry()
    for model in (
        ComputeInstanceChargeModel(),
        AutoScalingGroupChargeModel(),
        ServerlessFunctionChargeModel(),
        LoadBalancerChargeModel(),
        NatGatewayChargeModel(),
        ElasticIpChargeModel(),
        NetworkInterfaceChargeModel(),
        DataTransferChargeModel(),
        VpcEndpointChargeModel(),
        StorageVolumeChargeModel(),
        ObjectStorageChargeModel(),
        DatabaseInstanceChargeModel(),
        FargateChargeModel(),
        EcsServiceChargeModel(),
        EcsClusterChargeModel(),
    ):
        reg.register(model.resource_type, model)
    return reg
