from .base import BaseChargeModel, ChargeModel
from .rate_card import RateCardChargeModel
from .registry import ChargeModelRegistry, build_default_registry
from .types import MetricIssue, MetricSpec

__all__ = [
    "BaseChargeModel",
    "ChargeModel",
    "ChargeModelRegistry",
    "build_default_registry",
    "RateCardChargeModel",
    "MetricSpec",
    "MetricIssue",
]
