from .models import (
    CostComponent,
    CostEstimate,
    HiddenDependency,
    HiddenDependencyCost,
    HiddenDependencyResource,
    Period,
    PriceComponent,
    PricingModel,
    ResourceDescriptor,
    ResourcePricing,
    duration_hours,
)

__all__ = [
    "CostComponent",
    "CostEstimate",
    "HiddenDependency",
    "HiddenDependencyCost",
    "HiddenDependencyResource",
    "Period",
    "PriceComponent",
    "PricingModel",
    "ResourceDescriptor",
    "ResourcePricing",
    "duration_hours",
]
