"""Offline cost estimation for cloud resources, including the resources they provision implicitly."""

from .errors import (
    CostEngineError,
    InvalidMetadataError,
    MissingRequiredMetadataError,
    UnsupportedProviderError,
    UnsupportedResourceTypeError,
)
from .estimator import CostEstimator

__version__ = "0.1.0"

__all__ = [
    "CostEngineError",
    "InvalidMetadataError",
    "CostEstimator",
    "MissingRequiredMetadataError",
    "UnsupportedProviderError",
    "UnsupportedResourceTypeError",
    "__version__",
]
