"""Exception hierarchy raised by the cost engine."""

from __future__ import annotations

from typing import Optional


class CostEngineError(Exception):
    """Raised when a cost estimate cannot be produced."""


class UnsupportedProviderError(CostEngineError):
    def __init__(self, provider: str):
        super().__init__(f"unsupported provider: {provider}")
        self.provider = provider


class UnsupportedResourceTypeError(CostEngineError):
    def __init__(self, resource_type: str, provider: Optional[str] = None):
        msg = f"pricing not available for resource type: {resource_type}"
        if provider:
            msg += f" (provider {provider})"
        super().__init__(msg)
        self.resource_type = resource_type
        self.provider = provider


class MissingRequiredMetadataError(CostEngineError):
    """A metadata field without a sensible default is absent."""

    def __init__(self, resource_type: str, key: str):
        super().__init__(f"{resource_type} requires {key} in metadata")
        self.resource_type = resource_type
        self.key = key


class InvalidMetadataError(CostEngineError):
    def __init__(self, resource_type: str, key: str, value: object):
        super().__init__(f"{resource_type} has an invalid {key} in metadata: {value!r}")
        self.resource_type = resource_type
        self.key = key
        self.value = value


__all__ = [
    "CostEngineError",
    "UnsupportedProviderError",
    "UnsupportedResourceTypeError",
    "MissingRequiredMetadataError",
    "InvalidMetadataError",
]
