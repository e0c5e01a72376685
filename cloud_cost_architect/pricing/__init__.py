from .catalog import PricingCatalog, default_catalog
from .resolver import RateRequest, RateResolver
from .store import FileRateStore, InMemoryRateStore, PricingRate, RateStore

__all__ = [
    "FileRateStore",
    "InMemoryRateStore",
    "PricingCatalog",
    "PricingRate",
    "RateRequest",
    "RateResolver",
    "RateStore",
    "default_catalog",
]
