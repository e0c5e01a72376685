"""Rate resolution as an ordered chain of attempts.

Each attempt returns a ResourcePricing or None ("not applicable"); the first
result wins:

1. a pricing function registered for the resource type (plugin point),
2. the persisted rate store (failures and timeouts fall through),
3. the built-in static catalog.

When every attempt declines, UnsupportedResourceTypeError is raised.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from ..config import STORE_TIMEOUT_SECONDS
from ..domain.models import PriceComponent, ResourcePricing
from ..errors import UnsupportedResourceTypeError
from ..utils.trace import TraceLogger
from .cache import LookupCache, build_cache_key
from .catalog import PricingCatalog, default_catalog
from .store import PricingRate, RateStore

_LOGGER = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class RateRequest:
    resource_type: str
    provider: str
    region: Optional[str] = None
    variant: Optional[str] = None
    variant_subtype: Optional[str] = None


PricingFunction = Callable[[RateRequest], Optional[ResourcePricing]]


class FunctionAttempt:
    name = "function"

    def __init__(self) -> None:
        self._functions: Dict[str, PricingFunction] = {}

    def register(self, resource_type: str, fn: PricingFunction) -> None:
        self._functions[resource_type] = fn

    def resource_types(self) -> List[str]:
        return sorted(self._functions)

    def attempt(self, request: RateRequest, cache: Optional[LookupCache] = None) -> Optional[ResourcePricing]:
        fn = self._functions.get(request.resource_type)
        if fn is None:
            return None
        pricing = fn(request)
        if pricing is None:
            return None
        return replace(pricing, source="function")


def pricing_from_rates(request: RateRequest, rates: List[PricingRate]) -> Optional[ResourcePricing]:
    """Collapse store rows into one rate card, one component per name.

    A region-specific row beats a global one; among equals the most recent
    ``effective_from`` wins.
    """
    if not rates:
        return None
    chosen: Dict[str, PricingRate] = {}
    order: List[str] = []
    for r in rates:
        cur = chosen.get(r.component_name)
        if cur is None:
            chosen[r.component_name] = r
            order.append(r.component_name)
            continue
        if (r.region is not None) != (cur.region is not None):
            if r.region is not None:
                chosen[r.component_name] = r
            continue
        if (r.effective_from or _EPOCH) > (cur.effective_from or _EPOCH):
            chosen[r.component_name] = r

    components: List[PriceComponent] = [chosen[name].to_component() for name in order]
    return ResourcePricing(
        resource_type=request.resource_type,
        provider=request.provider,
        components=components,
        metadata={
            "variant": request.variant,
            "variant_subtype": request.variant_subtype,
            "rate_count": len(rates),
            "effective_rates": {c.name: c.rate for c in components},
        },
        source="rate_store",
    )


class StoreAttempt:
    name = "rate_store"

    def __init__(self, store: RateStore, *, timeout: float = STORE_TIMEOUT_SECONDS) -> None:
        self.store = store
        self.timeout = float(timeout or 0)
        self._executor: Optional[ThreadPoolExecutor] = None

    def _query(self, request: RateRequest) -> List[PricingRate]:
        if request.variant:
            return self.store.find_by_variant(
                request.provider,
                request.resource_type,
                request.variant,
                request.region,
                request.variant_subtype,
            )
        return self.store.find_active_rates(request.provider, request.resource_type, request.region)

    def _query_with_timeout(self, request: RateRequest) -> List[PricingRate]:
        if self.timeout <= 0:
            return self._query(request)
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="rate-store")
        future = self._executor.submit(self._query, request)
        return future.result(timeout=self.timeout)

    def attempt(self, request: RateRequest, cache: Optional[LookupCache] = None) -> Optional[ResourcePricing]:
        key = build_cache_key(
            request.provider, request.resource_type, request.region, request.variant, request.variant_subtype
        )
        if cache is not None:
            hit = cache.get(key)
            if not cache.is_miss(hit):
                return hit
        try:
            rates = self._query_with_timeout(request)
        except FutureTimeout:
            _LOGGER.warning(
                "Rate store timed out after %.2fs for %s/%s; falling back",
                self.timeout,
                request.provider,
                request.resource_type,
            )
            return None
        except Exception as ex:
            _LOGGER.warning(
                "Rate store lookup failed for %s/%s (%s); falling back", request.provider, request.resource_type, ex
            )
            return None
        pricing = pricing_from_rates(request, list(rates or []))
        if cache is not None:
            cache.set(key, pricing)
        return pricing

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None


class CatalogAttempt:
    name = "catalog"

    def __init__(self, catalog: PricingCatalog) -> None:
        self.catalog = catalog

    def attempt(self, request: RateRequest, cache: Optional[LookupCache] = None) -> Optional[ResourcePricing]:
        return self.catalog.lookup(request.resource_type, request.provider, request.region, request.variant)


class RateResolver:
    def __init__(
        self,
        catalog: Optional[PricingCatalog] = None,
        store: Optional[RateStore] = None,
        *,
        store_timeout: float = STORE_TIMEOUT_SECONDS,
        trace: Optional[TraceLogger] = None,
    ) -> None:
        self.catalog = catalog or default_catalog()
        self.functions = FunctionAttempt()
        self.store_attempt = StoreAttempt(store, timeout=store_timeout) if store is not None else None
        self.trace = trace

    @property
    def attempts(self) -> list:
        chain: list = [self.functions]
        if self.store_attempt is not None:
            chain.append(self.store_attempt)
        chain.append(CatalogAttempt(self.catalog))
        return chain

    def register(self, resource_type: str, fn: PricingFunction) -> None:
        self.functions.register(resource_type, fn)

    def resolve(
        self,
        resource_type: str,
        provider: str,
        region: Optional[str] = None,
        variant: Optional[str] = None,
        variant_subtype: Optional[str] = None,
        *,
        cache: Optional[LookupCache] = None,
    ) -> ResourcePricing:
        request = RateRequest(resource_type, (provider or "").lower(), region or None, variant, variant_subtype)
        for attempt in self.attempts:
            pricing = attempt.attempt(request, cache)
            if pricing is not None:
                _LOGGER.debug("Resolved %s/%s via %s", request.provider, resource_type, attempt.name)
                if self.trace:
                    self.trace.log(
                        "rate_resolve",
                        {
                            "tier": attempt.name,
                            "provider": request.provider,
                            "region": request.region,
                            "variant": variant,
                            "variant_subtype": variant_subtype,
                            "rate_defaulted": pricing.rate_defaulted,
                        },
                        resource_type=resource_type,
                    )
                return pricing
        raise UnsupportedResourceTypeError(resource_type, request.provider)

    def supported_types(self, provider: str) -> List[str]:
        types = set(self.catalog.resource_types(provider))
        types.update(self.functions.resource_types())
        return sorted(types)

    def close(self) -> None:
        if self.store_attempt is not None:
            self.store_attempt.close()
