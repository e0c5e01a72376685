"""
Cost estimation entry points.

A resource is priced in three steps: its charge model computes the base
breakdown from the resolved rate card, hidden dependency rules expand it into
implicit children, and each child is priced the same way (recursively, bounded
by the hidden dependency resolver). Architecture estimates sum the resources
that priced successfully and record the rest as skipped.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .charge_models import ChargeModel, ChargeModelRegistry, build_default_registry
from .config import (
    DEFAULT_CURRENCY,
    DEFAULT_PROVIDER,
    HIDDEN_DEPENDENCY_MAX_DEPTH,
    MAX_WORKERS,
    RATE_STORE_FILE,
    RULE_STORE_FILE,
    STORE_TIMEOUT_SECONDS,
    SUPPORTED_PROVIDERS,
)
from .domain import metadata as md
from .domain.models import (
    CostComponent,
    CostEstimate,
    HiddenDependencyCost,
    Period,
    ResourceDescriptor,
    ResourcePricing,
)
from .errors import CostEngineError, UnsupportedProviderError, UnsupportedResourceTypeError
from .hidden_deps import FileRuleStore, HiddenDependencyResolver, RuleStore
from .pricing import FileRateStore, PricingCatalog, RateResolver, RateStore, default_catalog
from .pricing.cache import LookupCache
from .pricing.resolver import PricingFunction
from .utils.trace import TraceLogger, trace_from_config

_LOGGER = logging.getLogger(__name__)

ResourceLike = Union[ResourceDescriptor, Dict[str, Any]]


def as_descriptor(resource: ResourceLike) -> ResourceDescriptor:
    if isinstance(resource, ResourceDescriptor):
        return resource
    return ResourceDescriptor.from_dict(resource)


def _check_duration(duration: timedelta) -> None:
    if duration < timedelta(0):
        raise ValueError(f"duration must be non-negative, got {duration}")


class CostEstimator:
    def __init__(
        self,
        *,
        catalog: Optional[PricingCatalog] = None,
        rate_store: Optional[RateStore] = None,
        rule_store: Optional[RuleStore] = None,
        registry: Optional[ChargeModelRegistry] = None,
        supported_providers: Optional[Sequence[str]] = None,
        max_workers: int = MAX_WORKERS,
        max_depth: int = HIDDEN_DEPENDENCY_MAX_DEPTH,
        store_timeout: float = STORE_TIMEOUT_SECONDS,
        trace: Optional[TraceLogger] = None,
    ) -> None:
        self.catalog = catalog or default_catalog()
        self.rates = RateResolver(self.catalog, rate_store, store_timeout=store_timeout, trace=trace)
        self.hidden = HiddenDependencyResolver(
            rule_store, max_depth=max_depth, trace=trace, canonical_type=self.canonical_type
        )
        self.registry = registry or build_default_registry()
        self.supported_providers = [p.lower() for p in (supported_providers or SUPPORTED_PROVIDERS)]
        self.max_workers = max(1, int(max_workers or 1))

    @classmethod
    def from_config(cls, **overrides: Any) -> "CostEstimator":
        """Estimator wired from COST_ENGINE_* settings (stores, catalog dir, trace)."""
        kwargs: Dict[str, Any] = {"trace": trace_from_config()}
        if RATE_STORE_FILE:
            kwargs["rate_store"] = FileRateStore(RATE_STORE_FILE)
        if RULE_STORE_FILE:
            kwargs["rule_store"] = FileRuleStore(RULE_STORE_FILE)
        kwargs.update(overrides)
        return cls(**kwargs)

    def close(self) -> None:
        self.rates.close()

    # ------------------------------------------------------------------
    # Registration / lookup helpers
    # ------------------------------------------------------------------
    def register_pricing_function(
        self, resource_type: str, fn: PricingFunction, model: Optional[ChargeModel] = None
    ) -> None:
        """Plug in rates for a type; ``model`` overrides how the rates are applied."""
        self.rates.register(resource_type, fn)
        if model is not None:
            self.registry.register(resource_type, model)

    def canonical_type(self, provider: str, resource_type: str) -> str:
        return self.catalog.canonical_type(provider, resource_type) or resource_type

    def _provider(self, provider: Optional[str]) -> str:
        p = (provider or DEFAULT_PROVIDER).strip().lower()
        if p not in self.supported_providers:
            raise UnsupportedProviderError(p)
        return p

    def _model_for(self, resource_type: str, provider: str) -> ChargeModel:
        model = self.registry.get(resource_type) or self.registry.fallback(resource_type)
        if model is None:
            raise UnsupportedResourceTypeError(resource_type, provider)
        return model

    # ------------------------------------------------------------------
    # Rate cards
    # ------------------------------------------------------------------
    def get_resource_pricing(
        self,
        resource_type: str,
        provider: Optional[str] = None,
        region: Optional[str] = None,
        variant: Optional[str] = None,
        variant_subtype: Optional[str] = None,
    ) -> ResourcePricing:
        p = self._provider(provider)
        rtype = self.canonical_type(p, resource_type)
        model = self._model_for(rtype, p)
        return self.rates.resolve(model.pricing_type, p, region, variant, variant_subtype)

    def list_supported_resources(self, provider: Optional[str] = None) -> List[str]:
        return self.rates.supported_types(self._provider(provider))

    # ------------------------------------------------------------------
    # Single resource
    # ------------------------------------------------------------------
    def calculate_base_cost(
        self, resource: ResourceLike, duration: timedelta, *, cache: Optional[LookupCache] = None
    ) -> CostEstimate:
        """Base estimate for the resource itself; hidden dependencies left empty."""
        res = as_descriptor(resource)
        _check_duration(duration)
        provider = self._provider(res.provider)
        rtype = self.canonical_type(provider, res.resource_type)
        model = self._model_for(rtype, provider)

        pricing = self.rates.resolve(
            model.pricing_type,
            provider,
            res.region or None,
            model.variant(res),
            model.variant_subtype(res),
            cache=cache,
        )
        breakdown = list(model.calculate(res, duration, pricing))
        estimate = CostEstimate(
            total_cost=0.0,
            currency=pricing.currency,
            breakdown=breakdown,
            period=Period.for_duration(duration),
            duration=duration,
            provider=provider,
            resource_type=rtype,
            region=res.region or None,
            resource_id=res.id,
            resource_name=res.name,
        )
        estimate.recompute_total()
        return estimate

    def calculate_resource_cost(
        self, resource: ResourceLike, duration: timedelta, *, cache: Optional[LookupCache] = None
    ) -> CostEstimate:
        """Base estimate plus priced hidden dependencies."""
        return self._calculate(as_descriptor(resource), duration, cache, ())

    def _calculate(
        self,
        resource: ResourceDescriptor,
        duration: timedelta,
        cache: Optional[LookupCache],
        path: Tuple[Tuple[str, str], ...],
    ) -> CostEstimate:
        estimate = self.calculate_base_cost(resource, duration, cache=cache)
        estimate.hidden_dependency_costs = self._price_hidden(
            resource, estimate.resource_type, estimate.provider, duration, cache, path
        )
        estimate.recompute_total()
        return estimate

    def _price_hidden(
        self,
        parent: ResourceDescriptor,
        parent_type: str,
        provider: str,
        duration: timedelta,
        cache: Optional[LookupCache],
        path: Tuple[Tuple[str, str], ...],
    ) -> List[HiddenDependencyCost]:
        out: List[HiddenDependencyCost] = []
        for dep in self.hidden.resolve(parent, parent_type=parent_type, provider=provider, path=path):
            child = dep.resource
            child_path = path + ((parent_type, child.resource_type),)
            try:
                child_estimate = self._calculate(child, duration, cache, child_path)
            except (CostEngineError, ValueError) as ex:
                _LOGGER.warning("Hidden dependency %s of %s could not be priced: %s", child.resource_type, parent.id, ex)
                continue

            # Grandchildren are folded into the child's line items.
            breakdown: List[CostComponent] = list(child_estimate.breakdown)
            for grandchild in child_estimate.hidden_dependency_costs:
                breakdown.extend(grandchild.breakdown)
            out.append(
                HiddenDependencyCost(
                    dependency_resource_type=child.resource_type,
                    dependency_resource_name=child.name,
                    total_cost=child_estimate.total_cost,
                    breakdown=breakdown,
                    currency=child_estimate.currency,
                    is_attached=dep.dependency.is_attached,
                    description=dep.dependency.description,
                )
            )
        return out

    # ------------------------------------------------------------------
    # Architectures
    # ------------------------------------------------------------------
    def calculate_resource_costs(
        self,
        resources: Iterable[ResourceLike],
        duration: timedelta,
        *,
        max_workers: Optional[int] = None,
    ) -> Tuple[List[CostEstimate], List[str]]:
        """Per-resource estimates in input order, plus ids of resources that failed."""
        _check_duration(duration)
        cache = LookupCache()

        active: List[ResourceDescriptor] = []
        skipped: List[str] = []
        for raw in resources:
            try:
                res = as_descriptor(raw)
            except ValueError as ex:
                _LOGGER.warning("Skipping malformed resource: %s", ex)
                skipped.append(str(raw.get("id") or raw.get("name") or "?") if isinstance(raw, dict) else "?")
                continue
            if md.get_bool(res.metadata, "isVisualOnly"):
                _LOGGER.debug("Skipping visual-only resource %s", res.id)
                continue
            active.append(res)

        def run(res: ResourceDescriptor) -> Optional[CostEstimate]:
            try:
                return self._calculate(res, duration, cache, ())
            except Exception as ex:
                _LOGGER.warning("Skipping %s (%s): %s", res.id, res.resource_type, ex)
                return None

        workers = min(max_workers or self.max_workers, len(active))
        if workers > 1:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="cost-estimate") as pool:
                results = list(pool.map(run, active))
        else:
            results = [run(res) for res in active]

        estimates: List[CostEstimate] = []
        for res, est in zip(active, results):
            if est is None:
                skipped.append(res.id)
            else:
                estimates.append(est)
        return estimates, skipped

    def calculate_architecture_cost(
        self,
        resources: Iterable[ResourceLike],
        duration: timedelta,
        *,
        max_workers: Optional[int] = None,
    ) -> CostEstimate:
        """Sum of every resource that priced; failures are skipped, never raised."""
        estimates, skipped = self.calculate_resource_costs(resources, duration, max_workers=max_workers)
        return self.combine(estimates, skipped, duration)

    def combine(self, estimates: Sequence[CostEstimate], skipped: Sequence[str], duration: timedelta) -> CostEstimate:
        providers = {e.provider for e in estimates}
        combined = CostEstimate(
            total_cost=0.0,
            currency=estimates[0].currency if estimates else DEFAULT_CURRENCY,
            breakdown=[c for e in estimates for c in e.breakdown],
            period=Period.for_duration(duration),
            duration=duration,
            provider=providers.pop() if len(providers) == 1 else DEFAULT_PROVIDER,
            hidden_dependency_costs=[h for e in estimates for h in e.hidden_dependency_costs],
            skipped=list(skipped),
        )
        combined.recompute_total()
        if skipped:
            _LOGGER.info("Architecture estimate skipped %d resource(s): %s", len(skipped), ", ".join(skipped))
        return combined
