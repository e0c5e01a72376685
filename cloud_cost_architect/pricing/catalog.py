"""Built-in static pricing catalog.

Pure lookup over the rate tables loaded from ``pricing/definitions``. A lookup
picks the base rate for the requested variant (or the region-specific rate for
components priced per region) and applies the table's regional multiplier.

An unknown variant inside a known resource type is not an error: the component
resolves to a zero rate and the returned ResourcePricing has
``rate_defaulted=True``.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from ..config import CATALOG_DIR
from ..domain.models import PriceComponent, ResourcePricing
from .loader import load_tables
from .schema import ComponentRateDef, RateTableDef

_LOGGER = logging.getLogger(__name__)


def _match_variant(rates: Dict[str, float], variant: Optional[str]) -> Optional[float]:
    if variant is None:
        return None
    if variant in rates:
        return rates[variant]
    low = variant.strip().lower()
    for k, v in rates.items():
        if k.lower() == low:
            return v
    return None


class PricingCatalog:
    def __init__(self, tables: Optional[Iterable[RateTableDef]] = None) -> None:
        self._tables: Dict[Tuple[str, str], RateTableDef] = {}
        self._aliases: Dict[Tuple[str, str], str] = {}
        self._lookups: Dict[Tuple[str, str, str, Optional[str]], ResourcePricing] = {}
        self._lock = threading.Lock()
        for t in tables or []:
            self.add_table(t)

    @classmethod
    def load(cls, extra_dir: Optional[Path | str] = None) -> "PricingCatalog":
        """Built-in tables, then tables from ``extra_dir`` (or COST_ENGINE_CATALOG_DIR)."""
        catalog = cls(load_tables())
        extra = extra_dir if extra_dir is not None else CATALOG_DIR
        if extra:
            path = Path(extra)
            if not path.is_dir():
                raise ValueError(f"Catalog directory does not exist: {path}")
            for t in load_tables(path):
                _LOGGER.info("Catalog override for %s/%s from %s", t.provider, t.resource_type, t.source_file)
                catalog.add_table(t)
        return catalog

    # ------------------------------------------------------------------
    # Table registry
    # ------------------------------------------------------------------
    def add_table(self, table: RateTableDef) -> None:
        key = (table.provider, table.resource_type)
        self._tables[key] = table
        self._aliases[(table.provider, table.resource_type.lower())] = table.resource_type
        for alias in table.aliases:
            self._aliases[(table.provider, alias.lower())] = table.resource_type
        with self._lock:
            self._lookups.clear()

    def canonical_type(self, provider: str, resource_type: str) -> Optional[str]:
        return self._aliases.get(((provider or "").lower(), (resource_type or "").strip().lower()))

    def table(self, provider: str, resource_type: str) -> Optional[RateTableDef]:
        rtype = self.canonical_type(provider, resource_type)
        if rtype is None:
            return None
        return self._effective(self._tables[((provider or "").lower(), rtype)], set())

    def _effective(self, table: RateTableDef, seen: set) -> RateTableDef:
        if not table.rates_from:
            return table
        if table.resource_type in seen:
            raise ValueError(f"rates_from cycle at {table.provider}/{table.resource_type}")
        seen.add(table.resource_type)
        src = self._tables.get((table.provider, table.rates_from))
        if src is None:
            raise ValueError(
                f"{table.provider}/{table.resource_type} borrows rates from unknown table {table.rates_from!r}"
            )
        src = self._effective(src, seen)
        merged_meta = dict(src.metadata)
        merged_meta.update(table.metadata)
        return replace(
            table,
            currency=src.currency,
            variant_key=table.variant_key or src.variant_key,
            default_variant=table.default_variant or src.default_variant,
            regional_multipliers=table.regional_multipliers or src.regional_multipliers,
            metadata=merged_meta,
            components=list(table.components) or list(src.components),
        )

    def resource_types(self, provider: str) -> List[str]:
        p = (provider or "").lower()
        return sorted(rtype for (prov, rtype) in self._tables if prov == p)

    def providers(self) -> List[str]:
        return sorted({prov for (prov, _) in self._tables})

    def is_variant_sensitive(self, provider: str, resource_type: str) -> bool:
        t = self.table(provider, resource_type)
        return bool(t and t.variant_sensitive)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------
    @staticmethod
    def region_multiplier(table: RateTableDef, region: Optional[str]) -> float:
        return table.regional_multipliers.get(region or "", 1.0)

    @staticmethod
    def _base_rate(comp: ComponentRateDef, variant: Optional[str], region: str) -> Tuple[float, bool]:
        """(base rate, recognized) for one component."""
        if comp.rates:
            hit = _match_variant(comp.rates, variant)
            if hit is None:
                return 0.0, False
            return hit, True
        if region in comp.regional_rates:
            return comp.regional_rates[region], True
        return float(comp.rate or 0.0), True

    def lookup(
        self,
        resource_type: str,
        provider: str,
        region: Optional[str] = None,
        variant: Optional[str] = None,
    ) -> Optional[ResourcePricing]:
        table = self.table(provider, resource_type)
        if table is None:
            return None
        region = region or ""
        variant = variant or table.default_variant
        key = (table.provider, table.resource_type, region, variant)
        with self._lock:
            cached = self._lookups.get(key)
        if cached is not None:
            return cached

        multiplier = self.region_multiplier(table, region)
        components: List[PriceComponent] = []
        effective: Dict[str, float] = {}
        defaulted = False
        for comp in table.components:
            base, recognized = self._base_rate(comp, variant, region)
            if not recognized:
                defaulted = True
            rate = base * multiplier
            effective[comp.name] = rate
            components.append(
                PriceComponent(
                    name=comp.name,
                    pricing_model=comp.pricing_model,
                    unit=comp.unit,
                    rate=rate,
                    currency=table.currency,
                    region=region or None,
                    description=comp.description,
                )
            )
        if defaulted:
            _LOGGER.warning(
                "Unknown %s %r for %s/%s; using zero rate",
                table.variant_key or "variant",
                variant,
                table.provider,
                table.resource_type,
            )

        metadata = dict(table.metadata)
        metadata.update(
            {
                "variant_key": table.variant_key,
                "variant": variant if table.variant_sensitive else None,
                "region_multiplier": multiplier,
                "effective_rates": effective,
            }
        )
        pricing = ResourcePricing(
            resource_type=table.resource_type,
            provider=table.provider,
            components=components,
            metadata=metadata,
            source="catalog",
            rate_defaulted=defaulted,
        )
        with self._lock:
            self._lookups[key] = pricing
        return pricing


_DEFAULT_CATALOG: Optional[PricingCatalog] = None


def default_catalog() -> PricingCatalog:
    global _DEFAULT_CATALOG
    if _DEFAULT_CATALOG is None:
        _DEFAULT_CATALOG = PricingCatalog.load()
    return _DEFAULT_CATALOG


def reset_default_catalog() -> None:
    global _DEFAULT_CATALOG
    _DEFAULT_CATALOG = None
