"""
Import EC2 on-demand prices from an instance-pricing JSON dump into a rate file.

Expected input: a list of instances, each with ``instance_type`` and a
``pricing`` map of region -> operating system -> price. A price is either a
string ("0.0104") or an object with an ``ondemand`` field. Zero, negative and
unparseable prices are skipped.
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from ..domain.models import PricingModel
from .store import InMemoryRateStore, PricingRate, read_rate_file, write_rate_file

_LOGGER = logging.getLogger(__name__)

EC2_COMPONENT_NAME = "EC2 Instance Hourly"

_OS_NAMES = {
    "linux": "linux",
    "mswin": "mswin",
    "windows": "mswin",
    "rhel": "rhel",
    "suse": "suse",
}


def normalize_os(name: Any) -> str:
    """Map dump OS labels onto ours; unknown labels count as linux."""
    return _OS_NAMES.get(str(name or "").strip().lower(), "linux")


def _on_demand_price(raw: Any) -> Optional[float]:
    if isinstance(raw, dict):
        raw = raw.get("ondemand", raw.get("on_demand"))
    if raw is None or isinstance(raw, bool):
        return None
    try:
        price = float(str(raw).strip())
    except ValueError:
        return None
    if price <= 0:
        return None
    return price


@dataclass
class ImportStats:
    total_instances: int = 0
    total_rates: int = 0
    skipped_prices: int = 0
    regions: Counter = field(default_factory=Counter)
    operating_systems: Counter = field(default_factory=Counter)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_instances": self.total_instances,
            "total_rates": self.total_rates,
            "skipped_prices": self.skipped_prices,
            "regions": dict(self.regions),
            "operating_systems": dict(self.operating_systems),
        }


def convert_instances(
    instances: Iterable[Dict[str, Any]],
    *,
    effective_from: Optional[datetime] = None,
    stats: Optional[ImportStats] = None,
) -> List[PricingRate]:
    now = effective_from or datetime.now(timezone.utc)
    stats = stats if stats is not None else ImportStats()
    rates: List[PricingRate] = []
    for inst in instances:
        stats.total_instances += 1
        itype = inst.get("instance_type") or inst.get("InstanceType")
        pricing = inst.get("pricing") or inst.get("Pricing")
        if not itype or not isinstance(pricing, dict):
            continue
        for region, os_map in pricing.items():
            if not isinstance(os_map, dict):
                continue
            for os_name, raw in os_map.items():
                price = _on_demand_price(raw)
                if price is None:
                    stats.skipped_prices += 1
                    continue
                os_norm = normalize_os(os_name)
                rates.append(
                    PricingRate(
                        provider="aws",
                        resource_type="ec2_instance",
                        component_name=EC2_COMPONENT_NAME,
                        pricing_model=PricingModel.PER_HOUR,
                        unit="hour",
                        rate=price,
                        currency="USD",
                        region=str(region),
                        variant=str(itype),
                        variant_subtype=os_norm,
                        effective_from=now,
                    )
                )
                stats.regions[str(region)] += 1
                stats.operating_systems[os_norm] += 1
    stats.total_rates = len(rates)
    return rates


def import_ec2_pricing(source: Path | str, target: Path | str, *, merge: bool = True) -> ImportStats:
    """Convert ``source`` and write the rates to ``target``.

    With ``merge`` an existing target keeps its rows for other resource types
    and its ec2_instance rows are replaced.
    """
    src = Path(source)
    data = json.loads(src.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("instances") or []
    if not isinstance(data, list):
        raise ValueError(f"Expected a list of instances in {src}")

    stats = ImportStats()
    rates = convert_instances(data, stats=stats)

    out = Path(target)
    store = InMemoryRateStore()
    if merge and out.exists():
        for r in read_rate_file(out):
            if r.resource_type != "ec2_instance":
                store.add(r)
    for r in rates:
        store.add(r)
    write_rate_file(out, store.all_rates())
    _LOGGER.info("Imported %d EC2 rates from %d instances into %s", stats.total_rates, stats.total_instances, out)
    return stats
