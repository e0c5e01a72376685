"""Persisted rate store interface and the implementations shipped with the engine.

The resolver only depends on the ``RateStore`` protocol. ``InMemoryRateStore``
backs tests and embedding callers; ``FileRateStore`` reads the YAML/JSON files
written by the EC2 importer (or by hand).
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol

import yaml

from ..config import DEFAULT_CURRENCY
from ..domain.models import PriceComponent, PricingModel

_LOGGER = logging.getLogger(__name__)


def _as_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        dt = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass(frozen=True)
class PricingRate:
    provider: str
    resource_type: str
    component_name: str
    pricing_model: PricingModel
    unit: str
    rate: float
    currency: str = DEFAULT_CURRENCY
    region: Optional[str] = None
    variant: Optional[str] = None
    variant_subtype: Optional[str] = None
    effective_from: Optional[datetime] = None
    effective_to: Optional[datetime] = None
    description: str = ""

    def is_active(self, at: Optional[datetime] = None) -> bool:
        now = at or datetime.now(timezone.utc)
        if self.effective_from is not None and self.effective_from > now:
            return False
        if self.effective_to is not None and self.effective_to <= now:
            return False
        return True

    def matches_region(self, region: Optional[str]) -> bool:
        return self.region is None or not region or self.region == region

    def to_component(self) -> PriceComponent:
        return PriceComponent(
            name=self.component_name,
            pricing_model=self.pricing_model,
            unit=self.unit,
            rate=self.rate,
            currency=self.currency,
            region=self.region,
            description=self.description,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PricingRate":
        for key in ("provider", "resource_type", "component_name", "pricing_model", "rate"):
            if key not in data:
                raise ValueError(f"Missing required key '{key}' in pricing rate {data!r}")
        rate = float(data["rate"])
        if rate < 0:
            raise ValueError(f"rate cannot be negative in pricing rate {data!r}")
        return cls(
            provider=str(data["provider"]).lower(),
            resource_type=str(data["resource_type"]),
            component_name=str(data["component_name"]),
            pricing_model=PricingModel.parse(data["pricing_model"]),
            unit=str(data.get("unit") or ""),
            rate=rate,
            currency=str(data.get("currency") or DEFAULT_CURRENCY),
            region=data.get("region") or None,
            variant=data.get("variant") or None,
            variant_subtype=data.get("variant_subtype") or None,
            effective_from=_as_datetime(data.get("effective_from")),
            effective_to=_as_datetime(data.get("effective_to")),
            description=str(data.get("description") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "resource_type": self.resource_type,
            "component_name": self.component_name,
            "pricing_model": self.pricing_model.value,
            "unit": self.unit,
            "rate": self.rate,
            "currency": self.currency,
            "region": self.region,
            "variant": self.variant,
            "variant_subtype": self.variant_subtype,
            "effective_from": self.effective_from.isoformat() if self.effective_from else None,
            "effective_to": self.effective_to.isoformat() if self.effective_to else None,
            "description": self.description,
        }


class RateStore(Protocol):
    def find_active_rates(
        self, provider: str, resource_type: str, region: Optional[str] = None
    ) -> List[PricingRate]: ...

    def find_by_variant(
        self,
        provider: str,
        resource_type: str,
        variant: str,
        region: Optional[str] = None,
        variant_subtype: Optional[str] = None,
    ) -> List[PricingRate]: ...


class InMemoryRateStore:
    def __init__(self, rates: Optional[Iterable[PricingRate]] = None) -> None:
        self._rates: List[PricingRate] = list(rates or [])

    def add(self, rate: PricingRate) -> None:
        self._rates.append(rate)

    def all_rates(self) -> List[PricingRate]:
        return list(self._rates)

    def find_active_rates(
        self, provider: str, resource_type: str, region: Optional[str] = None
    ) -> List[PricingRate]:
        p = (provider or "").lower()
        return [
            r
            for r in self._rates
            if r.provider == p and r.resource_type == resource_type and r.matches_region(region) and r.is_active()
        ]

    def find_by_variant(
        self,
        provider: str,
        resource_type: str,
        variant: str,
        region: Optional[str] = None,
        variant_subtype: Optional[str] = None,
    ) -> List[PricingRate]:
        out: List[PricingRate] = []
        for r in self.find_active_rates(provider, resource_type, region):
            if r.variant != variant:
                continue
            if variant_subtype and r.variant_subtype and r.variant_subtype != variant_subtype:
                continue
            out.append(r)
        return out


def read_rate_file(path: Path | str) -> List[PricingRate]:
    p = Path(path)
    raw = p.read_text(encoding="utf-8")
    if p.suffix.lower() == ".json":
        data = json.loads(raw)
    else:
        data = yaml.safe_load(raw)
    if data is None:
        return []
    items = data.get("rates") if isinstance(data, dict) else data
    if not isinstance(items, list):
        raise ValueError(f"Rate file must contain a 'rates' list: {p}")
    return [PricingRate.from_dict(it) for it in items]


def write_rate_file(path: Path | str, rates: Iterable[PricingRate]) -> int:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    payload = {"rates": [r.to_dict() for r in rates]}
    with p.open("w", encoding="utf-8") as f:
        if p.suffix.lower() == ".json":
            json.dump(payload, f, indent=2, ensure_ascii=False)
        else:
            yaml.safe_dump(payload, f, sort_keys=False, allow_unicode=True)
    return len(payload["rates"])


class FileRateStore(InMemoryRateStore):
    """Rate store backed by a YAML/JSON file, read once on first use."""

    def __init__(self, path: Path | str) -> None:
        super().__init__()
        self.path = Path(path)
        self._loaded = False

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        self._rates = read_rate_file(self.path)
        self._loaded = True
        _LOGGER.info("Loaded %d pricing rates from %s", len(self._rates), self.path)

    def all_rates(self) -> List[PricingRate]:
        self._ensure_loaded()
        return super().all_rates()

    def find_active_rates(
        self, provider: str, resource_type: str, region: Optional[str] = None
    ) -> List[PricingRate]:
        self._ensure_loaded()
        return super().find_active_rates(provider, resource_type, region)
