"""Definition loader for catalog rate tables.

Loads YAML/JSON files from cloud_cost_architect/pricing/definitions (and an
optional override directory). A file holds either one table mapping or a
``tables:`` list.

The loader is strict: missing keys, negative rates and unknown pricing models
raise ValueError with a readable message, so CI/test runs fail fast.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import yaml

from ..config import DEFAULT_CURRENCY
from ..domain.models import PricingModel
from .schema import ComponentRateDef, RateTableDef

DEFINITIONS_DIR = Path(__file__).resolve().parent / "definitions"


def _as_list(x: Any) -> List[Any]:
    if x is None:
        return []
    if isinstance(x, list):
        return x
    return [x]


def _require(obj: Dict[str, Any], key: str, *, ctx: str) -> Any:
    if key not in obj:
        raise ValueError(f"Missing required key '{key}' in {ctx}")
    return obj[key]


def _load_one(path: Path) -> Dict[str, Any]:
    raw = path.read_text(encoding="utf-8")
    if path.suffix.lower() in (".yaml", ".yml"):
        data = yaml.safe_load(raw) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Top-level YAML must be a mapping in {path}")
        return data
    if path.suffix.lower() == ".json":
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError(f"Top-level JSON must be an object in {path}")
        return data
    raise ValueError(f"Unsupported definition file type: {path}")


def _rate(value: Any, *, ctx: str) -> float:
    if isinstance(value, bool):
        raise ValueError(f"rate must be a number in {ctx}")
    try:
        f = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"rate must be a number in {ctx}, got {value!r}") from None
    if f < 0:
        raise ValueError(f"rate cannot be negative in {ctx}")
    return f


def _rate_map(obj: Any, *, ctx: str) -> Dict[str, float]:
    if obj is None:
        return {}
    if not isinstance(obj, dict):
        raise ValueError(f"expected a mapping in {ctx}")
    return {str(k): _rate(v, ctx=f"{ctx}.{k}") for k, v in obj.items()}


def _parse_components(items: Iterable[Any], *, ctx: str) -> List[ComponentRateDef]:
    out: List[ComponentRateDef] = []
    for i, it in enumerate(items):
        cctx = f"{ctx}.components[{i}]"
        if not isinstance(it, dict):
            raise ValueError(f"component must be an object in {cctx}")
        name = str(_require(it, "name", ctx=cctx)).strip()
        if not name:
            raise ValueError(f"component name cannot be empty in {cctx}")
        try:
            model = PricingModel.parse(_require(it, "pricing_model", ctx=cctx))
        except ValueError as ex:
            raise ValueError(f"{ex} in {cctx}") from None
        rate = it.get("rate")
        rates = _rate_map(it.get("rates"), ctx=f"{cctx}.rates")
        if rate is None and not rates:
            raise ValueError(f"component needs 'rate' or 'rates' in {cctx}")
        out.append(
            ComponentRateDef(
                name=name,
                pricing_model=model,
                unit=str(it.get("unit") or ""),
                rate=_rate(rate, ctx=cctx) if rate is not None else None,
                rates=rates,
                regional_rates=_rate_map(it.get("regional_rates"), ctx=f"{cctx}.regional_rates"),
                description=str(it.get("description") or ""),
            )
        )
    return out


def parse_table(data: Dict[str, Any], *, ctx: str, source_file: str = "") -> RateTableDef:
    rtype = str(_require(data, "resource_type", ctx=ctx)).strip()
    if not rtype:
        raise ValueError(f"resource_type cannot be empty in {ctx}")
    rates_from = data.get("rates_from")
    if rates_from is None and "components" not in data:
        raise ValueError(f"Missing required key 'components' in {ctx}")
    metadata = data.get("metadata") or {}
    if not isinstance(metadata, dict):
        raise ValueError(f"metadata must be a mapping in {ctx}")
    return RateTableDef(
        resource_type=rtype,
        provider=str(data.get("provider") or "aws").strip().lower(),
        currency=str(data.get("currency") or DEFAULT_CURRENCY),
        aliases=[str(a).strip() for a in _as_list(data.get("aliases")) if str(a).strip()],
        variant_key=data.get("variant_key"),
        default_variant=data.get("default_variant"),
        regional_multipliers=_rate_map(data.get("regional_multipliers"), ctx=f"{ctx}.regional_multipliers"),
        metadata=dict(metadata),
        components=_parse_components(_as_list(data.get("components")), ctx=ctx),
        rates_from=str(rates_from) if rates_from else None,
        source_file=source_file,
    )


def load_tables(definitions_dir: Optional[Path] = None) -> List[RateTableDef]:
    base = definitions_dir or DEFINITIONS_DIR
    if not base.exists():
        return []
    paths = sorted([p for p in base.iterdir() if p.is_file() and p.suffix.lower() in (".yaml", ".yml", ".json")])
    out: List[RateTableDef] = []
    for p in paths:
        data = _load_one(p)
        if "tables" in data:
            items = _as_list(data.get("tables"))
        else:
            items = [data]
        for i, item in enumerate(items):
            ctx = f"rate_table({p.name}[{i}])"
            if not isinstance(item, dict):
                raise ValueError(f"table must be an object in {ctx}")
            out.append(parse_table(item, ctx=ctx, source_file=p.name))
    return out
