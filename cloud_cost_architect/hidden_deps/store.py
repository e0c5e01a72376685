"""Persisted hidden dependency rules.

File format (YAML or JSON)::

    rules:
      - parent_resource_type: ec2_instance
        child_resource_type: ebs_volume
        quantity_expression: metadata.size_gb ?? 30
        condition_expression: ""
        is_attached: true
        description: Larger default root volume

Rules whose expressions fall outside the supported grammar are dropped with
a warning; they never break resolution.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol

import yaml

from ..domain import metadata as md
from ..domain.models import HiddenDependency
from .expressions import ExpressionError, parse_condition, parse_quantity

_LOGGER = logging.getLogger(__name__)


class RuleStore(Protocol):
    def find_by_parent_resource_type(self, provider: str, parent_resource_type: str) -> List[HiddenDependency]: ...


def rule_from_dict(data: Dict[str, Any]) -> HiddenDependency:
    for key in ("parent_resource_type", "child_resource_type"):
        if not data.get(key):
            raise ValueError(f"Missing required key '{key}' in hidden dependency rule {data!r}")
    return HiddenDependency(
        parent_resource_type=str(data["parent_resource_type"]),
        child_resource_type=str(data["child_resource_type"]),
        quantity=parse_quantity(data.get("quantity_expression", data.get("quantity"))),
        condition=parse_condition(data.get("condition_expression", data.get("condition"))),
        is_attached=md.get_bool(data, "is_attached", True),
        description=str(data.get("description") or ""),
        provider=str(data.get("provider") or "aws").lower(),
    )


class InMemoryRuleStore:
    def __init__(self, rules: Optional[Iterable[HiddenDependency]] = None) -> None:
        self._rules: List[HiddenDependency] = list(rules or [])

    def add(self, rule: HiddenDependency) -> None:
        self._rules.append(rule)

    def find_by_parent_resource_type(self, provider: str, parent_resource_type: str) -> List[HiddenDependency]:
        p = (provider or "").lower()
        return [r for r in self._rules if r.provider == p and r.parent_resource_type == parent_resource_type]


class FileRuleStore(InMemoryRuleStore):
    def __init__(self, path: Path | str) -> None:
        super().__init__()
        self.path = Path(path)
        self._loaded = False

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        raw = self.path.read_text(encoding="utf-8")
        data = json.loads(raw) if self.path.suffix.lower() == ".json" else yaml.safe_load(raw)
        items = (data or {}).get("rules") if isinstance(data, dict) else data
        rules: List[HiddenDependency] = []
        for i, item in enumerate(items or []):
            if not isinstance(item, dict):
                raise ValueError(f"rule must be an object in {self.path.name}[{i}]")
            try:
                rules.append(rule_from_dict(item))
            except ExpressionError as ex:
                _LOGGER.warning("Skipping hidden dependency rule %s[%d]: %s", self.path.name, i, ex)
        self._rules = rules
        self._loaded = True

    def find_by_parent_resource_type(self, provider: str, parent_resource_type: str) -> List[HiddenDependency]:
        self._ensure_loaded()
        return super().find_by_parent_resource_type(provider, parent_resource_type)
