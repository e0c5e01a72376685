from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..config import DEFAULT_PROVIDER, HIDDEN_DEPENDENCY_MAX_DEPTH
from ..domain.models import HiddenDependency, HiddenDependencyResource, ResourceDescriptor
from ..utils.trace import TraceLogger
from .expressions import ExpressionError, as_formula, as_predicate, describe
from .rules import builtin_rules
from .store import RuleStore

_LOGGER = logging.getLogger(__name__)

# (parent type, child type) pairs already expanded on the current path
ExpansionPath = Tuple[Tuple[str, str], ...]

# (provider, resource type) -> canonical resource type
TypeCanonicalizer = Callable[[str, str], str]


def normalize_provider(provider: Optional[str]) -> str:
    return (provider or DEFAULT_PROVIDER).strip().lower()


def hidden_child_id(parent_id: str, child_type: str) -> str:
    return f"{parent_id}-hidden-{child_type}"


def seed_metadata(rule: HiddenDependency, quantity: float, parent_type: str) -> Dict[str, Any]:
    meta: Dict[str, Any] = {"hidden_dependency_of": parent_type}
    child = rule.child_resource_type
    if child == "ebs_volume":
        meta.update({"size_gb": quantity, "volume_type": "gp3", "is_root": True})
    elif child == "elastic_ip":
        meta.update({"domain": "vpc", "is_attached": rule.is_attached})
    elif child == "network_interface":
        meta.update({"is_attached": rule.is_attached})
    elif child == "s3_bucket":
        meta.update({"size_gb": quantity, "storage_class": "standard"})
    else:
        meta.update({"count": quantity, "size_gb": quantity, "is_attached": rule.is_attached})
    return meta


def synthesize_child(
    parent: ResourceDescriptor,
    rule: HiddenDependency,
    quantity: float,
    parent_type: str,
    provider: Optional[str] = None,
) -> ResourceDescriptor:
    child_type = rule.child_resource_type
    return ResourceDescriptor(
        id=hidden_child_id(parent.id, child_type),
        name=f"{parent.name}-{child_type}",
        resource_type=child_type,
        provider=provider or parent.provider,
        region=parent.region,
        metadata=seed_metadata(rule, quantity, parent_type),
        parent_id=parent.id,
    )


class HiddenDependencyResolver:
    """Expands a resource into the billable children it provisions implicitly.

    Persisted rules and the built-in table are merged by child type; a
    persisted rule replaces the built-in rule for the same child. Expansion
    is bounded by ``max_depth`` and by the (parent, child) pairs already on
    the expansion path, so cyclic rules terminate.
    """

    def __init__(
        self,
        rule_store: Optional[RuleStore] = None,
        *,
        max_depth: int = HIDDEN_DEPENDENCY_MAX_DEPTH,
        trace: Optional[TraceLogger] = None,
        canonical_type: Optional[TypeCanonicalizer] = None,
    ) -> None:
        self.rule_store = rule_store
        self.canonical_type = canonical_type
        self.max_depth = max_depth
        self.trace = trace

    def _canonical(self, provider: str, resource_type: str) -> str:
        if self.canonical_type is None:
            return resource_type
        return self.canonical_type(provider, resource_type) or resource_type

    def rules_for(self, provider: str, parent_type: str) -> List[HiddenDependency]:
        provider = normalize_provider(provider)
        stored: List[HiddenDependency] = []
        if self.rule_store is not None:
            try:
                stored = list(self.rule_store.find_by_parent_resource_type(provider, parent_type) or [])
            except Exception as ex:
                _LOGGER.warning("Rule store lookup failed for %s/%s (%s); using built-in rules", provider, parent_type, ex)
                stored = []

        merged: List[HiddenDependency] = []
        seen = set()
        for rule in stored + builtin_rules(provider, parent_type):
            child_type = self._canonical(provider, rule.child_resource_type)
            if child_type != rule.child_resource_type:
                rule = replace(rule, child_resource_type=child_type)
            if child_type in seen:
                continue
            seen.add(child_type)
            merged.append(rule)
        return merged

    def resolve(
        self,
        resource: ResourceDescriptor,
        *,
        parent_type: Optional[str] = None,
        provider: Optional[str] = None,
        path: Sequence[Tuple[str, str]] = (),
    ) -> List[HiddenDependencyResource]:
        provider = normalize_provider(provider or resource.provider)
        ptype = parent_type or self._canonical(provider, resource.resource_type)
        if len(path) >= self.max_depth:
            _LOGGER.debug("Hidden dependency depth limit reached at %s (%s)", resource.id, ptype)
            return []

        out: List[HiddenDependencyResource] = []
        for rule in self.rules_for(provider, ptype):
            pair = (ptype, rule.child_resource_type)
            if pair in path:
                _LOGGER.debug("Not re-expanding %s -> %s for %s", pair[0], pair[1], resource.id)
                continue
            try:
                condition = as_predicate(rule.condition)
                formula = as_formula(rule.quantity)
            except ExpressionError as ex:
                _LOGGER.warning("Ignoring hidden dependency %s -> %s: %s", ptype, rule.child_resource_type, ex)
                continue
            if condition is not None and not condition(resource.metadata):
                continue
            quantity = formula(resource.metadata)
            child = synthesize_child(resource, rule, quantity, ptype, provider)
            out.append(HiddenDependencyResource(dependency=rule, resource=child, quantity=quantity))
            if self.trace:
                self.trace.log(
                    "hidden_dependency",
                    {
                        "child_type": rule.child_resource_type,
                        "child_id": child.id,
                        "quantity": quantity,
                        "condition": describe(rule.condition),
                        "depth": len(path),
                    },
                    resource_id=resource.id,
                    resource_type=ptype,
                )
        return out
