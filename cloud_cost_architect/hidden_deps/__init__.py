from .expressions import (
    Constant,
    ExpressionError,
    MetadataAbsent,
    MetadataEquals,
    MetadataField,
    MetadataPositive,
    MetadataTruthy,
    parse_condition,
    parse_quantity,
)
from .resolver import HiddenDependencyResolver, hidden_child_id
from .rules import BUILTIN_RULES
from .store import FileRuleStore, InMemoryRuleStore, RuleStore

__all__ = [
    "BUILTIN_RULES",
    "Constant",
    "ExpressionError",
    "FileRuleStore",
    "HiddenDependencyResolver",
    "InMemoryRuleStore",
    "MetadataAbsent",
    "MetadataEquals",
    "MetadataField",
    "MetadataPositive",
    "MetadataTruthy",
    "RuleStore",
    "hidden_child_id",
    "parse_condition",
    "parse_quantity",
]
