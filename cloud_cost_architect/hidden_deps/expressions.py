"""
Named predicates and quantity formulas for hidden dependency rules.

Rules stored as text (``metadata.allocationId == null``,
``metadata.size_gb``) are parsed into this closed set of objects once;
evaluation is a pure function of the parent's metadata.

Conditions:
    MetadataAbsent(field)       field missing, null or empty string
    MetadataPositive(field)     field is a number > 0
    MetadataTruthy(field)       field is a true-ish flag
    MetadataEquals(field, v)    field equals v (case-insensitive)

Quantities:
    Constant(value)
    MetadataField(field, default)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from ..domain import metadata as md

# Documented defaults for metadata-driven quantities.
FIELD_DEFAULTS = {
    "size_gb": 8.0,  # root volume
    "allocated_storage": 20.0,  # RDS minimum
}


class ExpressionError(ValueError):
    """An expression string outside the supported grammar."""


# ---------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class MetadataAbsent:
    field: str

    def __call__(self, metadata: Optional[Mapping[str, Any]]) -> bool:
        v = (metadata or {}).get(self.field)
        return v is None or (isinstance(v, str) and not v.strip())

    def describe(self) -> str:
        return f"metadata.{self.field} == null"


@dataclass(frozen=True)
class MetadataPositive:
    field: str

    def __call__(self, metadata: Optional[Mapping[str, Any]]) -> bool:
        v = md.get_float(metadata, self.field)
        return v is not None and v > 0

    def describe(self) -> str:
        return f"metadata.{self.field} > 0"


@dataclass(frozen=True)
class MetadataTruthy:
    field: str

    def __call__(self, metadata: Optional[Mapping[str, Any]]) -> bool:
        return md.get_bool(metadata, self.field, False)

    def describe(self) -> str:
        return f"metadata.{self.field} == true"


@dataclass(frozen=True)
class MetadataEquals:
    field: str
    value: str

    def __call__(self, metadata: Optional[Mapping[str, Any]]) -> bool:
        v = md.get_str(metadata, self.field)
        return v is not None and v.lower() == self.value.lower()

    def describe(self) -> str:
        return f"metadata.{self.field} == '{self.value}'"


Predicate = Union[MetadataAbsent, MetadataPositive, MetadataTruthy, MetadataEquals]


# ---------------------------------------------------------------------
# Formulas
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class Constant:
    value: float

    def __call__(self, metadata: Optional[Mapping[str, Any]]) -> float:
        return max(float(self.value), 0.0)

    def describe(self) -> str:
        return f"{self.value:g}"


@dataclass(frozen=True)
class MetadataField:
    field: str
    default: float = 1.0

    def __call__(self, metadata: Optional[Mapping[str, Any]]) -> float:
        v = md.get_float(metadata, self.field)
        if v is None:
            v = self.default
        return max(v, 0.0)

    def describe(self) -> str:
        return f"metadata.{self.field} ?? {self.default:g}"


Formula = Union[Constant, MetadataField]


# ---------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------
_FIELD = r"metadata\.([A-Za-z_][A-Za-z0-9_]*)"
_ABSENT = [
    re.compile(rf"^{_FIELD}\s*(?:==|is)\s*(?:null|none|nil|absent)$", re.I),
    re.compile(rf"^!\s*{_FIELD}$"),
]
_POSITIVE = re.compile(rf"^{_FIELD}\s*>\s*0(?:\.0+)?$")
_TRUTHY = [
    re.compile(rf"^{_FIELD}$"),
    re.compile(rf"^{_FIELD}\s*==\s*true$", re.I),
]
_EQUALS = re.compile(rf"^{_FIELD}\s*==\s*(?:'([^']*)'|\"([^\"]*)\"|([^\s'\"]+))$")
_NUMBER = re.compile(r"^\d+(?:\.\d+)?$")
_FIELD_WITH_DEFAULT = re.compile(rf"^{_FIELD}(?:\s*(?:\?\?|\|\|)\s*(\d+(?:\.\d+)?))?$")


def parse_condition(expr: Optional[str]) -> Optional[Predicate]:
    """Parse a condition; empty means "always applies" and returns None."""
    text = (expr or "").strip()
    if not text:
        return None
    for rx in _ABSENT:
        m = rx.match(text)
        if m:
            return MetadataAbsent(m.group(1))
    m = _POSITIVE.match(text)
    if m:
        return MetadataPositive(m.group(1))
    for rx in _TRUTHY:
        m = rx.match(text)
        if m:
            return MetadataTruthy(m.group(1))
    m = _EQUALS.match(text)
    if m:
        value = next(g for g in m.groups()[1:] if g is not None)
        return MetadataEquals(m.group(1), value)
    raise ExpressionError(f"Unsupported condition expression: {expr!r}")


def parse_quantity(expr: Union[str, float, None]) -> Formula:
    text = "" if expr is None else str(expr).strip()
    if not text:
        return Constant(1.0)
    if _NUMBER.match(text):
        return Constant(float(text))
    m = _FIELD_WITH_DEFAULT.match(text)
    if m:
        field_name = m.group(1)
        if m.group(2) is not None:
            default = float(m.group(2))
        else:
            default = FIELD_DEFAULTS.get(field_name, 1.0)
        return MetadataField(field_name, default)
    raise ExpressionError(f"Unsupported quantity expression: {expr!r}")


def as_predicate(value: Any) -> Optional[Predicate]:
    if value is None or callable(value):
        return value
    return parse_condition(str(value))


def as_formula(value: Any) -> Formula:
    if callable(value):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return Constant(float(value))
    return parse_quantity(None if value is None else str(value))


def describe(expr: Any) -> str:
    if expr is None:
        return ""
    if hasattr(expr, "describe"):
        return expr.describe()
    return str(expr)
