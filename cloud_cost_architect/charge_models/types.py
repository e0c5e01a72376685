from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class MetricSpec:
    """A metadata parameter a charge model reads, with its default."""

    name: str
    type: str = "any"  # "int" | "float" | "str" | "bool" | "any"
    required: bool = False
    default: Optional[Any] = None
    description: str = ""


@dataclass(frozen=True)
class MetricIssue:
    key: str
    issue: str  # "missing" | "invalid"
    message: str
