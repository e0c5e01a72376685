from __future__ import annotations

from typing import Any, List, Optional, Sequence

from ..domain.models import CostEstimate, ResourcePricing, duration_hours


def _md_escape(v: Any) -> str:
    s = "" if v is None else str(v)
    # Escape pipes so Markdown tables don't break
    return s.replace("|", "\\|").replace("\n", " ").strip()


def _money(v: Any) -> str:
    try:
        f = float(v)
    except (TypeError, ValueError):
        return ""
    return f"{f:,.2f}"


def _num(v: Any) -> str:
    try:
        f = float(v)
    except (TypeError, ValueError):
        return ""
    # Keep compact for huge numbers
    if abs(f) >= 1_000_000:
        return f"{f:,.0f}"
    if abs(f) >= 1_000:
        return f"{f:,.2f}"
    return f"{f:.4g}"


def _row(cells: Sequence[str]) -> str:
    return "| " + " | ".join(cells) + " |\n"


def render_breakdown_table(estimate: CostEstimate) -> str:
    """Line items of one estimate: base components, then hidden dependencies."""
    out: List[str] = []
    out.append("| Source | Component | Model | Quantity | Unit Rate | Subtotal |\n")
    out.append("|---|---|---|---:|---:|---:|\n")
    for c in estimate.breakdown:
        out.append(
            _row(
                [
                    _md_escape(estimate.resource_name or estimate.resource_type or "base"),
                    _md_escape(c.component_name),
                    c.pricing_model.value,
                    _num(c.quantity),
                    _num(c.unit_rate),
                    _money(c.subtotal),
                ]
            )
        )
    for h in estimate.hidden_dependency_costs:
        source = f"{h.dependency_resource_name} (hidden)"
        if not h.breakdown:
            out.append(_row([_md_escape(source), "-", "-", "", "", _money(h.total_cost)]))
        for c in h.breakdown:
            out.append(
                _row(
                    [
                        _md_escape(source),
                        _md_escape(c.component_name),
                        c.pricing_model.value,
                        _num(c.quantity),
                        _num(c.unit_rate),
                        _money(c.subtotal),
                    ]
                )
            )
    return "".join(out)


def render_estimate(estimate: CostEstimate) -> str:
    title = estimate.resource_name or estimate.resource_id or "Architecture"
    out: List[str] = []
    out.append(f"### {_md_escape(title)}\n\n")
    meta = [
        f"type `{_md_escape(estimate.resource_type)}`" if estimate.resource_type else None,
        f"region `{_md_escape(estimate.region)}`" if estimate.region else None,
        f"{_num(duration_hours(estimate.duration))} h ({estimate.period.value})",
    ]
    out.append(", ".join(m for m in meta if m) + "\n\n")
    out.append(render_breakdown_table(estimate))
    out.append(
        f"\n**Total:** {_money(estimate.total_cost)} {estimate.currency} "
        f"(base {_money(estimate.base_cost)}, hidden {_money(estimate.hidden_cost)})\n"
    )
    return "".join(out)


def render_architecture_report(
    estimates: Sequence[CostEstimate], combined: CostEstimate, title: Optional[str] = None
) -> str:
    out: List[str] = []
    out.append(f"## {_md_escape(title or 'Architecture cost estimate')}\n\n")
    out.append("| Resource | Type | Region | Base | Hidden | Total |\n")
    out.append("|---|---|---|---:|---:|---:|\n")
    for e in estimates:
        out.append(
            _row(
                [
                    _md_escape(e.resource_name or e.resource_id),
                    _md_escape(e.resource_type),
                    _md_escape(e.region),
                    _money(e.base_cost),
                    _money(e.hidden_cost),
                    _money(e.total_cost),
                ]
            )
        )
    out.append(
        _row(
            [
                "**Total**",
                "",
                "",
                _money(combined.base_cost),
                _money(combined.hidden_cost),
                f"**{_money(combined.total_cost)} {combined.currency}**",
            ]
        )
    )
    if combined.skipped:
        out.append(f"\nSkipped (could not be priced): {', '.join(_md_escape(s) for s in combined.skipped)}\n")
    for e in estimates:
        out.append("\n")
        out.append(render_estimate(e))
    return "".join(out)


def render_pricing_table(pricing: ResourcePricing) -> str:
    out: List[str] = []
    out.append(f"### Rate card: {_md_escape(pricing.resource_type)} ({pricing.provider}, {pricing.source})\n\n")
    out.append("| Component | Model | Unit | Rate | Currency | Description |\n")
    out.append("|---|---|---|---:|---|---|\n")
    for c in pricing.components:
        out.append(
            _row(
                [
                    _md_escape(c.name),
                    c.pricing_model.value,
                    _md_escape(c.unit),
                    _num(c.rate),
                    c.currency,
                    _md_escape(c.description),
                ]
            )
        )
    if pricing.rate_defaulted:
        out.append("\n_Variant not found in the rate table; zero rate used._\n")
    return "".join(out)
