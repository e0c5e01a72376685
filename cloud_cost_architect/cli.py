#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Cloud Cost Architect – CLI

Commands:
- estimate:   price a resource file (YAML/JSON list of resources) over a duration,
              including hidden dependencies, and print/save the breakdown.
- pricing:    show the rate card resolved for a resource type.
- list:       list resource types that can be priced.
- import-ec2: convert an EC2 instance-pricing dump into a rate store file.
"""

import argparse
import json
import logging
import re
import sys
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from rich.console import Console
from rich.table import Table

from .config import DEFAULT_PROVIDER, DEFAULT_REGION, HOURS_PER_MONTH, LOG_LEVEL
from .errors import CostEngineError
from .estimator import CostEstimator
from .hidden_deps import FileRuleStore
from .pricing import FileRateStore, PricingCatalog
from .pricing.importer import import_ec2_pricing
from .reporting.tables import render_architecture_report, render_pricing_table
from .utils.trace import build_trace_logger

console = Console()

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)\s*([smhdw])", re.I)
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400, "w": 604800}


def parse_duration(text: str) -> timedelta:
    """'720h', '30d', '1h30m' or a bare number of hours."""
    s = (text or "").strip()
    if not s:
        raise argparse.ArgumentTypeError("empty duration")
    try:
        return timedelta(hours=float(s))
    except ValueError:
        pass
    parts = _DURATION_PART.findall(s)
    if not parts or _DURATION_PART.sub("", s).strip():
        raise argparse.ArgumentTypeError(f"invalid duration: {text!r}")
    seconds = sum(float(n) * _UNIT_SECONDS[u.lower()] for n, u in parts)
    return timedelta(seconds=seconds)


# --------------------------------------------------------------------
# Argument parsing
# --------------------------------------------------------------------
def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="cloud-cost",
        description=(
            "Cloud Cost Architect – offline cost estimates for cloud resources\n\n"
            "Prices declared resources from static rate tables (optionally overridden by a\n"
            "rate store file) and adds the resources they implicitly provision."
        ),
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--log-level", default=LOG_LEVEL, help="Logging level (DEBUG, INFO, WARNING, ...).")
    parser.add_argument("--rate-store", default=None, help="YAML/JSON rate store file (overrides static rates).")
    parser.add_argument("--rule-store", default=None, help="YAML/JSON hidden dependency rule file.")
    parser.add_argument("--catalog-dir", default=None, help="Extra directory with rate-table YAML files.")
    parser.add_argument("--trace", default=None, help="Append a JSONL trace of rate resolution to this file.")

    sub = parser.add_subparsers(dest="command", required=True)

    p_est = sub.add_parser("estimate", help="Estimate the cost of a resource file.")
    p_est.add_argument("file", help="YAML/JSON file: a list of resources or {resources: [...]}.")
    p_est.add_argument(
        "--duration",
        type=parse_duration,
        default=timedelta(hours=HOURS_PER_MONTH),
        help="Duration to price, e.g. 720h, 30d, 1h30m or hours as a number.",
    )
    p_est.add_argument("--region", default=None, help="Region for resources that do not declare one.")
    p_est.add_argument("--workers", type=int, default=None, help="Worker threads for per-resource pricing.")
    p_est.add_argument("--json", action="store_true", help="Print the estimate as JSON.")
    p_est.add_argument("--markdown", default=None, help="Write a Markdown report to this path.")

    p_price = sub.add_parser("pricing", help="Show the rate card for a resource type.")
    p_price.add_argument("resource_type")
    p_price.add_argument("--provider", default=DEFAULT_PROVIDER)
    p_price.add_argument("--region", default=DEFAULT_REGION)
    p_price.add_argument("--variant", default=None, help="Instance size / volume type / storage class ...")
    p_price.add_argument("--subtype", default=None, help="Variant subtype, e.g. operating system.")
    p_price.add_argument("--json", action="store_true")

    p_list = sub.add_parser("list", help="List supported resource types.")
    p_list.add_argument("--provider", default=DEFAULT_PROVIDER)

    p_imp = sub.add_parser("import-ec2", help="Import EC2 on-demand prices into a rate store file.")
    p_imp.add_argument("source", help="Instance pricing JSON dump.")
    p_imp.add_argument("--output", required=True, help="Rate store file to write (YAML or JSON).")
    p_imp.add_argument("--replace", action="store_true", help="Overwrite the file instead of merging.")

    return parser.parse_args(argv)


# --------------------------------------------------------------------
# Helpers
# --------------------------------------------------------------------
def load_resource_file(path: Path, default_region: Optional[str] = None) -> List[Dict[str, Any]]:
    raw = path.read_text(encoding="utf-8")
    data = json.loads(raw) if path.suffix.lower() == ".json" else yaml.safe_load(raw)
    region = default_region
    if isinstance(data, dict):
        region = region or data.get("region")
        data = data.get("resources")
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a list of resources")
    region = region or DEFAULT_REGION
    out: List[Dict[str, Any]] = []
    for item in data:
        if not isinstance(item, dict):
            raise ValueError(f"resource entries must be objects in {path}")
        res = dict(item)
        res.setdefault("region", region)
        out.append(res)
    return out


def build_estimator(args: argparse.Namespace) -> CostEstimator:
    kwargs: Dict[str, Any] = {}
    if args.catalog_dir:
        kwargs["catalog"] = PricingCatalog.load(args.catalog_dir)
    if args.rate_store:
        kwargs["rate_store"] = FileRateStore(args.rate_store)
    if args.rule_store:
        kwargs["rule_store"] = FileRuleStore(args.rule_store)
    if args.trace:
        kwargs["trace"] = build_trace_logger(args.trace)
    return CostEstimator.from_config(**kwargs)


def _print_estimates(estimates, combined) -> None:
    table = Table(title="Cost estimate", show_lines=False)
    table.add_column("Resource")
    table.add_column("Type")
    table.add_column("Region")
    table.add_column("Base", justify="right")
    table.add_column("Hidden", justify="right")
    table.add_column("Total", justify="right")
    for e in estimates:
        table.add_row(
            e.resource_name or e.resource_id or "-",
            e.resource_type or "-",
            e.region or "-",
            f"{e.base_cost:,.2f}",
            f"{e.hidden_cost:,.2f}",
            f"{e.total_cost:,.2f}",
        )
    table.add_row(
        "[bold]Total[/bold]",
        "",
        "",
        f"{combined.base_cost:,.2f}",
        f"{combined.hidden_cost:,.2f}",
        f"[bold]{combined.total_cost:,.2f} {combined.currency}[/bold]",
    )
    console.print(table)
    for e in estimates:
        for h in e.hidden_dependency_costs:
            console.print(
                f"  [dim]{e.resource_name}: + {h.dependency_resource_type} "
                f"({h.dependency_resource_name}) {h.total_cost:,.2f}[/dim]"
            )
    if combined.skipped:
        console.print(f"[yellow]Skipped (could not be priced): {', '.join(combined.skipped)}[/yellow]")


# --------------------------------------------------------------------
# Commands
# --------------------------------------------------------------------
def cmd_estimate(args: argparse.Namespace) -> int:
    resources = load_resource_file(Path(args.file), args.region)
    estimator = build_estimator(args)
    try:
        estimates, skipped = estimator.calculate_resource_costs(resources, args.duration, max_workers=args.workers)
        combined = estimator.combine(estimates, skipped, args.duration)
    finally:
        estimator.close()

    if args.json:
        payload = combined.to_dict()
        payload["resources"] = [e.to_dict() for e in estimates]
        print(json.dumps(payload, indent=2, ensure_ascii=False))
    else:
        _print_estimates(estimates, combined)

    if args.markdown:
        md_path = Path(args.markdown)
        md_path.parent.mkdir(parents=True, exist_ok=True)
        md_path.write_text(render_architecture_report(estimates, combined), encoding="utf-8")
        if not args.json:
            console.print(f"[green]Saved report to {md_path}[/green]")
    return 0 if estimates or not resources else 1


def cmd_pricing(args: argparse.Namespace) -> int:
    estimator = build_estimator(args)
    try:
        pricing = estimator.get_resource_pricing(
            args.resource_type, args.provider, args.region, args.variant, args.subtype
        )
    finally:
        estimator.close()
    if args.json:
        print(json.dumps(pricing.to_dict(), indent=2, ensure_ascii=False))
        return 0
    console.print(render_pricing_table(pricing))
    if pricing.rate_defaulted:
        table = estimator.catalog.table(args.provider, args.resource_type)
        known = ", ".join(table.known_variants()) if table else ""
        console.print(f"[yellow]Warning: unknown variant {args.variant!r}; rates defaulted to zero.[/yellow]")
        if known:
            console.print(f"[yellow]Known variants: {known}[/yellow]")
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    estimator = build_estimator(args)
    for rtype in estimator.list_supported_resources(args.provider):
        console.print(rtype)
    return 0


def cmd_import_ec2(args: argparse.Namespace) -> int:
    stats = import_ec2_pricing(args.source, args.output, merge=not args.replace)
    console.print(
        f"[green]Imported {stats.total_rates} rates from {stats.total_instances} instances "
        f"into {args.output}[/green]"
    )
    if stats.skipped_prices:
        console.print(f"[yellow]Skipped {stats.skipped_prices} zero or invalid prices.[/yellow]")
    return 0


COMMANDS = {
    "estimate": cmd_estimate,
    "pricing": cmd_pricing,
    "list": cmd_list,
    "import-ec2": cmd_import_ec2,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )
    logger = logging.getLogger("cloud_cost_architect")
    logger.debug("CLI arguments: %s", args)

    try:
        return COMMANDS[args.command](args)
    except (CostEngineError, ValueError, OSError) as ex:
        console.print(f"[red]Error: {ex}[/red]")
        return 2


if __name__ == "__main__":
    sys.exit(main())
