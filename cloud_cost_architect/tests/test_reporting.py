from datetime import timedelta

from cloud_cost_architect.estimator import CostEstimator
from cloud_cost_architect.reporting.tables import (
    _md_escape,
    render_architecture_report,
    render_estimate,
    render_pricing_table,
)

MONTH = timedelta(hours=720)


def _res(rtype, rid, **metadata):
    return {"id": rid, "name": rid, "resource_type": rtype, "region": "us-east-1", "metadata": metadata}


def test_md_escape_keeps_tables_intact():
    assert _md_escape("a|b\nc") == "a\\|b c"
    assert _md_escape(None) == ""


def test_render_estimate_lists_base_and_hidden_lines():
    est = CostEstimator().calculate_resource_cost(_res("ec2_instance", "web", size_gb=20), MONTH)

    md = render_estimate(est)

    assert md.startswith("### web\n")
    assert "type `ec2_instance`" in md
    assert "720 h (monthly)" in md
    assert "| web | EC2 Instance Hourly | per_hour |" in md
    assert "| web-ebs_volume (hidden) | EBS Volume Storage | per_unit_volume |" in md
    assert "**Total:** 9.09 USD (base 7.49, hidden 1.60)" in md


def test_render_architecture_report_with_skipped_resources():
    estimator = CostEstimator()
    resources = [_res("nat_gateway", "nat"), _res("quantum_annealer", "mystery")]
    estimates, skipped = estimator.calculate_resource_costs(resources, MONTH)
    combined = estimator.combine(estimates, skipped, MONTH)

    md = render_architecture_report(estimates, combined, title="Network")

    assert md.startswith("## Network\n")
    assert "| nat | nat_gateway | us-east-1 | 32.40 | 0.00 | 32.40 |" in md
    assert "| **Total** |  |  | 32.40 | 0.00 | **32.40 USD** |" in md
    assert "Skipped (could not be priced): mystery" in md
    assert "### nat" in md


def test_render_pricing_table_flags_defaulted_rates():
    estimator = CostEstimator()

    known = render_pricing_table(estimator.get_resource_pricing("ebs_volume", "aws", "us-east-1", "gp2"))
    unknown = render_pricing_table(estimator.get_resource_pricing("ebs_volume", "aws", "us-east-1", "xyz"))

    assert "### Rate card: ebs_volume (aws, catalog)" in known
    assert "| EBS Volume Storage | per_unit_volume | GB-month | 0.1 | USD |" in known
    assert "zero rate used" not in known
    assert "zero rate used" in unknown
