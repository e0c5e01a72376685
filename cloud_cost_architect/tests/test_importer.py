import json
from datetime import timedelta

import pytest

from cloud_cost_architect.domain.models import PricingModel
from cloud_cost_architect.estimator import CostEstimator
from cloud_cost_architect.pricing import FileRateStore, PricingRate
from cloud_cost_architect.pricing.importer import convert_instances, import_ec2_pricing, normalize_os
from cloud_cost_architect.pricing.store import read_rate_file, write_rate_file

DUMP = [
    {
        "instance_type": "t3.micro",
        "pricing": {
            "us-east-1": {
                "linux": "0.0104",
                "windows": {"ondemand": "0.0196"},
                "rhel": "0",
            },
            "eu-west-1": {"linux": {"ondemand": "0.0114"}},
        },
    },
    {"instance_type": "m5.large", "pricing": {"us-east-1": {"linux": "n/a"}}},
    {"pricing": {"us-east-1": {"linux": "0.5"}}},
]


def test_normalize_os():
    assert normalize_os("Windows") == "mswin"
    assert normalize_os("mswin") == "mswin"
    assert normalize_os("suse") == "suse"
    assert normalize_os("plan9") == "linux"
    assert normalize_os(None) == "linux"


def test_convert_instances_skips_invalid_prices():
    from cloud_cost_architect.pricing.importer import ImportStats

    stats = ImportStats()
    rates = convert_instances(DUMP, stats=stats)

    assert len(rates) == 3
    assert stats.total_instances == 3
    assert stats.total_rates == 3
    assert stats.skipped_prices == 2
    assert stats.to_dict()["operating_systems"] == {"linux": 2, "mswin": 1}
    windows = [r for r in rates if r.variant_subtype == "mswin"][0]
    assert windows.rate == pytest.approx(0.0196)
    assert windows.variant == "t3.micro"
    assert windows.region == "us-east-1"
    assert windows.component_name == "EC2 Instance Hourly"
    assert windows.pricing_model is PricingModel.PER_HOUR


def test_import_merges_with_existing_rates(tmp_path):
    source = tmp_path / "ec2.json"
    source.write_text(json.dumps({"instances": DUMP}), encoding="utf-8")
    target = tmp_path / "rates.yaml"
    write_rate_file(
        target,
        [
            PricingRate("aws", "nat_gateway", "NAT Gateway Hourly", PricingModel.PER_HOUR, "hour", 0.05),
            PricingRate("aws", "ec2_instance", "EC2 Instance Hourly", PricingModel.PER_HOUR, "hour", 9.99),
        ],
    )

    stats = import_ec2_pricing(source, target)

    rows = read_rate_file(target)
    assert stats.total_rates == 3
    assert sorted(r.resource_type for r in rows) == ["ec2_instance"] * 3 + ["nat_gateway"]
    assert 9.99 not in [r.rate for r in rows]


def test_import_replace_drops_existing_rows(tmp_path):
    source = tmp_path / "ec2.json"
    source.write_text(json.dumps(DUMP), encoding="utf-8")
    target = tmp_path / "rates.json"
    write_rate_file(target, [PricingRate("aws", "nat_gateway", "NAT Gateway Hourly", PricingModel.PER_HOUR, "hour", 0.05)])

    import_ec2_pricing(source, target, merge=False)

    assert {r.resource_type for r in read_rate_file(target)} == {"ec2_instance"}


def test_import_rejects_unexpected_payload(tmp_path):
    source = tmp_path / "ec2.json"
    source.write_text(json.dumps("nope"), encoding="utf-8")

    with pytest.raises(ValueError, match="list of instances"):
        import_ec2_pricing(source, tmp_path / "rates.yaml")


def test_imported_rates_price_instances_by_os_and_region(tmp_path):
    source = tmp_path / "ec2.json"
    source.write_text(json.dumps(DUMP), encoding="utf-8")
    target = tmp_path / "rates.yaml"
    import_ec2_pricing(source, target)
    estimator = CostEstimator(rate_store=FileRateStore(target))

    windows = estimator.get_resource_pricing("ec2_instance", "aws", "us-east-1", "t3.micro", "mswin")
    est = estimator.calculate_base_cost(
        {
            "id": "win",
            "resource_type": "ec2_instance",
            "region": "us-east-1",
            "metadata": {"instance_type": "t3.micro", "operating_system": "Windows"},
        },
        timedelta(hours=100),
    )
    eu = estimator.calculate_base_cost(
        {"id": "eu", "resource_type": "ec2_instance", "region": "eu-west-1", "metadata": {"instance_type": "t3.micro"}},
        timedelta(hours=100),
    )
    # not in the dump: served by the static catalog
    fallback = estimator.get_resource_pricing("ec2_instance", "aws", "us-east-1", "c5.large")

    assert windows.source == "rate_store"
    assert est.total_cost == pytest.approx(1.96)
    assert eu.total_cost == pytest.approx(1.14)
    assert fallback.source == "catalog"
    assert fallback.rate("EC2 Instance Hourly") == pytest.approx(0.085)
