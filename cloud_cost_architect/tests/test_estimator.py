import json
from datetime import timedelta

import pytest

from cloud_cost_architect.config import FLOAT_TOLERANCE
from cloud_cost_architect.domain.models import (
    HiddenDependency,
    Period,
    PriceComponent,
    PricingModel,
    ResourceDescriptor,
    ResourcePricing,
)
from cloud_cost_architect.errors import UnsupportedProviderError, UnsupportedResourceTypeError
from cloud_cost_architect.estimator import CostEstimator
from cloud_cost_architect.hidden_deps import Constant, InMemoryRuleStore
from cloud_cost_architect.utils.trace import build_trace_logger

MONTH = timedelta(hours=720)


@pytest.fixture
def estimator():
    est = CostEstimator()
    yield est
    est.close()


def _res(rtype, rid, region="us-east-1", **metadata):
    return {"id": rid, "name": rid, "resource_type": rtype, "region": region, "metadata": metadata}


def _assert_invariant(estimate):
    expected = sum(c.subtotal for c in estimate.breakdown) + sum(h.total_cost for h in estimate.hidden_dependency_costs)
    assert abs(estimate.total_cost - expected) <= FLOAT_TOLERANCE
    assert estimate.total_cost >= 0
    for c in estimate.breakdown:
        assert c.subtotal >= 0 and c.quantity >= 0 and c.unit_rate >= 0
    for h in estimate.hidden_dependency_costs:
        assert h.total_cost >= 0


def test_compute_instance_includes_root_volume(estimator):
    est = estimator.calculate_resource_cost(_res("ec2_instance", "web", instance_type="t3.micro", size_gb=20), MONTH)

    assert est.base_cost == pytest.approx(0.0104 * 720)
    kinds = {h.dependency_resource_type: h for h in est.hidden_dependency_costs}
    assert set(kinds) == {"ebs_volume", "network_interface"}
    assert kinds["ebs_volume"].total_cost == pytest.approx(1.6)
    assert kinds["ebs_volume"].dependency_resource_name == "web-ebs_volume"
    assert kinds["network_interface"].total_cost == 0.0
    assert len(kinds["network_interface"].breakdown) == 1
    assert est.total_cost > est.base_cost
    assert est.total_cost == pytest.approx(0.0104 * 720 + 1.6)
    _assert_invariant(est)


def test_nat_gateway_hidden_ip_is_attached_and_free(estimator):
    est = estimator.calculate_resource_cost(_res("nat_gateway", "nat"), MONTH)

    assert est.total_cost == pytest.approx(32.40)
    [ip] = est.hidden_dependency_costs
    assert ip.dependency_resource_type == "elastic_ip"
    assert ip.is_attached is True
    assert ip.total_cost == 0.0


def test_rds_hidden_storage_and_backups(estimator):
    est = estimator.calculate_resource_cost(_res("RDS", "db", backup_retention_period=7), MONTH)

    assert est.resource_type == "rds_instance"
    assert est.base_cost == pytest.approx(12.24)
    assert [h.dependency_resource_type for h in est.hidden_dependency_costs] == ["ebs_volume", "s3_bucket"]
    assert est.hidden_cost == pytest.approx(1.6 + 0.46)
    _assert_invariant(est)


def test_stored_rule_overrides_builtin_quantity():
    rules = InMemoryRuleStore(
        [HiddenDependency("ec2_instance", "ebs_volume", quantity=Constant(100.0), description="100 GB root")]
    )
    est = CostEstimator(rule_store=rules)

    result = est.calculate_resource_cost(_res("ec2_instance", "web"), MONTH)

    volume = result.hidden_dependency_costs[0]
    assert volume.total_cost == pytest.approx(8.0)
    assert volume.description == "100 GB root"


def test_aliased_store_rule_replaces_builtin_child():
    rules = InMemoryRuleStore([HiddenDependency("ec2_instance", "EBS", quantity=Constant(50.0))])
    est = CostEstimator(rule_store=rules)

    result = est.calculate_resource_cost(_res("EC2", "web"), MONTH)

    assert [h.dependency_resource_type for h in result.hidden_dependency_costs] == ["ebs_volume", "network_interface"]
    volume = result.hidden_dependency_costs[0]
    assert volume.dependency_resource_name == "web-ebs_volume"
    assert volume.total_cost == pytest.approx(4.0)
    _assert_invariant(result)


@pytest.mark.parametrize("provider", ["", "AWS ", " aws"])
def test_hidden_dependencies_follow_normalized_provider(estimator, provider):
    res = ResourceDescriptor(
        id="web", name="web", resource_type="ec2_instance", provider=provider, metadata={"size_gb": 20}
    )

    est = estimator.calculate_resource_cost(res, MONTH)

    assert est.provider == "aws"
    assert {h.dependency_resource_type for h in est.hidden_dependency_costs} == {"ebs_volume", "network_interface"}
    assert est.hidden_cost == pytest.approx(1.6)


def test_cyclic_rules_terminate():
    rules = InMemoryRuleStore([HiddenDependency("ebs_volume", "ec2_instance", quantity=Constant(1.0))])
    est = CostEstimator(rule_store=rules)

    result = est.calculate_resource_cost(_res("ec2_instance", "web", size_gb=10), MONTH)

    _assert_invariant(result)
    assert result.total_cost < 1_000


def test_hidden_child_that_cannot_be_priced_is_omitted(caplog):
    rules = InMemoryRuleStore([HiddenDependency("nat_gateway", "quantum_annealer", quantity=Constant(1.0))])
    est = CostEstimator(rule_store=rules)

    with caplog.at_level("WARNING"):
        result = est.calculate_resource_cost(_res("nat_gateway", "nat"), MONTH)

    assert [h.dependency_resource_type for h in result.hidden_dependency_costs] == ["elastic_ip"]
    assert "quantum_annealer" in caplog.text
    assert result.total_cost == pytest.approx(32.40)


@pytest.mark.parametrize(
    "duration, period",
    [
        (timedelta(hours=1), Period.HOURLY),
        (timedelta(hours=24), Period.HOURLY),
        (timedelta(hours=24, seconds=1), Period.MONTHLY),
        (timedelta(hours=720), Period.MONTHLY),
        (timedelta(hours=720, seconds=1), Period.YEARLY),
    ],
)
def test_period_classification(estimator, duration, period):
    est = estimator.calculate_resource_cost(_res("nat_gateway", "nat"), duration)

    assert est.period is period
    assert est.duration == duration


def test_zero_duration_costs_nothing(estimator):
    est = estimator.calculate_resource_cost(_res("ec2_instance", "web"), timedelta(0))

    assert est.total_cost == 0.0
    _assert_invariant(est)


def test_negative_duration_is_rejected(estimator):
    with pytest.raises(ValueError, match="non-negative"):
        estimator.calculate_resource_cost(_res("nat_gateway", "nat"), timedelta(hours=-1))


def test_unsupported_provider(estimator):
    res = {"id": "x", "resource_type": "compute_engine", "provider": "gcp"}

    with pytest.raises(UnsupportedProviderError, match="gcp"):
        estimator.calculate_resource_cost(res, MONTH)


def test_unsupported_resource_type(estimator):
    with pytest.raises(UnsupportedResourceTypeError, match="quantum_annealer"):
        estimator.calculate_resource_cost(_res("quantum_annealer", "q"), MONTH)


def test_architecture_skips_failures():
    est = CostEstimator()
    resources = [
        _res("nat_gateway", "nat"),
        _res("quantum_annealer", "mystery"),
        _res("ebs_volume", "data", size_gb=100),
    ]

    combined = est.calculate_architecture_cost(resources, MONTH)

    assert combined.total_cost == pytest.approx(32.40 + 8.0)
    assert combined.skipped == ["mystery"]
    assert combined.resource_type is None
    assert combined.region is None
    assert combined.provider == "aws"
    assert [c.component_name for c in combined.breakdown] == ["NAT Gateway Hourly", "EBS Volume Storage"]
    _assert_invariant(combined)


def test_architecture_with_nothing_priced_is_empty(estimator):
    combined = estimator.calculate_architecture_cost([_res("quantum_annealer", "q")], MONTH)

    assert combined.breakdown == []
    assert combined.hidden_dependency_costs == []
    assert combined.total_cost == 0.0
    assert combined.skipped == ["q"]


def test_visual_only_resources_are_ignored(estimator):
    resources = [_res("nat_gateway", "nat"), _res("ec2_instance", "label", isVisualOnly=True)]

    estimates, skipped = estimator.calculate_resource_costs(resources, MONTH)

    assert [e.resource_id for e in estimates] == ["nat"]
    assert skipped == []


def test_malformed_resources_are_skipped(estimator):
    estimates, skipped = estimator.calculate_resource_costs([{"id": "broken"}, _res("nat_gateway", "nat")], MONTH)

    assert [e.resource_id for e in estimates] == ["nat"]
    assert skipped == ["broken"]


def test_parallel_aggregation_keeps_input_order():
    est = CostEstimator(max_workers=4)
    resources = [_res("ebs_volume", f"vol-{i}", size_gb=10 * (i + 1)) for i in range(8)]
    resources.insert(3, _res("quantum_annealer", "mystery"))

    estimates, skipped = est.calculate_resource_costs(resources, MONTH)
    sequential, _ = CostEstimator().calculate_resource_costs(resources, MONTH)

    assert [e.resource_id for e in estimates] == [f"vol-{i}" for i in range(8)]
    assert skipped == ["mystery"]
    assert [e.total_cost for e in estimates] == pytest.approx([e.total_cost for e in sequential])


def test_accepts_resource_descriptors(estimator):
    res = ResourceDescriptor(id="eip", name="eip", resource_type="ElasticIP", metadata={"is_attached": False})

    est = estimator.calculate_resource_cost(res, MONTH)

    assert est.resource_type == "elastic_ip"
    assert est.resource_id == "eip"
    assert est.total_cost == pytest.approx(3.60)


def test_get_resource_pricing_and_unknown_variant(estimator):
    pricing = estimator.get_resource_pricing("EC2", "aws", "us-east-1", "m5.large")
    unknown = estimator.get_resource_pricing("ec2_instance", "aws", "us-east-1", "z9.mega")

    assert pricing.rate("EC2 Instance Hourly") == pytest.approx(0.096)
    assert unknown.rate_defaulted is True


def test_list_supported_resources(estimator):
    types = estimator.list_supported_resources("aws")

    assert "nat_gateway" in types
    assert "ecs_service" in types
    with pytest.raises(UnsupportedProviderError):
        estimator.list_supported_resources("gcp")


def test_registered_pricing_function_prices_new_type(estimator):
    def cdn(request):
        return ResourcePricing(
            resource_type=request.resource_type,
            provider=request.provider,
            components=[
                PriceComponent("CDN Edge Hours", PricingModel.PER_HOUR, "hour", 0.5),
                PriceComponent("CDN Requests", PricingModel.PER_REQUEST_BATCH, "per 10,000 requests", 0.01),
            ],
        )

    estimator.register_pricing_function("cdn_distribution", cdn)

    est = estimator.calculate_resource_cost(
        _res("cdn_distribution", "cdn", count=2, request_count=50_000), timedelta(hours=10)
    )

    assert "cdn_distribution" in estimator.list_supported_resources()
    assert est.total_cost == pytest.approx(10.0 + 0.05)
    _assert_invariant(est)


def test_trace_records_resolution_and_expansion(tmp_path):
    trace_path = tmp_path / "trace.jsonl"
    est = CostEstimator(trace=build_trace_logger(trace_path))

    est.calculate_resource_cost(_res("ec2_instance", "web"), MONTH)

    events = [json.loads(line) for line in trace_path.read_text(encoding="utf-8").splitlines()]
    phases = {e["phase"] for e in events}
    assert phases == {"rate_resolve", "hidden_dependency"}
    resolved = [e for e in events if e["phase"] == "rate_resolve"]
    assert {e["payload"]["tier"] for e in resolved} == {"catalog"}
    assert any(e.get("resource_id") == "web" for e in events if e["phase"] == "hidden_dependency")


def test_from_config_accepts_overrides():
    est = CostEstimator.from_config(max_workers=3, trace=None)

    assert est.max_workers == 3
    assert est.rates.trace is None


@pytest.mark.parametrize(
    "resource",
    [
        _res("ec2_instance", "a", instance_type="c5.xlarge", count=3, size_gb=50),
        _res("lambda_function", "b", request_count=5_000_000, data_transfer_gb=40),
        _res("s3_bucket", "c", size_gb=500, put_requests=1e6, get_requests=1e7, data_transfer_gb=100),
        _res("rds_instance", "d", instance_class="db.m5.large", multi_az=True, backup_retention_period=3),
        _res("ecs_service", "e", cpu=512, memory=1024, desired_count=4, spot=True),
        _res("vpc_endpoint", "f", eni_count=3),
        _res("data_transfer", "g", direction="outbound", amount_gb=3),
    ],
)
@pytest.mark.parametrize("hours", [1, 24, 720, 8760])
def test_total_matches_components(estimator, resource, hours):
    est = estimator.calculate_resource_cost(resource, timedelta(hours=hours))

    _assert_invariant(est)
