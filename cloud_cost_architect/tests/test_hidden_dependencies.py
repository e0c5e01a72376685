from textwrap import dedent

import pytest

from cloud_cost_architect.domain.models import HiddenDependency, ResourceDescriptor
from cloud_cost_architect.hidden_deps import (
    Constant,
    ExpressionError,
    FileRuleStore,
    HiddenDependencyResolver,
    InMemoryRuleStore,
    MetadataAbsent,
    MetadataEquals,
    MetadataField,
    MetadataPositive,
    MetadataTruthy,
    hidden_child_id,
    parse_condition,
    parse_quantity,
)
from cloud_cost_architect.hidden_deps.store import rule_from_dict


def _ec2(**metadata):
    return ResourceDescriptor(
        id="web-1", name="web", resource_type="ec2_instance", region="us-east-1", metadata=metadata
    )


@pytest.mark.parametrize(
    "expr, expected",
    [
        ("metadata.allocationId == null", MetadataAbsent("allocationId")),
        ("!metadata.allocationId", MetadataAbsent("allocationId")),
        ("metadata.backup_retention_period > 0", MetadataPositive("backup_retention_period")),
        ("metadata.encrypted", MetadataTruthy("encrypted")),
        ("metadata.encrypted == true", MetadataTruthy("encrypted")),
        ("metadata.tier == 'gold'", MetadataEquals("tier", "gold")),
        ("", None),
        (None, None),
    ],
)
def test_parse_condition(expr, expected):
    assert parse_condition(expr) == expected


@pytest.mark.parametrize(
    "expr, expected",
    [
        ("2", Constant(2.0)),
        (None, Constant(1.0)),
        ("metadata.size_gb", MetadataField("size_gb", 8.0)),
        ("metadata.allocated_storage", MetadataField("allocated_storage", 20.0)),
        ("metadata.size_gb ?? 30", MetadataField("size_gb", 30.0)),
        ("metadata.replicas || 2", MetadataField("replicas", 2.0)),
        ("metadata.replicas", MetadataField("replicas", 1.0)),
    ],
)
def test_parse_quantity(expr, expected):
    assert parse_quantity(expr) == expected


@pytest.mark.parametrize("expr", ["metadata.a + 1", "len(metadata)", "metadata.size_gb * 2"])
def test_unsupported_expressions_raise(expr):
    with pytest.raises(ExpressionError):
        parse_condition(expr)
    with pytest.raises(ExpressionError):
        parse_quantity(expr)


def test_predicates_evaluate_metadata():
    assert MetadataAbsent("allocationId")({"allocationId": "  "})
    assert not MetadataAbsent("allocationId")({"allocationId": "eipalloc-1"})
    assert MetadataPositive("n")({"n": "7"})
    assert not MetadataPositive("n")({"n": 0})
    assert MetadataEquals("tier", "gold")({"tier": "GOLD"})
    assert MetadataField("size_gb", 8.0)({}) == 8.0
    assert MetadataField("size_gb", 8.0)({"size_gb": -5}) == 0.0


def test_ec2_expands_to_root_volume_and_interface():
    resolver = HiddenDependencyResolver()

    deps = resolver.resolve(_ec2(size_gb=20))

    assert [d.resource.resource_type for d in deps] == ["ebs_volume", "network_interface"]
    volume, eni = deps
    assert volume.quantity == 20.0
    assert volume.resource.id == hidden_child_id("web-1", "ebs_volume") == "web-1-hidden-ebs_volume"
    assert volume.resource.metadata["size_gb"] == 20.0
    assert volume.resource.metadata["volume_type"] == "gp3"
    assert volume.resource.metadata["hidden_dependency_of"] == "ec2_instance"
    assert volume.resource.parent_id == "web-1"
    assert volume.resource.region == "us-east-1"
    assert eni.resource.metadata["is_attached"] is True


def test_root_volume_defaults_to_8gb():
    deps = HiddenDependencyResolver().resolve(_ec2())

    assert deps[0].quantity == 8.0


def test_nat_gateway_with_allocation_id_has_no_hidden_ip():
    resolver = HiddenDependencyResolver()
    nat = ResourceDescriptor(id="nat", name="nat", resource_type="nat_gateway", metadata={"allocationId": "eipalloc-1"})
    bare = ResourceDescriptor(id="nat", name="nat", resource_type="nat_gateway")

    assert resolver.resolve(nat) == []
    assert [d.resource.resource_type for d in resolver.resolve(bare)] == ["elastic_ip"]


def test_rds_backups_only_with_retention():
    resolver = HiddenDependencyResolver()
    no_backup = ResourceDescriptor(id="db", name="db", resource_type="rds_instance", metadata={"allocated_storage": 50})
    backup = ResourceDescriptor(
        id="db",
        name="db",
        resource_type="rds_instance",
        metadata={"allocated_storage": 50, "backup_retention_period": 7},
    )

    assert [d.resource.resource_type for d in resolver.resolve(no_backup)] == ["ebs_volume"]
    deps = resolver.resolve(backup)
    assert [d.resource.resource_type for d in deps] == ["ebs_volume", "s3_bucket"]
    assert deps[1].quantity == 50.0
    assert deps[1].dependency.is_attached is False


def test_expansion_is_deterministic():
    resolver = HiddenDependencyResolver()

    assert resolver.resolve(_ec2(size_gb=20)) == resolver.resolve(_ec2(size_gb=20))


def test_store_rules_replace_builtin_rule_for_same_child():
    store = InMemoryRuleStore(
        [
            HiddenDependency(
                parent_resource_type="ec2_instance",
                child_resource_type="ebs_volume",
                quantity=Constant(50.0),
                description="Larger root volume",
            )
        ]
    )
    resolver = HiddenDependencyResolver(store)

    rules = resolver.rules_for("aws", "ec2_instance")

    assert [r.child_resource_type for r in rules] == ["ebs_volume", "network_interface"]
    assert rules[0].description == "Larger root volume"
    assert resolver.resolve(_ec2(size_gb=20))[0].quantity == 50.0


def test_store_failure_uses_builtin_rules(caplog):
    class Broken:
        def find_by_parent_resource_type(self, provider, parent_resource_type):
            raise ConnectionError("rule store down")

    resolver = HiddenDependencyResolver(Broken())

    with caplog.at_level("WARNING"):
        rules = resolver.rules_for("aws", "ec2_instance")

    assert [r.child_resource_type for r in rules] == ["ebs_volume", "network_interface"]
    assert "rule store down" in caplog.text


def test_string_rules_with_bad_expressions_are_skipped():
    store = InMemoryRuleStore(
        [
            HiddenDependency(
                parent_resource_type="ec2_instance",
                child_resource_type="elastic_ip",
                quantity="1",
                condition="metadata.public_ip ~= yes",
            )
        ]
    )

    deps = HiddenDependencyResolver(store).resolve(_ec2())

    assert "elastic_ip" not in [d.resource.resource_type for d in deps]


def test_visited_pairs_are_not_expanded_again():
    resolver = HiddenDependencyResolver()

    deps = resolver.resolve(_ec2(), path=(("ec2_instance", "ebs_volume"),))

    assert [d.resource.resource_type for d in deps] == ["network_interface"]


def test_depth_limit_stops_expansion():
    resolver = HiddenDependencyResolver(max_depth=1)

    assert resolver.resolve(_ec2(), path=(("rds_instance", "ec2_instance"),)) == []


def test_other_providers_get_no_builtin_rules():
    resolver = HiddenDependencyResolver()

    assert resolver.rules_for("azure", "ec2_instance") == []


@pytest.mark.parametrize("provider", ["AWS ", "", None])
def test_provider_is_normalized_before_rule_lookup(provider):
    resolver = HiddenDependencyResolver()

    children = [r.child_resource_type for r in resolver.rules_for(provider, "ec2_instance")]

    assert children == ["ebs_volume", "network_interface"]


def test_child_aliases_merge_with_builtin_rules():
    store = InMemoryRuleStore([HiddenDependency("ec2_instance", "EBS", quantity=Constant(30.0))])
    aliases = {"ebs": "ebs_volume"}
    resolver = HiddenDependencyResolver(store, canonical_type=lambda p, t: aliases.get(t.lower()))

    deps = resolver.resolve(_ec2())

    assert [d.resource.resource_type for d in deps] == ["ebs_volume", "network_interface"]
    assert deps[0].resource.id == hidden_child_id("web-1", "ebs_volume")
    assert deps[0].resource.metadata["volume_type"] == "gp3"
    assert deps[0].quantity == 30.0


def test_rule_from_dict_parses_expressions():
    rule = rule_from_dict(
        {
            "parent_resource_type": "rds_instance",
            "child_resource_type": "s3_bucket",
            "quantity_expression": "metadata.allocated_storage ?? 100",
            "condition_expression": "metadata.backup_retention_period > 0",
            "is_attached": False,
        }
    )

    assert rule.quantity == MetadataField("allocated_storage", 100.0)
    assert rule.condition == MetadataPositive("backup_retention_period")
    assert rule.provider == "aws"

    with pytest.raises(ValueError, match="child_resource_type"):
        rule_from_dict({"parent_resource_type": "rds_instance"})


@pytest.mark.parametrize("flag, expected", [("false", False), ("no", False), ("true", True), (None, True)])
def test_rule_from_dict_reads_attachment_flag(flag, expected):
    data = {"parent_resource_type": "nat_gateway", "child_resource_type": "elastic_ip", "quantity": 1}
    if flag is not None:
        data["is_attached"] = flag

    rule = rule_from_dict(data)

    assert rule.is_attached is expected
    assert rule.quantity == Constant(1.0)


def test_file_rule_store_skips_unparseable_rules(tmp_path, caplog):
    path = tmp_path / "rules.yaml"
    path.write_text(
        dedent(
            """
            rules:
              - parent_resource_type: ec2_instance
                child_resource_type: ebs_volume
                quantity_expression: metadata.size_gb ?? 30
              - parent_resource_type: ec2_instance
                child_resource_type: elastic_ip
                quantity_expression: metadata.a + metadata.b
            """
        ),
        encoding="utf-8",
    )
    store = FileRuleStore(path)

    with caplog.at_level("WARNING"):
        rules = store.find_by_parent_resource_type("aws", "ec2_instance")

    assert [r.child_resource_type for r in rules] == ["ebs_volume"]
    assert "Skipping hidden dependency rule" in caplog.text
    assert HiddenDependencyResolver(store).resolve(_ec2())[0].quantity == 30.0
