"""Built-in hidden dependency table, used when the rule store has nothing."""

from __future__ import annotations

from typing import Dict, List

from ..domain.models import HiddenDependency
from .expressions import Constant, MetadataAbsent, MetadataField, MetadataPositive

BUILTIN_RULES: Dict[str, List[HiddenDependency]] = {
    "ec2_instance": [
        HiddenDependency(
            parent_resource_type="ec2_instance",
            child_resource_type="ebs_volume",
            quantity=MetadataField("size_gb", 8.0),
            is_attached=True,
            description="EC2 instance requires a root EBS volume. Default size is 8GB if not specified.",
        ),
        HiddenDependency(
            parent_resource_type="ec2_instance",
            child_resource_type="network_interface",
            quantity=Constant(1.0),
            is_attached=True,
            description="EC2 instance requires a network interface (free when attached).",
        ),
    ],
    "nat_gateway": [
        HiddenDependency(
            parent_resource_type="nat_gateway",
            child_resource_type="elastic_ip",
            quantity=Constant(1.0),
            condition=MetadataAbsent("allocationId"),
            is_attached=True,
            description=(
                "NAT Gateway requires an Elastic IP. If not provided, one is automatically "
                "created and attached (free when attached)."
            ),
        ),
    ],
    "rds_instance": [
        HiddenDependency(
            parent_resource_type="rds_instance",
            child_resource_type="ebs_volume",
            quantity=MetadataField("allocated_storage", 20.0),
            is_attached=True,
            description="RDS instance requires storage volume based on allocated_storage.",
        ),
        HiddenDependency(
            parent_resource_type="rds_instance",
            child_resource_type="s3_bucket",
            quantity=MetadataField("allocated_storage", 20.0),
            condition=MetadataPositive("backup_retention_period"),
            is_attached=False,
            description="RDS automated backups stored in S3 (assumed equal to DB size for estimation).",
        ),
    ],
}


def builtin_rules(provider: str, parent_type: str) -> List[HiddenDependency]:
    return [r for r in BUILTIN_RULES.get(parent_type, []) if r.provider == (provider or "").strip().lower()]
