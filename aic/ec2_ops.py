from __future__ import annotations

from typing import Any, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .db import log_event
from .errors import InventoryError, PolicyError
from .metadata import InstanceMetadata
from .runtime import InstanceStatus

# The tag name we use to differentiate multiple logically independent clusters running in the same region
TAG_CLUSTER = "KubernetesCluster"


class Cloud(Protocol):
    """Inventory source and attribute mutator used by the reconciler."""

    def describe_instances(self) -> list[InstanceStatus]:
        ...

    def set_source_dest_check(self, instance_id: str, value: bool) -> None:
        ...


def find_tag(raw: dict[str, Any], name: str) -> str | None:
    for tag in raw.get("Tags") or []:
        if tag.get("Key") == name:
            return tag.get("Value", "")
    return None


def to_instance_status(raw: dict[str, Any]) -> InstanceStatus:
    """Convert one Reservations[].Instances[] entry."""
    tags = {t["Key"]: t.get("Value", "") for t in raw.get("Tags") or [] if "Key" in t}
    return InstanceStatus(
        instance_id=raw.get("InstanceId") or "",
        state=(raw.get("State") or {}).get("Name", ""),
        source_dest_check=raw.get("SourceDestCheck"),
        tags=tags,
        private_ip=raw.get("PrivateIpAddress") or None,
        public_ip=raw.get("PublicIpAddress") or None,
    )


def cluster_filters(cluster_id: str | None) -> list[dict[str, Any]]:
    if not cluster_id:
        return []
    return [{"Name": f"tag:{TAG_CLUSTER}", "Values": [cluster_id]}]


class EC2Cloud:
    """Cloud backed by the EC2 API, scoped to one cluster's instances."""

    def __init__(self, client: Any, cluster_id: str | None):
        self.ec2 = client
        self.cluster_id = cluster_id

    @classmethod
    def create(cls, region: str, cluster_id: str | None) -> EC2Cloud:
        return cls(boto3.client("ec2", region_name=region), cluster_id)

    @classmethod
    def from_metadata(
        cls,
        metadata: InstanceMetadata,
        cluster_id: str | None = None,
        region: str | None = None,
    ) -> EC2Cloud:
        """Build a cloud for the instance we are running on.

        Region comes from the metadata service unless given. Without an
        explicit cluster id, the KubernetesCluster tag of this instance is used.
        """
        region = region or metadata.region()
        cloud = cls.create(region, cluster_id)
        if not cloud.cluster_id:
            instance_id = metadata.instance_id()
            raw = cloud.describe_instance(instance_id)
            found = find_tag(raw, TAG_CLUSTER)
            if not found:
                raise InventoryError(f"Cluster tag {TAG_CLUSTER!r} not found on this instance ({instance_id!r})")
            cloud.cluster_id = found
            log_event("INFO", f"Discovered cluster id {found!r} from instance {instance_id}")
        return cloud

    def _describe(self, **kwargs: Any) -> list[dict[str, Any]]:
        out: list[dict[str, Any]] = []
        paginator = self.ec2.get_paginator("describe_instances")
        for page in paginator.paginate(**kwargs):
            for reservation in page.get("Reservations", []):
                out.extend(reservation.get("Instances", []))
        return out

    def describe_instance(self, instance_id: str) -> dict[str, Any]:
        try:
            found = self._describe(InstanceIds=[instance_id])
        except (ClientError, BotoCoreError) as e:
            raise InventoryError(f"error querying for EC2 instance {instance_id!r}: {e}") from e
        if len(found) != 1:
            raise InventoryError(f"unexpected number of instances found with id {instance_id!r}: {len(found)}")
        return found[0]

    def describe_instances(self) -> list[InstanceStatus]:
        log_event("DEBUG", "Querying EC2 instances")
        kwargs: dict[str, Any] = {}
        filters = cluster_filters(self.cluster_id)
        # An empty Filters list is rejected by EC2; omit it instead.
        if filters:
            kwargs["Filters"] = filters
        try:
            raw = self._describe(**kwargs)
        except (ClientError, BotoCoreError) as e:
            raise InventoryError(f"error doing EC2 describe instances: {e}") from e
        return [to_instance_status(r) for r in raw]

    def set_source_dest_check(self, instance_id: str, value: bool) -> None:
        log_event("DEBUG", f"Configuring SourceDestCheck to {value}", instance_id=instance_id)
        try:
            self.ec2.modify_instance_attribute(InstanceId=instance_id, SourceDestCheck={"Value": value})
        except (ClientError, BotoCoreError) as e:
            raise PolicyError(instance_id, f"error configuring source-dest-check on instance {instance_id!r}: {e}") from e
