from __future__ import annotations

from typing import Any, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .db import log_event
from .errors import DNSApplyError

DEFAULT_TTL_S = 60


class DNSProvider(Protocol):
    def apply_dns_changes(self, changes: dict[str, list[str]]) -> None:
        """Upsert every name -> addresses pair as one batch."""
        ...


def aws_error_code(err: BaseException) -> str:
    """The AWS error code of a ClientError, otherwise ""."""
    if isinstance(err, ClientError):
        return err.response.get("Error", {}).get("Code", "")
    return ""


def build_change_batch(records: dict[str, list[str]], ttl_s: int = DEFAULT_TTL_S) -> dict[str, Any]:
    changes = []
    for name in sorted(records):
        changes.append(
            {
                "Action": "UPSERT",
                "ResourceRecordSet": {
                    "Name": name,
                    "Type": "A",
                    "TTL": ttl_s,
                    "ResourceRecords": [{"Value": host} for host in records[name]],
                },
            }
        )
    return {"Changes": changes}


class Route53DNSProvider:
    """DNSProvider writing A records into one Route53 hosted zone.

    `zone` is either a hosted zone id or a zone name; it is resolved on the
    first apply and cached.
    """

    def __init__(self, zone: str, client: Any = None, ttl_s: int = DEFAULT_TTL_S):
        self.zone_name = zone
        self.route53 = client if client is not None else boto3.client("route53")
        self.ttl_s = ttl_s
        self._zone: dict[str, Any] | None = None

    def get_zone(self) -> dict[str, Any]:
        if self._zone is not None:
            return self._zone

        if "." not in self.zone_name:
            # Looks like a zone id
            zone_id = self.zone_name
            log_event("INFO", f"Querying for hosted zone by id: {zone_id!r}")
            try:
                resp = self.route53.get_hosted_zone(Id=zone_id)
            except (ClientError, BotoCoreError) as e:
                if aws_error_code(e) != "NoSuchHostedZone":
                    raise DNSApplyError(f"error querying for DNS HostedZones {zone_id!r}: {e}") from e
                log_event("INFO", f"Zone not found with id {zone_id!r}; will reattempt by name")
            else:
                self._zone = resp["HostedZone"]
                return self._zone

        find_zone = self.zone_name if self.zone_name.endswith(".") else self.zone_name + "."
        log_event("INFO", f"Querying for hosted zone by name: {find_zone!r}")
        try:
            resp = self.route53.list_hosted_zones_by_name(DNSName=find_zone)
        except (ClientError, BotoCoreError) as e:
            raise DNSApplyError(f"error querying for DNS HostedZones {find_zone!r}: {e}") from e

        zones = [z for z in resp.get("HostedZones", []) if z.get("Name") == find_zone]
        if not zones:
            raise DNSApplyError(f"no hosted zone found with name {find_zone!r}")
        if len(zones) != 1:
            raise DNSApplyError(f"found multiple hosted zones matched name {find_zone!r}")

        self._zone = zones[0]
        return self._zone

    def apply_dns_changes(self, changes: dict[str, list[str]]) -> None:
        zone = self.get_zone()
        # Route53 returns ids as /hostedzone/<id>
        zone_id = zone["Id"].split("/")[-1]

        log_event("INFO", f"Updating DNS records {sorted(changes)}")
        try:
            resp = self.route53.change_resource_record_sets(
                HostedZoneId=zone_id,
                ChangeBatch=build_change_batch(changes, self.ttl_s),
            )
        except (ClientError, BotoCoreError) as e:
            raise DNSApplyError(f"error creating ResourceRecordSets: {e}") from e

        log_event("DEBUG", f"Change id is {resp['ChangeInfo']['Id']!r}")
