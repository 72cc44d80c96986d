from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from . import db
from .errors import DNSApplyError
from .runtime import TrackedInstance

if TYPE_CHECKING:
    from .route53_ops import DNSProvider

# Set to expose the internal IP of an instance via DNS
TAG_DNS_INTERNAL = "k8s.io/dns/internal"
# Set to expose the public IP of an instance via DNS
TAG_DNS_PUBLIC = "k8s.io/dns/public"

DNSState = dict[str, list[str]]


def desired_dns_state(instances: Iterable[TrackedInstance]) -> DNSState:
    """Build name -> sorted, distinct addresses from the k8s.io/dns/* tags."""
    state: DNSState = {}
    for inst in instances:
        st = inst.status
        internal_name = st.find_tag(TAG_DNS_INTERNAL)
        if internal_name and st.private_ip:
            state.setdefault(internal_name, []).append(st.private_ip)
        public_name = st.find_tag(TAG_DNS_PUBLIC)
        if public_name and st.public_ip:
            state.setdefault(public_name, []).append(st.public_ip)
    # Route53 rejects duplicate values within one record set.
    return {name: sorted(set(addrs)) for name, addrs in state.items()}


def dns_changes(baseline: DNSState | None, desired: DNSState) -> DNSState:
    """Names whose address list differs from the baseline.

    With no baseline everything desired is a change. Names missing from
    `desired` are not reported: records are only ever upserted.
    """
    if baseline is None:
        return {name: sorted(addrs) for name, addrs in desired.items()}
    changes: DNSState = {}
    for name, addrs in desired.items():
        addrs = sorted(addrs)
        if sorted(baseline.get(name, [])) != addrs:
            changes[name] = addrs
    return changes


class DNSReconciler:
    """Pushes DNS changes derived from instance tags to a DNSProvider.

    `baseline` is the last snapshot the provider accepted (None until the
    first successful apply).
    """

    def __init__(self, provider: DNSProvider):
        self.provider = provider
        self.baseline: DNSState | None = None

    def reconcile(self, instances: Iterable[TrackedInstance]) -> DNSState:
        """Apply the changes for `instances`; returns what was sent (possibly empty)."""
        desired = desired_dns_state(instances)

        if self.baseline is None and not desired:
            db.log_event("DEBUG", "No dns configuration to apply")
            self.baseline = desired
            return {}

        if self.baseline:
            for name in sorted(set(self.baseline) - set(desired)):
                db.log_event("WARN", f"DNS name {name} has no instances left; leaving existing record in place")

        changes = dns_changes(self.baseline, desired)
        if not changes:
            db.log_event("DEBUG", "DNS configuration unchanged")
            return {}

        for name, addrs in sorted(changes.items()):
            prev = (self.baseline or {}).get(name, [])
            db.log_event("DEBUG", f"DNS change {name}: {prev} -> {addrs}")

        try:
            self.provider.apply_dns_changes(changes)
        except DNSApplyError:
            raise
        except Exception as e:
            raise DNSApplyError(f"error applying DNS changes: {type(e).__name__}: {e}") from e

        db.log_event("INFO", f"Applied DNS changes to {len(changes)} hosts")
        self.baseline = desired
        return changes
