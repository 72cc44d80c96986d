from __future__ import annotations

import time

from . import db
from .dns import DNSReconciler, DNSState
from .ec2_ops import Cloud
from .errors import DNSApplyError, InventoryError, MalformedRecordError, PolicyError, UnknownStateError
from .policy import SourceDestCheckPolicy
from .route53_ops import DNSProvider
from .runtime import InstanceRegistry, TickResult, TrackedInstance


class Reconciler:
    """Brings the cluster's instances in line with the configured network state.

    One call to tick() lists the instances, refreshes the registry, drops
    instances that disappeared, fixes source-dest-check and pushes DNS
    changes. Not thread-safe: ticks must come from a single thread.
    """

    def __init__(
        self,
        cloud: Cloud,
        source_dest_check: bool | None = None,
        dns: DNSProvider | None = None,
    ):
        self.cloud = cloud
        self.registry = InstanceRegistry()
        self.sequence = 0
        self.policy = SourceDestCheckPolicy(cloud, source_dest_check)
        self.dns = DNSReconciler(dns) if dns is not None else None

        # Read-only views for other threads, replaced (never mutated) after each tick.
        self.snapshot: tuple[TrackedInstance, ...] = ()
        self.last_result: TickResult | None = None

    @property
    def dns_state(self) -> DNSState | None:
        if self.dns is None or self.dns.baseline is None:
            return None
        return {k: list(v) for k, v in self.dns.baseline.items()}

    def tick(self) -> TickResult:
        """Run one reconciliation pass.

        Raises InventoryError if instances could not be listed (nothing else
        happens in that case) and DNSApplyError after all other work is done.
        """
        self.sequence += 1
        sequence = self.sequence
        start = time.time()
        result = TickResult(tick=sequence)

        try:
            instances = self.cloud.describe_instances()
        except InventoryError:
            raise
        except Exception as e:
            raise InventoryError(f"error listing instances: {type(e).__name__}: {e}") from e

        for status in instances:
            if not status.instance_id:
                err = MalformedRecordError(f"skipping instance with empty instanceid: {status!r}")
                db.log_event("WARN", str(err))
                result.errors.append(str(err))
                continue
            self.registry.observe(status, sequence)

        for instance_id in self.registry.evict_stale(sequence):
            db.log_event("INFO", "Instance deleted", instance_id=instance_id)
            result.evicted.append(instance_id)

        for inst in self.registry.values():
            try:
                if self.policy.apply(inst):
                    result.mutations.append(inst.id)
            except (PolicyError, UnknownStateError) as e:
                db.log_event("WARN", str(e), instance_id=inst.id)
                result.errors.append(str(e))

        result.instances = len(self.registry)
        db.log_event("INFO", f"Found {result.instances} instances")

        dns_error: DNSApplyError | None = None
        if self.dns is not None:
            try:
                result.dns_changes = self.dns.reconcile(self.registry.values())
            except DNSApplyError as e:
                dns_error = e

        result.duration_ms = round((time.time() - start) * 1000.0, 2)
        self.snapshot = self.registry.snapshot()
        self.last_result = result

        if dns_error is not None:
            raise dns_error
        return result
