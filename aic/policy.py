from __future__ import annotations

from typing import TYPE_CHECKING

from . import db
from .errors import PolicyError, UnknownStateError
from .runtime import TrackedInstance

if TYPE_CHECKING:
    from .ec2_ops import Cloud


# The attribute can be changed on these states...
MUTABLE_STATES = frozenset({"running", "stopping", "stopped"})
# ...and never on these (pending instances are not ready yet).
IGNORED_STATES = frozenset({"pending", "shutting-down", "terminated"})


def can_set_source_dest_check(inst: TrackedInstance) -> bool:
    """Whether the instance's lifecycle state allows changing source-dest-check.

    Raises UnknownStateError for a state we do not recognise.
    """
    state = inst.status.state
    if state in MUTABLE_STATES:
        return True
    if state == "pending":
        db.log_event("DEBUG", "Ignoring pending instance", instance_id=inst.id)
        return False
    if state in IGNORED_STATES:
        return False
    raise UnknownStateError(inst.id, state)


class SourceDestCheckPolicy:
    """Keeps the source/destination check attribute at a configured value.

    After a successful change the observed value is updated in place, so the
    next tick does not repeat the call before the inventory catches up. If
    the provider accepted the call but did not apply it, the next inventory
    fetch shows the old value again and the call is retried.
    """

    def __init__(self, cloud: Cloud, desired: bool | None):
        self.cloud = cloud
        self.desired = desired

    def apply(self, inst: TrackedInstance) -> bool:
        """Returns True if the attribute was changed."""
        if self.desired is None:
            return False
        if not can_set_source_dest_check(inst):
            return False
        # The SDK reports a missing value as false.
        if bool(inst.status.source_dest_check) == self.desired:
            return False

        try:
            self.cloud.set_source_dest_check(inst.id, self.desired)
        except PolicyError:
            raise
        except Exception as e:
            raise PolicyError(
                inst.id, f"failed to configure SourceDestCheck for instance {inst.id!r}: {type(e).__name__}: {e}"
            ) from e

        inst.status.source_dest_check = self.desired
        db.log_event("INFO", f"Set SourceDestCheck to {self.desired}", instance_id=inst.id)
        return True
