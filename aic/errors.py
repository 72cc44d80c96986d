from __future__ import annotations


class ControllerError(Exception):
    pass


class InventoryError(ControllerError):
    """Listing instances failed; the current tick is abandoned."""


class MalformedRecordError(ControllerError):
    pass


class UnknownStateError(ControllerError):
    def __init__(self, instance_id: str, state: str):
        super().__init__(f"unknown instance state for instance {instance_id!r}: {state!r}")
        self.instance_id = instance_id
        self.state = state


class PolicyError(ControllerError):
    def __init__(self, instance_id: str, message: str):
        super().__init__(message)
        self.instance_id = instance_id


class DNSApplyError(ControllerError):
    pass


class AlreadyStoppingError(ControllerError):
    pass
