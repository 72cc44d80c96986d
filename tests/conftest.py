import os
import sys

import pytest

# Ensure project root is importable (so `import aic` / `import main` work without installing)
_project_root = os.path.dirname(os.path.dirname(__file__))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from aic import db  # noqa: E402
from aic.runtime import InstanceStatus  # noqa: E402
from aic.settings import Settings  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_db(tmp_path, monkeypatch):
    """Point the event journal at a throwaway sqlite file for every test."""
    monkeypatch.setattr(db, "settings", Settings(db_path=str(tmp_path / "aic-test.db"), log_to_stderr=False))
    db.init_db()
    yield


class FakeCloud:
    """In-memory Cloud: serves `instances` and records mutation calls."""

    def __init__(self, instances=None):
        self.instances = list(instances or [])
        self.mutations = []
        self.fail_describe = False
        self.fail_mutation_for = set()

    def describe_instances(self):
        if self.fail_describe:
            raise RuntimeError("describe boom")
        # Hand out copies so in-place updates by the reconciler do not leak back.
        return [
            InstanceStatus(
                instance_id=i.instance_id,
                state=i.state,
                source_dest_check=i.source_dest_check,
                tags=dict(i.tags),
                private_ip=i.private_ip,
                public_ip=i.public_ip,
            )
            for i in self.instances
        ]

    def set_source_dest_check(self, instance_id, value):
        self.mutations.append((instance_id, value))
        if instance_id in self.fail_mutation_for:
            raise RuntimeError("modify boom")
        for i in self.instances:
            if i.instance_id == instance_id:
                i.source_dest_check = value


class FakeDNS:
    def __init__(self):
        self.calls = []
        self.fail = False

    def apply_dns_changes(self, changes):
        self.calls.append({k: list(v) for k, v in changes.items()})
        if self.fail:
            raise RuntimeError("route53 boom")


@pytest.fixture
def cloud():
    return FakeCloud()


@pytest.fixture
def dns():
    return FakeDNS()


def make_instance(instance_id, state="running", source_dest_check=True, tags=None, private_ip=None, public_ip=None):
    return InstanceStatus(
        instance_id=instance_id,
        state=state,
        source_dest_check=source_dest_check,
        tags=dict(tags or {}),
        private_ip=private_ip,
        public_ip=public_ip,
    )
