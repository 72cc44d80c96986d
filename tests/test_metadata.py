import httpx
import pytest

from aic.errors import InventoryError
from aic.metadata import InstanceMetadata


def _transport(values, seen):
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path))
        if request.url.path == "/latest/api/token":
            assert request.method == "PUT"
            assert request.headers["X-aws-ec2-metadata-token-ttl-seconds"] == "21600"
            return httpx.Response(200, text="tok-123")
        assert request.headers["X-aws-ec2-metadata-token"] == "tok-123"
        key = request.url.path.removeprefix("/latest/meta-data/")
        if key in values:
            return httpx.Response(200, text=values[key] + "\n")
        return httpx.Response(404, text="Not Found")

    return httpx.MockTransport(handler)


def test_reads_identity_with_session_token():
    seen = []
    md = InstanceMetadata(
        transport=_transport(
            {"instance-id": "i-0abc", "placement/region": "eu-west-1", "placement/availability-zone": "eu-west-1a"},
            seen,
        )
    )

    assert md.instance_id() == "i-0abc"
    assert md.region() == "eu-west-1"
    assert md.availability_zone() == "eu-west-1a"
    assert seen[:2] == [("PUT", "/latest/api/token"), ("GET", "/latest/meta-data/instance-id")]


def test_missing_key_is_inventory_error():
    md = InstanceMetadata(transport=_transport({}, []))
    with pytest.raises(InventoryError) as exc:
        md.instance_id()
    assert "instance-id" in str(exc.value)


def test_unreachable_service_is_inventory_error():
    def handler(request):
        raise httpx.ConnectError("no route to host", request=request)

    md = InstanceMetadata(transport=httpx.MockTransport(handler))
    with pytest.raises(InventoryError):
        md.region()
