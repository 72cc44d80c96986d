from __future__ import annotations

import httpx

from .errors import InventoryError

IMDS_BASE_URL = "http://169.254.169.254"
TOKEN_TTL_S = 21600


class InstanceMetadata:
    """Minimal EC2 instance metadata (IMDSv2) client.

    Each lookup fetches a fresh session token, then the requested path under
    /latest/meta-data/. Failures raise InventoryError, since without the
    instance identity the controller cannot scope its inventory.
    """

    def __init__(
        self,
        base_url: str = IMDS_BASE_URL,
        timeout_s: float = 2.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(base_url=self.base_url, timeout=self.timeout_s, transport=self._transport)

    def get(self, path: str) -> str:
        try:
            with self._client() as client:
                tok = client.put(
                    "/latest/api/token",
                    headers={"X-aws-ec2-metadata-token-ttl-seconds": str(TOKEN_TTL_S)},
                )
                tok.raise_for_status()
                resp = client.get(
                    f"/latest/meta-data/{path.lstrip('/')}",
                    headers={"X-aws-ec2-metadata-token": tok.text},
                )
                resp.raise_for_status()
        except httpx.HTTPError as e:
            raise InventoryError(f"error querying ec2 metadata service (for {path}): {type(e).__name__}: {e}") from e
        return resp.text.strip()

    def instance_id(self) -> str:
        return self.get("instance-id")

    def availability_zone(self) -> str:
        return self.get("placement/availability-zone")

    def region(self) -> str:
        return self.get("placement/region")
