from __future__ import annotations

import argparse
import logging
import signal
import sys
import time
from threading import Thread

import uvicorn

from aic import BUILD_REPO, __version__, db
from aic.api import create_app
from aic.ec2_ops import EC2Cloud
from aic.errors import AlreadyStoppingError
from aic.lifecycle import Controller
from aic.metadata import InstanceMetadata
from aic.reconciler import Reconciler
from aic.route53_ops import Route53DNSProvider
from aic.settings import settings


def _parse_tristate(raw: str) -> bool | None:
    raw = raw.strip().lower()
    if raw in {"", "unset", "none"}:
        return None
    if raw in {"1", "true", "yes", "y", "on"}:
        return True
    if raw in {"0", "false", "no", "n", "off"}:
        return False
    raise argparse.ArgumentTypeError(f"expected true, false or unset, got {raw!r}")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="AWS instance controller")
    p.add_argument(
        "--sync-period",
        type=int,
        default=settings.sync_period_s,
        help="Relist and confirm cloud resources this often (seconds)",
    )
    p.add_argument("--healthz-port", type=int, default=settings.healthz_port, help="Port for the control endpoint")
    p.add_argument("--cluster-id", default=settings.cluster_id, help="Cluster id (default: tag of this instance)")
    p.add_argument("--dns-zone", default=settings.dns_zone, help="Route53 zone id or name; unset disables DNS")
    p.add_argument(
        "--source-dest-check",
        type=_parse_tristate,
        default=settings.source_dest_check,
        help="Desired source-dest-check value (true|false|unset)",
    )
    p.add_argument("--region", default=settings.aws_region, help="AWS region (default: from instance metadata)")
    return p


def serve_api(controller: Controller, port: int) -> Thread:
    config = uvicorn.Config(create_app(controller), host=settings.healthz_host, port=port, log_level="warning")
    server = uvicorn.Server(config)
    thr = Thread(target=server.run, name="aic-api", daemon=True)
    thr.start()
    return thr


def install_sigterm_handler(controller: Controller) -> None:
    """SIGTERM stops the controller and ends the process.

    Exit code is 1 if a shutdown (e.g. via /stop) was already in progress.
    """

    def _handle(signum, frame) -> None:
        db.log_event("INFO", "Received SIGTERM, shutting down")
        exit_code = 0
        try:
            controller.stop()
        except AlreadyStoppingError as e:
            db.log_event("INFO", f"Error during shutdown: {e}")
            exit_code = 1
        db.log_event("INFO", f"Exiting with {exit_code}")
        raise SystemExit(exit_code)

    signal.signal(signal.SIGTERM, _handle)


def await_pod_deletion(period_s: float) -> None:
    """Park after a stop; only SIGTERM ends the process from here."""
    while True:
        db.log_event("INFO", "Handled quit, awaiting pod deletion")
        time.sleep(period_s)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    db.init_db()
    db.log_event("INFO", f"Using build: {BUILD_REPO} - {__version__}")

    metadata = InstanceMetadata(timeout_s=settings.metadata_timeout_s)
    cloud = EC2Cloud.from_metadata(metadata, cluster_id=args.cluster_id, region=args.region)
    dns = Route53DNSProvider(args.dns_zone) if args.dns_zone else None

    reconciler = Reconciler(cloud, source_dest_check=args.source_dest_check, dns=dns)
    controller = Controller(reconciler, period_s=max(1, args.sync_period))

    install_sigterm_handler(controller)
    serve_api(controller, args.healthz_port)

    controller.run()
    controller.join(timeout=float(args.sync_period))

    # Stopped via /stop: stay up until the pod is deleted (SIGTERM).
    await_pod_deletion(30)
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
