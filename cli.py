from __future__ import annotations

import argparse
import json
import sys

import requests


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="AWS Instance Controller CLI")
    p.add_argument("--api", default="http://localhost:10249", help="Control endpoint base URL")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("status", help="Show controller health")
    sub.add_parser("build", help="Show build info")
    sub.add_parser("instances", help="List tracked instances")
    sub.add_parser("dns", help="Show last applied DNS records")
    sub.add_parser("stop", help="Stop the controller")

    s_ticks = sub.add_parser("ticks", help="Show recent reconciliation ticks")
    s_ticks.add_argument("--limit", type=int, default=20)

    s_ev = sub.add_parser("events", help="Show events")
    s_ev.add_argument("--limit", type=int, default=20)

    args = p.parse_args(argv)

    base = args.api.rstrip("/")

    if args.cmd in {"status", "build", "instances", "dns"}:
        path = "/healthz" if args.cmd == "status" else f"/{args.cmd}"
        r = requests.get(f"{base}{path}", timeout=10)
        _print(r.json())
        return 0 if r.ok else 1

    if args.cmd in {"ticks", "events"}:
        r = requests.get(f"{base}/{args.cmd}", params={"limit": args.limit}, timeout=10)
        _print(r.json())
        return 0 if r.ok else 1

    if args.cmd == "stop":
        r = requests.post(f"{base}/stop", timeout=10)
        _print(r.json())
        return 0 if r.ok else 1

    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
