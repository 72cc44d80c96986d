from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_optional_bool(name: str, default: bool | None = None) -> bool | None:
    """Like _env_bool, but "unset"/"none"/"" mean "no value configured"."""
    raw = os.getenv(name)
    if raw is None:
        return default
    raw = raw.strip().lower()
    if raw in {"", "unset", "none"}:
        return None
    return raw in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Core
    db_path: str = os.getenv("AIC_DB_PATH", "aic.db")
    sync_period_s: int = _env_int("AIC_SYNC_PERIOD_S", 30)

    # Control server (healthz / stop)
    healthz_host: str = os.getenv("AIC_HEALTHZ_HOST", "0.0.0.0")
    healthz_port: int = _env_int("AIC_HEALTHZ_PORT", 10249)

    # AWS
    cluster_id: str | None = os.getenv("AIC_CLUSTER_ID") or None
    aws_region: str | None = os.getenv("AIC_AWS_REGION") or None
    metadata_timeout_s: float = _env_float("AIC_METADATA_TIMEOUT_S", 2.0)

    # Reconciled properties.
    # Unset zone disables DNS management; unset source-dest-check disables the policy.
    dns_zone: str | None = os.getenv("AIC_DNS_ZONE") or None
    source_dest_check: bool | None = _env_optional_bool("AIC_SOURCE_DEST_CHECK", False)

    # Echo journal events to stderr logging as well as SQLite.
    log_to_stderr: bool = _env_bool("AIC_LOG_TO_STDERR", True)


settings = Settings()
