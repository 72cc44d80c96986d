import importlib

import pytest

from aic import settings as settings_mod
from aic.settings import _env_bool, _env_int, _env_optional_bool


@pytest.mark.parametrize(
    "raw,expected",
    [("unset", None), ("", None), ("None", None), ("true", True), ("1", True), ("false", False), ("no", False)],
)
def test_source_dest_check_env(monkeypatch, raw, expected):
    monkeypatch.setenv("AIC_SOURCE_DEST_CHECK", raw)
    assert _env_optional_bool("AIC_SOURCE_DEST_CHECK", False) is expected


def test_source_dest_check_env_missing_uses_default(monkeypatch):
    monkeypatch.delenv("AIC_SOURCE_DEST_CHECK", raising=False)
    assert _env_optional_bool("AIC_SOURCE_DEST_CHECK", False) is False
    assert _env_optional_bool("AIC_SOURCE_DEST_CHECK") is None


def test_env_bool_and_int(monkeypatch):
    monkeypatch.setenv("AIC_LOG_TO_STDERR", "off")
    assert _env_bool("AIC_LOG_TO_STDERR", True) is False
    monkeypatch.delenv("AIC_LOG_TO_STDERR")
    assert _env_bool("AIC_LOG_TO_STDERR", True) is True

    monkeypatch.setenv("AIC_HEALTHZ_PORT", "8080")
    assert _env_int("AIC_HEALTHZ_PORT", 10249) == 8080
    monkeypatch.setenv("AIC_HEALTHZ_PORT", "not-a-port")
    assert _env_int("AIC_HEALTHZ_PORT", 10249) == 10249


def test_settings_read_environment_at_class_definition(monkeypatch):
    with monkeypatch.context() as m:
        m.setenv("AIC_SOURCE_DEST_CHECK", "unset")
        m.setenv("AIC_SYNC_PERIOD_S", "5")
        m.setenv("AIC_DNS_ZONE", "example.com")
        try:
            s = importlib.reload(settings_mod).Settings()
        finally:
            m.undo()
            importlib.reload(settings_mod)

    assert s.source_dest_check is None
    assert s.sync_period_s == 5
    assert s.dns_zone == "example.com"
