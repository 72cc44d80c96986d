import json

import cli


class _Resp:
    def __init__(self, payload, ok=True):
        self._payload = payload
        self.ok = ok

    def json(self):
        return self._payload


def test_status_hits_healthz(monkeypatch, capsys):
    calls = []

    def fake_get(url, params=None, timeout=None):
        calls.append((url, params))
        return _Resp({"status": "ok"})

    monkeypatch.setattr(cli.requests, "get", fake_get)
    assert cli.main(["--api", "http://ctl:10249/", "status"]) == 0
    assert calls == [("http://ctl:10249/healthz", None)]
    assert json.loads(capsys.readouterr().out) == {"status": "ok"}


def test_events_passes_limit(monkeypatch):
    calls = []

    def fake_get(url, params=None, timeout=None):
        calls.append((url, params))
        return _Resp([])

    monkeypatch.setattr(cli.requests, "get", fake_get)
    assert cli.main(["events", "--limit", "5"]) == 0
    assert calls == [("http://localhost:10249/events", {"limit": 5})]


def test_stop_reports_conflict(monkeypatch):
    monkeypatch.setattr(
        cli.requests, "post", lambda url, timeout=None: _Resp({"detail": "shutdown already in progress"}, ok=False)
    )
    assert cli.main(["stop"]) == 1
