from __future__ import annotations

import pytest

from rest_api import server


def test_parser_defaults(monkeypatch) -> None:
    monkeypatch.delenv("MOCK_API_HOST", raising=False)
    monkeypatch.delenv("AUTHORITY_LOG_LEVEL", raising=False)

    args = server.build_parser().parse_args([])

    assert args.host == "127.0.0.1"
    assert args.port is None
    assert args.log_level == "info"
    assert args.strict_next is False


def test_default_port_reads_env(monkeypatch) -> None:
    monkeypatch.delenv("MOCK_API_PORT", raising=False)
    assert server._default_port() == 8787

    monkeypatch.setenv("MOCK_API_PORT", "9100")
    assert server._default_port() == 9100

    monkeypatch.setenv("MOCK_API_PORT", "eighty")
    with pytest.raises(SystemExit):
        server._default_port()


def test_main_runs_uvicorn_with_strict_app(monkeypatch) -> None:
    calls = {}

    def _run(app, **kwargs):
        calls["app"] = app
        calls.update(kwargs)

    monkeypatch.setattr(server.uvicorn, "run", _run)
    monkeypatch.setenv("MOCK_API_PORT", "9200")
    monkeypatch.delenv("AUTHORITY_STRICT_NEXT", raising=False)

    server.main(["--strict-next", "--log-level", "warning"])

    assert calls["port"] == 9200
    assert calls["log_level"] == "warning"
    assert calls["app"].state.authority.settings.strict_next is True
