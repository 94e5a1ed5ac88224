import json
import logging
import sys
from pathlib import Path

from fastapi import FastAPI
from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))
from api.tableorder.middlewares.logging import LoggingMiddleware  # noqa: E402
from api.tableorder.middlewares.request_id import RequestIdMiddleware  # noqa: E402
from api.tableorder.obs.logging import JsonFormatter, RequestIdFilter  # noqa: E402


def _make_app():
    test_app = FastAPI()
    test_app.add_middleware(LoggingMiddleware)
    test_app.add_middleware(RequestIdMiddleware)

    @test_app.get("/health")
    async def health():
        return {"ok": True}

    @test_app.post("/echo")
    async def echo(data: dict):
        return data

    @test_app.get("/crash")
    async def crash():
        raise RuntimeError("boom")

    return test_app


def _http_lines(caplog) -> list[dict]:
    return [json.loads(r.getMessage()) for r in caplog.records if r.name == "tableorder.http"]


def test_request_id_propagation(monkeypatch, caplog):
    monkeypatch.setattr("api.tableorder.middlewares.logging.LOG_SAMPLE_2XX", 1)
    client = TestClient(_make_app())
    with caplog.at_level(logging.INFO, logger="tableorder"):
        resp = client.get("/health", headers={"X-Request-ID": "abc"})
    assert resp.headers["X-Request-ID"] == "abc"
    record = next(r for r in caplog.records if r.name == "tableorder.http")
    assert record.status == 200
    assert record.route == "/health"


def test_request_id_generation():
    client = TestClient(_make_app())
    resp = client.get("/health")
    assert len(resp.headers["X-Request-ID"]) == 32


def test_body_redaction(monkeypatch, caplog):
    monkeypatch.setattr("api.tableorder.middlewares.logging.LOG_SAMPLE_2XX", 1)
    client = TestClient(_make_app())
    payload = {
        "email": "owner@example.com",
        "password": "hunter22",
        "refresh_token": "r",
        "nested": {"phone": "010-1234-5678"},
        "quantity": 2,
    }
    with caplog.at_level(logging.INFO, logger="tableorder"):
        client.post("/echo", json=payload, params={"access_token": "q"})
    [line] = _http_lines(caplog)
    body = line["body"]
    for k in ["email", "password", "refresh_token"]:
        assert body[k] == "***"
    assert body["nested"]["phone"] == "***"
    assert body["quantity"] == 2
    assert line["query"]["access_token"] == "***"


def test_2xx_sampling(monkeypatch, caplog):
    monkeypatch.setattr("api.tableorder.middlewares.logging.LOG_SAMPLE_2XX", 0)
    client = TestClient(_make_app())
    with caplog.at_level(logging.INFO, logger="tableorder"):
        for _ in range(10):
            client.get("/health")
        client.get("/missing")
    lines = _http_lines(caplog)
    assert [line["path"] for line in lines] == ["/missing"]


def test_crash_returns_internal_envelope(caplog):
    client = TestClient(_make_app())
    with caplog.at_level(logging.INFO, logger="tableorder"):
        resp = client.get("/crash", headers={"X-Request-ID": "req-9"})
    assert resp.status_code == 500
    body = resp.json()
    assert body["ok"] is False
    assert body["error"]["code"] == "INTERNAL"
    assert body["request_id"] == "req-9"
    assert body["error_id"]
    assert "boom" not in resp.text


def test_json_logger_redaction():
    formatter = JsonFormatter()
    record = logging.LogRecord(
        "tableorder",
        logging.INFO,
        __file__,
        0,
        "call 010-1234-5678 email foo@example.com auth Bearer abc.def",
        (),
        None,
    )
    record.table_id = 4
    data = json.loads(formatter.format(record))
    msg = data["msg"]
    assert "010-1234-5678" not in msg
    assert "foo@example.com" not in msg
    assert "abc.def" not in msg
    assert msg.count("***") >= 3
    assert data["table_id"] == 4


def test_request_id_filter_reads_context():
    from api.tableorder.middlewares.request_id import request_id_ctx

    token = request_id_ctx.set("ctx-1")
    try:
        record = logging.LogRecord("x", logging.INFO, __file__, 0, "m", (), None)
        RequestIdFilter().filter(record)
    finally:
        request_id_ctx.reset(token)
    assert record.req_id == "ctx-1"


def test_malformed_request_id_is_replaced():
    client = TestClient(_make_app())
    resp = client.get("/health", headers={"X-Request-ID": "not a valid id!"})
    rid = resp.headers["X-Request-ID"]
    assert rid != "not a valid id!"
    assert len(rid) == 32
