import json
import logging
from types import SimpleNamespace

from starlette.requests import Request
from starlette.responses import Response

from app.branchflow.middleware.observability import build_request_log_payload

from tests.transfer_helpers import auth_headers, create_user


def test_build_request_log_payload():
    scope = {
        "type": "http",
        "method": "PUT",
        "path": "/transfers/abc/store/items",
        "headers": [],
        "route": SimpleNamespace(path="/transfers/{transfer_id}/store/items"),
    }
    request = Request(scope)
    request.state.trace_id = "trace-1"
    request.state.user_id = "user-1"
    request.state.role = "SELLER"
    request.state.location_id = "loc-1"
    request.state.error_code = None
    response = Response(status_code=200)

    payload = build_request_log_payload(
        request=request,
        response=response,
        latency_ms=12.3456,
        db_time_ms=4.5678,
    )

    assert payload["event"] == "http_request"
    assert payload["trace_id"] == "trace-1"
    assert payload["user_id"] == "user-1"
    assert payload["role"] == "SELLER"
    assert payload["location_id"] == "loc-1"
    assert payload["route"] == "/transfers/{transfer_id}/store/items"
    assert payload["method"] == "PUT"
    assert payload["status_code"] == 200
    assert payload["latency_ms"] == 12.35
    assert payload["db_time_ms"] == 4.57


def test_missing_response_is_logged_as_server_error():
    request = Request({"type": "http", "method": "GET", "path": "/transfers", "headers": []})

    payload = build_request_log_payload(request=request, response=None, latency_ms=1.0, db_time_ms=None)

    assert payload["status_code"] == 500
    assert payload["route"] == "/transfers"
    assert payload["db_time_ms"] is None


def test_request_log_carries_caller_and_error_code(client, db_session, caplog):
    admin = create_user(db_session, role="ADMIN")

    with caplog.at_level(logging.INFO, logger="branchflow.request"):
        response = client.get(
            "/transfers/not-a-uuid",
            headers=auth_headers(admin, **{"X-Trace-ID": "trace-log"}),
        )

    assert response.status_code == 404
    records = [json.loads(record.getMessage()) for record in caplog.records if record.name == "branchflow.request"]
    assert records
    payload = records[-1]
    assert payload["trace_id"] == "trace-log"
    assert payload["user_id"] == str(admin.id)
    assert payload["role"] == "ADMIN"
    assert payload["route"] == "/transfers/{transfer_id}"
    assert payload["error_code"] == "TRANSFER_NOT_FOUND"
    assert payload["db_time_ms"] is not None
