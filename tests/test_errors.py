import json
import logging

import pytest

from smartdc.errors import CloudAPIError, ResourceGoneError, TransportError, normalize_error


def test_normalize_error_parses_json_body_on_5xx() -> None:
    body = json.dumps({"code": "InternalError", "message": "boom"})
    err = TransportError(500, "failed", details={"body": body})

    normalized = normalize_error(err)

    assert isinstance(normalized, CloudAPIError)
    assert normalized.code == "InternalError"
    assert normalized.message == "boom"
    assert normalized.status_code == 500


def test_normalize_error_uses_structured_details() -> None:
    err = TransportError(503, "failed", details={"code": "ServiceUnavailable", "message": "busy"})
    normalized = normalize_error(err)
    assert isinstance(normalized, CloudAPIError)
    assert normalized.code == "ServiceUnavailable"


def test_normalize_error_reads_nested_object() -> None:
    err = TransportError(
        500, "failed", details={"object": {"code": "InvalidArgument", "message": "bad name"}}
    )
    normalized = normalize_error(err)
    assert isinstance(normalized, CloudAPIError)
    assert normalized.code == "InvalidArgument"
    assert normalized.message == "bad name"


def test_normalize_error_passes_4xx_through() -> None:
    err = TransportError(404, "not found", details={"code": "ResourceNotFound", "message": "x"})
    assert normalize_error(err) is err


def test_normalize_error_passes_errors_without_details_through() -> None:
    err = TransportError(0, "connection refused")
    assert normalize_error(err) is err
    plain = ValueError("nope")
    assert normalize_error(plain) is plain


def test_normalize_error_logs_invalid_json(caplog: pytest.LogCaptureFixture) -> None:
    err = TransportError(500, "failed", details={"body": "<html>oops</html>"})

    with caplog.at_level(logging.WARNING, logger="smartdc"):
        assert normalize_error(err) is err

    assert "invalid JSON" in caplog.text


def test_resource_gone_error_shape() -> None:
    err = ResourceGoneError("/my/machines/abc")
    assert err.code == "ResourceGone"
    assert err.status_code == 410
    assert "abc" in str(err)
    assert "ResourceGone" in repr(err)
