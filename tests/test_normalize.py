from __future__ import annotations

import pytest

from servicejwt._normalize import normalize_error, response_labels
from servicejwt.exceptions import TransportError


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        ({"statusCode": 404}, (404, 404)),
        ({"statusCode": 400, "error": {"name": "EBADREQUEST"}}, (400, 400)),
        ({"statusCode": 499, "code": "ECONNREFUSED"}, (499, 499)),
        ({"error": {"code": "ECONNREFUSED"}}, (503, "ECONNREFUSED")),
        ({"error": {"code": "ENOTFOUND"}}, (502, "ENOTFOUND")),
        ({"error": {}}, (500, "EUNSPECIFIED")),
        ({"error": {"name": "ESOMETHING", "code": "ECONNREFUSED"}}, (500, "ESOMETHING")),
        ({"statusCode": 503, "error": {"name": "EBUSY"}}, (503, "EBUSY")),
        ({"statusCode": 500}, (500, "ENOERROR")),
        ({"statusCode": 502, "code": "EUPSTREAM"}, (502, "EUPSTREAM")),
        ({"code": "ECONNREFUSED"}, (503, "ECONNREFUSED")),
        ({"code": "ENOTFOUND"}, (502, "ENOTFOUND")),
        ({"code": "ETIMEDOUT"}, (500, "ETIMEDOUT")),
        ({}, (500, "ENOERROR")),
        ({"body": {"code": "EBODY"}}, (500, "EBODY")),
        ({"body": "plain text", "code": "ECONNRESET"}, (500, "ECONNRESET")),
    ],
)
def test_normalize_mapping_shapes(error: dict, expected: tuple) -> None:
    assert normalize_error(error) == expected


def test_normalize_transport_error_with_body() -> None:
    error = TransportError("HTTP 500", name="HTTPError", status_code=500, body={"name": "EDBDOWN"})
    assert normalize_error(error) == (500, "EDBDOWN")


def test_normalize_transport_error_4xx_ignores_body() -> None:
    error = TransportError("HTTP 401", status_code=401, body={"name": "EEXPIRED"})
    assert normalize_error(error) == (401, 401)


def test_normalize_plain_exception() -> None:
    assert normalize_error(RuntimeError("boom")) == (500, "ENOERROR")


def test_response_labels_only_include_known_fields() -> None:
    assert response_labels({"statusCode": 200, "statusMessage": "OK"}) == {
        "status_code": 200,
        "status_message": "OK",
    }
    assert response_labels(RuntimeError("boom")) == {}
