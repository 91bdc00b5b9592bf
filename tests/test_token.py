from __future__ import annotations

import jwt
import pytest

import servicejwt._token as token_module
from servicejwt._crypto.hashing import dumps_compact, payload_checksum
from servicejwt._token import TokenIssuer, verify_access_token
from servicejwt.exceptions import ServiceClientError

SERVICE_TOKEN = "testServiceToken"


def test_checksum_matches_node_services() -> None:
    assert (
        payload_checksum({"data": "testData"})
        == "b5118e71a8ed3abbc8c40d4058b0dd54b9410ffd56ef888f602ed10026c46a3a"
    )


def test_issue_signs_checksum_and_iat(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(token_module.time, "time", lambda: 1483228800.5)
    token = TokenIssuer(SERVICE_TOKEN).issue({"data": "testData"})

    decoded = jwt.decode(token, SERVICE_TOKEN, algorithms=["HS256"])
    assert decoded["checksum"] == "b5118e71a8ed3abbc8c40d4058b0dd54b9410ffd56ef888f602ed10026c46a3a"
    assert decoded["iat"] == 1483228800
    assert jwt.get_unverified_header(token)["alg"] == "HS256"


def test_checksum_is_key_order_sensitive_by_default() -> None:
    issuer = TokenIssuer(SERVICE_TOKEN)
    assert issuer.checksum({"a": 1, "b": 2}) != issuer.checksum({"b": 2, "a": 1})


def test_sorted_keys_make_checksum_order_independent() -> None:
    issuer = TokenIssuer(SERVICE_TOKEN, sort_keys=True)
    assert issuer.checksum({"a": 1, "b": 2}) == issuer.checksum({"b": 2, "a": 1})


def test_dumps_compact_matches_json_stringify() -> None:
    assert dumps_compact({"foo": "bär", "n": [1, 2]}) == '{"foo":"bär","n":[1,2]}'


def test_verify_accepts_matching_payload() -> None:
    payload = {"foo": "bar"}
    token = TokenIssuer(SERVICE_TOKEN).issue(payload)
    claims = verify_access_token(token, SERVICE_TOKEN, payload)
    assert claims.checksum == payload_checksum(payload)


def test_verify_rejects_wrong_key() -> None:
    token = TokenIssuer(SERVICE_TOKEN).issue({"foo": "bar"})
    with pytest.raises(ServiceClientError) as exc_info:
        verify_access_token(token, "otherServiceToken", {"foo": "bar"})
    assert exc_info.value.code == "EINVALIDTOKEN"
    assert exc_info.value.status_code == 401


def test_verify_rejects_tampered_payload() -> None:
    token = TokenIssuer(SERVICE_TOKEN).issue({"foo": "bar"})
    with pytest.raises(ServiceClientError, match="checksum") as exc_info:
        verify_access_token(token, SERVICE_TOKEN, {"foo": "baz"})
    assert exc_info.value.code == "EINVALIDTOKEN"
