"""Tests for webhook signature verification."""

import pytest
from fastapi import HTTPException
from starlette.requests import Request

from inkstudio.webhook_security import (
    compute_hmac_sha256,
    constant_time_compare,
    create_webhook_signature,
    verify_cal_webhook,
)

SECRET = "whsec_test"
BODY = b'{"triggerEvent":"BOOKING_CREATED"}'


def make_request(body: bytes, headers: dict) -> Request:
    async def receive():
        return {"type": "http.request", "body": body, "more_body": False}

    scope = {
        "type": "http",
        "method": "POST",
        "path": "/",
        "query_string": b"",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
    }
    return Request(scope, receive)


class TestPrimitives:
    def test_constant_time_compare(self):
        assert constant_time_compare("abc", "abc")
        assert not constant_time_compare("abc", "abd")
        assert not constant_time_compare("", "")
        assert not constant_time_compare(None, "abc")

    def test_generic_signature_is_bare_hex(self):
        assert create_webhook_signature(SECRET, BODY) == compute_hmac_sha256(SECRET, BODY)


class TestCalSignature:
    @pytest.mark.asyncio
    async def test_valid_prefixed_signature(self):
        request = make_request(BODY, {"X-Cal-Signature-256": create_webhook_signature(SECRET, BODY, "cal")})

        is_valid, body = await verify_cal_webhook(request, SECRET)
        assert is_valid is True
        assert body == BODY

    @pytest.mark.asyncio
    async def test_valid_bare_signature(self):
        request = make_request(BODY, {"X-Cal-Signature-256": compute_hmac_sha256(SECRET, BODY)})

        is_valid, _ = await verify_cal_webhook(request, SECRET)
        assert is_valid is True

    @pytest.mark.asyncio
    async def test_tampered_body_rejected(self):
        signature = create_webhook_signature(SECRET, BODY, "cal")
        request = make_request(BODY + b" ", {"X-Cal-Signature-256": signature})

        with pytest.raises(HTTPException) as exc_info:
            await verify_cal_webhook(request, SECRET)
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_missing_header_without_raising(self):
        is_valid, body = await verify_cal_webhook(make_request(BODY, {}), SECRET, raise_on_failure=False)
        assert is_valid is False
        assert body == BODY
