"""Tests for the HTTP payment gateway client."""

import httpx
import pytest

from storefront.checkout import GatewayResponseError, HttpPaymentGateway, parse_verification


def gateway_with(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpPaymentGateway("https://gateway.test/", "sk_test_123", timeout=2.0, client=client), client


class TestParseVerification:
    def test_success_payload(self):
        tx = parse_verification(
            {"status": True, "data": {"status": "success", "amount": 10800, "reference": "pay_1"}},
            "pay_1",
        )
        assert tx.succeeded
        assert tx.amount_minor_units == 10800
        assert tx.reference == "pay_1"

    def test_failed_transaction_is_not_an_error(self):
        tx = parse_verification(
            {"status": True, "data": {"status": "abandoned", "amount": 10800}},
            "pay_1",
        )
        assert not tx.succeeded
        assert tx.reference == "pay_1"

    @pytest.mark.parametrize(
        "payload",
        [
            [],
            {"status": False, "message": "Transaction reference not found"},
            {"status": True},
            {"status": True, "data": {"status": "success"}},
            {"status": True, "data": {"status": "success", "amount": "10800"}},
            {"status": True, "data": {"status": "success", "amount": True}},
            {"status": True, "data": {"amount": 10800}},
        ],
    )
    def test_malformed_payloads(self, payload):
        with pytest.raises(GatewayResponseError):
            parse_verification(payload, "pay_1")


class TestHttpPaymentGateway:
    async def test_calls_verify_endpoint_with_secret(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={"status": True, "data": {"status": "success", "amount": 13500, "reference": "pay_abc"}},
            )

        gateway, client = gateway_with(handler)
        async with client:
            tx = await gateway.verify_transaction("pay_abc")

        assert tx.amount_minor_units == 13500
        [request] = seen
        assert request.method == "GET"
        assert str(request.url) == "https://gateway.test/transaction/verify/pay_abc"
        assert request.headers["Authorization"] == "Bearer sk_test_123"

    async def test_http_error_raises(self):
        gateway, client = gateway_with(lambda request: httpx.Response(502, text="bad gateway"))
        async with client:
            with pytest.raises(httpx.HTTPStatusError):
                await gateway.verify_transaction("pay_abc")

    async def test_non_json_body_raises(self):
        gateway, client = gateway_with(lambda request: httpx.Response(200, text="<html>"))
        async with client:
            with pytest.raises(ValueError):
                await gateway.verify_transaction("pay_abc")

    async def test_timeout_propagates(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        gateway, client = gateway_with(handler)
        async with client:
            with pytest.raises(httpx.TimeoutException):
                await gateway.verify_transaction("pay_abc")
