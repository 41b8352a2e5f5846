"""
Payment gateway client — server-side transaction verification.

The gateway's word is authoritative for "was this paid, and how much".
Client-side payment callbacks are never trusted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GatewayTransaction:
    reference: str
    status: str
    amount_minor_units: int

    @property
    def succeeded(self) -> bool:
        return self.status == "success"


class GatewayResponseError(Exception):
    """The gateway answered, but not with a usable verification payload."""


class PaymentGateway(Protocol):
    async def verify_transaction(self, reference: str) -> GatewayTransaction: ...


def parse_verification(payload: Any, reference: str) -> GatewayTransaction:
    """
    Parse a verification body:

        {"status": true, "data": {"status": "success", "amount": 10800, "reference": "..."}}
    """
    if not isinstance(payload, dict):
        raise GatewayResponseError("verification payload is not an object")
    if payload.get("status") is not True:
        raise GatewayResponseError(str(payload.get("message") or "verification rejected"))

    data = payload.get("data")
    if not isinstance(data, dict):
        raise GatewayResponseError("verification payload has no data")

    status = data.get("status")
    amount = data.get("amount")
    if not isinstance(status, str):
        raise GatewayResponseError("transaction status missing")
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise GatewayResponseError("transaction amount missing or not an integer")

    return GatewayTransaction(
        reference=str(data.get("reference") or reference),
        status=status,
        amount_minor_units=amount,
    )


class HttpPaymentGateway:
    """
    Paystack-style verification over HTTP.

    Pass a shared httpx.AsyncClient to reuse connections; otherwise a
    client is opened per call.
    """

    def __init__(
        self,
        base_url: str,
        secret_key: str,
        *,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._secret_key = secret_key
        self._timeout = timeout
        self._client = client

    async def verify_transaction(self, reference: str) -> GatewayTransaction:
        if self._client is not None:
            return await self._verify(self._client, reference)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await self._verify(client, reference)

    async def _verify(self, client: httpx.AsyncClient, reference: str) -> GatewayTransaction:
        url = f"{self._base_url}/transaction/verify/{quote(reference, safe='')}"
        response = await client.get(
            url,
            headers={"Authorization": f"Bearer {self._secret_key}"},
            timeout=self._timeout,
        )
        response.raise_for_status()
        transaction = parse_verification(response.json(), reference)
        logger.debug(
            "gateway verified %s: status=%s amount=%d",
            reference,
            transaction.status,
            transaction.amount_minor_units,
        )
        return transaction


__all__ = (
    "GatewayTransaction",
    "GatewayResponseError",
    "PaymentGateway",
    "parse_verification",
    "HttpPaymentGateway",
)
