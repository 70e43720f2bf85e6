import logging
from typing import Any, Callable
from uuid import uuid4

import httpx

from square_billing.core.config import settings
from square_billing.core.errors import (
    CatalogError,
    RefundError,
    RemoteNotFoundError,
    RemoteTransientError,
)

logger = logging.getLogger(__name__)

# Collaborator shapes consumed by the engines
RemoteSubscriptionLookup = Callable[[str], dict[str, Any]]
RemotePaymentRefund = Callable[[str, int, str, str | None], dict[str, Any]]


def _idempotency_key() -> str:
    return uuid4().hex


def _error_detail(body: Any) -> str:
    if isinstance(body, dict):
        errors = body.get("errors") or []
        if errors and isinstance(errors[0], dict):
            return errors[0].get("detail") or errors[0].get("code") or "Square API error"
    return "Square API error"


# ---------------------------
# catalog objects
# ---------------------------

def base_plan_object(name: str, description: str | None = None) -> dict[str, Any]:
    plan_data: dict[str, Any] = {"name": name}
    if description:
        plan_data["description"] = description
    return {
        "type": "SUBSCRIPTION_PLAN",
        # temporary client-side id, Square replaces it
        "id": "#" + name.replace(" ", "_"),
        "subscription_plan_data": plan_data,
    }


def plan_variation_object(
    base_plan_id: str,
    name: str,
    cadence: str,
    amount: int,
    currency: str = "USD",
) -> dict[str, Any]:
    return {
        "type": "SUBSCRIPTION_PLAN_VARIATION",
        "id": f"#{base_plan_id}_{name.replace(' ', '_')}",
        "subscription_plan_variation_data": {
            "name": name,
            "phases": [
                {
                    "cadence": cadence,
                    "pricing": {
                        "type": "STATIC",
                        "price_money": {"amount": amount, "currency": currency},
                    },
                }
            ],
            "subscription_plan_id": base_plan_id,
        },
    }


class SquareClient:
    """
    Thin synchronous Square REST client.

    Only the calls the billing core needs: subscription lookup, payment refund
    and catalog creation. No retries here; callers decide when to try again.
    """

    def __init__(
        self,
        access_token: str | None = None,
        api_url: str | None = None,
        *,
        version: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        token = access_token if access_token is not None else settings.square_access_token
        if not token:
            raise ValueError("Square access token is not set in configuration.")

        self.api_url = (api_url or settings.square_api_url).rstrip("/")
        self.http = httpx.Client(
            base_url=self.api_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Square-Version": version or settings.square_version,
                "Content-Type": "application/json",
            },
            timeout=timeout or settings.square_timeout_seconds,
            transport=transport,
        )

    def close(self) -> None:
        self.http.close()

    def __enter__(self) -> "SquareClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _request(self, method: str, path: str, payload: dict[str, Any] | None = None) -> tuple[int, dict[str, Any]]:
        """Returns (status_code, json). Network failures raise RemoteTransientError."""
        try:
            r = self.http.request(method, path, json=payload)
        except httpx.HTTPError as e:
            logger.error("Square API request failed: %s %s: %s", method, path, e)
            raise RemoteTransientError(f"Square API unavailable: {e}") from e

        try:
            body = r.json() if r.content else {}
        except ValueError:
            body = {"raw": r.text}
        return r.status_code, body

    # ---------------------------
    # subscriptions
    # ---------------------------

    def get_subscription(self, subscription_id: str) -> dict[str, Any]:
        status, body = self._request("GET", f"/subscriptions/{subscription_id}")
        if status == 404:
            raise RemoteNotFoundError(f"Subscription {subscription_id} not found", status, body)
        if status != 200:
            logger.error("Square API error (%s): %s", status, body)
            raise RemoteTransientError(_error_detail(body), status, body)
        return body.get("subscription") or {}

    # ---------------------------
    # payments
    # ---------------------------

    def refund_payment(
        self,
        payment_id: str,
        amount: int,
        currency: str = "USD",
        reason: str | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "idempotency_key": _idempotency_key(),
            "payment_id": payment_id,
            "amount_money": {"amount": amount, "currency": currency},
        }
        if reason:
            payload["reason"] = reason

        try:
            status, body = self._request("POST", "/refunds", payload)
        except RemoteTransientError as e:
            raise RefundError(str(e)) from e

        if status not in (200, 201):
            raise RefundError(_error_detail(body), status, body)
        return body.get("refund") or {}

    # ---------------------------
    # catalog
    # ---------------------------

    def _upsert_catalog_object(self, obj: dict[str, Any]) -> str:
        payload = {"idempotency_key": _idempotency_key(), "object": obj}
        try:
            status, body = self._request("POST", "/catalog/object", payload)
        except RemoteTransientError as e:
            raise CatalogError(str(e)) from e

        if status not in (200, 201):
            raise CatalogError(_error_detail(body), status, body)

        object_id = (body.get("catalog_object") or {}).get("id")
        if not object_id:
            raise CatalogError("Square response did not include a catalog object id", status, body)
        return object_id

    def create_base_plan(self, name: str, description: str | None = None) -> str:
        return self._upsert_catalog_object(base_plan_object(name, description))

    def create_plan_variation(
        self,
        base_plan_id: str,
        name: str,
        cadence: str,
        amount: int,
        currency: str = "USD",
    ) -> str:
        return self._upsert_catalog_object(
            plan_variation_object(base_plan_id, name, cadence, amount, currency)
        )
