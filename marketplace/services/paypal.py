"""
PayPal REST client.

Uses the client-credentials OAuth flow and the v2 checkout orders API.
Calls are blocking (requests); routes run them in the threadpool.
"""
import logging
from typing import Any, Dict, Optional

import requests

from ..config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

SANDBOX_URL = "https://api-m.sandbox.paypal.com"
PRODUCTION_URL = "https://api-m.paypal.com"


class PayPalError(Exception):
    """Raised when PayPal rejects a request or cannot be reached."""


class PayPalClient:
    """Thin wrapper over the PayPal checkout endpoints."""

    def __init__(self, client_id: Optional[str], client_secret: Optional[str],
                 environment: str = "sandbox", timeout: float = 15.0):
        self.client_id = client_id
        self.client_secret = client_secret
        self.base_url = PRODUCTION_URL if environment == "production" else SANDBOX_URL
        self.timeout = timeout
        self.session = requests.Session()

    def _access_token(self) -> str:
        if not self.client_id or not self.client_secret:
            raise PayPalError("PayPal credentials are not configured")
        try:
            response = self.session.post(
                f"{self.base_url}/v1/oauth2/token",
                auth=(self.client_id, self.client_secret),
                data={"grant_type": "client_credentials"},
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()["access_token"]
        except (requests.RequestException, KeyError, ValueError) as e:
            logger.error(f"PayPal authentication error: {e}")
            raise PayPalError("Failed to authenticate with PayPal") from e

    def _post(self, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        token = self._access_token()
        response = self.session.post(
            f"{self.base_url}{path}",
            json=payload,
            headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def create_order(self, amount: float, currency: str = "USD",
                     description: str = "Marketplace purchase") -> Dict[str, Any]:
        """Create a checkout order with CAPTURE intent."""
        payload = {
            "intent": "CAPTURE",
            "purchase_units": [{
                "amount": {"currency_code": currency, "value": f"{amount:.2f}"},
                "description": description,
            }],
        }
        try:
            return self._post("/v2/checkout/orders", payload)
        except requests.RequestException as e:
            logger.error(f"PayPal create order error: {e}")
            raise PayPalError("Failed to create PayPal order") from e

    def capture_order(self, paypal_order_id: str) -> Dict[str, Any]:
        try:
            return self._post(f"/v2/checkout/orders/{paypal_order_id}/capture")
        except requests.RequestException as e:
            logger.error(f"PayPal capture payment error: {e}")
            raise PayPalError("Failed to capture PayPal payment") from e


def capture_amounts(capture: Dict[str, Any]) -> Dict[str, float]:
    """
    Extract the captured amount and PayPal fee from a capture response

    Returns:
        Dictionary with "amount" and "fee"
    """
    unit = capture["purchase_units"][0]
    captures = unit.get("payments", {}).get("captures", [])
    first = captures[0] if captures else {}

    amount = first.get("amount", unit.get("amount", {})).get("value", 0)
    fee = first.get("seller_receivable_breakdown", {}).get("paypal_fee", {}).get("value", 0)
    return {"amount": float(amount), "fee": float(fee)}


_client: Optional[PayPalClient] = None


def get_paypal_client() -> PayPalClient:
    """FastAPI dependency returning the shared PayPal client."""
    global _client
    if _client is None:
        settings: Settings = get_settings()
        _client = PayPalClient(
            settings.paypal_client_id,
            settings.paypal_client_secret,
            settings.paypal_environment,
            settings.paypal_timeout_seconds,
        )
    return _client
