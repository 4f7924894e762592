"""
PayPal Orders v2 REST client
Client Credentials token exchange, order creation and order lookup
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from config.settings import settings
from utils.errors import ConfigurationError, UpstreamRequestError

logger = logging.getLogger(__name__)


class PayPalClient:
    """
    Thin async wrapper over the PayPal REST API.

    Every operation performs its own token exchange; tokens are never cached
    between calls. Nothing is retried.
    """

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        api_base: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            client_id: PayPal REST app client id
            client_secret: PayPal REST app secret
            api_base: https://api-m.paypal.com or the sandbox host
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.api_base,
            timeout=self.timeout,
            transport=self._transport,
        )

    def _require_credentials(self) -> None:
        if not self.client_id or not self.client_secret:
            logger.error("PayPal credentials not configured")
            raise ConfigurationError("PayPal credentials not configured")

    async def _send(self, client: httpx.AsyncClient, method: str, url: str, action: str, **kwargs) -> Dict[str, Any]:
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            logger.error(f"PayPal {action} request failed: {e}")
            raise UpstreamRequestError(f"Failed to {action}") from e

        if not response.is_success:
            logger.error(f"PayPal {action} error {response.status_code}: {response.text}")
            raise UpstreamRequestError(
                f"Failed to {action}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"PayPal {action} returned invalid JSON: {response.text}")
            raise UpstreamRequestError(f"Failed to {action}", status_code=response.status_code, body=response.text) from e

    async def _get_access_token(self, client: httpx.AsyncClient) -> str:
        """Exchange client credentials for a short-lived bearer token."""
        self._require_credentials()
        token_data = await self._send(
            client,
            "POST",
            "/v1/oauth2/token",
            "get PayPal access token",
            auth=(self.client_id, self.client_secret),
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            data={"grant_type": "client_credentials"},
        )
        access_token = token_data.get("access_token")
        if not access_token:
            raise UpstreamRequestError("PayPal token response did not include an access_token")
        logger.info("Got PayPal access token")
        return access_token

    async def create_order(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a checkout order.

        Args:
            payload: Orders v2 request body (intent, purchase_units, application_context)

        Returns:
            The provider's order resource (id, status, links)
        """
        async with self._client() as client:
            access_token = await self._get_access_token(client)
            order = await self._send(
                client,
                "POST",
                "/v2/checkout/orders",
                "create PayPal order",
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Content-Type": "application/json",
                },
                json=payload,
            )
        logger.info(f"Created PayPal order: {order.get('id')}")
        return order

    async def get_order(self, order_id: str) -> Dict[str, Any]:
        """Fetch an order by id with a freshly exchanged token."""
        async with self._client() as client:
            access_token = await self._get_access_token(client)
            order = await self._send(
                client,
                "GET",
                # Encoded as a single segment so the id cannot redirect the lookup
                f"/v2/checkout/orders/{quote(order_id, safe='')}",
                "look up PayPal order",
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Content-Type": "application/json",
                },
            )
        logger.info(f"PayPal order {order_id} status: {order.get('status')}")
        return order


def find_link(order: Dict[str, Any], rel: str) -> Optional[str]:
    """Return the href of the first HATEOAS link with the given rel, if any."""
    for link in order.get("links") or []:
        if link.get("rel") == rel:
            return link.get("href")
    return None


def get_paypal_client() -> PayPalClient:
    """Dependency returning a client built from application settings."""
    return PayPalClient(
        client_id=settings.paypal_client_id,
        client_secret=settings.paypal_secret_key,
        api_base=settings.paypal_api_base,
        timeout=settings.http_timeout_seconds,
    )
