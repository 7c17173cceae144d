"""Shared plumbing for providers that speak JSON over HTTPS."""

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from polydns.errors import InvalidConfiguration
from polydns.providers.base import DNSProvider

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class VendorError(Exception):
    """A vendor answered successfully at the HTTP level but reported failure."""


class JSONAPIProvider(DNSProvider):
    """Base for providers backed by an ``httpx.Client`` with bearer auth.

    No client is created when the token option is missing; every operation
    then raises InvalidConfiguration before touching the network.
    """

    BASE_URL = ""
    TOKEN_OPTION = "api_token"

    TRANSPORT_ERRORS = (httpx.RequestError,)
    REJECTION_ERRORS = (
        httpx.HTTPStatusError,
        VendorError,
        AttributeError,
        KeyError,
        TypeError,
        ValueError,
    )

    def __init__(
        self,
        config: Mapping[str, Any],
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the provider.

        Args:
            config: Provider configuration
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        super().__init__(config)
        self.client: httpx.Client | None = None

        token = self.config.get(self.TOKEN_OPTION)
        if token:
            self.client = httpx.Client(
                base_url=self.BASE_URL,
                headers={
                    "Authorization": f"Bearer {token}",
                    "Accept": "application/json",
                    "Content-Type": "application/json",
                },
                timeout=timeout,
                transport=transport,
            )

    def close(self) -> None:
        if self.client is not None:
            self.client.close()

    def _http(self) -> httpx.Client:
        if self.client is None:
            raise InvalidConfiguration(self.name, self.TOKEN_OPTION)
        return self.client

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        """Send a request and return the decoded JSON body ({} when empty)."""
        client = self._http()
        logger.debug("%s %s %s", self.name, method, path)
        response = client.request(method, path, **kwargs)
        response.raise_for_status()

        if response.status_code == 204 or not response.content:
            return {}

        body = response.json()
        if not isinstance(body, dict):
            raise VendorError(f"expected a JSON object, got {type(body).__name__}")
        return body

    def _vendor_message(self, body: Any) -> str:
        """Extract the human readable failure message from an error body."""
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return ""

    def _describe_error(self, error: BaseException) -> str:
        if isinstance(error, httpx.HTTPStatusError):
            response = error.response
            try:
                message = self._vendor_message(response.json())
            except ValueError:
                message = ""
            detail = f"HTTP {response.status_code}"
            if response.reason_phrase:
                detail += f" {response.reason_phrase}"
            return f"{detail}: {message}" if message else detail
        if isinstance(error, httpx.TimeoutException):
            return f"request timed out ({type(error).__name__})"
        if isinstance(error, httpx.RequestError):
            return f"{type(error).__name__}: {error}"
        if isinstance(error, VendorError):
            return str(error)
        return super()._describe_error(error)
