"""
HTTP gateway adapter - The single request function of the client.

Every backend call goes through HttpGateway.request(), which attaches
the persisted bearer credential, encodes the payload, and turns any
failure into a TransportError carrying the backend's own message.

The gateway only reads the credential store. When a call that carried
the access token is rejected with 401, registered listeners are told
(the session store logs out); the gateway never clears credentials.
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any

import httpx

from src.domain.exceptions import ContractViolation, CredentialRejected, TransportError
from src.domain.ports import ACCESS_TOKEN_KEY, CredentialStore

logger = logging.getLogger(__name__)

GENERIC_ERROR = "An unexpected error occurred."
NETWORK_ERROR = "Could not reach the server. Please check your connection."


class HttpGateway:
    """
    Remote procedure gateway over httpx.AsyncClient.

    Transport-level retry and backoff are left to httpx defaults.
    """

    def __init__(
        self,
        credentials: CredentialStore,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize gateway.

        Args:
            credentials: Store holding the access token (read-only here)
            base_url: Backend root URL, e.g. http://127.0.0.1:8000
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests, ASGI sandbox)
        """
        self._credentials = credentials
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)
        self._rejection_listeners: list[Callable[[], None]] = []

    def on_credential_rejected(self, listener: Callable[[], None]) -> None:
        self._rejection_listeners.append(listener)

    async def request(
        self,
        endpoint: str,
        method: str,
        body: Any = None,
        files: Mapping[str, Any] | None = None,
    ) -> Any:
        """
        Send one request and return the decoded JSON body.

        Args:
            endpoint: Path relative to the base URL
            method: HTTP verb
            body: JSON payload, or form fields when files are given
            files: Multipart file parts

        Returns:
            Decoded JSON, or None for 201/204 responses

        Raises:
            CredentialRejected: 401 on a request that carried a token
            TransportError: Network failure or any other non-2xx response
            ContractViolation: 2xx response whose body is not JSON
        """
        headers = {}
        token = self._credentials.get(ACCESS_TOKEN_KEY)
        if token:
            headers["Authorization"] = f"Bearer {token}"

        kwargs: dict[str, Any] = {"headers": headers}
        if files:
            kwargs["files"] = files
            if body:
                kwargs["data"] = body
        elif body is not None:
            kwargs["json"] = body

        try:
            response = await self._client.request(method, endpoint, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, endpoint, type(e).__name__)
            raise TransportError(NETWORK_ERROR) from e

        if not response.is_success:
            message = _error_message(response)
            logger.info("%s %s -> %d", method, endpoint, response.status_code)
            if response.status_code == 401 and token:
                for listener in list(self._rejection_listeners):
                    listener()
                raise CredentialRejected(message, status_code=401)
            raise TransportError(message, status_code=response.status_code)

        if response.status_code in (201, 204):
            return None

        try:
            return response.json()
        except ValueError as e:
            raise ContractViolation(f"{method} {endpoint} returned a non-JSON body") from e

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpGateway":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


def _error_message(response: httpx.Response) -> str:
    """Message from the body's detail/message field, or a generic fallback."""
    try:
        data = response.json()
    except ValueError:
        return GENERIC_ERROR
    if not isinstance(data, dict):
        return f"Request failed with status {response.status_code}"
    detail = data.get("detail") or data.get("message")
    if isinstance(detail, list):
        # FastAPI-style validation errors
        detail = "; ".join(str(item.get("msg", item)) if isinstance(item, dict) else str(item) for item in detail)
    return str(detail) if detail else f"Request failed with status {response.status_code}"
