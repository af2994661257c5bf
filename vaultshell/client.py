"""
HTTP client for the local vault backend.

Every call opens its own AsyncClient so it can run on whichever event loop
the calling worker thread owns.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from . import config
from .errors import BackendRejection, ErrorResponse, TransportFailure
from .policy import MasterCredential

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackendResponse:
    """Raw backend reply: status code plus decoded JSON body, if any."""
    status_code: int
    body: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


def error_response_from(response: BackendResponse) -> ErrorResponse:
    """Build the typed error shape from a non-success reply."""
    message = None
    if isinstance(response.body, dict):
        candidate = response.body.get("message")
        if isinstance(candidate, str) and candidate:
            message = candidate
    return ErrorResponse(status_code=response.status_code, message=message)


class BackendClient:
    """Typed access to the backend's HTTP contract."""

    def __init__(self, base_url: str, timeout: float = config.REQUEST_TIMEOUT_SECONDS,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self._transport = transport

    async def _request(self, method: str, path: str, payload: Optional[dict] = None) -> BackendResponse:
        try:
            async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout,
                                         transport=self._transport) as client:
                response = await client.request(method, path, json=payload)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} did not reach the backend: {e}")
            raise TransportFailure(str(e)) from e

        logger.debug(f"{method} {path} -> HTTP {response.status_code}")
        return BackendResponse(status_code=response.status_code, body=_decode_body(response))

    async def _request_ok(self, method: str, path: str, payload: Optional[dict] = None) -> BackendResponse:
        response = await self._request(method, path, payload)
        if not response.ok:
            raise BackendRejection(error_response_from(response))
        return response

    async def init_db(self) -> BackendResponse:
        """
        Provision the backend data store. Safe to call on every activation.

        Raises:
            TransportFailure: If the backend could not be reached
            BackendRejection: If the backend answered with a non-2xx status
        """
        return await self._request_ok("POST", config.ENDPOINT_INIT_DB)

    async def check_setup_complete(self) -> bool:
        """
        Ask the backend whether a master password has been stored.

        Raises:
            TransportFailure: If the backend could not be reached or the reply
                does not carry a boolean setup_complete
            BackendRejection: If the backend answered with a non-2xx status
        """
        response = await self._request_ok("GET", config.ENDPOINT_CHECK_SETUP)
        if not isinstance(response.body, dict):
            raise TransportFailure("Setup status reply is not a JSON object")
        setup_complete = response.body.get("setup_complete")
        if not isinstance(setup_complete, bool):
            raise TransportFailure(f"Setup status reply has no boolean setup_complete: {setup_complete!r}")
        return setup_complete

    async def add_master_password(self, credential: MasterCredential) -> BackendResponse:
        """
        Submit the hashed master credential.

        Raises:
            TransportFailure: If the backend could not be reached
            BackendRejection: If the backend answered with a non-2xx status
        """
        return await self._request_ok("POST", config.ENDPOINT_ADD_MASTER_PASSWORD,
                                      credential.to_payload())
