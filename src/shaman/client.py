"""Synchronous client for the Shaman record API."""

import logging
from typing import Any, BinaryIO, List, Optional
from urllib.parse import quote

import httpx

from shaman.api.models import FullOption, Resource
from shaman.core.codec import (
    add_query_options,
    decode_api_error,
    decode_json,
    encode_json,
    to_resource,
    to_resources,
)
from shaman.core.config import DEFAULT_AUTH_HEADER
from shaman.utils.exceptions import ApiResponseError, TransportError

logger = logging.getLogger(__name__)

RECORDS = "/records"
DEFAULT_TIMEOUT = 10.0


class ShamanClient:
    """
    Client mirroring the record API routes.

    Every request carries the shared token and a JSON content type. Server
    refusals raise ApiResponseError with the server's message; failures to
    reach the server raise TransportError.

    Args:
        host: Base URL of the API, e.g. ``https://127.0.0.1:1632``
        token: Shared secret sent on every request
        timeout: Per-request timeout in seconds
        auth_header: Name of the header carrying the token
        verify: Verify the server certificate (disable for self-signed)
        http_client: Preconfigured httpx client to send requests with
    """

    def __init__(
        self,
        host: str,
        token: str,
        timeout: float = DEFAULT_TIMEOUT,
        auth_header: str = DEFAULT_AUTH_HEADER,
        verify: bool = True,
        http_client: Optional[httpx.Client] = None,
    ):
        self.host = host.rstrip("/")
        self.token = token
        self.auth_header = auth_header
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(timeout=timeout, verify=verify)

    def __enter__(self) -> "ShamanClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            self._http.close()

    # --- record operations

    def get_records(self, options: Optional[FullOption] = None) -> List[Resource]:
        path = add_query_options(RECORDS, options)

        return to_resources(self.request_json("GET", path))

    def get_record(self, domain: str) -> Resource:
        return to_resource(self.request_json("GET", self._record_path(domain)))

    def add_record(self, resource: Resource) -> Resource:
        return to_resource(self.request_json("POST", RECORDS, resource))

    def update_record(self, resource: Resource) -> Resource:
        path = self._record_path(resource.domain)

        return to_resource(self.request_json("PUT", path, resource))

    def update_answers(self, resources: List[Resource]) -> List[Resource]:
        return to_resources(self.request_json("PUT", RECORDS, resources))

    def delete_record(self, domain: str) -> None:
        self.request_json("DELETE", self._record_path(domain))

    def export_records(
        self, sink: BinaryIO, options: Optional[FullOption] = None
    ) -> int:
        """Stream the raw JSON record list into sink. Returns bytes written."""
        return self.stream("GET", add_query_options(RECORDS, options), sink)

    # --- request plumbing

    @staticmethod
    def _record_path(domain: str) -> str:
        return f"{RECORDS}/{quote(domain, safe='')}"

    def new_request(
        self, method: str, path: str, payload: Any = None
    ) -> httpx.Request:
        """Build an authenticated JSON request for path."""
        content = encode_json(payload) if payload is not None else b""
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            self.auth_header: self.token,
        }

        try:
            return self._http.build_request(
                method, self.host + path, content=content, headers=headers
            )
        except (httpx.HTTPError, httpx.InvalidURL, UnicodeEncodeError) as e:
            raise TransportError(str(e)) from e

    def _send(self, request: httpx.Request, stream: bool = False) -> httpx.Response:
        try:
            response = self._http.send(request, stream=stream)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug(f"{request.method} {request.url} failed: {e}")
            raise TransportError(str(e)) from e

        if response.is_success:
            return response

        try:
            body = response.read()
        except httpx.HTTPError as e:
            raise TransportError(str(e)) from e
        finally:
            response.close()

        error = decode_api_error(body)
        raise ApiResponseError(error.error, response.status_code)

    def request_json(self, method: str, path: str, payload: Any = None) -> Any:
        """Send a request and return the decoded JSON success body."""
        response = self._send(self.new_request(method, path, payload))

        return decode_json(response.content)

    def stream(
        self, method: str, path: str, sink: BinaryIO, payload: Any = None
    ) -> int:
        """Send a request and copy the raw success body into sink."""
        response = self._send(self.new_request(method, path, payload), stream=True)
        written = 0

        try:
            for chunk in response.iter_bytes():
                sink.write(chunk)
                written += len(chunk)
        except httpx.HTTPError as e:
            raise TransportError(str(e)) from e
        finally:
            response.close()

        return written
