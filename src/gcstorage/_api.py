"""
Authenticated access to the Cloud Storage JSON API
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional, Tuple
from urllib.parse import quote

import httpx

from ._constants import ABSOLUTE_NAME_PREFIX, API_ENDPOINT, UPLOAD_API_ENDPOINT
from ._http import HttpClient
from .error import (
    AuthenticationException,
    InvalidObjectNameException,
    PermissionDeniedException,
    TransportException,
)

TokenProvider = Callable[[], Awaitable[str]]


def bucket_path(bucket_name: str) -> str:
    return f"{API_ENDPOINT}/b/{quote(bucket_name, safe='')}"


def object_path(bucket_name: str, object_name: str) -> str:
    return f"{bucket_path(bucket_name)}/o/{quote(object_name, safe='')}"


def upload_path(bucket_name: str) -> str:
    return f"{UPLOAD_API_ENDPOINT}/b/{quote(bucket_name, safe='')}/o"


def copy_path(source_bucket: str, source_object: str, dest_bucket: str, dest_object: str) -> str:
    return (
        f"{object_path(source_bucket, source_object)}/copyTo"
        f"/b/{quote(dest_bucket, safe='')}/o/{quote(dest_object, safe='')}"
    )


def split_absolute_name(absolute_name: str) -> Tuple[str, str]:
    """Split ``gs://bucket/object`` into bucket and object name."""
    if not absolute_name.startswith(ABSOLUTE_NAME_PREFIX):
        raise InvalidObjectNameException(
            absolute_name, f"is not absolute (expected '{ABSOLUTE_NAME_PREFIX}bucket/object')"
        )
    bucket_name, _, object_name = absolute_name[len(ABSOLUTE_NAME_PREFIX):].partition("/")
    if not bucket_name or not object_name:
        raise InvalidObjectNameException(absolute_name, "must name both a bucket and an object")
    return bucket_name, object_name


def _error_details(response: httpx.Response) -> Tuple[Optional[str], Optional[str]]:
    """Extract message and reason from a JSON API error body, if any."""
    try:
        body = response.json()
    except ValueError:
        return None, None
    error = body.get("error") if isinstance(body, dict) else None
    if not isinstance(error, dict):
        return None, None
    reason = None
    errors = error.get("errors") or []
    if errors and isinstance(errors[0], dict):
        reason = errors[0].get("reason")
    return error.get("message"), reason


class JsonApi:
    """
    Sends authenticated requests and maps HTTP errors to SDK exceptions.

    401 raises AuthenticationException, 403 raises PermissionDeniedException
    and every other error status raises TransportException carrying the
    status code, for callers to translate into domain exceptions.
    """

    def __init__(
        self,
        http: HttpClient,
        token: Optional[str] = None,
        token_provider: Optional[TokenProvider] = None,
    ):
        self._http = http
        self._token = token
        self._token_provider = token_provider

    async def _get_auth_token(self) -> Optional[str]:
        """Return the bearer token, asking the provider when one is configured."""
        if self._token_provider is None:
            return self._token
        try:
            token = await self._token_provider()
        except Exception as ex:
            raise AuthenticationException(f"Authentication failed: {str(ex)}") from ex
        if not token:
            raise AuthenticationException("Token provider returned no token.")
        return token

    async def _headers(self, headers: Optional[Dict[str, str]]) -> Dict[str, str]:
        headers = dict(headers or {})
        token = await self._get_auth_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[Dict] = None,
        content: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """Make an authenticated request; ``path`` may also be an absolute URL."""
        headers = await self._headers(headers)
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        if method == "GET":
            response = await self._http.get(path, params=params, headers=headers)
        elif method == "POST":
            response = await self._http.post(
                path, params=params, json=json_data, content=content, headers=headers
            )
        elif method == "PUT":
            response = await self._http.put(path, content=content, headers=headers)
        elif method == "PATCH":
            response = await self._http.patch(path, params=params, json=json_data, headers=headers)
        elif method == "DELETE":
            response = await self._http.delete(path, headers=headers)
        else:
            raise ValueError(f"Unsupported HTTP method: {method}")

        self._raise_for_status(response)
        return response

    @asynccontextmanager
    async def stream(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> AsyncIterator[httpx.Response]:
        """Make an authenticated request whose body is read incrementally."""
        headers = await self._headers(headers)
        async with self._http.stream(method, path, params=params, headers=headers) as response:
            if response.status_code >= 400:
                await response.aread()
                self._raise_for_status(response)
            yield response

    def _raise_for_status(self, response: httpx.Response) -> None:
        if response.status_code < 400:
            return
        message, reason = _error_details(response)
        if response.status_code == 401:
            raise AuthenticationException(message or "Request was not authenticated.")
        if response.status_code == 403:
            raise PermissionDeniedException(message or "Permission denied.")
        if message is None:
            message = f"Request failed with status {response.status_code}"
            if response.status_code == 404:
                message = "Resource not found"
        raise TransportException(message, response.status_code, reason)
