"""
StorageClient - bucket operations for Google Cloud Storage
"""

import logging
from typing import List, Optional, Tuple

import httpx

from ._api import JsonApi, TokenProvider, bucket_path, copy_path, split_absolute_name
from ._constants import (
    API_ENDPOINT,
    DEFAULT_ENDPOINT,
    DEFAULT_PAGE_SIZE,
    DEFAULT_UPLOAD_CHUNK_SIZE,
    UPLOAD_CHUNK_GRANULARITY,
)
from ._http import HttpClient
from .acl import Acl, PredefinedAcl
from .bucket import BucketClient
from .error import (
    BucketAlreadyExistsException,
    BucketNotEmptyException,
    BucketNotFoundException,
    NotFoundException,
    TransportException,
)
from .models import BucketInfo, ObjectInfo
from .page import Page, PagedIterable


class StorageClient:
    """
    Client for the bucket namespace of Google Cloud Storage.

    Object operations are reached through ``bucket``, which returns a
    BucketClient for one bucket.

    Example:
        async with StorageClient(project="my-project", token=access_token) as client:
            if not await client.bucket_exists("photos"):
                await client.create_bucket("photos", predefined_acl=PredefinedAcl.PRIVATE)

            bucket = client.bucket("photos")
            await bucket.write_bytes("archive/image.jpg", data, content_type="image/jpeg")
            await client.copy_object("gs://photos/archive/image.jpg", "gs://backup/image.jpg")
    """

    def __init__(
        self,
        project: str,
        token: Optional[str] = None,
        token_provider: Optional[TokenProvider] = None,
        endpoint: str = DEFAULT_ENDPOINT,
        use_ssl: bool = True,
        request_timeout: int = 30,
        max_retries: int = 3,
        upload_chunk_size: int = DEFAULT_UPLOAD_CHUNK_SIZE,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize StorageClient.

        Args:
            project: Project owning the buckets created and listed by this client
            token: OAuth2 access token with the full-control storage scope
            token_provider: Coroutine function returning a fresh access token
                for every request; takes precedence over ``token``
            endpoint: Server address and optional port
            use_ssl: Use HTTPS instead of HTTP
            request_timeout: Request timeout in seconds
            max_retries: Maximum attempts for requests failing to connect
            upload_chunk_size: Chunk size for unknown-length uploads, a
                multiple of 256 KiB
            transport: Custom httpx transport, e.g. ``httpx.MockTransport``
        """
        if upload_chunk_size <= 0 or upload_chunk_size % UPLOAD_CHUNK_GRANULARITY:
            raise ValueError(
                f"upload_chunk_size must be a positive multiple of {UPLOAD_CHUNK_GRANULARITY} bytes."
            )
        self.project = project
        self.endpoint = endpoint
        self.use_ssl = use_ssl
        self.base_url = f"{'https' if use_ssl else 'http'}://{endpoint}"
        self.upload_chunk_size = upload_chunk_size

        self._http = HttpClient(
            self.base_url,
            timeout=request_timeout,
            max_retries=max_retries,
            transport=transport,
        )
        self._api = JsonApi(self._http, token=token, token_provider=token_provider)
        self._logger = logging.getLogger(__name__)

    # Bucket operations

    async def create_bucket(
        self,
        bucket_name: str,
        predefined_acl: Optional[PredefinedAcl] = None,
        acl: Optional[Acl] = None,
    ) -> None:
        """
        Create a bucket.

        When both ``acl`` and ``predefined_acl`` are given, the entries of
        ``acl`` are sent as-is and the server adds the expansion of
        ``predefined_acl``.
        """
        resource = {"name": bucket_name}
        if acl is not None:
            resource["acl"] = acl.to_wire_bucket_acl()
        params = {
            "project": self.project,
            "predefinedAcl": predefined_acl.value if predefined_acl is not None else None,
        }
        try:
            await self._api.request("POST", f"{API_ENDPOINT}/b", params=params, json_data=resource)
        except TransportException as e:
            if e.status_code == 409:
                raise BucketAlreadyExistsException(bucket_name)
            raise
        self._logger.info("[GcStorage][Bucket] created bucket=%s project=%s", bucket_name, self.project)

    async def delete_bucket(self, bucket_name: str) -> None:
        """Delete a bucket. The bucket must be empty."""
        try:
            await self._api.request("DELETE", bucket_path(bucket_name))
        except TransportException as e:
            if e.status_code == 404:
                raise BucketNotFoundException(bucket_name)
            if e.status_code == 409:
                raise BucketNotEmptyException(bucket_name)
            raise
        self._logger.info("[GcStorage][Bucket] deleted bucket=%s", bucket_name)

    async def bucket_exists(self, bucket_name: str) -> bool:
        """Check if a bucket exists."""
        try:
            await self._api.request("GET", bucket_path(bucket_name))
            return True
        except TransportException as e:
            if e.status_code == 404:
                return False
            raise

    async def bucket_info(self, bucket_name: str) -> BucketInfo:
        """Get name and creation time of a bucket."""
        try:
            response = await self._api.request("GET", bucket_path(bucket_name))
        except TransportException as e:
            if e.status_code == 404:
                raise BucketNotFoundException(bucket_name)
            raise
        return BucketInfo._from_resource(response.json())

    def bucket(
        self,
        bucket_name: str,
        default_predefined_object_acl: Optional[PredefinedAcl] = None,
        default_object_acl: Optional[Acl] = None,
    ) -> BucketClient:
        """
        Access object operations of a bucket. Makes no request.

        ``default_predefined_object_acl`` and ``default_object_acl`` are used
        for objects written without ACL arguments. When both are given the
        entries are sent and the server adds the predefined expansion.
        """
        return BucketClient(
            self._api,
            bucket_name,
            default_predefined_object_acl=default_predefined_object_acl,
            default_object_acl=default_object_acl,
            upload_chunk_size=self.upload_chunk_size,
        )

    def list_bucket_names(self) -> PagedIterable[str]:
        """All bucket names of the project, fetched page by page as consumed."""
        return PagedIterable(self._fetch_bucket_names)

    async def page_bucket_names(self, page_size: int = DEFAULT_PAGE_SIZE) -> Page[str]:
        """Fetch the first page of bucket names."""
        return await Page.first(self._fetch_bucket_names, page_size)

    async def _fetch_bucket_names(
        self,
        page_token: Optional[str],
        page_size: int,
    ) -> Tuple[List[str], Optional[str]]:
        params = {
            "project": self.project,
            "maxResults": page_size,
            "pageToken": page_token,
        }
        response = await self._api.request("GET", f"{API_ENDPOINT}/b", params=params)
        data = response.json()
        names = [item["name"] for item in data.get("items", [])]
        return names, data.get("nextPageToken")

    # Object operations

    async def copy_object(self, src: str, dest: str) -> ObjectInfo:
        """
        Copy an object on the server.

        Both ``src`` and ``dest`` are absolute names (``gs://bucket/object``).
        """
        source_bucket, source_object = split_absolute_name(src)
        dest_bucket, dest_object = split_absolute_name(dest)
        path = copy_path(source_bucket, source_object, dest_bucket, dest_object)
        try:
            response = await self._api.request("POST", path, json_data={})
        except TransportException as e:
            if e.status_code == 404:
                raise NotFoundException(f"Cannot copy '{src}' to '{dest}': source object or destination bucket not found.")
            raise

        self._logger.info("[GcStorage][Copy] src=%s dest=%s", src, dest)
        return ObjectInfo._from_resource(response.json())

    async def close(self) -> None:
        """Close the client and cleanup resources."""
        await self._http.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
