"""
BucketClient - object operations within one bucket
"""

import json
import logging
import secrets
from functools import partial
from typing import AsyncIterator, Dict, List, Optional, Tuple

import httpx

from ._api import JsonApi, bucket_path, object_path, upload_path
from ._constants import (
    ABSOLUTE_NAME_PREFIX,
    DEFAULT_CONTENT_TYPE,
    DEFAULT_PAGE_SIZE,
    DEFAULT_UPLOAD_CHUNK_SIZE,
    DIRECTORY_DELIMITER,
    RESUME_INCOMPLETE,
)
from .acl import Acl, PredefinedAcl
from .error import (
    BucketNotFoundException,
    ObjectNotFoundException,
    TransportException,
)
from .models import BucketEntry, DirectoryEntry, ObjectEntry, ObjectInfo, ObjectMetadata
from .page import Page, PagedIterable
from .upload import ObjectSink


def _committed_offset(range_header: Optional[str]) -> int:
    # "bytes=0-N" names the last persisted byte; no header means none were.
    if not range_header:
        return 0
    return int(range_header.rpartition("-")[2]) + 1


class BucketClient:
    """
    Access to the objects of one bucket.

    Instances are created with ``StorageClient.bucket``. Objects are addressed
    by their name relative to the bucket.

    Every object created through a BucketClient gets an ACL. When a write
    passes no ACL and no predefined ACL, the defaults given to
    ``StorageClient.bucket`` are used; without those the bucket's own default
    object ACL applies on the server.

    Example:
        bucket = client.bucket("photos", default_predefined_object_acl=PredefinedAcl.PUBLIC_READ)
        info = await bucket.write_bytes("cam-1/img.jpg", data, content_type="image/jpeg")
        async for entry in bucket.list(prefix="cam-1/"):
            print(entry.name, entry.is_directory)
    """

    def __init__(
        self,
        api: JsonApi,
        bucket_name: str,
        default_predefined_object_acl: Optional[PredefinedAcl] = None,
        default_object_acl: Optional[Acl] = None,
        upload_chunk_size: int = DEFAULT_UPLOAD_CHUNK_SIZE,
    ):
        self._api = api
        self._bucket_name = bucket_name
        self._default_predefined_object_acl = default_predefined_object_acl
        self._default_object_acl = default_object_acl
        self._upload_chunk_size = upload_chunk_size
        self._logger = logging.getLogger(__name__)

    @property
    def bucket_name(self) -> str:
        return self._bucket_name

    def absolute_object_name(self, object_name: str) -> str:
        """Absolute name of an object in this bucket, including the gs:// prefix."""
        return f"{ABSOLUTE_NAME_PREFIX}{self._bucket_name}/{object_name}"

    # Writing

    def write(
        self,
        object_name: str,
        length: Optional[int] = None,
        metadata: Optional[ObjectMetadata] = None,
        acl: Optional[Acl] = None,
        predefined_acl: Optional[PredefinedAcl] = None,
        content_type: Optional[str] = None,
    ) -> ObjectSink:
        """
        Create or replace an object, returning a sink for its content.

        ``acl`` and ``content_type`` take precedence over the same values in
        ``metadata``. When ``acl`` and ``predefined_acl`` are both given, the
        entries are sent as-is and the server adds the expansion of the
        predefined ACL. The content type defaults to
        ``application/octet-stream``.

        With ``length`` the content is sent in a single request of that size,
        and the sink rejects any other amount of data. Without it a resumable
        upload is used, sent in chunks of the configured chunk size.
        """
        if metadata is None:
            metadata = ObjectMetadata()
        metadata = metadata.replace(acl=acl, content_type=content_type)
        if metadata.acl is None and predefined_acl is None:
            metadata = metadata.replace(acl=self._default_object_acl)
            predefined_acl = self._default_predefined_object_acl
        if metadata.content_type is None:
            metadata = metadata.replace(content_type=DEFAULT_CONTENT_TYPE)

        resource = metadata._to_resource()
        resource["name"] = object_name
        params = {"predefinedAcl": predefined_acl.value if predefined_acl is not None else None}

        if length is not None:
            transfer = partial(self._upload_multipart, resource, params, length)
        else:
            transfer = partial(self._upload_resumable, resource, params)
        return ObjectSink(transfer, length=length, description=self.absolute_object_name(object_name))

    async def write_bytes(
        self,
        object_name: str,
        data: bytes,
        metadata: Optional[ObjectMetadata] = None,
        acl: Optional[Acl] = None,
        predefined_acl: Optional[PredefinedAcl] = None,
        content_type: Optional[str] = None,
    ) -> ObjectInfo:
        """Create or replace an object with the given content."""
        sink = self.write(
            object_name,
            length=len(data),
            metadata=metadata,
            acl=acl,
            predefined_acl=predefined_acl,
            content_type=content_type,
        )
        await sink.write(data)
        return await sink.close()

    async def _upload_multipart(
        self,
        resource: Dict,
        params: Dict,
        length: int,
        chunks: AsyncIterator[bytes],
    ) -> ObjectInfo:
        """Send resource and content as one multipart/related request."""
        boundary = secrets.token_hex(16)
        preamble = (
            f"--{boundary}\r\n"
            "Content-Type: application/json; charset=UTF-8\r\n\r\n"
            f"{json.dumps(resource)}\r\n"
            f"--{boundary}\r\n"
            f"Content-Type: {resource['contentType']}\r\n\r\n"
        ).encode("utf-8")
        epilogue = f"\r\n--{boundary}--\r\n".encode("utf-8")

        async def body():
            yield preamble
            async for chunk in chunks:
                yield chunk
            yield epilogue

        headers = {
            "Content-Type": f"multipart/related; boundary={boundary}",
            "Content-Length": str(len(preamble) + length + len(epilogue)),
        }
        try:
            response = await self._api.request(
                "POST",
                upload_path(self._bucket_name),
                params=dict(params, uploadType="multipart"),
                content=body(),
                headers=headers,
            )
        except TransportException as e:
            if e.status_code == 404:
                raise BucketNotFoundException(self._bucket_name)
            raise

        info = ObjectInfo._from_resource(response.json())
        self._log_upload(info, "multipart")
        return info

    async def _upload_resumable(
        self,
        resource: Dict,
        params: Dict,
        chunks: AsyncIterator[bytes],
    ) -> ObjectInfo:
        """Open a resumable session and send the content chunk by chunk."""
        try:
            response = await self._api.request(
                "POST",
                upload_path(self._bucket_name),
                params=dict(params, uploadType="resumable", name=resource["name"]),
                json_data=resource,
                headers={"X-Upload-Content-Type": resource["contentType"]},
            )
        except TransportException as e:
            if e.status_code == 404:
                raise BucketNotFoundException(self._bucket_name)
            raise

        session_url = response.headers.get("Location")
        if not session_url:
            raise TransportException("Resumable upload session was not created.", response.status_code)

        buffer = bytearray()
        offset = 0
        async for chunk in chunks:
            buffer += chunk
            while len(buffer) >= self._upload_chunk_size:
                piece = bytes(buffer[:self._upload_chunk_size])
                response = await self._put_chunk(session_url, piece, offset, total=None)
                offset = self._advance(buffer, offset, len(piece), response)

        # The server may keep only part of the last piece; resend the rest.
        total = offset + len(buffer)
        while True:
            response = await self._put_chunk(session_url, bytes(buffer), offset, total=total)
            if response.status_code != RESUME_INCOMPLETE:
                break
            offset = self._advance(buffer, offset, len(buffer), response)
        info = ObjectInfo._from_resource(response.json())
        self._log_upload(info, "resumable")
        return info

    def _advance(self, buffer: bytearray, offset: int, sent: int, response: httpx.Response) -> int:
        """Drop the bytes the session persisted from ``buffer``; return the new offset."""
        committed = _committed_offset(response.headers.get("Range"))
        if not offset < committed <= offset + sent:
            raise TransportException(
                f"Upload session persisted {committed} bytes after {sent} were sent from offset {offset}.",
                response.status_code,
            )
        del buffer[:committed - offset]
        return committed

    async def _put_chunk(
        self,
        session_url: str,
        data: bytes,
        offset: int,
        total: Optional[int],
    ) -> httpx.Response:
        if data:
            end = offset + len(data) - 1
            content_range = f"bytes {offset}-{end}/{'*' if total is None else total}"
        else:
            content_range = f"bytes */{total}"

        response = await self._api.request(
            "PUT",
            session_url,
            content=data,
            headers={"Content-Range": content_range},
        )
        if response.status_code == RESUME_INCOMPLETE:
            self._logger.debug(
                "[GcStorage][Upload] bucket=%s sent=%s persisted=%s",
                self._bucket_name,
                content_range,
                response.headers.get("Range"),
            )
        elif total is None:
            raise TransportException(
                f"Unexpected status {response.status_code} for an intermediate upload chunk.",
                response.status_code,
            )
        return response

    def _log_upload(self, info: ObjectInfo, strategy: str) -> None:
        self._logger.info(
            "[GcStorage][Upload] bucket=%s object=%s strategy=%s size=%s generation=%s",
            self._bucket_name,
            info.name,
            strategy,
            info.size,
            info.generation.object_generation,
        )

    # Reading

    def read(
        self,
        object_name: str,
        offset: int = 0,
        length: Optional[int] = None,
    ) -> AsyncIterator[bytes]:
        """
        Read object content, optionally limited to a byte range.

        Returns an async iterator of byte chunks. The download starts on the
        first pull and proceeds only as fast as the chunks are consumed.
        Reading from an offset at or past the end of the object yields
        nothing.
        """
        if offset < 0:
            raise ValueError(f"Offset must not be negative, got {offset}.")
        if length is not None and length < 0:
            raise ValueError(f"Length must not be negative, got {length}.")
        return self._read(object_name, offset, length)

    async def _read(self, object_name: str, offset: int, length: Optional[int]) -> AsyncIterator[bytes]:
        if length == 0:
            return
        headers = {}
        if offset > 0 or length is not None:
            end = "" if length is None else str(offset + length - 1)
            headers["Range"] = f"bytes={offset}-{end}"

        try:
            async with self._api.stream(
                "GET",
                object_path(self._bucket_name, object_name),
                params={"alt": "media"},
                headers=headers,
            ) as response:
                async for chunk in response.aiter_bytes():
                    yield chunk
        except TransportException as e:
            if e.status_code == 404:
                raise ObjectNotFoundException(self._bucket_name, object_name)
            # Requested range starts at or past the end of the object.
            if e.status_code == 416:
                return
            raise

    # Metadata

    async def info(self, object_name: str) -> ObjectInfo:
        """Look up object information without downloading the content."""
        try:
            response = await self._api.request("GET", object_path(self._bucket_name, object_name))
        except TransportException as e:
            if e.status_code == 404:
                raise ObjectNotFoundException(self._bucket_name, object_name)
            raise
        return ObjectInfo._from_resource(response.json())

    async def update_metadata(self, object_name: str, metadata: ObjectMetadata) -> ObjectInfo:
        """
        Update object metadata, leaving the content untouched.

        Only the fields set on ``metadata`` are sent; fields left as ``None``
        keep their current value on the server.
        """
        try:
            response = await self._api.request(
                "PATCH",
                object_path(self._bucket_name, object_name),
                json_data=metadata._to_resource(),
            )
        except TransportException as e:
            if e.status_code == 404:
                raise ObjectNotFoundException(self._bucket_name, object_name)
            raise
        return ObjectInfo._from_resource(response.json())

    async def delete(self, object_name: str) -> None:
        """Remove an object from the bucket."""
        try:
            await self._api.request("DELETE", object_path(self._bucket_name, object_name))
        except TransportException as e:
            if e.status_code == 404:
                raise ObjectNotFoundException(self._bucket_name, object_name)
            raise
        self._logger.info("[GcStorage][Delete] bucket=%s object=%s", self._bucket_name, object_name)

    # Listing

    def list(self, prefix: Optional[str] = None) -> PagedIterable[BucketEntry]:
        """
        List objects and directories directly below ``prefix``.

        The object namespace is flat; ``/`` in object names is used to group
        names into directories. Names continuing past the next ``/`` after
        the prefix are returned once, as a directory entry ending in ``/``.
        """
        return PagedIterable(partial(self._fetch_entries, prefix))

    async def page(
        self,
        prefix: Optional[str] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> Page[BucketEntry]:
        """Fetch the first page of ``list(prefix)``, with at most ``page_size`` entries."""
        return await Page.first(partial(self._fetch_entries, prefix), page_size)

    async def _fetch_entries(
        self,
        prefix: Optional[str],
        page_token: Optional[str],
        page_size: int,
    ) -> Tuple[List[BucketEntry], Optional[str]]:
        params = {
            "delimiter": DIRECTORY_DELIMITER,
            "prefix": prefix or None,
            "maxResults": page_size,
            "pageToken": page_token,
        }
        try:
            response = await self._api.request("GET", f"{bucket_path(self._bucket_name)}/o", params=params)
        except TransportException as e:
            if e.status_code == 404:
                raise BucketNotFoundException(self._bucket_name)
            raise

        data = response.json()
        entries = [DirectoryEntry(name) for name in data.get("prefixes", [])]
        entries.extend(ObjectEntry(item["name"]) for item in data.get("items", []))
        return entries, data.get("nextPageToken")

    def __repr__(self) -> str:
        return f"BucketClient(bucket_name={self._bucket_name!r})"
