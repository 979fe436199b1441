import base64
import hashlib
import json
import uuid
import zlib
from typing import Dict, List, Optional
from urllib.parse import quote, unquote

import httpx
import pytest

from gcstorage.client import StorageClient

PROJECT = "test-project"
TOKEN = "test-token"
CHUNK = 256 * 1024
TIMESTAMP = "2024-05-01T12:00:00.000Z"


def _error(status: int, message: str, reason: str) -> httpx.Response:
    return httpx.Response(
        status,
        json={"error": {"code": status, "message": message, "errors": [{"reason": reason}]}},
    )


def _resume_incomplete(data: bytearray) -> httpx.Response:
    if not data:
        return httpx.Response(308)
    return httpx.Response(308, headers={"Range": f"bytes=0-{len(data) - 1}"})


class FakeStorageServer:
    """In-memory stand-in for the Cloud Storage JSON API."""

    def __init__(self):
        self.buckets: Dict[str, Dict] = {}
        self.requests: List[httpx.Request] = []
        self.sessions: Dict[str, Dict] = {}
        self.chunk_ranges: List[str] = []
        # Bytes kept from each of the next resumable chunks; the rest is dropped.
        self.persist_limits: List[int] = []
        self.deny_create: set = set()
        self.served_chunks = 0
        self.media_chunk_size = 64 * 1024
        self._generation = 1000

    # Seeding helpers

    def add_bucket(self, name: str) -> None:
        self.buckets[name] = {
            "resource": {"name": name, "timeCreated": TIMESTAMP},
            "objects": {},
        }

    def add_object(self, bucket: str, name: str, data: bytes = b"", **resource) -> None:
        self._store(bucket, name, data, resource)

    def object_data(self, bucket: str, name: str) -> bytes:
        return self.buckets[bucket]["objects"][name]["data"]

    def object_resource(self, bucket: str, name: str) -> Dict:
        return self.buckets[bucket]["objects"][name]["resource"]

    def last_request(self, method: str) -> httpx.Request:
        return [r for r in self.requests if r.method == method][-1]

    def _store(self, bucket: str, name: str, data: bytes, resource: Dict) -> Dict:
        self._generation += 1
        resource = dict(resource)
        resource.setdefault("contentType", "application/octet-stream")
        resource.update(
            kind="storage#object",
            name=name,
            bucket=bucket,
            size=str(len(data)),
            updated=TIMESTAMP,
            generation=str(self._generation),
            metageneration="1",
            md5Hash=base64.b64encode(hashlib.md5(data).digest()).decode(),
            crc32c=base64.b64encode(zlib.crc32(data).to_bytes(4, "big")).decode(),
            mediaLink=f"https://storage.googleapis.com/download/storage/v1/b/{bucket}/o/{quote(name, safe='')}?alt=media",
        )
        self.buckets[bucket]["objects"][name] = {"resource": resource, "data": bytes(data)}
        return resource

    # Request dispatch

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.headers.get("Authorization") != f"Bearer {TOKEN}":
            return _error(401, "Invalid Credentials", "authError")

        path = request.url.raw_path.decode("ascii").split("?", 1)[0]
        segments = [unquote(s) for s in path.strip("/").split("/")]
        params = request.url.params

        if segments[:3] == ["upload", "storage", "v1"]:
            return self._upload(request, segments[3:], params)
        if segments[:2] == ["storage", "v1"]:
            return self._api(request, segments[2:], params)
        return _error(404, "Not Found", "notFound")

    def _api(self, request, segments, params) -> httpx.Response:
        method = request.method
        if segments == ["b"]:
            if method == "POST":
                return self._create_bucket(request, params)
            return self._list_buckets(params)

        bucket_name = segments[1]
        bucket = self.buckets.get(bucket_name)
        if bucket is None:
            return _error(404, f"The specified bucket does not exist: {bucket_name}", "notFound")

        if len(segments) == 2:
            if method == "DELETE":
                if bucket["objects"]:
                    return _error(409, "The bucket you tried to delete is not empty.", "conflict")
                del self.buckets[bucket_name]
                return httpx.Response(204)
            return httpx.Response(200, json=bucket["resource"])

        if len(segments) == 3:
            return self._list_objects(bucket, params)

        object_name = segments[3]
        stored = bucket["objects"].get(object_name)
        if stored is None:
            return _error(404, f"No such object: {bucket_name}/{object_name}", "notFound")

        if len(segments) > 4 and segments[4] == "copyTo":
            dest_bucket, dest_name = segments[6], segments[8]
            if dest_bucket not in self.buckets:
                return _error(404, f"The destination bucket does not exist: {dest_bucket}", "notFound")
            resource = {k: v for k, v in stored["resource"].items() if k in _MUTABLE_FIELDS}
            return httpx.Response(200, json=self._store(dest_bucket, dest_name, stored["data"], resource))

        if method == "GET" and params.get("alt") == "media":
            return self._media(request, stored["data"])
        if method == "GET":
            return httpx.Response(200, json=stored["resource"])
        if method == "PATCH":
            patch = json.loads(request.content)
            stored["resource"].update(patch)
            stored["resource"]["metageneration"] = str(int(stored["resource"]["metageneration"]) + 1)
            return httpx.Response(200, json=stored["resource"])
        if method == "DELETE":
            del bucket["objects"][object_name]
            return httpx.Response(204)
        return _error(405, "Method not allowed", "methodNotAllowed")

    def _create_bucket(self, request, params) -> httpx.Response:
        resource = json.loads(request.content)
        name = resource["name"]
        if name in self.deny_create:
            return _error(403, "The caller does not have storage.buckets.create access.", "forbidden")
        if name in self.buckets:
            return _error(409, "You already own this bucket.", "conflict")
        self.add_bucket(name)
        return httpx.Response(200, json=self.buckets[name]["resource"])

    def _list_buckets(self, params) -> httpx.Response:
        names = sorted(self.buckets)
        return httpx.Response(200, json=self._paginate(
            [("item", {"name": n}) for n in names], params, "storage#buckets"
        ))

    def _list_objects(self, bucket, params) -> httpx.Response:
        prefix = params.get("prefix", "")
        delimiter = params.get("delimiter")
        entries = []
        seen = set()
        for name in sorted(bucket["objects"]):
            if not name.startswith(prefix):
                continue
            rest = name[len(prefix):]
            if delimiter and delimiter in rest:
                directory = prefix + rest[:rest.index(delimiter) + 1]
                if directory not in seen:
                    seen.add(directory)
                    entries.append(("prefix", directory))
            else:
                entries.append(("item", bucket["objects"][name]["resource"]))
        return httpx.Response(200, json=self._paginate(entries, params, "storage#objects"))

    @staticmethod
    def _paginate(entries, params, kind) -> Dict:
        start = int(params.get("pageToken", "0").removeprefix("cursor-") or 0)
        size = int(params.get("maxResults", 1000))
        window = entries[start:start + size]
        body = {"kind": kind}
        prefixes = [value for tag, value in window if tag == "prefix"]
        items = [value for tag, value in window if tag == "item"]
        if prefixes:
            body["prefixes"] = prefixes
        if items:
            body["items"] = items
        if start + size < len(entries):
            body["nextPageToken"] = f"cursor-{start + size}"
        return body

    def _media(self, request, data: bytes) -> httpx.Response:
        status = 200
        range_header = request.headers.get("Range")
        if range_header:
            first, _, last = range_header.removeprefix("bytes=").partition("-")
            first = int(first)
            if first >= len(data):
                return _error(416, "Requested range not satisfiable", "requestedRangeNotSatisfiable")
            end = int(last) + 1 if last else len(data)
            data = data[first:end]
            status = 206

        async def body():
            for i in range(0, len(data), self.media_chunk_size):
                self.served_chunks += 1
                yield data[i:i + self.media_chunk_size]

        return httpx.Response(status, content=body())

    # Uploads

    def _upload(self, request, segments, params) -> httpx.Response:
        bucket_name = segments[1]
        if bucket_name not in self.buckets:
            return _error(404, f"The specified bucket does not exist: {bucket_name}", "notFound")

        if request.method == "PUT":
            return self._resumable_chunk(request, params["upload_id"])

        upload_type = params.get("uploadType")
        if upload_type == "multipart":
            declared = int(request.headers["Content-Length"])
            if declared != len(request.content):
                return _error(400, "Content-Length does not match body", "invalid")
            resource, data = _parse_multipart(request)
            return httpx.Response(200, json=self._store(bucket_name, resource["name"], data, resource))
        if upload_type == "resumable":
            upload_id = uuid.uuid4().hex
            resource = json.loads(request.content)
            resource.setdefault("name", params.get("name"))
            self.sessions[upload_id] = {"bucket": bucket_name, "resource": resource, "data": bytearray()}
            location = (
                f"https://storage.googleapis.com/upload/storage/v1/b/{bucket_name}/o"
                f"?uploadType=resumable&upload_id={upload_id}"
            )
            return httpx.Response(200, headers={"Location": location})
        return _error(400, f"Unsupported uploadType {upload_type}", "invalid")

    def _resumable_chunk(self, request, upload_id: str) -> httpx.Response:
        session = self.sessions[upload_id]
        content_range = request.headers["Content-Range"]
        self.chunk_ranges.append(content_range)
        span, _, total = content_range.removeprefix("bytes ").partition("/")
        if span != "*":
            first = int(span.split("-")[0])
            if first != len(session["data"]):
                return _error(400, "Chunk does not continue the upload", "invalid")
        if self.persist_limits:
            session["data"] += request.content[:self.persist_limits.pop(0)]
            return _resume_incomplete(session["data"])
        session["data"] += request.content
        if total == "*":
            return _resume_incomplete(session["data"])
        if int(total) != len(session["data"]):
            return _error(400, "Final size does not match uploaded bytes", "invalid")
        del self.sessions[upload_id]
        resource = session["resource"]
        return httpx.Response(
            200, json=self._store(session["bucket"], resource["name"], bytes(session["data"]), resource)
        )


_MUTABLE_FIELDS = {
    "contentType",
    "contentEncoding",
    "cacheControl",
    "contentDisposition",
    "contentLanguage",
    "metadata",
}


def _parse_multipart(request: httpx.Request):
    boundary = request.headers["Content-Type"].split("boundary=", 1)[1]
    parts = request.content.split(f"--{boundary}".encode())
    payloads = []
    for part in parts[1:-1]:
        _, _, payload = part.partition(b"\r\n\r\n")
        payloads.append(payload[:-2])
    resource = json.loads(payloads[0])
    return resource, payloads[1]


@pytest.fixture
def server():
    return FakeStorageServer()


@pytest.fixture
def client(server):
    return StorageClient(
        project=PROJECT,
        token=TOKEN,
        upload_chunk_size=CHUNK,
        transport=httpx.MockTransport(server.handler),
    )


@pytest.fixture
def bucket(server, client):
    server.add_bucket("test-bucket")
    return client.bucket("test-bucket")
