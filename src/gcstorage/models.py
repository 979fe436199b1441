"""
Data models for the gcstorage SDK
"""

import base64
from dataclasses import dataclass, field, replace as dataclass_replace
from datetime import datetime
from typing import Any, Dict, Optional, Union

from .acl import Acl


@dataclass
class BucketInfo:
    """Information on a bucket."""
    bucket_name: str
    created: datetime

    @classmethod
    def _from_resource(cls, resource: Dict[str, Any]) -> "BucketInfo":
        return cls(
            bucket_name=resource["name"],
            created=datetime.fromisoformat(resource["timeCreated"]),
        )


@dataclass
class ObjectMetadata:
    """
    The mutable properties of an object.

    Fields left as ``None`` are not sent, so the server keeps its current
    value or applies its default (``application/octet-stream`` for the
    content type).

    ``acl`` is write-only: it is sent when creating or updating an object but
    is never filled in from a server response.
    """
    content_type: Optional[str] = None
    content_encoding: Optional[str] = None
    cache_control: Optional[str] = None
    content_disposition: Optional[str] = None
    content_language: Optional[str] = None
    custom: Dict[str, str] = field(default_factory=dict)
    acl: Optional[Acl] = field(default=None, repr=False, compare=False)

    def replace(
        self,
        acl: Optional[Acl] = None,
        content_type: Optional[str] = None,
        content_encoding: Optional[str] = None,
        cache_control: Optional[str] = None,
        content_disposition: Optional[str] = None,
        content_language: Optional[str] = None,
        custom: Optional[Dict[str, str]] = None,
    ) -> "ObjectMetadata":
        """
        Return a copy with the given values replaced.

        Arguments left as ``None`` keep the current value, so this cannot be
        used to clear a field.
        """
        overrides = {
            "acl": acl,
            "content_type": content_type,
            "content_encoding": content_encoding,
            "cache_control": cache_control,
            "content_disposition": content_disposition,
            "content_language": content_language,
            "custom": custom,
        }
        changes = {k: v for k, v in overrides.items() if v is not None}
        changes["custom"] = dict(changes.get("custom", self.custom))
        return dataclass_replace(self, **changes)

    def _to_resource(self) -> Dict[str, Any]:
        resource: Dict[str, Any] = {}
        if self.content_type is not None:
            resource["contentType"] = self.content_type
        if self.content_encoding is not None:
            resource["contentEncoding"] = self.content_encoding
        if self.cache_control is not None:
            resource["cacheControl"] = self.cache_control
        if self.content_disposition is not None:
            resource["contentDisposition"] = self.content_disposition
        if self.content_language is not None:
            resource["contentLanguage"] = self.content_language
        if self.custom:
            resource["metadata"] = dict(self.custom)
        if self.acl is not None:
            resource["acl"] = self.acl.to_wire_object_acl()
        return resource

    @classmethod
    def _from_resource(cls, resource: Dict[str, Any]) -> "ObjectMetadata":
        return cls(
            content_type=resource.get("contentType"),
            content_encoding=resource.get("contentEncoding"),
            cache_control=resource.get("cacheControl"),
            content_disposition=resource.get("contentDisposition"),
            content_language=resource.get("contentLanguage"),
            custom=dict(resource.get("metadata") or {}),
        )


@dataclass(frozen=True)
class ObjectGeneration:
    """Generational information on an object."""
    object_generation: str
    meta_generation: int


@dataclass(frozen=True)
class ObjectInfo:
    """
    Snapshot of an object as last returned by the server.

    The server-provided properties are attributes of this class; the
    properties that can be changed live in ``metadata``.
    """
    name: str
    size: int
    updated: datetime
    md5_hash: Optional[bytes]
    crc32c_checksum: Optional[int]
    download_link: Optional[str]
    generation: ObjectGeneration
    metadata: ObjectMetadata

    @classmethod
    def _from_resource(cls, resource: Dict[str, Any]) -> "ObjectInfo":
        md5_hash = resource.get("md5Hash")
        crc32c = resource.get("crc32c")
        return cls(
            name=resource["name"],
            size=int(resource.get("size", 0)),
            updated=datetime.fromisoformat(resource["updated"]),
            md5_hash=base64.b64decode(md5_hash) if md5_hash else None,
            # Big-endian unsigned 32-bit integer, base64 encoded.
            crc32c_checksum=int.from_bytes(base64.b64decode(crc32c), "big") if crc32c else None,
            download_link=resource.get("mediaLink"),
            generation=ObjectGeneration(
                object_generation=str(resource.get("generation", "")),
                meta_generation=int(resource.get("metageneration", 0)),
            ),
            metadata=ObjectMetadata._from_resource(resource),
        )


@dataclass(frozen=True)
class ObjectEntry:
    """A listed object."""
    name: str

    is_object = True
    is_directory = False


@dataclass(frozen=True)
class DirectoryEntry:
    """
    A listed directory: a common name prefix up to the next ``/``.

    Directories are not real containers; the name ends with ``/``.
    """
    name: str

    is_object = False
    is_directory = True


# One result of a bucket listing.
BucketEntry = Union[ObjectEntry, DirectoryEntry]
