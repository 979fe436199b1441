"""
gcstorage - asyncio client for Google Cloud Storage buckets and objects
"""

__version__ = "1.0.0"

from ._constants import STORAGE_SCOPES
from .acl import (
    ALL_AUTHENTICATED,
    ALL_USERS,
    AccountScope,
    Acl,
    AclEntry,
    AclPermission,
    AclScope,
    AllAuthenticatedScope,
    AllUsersScope,
    DomainScope,
    GroupScope,
    PredefinedAcl,
    StorageIdScope,
)
from .bucket import BucketClient
from .client import StorageClient
from .models import (
    BucketEntry,
    DirectoryEntry,
    BucketInfo,
    ObjectGeneration,
    ObjectEntry,
    ObjectInfo,
    ObjectMetadata,
)
from .page import Page, PagedIterable
from .upload import ObjectSink
from .error import (
    StorageException,
    NotFoundException,
    BucketNotFoundException,
    ObjectNotFoundException,
    AlreadyExistsException,
    BucketAlreadyExistsException,
    BucketNotEmptyException,
    InvalidObjectNameException,
    AuthenticationException,
    PermissionDeniedException,
    TransportException,
    ConfigurationException,
    LengthMismatchException,
    UploadAbortedException,
)

__all__ = [
    "STORAGE_SCOPES",
    "StorageClient",
    "BucketClient",
    "ObjectSink",
    "Page",
    "PagedIterable",
    "Acl",
    "AclEntry",
    "AclPermission",
    "AclScope",
    "StorageIdScope",
    "AccountScope",
    "GroupScope",
    "DomainScope",
    "AllAuthenticatedScope",
    "AllUsersScope",
    "ALL_AUTHENTICATED",
    "ALL_USERS",
    "PredefinedAcl",
    "BucketEntry",
    "DirectoryEntry",
    "ObjectEntry",
    "BucketInfo",
    "ObjectGeneration",
    "ObjectInfo",
    "ObjectMetadata",
    "StorageException",
    "NotFoundException",
    "BucketNotFoundException",
    "ObjectNotFoundException",
    "AlreadyExistsException",
    "BucketAlreadyExistsException",
    "BucketNotEmptyException",
    "InvalidObjectNameException",
    "AuthenticationException",
    "PermissionDeniedException",
    "TransportException",
    "ConfigurationException",
    "LengthMismatchException",
    "UploadAbortedException",
]
