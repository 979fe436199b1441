"""
Access control lists for buckets and objects.

An ACL is a prioritized sequence of entries, each granting a permission to a
scope. Predefined ACLs are named templates which the server expands into
entries; they are forwarded as-is and never expanded by this client.

See https://cloud.google.com/storage/docs/access-control/lists
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Tuple, Union

from .error import ConfigurationException


@dataclass(frozen=True)
class StorageIdScope:
    """Entity identified by a Google Storage ID (64 hex digits)."""
    storage_id: str


@dataclass(frozen=True)
class AccountScope:
    """Entity identified by an individual email address."""
    email: str


@dataclass(frozen=True)
class GroupScope:
    """Entity identified by a Google Groups email address."""
    group: str


@dataclass(frozen=True)
class DomainScope:
    """Entity identified by a domain name."""
    domain: str


@dataclass(frozen=True)
class AllAuthenticatedScope:
    """All holders of a Google account."""


@dataclass(frozen=True)
class AllUsersScope:
    """Anyone, authenticated or not."""


AclScope = Union[
    StorageIdScope,
    AccountScope,
    GroupScope,
    DomainScope,
    AllAuthenticatedScope,
    AllUsersScope,
]

ALL_AUTHENTICATED = AllAuthenticatedScope()
ALL_USERS = AllUsersScope()


def scope_entity(scope: AclScope) -> str:
    """Return the wire entity string for an ACL scope."""
    if isinstance(scope, StorageIdScope):
        return f"user-{scope.storage_id}"
    elif isinstance(scope, AccountScope):
        return f"user-{scope.email}"
    elif isinstance(scope, GroupScope):
        return f"group-{scope.group}"
    elif isinstance(scope, DomainScope):
        return f"domain-{scope.domain}"
    elif isinstance(scope, AllAuthenticatedScope):
        return "allAuthenticatedUsers"
    elif isinstance(scope, AllUsersScope):
        return "allUsers"
    raise ConfigurationException(f"Unsupported ACL scope: {scope!r}")


class AclPermission(Enum):
    """Permission granted to a scope."""

    READ = "READER"
    WRITE = "WRITER"
    # For objects WRITE and FULL_CONTROL are the same permission.
    FULL_CONTROL = "OWNER"

    @property
    def bucket_role(self) -> str:
        return self.value

    @property
    def object_role(self) -> str:
        if self is AclPermission.WRITE:
            return AclPermission.FULL_CONTROL.value
        return self.value


class PredefinedAcl(str, Enum):
    """
    Named ACL templates, expanded on the server when a bucket or object is
    created or updated. Reading back a resource returns the expanded entries.
    """

    AUTHENTICATED_READ = "authenticatedRead"
    PRIVATE = "private"
    PROJECT_PRIVATE = "projectPrivate"
    PUBLIC_READ = "publicRead"
    # Buckets only.
    PUBLIC_READ_WRITE = "publicReadWrite"
    # Objects only.
    BUCKET_OWNER_FULL_CONTROL = "bucketOwnerFullControl"
    BUCKET_OWNER_READ = "bucketOwnerRead"


@dataclass(frozen=True)
class AclEntry:
    """Grants ``permission`` to ``scope``."""
    scope: AclScope
    permission: AclPermission

    def to_bucket_access_control(self) -> Dict[str, str]:
        return {"entity": scope_entity(self.scope), "role": self.permission.bucket_role}

    def to_object_access_control(self) -> Dict[str, str]:
        return {"entity": scope_entity(self.scope), "role": self.permission.object_role}


class Acl:
    """
    Ordered list of ACL entries. Order is evaluation priority and is kept
    unchanged on the wire.

    Example:
        acl = Acl([
            AclEntry(AccountScope("owner@example.com"), AclPermission.FULL_CONTROL),
            AclEntry(ALL_USERS, AclPermission.READ),
        ])
    """

    def __init__(self, entries: Iterable[AclEntry]):
        self._entries: Tuple[AclEntry, ...] = tuple(entries)

    @property
    def entries(self) -> Tuple[AclEntry, ...]:
        """The entries, in priority order. Read-only."""
        return self._entries

    def to_wire_bucket_acl(self) -> List[Dict[str, str]]:
        return [entry.to_bucket_access_control() for entry in self._entries]

    def to_wire_object_acl(self) -> List[Dict[str, str]]:
        return [entry.to_object_access_control() for entry in self._entries]

    def __iter__(self) -> Iterator[AclEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Acl):
            return NotImplemented
        return self._entries == other._entries

    def __hash__(self) -> int:
        return hash(self._entries)

    def __repr__(self) -> str:
        return f"Acl({list(self._entries)!r})"
