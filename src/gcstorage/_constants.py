"""
Wire constants for the Cloud Storage JSON API
"""

DEFAULT_ENDPOINT = "storage.googleapis.com"

API_ENDPOINT = "/storage/v1"
UPLOAD_API_ENDPOINT = "/upload/storage/v1"

#: Prefix of absolute object names, as used by gsutil.
ABSOLUTE_NAME_PREFIX = "gs://"

#: OAuth2 scopes required for full bucket and object access.
STORAGE_SCOPES = ("https://www.googleapis.com/auth/devstorage.full_control",)

DEFAULT_CONTENT_TYPE = "application/octet-stream"

DEFAULT_PAGE_SIZE = 50

#: Listing delimiter used to simulate directories.
DIRECTORY_DELIMITER = "/"

# Resumable upload chunks must be a multiple of this size, except the last.
UPLOAD_CHUNK_GRANULARITY = 256 * 1024
DEFAULT_UPLOAD_CHUNK_SIZE = 4 * UPLOAD_CHUNK_GRANULARITY

# Number of pushed chunks buffered by an upload sink before writers suspend.
DEFAULT_SINK_QUEUE_SIZE = 4

# Resumable upload servers answer intermediate chunks with this status.
RESUME_INCOMPLETE = 308
