"""
Exception classes for the gcstorage SDK
"""


class StorageException(Exception):
    """
    Base exception for all gcstorage SDK errors.
    """

    def __init__(self, message: str, status_code: int = None, error_code: str = None):
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code


class NotFoundException(StorageException):
    """Thrown when a bucket or object referenced by a request does not exist."""

    def __init__(self, message: str, error_code: str = "notFound"):
        super().__init__(message, status_code=404, error_code=error_code)


class BucketNotFoundException(NotFoundException):
    """Thrown when a bucket is not found."""

    def __init__(self, bucket_name: str):
        super().__init__(f"Bucket '{bucket_name}' not found.")
        self.bucket_name = bucket_name


class ObjectNotFoundException(NotFoundException):
    """Thrown when an object is not found."""

    def __init__(self, bucket_name: str, object_name: str):
        super().__init__(f"Object '{object_name}' not found in bucket '{bucket_name}'.")
        self.bucket_name = bucket_name
        self.object_name = object_name


class AlreadyExistsException(StorageException):
    """Thrown when a create request collides with an existing name."""

    def __init__(self, message: str):
        super().__init__(message, status_code=409, error_code="conflict")


class BucketAlreadyExistsException(AlreadyExistsException):
    """Thrown when trying to create a bucket that already exists."""

    def __init__(self, bucket_name: str):
        super().__init__(f"Bucket '{bucket_name}' already exists.")
        self.bucket_name = bucket_name


class BucketNotEmptyException(StorageException):
    """Thrown when deleting a bucket that still contains objects."""

    def __init__(self, bucket_name: str):
        super().__init__(
            f"Bucket '{bucket_name}' is not empty.",
            status_code=409,
            error_code="conflict"
        )
        self.bucket_name = bucket_name


class InvalidObjectNameException(StorageException):
    """Thrown when an object name is invalid."""

    def __init__(self, object_name: str, reason: str = "is invalid"):
        super().__init__(f"Object name '{object_name}' {reason}.")


class AuthenticationException(StorageException):
    """Thrown when authentication fails."""

    def __init__(self, message: str):
        super().__init__(
            message,
            status_code=401,
            error_code="authError"
        )


class PermissionDeniedException(StorageException):
    """Thrown when the credentials lack permission for the request."""

    def __init__(self, message: str):
        super().__init__(
            message,
            status_code=403,
            error_code="forbidden"
        )


class TransportException(StorageException):
    """
    Thrown when the server answers with an HTTP error the SDK does not map
    to a more specific exception.

    Connection-level failures are not wrapped: they surface as the
    ``httpx.TransportError`` raised by the transport.
    """

    def __init__(self, message: str, status_code: int, error_code: str = None):
        super().__init__(message, status_code, error_code)


class ConfigurationException(StorageException):
    """Thrown for invalid local state, detected before any request is sent."""

    def __init__(self, message: str):
        super().__init__(message)


class LengthMismatchException(StorageException):
    """Thrown when an upload receives a different number of bytes than declared."""

    def __init__(self, expected: int, actual: int):
        super().__init__(
            f"Upload declared {expected} bytes but received {actual}."
        )
        self.expected = expected
        self.actual = actual


class UploadAbortedException(StorageException):
    """Thrown when waiting on an upload that was abandoned with ``abort``."""

    def __init__(self, object_name: str = ""):
        super().__init__(f"Upload of '{object_name}' was aborted." if object_name else "Upload aborted.")
        self.object_name = object_name
