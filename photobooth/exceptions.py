class UploadError(Exception):
    """Base class for upload failures reported to the client as ``{"message": ...}``."""

    status_code = 400
    default_message = "Upload failed."

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class MalformedEncoding(UploadError):
    default_message = "Invalid image format."


class InvalidFormat(UploadError):
    default_message = "Invalid file type detected."


class TooLarge(UploadError):
    default_message = "Image too large."


class PersistenceFailure(UploadError):
    status_code = 500
    default_message = "Internal Server Error"


class UploadTimeout(UploadError):
    status_code = 503
    default_message = "Upload timed out."


class RateLimitExceeded(UploadError):
    status_code = 429
    default_message = "Too many requests, please try again later."

    def __init__(self, message: str = None, retry_after: int = 1):
        super().__init__(message)
        self.retry_after = retry_after


class ServerError(UploadError):
    status_code = 500
    default_message = "Server error processing upload."
