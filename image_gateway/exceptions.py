class ImageGatewayError(Exception):
    """Base class for all exceptions in image-gateway.

    Every subclass carries the HTTP status and machine-readable code the
    application renders it with.
    """

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ImageGatewayError):
    """Exception raised for malformed request parameters."""

    status_code = 400
    code = "VALIDATION_ERROR"


class PayloadTooLargeError(ValidationError):
    status_code = 413
    code = "PAYLOAD_TOO_LARGE"


class ObjectNotFoundError(ImageGatewayError):
    """Exception raised when the requested object is absent from the store."""

    status_code = 404
    code = "NOT_FOUND"


class ConversionError(ImageGatewayError):
    """Exception raised when image bytes cannot be decoded or encoded."""

    status_code = 422
    code = "CONVERSION_FAILED"


class StorageError(ImageGatewayError):
    """Exception raised when the object store fails for any other reason."""

    status_code = 502
    code = "STORAGE_ERROR"


class AuthError(ImageGatewayError):
    """Base class for API key failures."""


class MissingAPIKeyError(AuthError):
    status_code = 401
    code = "MISSING_API_KEY"


class InvalidAPIKeyError(AuthError):
    status_code = 403
    code = "INVALID_API_KEY"


class ServerMisconfiguredError(AuthError):
    status_code = 500
    code = "SERVER_MISCONFIGURED"
