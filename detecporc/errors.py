"""Error taxonomy shared by the stores, the auth gate and the HTTP layer."""


class DetecporcError(Exception):
    status_code = 500
    message_key = "storage"

    def __init__(self, message: str = "", message_key: str = None):
        super().__init__(message or self.__class__.__name__)
        if message_key:
            self.message_key = message_key


class ValidationError(DetecporcError):
    """Missing or malformed required fields."""

    status_code = 400
    message_key = "required_fields"


class NotFoundError(DetecporcError):
    status_code = 404
    message_key = "point_not_found"


class UnauthorizedError(DetecporcError):
    status_code = 401
    message_key = "unauthorized"


class InvalidCredentialsError(DetecporcError):
    """Bad login. Never says whether the username or the password was wrong."""

    status_code = 401
    message_key = "invalid_credentials"


class StorageError(DetecporcError):
    """I/O failure on a backing file. Not retried."""

    status_code = 500
    message_key = "storage"


class PayloadTooLargeError(DetecporcError):
    status_code = 413
    message_key = "payload_too_large"
