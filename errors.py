class StorefrontError(Exception):
    """Base for errors that are reported back to the caller as ``{message}``."""

    status_code = 500

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ValidationError(StorefrontError):
    status_code = 400


class NotFoundError(StorefrontError):
    status_code = 404


class StoreUnavailableError(StorefrontError):
    status_code = 500
