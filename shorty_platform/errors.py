"""
Error taxonomy for Shorty Platform.

Every failure the Link Store can report is a subclass of `ShortyError`.
Each class carries the HTTP status the API layer answers with, so the
boundary maps errors without a lookup table of its own.
"""

__all__ = [
    "ShortyError",
    "LinkConflict",
    "RandomIdExhausted",
    "StorageError",
    "LinkEmpty",
    "LinkExceedsMaxLength",
    "CustomIdExceedsMaxLength",
    "LimitOutOfRange",
    "PayloadTooLarge",
]


class ShortyError(Exception):
    """Base class for all Link Store errors."""

    status_code: int = 500
    message: str = "Internal error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.message)


class LinkConflict(ShortyError):
    status_code = 409
    message = "Link with provided ID already exists"


class RandomIdExhausted(ShortyError):
    status_code = 500
    message = "Maximum retries to generate a random link ID were exceeded"


class StorageError(ShortyError):
    """Underlying storage engine failure; the engine exception is `__cause__`."""

    status_code = 500
    message = "Storage failure"


class LinkEmpty(ShortyError):
    status_code = 400
    message = "Link is empty"


class LinkExceedsMaxLength(ShortyError):
    status_code = 400
    message = "Link exceeds maximum length allowed"


class CustomIdExceedsMaxLength(ShortyError):
    status_code = 400
    message = "Custom ID exceeds maximum length allowed"


class PayloadTooLarge(ShortyError):
    status_code = 413
    message = "Request body exceeds maximum size allowed"


class LimitOutOfRange(ShortyError):
    status_code = 400
    message = "Link limit exceeds the maximum storable value"
