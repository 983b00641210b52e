class LibraryError(Exception):
    """Base class for errors reported back to API callers."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(LibraryError):
    """A required field is missing or malformed."""

    status_code = 400


class NotFoundError(LibraryError):
    status_code = 404


class ConflictError(LibraryError):
    """The request collides with the current state of a row."""

    status_code = 409


class BookUnavailableError(ConflictError):
    # The lending UI has always reported this one as a plain 400.
    status_code = 400


class StoreError(LibraryError):
    """Any failure raised by the underlying database."""

    status_code = 500
