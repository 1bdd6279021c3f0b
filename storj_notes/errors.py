"""
storj_notes/errors.py

Error taxonomy for the notes tool.

Every failure the CLI can report is a NotesError subclass. Lower layers
raise these with `raise ... from cause` so the underlying exception stays
attached, and the CLI prints each error exactly once before translating it
into an exit code.

    NotesError
    ├── UsageError            bad or missing CLI input (no network contact)
    ├── AuthError             access grant could not be resolved
    ├── ServiceOpenError      project open or ensure-bucket failed
    ├── ServiceClosedError    operation attempted on a closed service
    ├── OperationError        get / set / list / delete failed
    ├── OperationCancelled    interrupted through the cancellation token
    └── StorageError          raised by the storage client adapter
        └── ObjectNotFound    the requested object key does not exist

MetadataParseWarning is a warning, not an error: an unparsable upload time
is reported and then treated as absent.
"""

from typing import Optional


class NotesError(Exception):
    """Base error for storj_notes."""


class UsageError(NotesError):
    """Raised when required CLI input is missing or malformed."""


class AuthError(NotesError):
    """Raised when an access grant cannot be requested or parsed."""


class ServiceOpenError(NotesError):
    """Raised when the project cannot be opened or the bucket ensured."""


class ServiceClosedError(NotesError):
    """Raised when an operation is attempted after NoteService.close()."""


class OperationCancelled(NotesError):
    """Raised when a blocking storage call is interrupted."""


class StorageError(NotesError):
    """Raised by the storage client adapter for any backend failure."""


class ObjectNotFound(StorageError):
    """Raised by the storage client adapter when an object key is missing."""


class OperationError(NotesError):
    """
    A note operation failed.

    Attributes
    ----------
    operation : str
        One of "get", "set", "list", "delete".
    identifier : str
        The note identifier (or list prefix) involved.
    cause : BaseException | None
        The underlying storage client error.
    abort_error : BaseException | None
        Only meaningful for uploads: the error raised while aborting the
        upload after the primary failure. None when the abort succeeded or
        no abort was attempted.
    aborted : bool
        True when an abort was attempted for this failure.
    not_found : bool
        True when the storage backend reported that the object is missing.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        identifier: str,
        cause: Optional[BaseException] = None,
        abort_error: Optional[BaseException] = None,
        aborted: bool = False,
        not_found: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.identifier = identifier
        self.cause = cause
        self.abort_error = abort_error
        self.aborted = aborted
        self.not_found = not_found

    def __str__(self) -> str:
        text = self.message
        if self.cause is not None:
            text = f"{text}: {self.cause}"
        if self.abort_error is not None:
            text = f"{text}, abort failed: {self.abort_error}"
        return text


class MetadataParseWarning(UserWarning):
    """Emitted when an object's upload-time metadata cannot be parsed."""
