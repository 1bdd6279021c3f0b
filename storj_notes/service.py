"""
storj_notes/service.py

NoteService: note operations on top of one open storage project.

The service owns a project handle and a bucket name for its whole lifetime:

    NoteService.open(...)   →  Open   (project opened, bucket ensured)
    get / set / list / delete         (valid only while Open)
    close()                 →  Closed (project released; further calls fail)

Each operation translates into one or more storage client calls. Every call
that may block on the network runs through `run_cancellable`, so an
interrupt unwinds it promptly, and every transfer handle is released on
every exit path.
"""

from contextlib import closing
from datetime import datetime, timezone
from typing import Any, Callable, Iterator, List, Optional

from storj_notes.cancellation import CancellationToken, run_cancellable
from storj_notes.errors import (
    NotesError,
    ObjectNotFound,
    OperationCancelled,
    OperationError,
    ServiceClosedError,
    ServiceOpenError,
    StorageError,
)
from storj_notes.models import (
    UPLOAD_TIME_KEY,
    Note,
    NoteMeta,
    format_upload_time,
    parse_note,
    parse_note_meta,
)
from storj_notes.types import ObjectInfo, Project, StorageClient, Upload


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _operation_error(
    operation: str,
    identifier: str,
    message: str,
    cause: BaseException,
    **kwargs: Any,
) -> OperationError:
    return OperationError(
        message,
        operation=operation,
        identifier=identifier,
        cause=cause,
        not_found=isinstance(cause, ObjectNotFound),
        **kwargs,
    )


class UploadSession:
    """
    Scoped upload handle that is finalized exactly once.

    `commit()` publishes the object. `abort()` discards it and returns the
    abort's own error instead of raising, so callers can report it next to
    the primary failure. Once finalized, further abort() calls are no-ops.
    """

    def __init__(self, upload: Upload) -> None:
        self._upload = upload
        self.finalized = False

    def write(self, data: bytes) -> None:
        view = memoryview(data)
        while view:
            written = self._upload.write(bytes(view))
            if written <= 0:
                raise StorageError(f"short write: {len(view)} bytes left")
            view = view[written:]

    def set_custom_metadata(self, metadata: dict) -> None:
        self._upload.set_custom_metadata(metadata)

    def commit(self) -> None:
        self.finalized = True
        self._upload.commit()

    def abort(self) -> Optional[BaseException]:
        if self.finalized:
            return None
        self.finalized = True
        try:
            self._upload.abort()
        except Exception as exc:  # noqa: BLE001 - reported as OperationError.abort_error
            return exc
        return None


class NoteService:
    """Get, set, list and delete notes stored as objects in one bucket."""

    def __init__(
        self,
        project: Project,
        bucket: str,
        token: Optional[CancellationToken] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._project = project
        self.bucket = bucket
        self._token = token
        self._clock = clock or _utcnow
        self._closed = False

    # -----------------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------------

    @classmethod
    def open(
        cls,
        client: StorageClient,
        access: Any,
        bucket: str,
        token: Optional[CancellationToken] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> "NoteService":
        """
        Open the project and ensure the notes bucket exists.

        Both steps must succeed. When ensuring the bucket fails, the project
        is closed again before the error is raised.

        Raises
        ------
        ServiceOpenError
            If the project cannot be opened or the bucket cannot be ensured.
        OperationCancelled
            If the token fires while either step is in flight.
        """
        try:
            project = run_cancellable(
                token,
                client.open_project,
                access,
                on_abandon=lambda handle: handle.close(),
            )
        except OperationCancelled:
            raise
        except Exception as exc:
            raise ServiceOpenError(f"failed to open project: {exc}") from exc

        try:
            run_cancellable(token, project.ensure_bucket, bucket)
        except OperationCancelled:
            project.close()
            raise
        except Exception as exc:
            project.close()
            raise ServiceOpenError(f'failed to ensure bucket "{bucket}": {exc}') from exc

        return cls(project, bucket, token=token, clock=clock)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release the project handle. Calling close() again is a no-op."""
        if self._closed:
            return
        self._closed = True
        try:
            self._project.close()
        except Exception as exc:
            raise NotesError(f"failed to close project: {exc}") from exc

    def __enter__(self) -> "NoteService":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _require_open(self) -> None:
        if self._closed:
            raise ServiceClosedError("note service is closed")

    def _token_for(self, token: Optional[CancellationToken]) -> Optional[CancellationToken]:
        return token if token is not None else self._token

    # -----------------------------------------------------------------------
    # Operations
    # -----------------------------------------------------------------------

    def get(self, identifier: str, token: Optional[CancellationToken] = None) -> Note:
        """
        Download a note.

        The whole body is read into memory; notes are expected to be small.
        """
        self._require_open()
        token = self._token_for(token)

        try:
            download = run_cancellable(
                token,
                self._project.download_object,
                self.bucket,
                identifier,
                on_abandon=lambda handle: handle.close(),
            )
        except OperationCancelled:
            raise
        except Exception as exc:
            raise _operation_error(
                "get", identifier, f'failed to start download "{identifier}"', exc
            ) from exc

        try:
            with closing(download):
                data = run_cancellable(token, download.read_all)
                info = download.info()
        except OperationCancelled:
            raise
        except Exception as exc:
            raise _operation_error(
                "get", identifier, f'failed to download "{identifier}"', exc
            ) from exc

        return parse_note(info, data)

    def set(
        self,
        identifier: str,
        value: str,
        token: Optional[CancellationToken] = None,
    ) -> None:
        """
        Upload a note and stamp it with the current time.

        A failed write or metadata update aborts the upload; the abort's own
        outcome is attached to the raised OperationError as `abort_error`.
        A failed commit is reported as-is.
        """
        self._require_open()
        token = self._token_for(token)

        try:
            upload = run_cancellable(
                token,
                self._project.upload_object,
                self.bucket,
                identifier,
                on_abandon=lambda upload: upload.abort(),
            )
        except OperationCancelled:
            raise
        except Exception as exc:
            raise _operation_error(
                "set", identifier, f'failed to start upload "{identifier}"', exc
            ) from exc

        session = UploadSession(upload)

        # Notes are small, so the whole value is written in one go.
        try:
            run_cancellable(token, session.write, value.encode("utf-8"))
        except OperationCancelled:
            session.abort()
            raise
        except Exception as exc:
            raise _operation_error(
                "set",
                identifier,
                f'failed to upload "{identifier}"',
                exc,
                abort_error=session.abort(),
                aborted=True,
            ) from exc

        metadata = {UPLOAD_TIME_KEY: format_upload_time(self._clock())}
        try:
            run_cancellable(token, session.set_custom_metadata, metadata)
        except OperationCancelled:
            session.abort()
            raise
        except Exception as exc:
            raise _operation_error(
                "set",
                identifier,
                f'failed to set metadata "{identifier}"',
                exc,
                abort_error=session.abort(),
                aborted=True,
            ) from exc

        try:
            run_cancellable(token, session.commit)
        except OperationCancelled:
            raise
        except Exception as exc:
            raise _operation_error(
                "set", identifier, f'failed commit "{identifier}"', exc
            ) from exc

    def iter_list(self, prefix: str = "") -> Iterator[NoteMeta]:
        """
        Lazily enumerate notes whose identifier starts with `prefix`.

        Storage errors surface from the iterator as they happen, as the same
        OperationError `list()` raises. Prefer `list()`, which fails as a
        whole and honours cancellation.
        """
        self._require_open()
        return self._iter_list(prefix)

    def _iter_list(self, prefix: str) -> Iterator[NoteMeta]:
        try:
            for info in self._project.list_objects(
                self.bucket, prefix=prefix, recursive=True, custom=True
            ):
                yield parse_note_meta(info)
        except Exception as exc:
            raise _operation_error(
                "list", prefix, f'iteration failed (prefix="{prefix}")', exc
            ) from exc

    def list(
        self, prefix: str = "", token: Optional[CancellationToken] = None
    ) -> List[NoteMeta]:
        """
        Return metadata of every note whose identifier starts with `prefix`.

        Enumeration is recursive and keeps the backend's order. If the
        backend fails midway, partial results are discarded.
        """
        self._require_open()
        token = self._token_for(token)

        def _collect() -> List[ObjectInfo]:
            return [
                info
                for info in self._project.list_objects(
                    self.bucket, prefix=prefix, recursive=True, custom=True
                )
            ]

        try:
            infos = run_cancellable(token, _collect)
        except OperationCancelled:
            raise
        except Exception as exc:
            raise _operation_error(
                "list", prefix, f'iteration failed (prefix="{prefix}")', exc
            ) from exc

        return [parse_note_meta(info) for info in infos]

    def delete(self, identifier: str, token: Optional[CancellationToken] = None) -> None:
        """Delete a note. Backend errors, including not-found, are raised."""
        self._require_open()
        token = self._token_for(token)

        try:
            run_cancellable(token, self._project.delete_object, self.bucket, identifier)
        except OperationCancelled:
            raise
        except Exception as exc:
            raise _operation_error(
                "delete", identifier, f'failed to delete "{identifier}"', exc
            ) from exc
