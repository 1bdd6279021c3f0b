# storj_notes/access.py

from typing import Any, Optional

from storj_notes.cancellation import CancellationToken, run_cancellable
from storj_notes.config import NotesConfig
from storj_notes.errors import AuthError, OperationCancelled
from storj_notes.types import StorageClient


def resolve_access(
    config: NotesConfig,
    client: StorageClient,
    token: Optional[CancellationToken] = None,
) -> Any:
    """
    Turn the configured credentials into an opaque access grant.

    The passphrase triple wins when both forms are configured; requesting it
    contacts the satellite. A serialized access grant is parsed locally.

    Raises
    ------
    UsageError
        If neither form is complete (the client is never called).
    AuthError
        If the client fails to request or parse the grant.
    """
    config.validate()

    try:
        if config.has_passphrase:
            return run_cancellable(
                token,
                client.request_access_with_passphrase,
                config.satellite,
                config.apikey,
                config.passphrase,
            )
        return run_cancellable(token, client.parse_access, config.access)
    except OperationCancelled:
        raise
    except Exception as exc:
        raise AuthError(f"unable to load access grant: {exc}") from exc
