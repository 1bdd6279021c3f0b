"""
storj_notes/types.py

Centralized type definitions for the notes tool.

This module defines the normalized object view and the Protocols that
describe the storage client surface used by the Note Service. Keeping them
in one place gives:

    • a single contract between the service, the Storj adapter and tests
    • easy dependency injection of in-memory doubles
    • no import of the native Storj bindings outside uplink_client.py

The real client (uplink_client.UplinkClient) and the test doubles in
tests/dummy_storage.py both satisfy these Protocols structurally.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Protocol


# ---------------------------------------------------------------------------
# ObjectInfo
# ---------------------------------------------------------------------------
# The part of a storage object that the Note Model needs: its key and the
# custom metadata attached at upload time. The adapter converts the
# client's native object type into this shape.
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class ObjectInfo:
    key: str
    custom: Dict[str, str] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Transfer handles
# ---------------------------------------------------------------------------
class Upload(Protocol):
    """An in-progress upload. Must be finalized by commit() or abort()."""

    def write(self, data: bytes) -> int:
        ...

    def set_custom_metadata(self, metadata: Dict[str, str]) -> None:
        ...

    def commit(self) -> None:
        ...

    def abort(self) -> None:
        ...


class Download(Protocol):
    """An open download. Must be released with close()."""

    def read_all(self) -> bytes:
        ...

    def info(self) -> ObjectInfo:
        ...

    def close(self) -> None:
        ...


# ---------------------------------------------------------------------------
# Project and client
# ---------------------------------------------------------------------------
class Project(Protocol):
    """An open storage project. Must be released with close()."""

    def ensure_bucket(self, bucket: str) -> None:
        ...

    def upload_object(self, bucket: str, key: str) -> Upload:
        ...

    def download_object(self, bucket: str, key: str) -> Download:
        ...

    def list_objects(
        self,
        bucket: str,
        prefix: str = "",
        recursive: bool = True,
        custom: bool = True,
    ) -> Iterator[ObjectInfo]:
        ...

    def delete_object(self, bucket: str, key: str) -> None:
        ...

    def close(self) -> None:
        ...


class StorageClient(Protocol):
    """
    Entry point of the storage library.

    Access objects are opaque: callers only pass them back into
    open_project().
    """

    def request_access_with_passphrase(
        self, satellite: str, api_key: str, passphrase: str
    ) -> Any:
        ...

    def parse_access(self, serialized: str) -> Any:
        ...

    def open_project(self, access: Any) -> Project:
        ...
