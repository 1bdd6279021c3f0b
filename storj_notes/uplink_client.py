"""
UplinkClient

This adapter wraps the official Storj Python bindings (`uplink-python`) and
exposes the stable interface described by the Protocols in
storj_notes/types.py:

    - request_access_with_passphrase / parse_access / open_project
    - UplinkProject: ensure_bucket, upload_object, download_object,
      list_objects, delete_object, close
    - UplinkUpload / UplinkDownload transfer handles

The bindings load a native library and return their own object and metadata
classes, so this wrapper normalizes them into ObjectInfo and plain dicts,
and translates StorjException into StorageError / ObjectNotFound. Nothing
outside this module imports `uplink_python`.
"""

from typing import Any, Dict, Iterator

from storj_notes.errors import ObjectNotFound, StorageError
from storj_notes.types import ObjectInfo


def _load_bindings() -> Dict[str, Any]:
    try:
        from uplink_python import errors, module_classes, uplink
    except Exception as exc:  # noqa: BLE001
        raise RuntimeError(
            "uplink-python is required for UplinkClient "
            "(pip install 'storj-notes[storj]')"
        ) from exc
    return {"errors": errors, "module_classes": module_classes, "uplink": uplink}


def _translate(bindings: Dict[str, Any], exc: Exception) -> StorageError:
    """Map a binding exception onto the notes error taxonomy."""
    errors = bindings["errors"]
    message = getattr(exc, "details", None) or str(exc)
    if isinstance(exc, errors.ObjectNotFoundError):
        return ObjectNotFound(message)
    return StorageError(message)


def _object_info(native: Any) -> ObjectInfo:
    """Convert an uplink_python Object into ObjectInfo."""
    custom: Dict[str, str] = {}
    native_custom = getattr(native, "custom", None)
    for entry in getattr(native_custom, "entries", None) or []:
        custom[entry.key] = entry.value
    return ObjectInfo(key=native.key, custom=custom)


class UplinkUpload:
    """Wraps an uplink_python Upload."""

    def __init__(self, bindings: Dict[str, Any], upload: Any) -> None:
        self._bindings = bindings
        self._upload = upload

    def write(self, data: bytes) -> int:
        try:
            return self._upload.write(data, len(data))
        except self._bindings["errors"].StorjException as exc:
            raise _translate(self._bindings, exc) from exc

    def set_custom_metadata(self, metadata: Dict[str, str]) -> None:
        classes = self._bindings["module_classes"]
        entries = [
            classes.CustomMetadataEntry(
                key=key,
                key_length=len(key.encode("utf-8")),
                value=value,
                value_length=len(value.encode("utf-8")),
            )
            for key, value in metadata.items()
        ]
        try:
            self._upload.set_custom_metadata(classes.CustomMetadata(entries, len(entries)))
        except self._bindings["errors"].StorjException as exc:
            raise _translate(self._bindings, exc) from exc

    def commit(self) -> None:
        try:
            self._upload.commit()
        except self._bindings["errors"].StorjException as exc:
            raise _translate(self._bindings, exc) from exc

    def abort(self) -> None:
        try:
            self._upload.abort()
        except self._bindings["errors"].StorjException as exc:
            raise _translate(self._bindings, exc) from exc


class UplinkDownload:
    """Wraps an uplink_python Download."""

    def __init__(self, bindings: Dict[str, Any], download: Any) -> None:
        self._bindings = bindings
        self._download = download

    def read_all(self) -> bytes:
        """
        Read the whole object into memory.

        Notes are small, so buffering is fine. Large payloads would need
        read_file() streaming instead.
        """
        try:
            size = self._download.file_size()
            chunks = []
            remaining = size
            while remaining > 0:
                data, read = self._download.read(remaining)
                if read == 0:
                    break
                chunks.append(bytes(data[:read]))
                remaining -= read
            return b"".join(chunks)
        except self._bindings["errors"].StorjException as exc:
            raise _translate(self._bindings, exc) from exc

    def info(self) -> ObjectInfo:
        try:
            return _object_info(self._download.info())
        except self._bindings["errors"].StorjException as exc:
            raise _translate(self._bindings, exc) from exc

    def close(self) -> None:
        try:
            self._download.close()
        except self._bindings["errors"].StorjException as exc:
            raise _translate(self._bindings, exc) from exc


class UplinkProject:
    """Wraps an uplink_python Project."""

    def __init__(self, bindings: Dict[str, Any], project: Any) -> None:
        self._bindings = bindings
        self._project = project

    def ensure_bucket(self, bucket: str) -> None:
        try:
            self._project.ensure_bucket(bucket)
        except self._bindings["errors"].StorjException as exc:
            raise _translate(self._bindings, exc) from exc

    def upload_object(self, bucket: str, key: str) -> UplinkUpload:
        try:
            upload = self._project.upload_object(bucket, key, None)
        except self._bindings["errors"].StorjException as exc:
            raise _translate(self._bindings, exc) from exc
        return UplinkUpload(self._bindings, upload)

    def download_object(self, bucket: str, key: str) -> UplinkDownload:
        try:
            download = self._project.download_object(bucket, key, None)
        except self._bindings["errors"].StorjException as exc:
            raise _translate(self._bindings, exc) from exc
        return UplinkDownload(self._bindings, download)

    def list_objects(
        self,
        bucket: str,
        prefix: str = "",
        recursive: bool = True,
        custom: bool = True,
    ) -> Iterator[ObjectInfo]:
        options = self._bindings["module_classes"].ListObjectsOptions(
            prefix=prefix, recursive=recursive, system=True, custom=custom
        )
        try:
            objects = self._project.list_objects(bucket, options)
        except self._bindings["errors"].StorjException as exc:
            raise _translate(self._bindings, exc) from exc
        for native in objects:
            if getattr(native, "is_prefix", False):
                continue
            yield _object_info(native)

    def delete_object(self, bucket: str, key: str) -> None:
        try:
            self._project.delete_object(bucket, key)
        except self._bindings["errors"].StorjException as exc:
            raise _translate(self._bindings, exc) from exc

    def close(self) -> None:
        try:
            self._project.close()
        except self._bindings["errors"].StorjException as exc:
            raise _translate(self._bindings, exc) from exc


class UplinkClient:
    """
    Adapter around the official Storj bindings.

    Constructing the client loads the native library, so it is only created
    after the CLI has validated its configuration.
    """

    def __init__(self) -> None:
        self._bindings = _load_bindings()
        self._uplink = self._bindings["uplink"].Uplink()

    def request_access_with_passphrase(
        self, satellite: str, api_key: str, passphrase: str
    ) -> Any:
        try:
            return self._uplink.request_access_with_passphrase(satellite, api_key, passphrase)
        except self._bindings["errors"].StorjException as exc:
            raise _translate(self._bindings, exc) from exc

    def parse_access(self, serialized: str) -> Any:
        try:
            return self._uplink.parse_access(serialized)
        except self._bindings["errors"].StorjException as exc:
            raise _translate(self._bindings, exc) from exc

    def open_project(self, access: Any) -> UplinkProject:
        try:
            project = access.open_project()
        except self._bindings["errors"].StorjException as exc:
            raise _translate(self._bindings, exc) from exc
        return UplinkProject(self._bindings, project)
