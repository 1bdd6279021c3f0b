"""
storj_notes/models.py

Note Model: pure conversions from storage objects to notes.

A note is stored as one object. The identifier is the object key, the
message is the object body and the upload time lives in the custom metadata
entry UPLOAD_TIME_KEY, encoded as an RFC 3339 timestamp with second
precision (e.g. "2026-10-19T12:30:00Z").

Parsing never fails because of metadata: an unparsable upload time emits a
MetadataParseWarning and leaves `uploaded` as None.
"""

import re
import warnings
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from storj_notes.errors import MetadataParseWarning
from storj_notes.types import ObjectInfo

UPLOAD_TIME_KEY = "notes:upload-time"

_RFC3339 = re.compile(
    r"^(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})"
    r"[Tt](?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2})"
    r"(?:\.(?P<fraction>\d+))?"
    r"(?P<offset>[Zz]|[+-]\d{2}:\d{2})$"
)


@dataclass(frozen=True)
class NoteMeta:
    """Information about a note without its message."""

    identifier: str
    uploaded: Optional[datetime] = None


@dataclass(frozen=True)
class Note:
    """A stored note: metadata plus the message body."""

    meta: NoteMeta
    message: str

    @property
    def identifier(self) -> str:
        return self.meta.identifier

    @property
    def uploaded(self) -> Optional[datetime]:
        return self.meta.uploaded


# ---------------------------------------------------------------------------
# Timestamp encoding
# ---------------------------------------------------------------------------


def format_upload_time(moment: datetime) -> str:
    """
    Encode `moment` as RFC 3339 with second precision.

    A zero UTC offset is written as "Z"; naive datetimes are taken as UTC.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    base = moment.strftime("%Y-%m-%dT%H:%M:%S")
    offset = moment.utcoffset() or timedelta(0)
    if offset == timedelta(0):
        return base + "Z"
    minutes = int(offset.total_seconds()) // 60
    sign = "+" if minutes >= 0 else "-"
    hours, minutes = divmod(abs(minutes), 60)
    return f"{base}{sign}{hours:02d}:{minutes:02d}"


def parse_upload_time(text: str) -> datetime:
    """
    Decode an RFC 3339 timestamp into an aware datetime.

    Raises
    ------
    ValueError
        If `text` is not a valid RFC 3339 date-time.
    """
    match = _RFC3339.match(text.strip()) if isinstance(text, str) else None
    if match is None:
        raise ValueError(f"not an RFC 3339 timestamp: {text!r}")

    offset_text = match.group("offset")
    if offset_text in ("Z", "z"):
        tz = timezone.utc
    else:
        sign = -1 if offset_text[0] == "-" else 1
        hours, minutes = int(offset_text[1:3]), int(offset_text[4:6])
        if hours > 23 or minutes > 59:
            raise ValueError(f"invalid UTC offset in {text!r}")
        tz = timezone(sign * timedelta(hours=hours, minutes=minutes))

    fraction = match.group("fraction") or "0"
    microsecond = int(fraction[:6].ljust(6, "0"))

    # datetime() validates the calendar fields and raises ValueError.
    return datetime(
        int(match.group("year")),
        int(match.group("month")),
        int(match.group("day")),
        int(match.group("hour")),
        int(match.group("minute")),
        int(match.group("second")),
        microsecond,
        tzinfo=tz,
    )


# ---------------------------------------------------------------------------
# Object parsing
# ---------------------------------------------------------------------------


def parse_note_meta(info: ObjectInfo) -> NoteMeta:
    """Build NoteMeta from an object's key and custom metadata."""
    uploaded = None
    raw = (info.custom or {}).get(UPLOAD_TIME_KEY)
    if raw is not None:
        try:
            uploaded = parse_upload_time(raw)
        except ValueError:
            warnings.warn(
                f'failed to parse upload time "{raw}" of "{info.key}"',
                MetadataParseWarning,
                stacklevel=2,
            )
    return NoteMeta(identifier=info.key, uploaded=uploaded)


def parse_note(info: ObjectInfo, data: Union[bytes, str]) -> Note:
    """
    Build a Note from a downloaded body and its object info.

    Bytes are decoded as UTF-8 with replacement characters, so arbitrary
    byte sequences pass through without failing the parse.
    """
    if isinstance(data, bytes):
        message = data.decode("utf-8", errors="replace")
    else:
        message = data
    return Note(meta=parse_note_meta(info), message=message)
