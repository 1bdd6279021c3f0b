"""
Public API for the storj-notes package.

Callers can rely on:

    from storj_notes import NoteService, Note, NoteMeta
    from storj_notes import NotesConfig, resolve_access

without needing to know anything about the internal module layout.
"""

__version__ = "0.1.0"

from .access import resolve_access
from .cancellation import CancellationToken
from .config import NotesConfig
from .models import Note, NoteMeta, parse_note, parse_note_meta
from .service import NoteService

# Define the public API surface for `from storj_notes import *`
__all__ = [
    "__version__",
    "CancellationToken",
    "Note",
    "NoteMeta",
    "NoteService",
    "NotesConfig",
    "parse_note",
    "parse_note_meta",
    "resolve_access",
]
