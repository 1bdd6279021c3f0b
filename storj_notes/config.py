# storj_notes/config.py

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from storj_notes.errors import UsageError

# Every option can be supplied through an environment variable named
# NOTES_<OPTION>, e.g. NOTES_ACCESS or NOTES_BUCKET.
ENV_PREFIX = "NOTES_"

DEFAULT_BUCKET = "notes"


def load_env_file() -> None:
    """Load a .env file from the working directory into the environment."""
    load_dotenv()


def env_default(
    name: str,
    default: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Optional[str]:
    """
    Return NOTES_<NAME> from the environment, or `default` when it is
    missing or blank. Other values are returned unmodified; surrounding
    whitespace can be part of a passphrase.
    """
    source = os.environ if environ is None else environ
    value = source.get(ENV_PREFIX + name.upper())
    if value is None or not value.strip():
        return default
    return value


def _pick(flag: Optional[str], name: str, environ: Optional[Mapping[str, str]], default=None):
    if flag is not None and flag.strip():
        return flag
    return env_default(name, default, environ)


@dataclass(frozen=True)
class NotesConfig:
    """
    Resolved command-line configuration.

    Built once at startup from flags, environment variables and defaults,
    then validated before any storage collaborator is constructed.
    """

    passphrase: Optional[str] = None
    apikey: Optional[str] = None
    satellite: Optional[str] = None
    access: Optional[str] = None
    bucket: str = DEFAULT_BUCKET

    @classmethod
    def resolve(
        cls,
        *,
        passphrase: Optional[str] = None,
        apikey: Optional[str] = None,
        satellite: Optional[str] = None,
        access: Optional[str] = None,
        bucket: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "NotesConfig":
        """
        Resolve each option as `flag OR environment OR default`.

        Blank strings are treated as unset at every level. Non-blank values
        are kept exactly as given.
        """
        return cls(
            passphrase=_pick(passphrase, "passphrase", environ),
            apikey=_pick(apikey, "apikey", environ),
            satellite=_pick(satellite, "satellite", environ),
            access=_pick(access, "access", environ),
            bucket=_pick(bucket, "bucket", environ, DEFAULT_BUCKET),
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "NotesConfig":
        return cls.resolve(environ=environ)

    @property
    def has_passphrase(self) -> bool:
        return bool(self.passphrase and self.apikey and self.satellite)

    @property
    def has_access(self) -> bool:
        return bool(self.access)

    def validate(self) -> "NotesConfig":
        """
        Ensure at least one complete authentication form is present.

        Raises
        ------
        UsageError
            If neither the passphrase triple nor an access grant is set.
        """
        if not self.has_passphrase and not self.has_access:
            raise UsageError(
                "Authentication information not set:\n"
                "* --passphrase, --apikey, --satellite\n"
                "* --access"
            )
        return self
