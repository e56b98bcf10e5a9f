"""
Asset store — filesystem persistence for listing images.

Assets are addressed by a generated name rather than by path.  A name is
derived once, when the listing is created, from the author's per-user
sequence number, the author id and a digest of the author's email::

    Ads_<sequence>_auth_<author_id>_lg_<email_digest>

The digest reproduces the 32-bit signed string hash used by earlier
deployments, so names of already persisted images stay valid.

Replacing an image overwrites the bytes under the existing name; a
missing previous file is not an error.  Any ``OSError`` is logged and
re-raised as ``AssetIOFailure`` so a listing never ends up pointing at
an image that was not written.
"""
import logging
import re
from dataclasses import dataclass
from pathlib import Path

from adboard.config import Settings
from adboard.exceptions import AssetIOFailure, AssetNotFound

logger = logging.getLogger(__name__)

# Names are generated by ``asset_name``; anything else (including path
# separators) is rejected before touching the filesystem.
_ASSET_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def email_digest(email: str) -> int:
    """
    Return the signed 32-bit polynomial hash of *email*.

    ``h = 31 * h + unit`` over the UTF-16 code units of the string,
    wrapped to a signed 32-bit integer.
    """
    encoded = email.encode("utf-16-be")
    h = 0
    for i in range(0, len(encoded), 2):
        unit = (encoded[i] << 8) | encoded[i + 1]
        h = (31 * h + unit) & 0xFFFFFFFF
    return h - (1 << 32) if h & 0x80000000 else h


def asset_name(sequence_number: int, author_id: int, digest: int) -> str:
    return f"Ads_{sequence_number}_auth_{author_id}_lg_{digest}"


@dataclass(frozen=True)
class StorageConfig:
    base_url: str
    directory: Path

    @classmethod
    def from_settings(cls, settings: Settings) -> "StorageConfig":
        return cls(base_url=settings.ASSET_BASE_URL.rstrip("/"), directory=Path(settings.ASSET_DIR))


class AssetStore:
    def __init__(self, config: StorageConfig) -> None:
        self.config = config

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def store(self, author_id: int, sequence_number: int, digest: int, data: bytes) -> str:
        """Persist *data* under a freshly derived name and return the name."""
        name = asset_name(sequence_number, author_id, digest)
        self._write(name, data)
        logger.info("Stored asset %s (%d bytes)", name, len(data))
        return name

    def replace(self, existing_name: str, data: bytes) -> str:
        """
        Overwrite the bytes stored under *existing_name*.

        The name is reused, so the listing's image reference does not
        change.  Works whether or not the previous file still exists.
        """
        path = self._path(existing_name)
        if not path.exists():
            logger.info("Asset %s missing before replacement; writing a new file", existing_name)
        self._write(existing_name, data)
        logger.info("Replaced asset %s (%d bytes)", existing_name, len(data))
        return existing_name

    def fetch(self, name: str) -> bytes:
        """Return the raw bytes of *name*, raising ``AssetNotFound`` if unknown."""
        if not _ASSET_NAME_RE.match(name):
            raise AssetNotFound(name)
        path = self._path(name)
        if not path.is_file():
            raise AssetNotFound(name)
        try:
            return path.read_bytes()
        except OSError as exc:
            logger.error("Reading asset %s failed: %s", name, exc)
            raise AssetIOFailure(name, str(exc)) from exc

    def url_for(self, name: str | None) -> str | None:
        if name is None:
            return None
        return f"{self.config.base_url}/{name}"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _path(self, name: str) -> Path:
        return self.config.directory / name

    def _write(self, name: str, data: bytes) -> None:
        try:
            self.config.directory.mkdir(parents=True, exist_ok=True)
            self._path(name).write_bytes(data)
        except OSError as exc:
            logger.error("Writing asset %s failed: %s", name, exc)
            raise AssetIOFailure(name, str(exc)) from exc
