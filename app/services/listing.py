import logging
from typing import Iterable, List

from app.services.storage import StorageBackend, normalize_key

logger = logging.getLogger(__name__)

__all__ = ["ListingAdapter", "VIDEO_EXTENSIONS", "IMAGE_EXTENSIONS"]

VIDEO_EXTENSIONS = frozenset({".mp4"})
IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif"})


class ListingAdapter:
    """Turns a raw storage listing into public URLs for gallery endpoints."""

    def __init__(self, backend: StorageBackend):
        self.backend = backend

    def list(self, prefix: str, extensions: Iterable[str]) -> List[str]:
        """
        Lists files directly under `prefix` whose extension is in `extensions`.

        Directories are skipped, matching is case-insensitive and the backend's
        ordering is preserved. The whole listing is materialized at once.
        """
        wanted = tuple(ext.lower() for ext in extensions)
        prefix = normalize_key(prefix)
        if prefix and not prefix.endswith("/"):
            prefix += "/"

        entries = self.backend.list(prefix)
        urls = [
            self.backend.public_url(f"{prefix}{entry.name}")
            for entry in entries
            if not entry.is_directory and entry.name.lower().endswith(wanted)
        ]
        logger.info(f"Found {len(urls)} matching files under '{prefix}' ({len(entries)} entries listed)")
        return urls
