import os
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

import requests

from app.core.exceptions import (
    LocalUploadError,
    RemoteStorageError,
    RemoteUploadError,
)
from app.schemas.upload import OUTPUT_CONTENT_TYPE, StorageEntry

logger = logging.getLogger(__name__)

__all__ = ["StorageBackend", "RemoteCDNBackend", "LocalDiskBackend", "normalize_key"]


def normalize_key(key: str) -> str:
    """Strips leading slashes so keys can be joined onto base URLs and dirs."""
    return key.lstrip("/")


class StorageBackend(ABC):
    """Capability set shared by every object store the upload pipeline can write to."""

    name: str = "storage"

    @abstractmethod
    def put(self, buffer: bytes, key: str, content_type: str = OUTPUT_CONTENT_TYPE) -> str:
        """Stores `buffer` under `key` and returns its public URL."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Removes the object at `key`. Deleting a missing object is not an error."""

    @abstractmethod
    def list(self, prefix: str = "") -> List[StorageEntry]:
        """Raw listing of the entries directly under `prefix`."""

    @abstractmethod
    def public_url(self, key: str) -> str:
        """URL under which the object at `key` is served."""


class RemoteCDNBackend(StorageBackend):
    """
    Bunny.net-style object storage: authenticated PUT/GET/DELETE against the
    storage API, public reads through the pull zone (CDN) base URL.
    """

    name = "remote"

    def __init__(
        self,
        access_key: str,
        storage_zone: str,
        base_url: str,
        cdn_base_url: str,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.access_key = access_key
        self.storage_zone = storage_zone.strip("/")
        self.base_url = base_url.rstrip("/")
        self.cdn_base_url = cdn_base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

        logger.info(
            f"RemoteCDNBackend initialized: zone='{self.storage_zone}', base_url='{self.base_url}', "
            f"api key {'set' if self.access_key else 'NOT set'}"
        )

    def storage_url(self, key: str) -> str:
        return f"{self.base_url}/{self.storage_zone}/{normalize_key(key)}"

    def public_url(self, key: str) -> str:
        return f"{self.cdn_base_url}/{normalize_key(key)}"

    def _headers(self, **extra) -> dict:
        headers = {"AccessKey": self.access_key}
        headers.update(extra)
        return headers

    def put(self, buffer: bytes, key: str, content_type: str = OUTPUT_CONTENT_TYPE) -> str:
        if not self.access_key:
            raise RemoteUploadError("Remote storage access key is not configured.", operation="put")

        url = self.storage_url(key)
        logger.info(f"Uploading {len(buffer)} bytes to remote storage: {url}")
        try:
            response = self.session.put(
                url,
                data=buffer,
                headers=self._headers(**{"Content-Type": content_type}),
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            logger.error(f"Remote storage upload timed out after {self.timeout}s for key '{key}'")
            raise RemoteUploadError(f"Upload timed out: {e}", operation="put") from e
        except requests.RequestException as e:
            logger.error(f"Network error uploading '{key}' to remote storage: {e}")
            raise RemoteUploadError(f"Upload failed: {e}", operation="put") from e

        if not 200 <= response.status_code < 300:
            logger.error(f"Remote storage rejected upload of '{key}': {response.status_code} {response.text[:200]}")
            raise RemoteUploadError(
                f"Remote storage returned status {response.status_code}",
                operation="put",
                status_code=response.status_code,
            )

        cdn_url = self.public_url(key)
        logger.info(f"Remote upload complete, CDN URL: {cdn_url}")
        return cdn_url

    def delete(self, key: str) -> bool:
        url = self.storage_url(key)
        try:
            response = self.session.delete(url, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Network error deleting '{key}' from remote storage: {e}")
            raise RemoteStorageError(f"Delete failed: {e}", operation="delete") from e

        if response.status_code == 404:
            logger.debug(f"Remote object '{key}' already absent")
            return True
        if not 200 <= response.status_code < 300:
            raise RemoteStorageError(
                f"Remote storage returned status {response.status_code}",
                operation="delete",
                status_code=response.status_code,
            )
        return True

    def list(self, prefix: str = "") -> List[StorageEntry]:
        url = self.storage_url(prefix)
        logger.info(f"Listing remote storage: {url}")
        try:
            response = self.session.get(
                url,
                headers=self._headers(Accept="application/json"),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Network error listing '{prefix}' in remote storage: {e}")
            raise RemoteStorageError(f"Listing failed: {e}", operation="list") from e

        if not 200 <= response.status_code < 300:
            raise RemoteStorageError(
                f"Remote storage returned status {response.status_code}",
                operation="list",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
            return [StorageEntry.model_validate(item) for item in payload]
        except (ValueError, TypeError) as e:
            logger.error(f"Unexpected listing payload for '{prefix}': {e}", exc_info=True)
            raise RemoteStorageError(f"Malformed listing response: {e}", operation="list") from e


class LocalDiskBackend(StorageBackend):
    """
    Availability fallback that writes objects below a local directory served as
    static files. Not durable across redeployments on stateless hosts.
    """

    name = "local"

    def __init__(self, base_dir: str, static_route_prefix: str = "/images"):
        self.base_dir = Path(base_dir).resolve()
        self.static_route_prefix = "/" + static_route_prefix.strip("/")

    def _local_path(self, key: str) -> Path:
        candidate = (self.base_dir / normalize_key(key)).resolve()
        try:
            candidate.relative_to(self.base_dir)
        except ValueError as e:
            raise LocalUploadError(f"Key '{key}' escapes the local storage directory.", operation="resolve") from e
        return candidate

    def public_url(self, key: str) -> str:
        return f"{self.static_route_prefix}/{normalize_key(key)}"

    def put(self, buffer: bytes, key: str, content_type: str = OUTPUT_CONTENT_TYPE) -> str:
        path = self._local_path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "wb") as f:
                f.write(buffer)
        except OSError as e:
            logger.error(f"Failed to save '{key}' to local storage at '{path}': {e}", exc_info=True)
            raise LocalUploadError(f"Failed to save file locally: {e}", operation="put") from e

        logger.info(f"Saved {len(buffer)} bytes to local storage: {path}")
        return self.public_url(key)

    def delete(self, key: str) -> bool:
        path = self._local_path(key)
        try:
            os.remove(path)
            logger.info(f"Deleted local object '{key}'")
        except FileNotFoundError:
            logger.debug(f"Local object '{key}' already absent")
        except OSError as e:
            raise LocalUploadError(f"Failed to delete file: {e}", operation="delete") from e
        return True

    def list(self, prefix: str = "") -> List[StorageEntry]:
        directory = self._local_path(prefix)
        if not directory.is_dir():
            return []
        entries = []
        for child in sorted(directory.iterdir(), key=lambda p: p.name):
            entries.append(StorageEntry(
                name=child.name,
                is_directory=child.is_dir(),
                length=None if child.is_dir() else child.stat().st_size,
            ))
        return entries
