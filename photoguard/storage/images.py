"""
Image Store - the file-storage boundary consumed by moderation.

Provides the three operations the moderation core needs from storage:
- fetch_image(): raw bytes for a local path or a remote URL
- delete_image(): best-effort removal of a rejected upload
- save_upload(): persist an uploaded file under a random name

Remote images are downloaded with a lazily created httpx.AsyncClient.
"""

import asyncio
import logging
import secrets
from pathlib import Path
from typing import Iterable

import httpx

from photoguard.config import get_settings
from photoguard.errors import ImageFetchError

logger = logging.getLogger(__name__)


def is_remote(reference: str) -> bool:
    """Check whether a reference is an http(s) URL rather than a local path."""
    return reference.startswith(("http://", "https://"))


def preview(reference: str, length: int = 50) -> str:
    """Truncate a reference for log lines."""
    return reference if len(reference) <= length else reference[:length] + "..."


class ImageStore:
    """
    Local-disk image storage with remote fetch support.

    Relative paths are resolved against base_dir (default: the process
    working directory) so that references saved by the upload flow can
    be read back by every classifier. Local references must stay inside
    local_roots (default: the upload directory); anything else is
    refused before the file is opened.
    """

    def __init__(
        self,
        upload_dir: str | Path | None = None,
        fetch_timeout: float | None = None,
        max_bytes: int | None = None,
        base_dir: str | Path | None = None,
        local_roots: Iterable[str | Path] | None = None,
    ) -> None:
        settings = get_settings()
        self._upload_dir = Path(upload_dir or settings.upload_dir)
        self._fetch_timeout = fetch_timeout or settings.image_fetch_timeout_seconds
        self._max_bytes = max_bytes or settings.max_upload_bytes
        self._base_dir = Path(base_dir) if base_dir else Path.cwd()
        self._upload_root = self._absolute(self._upload_dir).resolve()
        if local_roots is None:
            self._local_roots: tuple[Path, ...] = (self._upload_root,)
        else:
            self._local_roots = tuple(self._absolute(Path(r)).resolve() for r in local_roots)
        self._http: httpx.AsyncClient | None = None

    @property
    def http(self) -> httpx.AsyncClient:
        """Get the HTTP client (lazy initialization)."""
        if self._http is None:
            self._http = httpx.AsyncClient(
                timeout=self._fetch_timeout, follow_redirects=True
            )
            logger.debug("Initialized image download client")
        return self._http

    @property
    def upload_dir(self) -> Path:
        return self._upload_dir

    @property
    def max_bytes(self) -> int:
        return self._max_bytes

    @property
    def local_roots(self) -> tuple[Path, ...]:
        return self._local_roots

    def _absolute(self, path: Path) -> Path:
        return path if path.is_absolute() else self._base_dir / path

    def resolve(self, reference: str) -> Path:
        """
        Resolve a local reference to an absolute path.

        Raises:
            ImageFetchError: If the path lies outside every local root
        """
        path = self._absolute(Path(reference)).resolve()
        if not any(path.is_relative_to(root) for root in self._local_roots):
            raise ImageFetchError(reference, f"Image path is outside the storage area: {reference}")
        return path

    async def fetch_image(self, reference: str) -> bytes:
        """
        Read the raw bytes of an image.

        Args:
            reference: Local file path (absolute or relative) or http(s) URL

        Returns:
            Encoded image bytes

        Raises:
            ImageFetchError: If the file is missing or outside the storage
                             area, the download fails, or the payload
                             exceeds max_upload_bytes
        """
        if is_remote(reference):
            data = await self._download(reference)
        else:
            path = self.resolve(reference)
            if not path.is_file():
                raise ImageFetchError(reference, f"Image file not found: {path}")
            try:
                data = await asyncio.to_thread(path.read_bytes)
            except OSError as e:
                raise ImageFetchError(reference, f"Image file unreadable: {e}") from e

        if not data:
            raise ImageFetchError(reference, "Image is empty")
        if len(data) > self._max_bytes:
            raise ImageFetchError(
                reference,
                f"Image is {len(data)} bytes, limit is {self._max_bytes}",
            )
        return data

    async def _download(self, url: str) -> bytes:
        """Stream a remote image, stopping as soon as it exceeds the size limit."""
        try:
            async with self.http.stream("GET", url) as response:
                response.raise_for_status()

                declared = response.headers.get("content-length", "")
                if declared.isdigit() and int(declared) > self._max_bytes:
                    raise ImageFetchError(
                        url, f"Image is {declared} bytes, limit is {self._max_bytes}"
                    )

                body = bytearray()
                async for chunk in response.aiter_bytes():
                    body.extend(chunk)
                    if len(body) > self._max_bytes:
                        raise ImageFetchError(
                            url,
                            f"Image is at least {len(body)} bytes, limit is {self._max_bytes}",
                        )
        except httpx.HTTPError as e:
            raise ImageFetchError(url, f"Image download failed: {e}") from e
        return bytes(body)

    async def delete_image(self, reference: str) -> bool:
        """
        Delete an image, best effort.

        Failures are logged, never raised. Remote images are not owned by
        this store and are left untouched.

        Returns:
            True if a file was removed
        """
        if is_remote(reference):
            logger.warning(f"Not deleting remote image: {preview(reference)}")
            return False

        try:
            path = self.resolve(reference)
        except ImageFetchError as e:
            logger.warning(f"Not deleting image: {e}")
            return False

        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            logger.warning(f"Image already gone, nothing to delete: {path}")
            return False
        except OSError as e:
            logger.warning(f"Failed to delete image {path}: {e}")
            return False

        logger.info(f"Deleted image: {path}")
        return True

    async def save_upload(self, data: bytes, original_filename: str | None) -> str:
        """
        Save an uploaded image under a random 32-hex-character name.

        The original extension is kept so decoders can sniff the format.

        Returns:
            Reference (path string) of the saved file
        """
        if len(data) > self._max_bytes:
            raise ImageFetchError(
                original_filename or "<upload>",
                f"Upload is {len(data)} bytes, limit is {self._max_bytes}",
            )

        suffix = Path(original_filename).suffix.lower() if original_filename else ""
        directory = self._upload_root
        path = directory / f"{secrets.token_hex(16)}{suffix}"

        def _write() -> None:
            directory.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)

        await asyncio.to_thread(_write)
        logger.debug(f"Saved upload to {path}")
        return str(path)

    async def aclose(self) -> None:
        """Close the HTTP client if one was created."""
        if self._http is not None:
            await self._http.aclose()
            self._http = None


_image_store: ImageStore | None = None


def get_image_store() -> ImageStore:
    """
    Get the global image store instance.

    Returns:
        The singleton ImageStore instance
    """
    global _image_store
    if _image_store is None:
        _image_store = ImageStore()
    return _image_store
