"""
Image Store Tests

Tests for fetching, deleting and saving images on local disk and over
HTTP (served by an httpx.MockTransport).
"""

import re

import httpx
import pytest

from photoguard.errors import ImageFetchError
from photoguard.providers import LocalNsfwAdapter
from photoguard.storage import ImageStore, is_remote, preview


def mock_http(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestFetchImage:
    """fetch_image() for local files and URLs."""

    @pytest.mark.asyncio
    async def test_fetch_absolute_path(self, image_store, tmp_path, png_bytes):
        (tmp_path / "uploads").mkdir()
        path = tmp_path / "uploads" / "photo.png"
        path.write_bytes(png_bytes)

        assert await image_store.fetch_image(str(path)) == png_bytes

    @pytest.mark.asyncio
    async def test_fetch_relative_path(self, image_store, tmp_path, png_bytes):
        """Relative references resolve against the base directory."""
        (tmp_path / "uploads").mkdir()
        (tmp_path / "uploads" / "a.png").write_bytes(png_bytes)

        assert await image_store.fetch_image("uploads/a.png") == png_bytes

    @pytest.mark.asyncio
    async def test_missing_file(self, image_store):
        with pytest.raises(ImageFetchError, match="not found") as exc_info:
            await image_store.fetch_image("uploads/nope.jpg")

        assert exc_info.value.reference == "uploads/nope.jpg"

    @pytest.mark.asyncio
    async def test_empty_file(self, image_store, tmp_path):
        (tmp_path / "uploads").mkdir()
        (tmp_path / "uploads" / "empty.jpg").write_bytes(b"")

        with pytest.raises(ImageFetchError, match="empty"):
            await image_store.fetch_image("uploads/empty.jpg")

    @pytest.mark.asyncio
    async def test_oversized_file(self, tmp_path):
        store = ImageStore(upload_dir=tmp_path, max_bytes=10, base_dir=tmp_path)
        (tmp_path / "big.jpg").write_bytes(b"x" * 11)

        with pytest.raises(ImageFetchError, match="limit is 10"):
            await store.fetch_image("big.jpg")

    @pytest.mark.asyncio
    async def test_fetch_url(self, image_store, png_bytes):
        image_store._http = mock_http(lambda request: httpx.Response(200, content=png_bytes))

        assert await image_store.fetch_image("https://cdn.example.com/a.png") == png_bytes
        await image_store.aclose()

    @pytest.mark.asyncio
    async def test_fetch_url_http_error(self, image_store):
        image_store._http = mock_http(lambda request: httpx.Response(404))

        with pytest.raises(ImageFetchError, match="download failed"):
            await image_store.fetch_image("https://cdn.example.com/missing.png")
        await image_store.aclose()


class TestDeleteImage:
    """Best-effort deletion."""

    @pytest.mark.asyncio
    async def test_delete_existing(self, image_store, tmp_path):
        (tmp_path / "uploads").mkdir()
        path = tmp_path / "uploads" / "reject.jpg"
        path.write_bytes(b"data")

        assert await image_store.delete_image(str(path)) is True
        assert not path.exists()

    @pytest.mark.asyncio
    async def test_delete_missing_does_not_raise(self, image_store):
        assert await image_store.delete_image("uploads/already-gone.jpg") is False

    @pytest.mark.asyncio
    async def test_remote_images_left_alone(self, image_store):
        assert await image_store.delete_image("https://cdn.example.com/a.png") is False


class TestSaveUpload:
    """Upload persistence."""

    @pytest.mark.asyncio
    async def test_random_name_keeps_extension(self, image_store, tmp_path, png_bytes):
        reference = await image_store.save_upload(png_bytes, "Holiday Pic.PNG")

        assert re.fullmatch(r"[0-9a-f]{32}\.png", reference.rsplit("/", 1)[-1])
        assert reference.startswith(str(tmp_path / "uploads"))
        assert await image_store.fetch_image(reference) == png_bytes

    @pytest.mark.asyncio
    async def test_names_are_unique(self, image_store, png_bytes):
        first = await image_store.save_upload(png_bytes, "a.jpg")
        second = await image_store.save_upload(png_bytes, "a.jpg")

        assert first != second

    @pytest.mark.asyncio
    async def test_oversized_upload_refused(self, tmp_path):
        store = ImageStore(upload_dir=tmp_path, max_bytes=4, base_dir=tmp_path)

        with pytest.raises(ImageFetchError):
            await store.save_upload(b"12345", "a.jpg")


class TestHelpers:
    def test_is_remote(self):
        assert is_remote("https://x/a.png")
        assert is_remote("http://x/a.png")
        assert not is_remote("uploads/a.png")

    def test_preview_truncates(self):
        assert preview("a" * 60) == "a" * 50 + "..."
        assert preview("short") == "short"


class TestStorageArea:
    """Local references are confined to the storage area."""

    @pytest.mark.asyncio
    async def test_parent_traversal_refused(self, image_store, tmp_path, png_bytes):
        (tmp_path / "outside.png").write_bytes(png_bytes)

        with pytest.raises(ImageFetchError, match="outside the storage area"):
            await image_store.fetch_image("uploads/../outside.png")

    @pytest.mark.asyncio
    async def test_absolute_path_outside_refused(self, image_store):
        with pytest.raises(ImageFetchError, match="outside the storage area"):
            await image_store.fetch_image("/etc/hostname")

    @pytest.mark.asyncio
    async def test_outside_image_never_reaches_classifier(
        self, image_store, tmp_path, png_bytes, fake_classifier
    ):
        """Moderating a path outside the storage area fails before classification."""
        (tmp_path / "outside.png").write_bytes(png_bytes)
        classifier = fake_classifier(prediction=[])
        adapter = LocalNsfwAdapter(classifier, image_store)

        with pytest.raises(ImageFetchError):
            await adapter.moderate_image("../outside.png")

        assert classifier.calls == []

    @pytest.mark.asyncio
    async def test_delete_outside_is_refused(self, image_store, tmp_path):
        victim = tmp_path / "keep.txt"
        victim.write_bytes(b"data")

        assert await image_store.delete_image(str(victim)) is False
        assert victim.exists()

    @pytest.mark.asyncio
    async def test_extra_local_roots(self, tmp_path, png_bytes):
        photos = tmp_path / "photos"
        photos.mkdir()
        (photos / "a.png").write_bytes(png_bytes)
        store = ImageStore(upload_dir=tmp_path / "uploads", base_dir=tmp_path, local_roots=[photos])

        assert await store.fetch_image(str(photos / "a.png")) == png_bytes


class TestDownloadLimit:
    """Remote downloads stop at the size limit."""

    @pytest.mark.asyncio
    async def test_declared_length_over_limit(self, tmp_path):
        store = ImageStore(upload_dir=tmp_path, max_bytes=10, base_dir=tmp_path)
        store._http = mock_http(lambda request: httpx.Response(200, content=b"x" * 64))

        with pytest.raises(ImageFetchError, match="Image is 64 bytes, limit is 10"):
            await store.fetch_image("https://cdn.example.com/big.png")
        await store.aclose()

    @pytest.mark.asyncio
    async def test_undeclared_length_stops_reading(self, tmp_path):
        chunks_sent = []

        async def body():
            for _ in range(100):
                chunks_sent.append(1)
                yield b"x" * 8

        store = ImageStore(upload_dir=tmp_path, max_bytes=20, base_dir=tmp_path)
        store._http = mock_http(lambda request: httpx.Response(200, content=body()))

        with pytest.raises(ImageFetchError, match="limit is 20"):
            await store.fetch_image("https://cdn.example.com/stream.png")

        assert len(chunks_sent) < 100
        await store.aclose()
