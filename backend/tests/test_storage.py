"""Tests for local document storage."""

import pytest

from freight_intake.exceptions import DocumentNotFound, SourceUnavailable
from freight_intake.services.storage import LocalStorage, get_file_extension, get_mime_type


class TestLocalStorage:
    @pytest.mark.asyncio
    async def test_put_and_get(self, storage):
        location = await storage.put("Quote.PDF", b"%PDF-1.4")
        assert location.endswith(".PDF")
        assert await storage.get(location) == b"%PDF-1.4"

    @pytest.mark.asyncio
    async def test_put_creates_root(self, tmp_path):
        storage = LocalStorage(str(tmp_path / "nested" / "uploads"))
        location = await storage.put("mail.eml", b"From: a@b.be")
        assert (tmp_path / "nested" / "uploads" / location).exists()

    @pytest.mark.asyncio
    async def test_missing(self, storage):
        with pytest.raises(DocumentNotFound):
            await storage.get("nope.pdf")

    @pytest.mark.asyncio
    async def test_outside_root(self, storage):
        with pytest.raises(SourceUnavailable, match="outside storage root"):
            await storage.get("../../etc/passwd")

    @pytest.mark.asyncio
    async def test_unreadable(self, storage):
        (storage.root / "folder").mkdir()
        with pytest.raises(SourceUnavailable) as exc_info:
            await storage.get("folder")
        assert exc_info.value.error_type == "source_unavailable"

    @pytest.mark.asyncio
    async def test_delete(self, storage):
        location = await storage.put("mail.eml", b"From: a@b.be")
        await storage.delete(location)
        assert not (storage.root / location).exists()
        with pytest.raises(DocumentNotFound):
            await storage.get(location)

    @pytest.mark.asyncio
    async def test_delete_missing_is_ignored(self, storage):
        await storage.delete("gone.pdf")


class TestMimeTypes:
    @pytest.mark.parametrize(
        "filename,expected",
        [
            ("quote.pdf", "application/pdf"),
            ("Mail.EML", "message/rfc822"),
            ("photo.jpeg", "image/jpeg"),
            ("scan.tif", "image/tiff"),
            ("notes.txt", "application/octet-stream"),
            ("README", "application/octet-stream"),
        ],
    )
    def test_get_mime_type(self, filename, expected):
        assert get_mime_type(filename) == expected

    def test_get_file_extension(self):
        assert get_file_extension("archive.tar.GZ") == "gz"
        assert get_file_extension("noext") == ""
