"""
Tests for evidence file storage.
"""
import hashlib
from io import BytesIO
from pathlib import Path

import pytest
from starlette.datastructures import UploadFile

from safeguard.core.exceptions import ValidationError
from safeguard.utils.file_utils import EvidenceFileStore, FileTooLargeError, safe_filename


def _upload(name: str, data: bytes) -> UploadFile:
    return UploadFile(file=BytesIO(data), filename=name)


class TestSafeFilename:
    """Test filename sanitising."""

    @pytest.mark.parametrize("name,expected", [
        ("report.pdf", "report.pdf"),
        ("../../etc/passwd", "passwd"),
        ("C:\\temp\\my cert (1).pdf", "my_cert_1_.pdf"),
        ("...", "upload"),
    ])
    def test_safe_filename(self, name, expected):
        assert safe_filename(name) == expected


class TestEvidenceFileStore:
    """Test saving and deleting evidence files."""

    @pytest.mark.asyncio
    async def test_save_streams_and_hashes(self, tmp_path):
        store = EvidenceFileStore(root=str(tmp_path / "evidence"))
        data = b"certificate of competency" * 100

        stored = await store.save(_upload("cert.pdf", data))

        path = Path(stored.path)
        assert path.exists()
        assert path.read_bytes() == data
        assert path.name.endswith("_cert.pdf")
        assert path.parent.parent.parent == tmp_path / "evidence"
        assert stored.size == len(data)
        assert stored.checksum == hashlib.sha256(data).hexdigest()
        assert stored.original_name == "cert.pdf"

    @pytest.mark.asyncio
    async def test_disallowed_extension(self, tmp_path):
        store = EvidenceFileStore(root=str(tmp_path))

        with pytest.raises(ValidationError):
            await store.save(_upload("payload.exe", b"MZ"))
        with pytest.raises(ValidationError):
            store.validate_name(None)

    @pytest.mark.asyncio
    async def test_oversized_upload_is_removed(self, tmp_path):
        root = tmp_path / "evidence"
        store = EvidenceFileStore(root=str(root), max_size=10)

        with pytest.raises(FileTooLargeError):
            await store.save(_upload("big.txt", b"x" * 11))

        assert [p for p in root.rglob("*") if p.is_file()] == []

    @pytest.mark.asyncio
    async def test_delete(self, tmp_path):
        store = EvidenceFileStore(root=str(tmp_path / "evidence"))
        stored = await store.save(_upload("notes.txt", b"toolbox talk"))

        assert store.delete(stored.path) is True
        assert store.delete(stored.path) is False
        with pytest.raises(ValidationError):
            store.delete(str(tmp_path / "elsewhere.txt"))
