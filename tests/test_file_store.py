import pytest

from party_profiles.app.errors import FileStoreError
from party_profiles.services.file_store import LocalFileStore


def test_upload_writes_blob_and_returns_url(tmp_path):
    store = LocalFileStore(str(tmp_path / "up"), base_url="https://cdn.example/uploads/")
    url = store.upload(b"pngbytes", "baby.png")
    assert url.startswith("https://cdn.example/uploads/")
    assert url.endswith(".png")
    key = url.rsplit("/", 1)[1]
    assert (tmp_path / "up" / key).read_bytes() == b"pngbytes"


def test_uploads_get_unique_keys(file_store):
    assert file_store.upload(b"a", "x.jpg") != file_store.upload(b"a", "x.jpg")


def test_unknown_suffix_falls_back_to_bin(file_store):
    assert file_store.upload(b"data", "script.exe").endswith(".bin")
    assert file_store.upload(b"data").endswith(".bin")


def test_empty_upload_rejected(file_store):
    with pytest.raises(FileStoreError):
        file_store.upload(b"", "x.jpg")


def test_write_failure_raises_file_store_error(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file in the way")
    store = LocalFileStore(str(blocker / "nested"))
    with pytest.raises(FileStoreError):
        store.upload(b"data", "x.jpg")
