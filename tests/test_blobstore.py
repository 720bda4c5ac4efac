import pytest

from csvview_server.blobstore import BlobStore, client_basename, csv_blob_name, image_blob_name
from csvview_server.errors import StorageError


def test_write_creates_directories_on_first_use(tmp_path):
    store = BlobStore(tmp_path / "uploads")
    assert not (tmp_path / "uploads").exists()

    store.write(image_blob_name("abc", 0, "x.jpg"), b"data")

    assert (tmp_path / "uploads" / "images" / "abc_0_x.jpg").read_bytes() == b"data"
    assert store.read("images/abc_0_x.jpg") == b"data"


def test_delete_missing_blob_is_not_an_error(tmp_path):
    store = BlobStore(tmp_path)
    store.write(csv_blob_name("abc", "a.csv"), b"a\n")
    assert store.delete("abc_a.csv") is True
    assert store.delete("abc_a.csv") is False


def test_read_missing_blob_raises_storage_error(tmp_path):
    with pytest.raises(StorageError):
        BlobStore(tmp_path).read("nope.csv")


def test_paths_cannot_escape_root(tmp_path):
    store = BlobStore(tmp_path / "uploads")
    with pytest.raises(StorageError):
        store.write("../outside.csv", b"x")


@pytest.mark.parametrize("raw, expected", [
    ("photo.jpg", "photo.jpg"),
    ("C:\\Users\\me\\photo.jpg", "photo.jpg"),
    ("../../etc/passwd", "passwd"),
    ("", ""),
])
def test_client_basename(raw, expected):
    assert client_basename(raw) == expected
