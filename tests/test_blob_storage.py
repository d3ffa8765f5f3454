import asyncio

import pytest

from libs.core.exceptions import NotFoundError, ValidationError
from libs.storage import LocalBlobStorage
from libs.storage.blob_storage import validate_object_key


@pytest.fixture()
def storage(tmp_path) -> LocalBlobStorage:
    return LocalBlobStorage(tmp_path, "http://files.test/")


def test_put_writes_file_under_root(storage, tmp_path):
    asyncio.run(storage.put("user-1/1-abc.txt", b"hello", "text/plain"))

    assert (tmp_path / "user-1" / "1-abc.txt").read_bytes() == b"hello"
    assert not (tmp_path / "user-1" / "1-abc.txt.part").exists()


def test_public_url_joins_base_and_key(storage):
    assert storage.get_public_url("user-1/1-abc.txt") == "http://files.test/user-1/1-abc.txt"


def test_public_url_empty_without_base(tmp_path):
    assert LocalBlobStorage(tmp_path, "").get_public_url("user-1/a.txt") == ""


def test_remove_deletes_and_reports_missing(storage, tmp_path):
    asyncio.run(storage.put("user-1/a.txt", b"x", "text/plain"))
    asyncio.run(storage.remove("user-1/a.txt"))

    assert not (tmp_path / "user-1" / "a.txt").exists()
    with pytest.raises(NotFoundError):
        asyncio.run(storage.remove("user-1/a.txt"))


@pytest.mark.parametrize("path", ["", "/", "../etc/passwd", "user-1/../../x", "user 1/a.txt", "user-1/./a"])
def test_invalid_keys_are_rejected(storage, path):
    with pytest.raises(ValidationError):
        validate_object_key(path)
    with pytest.raises(ValidationError):
        asyncio.run(storage.put(path, b"x", "text/plain"))


def test_valid_key_is_normalized():
    assert validate_object_key("/user-1/1700-ab12.tar.gz") == "user-1/1700-ab12.tar.gz"


def test_from_settings(settings):
    storage = LocalBlobStorage.from_settings(settings)

    assert storage.root == settings.blob_dir
    assert storage.public_url == "http://testserver/files"
