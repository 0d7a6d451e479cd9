"""ImageStore against a mocked MongoAdapter/GridFSBucket."""
from unittest.mock import MagicMock

import pytest
from bson import ObjectId
from gridfs.errors import NoFile
from pymongo.errors import AutoReconnect

from database.exceptions import StoreError, StoredFileMissing
from database.image_store import ImageStore, is_valid_file_id, iter_chunks, to_object_id
from tests.fixtures.store_fixtures import FakeGridOut

TEST_FILE_CONTENT = b"0123456789abcdef"


@pytest.fixture
def adapter():
    return MagicMock()


@pytest.fixture
def image_store(adapter):
    return ImageStore(adapter)


@pytest.fixture
def scratch_file(tmp_path):
    path = tmp_path / "upload.png"
    path.write_bytes(TEST_FILE_CONTENT)
    return str(path)


@pytest.mark.parametrize(
    "value,expected",
    [
        ("665f1c2ab1e4f2a9c8d7e6f5", True),
        (str(ObjectId()), True),
        ("665f1c2ab1e4f2a9c8d7e6f", False),
        ("zzzzzzzzzzzzzzzzzzzzzzzz", False),
        ("", False),
        (None, False),
    ],
)
def test_is_valid_file_id(value, expected):
    assert is_valid_file_id(value) is expected


def test_to_object_id_rejects_invalid_ids():
    with pytest.raises(ValueError):
        to_object_id("abc")


def test_upload_from_path_streams_into_bucket(image_store, adapter, scratch_file):
    new_id = ObjectId()
    adapter.bucket.upload_from_stream.return_value = new_id
    metadata = {"userId": "u1", "contentType": "image/png"}

    file_id = image_store.upload_from_path(scratch_file, "u1_1_upload.png", metadata)

    assert file_id == new_id
    filename, source = adapter.bucket.upload_from_stream.call_args.args
    assert filename == "u1_1_upload.png"
    assert source.name == scratch_file
    assert adapter.bucket.upload_from_stream.call_args.kwargs["metadata"] == metadata


def test_upload_from_missing_path(image_store, tmp_path):
    with pytest.raises(StoreError, match="Error reading temporary file"):
        image_store.upload_from_path(str(tmp_path / "gone.png"), "gone.png", {})


def test_upload_store_failure(image_store, adapter, scratch_file):
    adapter.bucket.upload_from_stream.side_effect = AutoReconnect("primary stepped down")

    with pytest.raises(StoreError, match="GridFS upload error"):
        image_store.upload_from_path(scratch_file, "x.png", {})


def test_find_file_builds_record(image_store, adapter):
    file_id = ObjectId()
    adapter.files_collection.find_one.return_value = {
        "_id": file_id,
        "filename": "u1_1_cat.png",
        "length": 42,
        "metadata": {"userId": "u1", "contentType": "image/png"},
    }

    record = image_store.find_file(str(file_id))

    adapter.files_collection.find_one.assert_called_once_with({"_id": file_id})
    assert record.file_id == str(file_id)
    assert record.owner_id == "u1"
    assert record.content_type == "image/png"
    assert record.length == 42


def test_find_file_falls_back_to_legacy_content_type(image_store, adapter):
    adapter.files_collection.find_one.return_value = {
        "_id": ObjectId(), "filename": "old.jpg", "length": 1, "contentType": "image/jpeg",
    }

    assert image_store.find_file(str(ObjectId())).content_type == "image/jpeg"


def test_find_file_missing(image_store, adapter):
    adapter.files_collection.find_one.return_value = None

    assert image_store.find_file(str(ObjectId())) is None


def test_open_download_stream_missing(image_store, adapter):
    adapter.bucket.open_download_stream.side_effect = NoFile("no file")

    with pytest.raises(StoredFileMissing):
        image_store.open_download_stream(str(ObjectId()))


def test_delete(image_store, adapter):
    file_id = ObjectId()

    image_store.delete(str(file_id))

    adapter.bucket.delete.assert_called_once_with(file_id)


def test_delete_missing(image_store, adapter):
    adapter.bucket.delete.side_effect = NoFile("no file")

    with pytest.raises(StoredFileMissing):
        image_store.delete(str(ObjectId()))


def test_iter_chunks_uses_stream_chunk_size():
    stream = FakeGridOut(TEST_FILE_CONTENT, ObjectId(), chunk_size=5)

    chunks = list(iter_chunks(stream))

    assert chunks == [b"01234", b"56789", b"abcde", b"f"]
    assert stream.closed


def test_iter_chunks_closes_abandoned_stream():
    stream = FakeGridOut(TEST_FILE_CONTENT, ObjectId(), chunk_size=4)

    chunks = iter_chunks(stream)
    assert next(chunks) == b"0123"
    chunks.close()

    assert stream.closed


def test_iter_chunks_wraps_driver_errors():
    stream = MagicMock(chunk_size=4)
    stream.read.side_effect = AutoReconnect("lost connection")

    with pytest.raises(StoreError, match="GridFS stream error"):
        list(iter_chunks(stream))
    stream.close.assert_called_once()
