from pathlib import Path

import boto3
import pytest
from botocore.exceptions import ClientError
from botocore.stub import ANY, Stubber

from media_archiver.storage import StorageClient, guess_content_type


@pytest.fixture
def s3_client():
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


@pytest.fixture
def stubbed(config, s3_client):
    storage = StorageClient(config, client=s3_client)
    with Stubber(s3_client) as stubber:
        yield storage, stubber
        stubber.assert_no_pending_responses()


def test_head_object_returns_metadata(stubbed) -> None:
    storage, stubber = stubbed
    stubber.add_response(
        "head_object",
        {"ContentLength": 42, "ETag": '"abc"'},
        {"Bucket": "media-archive", "Key": "deadbeef.jpg"},
    )

    metadata = storage.head_object("deadbeef.jpg")

    assert metadata is not None
    assert metadata["ContentLength"] == 42


def test_head_object_not_found_returns_none(stubbed) -> None:
    storage, stubber = stubbed
    stubber.add_client_error(
        "head_object",
        service_error_code="404",
        service_message="Not Found",
        http_status_code=404,
        expected_params={"Bucket": "media-archive", "Key": "deadbeef.jpg"},
    )

    assert storage.head_object("deadbeef.jpg") is None


@pytest.mark.parametrize(
    ("code", "status"),
    [("403", 403), ("AccessDenied", 403), ("InternalError", 500), ("SlowDown", 503)],
)
def test_head_object_other_errors_propagate(stubbed, code, status) -> None:
    storage, stubber = stubbed
    stubber.add_client_error(
        "head_object",
        service_error_code=code,
        http_status_code=status,
    )

    with pytest.raises(ClientError):
        storage.head_object("deadbeef.jpg")


def test_put_file_sends_storage_class_and_content_type(stubbed, tmp_path) -> None:
    storage, stubber = stubbed
    path = tmp_path / "photo.jpg"
    path.write_bytes(b"\xff\xd8\xff")
    stubber.add_response(
        "put_object",
        {"ETag": '"etag"'},
        {
            "Bucket": "media-archive",
            "Key": "deadbeef.jpg",
            "Body": ANY,
            "ContentType": "image/jpeg",
            "StorageClass": "STANDARD_IA",
        },
    )

    storage.put_file(path, "deadbeef.jpg", "STANDARD_IA")


def test_put_file_errors_propagate(stubbed, tmp_path) -> None:
    storage, stubber = stubbed
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"video")
    stubber.add_client_error("put_object", service_error_code="AccessDenied", http_status_code=403)

    with pytest.raises(ClientError):
        storage.put_file(path, "cafe.mp4", "STANDARD_IA")


def test_guess_content_type() -> None:
    assert guess_content_type(Path("a.png")) == "image/png"
    assert guess_content_type(Path("a.unknownext")) == "application/octet-stream"


def test_client_created_from_config(config) -> None:
    storage = StorageClient(config)
    assert storage.config.bucket == "media-archive"
