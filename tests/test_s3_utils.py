from urllib.parse import parse_qs, urlparse

import boto3
import pytest
from botocore.config import Config
from botocore.stub import Stubber

from file_uploads.core.exceptions import StorageError
from file_uploads.service.s3_utils import S3BlobStore


@pytest.fixture
def s3_client():
    return boto3.client(
        "s3",
        region_name="eu-north-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
        config=Config(signature_version="s3v4"),
    )


@pytest.fixture
def blob_store(s3_client):
    return S3BlobStore(client=s3_client, bucket="test-bucket")


async def test_issue_upload_grant_signs_put_for_key(blob_store):
    url = await blob_store.issue_upload_grant("uploads/user-123/file-001/report.pdf", 300, "application/pdf")

    parsed = urlparse(url)
    query = parse_qs(parsed.query)
    assert parsed.path.endswith("/uploads/user-123/file-001/report.pdf")
    assert "test-bucket" in parsed.netloc + parsed.path
    assert query["X-Amz-Expires"] == ["300"]


async def test_exists_true(blob_store, s3_client):
    with Stubber(s3_client) as stubber:
        stubber.add_response(
            "head_object",
            {"ContentLength": 524288, "ContentType": "application/pdf"},
            {"Bucket": "test-bucket", "Key": "uploads/u1/f1/report.pdf"},
        )
        assert await blob_store.exists("uploads/u1/f1/report.pdf") is True
        stubber.assert_no_pending_responses()


async def test_exists_false_on_404(blob_store, s3_client):
    with Stubber(s3_client) as stubber:
        stubber.add_client_error("head_object", service_error_code="404", http_status_code=404)
        assert await blob_store.exists("uploads/u1/f1/report.pdf") is False


async def test_exists_other_errors_are_storage_errors(blob_store, s3_client):
    with Stubber(s3_client) as stubber:
        stubber.add_client_error("head_object", service_error_code="403", http_status_code=403)
        with pytest.raises(StorageError):
            await blob_store.exists("uploads/u1/f1/report.pdf")
