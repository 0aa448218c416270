import io

import pytest
from botocore.exceptions import ClientError
from fastapi import UploadFile

from kanasu.core.config import settings
from kanasu.core.exceptions import ExternalServiceError
from kanasu.models import Evaluation
from kanasu.services import media_storage


class FakeS3:
    """Keeps objects in a dict; uploads under ``failing`` prefixes error out."""

    def __init__(self, failing=()):
        self.failing = failing
        self.objects = {}
        self.deleted = []

    def upload_file(self, path, bucket, key, ExtraArgs=None):
        if any(key.startswith(prefix) for prefix in self.failing):
            raise ClientError({"Error": {"Code": "500", "Message": "boom"}}, "PutObject")
        with open(path, "rb") as handle:
            self.objects[key] = handle.read()

    def delete_object(self, Bucket, Key):
        self.objects.pop(Key, None)
        self.deleted.append(Key)


@pytest.fixture
def s3(monkeypatch):
    monkeypatch.setattr(settings, "AWS_S3_BUCKET", "kanasu-test")
    monkeypatch.setattr(settings, "AWS_REGION", "ap-south-1")

    def _install(failing=()):
        fake = FakeS3(failing)
        monkeypatch.setattr(media_storage, "get_s3_client", lambda: fake)
        return fake
    return _install


def _upload(filename, body=b"data"):
    return UploadFile(file=io.BytesIO(body), filename=filename)


def test_store_uploads_returns_urls(s3):
    fake = s3()

    urls = media_storage.store_uploads({"audio": _upload("a.mp3"), "metadata": None})

    assert urls["metadata"] is None
    assert urls["audio"].startswith("https://kanasu-test.s3.ap-south-1.amazonaws.com/evaluations/audio/")
    assert list(fake.objects.values()) == [b"data"]


def test_failed_second_upload_removes_the_first(s3):
    fake = s3(failing=("evaluations/metadata/",))

    with pytest.raises(ExternalServiceError, match="Failed to upload metadata file"):
        media_storage.store_uploads({"audio": _upload("a.mp3"), "metadata": _upload("m.json")})

    assert fake.objects == {}
    assert len(fake.deleted) == 1
    assert fake.deleted[0].startswith("evaluations/audio/")


def test_delete_ignores_foreign_urls(s3):
    fake = s3()
    media_storage.delete_media("https://cdn.example.org/a.mp3")
    assert fake.deleted == []


def test_evaluation_upload_leaves_no_object_behind(
    client, db, s3, make_anganwadi, make_student, make_teacher, make_topic
):
    fake = s3(failing=("evaluations/metadata/",))
    anganwadi = make_anganwadi()

    response = client.post("/api/v1/evaluations/", data={
        "teacher_id": str(make_teacher(anganwadi).id),
        "student_id": str(make_student(anganwadi).id),
        "topic_id": str(make_topic().id),
    }, files={
        "audio": ("a.mp3", b"audio", "audio/mpeg"),
        "metadata": ("m.json", b"{}", "application/json"),
    })

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to upload metadata file"
    assert fake.objects == {}
    assert db.query(Evaluation).count() == 0
