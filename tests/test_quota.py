import pytest
from conftest import session_scope, stored_objects

from docshare.config import MAX_FILE_SIZE, MAX_TOTAL_STORAGE
from docshare.core.exceptions import FileTooLarge, QuotaExceeded
from docshare.models import FileRecord


def _seed_usage(size_bytes: int) -> None:
    with session_scope() as session:
        session.add(
            FileRecord(
                id="seed",
                filename="seed.bin",
                size=size_bytes,
                mime_type="application/octet-stream",
                blob_key="seed/seed.bin",
            )
        )
        session.commit()


def test_limits_are_fixed():
    assert MAX_FILE_SIZE == 104_857_600
    assert MAX_TOTAL_STORAGE == 5_368_709_120


def test_file_at_limit_is_admitted(client):
    from docshare.services.quota import check_upload

    with session_scope() as session:
        assert check_upload(session, MAX_FILE_SIZE) == 0
        assert check_upload(session, 0) == 0


def test_file_one_byte_over_limit_is_rejected(client):
    from docshare.services.quota import check_upload

    with session_scope() as session:
        with pytest.raises(FileTooLarge):
            check_upload(session, MAX_FILE_SIZE + 1)


def test_quota_counts_existing_usage(client):
    from docshare.services.quota import check_upload

    _seed_usage(MAX_TOTAL_STORAGE - 1)
    with session_scope() as session:
        assert check_upload(session, 1) == MAX_TOTAL_STORAGE - 1
        with pytest.raises(QuotaExceeded):
            check_upload(session, 2)


def test_oversized_upload_has_no_side_effects(client, monkeypatch):
    # Shrink the per-file limit so the request body stays small.
    monkeypatch.setattr("docshare.services.quota.MAX_FILE_SIZE", 8)

    response = client.post("/api/upload", files={"file": ("big.bin", b"x" * 9, "text/plain")})
    assert response.status_code == 413
    assert response.json() == {"error": "File exceeds 100MB limit"}

    listing = client.get("/api/files").json()
    assert listing["files"] == []
    assert listing["totalStorageUsed"] == 0
    assert stored_objects(client.blob_dir) == []


def test_upload_over_quota_has_no_side_effects(client):
    _seed_usage(MAX_TOTAL_STORAGE - 1)

    response = client.post("/api/upload", files={"file": ("two.bin", b"ab", "text/plain")})
    assert response.status_code == 413
    assert response.json() == {"error": "Storage limit exceeded (5GB max)"}

    listing = client.get("/api/files").json()
    assert [f["id"] for f in listing["files"]] == ["seed"]
    assert listing["totalStorageUsed"] == MAX_TOTAL_STORAGE - 1
    assert stored_objects(client.blob_dir) == []


def test_upload_filling_quota_exactly_is_admitted(client):
    _seed_usage(MAX_TOTAL_STORAGE - 2)

    response = client.post("/api/upload", files={"file": ("two.bin", b"ab", "text/plain")})
    assert response.status_code == 200
    assert client.get("/api/files").json()["totalStorageUsed"] == MAX_TOTAL_STORAGE
