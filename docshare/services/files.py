"""List, upload, download and delete, sequenced across the two stores.

The metadata store and the blob store are written one after the other with
no compensation: upload writes the blob then the record, delete removes the
blob then the record. A crash in between leaves an orphan blob (upload) or
an orphan record whose download reports NotFound (delete).
"""
from __future__ import annotations

import logging
import uuid
from typing import BinaryIO

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from docshare.config import DEFAULT_MEDIA_TYPE, MAX_TOTAL_STORAGE
from docshare.core.exceptions import BadRequest, NotFound, StorageUnavailable
from docshare.db import session_scope
from docshare.models import FileRecord, now_ms
from docshare.services import quota, records
from docshare.services.stats import total_storage_used
from docshare.storage import BlobObject, InvalidBlobKey, LocalBlobStore

logger = logging.getLogger("docshare.files")

_MAX_ID_ATTEMPTS = 5


def download_url(file_id: str) -> str:
    return f"/api/files/{file_id}"


def blob_key_for(file_id: str, filename: str) -> str:
    return f"{file_id}/{filename}"


def _reserve_id(session: Session, blobs: LocalBlobStore, filename: str) -> tuple[str, str]:
    for _ in range(_MAX_ID_ATTEMPTS):
        file_id = str(uuid.uuid4())
        key = blob_key_for(file_id, filename)
        if records.get_record(session, file_id) is None and not blobs.exists(key):
            return file_id, key
        logger.warning("event=id_collision file_id=%s", file_id)
    raise RuntimeError("Unable to allocate a unique file id")


def list_files(session: Session) -> dict:
    try:
        files = records.list_records(session)
        total_used = total_storage_used(session)
    except SQLAlchemyError as exc:
        logger.error("event=list_failure error=%s", exc)
        raise StorageUnavailable() from exc

    return {
        "files": [
            {
                "id": f.id,
                "filename": f.filename,
                "size": f.size,
                "mime_type": f.mime_type,
                "uploaded_at": f.uploaded_at,
                "download_count": f.download_count,
            }
            for f in files
        ],
        "totalStorageUsed": total_used,
        "totalStorageLimit": MAX_TOTAL_STORAGE,
    }


def upload_file(
    session: Session,
    blobs: LocalBlobStore,
    filename: str | None,
    content_type: str | None,
    stream: BinaryIO,
    size: int,
) -> dict:
    if not filename:
        raise BadRequest("No file provided")
    media_type = content_type or DEFAULT_MEDIA_TYPE

    try:
        quota.check_upload(session, size)
        file_id, key = _reserve_id(session, blobs, filename)
    except InvalidBlobKey as exc:
        raise BadRequest("Invalid filename") from exc
    except SQLAlchemyError as exc:
        logger.error("event=upload_failure stage=admission error=%s", exc)
        raise StorageUnavailable() from exc

    try:
        written = blobs.put(key, stream, media_type)
    except OSError as exc:
        logger.error("event=upload_failure stage=blob blob_key=%s error=%s", key, exc)
        raise StorageUnavailable() from exc
    if written != size:
        logger.warning(
            "event=upload_size_mismatch file_id=%s declared_bytes=%s written_bytes=%s",
            file_id,
            size,
            written,
        )

    record = FileRecord(
        id=file_id,
        filename=filename,
        size=written,
        mime_type=media_type,
        blob_key=key,
        uploaded_at=now_ms(),
        download_count=0,
    )
    try:
        records.insert_record(session, record)
    except SQLAlchemyError as exc:
        # The blob stays where it is; nothing removes it.
        logger.error(
            "event=upload_metadata_failure file_id=%s blob_key=%s error=%s", file_id, key, exc
        )
        raise StorageUnavailable() from exc

    logger.info(
        "event=upload_success file_id=%s blob_key=%s size_bytes=%s content_type=%s",
        file_id,
        key,
        written,
        media_type,
    )
    return {
        "id": file_id,
        "filename": filename,
        "size": written,
        "downloadUrl": download_url(file_id),
    }


def download_file(
    session: Session, blobs: LocalBlobStore, file_id: str
) -> tuple[FileRecord, BlobObject]:
    try:
        record = records.get_record(session, file_id)
    except SQLAlchemyError as exc:
        logger.error("event=download_failure file_id=%s error=%s", file_id, exc)
        raise StorageUnavailable() from exc
    if record is None:
        raise NotFound("File not found")

    try:
        blob = blobs.get(record.blob_key)
    except InvalidBlobKey:
        blob = None
    except OSError as exc:
        logger.error("event=download_failure file_id=%s blob_key=%s error=%s", file_id, record.blob_key, exc)
        raise StorageUnavailable() from exc
    if blob is None:
        logger.warning("event=blob_missing file_id=%s blob_key=%s", file_id, record.blob_key)
        raise NotFound("File not found in storage")

    return record, blob


def record_download(file_id: str) -> None:
    """Best-effort counter bump, run after the content has been handed off."""
    try:
        with session_scope() as session:
            records.increment_download_count(session, file_id)
    except Exception as exc:
        logger.error("event=download_count_failure file_id=%s error=%s", file_id, exc)
    else:
        logger.info("event=file_served file_id=%s", file_id)


def delete_file(session: Session, blobs: LocalBlobStore, file_id: str) -> dict:
    try:
        record = records.get_record(session, file_id)
    except SQLAlchemyError as exc:
        logger.error("event=delete_failure file_id=%s error=%s", file_id, exc)
        raise StorageUnavailable() from exc
    if record is None:
        raise NotFound("File not found")
    size, key = record.size, record.blob_key

    try:
        blobs.delete(key)
    except InvalidBlobKey:
        logger.warning("event=blob_key_invalid file_id=%s blob_key=%s", file_id, key)
    except OSError as exc:
        logger.error("event=delete_failure stage=blob file_id=%s error=%s", file_id, exc)
        raise StorageUnavailable() from exc

    try:
        records.delete_record(session, record)
    except SQLAlchemyError as exc:
        logger.error(
            "event=delete_failure stage=metadata file_id=%s blob_key=%s error=%s",
            file_id,
            key,
            exc,
        )
        raise StorageUnavailable() from exc

    logger.info("event=delete_success file_id=%s size_bytes=%s", file_id, size)
    return {"success": True}
