from __future__ import annotations

import logging
import os
from urllib.parse import quote

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import StreamingResponse
from sqlmodel import Session
from starlette.datastructures import UploadFile

from docshare.core.exceptions import BadRequest
from docshare.db import get_session
from docshare.services import files
from docshare.storage import LocalBlobStore, get_blob_store

router = APIRouter(prefix="/api")

logger = logging.getLogger("docshare")


def _upload_size(upload: UploadFile) -> int:
    if upload.size is not None:
        return upload.size
    stream = upload.file
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


def content_disposition(filename: str) -> str:
    """``attachment`` header for ``filename``.

    The quoted ``filename`` parameter only carries printable ASCII; anything
    else becomes ``_`` and the exact name goes in ``filename*`` (RFC 6266).
    """
    fallback = "".join(ch if " " <= ch <= "~" else "_" for ch in filename)
    header = 'attachment; filename="{}"'.format(fallback.replace("\\", "\\\\").replace('"', '\\"'))
    if fallback != filename:
        header += f"; filename*=UTF-8''{quote(filename, safe='')}"
    return header


@router.get("/files")
def list_files(session: Session = Depends(get_session)):
    return files.list_files(session)


@router.post("/upload")
async def upload(
    request: Request,
    session: Session = Depends(get_session),
    blobs: LocalBlobStore = Depends(get_blob_store),
):
    form = await request.form()
    file = form.get("file")
    if not isinstance(file, UploadFile) or not file.filename:
        logger.warning("event=upload_rejected reason=no_file")
        raise BadRequest("No file provided")

    try:
        size = _upload_size(file)
        return await run_in_threadpool(
            files.upload_file,
            session,
            blobs,
            file.filename,
            file.content_type,
            file.file,
            size,
        )
    finally:
        await file.close()


@router.get("/files/{file_id}")
def download(
    file_id: str,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    blobs: LocalBlobStore = Depends(get_blob_store),
):
    record, blob = files.download_file(session, blobs, file_id)
    background_tasks.add_task(files.record_download, file_id)
    return StreamingResponse(
        blob.iter_chunks(),
        media_type=record.mime_type,
        headers={
            "Content-Disposition": content_disposition(record.filename),
            "Content-Length": str(blob.size),
        },
    )


@router.delete("/files/{file_id}")
def delete(
    file_id: str,
    session: Session = Depends(get_session),
    blobs: LocalBlobStore = Depends(get_blob_store),
):
    return files.delete_file(session, blobs, file_id)
