"""Point operations on the ``files`` table.

Each write commits on its own; nothing here spans more than one statement.
"""
from __future__ import annotations

from sqlalchemy import update
from sqlmodel import Session, select

from docshare.models import FileRecord


def get_record(session: Session, file_id: str) -> FileRecord | None:
    return session.get(FileRecord, file_id)


def insert_record(session: Session, record: FileRecord) -> FileRecord:
    session.add(record)
    session.commit()
    session.refresh(record)
    return record


def delete_record(session: Session, record: FileRecord) -> None:
    session.delete(record)
    session.commit()


def list_records(session: Session) -> list[FileRecord]:
    return list(session.exec(select(FileRecord).order_by(FileRecord.uploaded_at.desc())).all())


def increment_download_count(session: Session, file_id: str) -> int:
    """Bump the counter in a single UPDATE. Returns the number of rows touched."""
    result = session.execute(
        update(FileRecord)
        .where(FileRecord.id == file_id)
        .values(download_count=FileRecord.download_count + 1)
    )
    session.commit()
    return result.rowcount
