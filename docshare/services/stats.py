from sqlalchemy import func
from sqlmodel import Session, select

from docshare.models import FileRecord


def total_storage_used(session: Session) -> int:
    total_bytes = session.exec(select(func.coalesce(func.sum(FileRecord.size), 0))).one()
    return int(total_bytes or 0)
