import time

from sqlalchemy import BigInteger
from sqlmodel import SQLModel, Field


def now_ms() -> int:
    return int(time.time() * 1000)


class FileRecord(SQLModel, table=True):
    __tablename__ = "files"

    id: str = Field(primary_key=True)
    filename: str
    size: int = Field(sa_type=BigInteger)
    mime_type: str
    blob_key: str  # "{id}/{filename}", the only link to the blob store
    uploaded_at: int = Field(default_factory=now_ms, sa_type=BigInteger, index=True)  # epoch ms
    download_count: int = Field(default=0)
