from __future__ import annotations

import hashlib
import json
import logging
import os
import tempfile
from collections.abc import Iterator
from pathlib import Path
from typing import BinaryIO

from docshare.config import BLOB_CHUNK_SIZE, BLOB_DIR, DEFAULT_MEDIA_TYPE

logger = logging.getLogger("docshare.storage")


class InvalidBlobKey(ValueError):
    pass


class BlobObject:
    """An object fetched from the blob store.

    The file is already open, so the bytes stay readable even if the key is
    deleted before streaming starts. ``iter_chunks`` is single use and closes
    the handle when exhausted.
    """

    def __init__(self, handle: BinaryIO, content_type: str, chunk_size: int) -> None:
        self._handle = handle
        self.content_type = content_type
        self.size = os.fstat(handle.fileno()).st_size
        self._chunk_size = chunk_size

    def iter_chunks(self) -> Iterator[bytes]:
        try:
            while True:
                chunk = self._handle.read(self._chunk_size)
                if not chunk:
                    break
                yield chunk
        finally:
            self._handle.close()

    def read(self) -> bytes:
        return b"".join(self.iter_chunks())

    def close(self) -> None:
        self._handle.close()


class LocalBlobStore:
    """Blob store backed by a directory.

    Keys are ``/``-separated strings; on disk each key lives under the SHA-256
    of the key, so the key text never reaches the filesystem. Layout:
    ``objects/<2 hex>/<digest>`` and ``meta/<2 hex>/<digest>.json``.
    """

    def __init__(self, root: str | os.PathLike, chunk_size: int = BLOB_CHUNK_SIZE) -> None:
        self.root = Path(root).resolve()
        self.chunk_size = chunk_size
        os.makedirs(self.root, exist_ok=True)

    def _paths(self, key: str) -> tuple[Path, Path]:
        if not key or any(part in ("", ".", "..") for part in key.split("/")):
            raise InvalidBlobKey(f"Invalid blob key: {key!r}")
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        shard = digest[:2]
        return (
            self.root / "objects" / shard / digest,
            self.root / "meta" / shard / f"{digest}.json",
        )

    def exists(self, key: str) -> bool:
        return self._paths(key)[0].is_file()

    def put(self, key: str, stream: BinaryIO, content_type: str | None = None) -> int:
        """Copy ``stream`` to ``key``. Returns the number of bytes written.

        Data lands in a temporary file first and is renamed into place, so a
        failed copy leaves no object behind.
        """
        path, meta_path = self._paths(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        meta_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".upload-")
        written = 0
        try:
            with os.fdopen(fd, "wb") as out:
                while True:
                    chunk = stream.read(self.chunk_size)
                    if not chunk:
                        break
                    out.write(chunk)
                    written += len(chunk)
            meta = {"key": key, "content_type": content_type or DEFAULT_MEDIA_TYPE}
            meta_path.write_text(json.dumps(meta), encoding="utf-8")
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            meta_path.unlink(missing_ok=True)
            raise
        logger.debug("event=blob_put key=%s size_bytes=%s", key, written)
        return written

    def get(self, key: str) -> BlobObject | None:
        path, meta_path = self._paths(key)
        try:
            handle = open(path, "rb")
        except FileNotFoundError:
            return None
        content_type = DEFAULT_MEDIA_TYPE
        try:
            content_type = json.loads(meta_path.read_text(encoding="utf-8")).get(
                "content_type", DEFAULT_MEDIA_TYPE
            )
        except FileNotFoundError:
            pass
        except ValueError:
            logger.warning("event=blob_meta_unreadable key=%s", key)
        return BlobObject(handle, content_type, self.chunk_size)

    def delete(self, key: str) -> None:
        path, meta_path = self._paths(key)
        path.unlink(missing_ok=True)
        meta_path.unlink(missing_ok=True)
        for shard_dir in (path.parent, meta_path.parent):
            try:
                shard_dir.rmdir()
            except OSError:
                pass  # still holds other objects
        logger.debug("event=blob_delete key=%s", key)


def get_blob_store() -> LocalBlobStore:
    return LocalBlobStore(BLOB_DIR)
