import logging

from sqlmodel import Session

from docshare.config import MAX_FILE_SIZE, MAX_TOTAL_STORAGE
from docshare.core.exceptions import FileTooLarge, QuotaExceeded
from docshare.services.stats import total_storage_used

logger = logging.getLogger("docshare.quota")


def check_upload(session: Session, size: int) -> int:
    """Admit or reject an upload of ``size`` bytes.

    Usage is read fresh on every call and nothing is reserved, so two uploads
    admitted from the same snapshot can jointly overshoot MAX_TOTAL_STORAGE.
    Returns the usage figure the decision was based on.
    """
    if size > MAX_FILE_SIZE:
        logger.warning(
            "event=upload_rejected reason=max_size size_bytes=%s limit_bytes=%s",
            size,
            MAX_FILE_SIZE,
        )
        raise FileTooLarge()

    total_used = total_storage_used(session)
    if total_used + size > MAX_TOTAL_STORAGE:
        logger.warning(
            "event=upload_rejected reason=quota size_bytes=%s used_bytes=%s limit_bytes=%s",
            size,
            total_used,
            MAX_TOTAL_STORAGE,
        )
        raise QuotaExceeded()

    return total_used
