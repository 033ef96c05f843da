import os
from dotenv import load_dotenv

load_dotenv()

BLOB_DIR = os.getenv(
    "BLOB_DIR", os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "blobs"))
)
DB_URL = os.getenv("DB_URL", "sqlite:///./docshare.db")
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
BLOB_CHUNK_SIZE = max(1024, int(os.getenv("BLOB_CHUNK_SIZE", str(64 * 1024))))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DB_CONNECT_ARGS = {"check_same_thread": False} if DB_URL.startswith("sqlite") else {}

# Storage limits are fixed, not environment driven.
MAX_FILE_SIZE = 100 * 1024 * 1024
MAX_TOTAL_STORAGE = 5 * 1024 * 1024 * 1024
DEFAULT_MEDIA_TYPE = "application/octet-stream"
